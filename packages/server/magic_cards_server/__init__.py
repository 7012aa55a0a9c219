"""
Magic Cards Funnel Server

Staged production dashboard for personalized print collateral: tracks each
project through the eight-stage funnel and persists it in a remote record store.
"""

__version__ = "0.1.0"
