"""
Magic Cards shared schemas.

Domain types and the stage model used by the funnel server and its clients.
"""

__version__ = "0.1.0"
