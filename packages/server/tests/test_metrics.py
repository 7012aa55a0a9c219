"""Tests for metrics collection."""

from magic_cards_server.core.metrics import MetricsCollector


def test_counter_increment():
    m = MetricsCollector()
    m.inc("stage_transitions_total")
    m.inc("stage_transitions_total")
    assert m.get("stage_transitions_total") == 2


def test_gauge_replaces_value():
    m = MetricsCollector()
    m.set_gauge("editor_boards", 3)
    m.set_gauge("editor_boards", 1)
    assert m.get("editor_boards") == 1


def test_unknown_metric_is_zero():
    assert MetricsCollector().get("uploads_total") == 0


def test_prometheus_format():
    m = MetricsCollector()
    m.inc("record_store_requests_total", 5)
    m.set_gauge("editor_boards", 2)
    text = m.to_prometheus()
    assert "# HELP magic_cards_record_store_requests_total" in text
    assert "# TYPE magic_cards_record_store_requests_total counter" in text
    assert "magic_cards_record_store_requests_total 5" in text
    assert "# TYPE magic_cards_editor_boards gauge" in text
    assert "magic_cards_editor_boards 2" in text
    assert "magic_cards_uptime_seconds" in text


def test_unlisted_metric_has_no_help_line():
    m = MetricsCollector()
    m.inc("custom_total")
    text = m.to_prometheus()
    assert "# TYPE magic_cards_custom_total counter" in text
    assert "# HELP magic_cards_custom_total" not in text
