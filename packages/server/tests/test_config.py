"""Tests for configuration loading."""

from magic_cards_server.core.config import Settings


def test_defaults():
    cfg = Settings(_env_file=None)
    assert cfg.record_store_url == "https://api.airtable.com/v0"
    assert cfg.projects_table == "Projects"
    assert cfg.upload_preset == "Magic Cards"
    assert cfg.max_upload_bytes == 5 * 1024 * 1024
    assert cfg.scroll_delay_seconds == 0.3
    assert not cfg.record_store_configured
    assert not cfg.uploads_configured


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("MAGIC_CARDS_RECORD_STORE_API_KEY", "key")
    monkeypatch.setenv("MAGIC_CARDS_RECORD_STORE_BASE_ID", "appXYZ")
    monkeypatch.setenv("MAGIC_CARDS_CONTACT_CREATORS", '["Zoe", "Ben", "Ana"]')
    cfg = Settings(_env_file=None)
    assert cfg.record_store_configured
    assert cfg.contact_creators == ["Zoe", "Ben", "Ana"]


def test_env_file(tmp_path):
    env = tmp_path / ".env"
    env.write_text("MAGIC_CARDS_UPLOAD_CLOUD_NAME=demo\nMAGIC_CARDS_LOG_FORMAT=text\n")
    cfg = Settings(_env_file=env)
    assert cfg.uploads_configured
    assert cfg.log_format == "text"
