"""Rate limiter tests for the Flask web interface.

Alongside the baseline behaviour, these tests ensure configuration errors do
not throttle legitimate requests: a missing or malformed limit disables the
limiter instead of returning HTTP 429 responses.
"""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

pytest.importorskip("flask")
pytest.importorskip("flask_wtf")

from phrase_generator import web_gui  # noqa: E402


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("FLASK_SECRET", "testing-secret")
    monkeypatch.delenv("RATE_LIMIT_PER_MINUTE", raising=False)
    web_gui.REQUEST_LOG.clear()
    application = web_gui.create_app()
    application.config["WTF_CSRF_ENABLED"] = False
    return application


def test_rate_limit_enforces_limit(app) -> None:
    """Requests beyond the configured threshold should return HTTP 429."""
    app.config["RATE_LIMIT_PER_MINUTE"] = 1
    client = app.test_client()
    first = client.get("/")
    assert first.status_code == 200
    assert "Retry-After" not in first.headers

    second = client.get("/")
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) > 0


def test_rate_limit_applies_to_json_endpoint(app) -> None:
    app.config["RATE_LIMIT_PER_MINUTE"] = 1
    client = app.test_client()
    assert client.get("/melody.json").status_code == 200
    assert client.get("/melody.json").status_code == 429


def test_rate_limit_purges_expired_entries(app) -> None:
    """Entries older than the current window are removed before counting."""
    app.config["RATE_LIMIT_PER_MINUTE"] = 5
    old_time = web_gui.monotonic() - (web_gui.RATE_LIMIT_WINDOW * 2)
    web_gui.REQUEST_LOG["stale"] = (old_time, 1)
    assert app.test_client().get("/").status_code == 200
    assert "stale" not in web_gui.REQUEST_LOG


def test_limit_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("FLASK_SECRET", "testing-secret")
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "7")
    assert web_gui.create_app().config["RATE_LIMIT_PER_MINUTE"] == 7


@pytest.mark.parametrize("limit", ["many", -1])
def test_invalid_limit_disables_throttling(app, caplog, limit) -> None:
    app.config["RATE_LIMIT_PER_MINUTE"] = limit
    client = app.test_client()
    with caplog.at_level(logging.WARNING):
        for _ in range(3):
            assert client.get("/").status_code == 200
    assert "disabling rate limiting" in caplog.text


def test_zero_limit_disables_throttling(app) -> None:
    app.config["RATE_LIMIT_PER_MINUTE"] = 0
    client = app.test_client()
    for _ in range(3):
        assert client.get("/").status_code == 200
