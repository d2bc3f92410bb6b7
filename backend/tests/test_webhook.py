"""Tests for the web entry point: health and Telegram webhook."""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from potluck.config import settings
from potluck.main import app


@pytest.fixture
def fake_bot_app():
    fake = SimpleNamespace(
        bot=None,
        process_update=AsyncMock(),
        stop=AsyncMock(),
        shutdown=AsyncMock(),
    )
    app.state.telegram = fake
    return fake


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "bot": False}


class TestWebhook:
    def test_unconfigured_bot(self, client):
        resp = client.post("/telegram/webhook", json={"update_id": 1})
        assert resp.status_code == 503

    def test_forwards_update(self, client, fake_bot_app):
        resp = client.post("/telegram/webhook", json={"update_id": 42})
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        update = fake_bot_app.process_update.await_args.args[0]
        assert update.update_id == 42

    def test_secret_token_required(self, client, fake_bot_app, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")
        resp = client.post("/telegram/webhook", json={"update_id": 1})
        assert resp.status_code == 403

        resp = client.post(
            "/telegram/webhook",
            json={"update_id": 1},
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
        )
        assert resp.status_code == 200
        fake_bot_app.process_update.assert_awaited_once()
