"""
End-to-end route tests through FastAPI's TestClient.

External collaborators (model provider, storefront, ffmpeg, whisper) are
replaced on the per-app Services container.
"""
from __future__ import annotations

import base64
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.services.audio_service import NormalizedAudio
from conftest import fake_anthropic, make_settings


@pytest.fixture
def app():
    return create_app(make_settings())


@pytest.fixture
def client(app):
    return TestClient(app)


def use_model(app, *texts: str):
    fake = fake_anthropic(*texts)
    app.state.services.chat.llm._client = fake
    return fake


class TestHealth:
    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "POST /webhook" in resp.json()["endpoints"]

    def test_webhook_get(self, client):
        assert client.get("/webhook").json() == {"status": "ok", "endpoint": "/webhook", "method": "POST"}

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestWebhook:
    def test_echoes_message_and_channel(self, client):
        resp = client.post("/webhook", json={"message": "hola", "channel": "whatsapp"})
        assert resp.status_code == 200
        assert resp.json() == {"reply": 'Hola 👋, recibí tu mensaje: "hola" desde whatsapp'}

    def test_media_only(self, client):
        resp = client.post("/webhook", json={"imageUrl": "https://x/y.jpg", "channel": "instagram"})
        assert '"media"' in resp.json()["reply"]

    def test_missing_channel_is_unknown(self, client):
        resp = client.post("/webhook", json={"message": "hola"})
        assert resp.status_code == 200
        assert resp.json() == {"reply": 'Hola 👋, recibí tu mensaje: "hola" desde desconocido'}


class TestChat:
    def test_complete(self, app, client):
        use_model(app, "El precio es 50.000")
        resp = client.post("/chat/complete", json={"message": "¿cuánto cuesta?"})
        assert resp.status_code == 200
        assert resp.json() == {"reply": "El precio es 50.000", "intent": "buscar_producto", "product_id": "12345"}

    def test_missing_message(self, client):
        resp = client.post("/chat/complete", json={})
        assert resp.status_code == 400
        assert "message" in resp.json()["error"]

    def test_missing_credential(self):
        client = TestClient(create_app(make_settings(anthropic_api_key="")))
        resp = client.post("/chat/complete", json={"message": "hola"})
        assert resp.status_code == 500
        assert "ANTHROPIC_API_KEY" in resp.json()["error"]

    def test_invalid_temperature(self, client):
        resp = client.post("/chat/complete", json={"message": "hola", "temperature": 7})
        assert resp.status_code == 400


class TestVision:
    def test_missing_image(self, client):
        resp = client.post("/vision/analyze", json={"prompt": "qué es"})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert "imageUrl" in error and "imageBase64" in error

    def test_analyze_inline(self, app, client, png_b64):
        use_model(app, '{"domain": "apparel", "category": "faja", "colors": ["negro"]}')
        resp = client.post("/vision/analyze", json={"imageBase64": png_b64})
        assert resp.status_code == 200
        body = resp.json()
        assert body["attributes"] == {"domain": "apparel", "category": "faja", "colors": ["negro"]}
        assert body["degraded"] is False

    def test_analyze_degraded(self, app, client, png_b64):
        use_model(app, "una faja negra", "sigue sin json")
        body = client.post("/vision/analyze", json={"imageBase64": png_b64}).json()
        assert body["attributes"] == {"domain": "other", "raw": "una faja negra"}
        assert body["degraded"] is True

    def test_html_url_rejected_with_sample(self, app, client):
        html = "<html>" + "a" * 400 + "</html>"
        app.state.services.images._transport = httpx.MockTransport(
            lambda r: httpx.Response(200, text=html, headers={"content-type": "text/html"})
        )
        resp = client.post("/vision/analyze", json={"imageUrl": "https://example.com/page"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["sample"].startswith("<html>")
        assert len(body["sample"]) <= 200

    def test_oversized_image(self, client, png_b64):
        client = TestClient(create_app(make_settings(max_image_bytes=100)))
        resp = client.post("/vision/analyze", json={"imageBase64": png_b64})
        assert resp.status_code == 413

    def test_decompression_bomb_is_413(self, client, monkeypatch):
        from PIL import Image

        buf = io.BytesIO()
        Image.new("1", (100, 100)).save(buf, format="PNG")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        resp = client.post("/vision/analyze", json={"imageBase64": base64.b64encode(buf.getvalue()).decode()})
        assert resp.status_code == 413
        assert resp.json()["details"]["max_pixels"] == 1000


class TestCatalog:
    def test_not_configured(self, client):
        resp = client.post("/catalog/search", json={"query": "faja negra"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["results"] == []
        assert body["note"]
        assert body["query"] == "faja negra"

    def test_missing_query(self, client):
        resp = client.post("/catalog/search", json={})
        assert resp.status_code == 400

    def test_upstream_failure(self):
        app = create_app(make_settings(shopify_store_domain="t.myshopify.com", shopify_storefront_token="x"))
        app.state.services.catalog._transport = httpx.MockTransport(lambda r: httpx.Response(503, text="down"))
        resp = TestClient(app).post("/catalog/search", json={"query": "faja"})
        assert resp.status_code == 502


class TestByImage:
    def test_composite_flow(self, app, client, png_b64):
        use_model(app, '{"domain": "apparel", "category": "faja", "colors": ["negro"], "size": "M"}')
        resp = client.post("/by-image/search", json={"imageBase64": png_b64})
        assert resp.status_code == 200
        body = resp.json()
        assert body["query"] == "faja negro M"
        assert body["results"] == []
        assert body["note"]
        assert body["attributes"]["domain"] == "apparel"

    def test_composite_uses_catalog_in_process(self, app, client, png_b64):
        use_model(app, '{"domain": "phones", "brand": "Apple", "model": "iPhone 13"}')
        search = AsyncMock(return_value=SimpleNamespace(results=[], note=None))
        app.state.services.pipeline.catalog = MagicMock(search=search)

        body = client.post("/by-image/search", json={"imageBase64": png_b64}).json()

        search.assert_awaited_once_with("Apple iPhone 13")
        assert "note" not in body


class TestVoice:
    def test_missing_audio(self, client):
        resp = client.post("/voice/transcribe", json={"filename": "nota.ogg"})
        assert resp.status_code == 400

    def test_transcribe_disposes_audio(self, app, client, tmp_path):
        wav = tmp_path / "out.wav"
        wav.write_bytes(b"RIFF")
        handle = NormalizedAudio(wav, 16000)

        services = app.state.services
        services.audio.normalize = AsyncMock(return_value=handle)
        services.transcription.transcribe = AsyncMock(return_value="hola mundo")

        resp = client.post("/voice/transcribe", json={"audioBase64": "UklGRg=="})
        assert resp.status_code == 200
        assert resp.json() == {"text": "hola mundo"}
        assert handle.disposed
        assert not wav.exists()

    def test_transcode_failure(self, app, client):
        from app.services.audio_service import subprocess as audio_subprocess

        failed = audio_subprocess.CompletedProcess([], 1, stdout="", stderr="bad input")
        with patch("app.services.audio_service.subprocess.run", return_value=failed):
            resp = client.post("/voice/transcribe", json={"audioBase64": "T2dnUwACAAAA"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Audio transcoding failed"
