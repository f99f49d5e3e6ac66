"""
Shared pytest fixtures.

Every test builds its own immutable Settings so nothing depends on the
developer's environment or .env file.
"""
from __future__ import annotations

import base64
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from app.config import Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        anthropic_api_key="test-key",
        shopify_store_domain="",
        shopify_storefront_token="",
        max_image_bytes=3_500_000,
        image_max_width=1280,
        max_download_bytes=5 * 1024 * 1024,
        allow_insecure_image_urls=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_image_bytes(width: int = 64, height: int = 48, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    img = Image.new(mode, (width, height), color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def fake_anthropic(*texts: str) -> MagicMock:
    """An AsyncAnthropic stand-in whose messages.create returns `texts` in order."""
    responses = [SimpleNamespace(content=[SimpleNamespace(type="text", text=t)]) for t in texts]
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=responses)
    return client


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def png_b64() -> str:
    return base64.b64encode(make_image_bytes()).decode()
