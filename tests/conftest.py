"""Shared fixtures: test settings, a fake OpenAI client and an HTTP client."""

import base64
import io
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.core.config import Settings
from main import create_app

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def png_bytes(color=(255, 120, 0), size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def story_payload(page_count: int = 10, **overrides) -> str:
    data = {
        "title": "Mia and the Ocean",
        "subtitle": "A splashy adventure",
        "pages": [
            {
                "text": f"  Mia swims to reef number {i}.  ",
                "imagePrompt": f"  A girl swimming past coral reef {i}  ",
            }
            for i in range(1, page_count + 1)
        ],
    }
    data.update(overrides)
    return json.dumps(data)


def completion(content) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def image_response(url=None, b64_json=None) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(url=url, b64_json=b64_json)])


def rate_limit_error(code: str = "rate_limit_exceeded", message: str = "Rate limit reached") -> openai.RateLimitError:
    request = httpx.Request("POST", OPENAI_URL)
    response = httpx.Response(429, request=request)
    return openai.RateLimitError(message, response=response, body={"code": code, "message": message})


def timeout_error() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=httpx.Request("POST", OPENAI_URL))


@pytest.fixture
def helpers():
    """Builders for fake provider payloads."""
    return SimpleNamespace(
        png_bytes=png_bytes,
        story_payload=story_payload,
        completion=completion,
        image_response=image_response,
        rate_limit_error=rate_limit_error,
        timeout_error=timeout_error,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(openai_api_key="sk-test-key", generated_dir=tmp_path / "generated")


@pytest.fixture
def inline_settings(tmp_path):
    return Settings(
        openai_api_key="sk-test-key",
        generated_dir=tmp_path / "generated",
        image_return_mode="inline",
    )


@pytest.fixture
def fake_openai():
    """An AsyncOpenAI stand-in that writes a valid book and returns inline PNGs."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion(story_payload()))
    encoded = base64.b64encode(png_bytes()).decode("utf-8")
    client.images.generate = AsyncMock(return_value=image_response(b64_json=encoded))
    client.images.edit = AsyncMock(return_value=image_response(b64_json=encoded))
    return client


@pytest.fixture
def client(settings, fake_openai):
    """TestClient wired to the fake provider client."""
    app = create_app(settings, openai_client=fake_openai)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="session")
def oversized_png():
    """A tiny-on-disk PNG whose pixel count exceeds Pillow's decompression bomb limit."""
    buffer = io.BytesIO()
    Image.new("1", (14000, 14000)).save(buffer, format="PNG")
    return buffer.getvalue()
