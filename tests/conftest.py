"""Shared pytest fixtures for Reimagine tests."""

from __future__ import annotations

import base64
import io
import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from reimagine.api.main import create_app
from reimagine.core.config import ReimagineConfig
from reimagine.core.errors import TransportError
from reimagine.core.record_store import GenerationRecordStore

# A tiny but valid base64 payload standing in for an edited image.
EDITED_IMAGE_B64 = base64.b64encode(b"edited-image-bytes").decode("ascii")


def image_response(data: str | bytes = EDITED_IMAGE_B64, mime_type: str = "image/png") -> dict:
    """Build a Python-SDK style response carrying an inline image part."""
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [{"inline_data": {"mime_type": mime_type, "data": data}}],
                }
            }
        ]
    }


def text_response(text: str) -> dict:
    """Build a response carrying only a text part."""
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class FakeImageClient:
    """Stand-in for :class:`GenAIClient` with scripted per-model behaviour.

    ``behaviours`` maps a model id to either a response dict or an exception
    instance to raise.  Models without an entry return ``default``.
    """

    def __init__(
        self,
        behaviours: dict[str, Any] | None = None,
        default: Any = None,
    ) -> None:
        self.behaviours = behaviours or {}
        self.default = default if default is not None else image_response()
        self.calls: list[dict[str, Any]] = []

    @property
    def models_called(self) -> list[str]:
        return [call["model"] for call in self.calls]

    def generate_content(self, **kwargs: Any) -> dict:
        self.calls.append(kwargs)
        behaviour = self.behaviours.get(kwargs["model"], self.default)
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ReimagineConfig:
    """Create a test configuration with a temporary data directory.

    Three candidate models make fallback ordering observable.
    """
    return ReimagineConfig(
        _env_file=None,
        api_key="test-key",
        image_models=["model-primary", "model-fallback", "model-last"],
        analysis_model="model-analysis",
        data_dir=temp_dir / "data",
    )


@pytest.fixture
def store(test_config: ReimagineConfig) -> GenerationRecordStore:
    """Create an empty record store in the temporary data directory."""
    return GenerationRecordStore(test_config.database_path)


@pytest.fixture
def png_bytes() -> bytes:
    """Encode a 1x1 PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (1, 1), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_client() -> FakeImageClient:
    """A client that returns an image from every model."""
    return FakeImageClient()


@pytest.fixture
def failing_client() -> FakeImageClient:
    """A client whose every model raises a transport error."""
    return FakeImageClient(default=TransportError("service unavailable"))


@pytest.fixture
def test_client(test_config: ReimagineConfig, fake_client: FakeImageClient) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the fake image client.

    The client is used as a context manager so the lifespan handler runs.
    """
    app = create_app(test_config, client=fake_client)
    with TestClient(app) as client:
        yield client
