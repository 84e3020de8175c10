"""Pydantic models for persisted generation records.

A :class:`GenerationRecord` tracks one edit request from the moment dispatch
begins until it reaches a terminal state::

    pending ──► completed   (generated_image_url set)
       │
       └─────► failed       (error_message set)

Records serialise with camelCase keys (``generatedImageUrl``,
``createdAt``, ...) because that is what the web client consumes; Python
code uses the snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GenerationStatus(str, Enum):
    """Lifecycle state of a generation record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not GenerationStatus.PENDING


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GenerationRecord(_CamelModel):
    """A persisted edit request and its outcome.

    Attributes:
        id: Opaque unique identifier (UUID4 string).
        prompt: Trimmed user prompt.
        original_image_url: Uploaded image as a data URL, when stored.
        generated_image_url: Edited image as a data URL once completed.
        status: Lifecycle state.
        error_message: Failure explanation once failed.
        created_at: UTC creation timestamp.
    """

    id: str
    prompt: str
    original_image_url: str | None = None
    generated_image_url: str | None = None
    status: GenerationStatus = GenerationStatus.PENDING
    error_message: str | None = None
    created_at: datetime

    def to_api(self) -> dict:
        """Serialise for HTTP responses (camelCase keys, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


class GenerationUpdate(_CamelModel):
    """Partial patch applied to a record by :meth:`GenerationRecordStore.update`.

    Only fields that are explicitly set are written.
    """

    status: GenerationStatus | None = None
    original_image_url: str | None = None
    generated_image_url: str | None = None
    error_message: str | None = None
