"""Pydantic response models for the Reimagine API.

Models
------
GenerateResponse
    Success payload for ``POST /api/generate``.
FailureResponse
    Payload for dispatch and internal failures (HTTP 500).
ErrorResponse
    Payload for validation and lookup errors (HTTP 400 / 404).
ConfigResponse
    Payload for ``GET /api/config``.

All models serialise with camelCase keys to match the web client.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from reimagine.core.models import GenerationRecord


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class GenerateResponse(_ApiModel):
    """Response body for a successful ``POST /api/generate``.

    Attributes:
        success: Always ``True``.
        generation: The completed generation record.
        image_url: Edited image as a data URL.
    """

    success: bool = True
    generation: GenerationRecord
    image_url: str


class FailureResponse(_ApiModel):
    """Response body when generation fails after the request was accepted."""

    success: bool = False
    error: str


class ErrorResponse(_ApiModel):
    """Response body for rejected requests and missing records."""

    error: str


class ConfigResponse(_ApiModel):
    """Response body for ``GET /api/config``.

    Attributes:
        version: API version string.
        models: Candidate image models in dispatch order.
        max_upload_bytes: Upload size limit.
        max_prompt_length: Prompt length limit.
        allowed_mime_types: Accepted upload media types.
        analysis_enabled: Whether the describe pre-pass runs.
        total_generations: Number of stored records.
    """

    version: str
    models: list[str]
    max_upload_bytes: int
    max_prompt_length: int
    allowed_mime_types: list[str]
    analysis_enabled: bool
    total_generations: int = Field(ge=0)
