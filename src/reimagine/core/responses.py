"""Typed decoding of Gemini ``generateContent`` responses.

The image payload does not have one fixed location.  Depending on the SDK
version and transport, it arrives in one of several layouts.  Rather than
probing arbitrary nested attributes, every known layout is modelled as an
explicit Pydantic variant and the variants are tried in a fixed priority
order.  When no variant matches, the response is treated as carrying no image
(fail closed).

Envelopes (tried in order)
--------------------------
1. ``{"response": {"candidates": [...]}}``: wrapped responses.
2. ``{"candidates": [...]}``: bare responses.

Parts are read from the first candidate's ``content.parts``.

Image part variants (tried in order, each across all parts)
-----------------------------------------------------------
1. :class:`InlineDataPart`: ``inlineData`` (REST) or ``inline_data``
   (Python SDK) holding ``{mimeType, data}``.
2. :class:`MediaPart`: ``media: [{mimeType, data}, ...]``; only the first
   media entry is considered.

A matched blob only counts when its media type starts with ``image/`` and it
carries data.  ``data`` may be raw bytes (SDK objects dumped in Python mode)
or a base64 string (REST JSON).
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


class _Tolerant(BaseModel):
    """Base for response fragments: accept both camelCase and snake_case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImageBlob(_Tolerant):
    """An inline binary payload with its declared media type."""

    mime_type: str = Field(default="", alias="mimeType")
    data: bytes | str = Field(default="")

    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/") and bool(self.data)

    def to_base64(self) -> str:
        if isinstance(self.data, bytes):
            return base64.b64encode(self.data).decode("ascii")
        return self.data


class InlineDataPart(_Tolerant):
    inline_data: ImageBlob = Field(alias="inlineData")

    def image(self) -> ImageBlob:
        return self.inline_data


class MediaPart(_Tolerant):
    media: list[ImageBlob] = Field(min_length=1)

    def image(self) -> ImageBlob:
        return self.media[0]


class TextPart(_Tolerant):
    text: str


# Priority order matters: the first variant that yields an image wins.
IMAGE_PART_VARIANTS: tuple[type[InlineDataPart] | type[MediaPart], ...] = (
    InlineDataPart,
    MediaPart,
)


class Content(_Tolerant):
    parts: list[Any] | None = None


class Candidate(_Tolerant):
    content: Content | None = None


class ResponseBody(_Tolerant):
    candidates: list[Candidate] = Field(min_length=1)
    text: str | None = None


class WrappedResponse(_Tolerant):
    response: ResponseBody


@dataclass(frozen=True)
class ExtractedImage:
    """An image found in a model response.

    Attributes:
        data: Bare base64 payload.
        mime_type: Media type reported by the model.
        variant: Name of the part variant that matched.
    """

    data: str
    mime_type: str
    variant: str


def _decode_body(raw: Any) -> ResponseBody | None:
    """Resolve the response envelope, wrapped form first."""
    if not isinstance(raw, dict):
        return None
    for envelope in (WrappedResponse, ResponseBody):
        try:
            decoded = envelope.model_validate(raw)
        except PydanticValidationError:
            continue
        return decoded.response if isinstance(decoded, WrappedResponse) else decoded
    return None


def first_parts(raw: Any) -> list[dict[str, Any]]:
    """Return the ``content.parts`` of the first candidate, or an empty list."""
    body = _decode_body(raw)
    if body is None:
        return []
    content = body.candidates[0].content
    if content is None or not content.parts:
        return []
    return [part for part in content.parts if isinstance(part, dict)]


def extract_image(raw: Any) -> ExtractedImage | None:
    """Find the first image payload in a response.

    Args:
        raw: The response as a plain dictionary.

    Returns:
        The extracted image, or ``None`` when no variant matched.
    """
    parts = first_parts(raw)
    for variant in IMAGE_PART_VARIANTS:
        for part in parts:
            try:
                decoded = variant.model_validate(part)
            except PydanticValidationError:
                continue
            blob = decoded.image()
            if blob.is_image():
                return ExtractedImage(
                    data=blob.to_base64(),
                    mime_type=blob.mime_type,
                    variant=variant.__name__,
                )
    return None


def extract_text(raw: Any) -> str | None:
    """Return any textual explanation the model gave.

    A top-level ``text`` field wins; otherwise the first non-blank text part
    of the first candidate is used.
    """
    if isinstance(raw, dict):
        text = raw.get("text")
        if isinstance(text, str) and text.strip():
            return text
        body = _decode_body(raw)
        if body is not None and body.text and body.text.strip():
            return body.text

    for part in first_parts(raw):
        try:
            decoded = TextPart.model_validate(part)
        except PydanticValidationError:
            continue
        if decoded.text.strip():
            return decoded.text
    return None
