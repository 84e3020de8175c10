"""Upload intake validation.

Turns the raw pieces of an inbound upload (file bytes, declared content type,
prompt text) into a :class:`GenerationRequest`, or raises
:class:`~reimagine.core.errors.ValidationError` with a user-friendly message.

Checks run in a fixed order so the first problem reported is always the
most fundamental one:

1. a file is attached
2. its declared media type is an accepted image type
3. it fits within ``max_upload_bytes``
4. the prompt is non-empty after trimming
5. the prompt as submitted fits within ``max_prompt_length``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from reimagine.core.config import ReimagineConfig
from reimagine.core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """A validated edit request, ready for normalization.

    Attributes:
        image_bytes: Raw uploaded image content.
        mime_type: Normalized media type (lower-case, parameters stripped).
        prompt: Trimmed user prompt.
    """

    image_bytes: bytes
    mime_type: str
    prompt: str


def normalize_mime_type(content_type: str | None) -> str:
    """Strip parameters and case from a declared content type.

    ``"Image/PNG; charset=binary"`` becomes ``"image/png"``.
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate_prompt(prompt: str | None, max_length: int) -> str:
    """Validate prompt text and return it trimmed.

    The length limit applies to the text as submitted, surrounding whitespace
    included.

    Raises:
        ValidationError: If the prompt is empty or longer than ``max_length``.
    """
    raw = prompt or ""
    trimmed = raw.strip()
    if not trimmed:
        raise ValidationError("empty prompt", "Prompt is required")
    if len(raw) > max_length:
        raise ValidationError(
            "prompt too long",
            f"Prompt must be {max_length} characters or less",
        )
    return trimmed


def validate_upload(
    data: bytes | None,
    content_type: str | None,
    prompt: str | None,
    config: ReimagineConfig,
) -> GenerationRequest:
    """Validate an inbound upload and build a :class:`GenerationRequest`.

    Args:
        data: File content, or ``None`` when no file was attached.
        content_type: Media type declared by the client for the file.
        prompt: Raw prompt text from the form.
        config: Active configuration (limits and accepted types).

    Returns:
        The validated request.

    Raises:
        ValidationError: On the first failed check, see module docstring.
    """
    if not data:
        raise ValidationError("no file", "No image file provided")

    mime_type = normalize_mime_type(content_type)
    if mime_type not in config.allowed_mime_types:
        allowed = ", ".join(config.allowed_mime_types)
        raise ValidationError(
            "bad mime",
            f'Unsupported file type "{content_type}". Use {allowed}.',
        )

    if len(data) > config.max_upload_bytes:
        limit_mb = config.max_upload_bytes / (1024 * 1024)
        raise ValidationError("too large", f"Image must be {limit_mb:g} MB or smaller")

    trimmed = validate_prompt(prompt, config.max_prompt_length)

    logger.debug(f"Accepted upload: {len(data)} bytes, {mime_type}, prompt {len(trimmed)} chars")
    return GenerationRequest(image_bytes=data, mime_type=mime_type, prompt=trimmed)
