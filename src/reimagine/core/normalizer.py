"""Request normalization: canonical base64 payloads and guarded instructions.

Two jobs happen here before anything is sent to the image service:

- **Payload normalization**: browsers and SDKs hand over image data in
  several encodings (raw bytes, bare base64, ``data:`` URLs, base64 with its
  trailing ``=`` padding dropped).  Everything is reduced to bare, padded
  base64.
- **Instruction assembly**: the user's prompt is wrapped in a guard clause
  that tells the model to *edit* the supplied image.  Without it, image
  models regularly ignore the input and paint an unrelated new scene.

Instruction Structure::

    [Guard clause]
    Preserve these properties of the original image: [description]   (optional)
    Apply only these changes: [user prompt]
    [Output directive]

The optional description comes from a best-effort analysis call.  If that
call fails for any reason the instruction is built without it.
"""

from __future__ import annotations

import base64
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from reimagine.core.config import ReimagineConfig
from reimagine.core.errors import AnalysisFailure
from reimagine.core.validation import GenerationRequest

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)

CHANGE_LEAD = "Apply only these changes:"
PRESERVE_LEAD = "Preserve these properties of the original image:"

# Returned by the analysis call when the model produced no text.
UNANALYZED_TEXT = "Unable to analyze image"


@dataclass(frozen=True)
class NormalizedRequest:
    """A request ready for dispatch.

    Attributes:
        image_base64: Bare, padded base64 image payload.
        mime_type: Media type of the image.
        prompt: Trimmed user prompt.
        instruction: Full guarded instruction sent to the model.
        description: Analysis text folded into the instruction, if any.
    """

    image_base64: str
    mime_type: str
    prompt: str
    instruction: str
    description: str | None = None


# ---------------------------------------------------------------------------
# Data URL and base64 helpers.
# ---------------------------------------------------------------------------


def split_data_url(value: str) -> tuple[str | None, str]:
    """Split a ``data:<media>;base64,<payload>`` string.

    Returns:
        ``(media_type, payload)``; ``media_type`` is ``None`` and the input is
        returned unchanged when ``value`` is not a data URL.
    """
    match = _DATA_URL_RE.match(value)
    if not match:
        return None, value
    return match.group(1), match.group(2)


def strip_data_url(value: str) -> str:
    """Return the bare payload of a data URL, or ``value`` unchanged."""
    return split_data_url(value)[1]


def wrap_data_url(payload: str, mime_type: str) -> str:
    """Build a self-describing ``data:`` URL from a base64 payload."""
    return f"data:{mime_type};base64,{payload}"


def pad_base64(value: str) -> str:
    """Append the ``=`` characters needed to make ``len(value)`` a multiple of 4."""
    return value + "=" * (-len(value) % 4)


def to_base64(data: bytes | str) -> str:
    """Convert raw bytes or an encoded string into bare, padded base64."""
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return pad_base64(strip_data_url(data.strip()))


# ---------------------------------------------------------------------------
# Instruction assembly.
# ---------------------------------------------------------------------------


def build_instruction(
    prompt: str,
    *,
    guard_clause: str,
    output_directive: str = "",
    description: str | None = None,
) -> str:
    """Wrap a user prompt in the edit-mode guard clause.

    Args:
        prompt: User prompt (trimmed here as well).
        guard_clause: Fixed edit-mode prefix.
        output_directive: Optional trailing line, e.g. asking for an image.
        description: Optional factual description of the input image.

    Returns:
        Newline-joined instruction text.
    """
    lines = [guard_clause.strip()]
    if description and description.strip():
        lines.append(f"{PRESERVE_LEAD} {description.strip()}")
    lines.append(f"{CHANGE_LEAD} {prompt.strip()}")
    if output_directive.strip():
        lines.append(output_directive.strip())
    return "\n".join(line for line in lines if line)


class RequestNormalizer:
    """Turn a validated :class:`GenerationRequest` into a :class:`NormalizedRequest`.

    Args:
        config: Active configuration (guard clause, directive, analysis flag).
        describe: Optional ``(image_base64, mime_type) -> str`` callable used
            for the analysis pre-pass.  Only called when
            ``config.enable_analysis`` is set.
    """

    def __init__(
        self,
        config: ReimagineConfig,
        describe: Callable[[str, str], str] | None = None,
    ) -> None:
        self.config = config
        self.describe = describe

    def normalize(self, request: GenerationRequest) -> NormalizedRequest:
        image_base64 = to_base64(request.image_bytes)

        description = None
        if self.config.enable_analysis and self.describe is not None:
            try:
                description = self.describe_image(image_base64, request.mime_type)
            except AnalysisFailure as e:
                logger.warning(f"Continuing without image description: {e}")

        instruction = build_instruction(
            request.prompt,
            guard_clause=self.config.guard_clause,
            output_directive=self.config.output_directive,
            description=description,
        )
        return NormalizedRequest(
            image_base64=image_base64,
            mime_type=request.mime_type,
            prompt=request.prompt,
            instruction=instruction,
            description=description,
        )

    def describe_image(self, image_base64: str, mime_type: str) -> str | None:
        """Obtain a short description of the image via ``describe``.

        Returns:
            The description, or ``None`` when the model gave nothing usable.

        Raises:
            AnalysisFailure: If no describer is configured or the call raised.
        """
        if self.describe is None:
            raise AnalysisFailure("No image describer configured")
        try:
            text = self.describe(image_base64, mime_type)
        except Exception as e:
            raise AnalysisFailure(f"Image analysis failed: {e}") from e

        if not text or not text.strip() or text.strip() == UNANALYZED_TEXT:
            return None
        return text.strip()
