"""Generation dispatch with an ordered model fallback chain.

:class:`GenerationDispatcher` hides the instability of the external image API
behind one contract::

    dispatch(normalized_request) -> GenerationResult

Fallback Chain
--------------
Candidates come from :attr:`ReimagineConfig.candidate_models` (primary
edit-capable model first).  For each candidate, in order:

- the call raises :class:`TransportError` -> log it, try the next candidate
- the response carries an image -> return success immediately
- the response carries no image -> remember any explanation text, try the
  next candidate

When the chain is exhausted the result is a failure whose message includes
the model's last textual explanation (useful for diagnosing refusals), or
the last transport error, or a generic "no image" message.

Sampling parameters are low-randomness configuration constants so the model
sticks to the instruction instead of improvising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from reimagine.core.config import ReimagineConfig
from reimagine.core.errors import DispatchFailure, TransportError
from reimagine.core.normalizer import UNANALYZED_TEXT, NormalizedRequest
from reimagine.core.responses import extract_image, extract_text

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Model returned no image"


class ImageModelClient(Protocol):
    """Anything that can send one image and one instruction to a model."""

    def generate_content(
        self,
        *,
        model: str,
        image_base64: str,
        mime_type: str,
        text: str,
        temperature: float | None = None,
        top_p: float | None = None,
        top_k: int | None = None,
        response_modalities: list[str] | None = None,
        image_first: bool = False,
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a dispatch.

    Attributes:
        success: Whether an image was obtained.
        image_data: Bare base64 image payload on success.
        mime_type: Media type of the returned image on success.
        model: Candidate model that produced the image.
        error: Failure explanation when ``success`` is false.
    """

    success: bool
    image_data: str | None = None
    mime_type: str | None = None
    model: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> GenerationResult:
        return cls(success=False, error=error)

    def raise_for_failure(self) -> None:
        """Raise :class:`DispatchFailure` unless the result is a success."""
        if not self.success:
            raise DispatchFailure(self.error or NO_IMAGE_MESSAGE)


class GenerationDispatcher:
    """Call the image service across candidate models until one returns an image.

    Args:
        client: Explicit image model client (see :class:`ImageModelClient`).
        config: Active configuration (candidates and sampling parameters).
    """

    def __init__(self, client: ImageModelClient, config: ReimagineConfig) -> None:
        self.client = client
        self.config = config

    @property
    def candidates(self) -> list[str]:
        return self.config.candidate_models

    def dispatch(self, request: NormalizedRequest) -> GenerationResult:
        """Obtain an edited image, falling back across candidate models.

        Args:
            request: Normalized request carrying the guarded instruction.

        Returns:
            Success with the first image found, or a failure with an
            explanation once every candidate has been tried.
        """
        last_text: str | None = None
        last_transport_error: str | None = None

        for model in self.candidates:
            logger.info(f"Dispatching edit request to {model}")
            try:
                raw = self.client.generate_content(
                    model=model,
                    image_base64=request.image_base64,
                    mime_type=request.mime_type,
                    text=request.instruction,
                    temperature=self.config.temperature,
                    top_p=self.config.top_p,
                    top_k=self.config.top_k,
                    response_modalities=["TEXT", "IMAGE"],
                )
            except TransportError as e:
                logger.warning(f"Model {model} failed, trying next candidate: {e}")
                last_transport_error = str(e)
                continue

            image = extract_image(raw)
            if image is not None:
                logger.info(f"Model {model} returned an image ({image.mime_type}, {image.variant})")
                return GenerationResult(
                    success=True,
                    image_data=image.data,
                    mime_type=image.mime_type,
                    model=model,
                )

            text = extract_text(raw)
            if text:
                last_text = text.strip()
            logger.warning(f"Model {model} returned no image, trying next candidate")

        if last_text:
            error = f"{NO_IMAGE_MESSAGE} ({last_text})"
        elif last_transport_error:
            error = last_transport_error
        else:
            error = NO_IMAGE_MESSAGE
        logger.error(f"All {len(self.candidates)} candidate models failed: {error}")
        return GenerationResult.failed(error)

    def analyze(self, image_base64: str, mime_type: str) -> str:
        """Describe an image objectively.

        Args:
            image_base64: Bare base64 image payload.
            mime_type: Media type of the image.

        Returns:
            The model's description, or ``"Unable to analyze image"`` when the
            response had no text.

        Raises:
            TransportError: If the call itself failed.
        """
        raw = self.client.generate_content(
            model=self.config.analysis_model,
            image_base64=image_base64,
            mime_type=mime_type,
            text=self.config.analysis_prompt,
            temperature=self.config.temperature,
            image_first=True,
        )
        return extract_text(raw) or UNANALYZED_TEXT
