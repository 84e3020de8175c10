"""Thin wrapper around the Google GenAI SDK.

:class:`GenAIClient` is the only place that touches ``google.genai``.  It
accepts plain values (base64 image, media type, instruction, sampling
parameters), builds the SDK request objects, and hands back the response as a
plain dictionary for :mod:`reimagine.core.responses` to decode.

Every SDK or network exception is re-raised as
:class:`~reimagine.core.errors.TransportError` so the dispatcher can treat it
as "try the next candidate".

The client is created explicitly and passed to the dispatcher; tests pass a
fake object with the same ``generate_content`` signature instead.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from google import genai
from google.genai import types

from reimagine.core.config import ReimagineConfig
from reimagine.core.errors import TransportError

logger = logging.getLogger(__name__)


def response_to_dict(response: Any) -> dict[str, Any]:
    """Convert an SDK response (or an already-plain dict) to a dictionary."""
    if isinstance(response, dict):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump(exclude_none=True)
    raise TypeError(f"Unsupported response type: {type(response).__name__}")


class GenAIClient:
    """Gemini ``generateContent`` calls with an image and an instruction.

    Args:
        api_key: Google AI Studio API key.
        base_url: Optional API base URL override.
        client: Pre-built ``genai.Client``; built from ``api_key`` when omitted.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        if client is None:
            http_options = types.HttpOptions(base_url=base_url) if base_url else None
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client
        logger.info(f"GenAI client initialised (custom base URL: {bool(base_url)})")

    @classmethod
    def from_config(cls, config: ReimagineConfig) -> GenAIClient:
        return cls(api_key=config.api_key, base_url=config.api_base_url)

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
    ) -> dict[str, Any]:
        """Send one image plus one text instruction to ``model``.

        Args:
            model: Gemini model identifier.
            image_base64: Bare base64 image payload.
            mime_type: Media type of the image.
            text: Instruction text.
            temperature: Sampling temperature.
            top_p: Nucleus sampling threshold.
            top_k: Top-k sampling cutoff.
            response_modalities: e.g. ``["TEXT", "IMAGE"]`` for image models.
            image_first: Put the image part before the text part.

        Returns:
            The response as a plain dictionary.

        Raises:
            TransportError: If the SDK call raised for any reason, or its
                response could not be converted.
        """
        image_part = types.Part.from_bytes(data=base64.b64decode(image_base64), mime_type=mime_type)
        text_part = types.Part.from_text(text=text)
        parts = [image_part, text_part] if image_first else [text_part, image_part]

        generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            response_modalities=response_modalities,
        )

        try:
            response = self._client.models.generate_content(
                model=model,
                contents=[types.Content(role="user", parts=parts)],
                config=generation_config,
            )
            return response_to_dict(response)
        except Exception as e:
            raise TransportError(f"{model}: {e}", model=model) from e
