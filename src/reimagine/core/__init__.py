"""Core image-edit pipeline components.

- **config.py**: Environment-based configuration using Pydantic Settings
- **validation.py**: Upload intake checks producing a GenerationRequest
- **normalizer.py**: Base64/data URL normalization and guarded instructions
- **responses.py**: Typed decoding of Gemini response layouts
- **genai_client.py**: Google GenAI SDK wrapper
- **dispatcher.py**: Ordered model fallback chain and image analysis
- **record_store.py**: SQLite-backed generation records
- **pipeline.py**: End-to-end run of one validated request

Usage Example
-------------
    from reimagine.core import config
    from reimagine.core.dispatcher import GenerationDispatcher
    from reimagine.core.genai_client import GenAIClient

    dispatcher = GenerationDispatcher(GenAIClient.from_config(config), config)
"""

from reimagine.core.config import ReimagineConfig, config
from reimagine.core.errors import (
    AnalysisFailure,
    DispatchFailure,
    RecordNotFoundError,
    RecordStateError,
    ReimagineError,
    TransportError,
    ValidationError,
)

__all__ = [
    "ReimagineConfig",
    "config",
    "ReimagineError",
    "ValidationError",
    "DispatchFailure",
    "TransportError",
    "AnalysisFailure",
    "RecordNotFoundError",
    "RecordStateError",
]
