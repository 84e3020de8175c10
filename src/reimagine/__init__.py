"""Reimagine - prompt-driven image editing backed by Gemini image models."""

__version__ = "0.1.0"

from reimagine.core.config import ReimagineConfig, config

__all__ = [
    "ReimagineConfig",
    "config",
]
