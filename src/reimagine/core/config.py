"""Configuration management for Reimagine.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the REIMAGINE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (REIMAGINE_* prefix)
2. .env file in the project root
3. Default values defined in ReimagineConfig

The Gemini API key is the one exception to the prefix rule: it is also read
from ``GOOGLE_API_KEY`` or ``GEMINI_API_KEY`` so an existing Google AI Studio
setup works without renaming anything.

Example .env file:
    GEMINI_API_KEY=your-key
    REIMAGINE_PRIMARY_MODEL=gemini-2.5-flash-image
    REIMAGINE_ENABLE_ANALYSIS=true
    REIMAGINE_DATA_DIR=data

List values (``image_models``, ``allowed_mime_types``) are given as JSON
arrays, e.g. ``REIMAGINE_IMAGE_MODELS='["model-a", "model-b"]'``.

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI application reads from it when no explicit configuration is
passed to :func:`reimagine.api.main.create_app`.

Usage Example
-------------
    from reimagine.core.config import config

    print(config.candidate_models)
    print(config.database_path)

Prompt Engineering Settings
---------------------------
Image models frequently ignore the supplied image and paint a brand new
scene.  The guard clause, output directive and optional analysis pre-pass
exist to push them towards *editing*.  None of these has a single correct
value, so all of them are configurable:

- guard_clause: prefix sentence block prepended to every user prompt
- output_directive: trailing line asking for an image response
- enable_analysis: describe the input image first and ask the model to
  preserve what was described
- temperature / top_p / top_k: low-randomness sampling defaults
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GUARD_CLAUSE = " ".join(
    [
        "EDIT THE PROVIDED IMAGE ONLY.",
        "Use the uploaded image as the base.",
        "Do NOT generate a new scene from scratch.",
        "Preserve subject identity, pose and composition unless changes are explicitly requested.",
    ]
)

DEFAULT_ANALYSIS_PROMPT = "Describe the image succinctly: subjects, background, colors, lighting."


class ReimagineConfig(BaseSettings):
    """Main configuration for Reimagine.

    Attributes
    ----------
    Gemini API:
        api_key : str
            Google AI Studio key (``GOOGLE_API_KEY`` / ``GEMINI_API_KEY``)
        api_base_url : str | None
            Optional base URL override (proxies, regional endpoints)
        image_models : list[str]
            Ordered candidate image models, primary first
        primary_model : str | None
            Model to try first (also ``GEMINI_IMAGE_MODEL``); ignored unless
            it appears in image_models
        analysis_model : str
            Text-capable model used by the optional analysis pre-pass

    Prompting:
        guard_clause : str
            Fixed edit-mode instruction prepended to every prompt
        output_directive : str
            Trailing instruction asking for an image response
        analysis_prompt : str
            Instruction sent with the image during the analysis pre-pass
        enable_analysis : bool
            Whether to describe the input image before editing

    Sampling:
        temperature, top_p, top_k
            Low-randomness defaults biasing toward literal adherence

    Upload limits:
        max_upload_bytes : int
            Maximum accepted upload size (10 MiB)
        max_prompt_length : int
            Maximum trimmed prompt length (500)
        allowed_mime_types : list[str]
            Media types accepted by intake
        output_mime_type : str
            Media type assumed when the model does not report one

    Storage and server:
        data_dir : Path
            Directory holding the SQLite database
        database_name : str
            SQLite file name inside data_dir
        store_original_image : bool
            Persist the uploaded image as a data URL on the record
        default_list_limit, max_list_limit : int
            Bounds for ``GET /api/generations``
        server_host, server_port : str, int
            uvicorn bind address
        log_level : str
            Root logging level used by the CLI entry point

    Examples
    --------
        >>> custom_config = ReimagineConfig(
        ...     api_key="test",
        ...     image_models=["model-a", "model-b"],
        ...     primary_model="model-b",
        ... )
        >>> custom_config.candidate_models
        ['model-b', 'model-a']
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REIMAGINE_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Gemini API
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("REIMAGINE_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY"),
        description="Google AI Studio API key",
    )
    api_base_url: str | None = Field(
        default=None,
        description="Optional Gemini API base URL override",
    )
    image_models: list[str] = Field(
        default_factory=lambda: [
            "gemini-2.5-flash-image-preview",
            "gemini-2.5-flash-image",
        ],
        min_length=1,
        description="Ordered candidate image models (primary first)",
    )
    primary_model: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REIMAGINE_PRIMARY_MODEL", "GEMINI_IMAGE_MODEL"),
        description="Model to try first; must be listed in image_models",
    )
    analysis_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for the optional image analysis pre-pass",
    )

    # Prompting
    guard_clause: str = Field(
        default=DEFAULT_GUARD_CLAUSE,
        description="Edit-mode guard prepended to every prompt",
    )
    output_directive: str = Field(
        default="Return an image, not text.",
        description="Trailing instruction asking for an image response",
    )
    analysis_prompt: str = Field(
        default=DEFAULT_ANALYSIS_PROMPT,
        description="Instruction sent with the image for the analysis pre-pass",
    )
    enable_analysis: bool = Field(
        default=False,
        description="Describe the input image before editing and ask to preserve it",
    )

    # Sampling
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    top_k: int = Field(default=32, ge=1)

    # Upload limits
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Maximum upload size in bytes",
    )
    max_prompt_length: int = Field(
        default=500,
        ge=1,
        description="Maximum prompt length in characters",
    )
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: ["image/png", "image/jpeg", "image/webp"],
        description="Accepted upload media types",
    )
    output_mime_type: str = Field(
        default="image/png",
        description="Media type used when the model does not report one",
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the generations database",
    )
    database_name: str = Field(
        default="generations.db",
        description="SQLite database file name",
    )
    store_original_image: bool = Field(
        default=False,
        description="Persist the uploaded image as a data URL on the record",
    )
    default_list_limit: int = Field(default=10, ge=1)
    max_list_limit: int = Field(default=100, ge=1)

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=5000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Absolute location of the SQLite generations database."""
        return self.data_dir / self.database_name

    @property
    def candidate_models(self) -> list[str]:
        """Ordered dispatch candidates with ``primary_model`` moved to the front.

        A ``primary_model`` that is not listed in ``image_models`` is ignored.
        """
        models = list(dict.fromkeys(self.image_models))
        if self.primary_model and self.primary_model in models:
            models.remove(self.primary_model)
            models.insert(0, self.primary_model)
        return models


# Global configuration instance
# Loads values from environment variables (REIMAGINE_* prefix) and .env file.
config = ReimagineConfig()
