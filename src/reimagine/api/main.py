"""Reimagine: FastAPI Application.

This module defines the FastAPI application factory, all REST API routes,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~reimagine.core.config.ReimagineConfig`
  (environment variables, ``.env``).
- **Image editing** is delegated to
  :class:`~reimagine.core.pipeline.GenerationPipeline`, which normalizes the
  request, dispatches it across candidate Gemini models and records the
  outcome.
- **Persistence** is a single SQLite file managed by
  :class:`~reimagine.core.record_store.GenerationRecordStore`.
- The Gemini client is created in the lifespan handler unless one is
  injected through :func:`create_app` (tests pass a fake).

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/generate``             Edit an uploaded image with a prompt
GET       ``/api/generations``          Most recent generation records
GET       ``/api/generations/{id}``     Single generation record
GET       ``/api/config``               Models, limits, record count
GET       ``/api/health``               Liveness probe
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    reimagine

Direct invocation::

    python -m reimagine.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reimagine import __version__
from reimagine.api.models import ConfigResponse, ErrorResponse, FailureResponse, GenerateResponse
from reimagine.core.config import ReimagineConfig
from reimagine.core.config import config as default_config
from reimagine.core.dispatcher import GenerationDispatcher, ImageModelClient
from reimagine.core.errors import ValidationError
from reimagine.core.genai_client import GenAIClient
from reimagine.core.normalizer import RequestNormalizer
from reimagine.core.pipeline import GenerationPipeline
from reimagine.core.record_store import GenerationRecordStore
from reimagine.core.validation import validate_upload

logger = logging.getLogger(__name__)


def parse_limit(raw: str | None, config: ReimagineConfig) -> int:
    """Resolve the ``limit`` query parameter.

    Absent, non-integer, or non-positive values fall back to
    ``config.default_list_limit``; large values are capped at
    ``config.max_list_limit``.
    """
    try:
        limit = int(raw) if raw is not None else 0
    except ValueError:
        limit = 0
    if limit < 1:
        limit = config.default_list_limit
    return min(limit, config.max_list_limit)


def create_app(
    config: ReimagineConfig | None = None,
    client: ImageModelClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Configuration to use; defaults to the global instance.
        client: Image model client; a :class:`GenAIClient` is built from
            ``config`` at startup when omitted.

    Returns:
        The configured application.
    """
    cfg = config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Wire the pipeline components onto ``app.state`` for the app's lifetime."""
        # --- Startup -----------------------------------------------------------
        image_client = client if client is not None else GenAIClient.from_config(cfg)
        store = GenerationRecordStore(cfg.database_path)
        dispatcher = GenerationDispatcher(image_client, cfg)
        normalizer = RequestNormalizer(cfg, describe=dispatcher.analyze)

        app.state.config = cfg
        app.state.store = store
        app.state.pipeline = GenerationPipeline(store, dispatcher, normalizer, cfg)
        logger.info(f"Pipeline ready; candidate models: {', '.join(cfg.candidate_models)}")

        yield  # Application runs here.

        # --- Shutdown ----------------------------------------------------------
        logger.info("Reimagine shutting down.")

    app = FastAPI(
        title="Reimagine",
        description="Prompt-driven image editing backed by Gemini image models.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the frontend can be served from a
    # different port during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.post("/api/generate")
    def generate_image(
        request: Request,
        image: UploadFile | None = File(default=None),
        prompt: str | None = Form(default=None),
    ) -> JSONResponse:
        """Edit an uploaded image according to a text prompt.

        This endpoint:

        1. Validates the upload (file present, image type, size, prompt).
        2. Runs the pipeline: normalize, create a pending record, dispatch
           across candidate models, and record the terminal state.
        3. Maps the outcome to an HTTP response.

        Returns:
            200 ``{success, generation, imageUrl}`` on success,
            400 ``{error}`` on validation failure, and
            500 ``{success: false, error}`` when generation fails.
        """
        cfg: ReimagineConfig = request.app.state.config
        pipeline: GenerationPipeline = request.app.state.pipeline

        try:
            data = None
            content_type = None
            if image is not None:
                # Read one byte past the limit so oversize uploads are detected
                # without buffering the whole file.
                data = image.file.read(cfg.max_upload_bytes + 1)
                content_type = image.content_type

            upload = validate_upload(data, content_type, prompt, cfg)
        except ValidationError as e:
            logger.warning(f"Rejected upload ({e.reason}): {e.message}")
            return JSONResponse(status_code=400, content=ErrorResponse(error=e.message).to_api())
        except Exception:
            logger.exception("Error reading upload")
            return JSONResponse(
                status_code=500,
                content=FailureResponse(error="Internal server error").to_api(),
            )

        try:
            outcome = pipeline.run(upload)
        except Exception:
            logger.exception("Generation error")
            return JSONResponse(
                status_code=500,
                content=FailureResponse(error="Internal server error").to_api(),
            )

        if not outcome.success:
            return JSONResponse(
                status_code=500,
                content=FailureResponse(error=outcome.error or "Failed to generate image").to_api(),
            )

        return JSONResponse(
            content=GenerateResponse(generation=outcome.record, image_url=outcome.image_url).to_api()
        )

    @app.get("/api/generations")
    def list_generations(request: Request, limit: str | None = None) -> JSONResponse:
        """Return the most recent generation records, newest first.

        Args:
            limit: Maximum number of records (default 10).
        """
        cfg: ReimagineConfig = request.app.state.config
        store: GenerationRecordStore = request.app.state.store
        try:
            records = store.list_recent(parse_limit(limit, cfg))
        except Exception:
            logger.exception("Error fetching generations")
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="Failed to fetch generations").to_api(),
            )
        return JSONResponse(content=[record.to_api() for record in records])

    @app.get("/api/generations/{generation_id}")
    def get_generation(request: Request, generation_id: str) -> JSONResponse:
        """Return a single generation record.

        Raises 404 ``{error: "Generation not found"}`` for unknown ids.
        """
        store: GenerationRecordStore = request.app.state.store
        try:
            record = store.get(generation_id)
        except Exception:
            logger.exception("Error fetching generation")
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="Failed to fetch generation").to_api(),
            )
        if record is None:
            return JSONResponse(
                status_code=404,
                content=ErrorResponse(error="Generation not found").to_api(),
            )
        return JSONResponse(content=record.to_api())

    @app.get("/api/config")
    def get_config(request: Request) -> JSONResponse:
        """Return the limits and models the frontend needs."""
        cfg: ReimagineConfig = request.app.state.config
        store: GenerationRecordStore = request.app.state.store
        payload = ConfigResponse(
            version=__version__,
            models=cfg.candidate_models,
            max_upload_bytes=cfg.max_upload_bytes,
            max_prompt_length=cfg.max_prompt_length,
            allowed_mime_types=cfg.allowed_mime_types,
            analysis_enabled=cfg.enable_analysis,
            total_generations=store.count(),
        )
        return JSONResponse(content=payload.to_api())

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~reimagine.core.config.config`
    (``REIMAGINE_SERVER_HOST`` and ``REIMAGINE_SERVER_PORT``).  Defaults to
    ``0.0.0.0:5000``.

    This function is registered as the ``reimagine`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=default_config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "reimagine.api.main:app",
        host=default_config.server_host,
        port=default_config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
