"""End-to-end image edit pipeline.

:class:`GenerationPipeline` ties the components together for one validated
request::

    normalize ──► store.create (pending) ──► dispatch ──► store.update
                                                          (completed | failed)

Every record this pipeline creates is moved to a terminal state exactly once,
even when dispatch raises something unexpected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from reimagine.core.config import ReimagineConfig
from reimagine.core.dispatcher import NO_IMAGE_MESSAGE, GenerationDispatcher, GenerationResult
from reimagine.core.models import GenerationRecord, GenerationStatus, GenerationUpdate
from reimagine.core.normalizer import RequestNormalizer, wrap_data_url
from reimagine.core.record_store import GenerationRecordStore
from reimagine.core.validation import GenerationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """Final state of one pipeline run.

    Attributes:
        record: The record in its terminal state.
        image_url: Data URL of the edited image on success.
        error: Failure explanation otherwise.
    """

    record: GenerationRecord
    image_url: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.record.status is GenerationStatus.COMPLETED


class GenerationPipeline:
    """Run validated requests through normalization, dispatch and persistence."""

    def __init__(
        self,
        store: GenerationRecordStore,
        dispatcher: GenerationDispatcher,
        normalizer: RequestNormalizer,
        config: ReimagineConfig,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.normalizer = normalizer
        self.config = config

    def run(self, request: GenerationRequest) -> GenerationOutcome:
        """Edit the image in ``request`` and record the outcome.

        Args:
            request: Validated upload.

        Returns:
            The terminal record plus the image data URL or error message.
        """
        normalized = self.normalizer.normalize(request)

        original_url = None
        if self.config.store_original_image:
            original_url = wrap_data_url(normalized.image_base64, normalized.mime_type)
        record = self.store.create(normalized.prompt, original_image_url=original_url)

        try:
            result = self.dispatcher.dispatch(normalized)
        except Exception as e:
            logger.exception(f"Dispatch for generation {record.id} raised")
            result = GenerationResult.failed(str(e) or type(e).__name__)

        if not result.success:
            error = result.error or NO_IMAGE_MESSAGE
            failed = self.store.update(
                record.id,
                GenerationUpdate(status=GenerationStatus.FAILED, error_message=error),
            )
            return GenerationOutcome(record=failed, error=error)

        image_url = wrap_data_url(
            result.image_data,
            result.mime_type or self.config.output_mime_type,
        )
        completed = self.store.update(
            record.id,
            GenerationUpdate(status=GenerationStatus.COMPLETED, generated_image_url=image_url),
        )
        return GenerationOutcome(record=completed, image_url=image_url)
