from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

import httpx

from ...config import Settings, get_settings
from ...exceptions import DocScanError, PersistenceFailedError, UnexpectedInternalError
from ...models import AnalysisOutcome, AnalysisProfile, InboundDocument
from ...pipeline.extraction import extract_result
from ...pipeline.normalization import normalize_payload
from ...services.document_intelligence import DocumentIntelligenceClient
from ...services.firestore import ResultStore, build_record

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    NORMALIZING = "normalizing"
    SUBMITTING = "submitting"
    POLLING = "polling"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    DONE = "done"


class AnalysisPipelineService:
    """Owns the execution of a single document's analysis.

    Normalize -> submit -> poll -> extract -> persist, strictly in that order.
    The first failure ends the request; a failed store write after a
    successful extraction only degrades the outcome unless
    PERSIST_FAILURE_IS_FATAL is set.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        store: Optional[ResultStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or ResultStore(self.settings)
        self._transport = transport

    def _analysis_client(self) -> DocumentIntelligenceClient:
        return DocumentIntelligenceClient(self.settings, transport=self._transport)

    async def process_document(
        self, doc: InboundDocument, profile: AnalysisProfile, request_id: str = "-"
    ) -> AnalysisOutcome:
        stage = Stage.NORMALIZING
        try:
            logger.info(
                "[%s] %s: %s (%s, %d bytes, model=%s)",
                request_id, stage.value, doc.filename, doc.media_type, doc.size_bytes, profile.model_id,
            )
            payload = await normalize_payload(
                doc, quality=self.settings.JPEG_QUALITY, max_pixels=self.settings.MAX_IMAGE_PIXELS
            )
            if payload.recompressed:
                logger.info("[%s] recompressed %d -> %d bytes", request_id, doc.size_bytes, len(payload.content))

            async with self._analysis_client() as di:
                stage = Stage.SUBMITTING
                handle = await di.submit(payload, profile)
                logger.info("[%s] %s: job accepted", request_id, stage.value)

                stage = Stage.POLLING
                status = await di.wait_for_result(handle)

            stage = Stage.EXTRACTING
            result = extract_result(status, profile)
            logger.info(
                "[%s] %s: %d chars, %d pages, %d checked regions",
                request_id, stage.value, len(result.text), result.pages, len(result.check_regions),
            )

        except DocScanError as exc:
            logger.warning("[%s] failed while %s: %s: %s", request_id, stage.value, type(exc).__name__, exc.message)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("[%s] unexpected error while %s", request_id, stage.value)
            raise UnexpectedInternalError(str(exc) or type(exc).__name__) from exc

        outcome = AnalysisOutcome(result=result, profile=profile)
        if not self.settings.PERSIST_ENABLED:
            logger.info("[%s] persistence disabled; result not stored", request_id)
            return outcome

        stage = Stage.PERSISTING
        record = build_record(doc, profile, result, status.raw_result, request_id=request_id)
        try:
            outcome.record_id = await self.store.insert_result(record)
            outcome.persisted = True
        except PersistenceFailedError as exc:
            if self.settings.PERSIST_FAILURE_IS_FATAL:
                logger.error("[%s] %s failed; returning error to caller", request_id, stage.value)
                raise
            logger.warning("[%s] %s failed; returning result without a stored record", request_id, stage.value)
            outcome.warning = exc.message

        logger.info("[%s] %s (record=%s)", request_id, Stage.DONE.value, outcome.record_id)
        return outcome
