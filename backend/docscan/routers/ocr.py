"""OCR router: accept one uploaded document and return the analyzed text.

Thin HTTP layer; the analysis itself is delegated to AnalysisPipelineService.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from ..config import get_settings
from ..deps import get_layout_profile, get_pipeline, get_profile, get_request_id
from ..exceptions import FileValidationError, NoFileUploadedError, PayloadTooLargeError
from ..models import AnalysisProfile, ErrorResponse, InboundDocument, OcrResponse
from ..services.orchestration.analysis_pipeline import AnalysisPipelineService

router = APIRouter(tags=["ocr"])

_ERRORS = {code: {"model": ErrorResponse} for code in (400, 413, 500, 502, 503)}


async def _read_upload(file: UploadFile | None) -> InboundDocument:
    if file is None:
        raise NoFileUploadedError()

    settings = get_settings()
    data = await file.read()
    name = file.filename or "upload"
    if not data:
        raise FileValidationError(f"File {name} is empty")
    if len(data) > settings.MAX_SIZE_MB * 1024 * 1024:
        raise PayloadTooLargeError(f"File {name} exceeds size limit")

    return InboundDocument(content=data, media_type=file.content_type or "", filename=name, size_bytes=len(data))


async def _run(
    file: UploadFile | None, profile: AnalysisProfile, pipeline: AnalysisPipelineService, request_id: str
) -> OcrResponse:
    doc = await _read_upload(file)
    outcome = await pipeline.process_document(doc, profile, request_id=request_id)
    return OcrResponse.from_outcome(outcome)


@router.post("/ocr", response_model=OcrResponse, response_model_exclude_none=True, responses=_ERRORS)
async def ocr_document(
    file: UploadFile | None = File(default=None, description="Image, PDF or TIFF to analyze"),
    profile: AnalysisProfile = Depends(get_profile),
    pipeline: AnalysisPipelineService = Depends(get_pipeline),
    request_id: str = Depends(get_request_id),
) -> OcrResponse:
    """Extract text with the model picked by the ``model`` form field (default: read)."""
    return await _run(file, profile, pipeline, request_id)


@router.post("/ocr/layout", response_model=OcrResponse, response_model_exclude_none=True, responses=_ERRORS)
async def ocr_document_layout(
    file: UploadFile | None = File(default=None, description="Image, PDF or TIFF to analyze"),
    profile: AnalysisProfile = Depends(get_layout_profile),
    pipeline: AnalysisPipelineService = Depends(get_pipeline),
    request_id: str = Depends(get_request_id),
) -> OcrResponse:
    """Extract text and checked selection marks with the layout model."""
    return await _run(file, profile, pipeline, request_id)
