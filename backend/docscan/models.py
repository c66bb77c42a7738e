"""Pydantic models for domain data, remote payloads, and API responses."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class AnalysisProfile(str, Enum):
    """Selects the remote model and the extraction rules for a request."""

    READ = "read"
    LAYOUT = "layout"

    @property
    def model_id(self) -> str:
        return f"prebuilt-{self.value}"

    @classmethod
    def parse(cls, raw: str) -> "AnalysisProfile":
        """Accept ``read``/``layout`` or the full ``prebuilt-*`` model id, any case.

        Raises ValueError for anything else.
        """
        value = raw.strip().lower()
        if value.startswith("prebuilt-"):
            value = value[len("prebuilt-") :]
        return cls(value)


class InboundDocument(BaseModel):
    """An uploaded document as received from the client."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    media_type: str
    filename: str
    size_bytes: int = Field(..., description="Defaults to len(content)")

    @model_validator(mode="before")
    @classmethod
    def _default_size(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("size_bytes") is None:
            data = {**data, "size_bytes": len(data.get("content") or b"")}
        return data


class NormalizedPayload(BaseModel):
    """Bytes actually sent to the analysis service."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    content_type: str
    recompressed: bool = False


# --- Remote payloads (Document Intelligence REST 2023-07-31) ---


class SelectionMark(BaseModel):
    model_config = ConfigDict(extra="allow")

    state: str
    polygon: List[float] = Field(default_factory=list)
    confidence: Optional[float] = None


class AnalyzedPage(BaseModel):
    model_config = ConfigDict(extra="allow")

    pageNumber: Optional[int] = None
    selectionMarks: List[SelectionMark] = Field(default_factory=list)


class AnalyzeResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Optional[str] = None
    pages: Optional[List[AnalyzedPage]] = None


class JobState(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobStatus(BaseModel):
    """One poll response.

    ``status`` values other than ``succeeded`` and ``failed`` (``notStarted``,
    ``running``, anything new) are treated as still running. A ``succeeded``
    body must carry ``analyzeResult``.
    """

    model_config = ConfigDict(extra="allow")

    status: str
    analyzeResult: Optional[AnalyzeResult] = None
    error: Optional[Dict[str, Any]] = None

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_body(cls, body: Any) -> "JobStatus":
        """Validate a decoded JSON body and keep it verbatim for auditing."""
        status = cls.model_validate(body)
        status._raw = body
        return status

    @model_validator(mode="after")
    def _succeeded_has_result(self) -> "JobStatus":
        if self.status == JobState.SUCCEEDED.value and self.analyzeResult is None:
            raise ValueError("succeeded status without analyzeResult")
        return self

    @property
    def state(self) -> JobState:
        if self.status == JobState.SUCCEEDED.value:
            return JobState.SUCCEEDED
        if self.status == JobState.FAILED.value:
            return JobState.FAILED
        return JobState.RUNNING

    @property
    def raw_result(self) -> Optional[Dict[str, Any]]:
        """The analyzeResult object as received, unknown fields included."""
        raw = self._raw.get("analyzeResult")
        if raw is None and self.analyzeResult is not None:
            raw = self.analyzeResult.model_dump(mode="json")
        return raw

    def error_message(self) -> Optional[str]:
        if not self.error:
            return None
        msg = self.error.get("message")
        code = self.error.get("code")
        if msg and code:
            return f"{code}: {msg}"
        return msg or code


# --- Extraction results ---


class CheckedRegion(BaseModel):
    """A selected checkbox-like mark, coordinates in the service's native units."""

    model_config = ConfigDict(frozen=True)

    page: int
    polygon: List[Tuple[float, float]]


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    pages: int = 1
    check_regions: List[CheckedRegion] = Field(default_factory=list)


class AnalysisOutcome(BaseModel):
    """What the orchestrator hands back to the router."""

    result: AnalysisResult
    profile: AnalysisProfile
    persisted: bool = False
    record_id: Optional[str] = None
    warning: Optional[str] = None


# --- API responses ---


class OcrResponse(BaseModel):
    """Successful OCR response. ``checkRegions`` is only set for the layout profile."""

    text: str
    checkRegions: Optional[List[CheckedRegion]] = None
    pages: int
    model: str
    persisted: bool
    warning: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: AnalysisOutcome) -> "OcrResponse":
        regions = None
        if outcome.profile is AnalysisProfile.LAYOUT:
            regions = list(outcome.result.check_regions)
        return cls(
            text=outcome.result.text,
            checkRegions=regions,
            pages=outcome.result.pages,
            model=outcome.profile.model_id,
            persisted=outcome.persisted,
            warning=outcome.warning,
        )


class ErrorResponse(BaseModel):
    error: str
