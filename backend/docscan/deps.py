"""FastAPI dependencies (pipeline wiring, profile parsing, request id)."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Form, Request

from .config import get_settings
from .exceptions import ProfileConflictError, UnknownProfileError
from .logging_config import generate_request_id
from .models import AnalysisProfile
from .services.firestore import ResultStore
from .services.orchestration.analysis_pipeline import AnalysisPipelineService


@lru_cache(maxsize=1)
def _shared_store() -> ResultStore:
    # One Firestore client per process; it is created lazily on first insert.
    return ResultStore(get_settings())


def get_pipeline() -> AnalysisPipelineService:
    """Return an AnalysisPipelineService bound to the shared result store.

    Tests override this dependency to inject mock transports and stores.
    """
    return AnalysisPipelineService(get_settings(), store=_shared_store())


def get_profile(model: str | None = Form(default=None, description="read or layout")) -> AnalysisProfile:
    """Resolve the analysis profile from the optional ``model`` form field.

    Accepts ``read``/``layout`` and the full model ids ``prebuilt-read``/``prebuilt-layout``.
    Falls back to DEFAULT_PROFILE.
    """
    raw = model or get_settings().DEFAULT_PROFILE
    try:
        return AnalysisProfile.parse(raw)
    except ValueError:
        raise UnknownProfileError(raw)


def get_layout_profile(
    model: str | None = Form(default=None, description="Must be layout when given"),
) -> AnalysisProfile:
    """The layout route only runs the layout model; a different ``model`` value is rejected."""
    if model is None:
        return AnalysisProfile.LAYOUT
    try:
        profile = AnalysisProfile.parse(model)
    except ValueError:
        raise UnknownProfileError(model)
    if profile is not AnalysisProfile.LAYOUT:
        raise ProfileConflictError(model, AnalysisProfile.LAYOUT.model_id)
    return profile


def get_request_id(request: Request) -> str:
    """Request id set by the middleware in main.py, or a fresh one."""
    return getattr(request.state, "request_id", None) or generate_request_id()
