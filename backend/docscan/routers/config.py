"""Runtime config endpoint for frontend consumption."""
from __future__ import annotations

from fastapi import APIRouter

from ..config import get_settings
from ..exceptions import UnknownProfileError
from ..models import AnalysisProfile

router = APIRouter(tags=["config"])


def _default_model(raw: str) -> str:
    try:
        return AnalysisProfile.parse(raw).model_id
    except ValueError:
        raise UnknownProfileError(raw)


@router.get("/config")
async def get_config() -> dict:
    """Expose non-sensitive runtime limits, accepted types and models."""
    settings = get_settings()
    return {
        "maxSizeMb": settings.MAX_SIZE_MB,
        "acceptedMime": [*settings.PASSTHROUGH_MIME, "image/*"],
        "models": [p.model_id for p in AnalysisProfile],
        "defaultModel": _default_model(settings.DEFAULT_PROFILE),
        "pollIntervalSec": settings.POLL_INTERVAL_SEC,
        "pollMaxAttempts": settings.POLL_MAX_ATTEMPTS,
    }
