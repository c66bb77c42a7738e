from __future__ import annotations

from typing import List, Sequence, Tuple

from ..models import AnalysisProfile, AnalysisResult, CheckedRegion, JobStatus

SELECTED = "selected"


def polygon_points(flat: Sequence[float]) -> List[Tuple[float, float]]:
    """Pair a flat ``[x1, y1, x2, y2, ...]`` polygon into points.

    A trailing unpaired value is dropped.
    """
    return [(float(flat[i]), float(flat[i + 1])) for i in range(0, len(flat) - 1, 2)]


def extract_result(status: JobStatus, profile: AnalysisProfile) -> AnalysisResult:
    """Convert a succeeded poll body into the normalized result.

    Text falls back to "" and page count to 1 when the service omits them
    (an empty page list counts as one page too).
    Checked regions are only collected for the layout profile; their
    coordinates stay in the service's own units (inches for PDF, pixels for
    images), scaling is left to whoever renders them.
    """
    analyzed = status.analyzeResult
    if analyzed is None:
        return AnalysisResult()

    text = analyzed.content or ""
    pages = len(analyzed.pages or []) or 1

    regions: List[CheckedRegion] = []
    if profile is AnalysisProfile.LAYOUT:
        for idx, page in enumerate(analyzed.pages or [], start=1):
            page_number = page.pageNumber or idx
            for mark in page.selectionMarks:
                if mark.state != SELECTED:
                    continue
                regions.append(CheckedRegion(page=page_number, polygon=polygon_points(mark.polygon)))

    return AnalysisResult(text=text, pages=pages, check_regions=regions)
