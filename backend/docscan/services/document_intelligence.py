"""Azure AI Document Intelligence client: submit a document, poll until done.

Async implementation using httpx so the FastAPI event loop is not blocked
while the remote job runs. One instance owns one ``httpx.AsyncClient`` and is
meant to live for a single request:

    async with DocumentIntelligenceClient() as di:
        handle = await di.submit(payload, profile)
        status = await di.wait_for_result(handle)

Nothing here retries. A rejected submission, a missing job handle and a
``failed`` job are all final; the only loop is the fixed-interval poll.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import (
    ExternalServiceError,
    MalformedAnalysisResultError,
    MissingJobHandleError,
    PollingTimedOutError,
    RemoteAnalysisFailedError,
    SubmissionRejectedError,
)
from ..models import AnalysisProfile, JobState, JobStatus, NormalizedPayload

logger = logging.getLogger(__name__)

KEY_HEADER = "Ocp-Apim-Subscription-Key"
OPERATION_LOCATION = "Operation-Location"


class DocumentIntelligenceClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "DocumentIntelligenceClient":
        t = httpx.Timeout(self.settings.HTTP_TIMEOUT_SEC, connect=5.0)
        self._client = httpx.AsyncClient(timeout=t, transport=self._transport)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("DocumentIntelligenceClient used outside 'async with'")
        return self._client

    def analyze_url(self, profile: AnalysisProfile) -> str:
        base = self.settings.AZURE_ENDPOINT.rstrip("/")
        return (
            f"{base}/formrecognizer/documentModels/{profile.model_id}:analyze"
            f"?api-version={self.settings.AZURE_API_VERSION}"
        )

    def _check_configured(self) -> None:
        missing = [
            name
            for name, value in (
                ("AZURE_ENDPOINT", self.settings.AZURE_ENDPOINT),
                ("AZURE_API_KEY", self.settings.AZURE_API_KEY),
            )
            if not value
        ]
        if missing:
            raise ExternalServiceError(f"Analysis service not configured: missing {', '.join(missing)}")

    async def submit(self, payload: NormalizedPayload, profile: AnalysisProfile) -> str:
        """POST the payload to the analyze endpoint and return the job handle.

        The handle is the ``Operation-Location`` URL from the response headers.
        """
        self._check_configured()
        headers = {
            KEY_HEADER: self.settings.AZURE_API_KEY,
            "Content-Type": "application/octet-stream",
        }
        try:
            resp = await self.client.post(self.analyze_url(profile), headers=headers, content=payload.content)
        except httpx.RequestError as exc:
            logger.error("Analyze request failed: %s", exc)
            raise ExternalServiceError(f"Analysis service unreachable: {exc}") from exc

        if not resp.is_success:
            logger.warning("Analyze request rejected: HTTP %s", resp.status_code)
            raise SubmissionRejectedError(resp.status_code, resp.text)

        handle = resp.headers.get(OPERATION_LOCATION)
        if not handle:
            raise MissingJobHandleError()
        return handle

    async def get_status(self, handle: str) -> JobStatus:
        """GET the job handle once and validate the body."""
        try:
            resp = await self.client.get(handle, headers={KEY_HEADER: self.settings.AZURE_API_KEY})
        except httpx.RequestError as exc:
            logger.error("Status check failed: %s", exc)
            raise ExternalServiceError(f"Analysis service unreachable: {exc}") from exc

        if not resp.is_success:
            raise ExternalServiceError(f"Status check returned HTTP {resp.status_code}: {resp.text}")

        try:
            return JobStatus.from_body(resp.json())
        except ValueError as exc:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            detail = exc.errors() if isinstance(exc, ValidationError) else str(exc)
            logger.error("Unexpected status payload: %s", detail)
            raise MalformedAnalysisResultError(f"Malformed response from analysis service: {exc}") from exc

    async def wait_for_result(self, handle: str) -> JobStatus:
        """Poll at a fixed interval until the job succeeds, fails, or attempts run out.

        Sleeps before every query, so the first check happens one interval
        after submission. Returns the succeeded status; raises
        RemoteAnalysisFailedError on ``failed`` and PollingTimedOutError when
        ``POLL_MAX_ATTEMPTS`` queries all came back non-terminal.
        """
        max_attempts = max(1, self.settings.POLL_MAX_ATTEMPTS)
        interval = max(0.0, self.settings.POLL_INTERVAL_SEC)

        for attempt in range(1, max_attempts + 1):
            await self._sleep(interval)
            status = await self.get_status(handle)
            logger.debug("Poll %d/%d: status=%s", attempt, max_attempts, status.status)

            if status.state is JobState.SUCCEEDED:
                logger.info("Analysis succeeded after %d status checks", attempt)
                return status
            if status.state is JobState.FAILED:
                detail = status.error_message()
                logger.warning("Analysis failed after %d status checks: %s", attempt, detail)
                raise RemoteAnalysisFailedError(f"OCR failed: {detail}" if detail else None)

        logger.warning("Analysis still running after %d status checks", max_attempts)
        raise PollingTimedOutError(max_attempts)
