"""Shared test fixtures for the docscan test suite.

The remote analysis service is faked with ``httpx.MockTransport`` and the
Firestore store with an in-memory recorder, so nothing leaves the process.
"""
from __future__ import annotations

import io
import random
from typing import Any

import httpx
import pytest
from PIL import Image

from docscan.config import Settings, get_settings
from docscan.exceptions import PersistenceFailedError

ENDPOINT = "https://di.example.test"
API_KEY = "test-key"
OPERATION_URL = f"{ENDPOINT}/formrecognizer/documentModels/prebuilt-read/analyzeResults/op-1?api-version=2023-07-31"


class FakeAnalysisService:
    """Scripted stand-in for the Document Intelligence REST API.

    POST returns ``submit_status`` (+ Operation-Location unless disabled).
    Each GET returns the next entry of ``poll_bodies``; the last one repeats.
    """

    def __init__(
        self,
        *,
        submit_status: int = 202,
        submit_body: str = "",
        operation_location: str | None = OPERATION_URL,
        poll_bodies: list[Any] | None = None,
        poll_status: int = 200,
    ) -> None:
        self.submit_status = submit_status
        self.submit_body = submit_body
        self.operation_location = operation_location
        self.poll_bodies = poll_bodies or [{"status": "running"}]
        self.poll_status = poll_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            headers = {"Operation-Location": self.operation_location} if self.operation_location else {}
            return httpx.Response(self.submit_status, text=self.submit_body, headers=headers)

        body = self.poll_bodies[min(len(self.polls) - 1, len(self.poll_bodies) - 1)]
        if isinstance(body, (bytes, str)):
            return httpx.Response(self.poll_status, content=body)
        return httpx.Response(self.poll_status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def submits(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def polls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


class FakeResultStore:
    """Records inserted rows; raises PersistenceFailedError when ``fail`` is set."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.records: list[dict[str, Any]] = []

    async def insert_result(self, record: dict[str, Any]) -> str:
        if self.fail:
            raise PersistenceFailedError()
        self.records.append(record)
        return f"rec-{len(self.records)}"


def succeeded(content: str | None = "Hello world", pages: list[dict] | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"apiVersion": "2023-07-31", "modelId": "prebuilt-read"}
    if content is not None:
        result["content"] = content
    if pages is not None:
        result["pages"] = pages
    return {"status": "succeeded", "analyzeResult": result}


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("AZURE_ENDPOINT", ENDPOINT)
    monkeypatch.setenv("AZURE_API_KEY", API_KEY)
    monkeypatch.setenv("POLL_INTERVAL_SEC", "0")
    monkeypatch.delenv("POLL_MAX_ATTEMPTS", raising=False)
    for name in (
        "MAX_SIZE_MB", "MAX_IMAGE_PIXELS", "DEFAULT_PROFILE",
        "GCP_PROJECT", "GOOGLE_CLOUD_PROJECT", "FIRESTORE_DATABASE_ID",
        "RESULTS_COLLECTION", "RAW_RESULT_INLINE_MAX_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PERSIST_ENABLED", "true")
    monkeypatch.setenv("PERSIST_FAILURE_IS_FATAL", "false")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def fake_service():
    """Factory for FakeAnalysisService instances."""
    return FakeAnalysisService


@pytest.fixture
def fake_store() -> FakeResultStore:
    return FakeResultStore()


@pytest.fixture
def failing_store() -> FakeResultStore:
    return FakeResultStore(fail=True)


@pytest.fixture
def png_bytes() -> bytes:
    """A 160x120 RGB noise image saved as PNG (poorly compressible, photo-like)."""
    rng = random.Random(7)
    w, h = 160, 120
    img = Image.frombytes("RGB", (w, h), bytes(rng.getrandbits(8) for _ in range(w * h * 3)))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def rgba_png_bytes() -> bytes:
    img = Image.new("RGBA", (40, 30), (200, 10, 10, 128))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest.fixture
def tiff_bytes() -> bytes:
    img = Image.new("L", (20, 20), 128)
    buf = io.BytesIO()
    img.save(buf, format="TIFF")
    return buf.getvalue()


@pytest.fixture
def succeeded_body():
    """Factory for a ``succeeded`` poll body."""
    return succeeded
