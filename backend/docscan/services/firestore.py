"""Firestore helper service for the OCR results collection.

One row per analyzed document. The verbatim ``analyzeResult`` is kept as a
compact JSON string: as a nested map every word's content, span and polygon
would become separate index entries, and a few dense pages exceed
Firestore's 40,000-entry limit. Payloads over ``RAW_RESULT_INLINE_MAX_BYTES``
are gzipped and split into ``raw_result_chunks/<nnnnn>`` documents under the
row, written in the same batch so the row never exists without them.
"""
from __future__ import annotations

import gzip
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from google.cloud import firestore

from ..config import Settings, get_settings
from ..exceptions import PersistenceFailedError
from ..models import AnalysisProfile, AnalysisResult, InboundDocument

logger = logging.getLogger(__name__)

RAW_CHUNKS_SUBCOLLECTION = "raw_result_chunks"
RAW_CHUNK_ENCODING = "gzip+json"
# Below the 1 MiB document cap, leaving room for the chunk's own fields
RAW_CHUNK_BYTES = 900 * 1024


def encode_raw_result(raw_result: Optional[Dict[str, Any]]) -> Optional[str]:
    if raw_result is None:
        return None
    return json.dumps(raw_result, separators=(",", ":"), ensure_ascii=False)


def split_raw_result(encoded: str, chunk_bytes: Optional[int] = None) -> List[bytes]:
    """Gzip the encoded payload and cut it into store-sized pieces."""
    size = chunk_bytes or RAW_CHUNK_BYTES
    data = gzip.compress(encoded.encode("utf-8"))
    return [data[i : i + size] for i in range(0, len(data), size)]


def join_raw_result(chunks: Sequence[bytes]) -> Dict[str, Any]:
    """Inverse of split_raw_result for chunks read back in index order."""
    return json.loads(gzip.decompress(b"".join(chunks)).decode("utf-8"))


def build_record(
    doc: InboundDocument,
    profile: AnalysisProfile,
    result: AnalysisResult,
    raw_result: Optional[Dict[str, Any]],
    *,
    request_id: str = "",
    processed_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Assemble the single row written per analyzed document."""
    processed_at = processed_at or datetime.now(timezone.utc)
    metadata: Dict[str, Any] = {
        "file_size": doc.size_bytes,
        "file_type": doc.media_type,
        "azure_model": profile.model_id,
        "processed_date": processed_at.isoformat(),
        "pages": result.pages,
    }
    if profile is AnalysisProfile.LAYOUT:
        metadata["check_regions"] = len(result.check_regions)
    return {
        "created_at": firestore.SERVER_TIMESTAMP,
        "image_name": doc.filename,
        "ocr_text": result.text,
        "metadata": metadata,
        "raw_result": encode_raw_result(raw_result),
        "request_id": request_id,
    }


class ResultStore:
    """Thin wrapper around the async Firestore client for result inserts.

    The client is created on first use and then shared by every request in
    the process.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[firestore.AsyncClient] = None) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> firestore.AsyncClient:
        if self._client is None:
            # Use explicit database if provided in env, else default
            if self.settings.FIRESTORE_DATABASE_ID:
                self._client = firestore.AsyncClient(
                    project=self.settings.GCP_PROJECT or None,
                    database=self.settings.FIRESTORE_DATABASE_ID,
                )
            else:
                self._client = firestore.AsyncClient()
        return self._client

    async def insert_result(self, record: Dict[str, Any]) -> str:
        """Insert one record and return its document id.

        Any failure, including a missing credential, surfaces as
        PersistenceFailedError.
        """
        chunks: List[bytes] = []
        raw = record.get("raw_result")
        if isinstance(raw, str) and len(raw.encode("utf-8")) > self.settings.RAW_RESULT_INLINE_MAX_BYTES:
            chunks = split_raw_result(raw)
            record = {
                **record,
                "raw_result": None,
                "raw_result_chunks": {"count": len(chunks), "encoding": RAW_CHUNK_ENCODING},
            }

        try:
            collection = self.client.collection(self.settings.RESULTS_COLLECTION)
            if not chunks:
                _, ref = await collection.add(record)
            else:
                ref = collection.document()
                batch = self.client.batch()
                batch.set(ref, record)
                for index, chunk in enumerate(chunks):
                    chunk_ref = ref.collection(RAW_CHUNKS_SUBCOLLECTION).document(f"{index:05d}")
                    batch.set(chunk_ref, {"index": index, "data": chunk})
                await batch.commit()
        except Exception as exc:  # noqa: BLE001
            logger.error("Firestore insert into %s failed: %s", self.settings.RESULTS_COLLECTION, exc)
            raise PersistenceFailedError() from exc

        if chunks:
            logger.info("Stored raw result for %s in %d chunks", ref.id, len(chunks))
        return ref.id
