"""Application settings and configuration helpers."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv, find_dotenv


class Settings:
    """Runtime configuration loaded from environment variables.

    Defaults are suitable for local development. Production should set
    explicit values via environment variables and Secret Manager.
    """

    APP_NAME: str = "Document OCR API"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str]

    # Limits
    MAX_SIZE_MB: int
    PASSTHROUGH_MIME: List[str]

    # Azure AI Document Intelligence
    AZURE_ENDPOINT: str
    AZURE_API_KEY: str
    AZURE_API_VERSION: str
    DEFAULT_PROFILE: str
    HTTP_TIMEOUT_SEC: float

    # Polling
    POLL_INTERVAL_SEC: float
    POLL_MAX_ATTEMPTS: int

    # Normalization
    JPEG_QUALITY: int
    MAX_IMAGE_PIXELS: int

    # Durable store (Firestore)
    GCP_PROJECT: str
    FIRESTORE_DATABASE_ID: str
    RESULTS_COLLECTION: str
    RAW_RESULT_INLINE_MAX_BYTES: int
    PERSIST_ENABLED: bool
    PERSIST_FAILURE_IS_FATAL: bool

    # Logging
    LOG_LEVEL: str

    def __init__(self) -> None:
        # Load .env once (supports parent directories)
        load_dotenv(find_dotenv(), override=False)
        self.CORS_ORIGINS = self._get_list("CORS_ORIGINS", default="*")
        self.MAX_SIZE_MB = int(os.getenv("MAX_SIZE_MB", "20"))
        # Sent as-is; every other image/* type is recompressed to JPEG
        self.PASSTHROUGH_MIME = ["application/pdf", "image/tiff"]

        self.AZURE_ENDPOINT = os.getenv("AZURE_ENDPOINT", "").rstrip("/")
        self.AZURE_API_KEY = os.getenv("AZURE_API_KEY", "")
        self.AZURE_API_VERSION = os.getenv("AZURE_API_VERSION", "2023-07-31")
        self.DEFAULT_PROFILE = os.getenv("DEFAULT_PROFILE", "read").strip().lower()
        self.HTTP_TIMEOUT_SEC = float(os.getenv("HTTP_TIMEOUT_SEC", "30"))

        # 30 x 1s keeps the whole request inside a typical gateway timeout
        self.POLL_INTERVAL_SEC = float(os.getenv("POLL_INTERVAL_SEC", "1.0"))
        self.POLL_MAX_ATTEMPTS = int(os.getenv("POLL_MAX_ATTEMPTS", "30"))

        self.JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "60"))
        # Recompressed images larger than this are rejected before decoding
        self.MAX_IMAGE_PIXELS = int(os.getenv("MAX_IMAGE_PIXELS", "50000000"))

        self.GCP_PROJECT = os.getenv("GCP_PROJECT", os.getenv("GOOGLE_CLOUD_PROJECT", ""))
        self.FIRESTORE_DATABASE_ID = os.getenv("FIRESTORE_DATABASE_ID", "(default)")
        self.RESULTS_COLLECTION = os.getenv("RESULTS_COLLECTION", "ocr_results")
        # Larger raw payloads go to gzip chunks under the row (Firestore caps a document at 1 MiB)
        self.RAW_RESULT_INLINE_MAX_BYTES = int(os.getenv("RAW_RESULT_INLINE_MAX_BYTES", str(256 * 1024)))
        self.PERSIST_ENABLED = os.getenv("PERSIST_ENABLED", "true").lower() == "true"
        self.PERSIST_FAILURE_IS_FATAL = os.getenv("PERSIST_FAILURE_IS_FATAL", "false").lower() == "true"

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @staticmethod
    def _get_list(name: str, default: str = "") -> List[str]:
        raw = os.getenv(name, default)
        return [item.strip() for item in raw.split(",") if item.strip()] or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
