"""
Main FastAPI application for the Document OCR backend.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from .config import get_settings
from .exceptions import DocScanError, NoFileUploadedError
from .logging_config import bind_request_id, generate_request_id, reset_request_id, setup_logging
from .routers.health import router as health_router
from .routers.config import router as config_router
from .routers.ocr import router as ocr_router


settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(level=settings.LOG_LEVEL)
    if not (settings.AZURE_ENDPOINT and settings.AZURE_API_KEY):
        logger.warning("AZURE_ENDPOINT/AZURE_API_KEY not set; OCR requests will fail with 503")
    logger.info("Document OCR service started")
    yield
    logger.info("Document OCR service stopped")


app = FastAPI(
    title="Document OCR API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Attach a request id for log correlation and echo it back."""
    request_id = request.headers.get("x-request-id") or generate_request_id()
    request.state.request_id = request_id
    token = bind_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(DocScanError)
async def _docscan_error_handler(request: Request, exc: DocScanError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Form fields that fail validation get the same ``{"error": ...}`` shape as domain errors.

    A ``file`` field that is not an uploaded file counts as no file at all.
    """
    errors = exc.errors()
    if any(tuple(err.get("loc", ()))[-1:] == ("file",) for err in errors):
        message = NoFileUploadedError.default_message
    elif errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request field {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# Routers
app.include_router(health_router, prefix=settings.API_PREFIX)
app.include_router(config_router, prefix=settings.API_PREFIX)
app.include_router(ocr_router, prefix=settings.API_PREFIX)


@app.get("/", tags=["root"])
async def root() -> dict:
    """Simple root endpoint."""
    return {"name": app.title, "version": app.version}
