from __future__ import annotations

import asyncio
import io
from enum import Enum

from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import FileValidationError, UnsupportedMediaTypeError
from ..models import InboundDocument, NormalizedPayload

PASSTHROUGH_TYPES = frozenset({"application/pdf", "image/tiff"})
DEFAULT_JPEG_QUALITY = 60
DEFAULT_MAX_PIXELS = 50_000_000


class Strategy(str, Enum):
    PASSTHROUGH = "passthrough"
    RECOMPRESS = "recompress"


def base_media_type(media_type: str | None) -> str:
    """Lower-case type/subtype without parameters (``image/PNG; q=1`` -> ``image/png``)."""
    return (media_type or "").split(";", 1)[0].strip().lower()


def choose_strategy(media_type: str | None) -> Strategy:
    """Decide how a declared type is sent to the analysis service.

    PDF and TIFF go through untouched, every other ``image/*`` is recompressed,
    anything else is rejected.
    """
    base = base_media_type(media_type)
    if base in PASSTHROUGH_TYPES:
        return Strategy.PASSTHROUGH
    if base.startswith("image/"):
        return Strategy.RECOMPRESS
    raise UnsupportedMediaTypeError(media_type or "")


def compress_to_jpeg(
    data: bytes, quality: int = DEFAULT_JPEG_QUALITY, max_pixels: int | None = DEFAULT_MAX_PIXELS
) -> bytes:
    """Re-encode an image as baseline JPEG at the given quality.

    The pixel count is checked from the header before any decoding, so a
    small file that expands to a huge bitmap is refused without allocating it.
    Raises FileValidationError when Pillow cannot decode the bytes or the
    image is over ``max_pixels``.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if max_pixels is not None and width * height > max_pixels:
                raise FileValidationError(
                    f"Image too large: {width}x{height} pixels (limit {max_pixels})"
                )
            img = ImageOps.exif_transpose(img)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=quality, progressive=False, optimize=True)
            return out.getvalue()
    except Image.DecompressionBombError as exc:
        raise FileValidationError(f"Image too large: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise FileValidationError("Invalid or unreadable image") from exc


async def normalize_payload(
    doc: InboundDocument, quality: int = DEFAULT_JPEG_QUALITY, max_pixels: int | None = DEFAULT_MAX_PIXELS
) -> NormalizedPayload:
    """Produce the transmittable payload for a document.

    Compression runs in the default executor so the event loop keeps serving
    other requests.
    """
    strategy = choose_strategy(doc.media_type)
    if strategy is Strategy.PASSTHROUGH:
        return NormalizedPayload(content=doc.content, content_type=doc.media_type)

    loop = asyncio.get_running_loop()
    compressed = await loop.run_in_executor(None, compress_to_jpeg, doc.content, quality, max_pixels)
    return NormalizedPayload(content=compressed, content_type="image/jpeg", recompressed=True)
