"""Lossy recompression of page images before reassembly."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from .config import ReencodeSettings
from .exceptions import ReassemblyError
from .utils import PathLike, to_path

LOGGER = logging.getLogger(__name__)


def reencode(image_path: PathLike, settings: ReencodeSettings | None = None) -> bytes:
    """Return *image_path* re-encoded as a low quality JPEG.

    When ``settings.png`` is set the degraded JPEG is decoded again and
    stored as a maximally compressed PNG.
    """

    settings = settings or ReencodeSettings(enabled=True)
    source = to_path(image_path)
    try:
        with Image.open(source) as img:
            rgb = img.convert("RGB") if img.mode not in {"RGB", "L"} else img.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise ReassemblyError(f"Cannot decode page image {source}: {exc}") from exc

    output = io.BytesIO()
    rgb.save(output, format="JPEG", quality=settings.jpeg_quality, optimize=True)
    if settings.png:
        output.seek(0)
        with Image.open(output) as degraded:
            png_output = io.BytesIO()
            degraded.save(png_output, format="PNG", optimize=False, compress_level=settings.png_compress_level)
        output = png_output

    payload = output.getvalue()
    LOGGER.debug(
        "Re-encoded %s: %s -> %s bytes", source.name, source.stat().st_size, len(payload)
    )
    return payload


__all__ = ["reencode"]
