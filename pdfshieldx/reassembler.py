"""Rebuild a PDF from a directory of ``page_<n>.jpg`` images."""

from __future__ import annotations

import io
import logging

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import ReencodeSettings
from .exceptions import NoImagesError, ReassemblyError
from .reencoder import reencode
from .types import PageImage
from .utils import PathLike, to_path, write_bytes_atomic

LOGGER = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


def list_page_images(images_dir: PathLike) -> list[PageImage]:
    """Return the page images of *images_dir* ordered by their page number."""

    directory = to_path(images_dir)
    if not directory.is_dir():
        raise NoImagesError(f"Image directory not found: {directory}")
    pages = [
        page
        for page in (PageImage.from_path(path) for path in directory.iterdir())
        if page is not None and page.path.is_file()
    ]
    if not pages:
        raise NoImagesError(f"No page images found in {directory}")
    return sorted(pages, key=lambda page: page.index)


def page_size(width_px: int, height_px: int, dpi: int | None = None) -> tuple[float, float]:
    """Page size in points: one point per pixel, or the physical size at *dpi*."""
    if dpi is None:
        return float(width_px), float(height_px)
    factor = POINTS_PER_INCH / dpi
    return width_px * factor, height_px * factor


def _open_image(page: PageImage, settings: ReencodeSettings | None) -> ImageReader:
    try:
        if settings is not None and settings.enabled:
            return ImageReader(io.BytesIO(reencode(page.path, settings)))
        return ImageReader(io.BytesIO(page.path.read_bytes()))
    except ReassemblyError:
        raise
    except Exception as exc:
        raise ReassemblyError(f"Cannot decode page image {page.path}: {exc}") from exc


def reassemble(
    images_dir: PathLike,
    output_pdf: PathLike,
    *,
    reencode_settings: ReencodeSettings | None = None,
    dpi: int | None = None,
) -> int:
    """Write one PDF page per image of *images_dir* to *output_pdf*.

    Returns the number of pages written. Nothing is written when any
    page fails to decode.
    """

    pages = list_page_images(images_dir)
    destination = to_path(output_pdf)

    buffer = io.BytesIO()
    document = canvas.Canvas(buffer, invariant=1)
    for page in pages:
        image = _open_image(page, reencode_settings)
        width_px, height_px = image.getSize()
        width, height = page_size(width_px, height_px, dpi)
        document.setPageSize((width, height))
        document.drawImage(image, 0, 0, width=width, height=height)
        document.showPage()
    document.save()

    write_bytes_atomic(destination, buffer.getvalue())
    LOGGER.debug("Reassembled %s page(s) into %s", len(pages), destination)
    return len(pages)


__all__ = ["list_page_images", "page_size", "reassemble"]
