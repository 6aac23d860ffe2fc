"""Watermark compositing: draw a translucent raster overlay on every page."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import DEFAULT_OPACITY, DEFAULT_SCALE
from .exceptions import InvalidPDFError, MissingAssetError
from .utils import PathLike, to_path, write_bytes_atomic

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatermarkAsset:
    """A decoded-once overlay image that can be reused across documents."""

    path: Path
    data: bytes
    width_px: int
    height_px: int

    @classmethod
    def load(cls, path: PathLike) -> "WatermarkAsset":
        source = to_path(path)
        if not source.is_file():
            raise MissingAssetError(source)
        data = source.read_bytes()
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            raise MissingAssetError(source, f"Unreadable watermark asset: {source}. Error: {exc}") from exc
        LOGGER.debug("Loaded watermark %s (%sx%s px)", source, width, height)
        return cls(path=source, data=data, width_px=width, height_px=height)

    def scaled_size(self, scale: float) -> tuple[float, float]:
        return self.width_px * scale, self.height_px * scale


@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    width: float
    height: float


def compute_placement(
    box: tuple[float, float, float, float],
    asset: WatermarkAsset,
    scale: float = DEFAULT_SCALE,
) -> Placement:
    """Center the scaled asset on *box* given as ``(left, bottom, right, top)``."""

    left, bottom, right, top = box
    width, height = asset.scaled_size(scale)
    return Placement(
        x=left + ((right - left) - width) / 2,
        y=bottom + ((top - bottom) - height) / 2,
        width=width,
        height=height,
    )


def _page_box(page: PageObject) -> tuple[float, float, float, float]:
    box = page.mediabox
    return float(box.left), float(box.bottom), float(box.right), float(box.top)


def _load_reader(source: Path) -> PdfReader:
    if not source.is_file():
        raise InvalidPDFError(f"PDF file not found: {source}")
    try:
        reader = PdfReader(io.BytesIO(source.read_bytes()))
    except PdfReadError as exc:
        raise InvalidPDFError(f"Corrupted or invalid PDF file: {source}. Error: {exc}") from exc
    except Exception as exc:
        raise InvalidPDFError(f"Unexpected error reading PDF: {source}. Error: {exc}") from exc

    if reader.is_encrypted and reader.decrypt("") == 0:
        raise InvalidPDFError(f"PDF is encrypted: {source}")
    if len(reader.pages) == 0:
        raise InvalidPDFError(f"PDF has no pages: {source}")
    return reader


def _build_overlay(
    boxes: list[tuple[float, float, float, float]],
    asset: WatermarkAsset,
    opacity: float,
    scale: float,
) -> PdfReader:
    """Render one overlay page per source page box."""

    buffer = io.BytesIO()
    overlay = canvas.Canvas(buffer, invariant=1)
    image = ImageReader(io.BytesIO(asset.data))
    for box in boxes:
        _, _, right, top = box
        overlay.setPageSize((max(right, 1.0), max(top, 1.0)))
        placement = compute_placement(box, asset, scale)
        overlay.saveState()
        overlay.setFillAlpha(opacity)
        overlay.drawImage(
            image,
            placement.x,
            placement.y,
            width=placement.width,
            height=placement.height,
            mask="auto",
        )
        overlay.restoreState()
        overlay.showPage()
    overlay.save()
    buffer.seek(0)
    return PdfReader(buffer)


def composite(
    input_pdf: PathLike,
    watermark: Union[PathLike, WatermarkAsset],
    *,
    opacity: float = DEFAULT_OPACITY,
    scale: float = DEFAULT_SCALE,
) -> bytes:
    """Return the bytes of *input_pdf* with *watermark* drawn on every page.

    Page count and page boxes are unchanged. The watermark is scaled by
    *scale* from its pixel size and centered on each page's media box.
    """

    asset = watermark if isinstance(watermark, WatermarkAsset) else WatermarkAsset.load(watermark)
    source = to_path(input_pdf)
    reader = _load_reader(source)

    boxes = [_page_box(page) for page in reader.pages]
    overlay = _build_overlay(boxes, asset, opacity, scale)

    writer = PdfWriter()
    for page, overlay_page in zip(reader.pages, overlay.pages):
        writer.add_page(page)
        # Merge into the writer's copy; reader pages are not writable.
        writer.pages[-1].merge_page(overlay_page)

    metadata = reader.metadata or {}
    cleaned = {k: v for k, v in metadata.items() if v is not None}
    if cleaned:
        writer.add_metadata(cleaned)

    output = io.BytesIO()
    writer.write(output)
    LOGGER.debug("Composited watermark on %s page(s) of %s", len(boxes), source.name)
    return output.getvalue()


def watermark_pdf(
    input_pdf: PathLike,
    output_pdf: PathLike,
    watermark: Union[PathLike, WatermarkAsset],
    *,
    opacity: float = DEFAULT_OPACITY,
    scale: float = DEFAULT_SCALE,
) -> Path:
    """Composite *watermark* onto *input_pdf* and persist it to *output_pdf*."""

    payload = composite(input_pdf, watermark, opacity=opacity, scale=scale)
    destination = to_path(output_pdf)
    write_bytes_atomic(destination, payload)
    return destination


__all__ = [
    "Placement",
    "WatermarkAsset",
    "composite",
    "compute_placement",
    "watermark_pdf",
]
