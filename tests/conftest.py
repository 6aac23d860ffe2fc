from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, Sequence
from unittest.mock import patch
import shutil
import subprocess
import sys

import pytest
from PIL import Image
from pypdf import PdfReader, PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

PageSize = tuple[float, float]


def write_pdf(path: Path, pages: Sequence[PageSize]) -> Path:
    writer = PdfWriter()
    for width, height in pages:
        writer.add_blank_page(width=width, height=height)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as stream:
        writer.write(stream)
    return path


def write_jpeg(path: Path, size: tuple[int, int], color: str = "white") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="JPEG", quality=90)
    return path


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, pages: int = 2, size: PageSize = (595, 842), directory: Path | None = None) -> Path:
        return write_pdf((directory or tmp_path) / filename, [size] * pages)

    return _create


@pytest.fixture()
def jpeg_factory() -> Callable[..., Path]:
    return write_jpeg


@pytest.fixture()
def watermark_png(tmp_path: Path) -> Path:
    path = tmp_path / "mark.png"
    image = Image.new("RGBA", (200, 100), (255, 0, 0, 255))
    for x in range(200):
        image.putpixel((x, 0), (255, 0, 0, 0))
    image.save(path, format="PNG")
    return path


@pytest.fixture()
def base_dir(tmp_path: Path, watermark_png: Path) -> Path:
    base = tmp_path / "work"
    (base / "1-pdfs").mkdir(parents=True)
    shutil.copy(watermark_png, base / "watermark.png")
    return base


def _fake_pdftoppm(command: Sequence[str], timeout: float | None = None) -> subprocess.CompletedProcess[str]:
    """Mimic ``pdftoppm -jpeg -r DPI input prefix`` using pypdf and Pillow."""

    dpi = int(command[command.index("-r") + 1])
    pdf_path, prefix = Path(command[-2]), Path(command[-1])
    if "broken" in pdf_path.name:
        raise subprocess.CalledProcessError(99, list(command), output="", stderr="Syntax Error: bad stream")

    reader = PdfReader(str(pdf_path))
    width = len(str(len(reader.pages)))
    for number, page in enumerate(reader.pages, start=1):
        size = (
            round(float(page.mediabox.width) * dpi / 72),
            round(float(page.mediabox.height) * dpi / 72),
        )
        write_jpeg(prefix.parent / f"{prefix.name}-{number:0{width}d}.jpg", size)
    return subprocess.CompletedProcess(list(command), 0, "", "")


@pytest.fixture()
def fake_pdftoppm() -> Iterator[None]:
    with patch("pdfshieldx.rasterizer.which", return_value="/usr/bin/pdftoppm"), patch(
        "pdfshieldx.rasterizer.run_subprocess", side_effect=_fake_pdftoppm
    ):
        yield
