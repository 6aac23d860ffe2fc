"""Rasterization through poppler's ``pdftoppm``."""

from __future__ import annotations

import errno
import logging
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_DPI
from .exceptions import EmptyOutputError, RasterizationError
from .types import PAGE_IMAGE_PATTERN, PageImage, page_image_name
from .utils import PathLike, run_subprocess, to_path, which

LOGGER = logging.getLogger(__name__)

PDFTOPPM_EXECUTABLES: Sequence[str] = ("pdftoppm",)
NATIVE_PREFIX = "raster"

# pdftoppm writes <prefix>-<n>.jpg, zero-padding n to the width of the last page number.
_NATIVE_PATTERN = re.compile(rf"^{NATIVE_PREFIX}-(\d+)\.jpe?g$", re.IGNORECASE)
_STAGING_PATTERN = re.compile(r"^\.renaming-\d+\.jpe?g$", re.IGNORECASE)
_STALE_PATTERNS = (_NATIVE_PATTERN, PAGE_IMAGE_PATTERN, _STAGING_PATTERN)
_NOT_FOUND_SIGNATURES = ("not found", "no such file", "not recognized", "cannot find")


def install_hint() -> str:
    """Return the platform specific instruction for installing poppler."""
    if sys.platform == "darwin":
        return "Install poppler with Homebrew: brew install poppler"
    if sys.platform.startswith("win"):
        return "Install poppler for Windows (e.g. choco install poppler) and add its bin/ folder to PATH"
    return "Install poppler-utils with your package manager: sudo apt-get install poppler-utils"


def is_tool_missing(message: str) -> bool:
    lowered = message.lower()
    return any(signature in lowered for signature in _NOT_FOUND_SIGNATURES)


@dataclass(frozen=True)
class Rasterizer:
    """Runs ``pdftoppm`` once per document and normalises its output names."""

    dpi: int = DEFAULT_DPI
    jpeg_quality: int | None = None
    timeout_seconds: float | None = None
    executable: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.dpi, bool) or not isinstance(self.dpi, int) or self.dpi < 1:
            raise ValueError(f"DPI must be a positive integer, got {self.dpi!r}")

    def resolve_executable(self) -> str:
        executable = self.executable or which(PDFTOPPM_EXECUTABLES)
        if not executable:
            raise RasterizationError(
                "pdftoppm executable not found on PATH", hint=install_hint()
            )
        return executable

    def build_command(self, executable: str, pdf_path: Path, output_dir: Path) -> list[str]:
        command = [executable, "-jpeg", "-r", str(self.dpi)]
        if self.jpeg_quality is not None:
            command.extend(["-jpegopt", f"quality={self.jpeg_quality}"])
        command.extend([str(pdf_path), str(output_dir / NATIVE_PREFIX)])
        return command

    def rasterize(self, pdf_path: PathLike, output_dir: PathLike) -> list[PageImage]:
        """Render every page of *pdf_path* into *output_dir* as ``page_<n>.jpg``."""

        source = to_path(pdf_path)
        target = to_path(output_dir)
        target.mkdir(parents=True, exist_ok=True)
        clear_page_images(target)

        command = self.build_command(self.resolve_executable(), source, target)
        LOGGER.info("Rasterizing %s at %s dpi", source.name, self.dpi)
        try:
            run_subprocess(command, timeout=self.timeout_seconds)
        except FileNotFoundError as exc:
            raise RasterizationError(
                f"pdftoppm could not be started: {exc}", hint=install_hint()
            ) from exc
        except OSError as exc:
            hint = install_hint() if exc.errno == errno.ENOENT else None
            raise RasterizationError(f"pdftoppm could not be started: {exc}", hint=hint) from exc
        except subprocess.TimeoutExpired as exc:
            raise RasterizationError(
                f"pdftoppm timed out after {exc.timeout}s on {source.name}"
            ) from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
            hint = install_hint() if exc.returncode == 127 or is_tool_missing(detail) else None
            raise RasterizationError(
                f"pdftoppm failed on {source.name}: {detail}", hint=hint
            ) from exc

        native = collect_native_pages(target)
        if not native:
            raise EmptyOutputError(f"pdftoppm produced no images for {source.name}")
        pages = renumber_pages(native)
        LOGGER.debug("Rasterized %s into %s page image(s)", source.name, len(pages))
        return pages


def clear_page_images(directory: Path) -> int:
    """Remove page images left in *directory* by an earlier or interrupted run."""

    removed = 0
    for path in directory.iterdir():
        if not path.is_file():
            continue
        if any(pattern.match(path.name) for pattern in _STALE_PATTERNS):
            path.unlink()
            removed += 1
    if removed:
        LOGGER.debug("Removed %s stale page image(s) from %s", removed, directory)
    return removed


def collect_native_pages(directory: Path) -> list[tuple[int, Path]]:
    """Return ``(page_number, path)`` for the tool's output, sorted numerically."""

    found: list[tuple[int, Path]] = []
    for path in directory.iterdir():
        match = _NATIVE_PATTERN.match(path.name)
        if match and path.is_file():
            found.append((int(match.group(1)), path))
    return sorted(found)


def renumber_pages(native: list[tuple[int, Path]]) -> list[PageImage]:
    """Rename native pages to contiguous ``page_1.jpg .. page_N.jpg``.

    Files are first moved to temporary names so that a target name can
    never collide with a native file that has not been renamed yet.
    """

    staged: list[Path] = []
    for position, (_, path) in enumerate(native, start=1):
        temp = path.with_name(f".renaming-{position}{path.suffix}")
        path.replace(temp)
        staged.append(temp)

    pages: list[PageImage] = []
    for position, temp in enumerate(staged, start=1):
        final = temp.with_name(page_image_name(position))
        temp.replace(final)
        pages.append(PageImage(index=position, path=final))
    return pages


def rasterize(
    pdf_path: PathLike,
    output_dir: PathLike,
    dpi: int = DEFAULT_DPI,
    *,
    timeout_seconds: float | None = None,
) -> list[PageImage]:
    """Convenience wrapper around :meth:`Rasterizer.rasterize`."""

    return Rasterizer(dpi=dpi, timeout_seconds=timeout_seconds).rasterize(pdf_path, output_dir)


__all__ = [
    "Rasterizer",
    "clear_page_images",
    "collect_native_pages",
    "install_hint",
    "rasterize",
    "renumber_pages",
]
