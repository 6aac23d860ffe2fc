"""Configuration objects for :mod:`pdfshieldx`.

A :class:`PipelineConfig` is built once (usually by the CLI) and passed
explicitly to every stage. Nothing in the package reads global state.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .utils import PathLike, reset_directory, to_path

INPUT_DIRNAME = "1-pdfs"
WATERMARKED_DIRNAME = "2-watermarks"
RASTERIZED_DIRNAME = "3-pdf-to-images"
EXPORT_DIRNAME = "4-export"

DEFAULT_WATERMARK_NAME = "watermark.png"
DEFAULT_DPI = 150
DEFAULT_OPACITY = 0.2
DEFAULT_SCALE = 0.5

_ROLES = ("input_dir", "watermarked_dir", "rasterized_dir", "export_dir")


@dataclass(frozen=True)
class StageLayout:
    """Root directories of the four pipeline stages."""

    input_dir: Path
    watermarked_dir: Path
    rasterized_dir: Path
    export_dir: Path

    def __post_init__(self) -> None:
        for name in _ROLES:
            object.__setattr__(self, name, to_path(getattr(self, name)))

        for index, first in enumerate(_ROLES):
            for second in _ROLES[index + 1:]:
                if getattr(self, first) == getattr(self, second):
                    raise ValueError(
                        f"{first} and {second} must be different directories: {getattr(self, first)}"
                    )
        # The rasterized root is wiped on every run.
        for name in ("input_dir", "watermarked_dir", "export_dir"):
            other = getattr(self, name)
            if other in self.rasterized_dir.parents or self.rasterized_dir in other.parents:
                raise ValueError(
                    f"rasterized_dir {self.rasterized_dir} must not be nested with {name} {other}"
                )

    @classmethod
    def under(cls, base_dir: PathLike) -> "StageLayout":
        """Return the conventional ``1-pdfs`` .. ``4-export`` layout below *base_dir*."""
        base = to_path(base_dir)
        return cls(
            input_dir=base / INPUT_DIRNAME,
            watermarked_dir=base / WATERMARKED_DIRNAME,
            rasterized_dir=base / RASTERIZED_DIRNAME,
            export_dir=base / EXPORT_DIRNAME,
        )

    def prepare(self) -> None:
        """Create the output roots and wipe the rasterized root.

        Stale ``<id>_images`` directories from an earlier run would
        otherwise be picked up by the reassembly sweep.
        """
        self.watermarked_dir.mkdir(parents=True, exist_ok=True)
        self.export_dir.mkdir(parents=True, exist_ok=True)
        reset_directory(self.rasterized_dir)

    def discard_images(self, images_dir: Path) -> None:
        """Remove a partial per-document image directory."""
        if images_dir.parent == self.rasterized_dir and images_dir.exists():
            shutil.rmtree(images_dir)


@dataclass(frozen=True)
class WatermarkSettings:
    """Defines the overlay asset and how it is drawn on each page."""

    path: Path
    opacity: float = DEFAULT_OPACITY
    scale: float = DEFAULT_SCALE

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", to_path(self.path))
        if not 0.0 < self.opacity <= 1.0:
            raise ValueError(f"Watermark opacity must be in (0, 1], got {self.opacity}")
        if self.scale <= 0:
            raise ValueError(f"Watermark scale must be > 0, got {self.scale}")


@dataclass(frozen=True)
class ReencodeSettings:
    """Lossy recompression applied to page images before reassembly."""

    enabled: bool = False
    jpeg_quality: int = 30
    png: bool = False
    png_compress_level: int = 9

    def __post_init__(self) -> None:
        if not 1 <= self.jpeg_quality <= 95:
            raise ValueError(f"JPEG quality must be between 1 and 95, got {self.jpeg_quality}")
        if not 0 <= self.png_compress_level <= 9:
            raise ValueError(
                f"PNG compress level must be between 0 and 9, got {self.png_compress_level}"
            )


@dataclass(frozen=True)
class PipelineConfig:
    """Everything a pipeline run needs, constructed once."""

    layout: StageLayout
    watermark: WatermarkSettings
    dpi: int = DEFAULT_DPI
    reencode: ReencodeSettings = field(default_factory=ReencodeSettings)
    physical_page_size: bool = False
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if isinstance(self.dpi, bool) or not isinstance(self.dpi, int) or self.dpi < 1:
            raise ValueError(f"DPI must be a positive integer, got {self.dpi!r}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"Timeout must be > 0, got {self.timeout_seconds}")

    @classmethod
    def for_base_dir(
        cls,
        base_dir: PathLike,
        *,
        watermark_path: PathLike | None = None,
        **overrides,
    ) -> "PipelineConfig":
        """Build a config for the default layout below *base_dir*."""
        base = to_path(base_dir)
        watermark = WatermarkSettings(
            path=to_path(watermark_path) if watermark_path else base / DEFAULT_WATERMARK_NAME
        )
        return cls(layout=StageLayout.under(base), watermark=watermark, **overrides)

    @property
    def reassembly_dpi(self) -> int | None:
        """DPI used to size reassembled pages, or ``None`` for 1 pt per pixel."""
        return self.dpi if self.physical_page_size else None
