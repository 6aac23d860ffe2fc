"""
Type definitions and dataclasses for pdfshieldx.

This module defines the records that flow between pipeline stages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NewType, Optional

from .config import StageLayout

DocumentId = NewType("DocumentId", str)

IMAGES_DIR_SUFFIX = "_images"
PAGE_IMAGE_PREFIX = "page_"
PAGE_IMAGE_EXTENSION = ".jpg"
PAGE_IMAGE_PATTERN = re.compile(r"^page_(\d+)\.jpg$")


def page_image_name(index: int) -> str:
    return f"{PAGE_IMAGE_PREFIX}{index}{PAGE_IMAGE_EXTENSION}"


@dataclass(frozen=True)
class PageImage:
    """One rasterized page, with its 1-based position in the document."""

    index: int
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> Optional["PageImage"]:
        """Parse a ``page_<n>.jpg`` file; returns ``None`` for any other name."""
        match = PAGE_IMAGE_PATTERN.match(path.name)
        if not match:
            return None
        return cls(index=int(match.group(1)), path=path)


@dataclass(frozen=True)
class DocumentContext:
    """
    A document and its artifact paths across the four stages.

    Attributes:
        doc_id: Input filename without extension
        source_pdf: Original PDF in the input stage
        watermarked_pdf: Composited PDF in the watermark stage
        images_dir: Directory holding ``page_<n>.jpg`` files
        export_pdf: Reassembled PDF in the export stage
    """

    doc_id: DocumentId
    source_pdf: Path
    watermarked_pdf: Path
    images_dir: Path
    export_pdf: Path

    @classmethod
    def from_source(cls, source_pdf: Path, layout: StageLayout) -> "DocumentContext":
        doc_id = DocumentId(source_pdf.stem)
        return cls(
            doc_id=doc_id,
            source_pdf=source_pdf,
            watermarked_pdf=layout.watermarked_dir / f"{doc_id}.pdf",
            images_dir=layout.rasterized_dir / f"{doc_id}{IMAGES_DIR_SUFFIX}",
            export_pdf=layout.export_dir / f"{doc_id}.pdf",
        )

    @classmethod
    def from_images_dir(cls, images_dir: Path, layout: StageLayout) -> "DocumentContext":
        """Recover the context of a stage-3 directory named ``<id>_images``."""
        name = images_dir.name
        if not name.endswith(IMAGES_DIR_SUFFIX) or name == IMAGES_DIR_SUFFIX:
            raise ValueError(f"Not a document image directory: {images_dir}")
        doc_id = DocumentId(name[: -len(IMAGES_DIR_SUFFIX)])
        return cls(
            doc_id=doc_id,
            source_pdf=layout.input_dir / f"{doc_id}.pdf",
            watermarked_pdf=layout.watermarked_dir / f"{doc_id}.pdf",
            images_dir=images_dir,
            export_pdf=layout.export_dir / f"{doc_id}.pdf",
        )


class DocumentStatus(str, Enum):
    """Lifecycle of a document through the pipeline."""

    PENDING = "pending"
    WATERMARKED = "watermarked"
    RASTERIZED = "rasterized"
    EXPORTED = "exported"
    FAILED = "failed"


class Stage(str, Enum):
    WATERMARK = "watermark"
    RASTERIZE = "rasterize"
    REASSEMBLE = "reassemble"


@dataclass
class DocumentResult:
    """
    Outcome for a single document of a batch.

    Attributes:
        context: Paths of the document across stages
        status: Furthest state reached, or FAILED
        failed_stage: Stage that raised, when status is FAILED
        error_type: Exception class name of the failure
        error: Failure message
        hint: Remediation advice attached to the failure
        page_count: Number of pages rasterized / exported
    """

    context: DocumentContext
    status: DocumentStatus = DocumentStatus.PENDING
    failed_stage: Optional[Stage] = None
    error_type: Optional[str] = None
    error: Optional[str] = None
    hint: Optional[str] = None
    page_count: int = 0

    @property
    def doc_id(self) -> DocumentId:
        return self.context.doc_id

    @property
    def succeeded(self) -> bool:
        return self.status is DocumentStatus.EXPORTED

    def fail(self, stage: Stage, exc: BaseException) -> None:
        self.status = DocumentStatus.FAILED
        self.failed_stage = stage
        self.error_type = type(exc).__name__
        self.error = str(exc)
        self.hint = getattr(exc, "hint", None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.doc_id,
            "status": self.status.value,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error_type": self.error_type,
            "error": self.error,
            "hint": self.hint,
            "page_count": self.page_count,
            "export": str(self.context.export_pdf) if self.succeeded else None,
        }

    def __str__(self) -> str:
        if self.succeeded:
            return f"DocumentResult({self.doc_id}, exported, pages={self.page_count})"
        return f"DocumentResult({self.doc_id}, {self.status.value}, error='{self.error}')"


@dataclass
class BatchReport:
    """Aggregated results of a pipeline run."""

    results: List[DocumentResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failure(self) -> int:
        return sum(1 for result in self.results if result.status is DocumentStatus.FAILED)

    @property
    def failures(self) -> List[DocumentResult]:
        return [result for result in self.results if result.status is DocumentStatus.FAILED]

    @property
    def exit_code(self) -> int:
        return 0 if self.failure == 0 else 1

    def get(self, doc_id: str) -> Optional[DocumentResult]:
        for result in self.results:
            if result.doc_id == doc_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failure": self.failure,
            "documents": [result.to_dict() for result in self.results],
        }

    def __str__(self) -> str:
        return f"BatchReport(total={self.total}, success={self.success}, failure={self.failure})"
