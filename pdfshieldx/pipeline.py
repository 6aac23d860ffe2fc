"""Stage orchestration: watermark, rasterize, then a reassembly sweep."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from .config import PipelineConfig, StageLayout
from .exceptions import DirectoryNotFoundError, InvalidPDFError, PDFShieldXError
from .rasterizer import Rasterizer
from .reassembler import reassemble
from .types import (
    IMAGES_DIR_SUFFIX,
    BatchReport,
    DocumentContext,
    DocumentResult,
    DocumentStatus,
    Stage,
)
from .utils import time_block
from .watermark import WatermarkAsset, watermark_pdf

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[str, Stage, int, int], None]


def find_pdf_files(input_dir: Path) -> List[Path]:
    """Return the ``.pdf`` files of *input_dir* (any case), sorted by name."""

    if not input_dir.exists():
        raise DirectoryNotFoundError(f"Directory not found: {input_dir}")
    if not input_dir.is_dir():
        raise DirectoryNotFoundError(f"Not a directory: {input_dir}")
    return sorted(
        (path for path in input_dir.iterdir() if path.is_file() and path.suffix.lower() == ".pdf"),
        key=lambda path: path.name,
    )


class Pipeline:
    """Drive a batch of PDFs through the four stage directories."""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        rasterizer: Optional[Rasterizer] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config
        self.rasterizer = rasterizer or Rasterizer(
            dpi=config.dpi, timeout_seconds=config.timeout_seconds
        )
        self.progress_callback = progress_callback

    @property
    def layout(self) -> StageLayout:
        return self.config.layout

    def _notify(self, doc_id: str, stage: Stage, index: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(doc_id, stage, index, total)

    def run(self) -> BatchReport:
        """Process every input PDF and return the per-document outcomes.

        Raises :class:`DirectoryNotFoundError` when the input root is
        missing; every other failure is recorded on the document.
        """

        sources = find_pdf_files(self.layout.input_dir)
        self.layout.prepare()

        report = BatchReport()
        with time_block(LOGGER, f"Pipeline run over {len(sources)} document(s)"):
            asset, asset_error = self._load_watermark()
            seen: set[str] = set()
            for index, source in enumerate(sources, start=1):
                context = DocumentContext.from_source(source, self.layout)
                result = DocumentResult(context=context)
                report.results.append(result)
                self._notify(context.doc_id, Stage.WATERMARK, index, len(sources))

                if context.doc_id in seen:
                    error = InvalidPDFError(
                        f"Duplicate document identifier '{context.doc_id}' ({source.name})"
                    )
                    self._record_failure(result, Stage.WATERMARK, error)
                    continue
                seen.add(context.doc_id)

                if asset_error is not None:
                    self._record_failure(result, Stage.WATERMARK, asset_error)
                    continue
                self._process_document(result, asset, index, len(sources))

            self._reassembly_sweep(report)

        LOGGER.info(
            "Batch finished: %s exported, %s failed of %s",
            report.success,
            report.failure,
            report.total,
        )
        return report

    def _load_watermark(self) -> tuple[Optional[WatermarkAsset], Optional[PDFShieldXError]]:
        try:
            return WatermarkAsset.load(self.config.watermark.path), None
        except PDFShieldXError as exc:
            LOGGER.error("Watermark asset unavailable: %s", exc)
            return None, exc

    def _process_document(
        self,
        result: DocumentResult,
        asset: WatermarkAsset,
        index: int,
        total: int,
    ) -> None:
        context = result.context
        stage = Stage.WATERMARK
        try:
            watermark_pdf(
                context.source_pdf,
                context.watermarked_pdf,
                asset,
                opacity=self.config.watermark.opacity,
                scale=self.config.watermark.scale,
            )
            result.status = DocumentStatus.WATERMARKED
            LOGGER.info("Watermark added to all pages of %s", context.source_pdf.name)

            stage = Stage.RASTERIZE
            self._notify(context.doc_id, stage, index, total)
            pages = self.rasterizer.rasterize(context.watermarked_pdf, context.images_dir)
            result.page_count = len(pages)
            result.status = DocumentStatus.RASTERIZED
        except Exception as exc:
            self._record_failure(result, stage, exc)
            self.layout.discard_images(context.images_dir)

    def _reassembly_sweep(self, report: BatchReport) -> None:
        directories = sorted(
            path
            for path in self.layout.rasterized_dir.iterdir()
            if path.is_dir() and path.name.endswith(IMAGES_DIR_SUFFIX)
        )
        for index, images_dir in enumerate(directories, start=1):
            try:
                context = DocumentContext.from_images_dir(images_dir, self.layout)
            except ValueError:
                LOGGER.warning("Skipping unexpected directory %s", images_dir)
                continue

            result = report.get(context.doc_id)
            if result is None:
                result = DocumentResult(context=context, status=DocumentStatus.RASTERIZED)
                report.results.append(result)
            if result.status is not DocumentStatus.RASTERIZED:
                continue

            self._notify(context.doc_id, Stage.REASSEMBLE, index, len(directories))
            try:
                result.page_count = reassemble(
                    context.images_dir,
                    result.context.export_pdf,
                    reencode_settings=self.config.reencode,
                    dpi=self.config.reassembly_dpi,
                )
                result.status = DocumentStatus.EXPORTED
                LOGGER.info("Exported %s (%s page(s))", result.context.export_pdf.name, result.page_count)
            except Exception as exc:
                self._record_failure(result, Stage.REASSEMBLE, exc)

    @staticmethod
    def _record_failure(result: DocumentResult, stage: Stage, exc: BaseException) -> None:
        if isinstance(exc, PDFShieldXError):
            LOGGER.error("%s failed at %s stage: %s", result.doc_id, stage.value, exc)
            hint = getattr(exc, "hint", None)
            if hint:
                LOGGER.error("Hint: %s", hint)
        else:
            LOGGER.exception("%s failed at %s stage with an unexpected error", result.doc_id, stage.value)
        result.fail(stage, exc)


def run_pipeline(
    config: PipelineConfig,
    *,
    progress_callback: Optional[ProgressCallback] = None,
) -> BatchReport:
    """Run the full pipeline for *config*."""

    return Pipeline(config, progress_callback=progress_callback).run()


__all__ = ["Pipeline", "ProgressCallback", "find_pdf_files", "run_pipeline"]
