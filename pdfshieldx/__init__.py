"""
pdfshieldx - Watermark PDFs and re-rasterize them into protected copies.

A batch run moves every document through four stage directories:

    1-pdfs/<id>.pdf
    2-watermarks/<id>.pdf               translucent image overlay on each page
    3-pdf-to-images/<id>_images/        page_1.jpg .. page_N.jpg via pdftoppm
    4-export/<id>.pdf                   one page per image

Quick Start:
    >>> from pdfshieldx import PipelineConfig, run_pipeline
    >>> report = run_pipeline(PipelineConfig.for_base_dir("invoices"))
    >>> report.exit_code
    0

For CLI usage, use the 'pdfshieldx' command after installation.
"""

__version__ = "1.0.0"

from pdfshieldx.config import PipelineConfig, ReencodeSettings, StageLayout, WatermarkSettings
from pdfshieldx.exceptions import (
    DirectoryNotFoundError,
    EmptyOutputError,
    InvalidPDFError,
    MissingAssetError,
    NoImagesError,
    PDFShieldXError,
    RasterizationError,
    ReassemblyError,
)
from pdfshieldx.pipeline import Pipeline, run_pipeline
from pdfshieldx.rasterizer import Rasterizer, rasterize
from pdfshieldx.reassembler import reassemble
from pdfshieldx.reencoder import reencode
from pdfshieldx.rename import rename_pdfs
from pdfshieldx.types import (
    BatchReport,
    DocumentContext,
    DocumentId,
    DocumentResult,
    DocumentStatus,
    PageImage,
    Stage,
)
from pdfshieldx.watermark import WatermarkAsset, composite, watermark_pdf

__all__ = [
    # Configuration
    "PipelineConfig",
    "ReencodeSettings",
    "StageLayout",
    "WatermarkSettings",
    # Stages
    "Pipeline",
    "Rasterizer",
    "WatermarkAsset",
    "composite",
    "rasterize",
    "reassemble",
    "reencode",
    "rename_pdfs",
    "run_pipeline",
    "watermark_pdf",
    # Data types
    "BatchReport",
    "DocumentContext",
    "DocumentId",
    "DocumentResult",
    "DocumentStatus",
    "PageImage",
    "Stage",
    # Exceptions
    "DirectoryNotFoundError",
    "EmptyOutputError",
    "InvalidPDFError",
    "MissingAssetError",
    "NoImagesError",
    "PDFShieldXError",
    "RasterizationError",
    "ReassemblyError",
    "__version__",
]
