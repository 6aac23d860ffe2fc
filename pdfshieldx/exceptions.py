"""Custom exception types for :mod:`pdfshieldx`."""

from __future__ import annotations

from pathlib import Path


class PDFShieldXError(Exception):
    """Base exception for all pdfshieldx related errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown pdfshieldx error occurred."


class MissingAssetError(PDFShieldXError):
    """Raised when the watermark image cannot be found."""

    def __init__(self, path: str | Path | None = None, message: str = "") -> None:
        self.path = Path(path) if path is not None else None
        if not message and self.path is not None:
            message = f"Watermark asset not found: {self.path}"
        super().__init__(message)

    @property
    def default_message(self) -> str:
        return "Watermark asset not found."


class InvalidPDFError(PDFShieldXError):
    """Raised when a PDF file is missing, unreadable or malformed."""

    @property
    def default_message(self) -> str:
        return "Invalid or corrupted PDF file."


class RasterizationError(PDFShieldXError):
    """Raised when the external rasterization tool fails or is absent.

    ``hint`` carries an installation instruction when the failure was
    caused by the tool not being available on ``PATH``.
    """

    def __init__(self, message: str = "", *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    @property
    def default_message(self) -> str:
        return "PDF rasterization failed."


class EmptyOutputError(RasterizationError):
    """Raised when rasterization succeeds but produces no page images."""

    @property
    def default_message(self) -> str:
        return "Rasterization produced no page images."


class NoImagesError(PDFShieldXError):
    """Raised when a document image directory has no page images to reassemble."""

    @property
    def default_message(self) -> str:
        return "No page images found for reassembly."


class ReassemblyError(PDFShieldXError):
    """Raised when a page image cannot be decoded or embedded."""

    @property
    def default_message(self) -> str:
        return "PDF reassembly failed."


class DirectoryNotFoundError(PDFShieldXError, FileNotFoundError):
    """Raised when the input stage directory does not exist."""

    @property
    def default_message(self) -> str:
        return "Input directory not found."
