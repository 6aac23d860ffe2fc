from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image
from pypdf import PdfReader

from pdfshieldx.config import PipelineConfig, ReencodeSettings
from pdfshieldx.exceptions import DirectoryNotFoundError
from pdfshieldx.pipeline import Pipeline, find_pdf_files, run_pipeline
from pdfshieldx.reencoder import reencode
from pdfshieldx.types import DocumentStatus, Stage


def _sizes(path: Path) -> list[tuple[float, float]]:
    return [(float(page.mediabox.width), float(page.mediabox.height)) for page in PdfReader(str(path)).pages]


def test_invoice_end_to_end(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    pdf_factory("invoice-A.pdf", pages=2, size=(595, 842), directory=base_dir / "1-pdfs")

    report = run_pipeline(PipelineConfig.for_base_dir(base_dir))

    watermarked = base_dir / "2-watermarks" / "invoice-A.pdf"
    images_dir = base_dir / "3-pdf-to-images" / "invoice-A_images"
    exported = base_dir / "4-export" / "invoice-A.pdf"

    assert _sizes(watermarked) == [(595.0, 842.0), (595.0, 842.0)]
    assert sorted(path.name for path in images_dir.iterdir()) == ["page_1.jpg", "page_2.jpg"]
    with Image.open(images_dir / "page_1.jpg") as image:
        pixel_size = tuple(float(v) for v in image.size)
    assert _sizes(exported) == [pixel_size, pixel_size]

    result = report.get("invoice-A")
    assert result.status is DocumentStatus.EXPORTED
    assert result.page_count == 2
    assert report.exit_code == 0


def test_physical_page_size_recovers_original_size(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    pdf_factory("invoice-A.pdf", pages=1, size=(595, 842), directory=base_dir / "1-pdfs")

    run_pipeline(PipelineConfig.for_base_dir(base_dir, dpi=100, physical_page_size=True))

    [(width, height)] = _sizes(base_dir / "4-export" / "invoice-A.pdf")
    assert width == pytest.approx(595, abs=1)
    assert height == pytest.approx(842, abs=1)


def test_reencode_setting_is_applied(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    pdf_factory("doc.pdf", pages=3, size=(200, 200), directory=base_dir / "1-pdfs")
    config = PipelineConfig.for_base_dir(base_dir, reencode=ReencodeSettings(enabled=True))

    with patch("pdfshieldx.reassembler.reencode", wraps=reencode) as spy:
        report = Pipeline(config).run()

    assert report.success == 1
    assert spy.call_count == 3
    assert len(PdfReader(str(base_dir / "4-export" / "doc.pdf")).pages) == 3


def test_stale_rasterized_directories_are_removed(base_dir: Path, pdf_factory, jpeg_factory, fake_pdftoppm) -> None:
    stale = base_dir / "3-pdf-to-images" / "old_images"
    jpeg_factory(stale / "page_1.jpg", (10, 10))
    pdf_factory("new.pdf", pages=1, directory=base_dir / "1-pdfs")

    report = run_pipeline(PipelineConfig.for_base_dir(base_dir))

    assert not stale.exists()
    assert not (base_dir / "4-export" / "old.pdf").exists()
    assert [result.doc_id for result in report.results] == ["new"]


def test_missing_watermark_fails_every_document(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    (base_dir / "watermark.png").unlink()
    for name in ("a.pdf", "b.pdf", "c.pdf"):
        pdf_factory(name, pages=1, directory=base_dir / "1-pdfs")

    report = run_pipeline(PipelineConfig.for_base_dir(base_dir))

    assert report.failure == 3
    assert report.exit_code == 1
    assert {result.error_type for result in report.results} == {"MissingAssetError"}
    assert {result.failed_stage for result in report.results} == {Stage.WATERMARK}
    assert list((base_dir / "2-watermarks").iterdir()) == []
    assert list((base_dir / "4-export").iterdir()) == []


def test_missing_tool_reports_hint(base_dir: Path, pdf_factory) -> None:
    pdf_factory("a.pdf", pages=1, directory=base_dir / "1-pdfs")

    with patch("pdfshieldx.rasterizer.which", return_value=None):
        report = run_pipeline(PipelineConfig.for_base_dir(base_dir))

    result = report.get("a")
    assert result.status is DocumentStatus.FAILED
    assert result.failed_stage is Stage.RASTERIZE
    assert result.error_type == "RasterizationError"
    assert "install" in result.hint.lower()
    assert (base_dir / "2-watermarks" / "a.pdf").exists()
    assert not (base_dir / "4-export" / "a.pdf").exists()


def test_one_failing_document_does_not_stop_the_batch(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    inputs = base_dir / "1-pdfs"
    pdf_factory("a.pdf", pages=1, directory=inputs)
    pdf_factory("broken.pdf", pages=2, directory=inputs)
    (inputs / "corrupt.pdf").write_text("not a pdf")
    pdf_factory("z.pdf", pages=2, directory=inputs)

    report = run_pipeline(PipelineConfig.for_base_dir(base_dir))

    assert (report.total, report.success, report.failure) == (4, 2, 2)
    assert report.get("broken").failed_stage is Stage.RASTERIZE
    assert report.get("corrupt").failed_stage is Stage.WATERMARK
    assert report.get("corrupt").error_type == "InvalidPDFError"
    assert not (base_dir / "3-pdf-to-images" / "broken_images").exists()
    assert sorted(path.name for path in (base_dir / "4-export").iterdir()) == ["a.pdf", "z.pdf"]


def test_rerun_produces_identical_exports(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    pdf_factory("invoice-A.pdf", pages=2, directory=base_dir / "1-pdfs")
    config = PipelineConfig.for_base_dir(base_dir)
    exported = base_dir / "4-export" / "invoice-A.pdf"

    run_pipeline(config)
    first = exported.read_bytes()
    run_pipeline(config)

    assert exported.read_bytes() == first


def test_extension_match_is_case_insensitive(base_dir: Path, pdf_factory) -> None:
    inputs = base_dir / "1-pdfs"
    pdf_factory("A.PDF", pages=1, directory=inputs)
    pdf_factory("b.pdf", pages=1, directory=inputs)
    (inputs / "notes.txt").write_text("skip me")
    (inputs / "folder.pdf").mkdir()

    assert [path.name for path in find_pdf_files(inputs)] == ["A.PDF", "b.pdf"]


def test_missing_input_directory_is_fatal(tmp_path: Path) -> None:
    config = PipelineConfig.for_base_dir(tmp_path / "nowhere")

    with pytest.raises(DirectoryNotFoundError):
        run_pipeline(config)
    assert not (tmp_path / "nowhere" / "2-watermarks").exists()


def test_empty_input_directory(base_dir: Path) -> None:
    report = run_pipeline(PipelineConfig.for_base_dir(base_dir))
    assert report.total == 0
    assert report.exit_code == 0


def test_progress_callback_sees_every_stage(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    pdf_factory("a.pdf", pages=1, directory=base_dir / "1-pdfs")
    calls = []

    Pipeline(
        PipelineConfig.for_base_dir(base_dir),
        progress_callback=lambda doc_id, stage, index, total: calls.append((doc_id, stage, index, total)),
    ).run()

    assert calls == [
        ("a", Stage.WATERMARK, 1, 1),
        ("a", Stage.RASTERIZE, 1, 1),
        ("a", Stage.REASSEMBLE, 1, 1),
    ]
