from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner
from pypdf import PdfReader

from pdfshieldx.cli import cli


def test_run_full_pipeline_writes_report(base_dir: Path, pdf_factory, fake_pdftoppm, tmp_path: Path) -> None:
    pdf_factory("invoice-A.pdf", pages=2, directory=base_dir / "1-pdfs")
    report_path = tmp_path / "reports" / "run.json"

    result = CliRunner().invoke(cli, ["run", str(base_dir), "--dpi", "100", "--report", str(report_path)])

    assert result.exit_code == 0, result.output
    assert "Exported" in result.output
    payload = json.loads(report_path.read_text())
    assert payload["success"] == 1
    assert payload["documents"][0]["document"] == "invoice-A"
    assert len(PdfReader(str(base_dir / "4-export" / "invoice-A.pdf")).pages) == 2


def test_run_exits_non_zero_on_failure_and_prints_hint(base_dir: Path, pdf_factory) -> None:
    pdf_factory("a.pdf", pages=1, directory=base_dir / "1-pdfs")

    with patch("pdfshieldx.rasterizer.which", return_value=None):
        result = CliRunner().invoke(cli, ["run", str(base_dir)])

    assert result.exit_code == 1
    assert "RasterizationError" in result.output
    assert "Hint" in result.output


def test_run_missing_input_directory(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["run", str(tmp_path / "nowhere")])

    assert result.exit_code == 1
    assert "Directory not found" in result.output


def test_run_refuses_images_dir_over_inputs(base_dir: Path, pdf_factory, fake_pdftoppm) -> None:
    source = pdf_factory("invoice-A.pdf", pages=1, directory=base_dir / "1-pdfs")

    result = CliRunner().invoke(cli, ["run", str(base_dir), "--images-dir", str(base_dir / "1-pdfs")])

    assert result.exit_code == 2
    assert "must be different" in result.output
    assert source.exists()


def test_run_with_custom_directories(tmp_path: Path, pdf_factory, watermark_png: Path, fake_pdftoppm) -> None:
    inputs = tmp_path / "in"
    pdf_factory("doc.pdf", pages=1, directory=inputs)

    result = CliRunner().invoke(
        cli,
        [
            "run",
            "--input-dir", str(inputs),
            "--watermarks-dir", str(tmp_path / "wm"),
            "--images-dir", str(tmp_path / "img"),
            "--export-dir", str(tmp_path / "out"),
            "--watermark", str(watermark_png),
        ],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "wm" / "doc.pdf").exists()
    assert (tmp_path / "img" / "doc_images" / "page_1.jpg").exists()
    assert (tmp_path / "out" / "doc.pdf").exists()


def test_watermark_command(pdf_factory, watermark_png: Path, tmp_path: Path) -> None:
    source = pdf_factory("doc.pdf", pages=3)
    output = tmp_path / "out.pdf"

    result = CliRunner().invoke(cli, ["watermark", str(source), str(output), "-w", str(watermark_png)])

    assert result.exit_code == 0, result.output
    assert len(PdfReader(str(output)).pages) == 3


def test_watermark_command_missing_asset(pdf_factory, tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["watermark", str(pdf_factory("doc.pdf")), str(tmp_path / "out.pdf"), "-w", str(tmp_path / "none.png")]
    )
    assert result.exit_code == 1
    assert "Watermark asset not found" in result.output


def test_rasterize_and_reassemble_commands(pdf_factory, tmp_path: Path, fake_pdftoppm) -> None:
    images = tmp_path / "imgs"
    runner = CliRunner()

    rasterized = runner.invoke(cli, ["rasterize", str(pdf_factory("doc.pdf", pages=2)), str(images), "--dpi", "72"])
    reassembled = runner.invoke(cli, ["reassemble", str(images), str(tmp_path / "final.pdf")])

    assert rasterized.exit_code == 0, rasterized.output
    assert reassembled.exit_code == 0, reassembled.output
    assert len(PdfReader(str(tmp_path / "final.pdf")).pages) == 2


def test_rasterize_command_reusing_directory(pdf_factory, tmp_path: Path, fake_pdftoppm) -> None:
    images = tmp_path / "imgs"
    runner = CliRunner()

    runner.invoke(cli, ["rasterize", str(pdf_factory("long.pdf", pages=12)), str(images), "--dpi", "72"])
    rasterized = runner.invoke(cli, ["rasterize", str(pdf_factory("short.pdf", pages=2)), str(images), "--dpi", "72"])
    reassembled = runner.invoke(cli, ["reassemble", str(images), str(tmp_path / "final.pdf")])

    assert rasterized.exit_code == 0, rasterized.output
    assert reassembled.exit_code == 0, reassembled.output
    assert len(PdfReader(str(tmp_path / "final.pdf")).pages) == 2


def test_reassemble_command_without_images(tmp_path: Path) -> None:
    (tmp_path / "empty").mkdir()
    result = CliRunner().invoke(cli, ["reassemble", str(tmp_path / "empty"), str(tmp_path / "x.pdf")])
    assert result.exit_code == 1
    assert "No page images" in result.output


def test_rename_command_dry_run(tmp_path: Path) -> None:
    (tmp_path / "Facture FR1TM2-3.pdf").write_bytes(b"%PDF")

    result = CliRunner().invoke(cli, ["rename", str(tmp_path), "--preset", "invoices", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "planned" in result.output
    assert (tmp_path / "Facture FR1TM2-3.pdf").exists()


def test_rename_command_pattern_is_not_a_preset(tmp_path: Path) -> None:
    (tmp_path / "Facture FR1TM2-3.pdf").write_bytes(b"%PDF")

    result = CliRunner().invoke(cli, ["rename", str(tmp_path), "--pattern", "invoices", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "unmatched" in result.output
    assert "planned" not in result.output


def test_rename_command_requires_one_pattern(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["rename", str(tmp_path)])
    assert result.exit_code == 2


def test_rename_command_invalid_pattern(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["rename", str(tmp_path), "--pattern", "("])
    assert result.exit_code == 2
    assert "Invalid pattern" in result.output
