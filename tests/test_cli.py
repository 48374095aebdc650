"""Tests for the command-line interface and CSV export."""

import csv
import json
from collections.abc import Iterator
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import RECEIPT_TEXT, FakeAI, FakeEngine, make_factory
from receipt_ocr.cli import (
    _find_receipts,
    _write_csv,
    main,
    process_folder,
    result_to_dict,
)
from receipt_ocr.exceptions import RecognitionError
from receipt_ocr.extraction.merge import OCRResult
from receipt_ocr.ocr.engine_handle import EngineHandle
from receipt_ocr.processor import InvoiceProcessor
from receipt_ocr.utils.config import AppConfig, OCRConfig


def _stub_processor(config: AppConfig, factory=None) -> InvoiceProcessor:
    handle = EngineHandle(config.ocr, factory=factory or make_factory(FakeEngine()))
    return InvoiceProcessor(config, engine=handle, ai_extractor=FakeAI())


def _failing_processor(config: AppConfig) -> InvoiceProcessor:
    def factory(ocr_config: OCRConfig) -> FakeEngine:
        raise RecognitionError("Tesseract is not installed or not on PATH")

    return _stub_processor(config, factory)


@pytest.fixture(autouse=True)
def _quiet_logging() -> Iterator[None]:
    with patch("receipt_ocr.cli.setup_logging"):
        yield


@pytest.fixture
def stub_processor() -> Iterator[None]:
    with patch("receipt_ocr.cli.InvoiceProcessor", side_effect=_stub_processor):
        yield


class TestResultToDict:
    """Tests for JSON conversion of results."""

    def test_amount_rendered_exactly(self) -> None:
        result = OCRResult(text="x", amount=Decimal("1850.53"), date="28.07.2023")
        data = result_to_dict(result)
        assert data["amount"] == "1850.53"
        assert data["suggestion"]["date"] == "2023-07-28"
        json.dumps(data)

    def test_absent_amount(self) -> None:
        assert result_to_dict(OCRResult(text=""))["amount"] is None


class TestFindReceipts:
    """Tests for receipt image discovery."""

    def test_find_images(self, tmp_path: Path) -> None:
        (tmp_path / "b.png").touch()
        (tmp_path / "a.JPG").touch()
        (tmp_path / "c.jpeg").touch()
        (tmp_path / "notes.txt").touch()
        (tmp_path / "scan.pdf").touch()
        files = _find_receipts(tmp_path)
        assert [f.name for f in files] == ["a.JPG", "b.png", "c.jpeg"]

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert _find_receipts(tmp_path) == []


class TestWriteCsv:
    """Tests for CSV writing."""

    def test_write_csv_creates_file(self, tmp_path: Path) -> None:
        rows = [{"filename": "a.png", "status": "success", "amount": Decimal("12.50")}]
        output = tmp_path / "out" / "results.csv"
        _write_csv(rows, output)

        with open(output, newline="", encoding="utf-8") as f:
            written = list(csv.DictReader(f))
        assert written[0]["filename"] == "a.png"
        assert written[0]["amount"] == "12.50"
        assert written[0]["vendor"] == ""

    def test_write_csv_empty_results(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([], output)
        assert not output.exists()


class TestProcessFolder:
    """Tests for batch processing."""

    def test_batch_success(
        self, tmp_path: Path, png_bytes: bytes, stub_processor: None
    ) -> None:
        (tmp_path / "one.png").write_bytes(png_bytes)
        (tmp_path / "two.png").write_bytes(png_bytes)
        output = tmp_path / "results.csv"

        summary = process_folder(tmp_path, output, mode="heuristic")

        assert summary == {"total": 2, "successful": 2, "failed": 0}
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["filename"] for r in rows] == ["one.png", "two.png"]
        assert rows[0]["amount"] == "1850.53"
        assert rows[0]["vendor"] == "HIRFANLI PETROL A.S."

    def test_batch_continues_after_bad_file(
        self, tmp_path: Path, png_bytes: bytes, stub_processor: None
    ) -> None:
        (tmp_path / "bad.png").write_bytes(b"not an image")
        (tmp_path / "good.png").write_bytes(png_bytes)
        output = tmp_path / "results.csv"

        summary = process_folder(tmp_path, output, mode="heuristic")

        assert summary == {"total": 2, "successful": 1, "failed": 1}
        with open(output, newline="", encoding="utf-8") as f:
            rows = {r["filename"]: r for r in csv.DictReader(f)}
        assert rows["bad.png"]["status"] == "failed"
        assert rows["bad.png"]["error"]
        assert rows["good.png"]["status"] == "success"

    def test_batch_empty_folder(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        summary = process_folder(tmp_path, output)
        assert summary == {"total": 0, "successful": 0, "failed": 0}
        assert not output.exists()


class TestMain:
    """Tests for the CLI argument parser and main entry point."""

    def test_no_command_shows_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "extract" in capsys.readouterr().out

    def test_extract_nonexistent_file(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["extract", "/nonexistent/file.png"])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_batch_not_a_directory(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", str(tmp_path / "missing")])
        assert exc_info.value.code == 1
        assert "not a directory" in capsys.readouterr().err

    def test_invalid_mode_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["extract", str(tmp_path / "r.png"), "--mode", "magic"])
        assert exc_info.value.code == 2

    def test_extract_prints_json(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        stub_processor: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image = tmp_path / "receipt.png"
        image.write_bytes(png_bytes)

        main(["extract", str(image), "--mode", "ai_text"])

        data = json.loads(capsys.readouterr().out)
        assert data["filename"] == "receipt.png"
        assert data["amount"] == "1850.53"
        assert data["category"] == "Ulaşım"
        assert data["ai_enhanced"] is True

    def test_extract_verbose_progress(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        stub_processor: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image = tmp_path / "receipt.png"
        image.write_bytes(png_bytes)

        main(["extract", str(image), "-v", "--mode", "heuristic"])

        err = capsys.readouterr().err
        assert "Recognizing text" in err
        assert "[100%] Done" in err

    def test_extract_writes_output_file(
        self, tmp_path: Path, png_bytes: bytes, stub_processor: None
    ) -> None:
        image = tmp_path / "receipt.png"
        image.write_bytes(png_bytes)
        output = tmp_path / "out" / "result.json"

        main(["extract", str(image), "-o", str(output), "--mode", "heuristic"])

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["invoice_number"] == "276850-5"
        assert data["detected_amounts"][0]["value"] == "1850.53"

    def test_parse_text_file(
        self,
        tmp_path: Path,
        stub_processor: None,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        text_file = tmp_path / "receipt.txt"
        text_file.write_text(RECEIPT_TEXT, encoding="utf-8")

        main(["parse", str(text_file)])

        data = json.loads(capsys.readouterr().out)
        assert data["amount"] == "1850.53"
        assert data["date"] == "28.07.2023"
        assert data["ai_enhanced"] is False
        assert data["suggestion"]["date"] == "2023-07-28"

    def test_recognition_failure_exit_code(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image = tmp_path / "receipt.png"
        image.write_bytes(png_bytes)

        with patch("receipt_ocr.cli.InvoiceProcessor", side_effect=_failing_processor):
            with pytest.raises(SystemExit) as exc_info:
                main(["extract", str(image)])

        assert exc_info.value.code == 2
        assert "manually" in capsys.readouterr().err
