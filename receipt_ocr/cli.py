"""Command-line interface for receipt extraction and CSV export.

Provides subcommands to extract fields from a single receipt image, to parse
receipt text that was recognized elsewhere, and to process a folder of
receipt images into a CSV file.
"""

import argparse
import asyncio
import csv
import json
import sys
import time
from pathlib import Path

from receipt_ocr.exceptions import ReceiptOCRError
from receipt_ocr.extraction.merge import OCRResult
from receipt_ocr.extraction.prefill import build_form_suggestion
from receipt_ocr.ocr.progress import RecognitionProgress
from receipt_ocr.processor import ExtractionMode, InvoiceProcessor
from receipt_ocr.utils.config import load_config
from receipt_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_MIME_TYPES = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg"}
_CSV_COLUMNS = [
    "filename",
    "status",
    "amount",
    "date",
    "vendor",
    "invoice_number",
    "category",
    "confidence",
    "ai_enhanced",
    "processing_time_s",
    "error",
]


def _mime_type(file_path: Path) -> str:
    return _MIME_TYPES.get(file_path.suffix.lower(), "image/jpeg")


def _find_receipts(input_dir: Path) -> list[Path]:
    """Find all PNG and JPEG files in a directory, sorted by name."""
    return sorted(
        p
        for p in input_dir.iterdir()
        if p.is_file() and p.suffix.lower() in _MIME_TYPES
    )


def result_to_dict(result: OCRResult) -> dict[str, object]:
    """Convert an extraction result to a JSON-serializable dict.

    Amounts are rendered as strings to keep their exact decimal value.
    """
    suggestion = build_form_suggestion(result)
    return {
        "amount": str(result.amount) if result.amount is not None else None,
        "date": result.date,
        "vendor": result.vendor,
        "invoice_number": result.invoice_number,
        "category": result.category,
        "confidence": round(result.confidence, 2),
        "ai_enhanced": result.ai_enhanced,
        "ai_error": result.ai_error,
        "detected_amounts": [
            {"value": str(c.value), "matched_text": c.matched_text}
            for c in result.detected_amounts
        ],
        "suggestion": {
            "title": suggestion.title,
            "date": suggestion.date_iso,
        },
        "raw_text": result.text,
    }


def _print_progress(progress: RecognitionProgress) -> None:
    print(f"[{progress.fraction * 100:3.0f}%] {progress.stage}", file=sys.stderr)


async def _run_extract(
    file_path: Path, mode: str | None, verbose: bool
) -> dict[str, object]:
    processor = InvoiceProcessor(load_config())
    try:
        result = await processor.process(
            file_path.read_bytes(),
            mime_type=_mime_type(file_path),
            mode=mode,
            on_progress=_print_progress if verbose else None,
        )
    finally:
        await processor.close()
    return {"filename": file_path.name, **result_to_dict(result)}


def extract_image(
    file_path: Path, mode: str | None = None, verbose: bool = False
) -> dict[str, object]:
    """Process a single receipt image and return structured results.

    Args:
        file_path: Path to the receipt image.
        mode: Extraction mode name; the configured default when ``None``.
        verbose: Whether to print progress to stderr.

    Returns:
        Dictionary with the filename, extracted fields, and raw text.
    """
    return asyncio.run(_run_extract(file_path, mode, verbose))


async def _run_parse(text: str, use_ai: bool) -> dict[str, object]:
    processor = InvoiceProcessor(load_config())
    try:
        result = await processor.process_text(text, use_ai=use_ai)
    finally:
        await processor.close()
    return result_to_dict(result)


def parse_text(file_path: Path, use_ai: bool = False) -> dict[str, object]:
    """Extract fields from a text file holding recognized receipt text."""
    text = file_path.read_text(encoding="utf-8")
    return asyncio.run(_run_parse(text, use_ai))


async def _run_batch(
    files: list[Path], mode: str | None, verbose: bool
) -> list[dict[str, object]]:
    processor = InvoiceProcessor(load_config())
    rows: list[dict[str, object]] = []
    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                result = await processor.process(
                    file_path.read_bytes(),
                    mime_type=_mime_type(file_path),
                    mode=mode,
                )
            except (ReceiptOCRError, OSError) as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                rows.append(
                    {"filename": file_path.name, "status": "failed", "error": str(exc)}
                )
                continue

            rows.append(
                {
                    "filename": file_path.name,
                    "status": "success",
                    "amount": result.amount,
                    "date": result.date,
                    "vendor": result.vendor,
                    "invoice_number": result.invoice_number,
                    "category": result.category,
                    "confidence": round(result.confidence, 2),
                    "ai_enhanced": result.ai_enhanced,
                    "processing_time_s": round(time.time() - start_time, 2),
                    "error": result.ai_error,
                }
            )
    finally:
        await processor.close()
    return rows


def process_folder(
    input_dir: Path,
    output_csv: Path,
    mode: str | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process every receipt image in a folder and export results to CSV.

    The recognition engine is started once and shared by all files. A file
    that cannot be decoded or recognized is recorded as failed and the batch
    continues.

    Args:
        input_dir: Directory containing receipt images.
        output_csv: Path for the output CSV file.
        mode: Extraction mode name; the configured default when ``None``.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_receipts(input_dir)
    if not files:
        logger.warning("No receipt images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d receipt images to process", len(files))
    rows = asyncio.run(_run_batch(files, mode, verbose))

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    failed = sum(1 for row in rows if row["status"] == "failed")
    summary = {
        "total": len(files),
        "successful": len(files) - failed,
        "failed": failed,
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write one CSV row per processed receipt."""
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def _emit(result: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(result, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Receipt OCR field extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    modes = [m.value for m in ExtractionMode]

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser("extract", help="Process a receipt image")
    extract_parser.add_argument("file", type=Path, help="Receipt image (PNG or JPEG)")
    extract_parser.add_argument(
        "-m",
        "--mode",
        choices=modes,
        default=None,
        help="Extraction mode (default: from configuration)",
    )
    extract_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    extract_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print progress"
    )

    parse_parser = subparsers.add_parser(
        "parse", help="Extract fields from recognized receipt text"
    )
    parse_parser.add_argument("file", type=Path, help="UTF-8 text file")
    parse_parser.add_argument(
        "--ai", action="store_true", help="Use AI extraction when configured"
    )
    parse_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser(
        "batch", help="Process a folder of receipt images"
    )
    batch_parser.add_argument("input_dir", type=Path, help="Input directory")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("output/receipts.csv"),
        help="Output CSV path (default: output/receipts.csv)",
    )
    batch_parser.add_argument(
        "-m",
        "--mode",
        choices=modes,
        default=None,
        help="Extraction mode (default: from configuration)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print per-file progress"
    )

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.mode, args.verbose)
        return

    if args.command not in ("extract", "parse"):
        parser.print_help()
        sys.exit(0)

    if not args.file.exists():
        print(f"Error: {args.file} does not exist", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "extract":
            result = extract_image(args.file, args.mode, args.verbose)
        else:
            result = parse_text(args.file, args.ai)
    except ReceiptOCRError as exc:
        logger.error("Extraction failed for %s: %s", args.file, exc)
        print(f"Error: {exc}. Enter the receipt details manually.", file=sys.stderr)
        sys.exit(2)

    _emit(result, args.output)


if __name__ == "__main__":
    main()
