"""Command-line interface for the receipt pipeline.

Provides subcommands to parse OCR text, scan and compress receipt photos,
upload them to the configured storage, and summarize an exported ledger.
"""

import argparse
import json
import sys
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path

from finance_receipts.errors import DecodeError, EncodeError, RecognitionError
from finance_receipts.extraction.receipt_extractor import extract
from finance_receipts.ledger.mapping import account_from_row, entry_from_row
from finance_receipts.ledger.summary import (
    account_balance,
    annual_summary,
    monthly_summary,
)
from finance_receipts.ocr.scanner import ReceiptScanner
from finance_receipts.ocr.tesseract_engine import TesseractEngine
from finance_receipts.preprocessing.compress import compress
from finance_receipts.storage.base import StaticIdentity
from finance_receipts.storage.factory import build_storage
from finance_receipts.utils.config import AppConfig, load_config
from finance_receipts.utils.logger import get_logger, setup_logging
from finance_receipts.workflow.uploader import ReceiptUploader

logger = get_logger(__name__)


def _json_default(value: object) -> str:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _emit(payload: object, output: Path | None = None) -> None:
    """Print a JSON payload or write it to a file."""
    output_str = json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def parse_text(source: Path | None) -> dict[str, str | None]:
    """Extract receipt fields from a text file, or stdin when ``None``."""
    text = sys.stdin.read() if source is None else source.read_text()
    return extract(text).to_dict()


def scan_image(config: AppConfig, image: Path, lang: str | None = None) -> dict:
    """Run OCR on a receipt photo and extract its fields."""
    engine = TesseractEngine(
        tesseract_cmd=config.ocr.tesseract_cmd,
        default_lang=config.ocr.default_lang,
        psm=config.ocr.psm,
    )
    receipt = ReceiptScanner(engine, lang=lang).scan(image.read_bytes())
    return {"filename": image.name, **receipt.to_dict()}


def compress_image(
    image: Path, output: Path, max_width: int, quality: float
) -> dict[str, object]:
    """Compress a receipt photo to a JPEG file."""
    compressed = compress(image, max_width=max_width, quality=quality)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(compressed.data)
    return {
        "output": str(output),
        "width": compressed.width,
        "height": compressed.height,
        "original_size": compressed.original_size,
        "compressed_size": compressed.size,
    }


def upload_image(
    config: AppConfig, image: Path, user_id: str, ocr_text: str | None = None
) -> dict[str, object] | None:
    """Upload a receipt photo for a user to the configured storage."""
    uploader = ReceiptUploader(
        build_storage(config.storage),
        StaticIdentity(user_id),
        compression=config.compression,
        storage_config=config.storage,
    )
    result = uploader.upload(image, ocr_text=ocr_text)
    return asdict(result) if result else None


def summarize_ledger(ledger: Path, year: int, month: int | None = None) -> dict:
    """Summarize an exported ledger of backend rows.

    The file holds ``{"contas": [...], "lancamentos": [...]}`` as exported
    from the backend tables.
    """
    with open(ledger) as f:
        raw = json.load(f)
    accounts = [account_from_row(row) for row in raw.get("contas", [])]
    entries = [entry_from_row(row) for row in raw.get("lancamentos", [])]

    if month is not None:
        summary = monthly_summary(entries, month, year)
        result = {**asdict(summary), "balance": summary.balance}
    else:
        summary = annual_summary(entries, year)
        result = {
            **asdict(summary),
            "balance": summary.balance,
            "months": [{**asdict(m), "balance": m.balance} for m in summary.months],
        }

    result["accounts"] = {
        account.name: account_balance(accounts, entries, account.id)
        for account in accounts
    }
    return result


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Receipt OCR, compression and upload tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser("parse", help="Extract fields from OCR text")
    parse_parser.add_argument(
        "file", type=Path, nargs="?", help="Text file (default: stdin)"
    )

    scan_parser = subparsers.add_parser("scan", help="OCR a receipt photo")
    scan_parser.add_argument("image", type=Path, help="Receipt image")
    scan_parser.add_argument("--lang", help="Tesseract language (default: config)")
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    compress_parser = subparsers.add_parser("compress", help="Compress a photo")
    compress_parser.add_argument("image", type=Path, help="Receipt image")
    compress_parser.add_argument(
        "-o", "--output", type=Path, required=True, help="Output JPEG file"
    )
    compress_parser.add_argument("--max-width", type=int, help="Maximum width (px)")
    compress_parser.add_argument("--quality", type=float, help="JPEG quality (0-1]")

    upload_parser = subparsers.add_parser("upload", help="Upload a receipt photo")
    upload_parser.add_argument("image", type=Path, help="Receipt image")
    upload_parser.add_argument("--user", required=True, help="Owner user id")
    upload_parser.add_argument("--ocr-text", type=Path, help="OCR text to attach")

    summary_parser = subparsers.add_parser("summary", help="Summarize a ledger")
    summary_parser.add_argument("ledger", type=Path, help="Exported ledger JSON")
    summary_parser.add_argument("--year", type=int, required=True, help="Year")
    summary_parser.add_argument("--month", type=int, help="Month (1-12)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "parse":
        if args.file is not None and not args.file.exists():
            _fail(f"{args.file} does not exist")
        _emit(parse_text(args.file))
    elif args.command == "scan":
        if not args.image.exists():
            _fail(f"{args.image} does not exist")
        try:
            _emit(scan_image(config, args.image, args.lang), args.output)
        except RecognitionError as exc:
            _fail(str(exc))
    elif args.command == "compress":
        try:
            result = compress_image(
                args.image,
                args.output,
                args.max_width or config.compression.max_width,
                args.quality or config.compression.quality,
            )
        except (DecodeError, EncodeError, ValueError) as exc:
            _fail(str(exc))
        _emit(result)
    elif args.command == "upload":
        if not args.image.exists():
            _fail(f"{args.image} does not exist")
        ocr_text = args.ocr_text.read_text() if args.ocr_text else None
        result = upload_image(config, args.image, args.user, ocr_text)
        if result is None:
            _fail("receipt upload failed, see log for details")
        _emit(result)
    elif args.command == "summary":
        if not args.ledger.exists():
            _fail(f"{args.ledger} does not exist")
        _emit(summarize_ledger(args.ledger, args.year, args.month))
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
