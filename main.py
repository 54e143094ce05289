#!/usr/bin/env python3
"""
Invoice Archive System - Main Entry Point.

Command-line interface to the ingestion pipeline, the archive store and
the statistics aggregator.

Usage:
    python main.py ingest scan1.pdf photo.jpg
    python main.py ingest scan1.pdf --archive --method 现金
    python main.py archive receipt.pdf --item 办公用品 --amount 88 --method 现金 --date 2024-03-02
    python main.py list
    python main.py stats --heatmap
    python main.py delete archive_data/2024-03/20240302-办公用品-现金-88元.pdf
    python main.py export 2024-03-02
    python main.py history

Version: 1.0.0
"""

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from invoice_archive.archive import ActivityLog, ArchiveStore
from invoice_archive.models import (
    InvoiceRecord,
    StatusEvent,
    advance,
    apply_edits,
)
from invoice_archive.ocr_engine.normalizers import DateNormalizer
from invoice_archive.statistics import aggregate, build_heatmap
from invoice_archive.utils.exceptions import InvoiceArchiveError, PartialBatchFailure
from invoice_archive.utils.logger import get_logger, setup_logger_from_config


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Archive System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Recognize invoices and print the records for review:
        python main.py ingest scan.pdf photo.jpg

    Archive a file with manually entered fields:
        python main.py archive receipt.pdf --item 办公用品 --amount 88 --method 现金

    Export one day's invoices:
        python main.py export 2024-03-02
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser("ingest", help="Recognize invoice files")
    ingest_parser.add_argument("files", nargs="+", help="PDF or image files")
    ingest_parser.add_argument("--date", default=None, help="Date applied to every record")
    ingest_parser.add_argument("--method", default=None, help="Payment method applied to every record")
    ingest_parser.add_argument(
        "--archive",
        action="store_true",
        help="Archive the recognized records right away"
    )

    archive_parser = subparsers.add_parser("archive", help="Archive a file with manual fields")
    archive_parser.add_argument("file", help="File to archive (it is moved)")
    archive_parser.add_argument("--item", required=True, help="Item name")
    archive_parser.add_argument("--amount", required=True, help="Amount in CNY")
    archive_parser.add_argument("--method", default=None, help="Payment method")
    archive_parser.add_argument("--date", default=None, help="Invoice date (default: today)")

    subparsers.add_parser("list", help="List the archive grouped by day")

    stats_parser = subparsers.add_parser("stats", help="Print archive statistics as JSON")
    stats_parser.add_argument(
        "--heatmap",
        action="store_true",
        help="Include the days of the last year that had spending"
    )

    delete_parser = subparsers.add_parser("delete", help="Delete archived files")
    delete_parser.add_argument("paths", nargs="+", help="Archived files")

    export_parser = subparsers.add_parser("export", help="Export one day's invoices as a zip")
    export_parser.add_argument("day", help="Day in YYYY-MM-DD format")

    subparsers.add_parser("history", help="Show the activity log")

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load configuration and set up logging.

    Returns:
        Loaded configuration manager.
    """
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config(config)
    if args.debug:
        logger.setLevel(logging.DEBUG)
        for handler in logger.handlers:
            handler.setLevel(logging.DEBUG)

    logger.debug(f"Configuration: {config.config_path}")
    logger.debug(f"Archive root: {config.archive_dir}")

    config.ensure_directories()
    return config


def _parse_day(config: ConfigurationManager, text: Optional[str]):
    if text is None:
        return None

    parsed = DateNormalizer(config).parse(text)
    if parsed is None:
        raise ValueError(f"Unreadable date: {text}")
    return parsed


def _parse_amount(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Unreadable amount: {text}")


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def command_ingest(args, config: ConfigurationManager, store: ArchiveStore, activity_log: ActivityLog) -> int:
    from invoice_archive.input_handler import IngestionPipeline
    from invoice_archive.ocr_engine import BaiduOCRClient

    logger = get_logger(__name__)
    pipeline = IngestionPipeline(config, BaiduOCRClient(config), activity_log=activity_log)

    uploads = []
    for file_name in args.files:
        path = Path(file_name)
        if not path.is_file():
            logger.error(f"File not found: {path}")
            continue
        uploads.append(pipeline.save_upload(path.read_bytes(), path.name))

    records = pipeline.ingest_many(uploads)

    day = _parse_day(config, args.date)
    if day is not None:
        records = pipeline.apply_date_to_all(records, day)
    if args.method:
        records = [apply_edits(r, payment_method=args.method) for r in records]

    if args.archive:
        try:
            records = store.archive_many(records)
        except PartialBatchFailure as e:
            logger.error(str(e))
            _print_json([r.to_dict() for r in e.succeeded])
            return 1

    _print_json([r.to_dict() for r in records])
    return 0


def command_archive(args, config: ConfigurationManager, store: ArchiveStore) -> int:
    path = Path(args.file)

    record = InvoiceRecord(file_name=path.name, file_path=str(path))
    record = advance(record, StatusEvent.START_RECOGNITION)
    record = advance(record, StatusEvent.RECOGNITION_FAILED, raw_ocr_data="Entered manually")

    changes = {
        "item_name": args.item,
        "amount": _parse_amount(args.amount),
        "payment_method": args.method or config.get("archive.default_payment_method", "公务卡"),
    }
    day = _parse_day(config, args.date)
    if day is not None:
        changes["invoice_date"] = day

    archived = store.archive(apply_edits(record, **changes))
    _print_json(archived.to_dict())
    return 0


def command_list(store: ArchiveStore) -> int:
    for group in store.groups():
        print(f"{group.day or '(unknown date)'}  {group.total_count} invoices  {group.total_amount}元")
        for entry in group.entries:
            record = entry.record
            print(f"    {record.amount:>10}元  {record.payment_method:<6}  {record.item_name}  [{entry.file_path}]")
    return 0


def command_stats(args, store: ArchiveStore) -> int:
    snapshot = aggregate(store.list_entries())
    output = snapshot.to_dict()

    if args.heatmap:
        output["heatmap"] = [
            {"day": cell.day.isoformat(), "level": cell.level, "color": cell.color_hex}
            for cell in build_heatmap(snapshot)
            if cell.level
        ]

    _print_json(output)
    return 0


def command_delete(args, store: ArchiveStore) -> int:
    deleted = store.delete_many(args.paths)
    print(f"Deleted {deleted} files")
    return 0


def command_export(args, store: ArchiveStore) -> int:
    group = store.find_group(args.day)
    if group is None:
        print(f"No archived invoices on {args.day}", file=sys.stderr)
        return 1

    print(store.export_group(group))
    return 0


def command_history(activity_log: ActivityLog) -> int:
    for entry in activity_log.entries():
        print(f"{entry.timestamp}  {entry.action:<8}  {entry.details}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        config = initialize_system(args)

        activity_log = ActivityLog(config.activity_log_path)
        store = ArchiveStore.from_config(config, activity_log=activity_log)

        if args.command == "ingest":
            return command_ingest(args, config, store, activity_log)
        if args.command == "archive":
            return command_archive(args, config, store)
        if args.command == "list":
            return command_list(store)
        if args.command == "stats":
            return command_stats(args, store)
        if args.command == "delete":
            return command_delete(args, store)
        if args.command == "export":
            return command_export(args, store)
        if args.command == "history":
            return command_history(activity_log)

        return 1

    except InvoiceArchiveError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
