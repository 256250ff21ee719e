"""Command-line interface for timetable extraction and CSV export.

Provides subcommands for extracting a single document to JSON, processing
a folder of documents into a CSV of time blocks, and serving the API.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from timegrid.extraction.hybrid import ExtractionResult, HybridProcessor
from timegrid.ocr.router import guess_mime_type
from timegrid.utils.config import AppConfig, load_config
from timegrid.utils.logger import get_logger, setup_logging
from timegrid.utils.schedule import sort_timeblocks
from timegrid.utils.storage import is_supported_mime_type

logger = get_logger(__name__)

_CSV_COLUMNS = [
    "filename",
    "provider",
    "used_fallback",
    "day_of_week",
    "start_time",
    "end_time",
    "duration",
    "title",
    "description",
    "subject",
    "activity_type",
    "color",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """List the uploadable documents directly inside a folder, by name."""
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and is_supported_mime_type(guess_mime_type(path))
    )


def _rows_for(file_path: Path, result: ExtractionResult) -> list[dict[str, object]]:
    return [
        {
            "filename": file_path.name,
            "provider": result.provider or "",
            "used_fallback": result.used_fallback,
            "error": result.error or "",
            **block.as_record(),
        }
        for block in sort_timeblocks(result.timeblocks)
    ]


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Extract every timetable in a folder and export one CSV row per block.

    Documents where extraction fell back to the placeholder schedule are still
    exported, flagged by the ``used_fallback`` column.

    Returns:
        Counts of documents seen, documents extracted by a provider, documents
        that fell back, and block rows written.
    """
    documents = _find_documents(input_dir)
    summary = {"total": len(documents), "extracted": 0, "fallback": 0, "blocks": 0}
    if not documents:
        logger.warning("No timetable documents in %s", input_dir)
        return summary

    processor = HybridProcessor(config or load_config())
    logger.info("Extracting %d timetable documents from %s", len(documents), input_dir)

    rows: list[dict[str, object]] = []
    for position, document in enumerate(documents, 1):
        if verbose:
            print(f"[{position}/{len(documents)}] {document.name}")

        started = time.perf_counter()
        result = processor.process_file(document, document_id=document.name)
        summary["fallback" if result.used_fallback else "extracted"] += 1
        rows.extend(_rows_for(document, result))
        logger.info(
            "%s: %d blocks via %s in %.2fs",
            document.name,
            len(result.timeblocks),
            result.provider or "fallback",
            time.perf_counter() - started,
        )

    summary["blocks"] = len(rows)
    _write_csv(rows, output_csv)
    logger.info("Wrote %d block rows to %s", len(rows), output_csv)
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    rule = "-" * 40
    print(rule)
    print("Batch Processing Complete")
    print(
        f"{summary['total']} documents: {summary['extracted']} extracted, "
        f"{summary['fallback']} fallback"
    )
    print(f"{summary['blocks']} time blocks written to {output_csv}")
    print(rule)


def extract_single(file_path: Path, config: AppConfig | None = None) -> dict[str, object]:
    """Extract one timetable document.

    Args:
        file_path: Image, PDF or Word document to read.
        config: Application configuration; loaded from disk when omitted.

    Returns:
        The extraction result as a JSON-ready dict with the filename added and
        blocks in weekly grid order.
    """
    result = HybridProcessor(config or load_config()).process_file(file_path)
    payload = result.to_dict()
    payload["timeblocks"] = sort_timeblocks(payload["timeblocks"])
    return {"filename": file_path.name, **payload}


def _run_extract(args: argparse.Namespace, config: AppConfig) -> None:
    if not args.file.is_file():
        print(f"Error: no such file: {args.file}", file=sys.stderr)
        sys.exit(1)

    rendered = json.dumps(extract_single(args.file, config), indent=2)
    if args.output is None:
        print(rendered)
        return
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(rendered)
    print(f"Timeblocks saved to {args.output}")


def _run_batch(args: argparse.Namespace, config: AppConfig) -> None:
    if not args.input_dir.is_dir():
        print(f"Error: not a directory: {args.input_dir}", file=sys.stderr)
        sys.exit(1)
    process_folder(args.input_dir, args.output, config, args.verbose)


def _run_serve(args: argparse.Namespace, config: AppConfig) -> None:
    from timegrid.main import serve

    serve(config, host=args.host, port=args.port)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timegrid",
        description="Turn timetable documents into weekly time blocks",
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config YAML")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    extract = commands.add_parser("extract", help="Extract one document to JSON")
    extract.add_argument("file", type=Path, help="Image, PDF or Word document")
    extract.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout")
    extract.set_defaults(handler=_run_extract)

    batch = commands.add_parser("batch", help="Extract a folder of documents to CSV")
    batch.add_argument("input_dir", type=Path, help="Folder of timetable documents")
    batch.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("timeblocks.csv"),
        help="CSV destination (default: timeblocks.csv)",
    )
    batch.add_argument("-v", "--verbose", action="store_true", help="Print each document")
    batch.set_defaults(handler=_run_batch)

    for sub in (extract, batch):
        sub.add_argument(
            "--no-standard-blocks",
            action="store_true",
            help="Do not add registration, break, lunch and similar blocks",
        )

    serve = commands.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve.add_argument("--port", type=int, default=8000, help="Port")
    serve.set_defaults(handler=_run_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``timegrid`` command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)
    if getattr(args, "no_standard_blocks", False):
        config.extraction.add_standard_blocks = False

    args.handler(args, config)


if __name__ == "__main__":
    main()
