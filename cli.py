import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from logweave.aggregator import LogAggregator
from logweave.export import (
    EXPORT_FORMATS,
    ExportError,
    export_filename,
    export_records,
    truncate_message,
)
from logweave.ingest import LineIngestor
from logweave.severity import Severity, normalize_severity
from settings import Settings


logger = logging.getLogger("logweave.cli")


# ---------------- CLI ----------------

def parse_args(argv: Optional[List[str]], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="logweave",
        description="Normalize, merge and export logs from several services",
    )
    parser.add_argument(
        "sources",
        nargs="+",
        metavar="FILE[=SERVICE]",
        help="log file to read, optionally tagged with a service name",
    )
    parser.add_argument(
        "--service",
        default=None,
        help="service name for sources without an explicit tag "
             "(default: file stem)",
    )
    parser.add_argument(
        "--min-severity",
        default=settings.min_severity,
        help="drop records below this level (e.g. warn, error)",
    )
    parser.add_argument(
        "--only-service",
        action="append",
        default=[],
        metavar="NAME",
        help="keep only records from this service (repeatable)",
    )
    parser.add_argument(
        "--format",
        default=settings.export_format,
        help=f"export format: {', '.join(EXPORT_FORMATS)}",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="output file, or a directory to get a generated file name "
             "(default: stdout)",
    )
    parser.add_argument(
        "--max-message-length",
        type=int,
        default=settings.max_message_length,
        help="truncate messages longer than this (0 = never)",
    )

    args = parser.parse_args(argv)

    if args.min_severity:
        level = normalize_severity(args.min_severity)
        if level == Severity.UNKNOWN and args.min_severity.strip().upper() != "UNKNOWN":
            parser.error(f"unknown severity: {args.min_severity}")
        args.min_severity = level
    else:
        args.min_severity = None

    return args


# ---------------- Helpers ----------------

def split_source(source: str, default_service: Optional[str]) -> Tuple[Path, str]:
    """'app.log=api' -> (Path('app.log'), 'api')"""
    if "=" in source:
        path, service = source.rsplit("=", 1)
        return Path(path), service
    path = Path(source)
    return path, default_service if default_service is not None else path.stem


def read_sources(sources: List[Tuple[Path, str]]) -> Iterator[Tuple[str, str]]:
    for path, service in sources:
        logger.debug("reading %s as %r", path, service)
        with path.open(encoding="utf-8", errors="replace") as f:
            for line in f:
                yield line, service


def resolve_output(output: str, services: List[str], extension: str) -> Path:
    path = Path(output)
    if path.is_dir():
        service = services[0] if len(services) == 1 else ""
        return path / export_filename(service, extension)
    return path


# ---------------- Main ----------------

def main(argv: Optional[List[str]] = None) -> int:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"logweave: {e}", file=sys.stderr)
        return 2
    args = parse_args(argv, settings)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    sources = [split_source(s, args.service) for s in args.sources]

    # ---- Ingest ----
    ingestor = LineIngestor()
    aggregator = LogAggregator()

    try:
        aggregator.add(ingestor.ingest(read_sources(sources)))
    except OSError as e:
        logger.error("failed to read logs: %s", e)
        return 1

    stats = ingestor.stats
    logger.info("Ingestion summary")
    logger.info("  Parsed lines  : %d", stats.parsed)
    logger.info("  Skipped blank : %d", stats.skipped)
    for fmt, count in stats.by_format.items():
        logger.info("  %-13s : %d", fmt, count)

    # ---- Merge / filter ----
    records = aggregator.merged_filtered(
        min_severity=args.min_severity,
        services=args.only_service,
    )

    if args.max_message_length > 0:
        records = [
            replace(r, message=truncate_message(r.message, args.max_message_length))
            for r in records
        ]

    logger.info("Returning %d of %d records", len(records), aggregator.count())

    # ---- Export ----
    try:
        result = export_records(records, args.format)
    except ExportError as e:
        logger.error("%s", e)
        return 1

    if args.output is None:
        sys.stdout.buffer.write(result.content)
        sys.stdout.buffer.flush()
        return 0

    target = resolve_output(args.output, aggregator.services(), result.extension)
    try:
        target.write_bytes(result.content)
    except OSError as e:
        logger.error("failed to write %s: %s", target, e)
        return 1

    logger.info("Wrote %s", target)
    return 0


if __name__ == "__main__":
    sys.exit(main())
