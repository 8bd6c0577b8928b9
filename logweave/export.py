import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from .ansi import strip_ansi
from .timestamps import format_datetime
from .types import ParsedLogRecord


CSV_HEADER = ("Timestamp", "Service", "Level", "Message")
SEVERITY_WIDTH = 5


class ExportError(ValueError):
    """Raised when records cannot be rendered. Not worth retrying."""


@dataclass(frozen=True)
class ExportResult:
    content: bytes
    content_type: str
    extension: str


def _encode(text: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        # lone surrogates from a badly decoded source
        raise ExportError(f"cannot encode export as UTF-8: {e}") from e


# ---------------- Renderers ----------------

def format_json(records: Sequence[ParsedLogRecord]) -> bytes:
    """Pretty-printed JSON array, 2-space indent."""
    try:
        text = json.dumps(
            [r.to_dict() for r in records],
            indent=2,
            ensure_ascii=False,
        )
    except (TypeError, ValueError) as e:
        raise ExportError(f"cannot render records as JSON: {e}") from e
    return _encode(text)


def format_ndjson(records: Sequence[ParsedLogRecord]) -> bytes:
    """One compact JSON object per line, input order."""
    lines = []
    for r in records:
        try:
            lines.append(
                json.dumps(r.to_dict(), separators=(",", ":"), ensure_ascii=False)
            )
        except (TypeError, ValueError) as e:
            raise ExportError(f"cannot render record as JSON: {e}") from e
        lines.append("\n")
    return _encode("".join(lines))


def format_csv(records: Sequence[ParsedLogRecord]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    try:
        writer.writerow(CSV_HEADER)
        for r in records:
            writer.writerow((
                format_datetime(r.timestamp),
                r.service_name,
                r.severity.value,
                strip_ansi(r.message),
            ))
    except csv.Error as e:
        raise ExportError(f"cannot render records as CSV: {e}") from e

    return _encode(buf.getvalue())


def format_log_line(record: ParsedLogRecord) -> str:
    """
    <timestamp> <severity:5> [<service>] <message>

    The bracketed service segment is dropped when the service is empty.
    """
    service = f"[{record.service_name}] " if record.service_name else ""
    return (
        f"{format_datetime(record.timestamp)} "
        f"{record.severity.value:<{SEVERITY_WIDTH}} "
        f"{service}{strip_ansi(record.message)}"
    )


def format_plain_text(records: Sequence[ParsedLogRecord]) -> bytes:
    return _encode("".join(format_log_line(r) + "\n" for r in records))


def truncate_message(message: str, max_length: int) -> str:
    """
    Shorten message to at most max_length characters.

    Appends "..." when there is room for it; below 3 characters the
    message is cut hard. Counts code points, not grapheme clusters.
    """
    if len(message) <= max_length:
        return message
    if max_length < 3:
        if max_length <= 0:
            return ""
        return message[:max_length]
    return message[:max_length - 3] + "..."


# ---------------- Dispatch ----------------

EXPORT_FORMATS: Dict[str, tuple] = {
    "json": (format_json, "application/json", "json"),
    "ndjson": (format_ndjson, "application/x-ndjson", "ndjson"),
    "csv": (format_csv, "text/csv", "csv"),
    "txt": (format_plain_text, "text/plain", "txt"),
}

FORMAT_ALIASES = {
    "text": "txt",
    "plain": "txt",
    "jsonl": "ndjson",
}


def resolve_format(fmt: str) -> str:
    key = (fmt or "").strip().lower()
    key = FORMAT_ALIASES.get(key, key)
    if key not in EXPORT_FORMATS:
        raise ExportError(
            f"unsupported export format {fmt!r} "
            f"(expected one of: {', '.join(EXPORT_FORMATS)})"
        )
    return key


def export_records(records: Sequence[ParsedLogRecord], fmt: str) -> ExportResult:
    key = resolve_format(fmt)
    render: Callable[[Sequence[ParsedLogRecord]], bytes]
    render, content_type, extension = EXPORT_FORMATS[key]
    return ExportResult(
        content=render(records),
        content_type=content_type,
        extension=extension,
    )


def export_filename(
    service_name: str,
    extension: str,
    now: Optional[datetime] = None,
) -> str:
    """<service>-logs-YYYYMMDD-HHMMSS.<ext>"""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%d-%H%M%S")
    prefix = f"{service_name}-logs" if service_name else "logs"
    return f"{prefix}-{stamp}.{extension}"
