import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .ansi import strip_ansi
from .detect import LogFormat, candidate_formats
from .parsers import parse_json, parse_logfmt, parse_plain_text
from .severity import normalize_severity
from .timestamps import parse_rfc3339
from .types import ParsedLogRecord


logger = logging.getLogger(__name__)


STRUCTURED_PARSERS = {
    LogFormat.JSON: parse_json,
    LogFormat.LOGFMT: parse_logfmt,
}


def _parse_with_format(raw_line: str, service_name: str) -> Tuple[ParsedLogRecord, LogFormat]:
    clean = strip_ansi(raw_line)

    for fmt in candidate_formats(clean):
        if fmt == LogFormat.PLAIN_TEXT:
            break

        try:
            record = STRUCTURED_PARSERS[fmt](clean, raw_line, service_name)
        except Exception:
            # A structured branch must never take the line down with it
            logger.debug("%s parser failed, falling back", fmt.name, exc_info=True)
            continue

        if record is not None:
            return record, fmt

        logger.debug("line is not %s, falling back", fmt.name)

    return parse_plain_text(clean, raw_line, service_name), LogFormat.PLAIN_TEXT


def parse_line(raw_line: str, service_name: str = "") -> ParsedLogRecord:
    """
    Parse a single raw log line into a ParsedLogRecord.

    Pipeline:
      raw line
        → ANSI strip (for inspection only)
          → JSON → logfmt → plain text
            → ParsedLogRecord

    This function must:
      - never throw
      - keep raw_line untouched
      - be deterministic
    """
    if raw_line is None:
        raw_line = ""
    record, _ = _parse_with_format(raw_line, service_name or "")
    return record


def parse_lines(lines: Iterable[str], service_name: str = "") -> List[ParsedLogRecord]:
    """Parse a batch of lines from one service. Blank lines are skipped."""
    records = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        records.append(parse_line(line, service_name))
    return records


def apply_override(
    record: ParsedLogRecord,
    severity: Optional[str] = None,
    timestamp: Union[str, datetime, None] = None,
) -> ParsedLogRecord:
    """
    Replace severity / timestamp with authoritative values from the log
    source. Each field is replaced whole, never merged.

    - severity: provider level string, normalized
    - timestamp: RFC 3339 string (ignored if invalid) or a datetime
    """
    changes = {}

    if severity:
        changes["severity"] = normalize_severity(severity)

    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        changes["timestamp"] = timestamp.astimezone(timezone.utc)
    elif timestamp:
        ts = parse_rfc3339(timestamp)
        if ts is not None:
            changes["timestamp"] = ts

    if not changes:
        return record
    return replace(record, **changes)


# ---------- Metrics ----------

@dataclass
class IngestStats:
    parsed: int = 0
    skipped: int = 0
    by_format: Dict[str, int] = field(default_factory=dict)

    def record(self, fmt: LogFormat):
        self.parsed += 1
        self.by_format[fmt.name] = self.by_format.get(fmt.name, 0) + 1


# ---------- Ingest Pipeline ----------

class LineIngestor:
    """Parses a stream of (line, service) pairs and keeps per-format counts."""

    def __init__(self):
        self.stats = IngestStats()

    def ingest(self, lines: Iterable[Tuple[str, str]]) -> Iterator[ParsedLogRecord]:
        for line, service_name in lines:
            line = line.rstrip("\r\n")
            if not line.strip():
                self.stats.skipped += 1
                continue

            record, fmt = _parse_with_format(line, service_name or "")
            self.stats.record(fmt)
            yield record

        logger.debug(
            "ingested %d lines (%d skipped): %s",
            self.stats.parsed,
            self.stats.skipped,
            self.stats.by_format,
        )
