import json
import re
from typing import Any, Dict, List, Optional, Tuple

from .ansi import strip_ansi
from .severity import Severity, detect_severity, normalize_severity
from .timestamps import (
    UNKNOWN_TIMESTAMP,
    find_timestamp,
    parse_rfc3339,
    parse_timestamp,
)
from .types import ParsedLogRecord


# Each parser receives the ANSI-stripped line for inspection and the
# untouched raw line for the record. Structured parsers return None
# when the line is not in their format; the dispatcher moves on.


# -----------------------------
# JSON LOG PARSER
# -----------------------------

JSON_TIMESTAMP_FIELDS = ("timestamp", "time", "ts", "@timestamp", "datetime")
JSON_SEVERITY_FIELDS = ("level", "severity", "lvl", "loglevel", "log_level")
JSON_MESSAGE_FIELDS = ("message", "msg", "text", "log")


# "\ud800" style escapes without their pair decode to lone surrogates,
# which cannot be written back out as UTF-8.
LONE_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _replace_surrogates(value: Any) -> Any:
    if isinstance(value, str):
        return LONE_SURROGATE_RE.sub("\ufffd", value)
    if isinstance(value, dict):
        return {_replace_surrogates(k): _replace_surrogates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace_surrogates(v) for v in value]
    return value


def _first_string(data: Dict[str, Any], fields: Tuple[str, ...]) -> Optional[str]:
    for name in fields:
        value = data.get(name)
        if isinstance(value, str):
            return value
    return None


def parse_json(clean: str, raw_line: str, service_name: str) -> Optional[ParsedLogRecord]:
    """
    Parse JSON object logs.

    Expected (flexible) keys:
      - timestamp / time / ts / @timestamp / datetime
      - level / severity / lvl / loglevel / log_level
      - message / msg / text / log

    Only string values are considered for these fields.
    """
    try:
        data = _replace_surrogates(json.loads(clean, parse_constant=_reject_constant))
    except (ValueError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None

    ts = _first_string(data, JSON_TIMESTAMP_FIELDS)
    timestamp = parse_timestamp(ts) if ts is not None else UNKNOWN_TIMESTAMP

    level = _first_string(data, JSON_SEVERITY_FIELDS)
    severity = normalize_severity(level) if level is not None else Severity.UNKNOWN

    message = _first_string(data, JSON_MESSAGE_FIELDS)
    if not message:
        message = clean
    message = strip_ansi(message)

    if severity == Severity.UNKNOWN:
        severity = detect_severity(message)

    return ParsedLogRecord(
        timestamp=timestamp,
        severity=severity,
        message=message,
        service_name=service_name,
        raw_line=raw_line,
        structured=data,
    )


# -----------------------------
# LOGFMT PARSER
# -----------------------------

LOGFMT_SEVERITY_KEYS = ("level", "severity", "lvl")
LOGFMT_MESSAGE_KEYS = ("msg", "message")
LOGFMT_TIME_KEYS = ("time", "timestamp", "ts")


def tokenize_logfmt(line: str) -> Tuple[List[Tuple[str, str]], List[str]]:
    """
    Split a logfmt line into (key, value) pairs plus any trailing text
    that is not a key=value pair.

      level=error msg="Connection failed" host=localhost

    Quoted values may contain spaces. An unterminated quote runs to the
    end of the line.
    """
    pairs: List[Tuple[str, str]] = []
    leftover: List[str] = []

    i = 0
    n = len(line)
    while i < n:
        while i < n and line[i] == " ":
            i += 1
        if i >= n:
            break

        eq = line.find("=", i)
        if eq == -1:
            leftover.append(line[i:])
            break

        key = line[i:eq]
        i = eq + 1

        if i < n and line[i] == '"':
            i += 1
            end = line.find('"', i)
            if end == -1:
                end = n
            value = line[i:end]
            i = end + 1 if end < n else n
        else:
            end = line.find(" ", i)
            if end == -1:
                end = n
            value = line[i:end]
            i = end

        pairs.append((key, value))

    return pairs, leftover


def parse_logfmt(clean: str, raw_line: str, service_name: str) -> Optional[ParsedLogRecord]:
    """
    Parse key=value logs like:
      level=ERROR msg="timeout after 5000ms" time=2025-01-01T12:00:00Z

    Timestamps are accepted as RFC 3339 only.
    """
    pairs, leftover = tokenize_logfmt(clean)

    structured: Dict[str, Any] = {}
    timestamp = UNKNOWN_TIMESTAMP
    severity = Severity.UNKNOWN
    message = ""

    for key, value in pairs:
        structured[key] = value

        k = key.lower()
        if k in LOGFMT_SEVERITY_KEYS:
            severity = normalize_severity(value)
        elif k in LOGFMT_MESSAGE_KEYS:
            message = value
        elif k in LOGFMT_TIME_KEYS:
            ts = parse_rfc3339(value)
            if ts is not None:
                timestamp = ts

    if not message and leftover:
        message = " ".join(leftover)

    if severity == Severity.UNKNOWN:
        severity = detect_severity(clean)

    return ParsedLogRecord(
        timestamp=timestamp,
        severity=severity,
        message=message,
        service_name=service_name,
        raw_line=raw_line,
        structured=structured,
    )


# -----------------------------
# PLAIN TEXT PARSER
# -----------------------------

def parse_plain_text(clean: str, raw_line: str, service_name: str) -> ParsedLogRecord:
    """
    Fallback for anything else. Always succeeds.

    The first timestamp-shaped substring is lifted out of the message.
    """
    message = clean
    timestamp = UNKNOWN_TIMESTAMP

    found = find_timestamp(clean)
    if found is not None:
        timestamp = parse_timestamp(found)
        message = strip_ansi(clean.replace(found, "", 1))

    return ParsedLogRecord(
        timestamp=timestamp,
        severity=detect_severity(clean),
        message=message.strip(),
        service_name=service_name,
        raw_line=raw_line,
    )
