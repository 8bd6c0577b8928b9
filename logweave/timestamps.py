import re
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple


# Zero-value time: "no timestamp detected".
# NOTE: indistinguishable from a real event at 0001-01-01T00:00:00Z.
UNKNOWN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


RFC3339_RE = re.compile(
    r"""
    ^
    (?P<date>\d{4}-\d{2}-\d{2})
    [Tt]
    (?P<time>\d{2}:\d{2}:\d{2})
    (?:\.(?P<frac>\d+))?
    (?P<tz>[Zz]|[+-]\d{2}:\d{2})
    \Z
    """,
    re.VERBOSE | re.ASCII,
)

# Fixed-width local layouts, read as UTC. A fractional second may follow
# the seconds field on any of them.
_HMS = r"(?P<H>\d{2}):(?P<M>\d{2}):(?P<S>\d{2})(?:\.(?P<frac>\d+))?\Z"

ISO_LOCAL_RE = re.compile(r"^(?P<Y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})T" + _HMS, re.ASCII)
YMD_HMS_RE = re.compile(r"^(?P<Y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2}) " + _HMS, re.ASCII)
DMY_HMS_RE = re.compile(r"^(?P<d>\d{2})/(?P<m>\d{2})/(?P<Y>\d{4}) " + _HMS, re.ASCII)
MDY_HMS_RE = re.compile(r"^(?P<m>\d{2})/(?P<d>\d{2})/(?P<Y>\d{4}) " + _HMS, re.ASCII)


# -----------------------------
# STRICT FORMAT PARSERS
# -----------------------------

def parse_rfc3339(text: str) -> Optional[datetime]:
    """
    Strict RFC 3339, with or without fractional seconds.

    Sub-microsecond digits are truncated.
    """
    if not isinstance(text, str):
        return None

    m = RFC3339_RE.match(text)
    if not m:
        return None

    frac = (m.group("frac") or "")[:6].ljust(6, "0")
    tz = m.group("tz")
    if tz in ("Z", "z"):
        tz = "+00:00"

    try:
        ts = datetime.fromisoformat(f"{m.group('date')}T{m.group('time')}.{frac}{tz}")
        return ts.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def _fixed_width(pattern: re.Pattern) -> Callable[[str], Optional[datetime]]:
    """Parser for one local layout; sub-microsecond digits are truncated."""
    def parse(text: str) -> Optional[datetime]:
        m = pattern.match(text)
        if not m:
            return None

        frac = (m.group("frac") or "")[:6].ljust(6, "0")
        try:
            return datetime(
                int(m.group("Y")), int(m.group("m")), int(m.group("d")),
                int(m.group("H")), int(m.group("M")), int(m.group("S")),
                int(frac),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None

    return parse


# Order matters: first successful parse wins.
# Day-first is tried before month-first for slash dates.
TIMESTAMP_FORMATS: Tuple[Tuple[str, Callable[[str], Optional[datetime]]], ...] = (
    ("rfc3339", parse_rfc3339),
    ("iso_local", _fixed_width(ISO_LOCAL_RE)),
    ("ymd_hms", _fixed_width(YMD_HMS_RE)),
    ("dmy_hms", _fixed_width(DMY_HMS_RE)),
    ("mdy_hms", _fixed_width(MDY_HMS_RE)),
)


def parse_timestamp(text: str) -> datetime:
    """
    Best-effort timestamp parsing.

    Returns UNKNOWN_TIMESTAMP when nothing matches. Never raises.
    """
    if not isinstance(text, str) or not text:
        return UNKNOWN_TIMESTAMP

    for _, parser in TIMESTAMP_FORMATS:
        ts = parser(text)
        if ts is not None:
            return ts

    return UNKNOWN_TIMESTAMP


def is_unknown(ts: datetime) -> bool:
    return ts == UNKNOWN_TIMESTAMP


# -----------------------------
# FREE TEXT SCANNING
# -----------------------------

TIMESTAMP_SCAN_PATTERNS: Tuple[re.Pattern, ...] = (
    # ISO 8601
    re.compile(
        r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})?",
        re.ASCII,
    ),
    # YYYY-MM-DD HH:MM:SS
    re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d+)?", re.ASCII),
    # DD/MM/YYYY HH:MM:SS
    re.compile(r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}(?:\.\d+)?", re.ASCII),
)


def find_timestamp(text: str) -> Optional[str]:
    """
    Return the first timestamp-shaped substring in text.

    Patterns are tried in priority order; the first pattern with a
    match anywhere in the line decides.
    """
    if not text:
        return None

    for pattern in TIMESTAMP_SCAN_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(0)

    return None


def format_rfc3339(ts: datetime) -> str:
    """RFC 3339 in UTC with a Z suffix; fraction only when non-zero."""
    ts = ts.astimezone(timezone.utc) if ts.tzinfo else ts
    out = (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
        f"T{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}"
    )
    if ts.microsecond:
        out += "." + f"{ts.microsecond:06d}".rstrip("0")
    return out + "Z"


def format_datetime(ts: datetime) -> str:
    """YYYY-MM-DD HH:MM:SS in UTC."""
    ts = ts.astimezone(timezone.utc) if ts.tzinfo else ts
    return (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d} "
        f"{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}"
    )
