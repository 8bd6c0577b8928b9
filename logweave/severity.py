import re
from enum import Enum
from types import MappingProxyType
from typing import Tuple, Union


class Severity(str, Enum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"
    UNKNOWN = "UNKNOWN"

    @property
    def priority(self) -> int:
        return SEVERITY_PRIORITY[self]


SEVERITY_PRIORITY = MappingProxyType({
    Severity.FATAL: 6,
    Severity.ERROR: 5,
    Severity.WARN: 4,
    Severity.INFO: 3,
    Severity.DEBUG: 2,
    Severity.TRACE: 1,
    Severity.UNKNOWN: 0,
})


# Emoji indicators, checked before any keyword rule.
# Order matters: the first emoji found in the message wins.
EMOJI_RULES: Tuple[Tuple[str, Severity], ...] = (
    ("🔴", Severity.ERROR),
    ("❌", Severity.ERROR),
    ("⛔", Severity.ERROR),
    ("⚠️", Severity.WARN),
    ("🟡", Severity.WARN),
    ("ℹ️", Severity.INFO),
    ("✅", Severity.INFO),
    ("🔵", Severity.INFO),
    ("🐛", Severity.DEBUG),
    ("🔍", Severity.DEBUG),
)


# Ordered keyword rules.
# Order matters: more severe levels must come first.
KEYWORD_RULES: Tuple[Tuple[re.Pattern, Severity], ...] = (
    (
        re.compile(r"\b(fatal|critical)\b", re.IGNORECASE | re.ASCII),
        Severity.FATAL,
    ),
    (
        re.compile(r"\b(error|err|failure|failed|exception)\b", re.IGNORECASE | re.ASCII),
        Severity.ERROR,
    ),
    (
        re.compile(r"\b(warn|warning)\b", re.IGNORECASE | re.ASCII),
        Severity.WARN,
    ),
    (
        re.compile(r"\b(info|information)\b", re.IGNORECASE | re.ASCII),
        Severity.INFO,
    ),
    (
        re.compile(r"\b(debug|dbg)\b", re.IGNORECASE | re.ASCII),
        Severity.DEBUG,
    ),
    (
        re.compile(r"\b(trace)\b", re.IGNORECASE | re.ASCII),
        Severity.TRACE,
    ),
)


# Provider level spellings -> canonical severity
LEVEL_ALIASES = MappingProxyType({
    "FATAL": Severity.FATAL,
    "CRITICAL": Severity.FATAL,
    "CRIT": Severity.FATAL,
    "ERROR": Severity.ERROR,
    "ERR": Severity.ERROR,
    "FAILURE": Severity.ERROR,
    "FAIL": Severity.ERROR,
    "WARNING": Severity.WARN,
    "WARN": Severity.WARN,
    "INFO": Severity.INFO,
    "INFORMATION": Severity.INFO,
    "DEBUG": Severity.DEBUG,
    "DBG": Severity.DEBUG,
    "TRACE": Severity.TRACE,
    "VERBOSE": Severity.TRACE,
})


def detect_severity(message: str) -> Severity:
    """
    Infer a severity from free-form message text.

    Emoji indicators are checked first, then keyword rules in order.
    The first rule that matches wins, so a debug emoji beats the word
    "error" in the same message.

    It should NEVER throw.
    """
    if not message:
        return Severity.UNKNOWN

    for emoji, severity in EMOJI_RULES:
        if emoji in message:
            return severity

    for pattern, severity in KEYWORD_RULES:
        if pattern.search(message):
            return severity

    return Severity.UNKNOWN


def normalize_severity(raw_level) -> Severity:
    """Map a provider-reported level string onto the canonical enum."""
    if not isinstance(raw_level, str):
        return Severity.UNKNOWN
    return LEVEL_ALIASES.get(raw_level.strip().upper(), Severity.UNKNOWN)


def severity_priority(severity: Union[Severity, str, None]) -> int:
    """Higher = more severe. Unrecognized values rank with UNKNOWN."""
    if isinstance(severity, Severity):
        return SEVERITY_PRIORITY[severity]
    try:
        return SEVERITY_PRIORITY[Severity(severity)]
    except ValueError:
        return 0
