import re
from types import MappingProxyType

from .severity import Severity


# CSI "Select Graphic Rendition": ESC [ <params> m
# Truncated sequences (no trailing "m") are deliberately not matched.
ANSI_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")

SINGLE_CODE_RE = re.compile(r"^\x1b\[(\d+)m$")


COLOR_SEVERITY = MappingProxyType({
    "31": Severity.ERROR,   # red
    "91": Severity.ERROR,   # bright red
    "33": Severity.WARN,    # yellow
    "93": Severity.WARN,    # bright yellow
    "32": Severity.INFO,    # green
    "92": Severity.INFO,    # bright green
    "34": Severity.INFO,    # blue
    "94": Severity.INFO,    # bright blue
    "35": Severity.DEBUG,   # magenta
    "95": Severity.DEBUG,   # bright magenta
    "36": Severity.DEBUG,   # cyan
    "96": Severity.DEBUG,   # bright cyan
})


def strip_ansi(text: str) -> str:
    if not text:
        return text

    # Removing one sequence can splice the halves of another together
    # ("\x1b\x1b[0m[31m"), so repeat until nothing matches.
    while True:
        cleaned = ANSI_SGR_RE.sub("", text)
        if cleaned == text:
            return cleaned
        text = cleaned


def has_ansi(text: str) -> bool:
    if not text:
        return False
    return ANSI_SGR_RE.search(text) is not None


def color_code_to_severity(code: str) -> Severity:
    """
    Map an ANSI color to a severity hint.

    Accepts either the bare parameter ("31") or a complete
    single-parameter sequence ("\\x1b[31m").
    """
    if not code:
        return Severity.UNKNOWN

    m = SINGLE_CODE_RE.match(code)
    if m:
        code = m.group(1)

    return COLOR_SEVERITY.get(code, Severity.UNKNOWN)


def severity_hint_from_colors(text: str) -> Severity:
    """First color in the text that maps to a severity, else UNKNOWN."""
    if not text:
        return Severity.UNKNOWN

    for seq in ANSI_SGR_RE.finditer(text):
        params = seq.group(0)[2:-1].split(";")
        for param in params:
            severity = COLOR_SEVERITY.get(param)
            if severity is not None:
                return severity

    return Severity.UNKNOWN
