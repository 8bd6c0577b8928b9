from enum import Enum, auto


class LogFormat(Enum):
    """
    High-level log shapes.

    This is about structure, not meaning.
    """
    JSON = auto()
    LOGFMT = auto()
    PLAIN_TEXT = auto()


def looks_like_json(line: str) -> bool:
    return line.strip().startswith("{")


def looks_like_logfmt(line: str) -> bool:
    # example: level=error msg="timeout" host=db1
    return "=" in line and len(line.split()) >= 2


def candidate_formats(line: str) -> list:
    """
    Structural candidates for a (ANSI-stripped) line, in the order the
    dispatcher must try them. PLAIN_TEXT is always last.

    This function must be:
    - deterministic
    - cheap
    - conservative

    It should NEVER throw.
    """
    formats = []
    if not line:
        return [LogFormat.PLAIN_TEXT]

    if looks_like_json(line):
        formats.append(LogFormat.JSON)

    if looks_like_logfmt(line):
        formats.append(LogFormat.LOGFMT)

    formats.append(LogFormat.PLAIN_TEXT)
    return formats
