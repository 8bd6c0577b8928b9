from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from .severity import Severity
from .timestamps import UNKNOWN_TIMESTAMP, format_rfc3339


@dataclass(frozen=True)
class ParsedLogRecord:
    """
    Canonical log record consumed by the rest of the system.

    - raw_line is the input exactly as received
    - message never carries ANSI escape sequences
    - timestamp is UNKNOWN_TIMESTAMP when none was found
    - structured holds JSON / logfmt fields, empty for plain text
    """
    timestamp: datetime = UNKNOWN_TIMESTAMP
    severity: Severity = Severity.UNKNOWN
    message: str = ""
    service_name: str = ""
    raw_line: str = ""
    structured: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape. Empty serviceName / rawLine / structured are omitted."""
        out: Dict[str, Any] = {
            "timestamp": format_rfc3339(self.timestamp),
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.service_name:
            out["serviceName"] = self.service_name
        if self.raw_line:
            out["rawLine"] = self.raw_line
        if self.structured:
            out["structured"] = self.structured
        return out
