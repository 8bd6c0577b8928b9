import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


LOG_LEVELS = ("CRITICAL", "FATAL", "ERROR", "WARNING", "WARN", "INFO", "DEBUG", "NOTSET")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _level_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(
            f"{name} must be one of {', '.join(LOG_LEVELS)}, got {raw!r}"
        )
    return level


@dataclass(frozen=True)
class Settings:
    log_level: str = "WARNING"
    export_format: str = "txt"
    min_severity: str = ""
    max_message_length: int = 0   # 0 = keep messages whole

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=_level_env("LOGWEAVE_LOG_LEVEL", cls.log_level),
            export_format=os.getenv("LOGWEAVE_EXPORT_FORMAT", cls.export_format),
            min_severity=os.getenv("LOGWEAVE_MIN_SEVERITY", cls.min_severity),
            max_message_length=_int_env(
                "LOGWEAVE_MAX_MESSAGE_LENGTH", cls.max_message_length
            ),
        )
