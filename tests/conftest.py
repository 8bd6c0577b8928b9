import os
import sys
from datetime import datetime, timezone

import pytest

# Add project root to path so the package imports without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from logweave.severity import Severity
from logweave.types import ParsedLogRecord


T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(message='Test message', severity=Severity.INFO, service='api',
                timestamp=T0, **kwargs):
    return ParsedLogRecord(
        timestamp=timestamp,
        severity=severity,
        message=message,
        service_name=service,
        **kwargs
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep LOGWEAVE_* settings from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith('LOGWEAVE_'):
            monkeypatch.delenv(name)


@pytest.fixture
def sample_records():
    """A mixed set of records across two services and several levels."""
    return [
        make_record('api info', Severity.INFO, 'api'),
        make_record('api error', Severity.ERROR, 'api'),
        make_record('api fatal', Severity.FATAL, 'api'),
        make_record('web error', Severity.ERROR, 'web'),
        make_record('web warn', Severity.WARN, 'web'),
        make_record('api debug', Severity.DEBUG, 'api'),
    ]


@pytest.fixture
def log_dir(tmp_path):
    """Two small service log files in different formats."""
    api = tmp_path / 'api.log'
    api.write_text(
        '{"timestamp":"2025-01-01T12:00:02Z","level":"error","msg":"db down"}\n'
        '{"timestamp":"2025-01-01T12:00:00Z","level":"info","msg":"Server started"}\n',
        encoding='utf-8',
    )
    web = tmp_path / 'web.log'
    web.write_text(
        'time=2025-01-01T12:00:01Z level=warn msg="slow response"\n'
        '\n',
        encoding='utf-8',
    )
    return tmp_path
