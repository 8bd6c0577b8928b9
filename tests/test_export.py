"""Tests for the export renderers. CSV and plain text are byte-exact."""

import csv
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0, make_record
from logweave.export import (
    ExportError,
    export_filename,
    export_records,
    format_csv,
    format_json,
    format_ndjson,
    format_plain_text,
    truncate_message,
)
from logweave.ingest import parse_line
from logweave.severity import Severity
from logweave.timestamps import UNKNOWN_TIMESTAMP


class TestFormatJSON:
    """Tests for format_json()."""

    def test_snapshot(self):
        data = format_json([make_record()])
        assert data == (
            b'[\n'
            b'  {\n'
            b'    "timestamp": "2025-01-01T12:00:00Z",\n'
            b'    "severity": "INFO",\n'
            b'    "message": "Test message",\n'
            b'    "serviceName": "api"\n'
            b'  }\n'
            b']'
        )

    def test_canonical_field_names(self):
        record = make_record(raw_line='raw', structured={'level': 'info'})
        result = json.loads(format_json([record]))
        assert list(result[0]) == [
            'timestamp', 'severity', 'message', 'serviceName', 'rawLine', 'structured',
        ]
        assert result[0]['structured'] == {'level': 'info'}

    def test_empty_fields_omitted(self):
        result = json.loads(format_json([make_record(service='')]))
        assert 'serviceName' not in result[0]
        assert 'rawLine' not in result[0]
        assert 'structured' not in result[0]

    def test_empty_list(self):
        assert format_json([]) == b'[]'

    def test_unicode_kept(self):
        data = format_json([make_record('München ✅')])
        assert 'München ✅'.encode('utf-8') in data


class TestFormatNDJSON:
    """Tests for format_ndjson()."""

    def test_snapshot(self):
        assert format_ndjson([make_record()]) == (
            b'{"timestamp":"2025-01-01T12:00:00Z","severity":"INFO",'
            b'"message":"Test message","serviceName":"api"}\n'
        )

    def test_input_order_kept(self):
        late = make_record('late', timestamp=T0 + timedelta(hours=1))
        early = make_record('early')
        lines = format_ndjson([late, early]).decode().splitlines()
        assert [json.loads(line)['message'] for line in lines] == ['late', 'early']

    def test_empty(self):
        assert format_ndjson([]) == b''


class TestFormatCSV:
    """Tests for format_csv()."""

    def test_snapshot(self):
        records = [
            make_record(),
            make_record('Error message', Severity.ERROR, 'web', T0 + timedelta(minutes=1)),
        ]
        assert format_csv(records) == (
            b'Timestamp,Service,Level,Message\n'
            b'2025-01-01 12:00:00,api,INFO,Test message\n'
            b'2025-01-01 12:01:00,web,ERROR,Error message\n'
        )

    def test_header_only(self):
        assert format_csv([]) == b'Timestamp,Service,Level,Message\n'

    def test_embedded_comma_quoted(self):
        data = format_csv([make_record('Hello, world')])
        assert data.endswith(b'2025-01-01 12:00:00,api,INFO,"Hello, world"\n')

    def test_embedded_quote_and_newline(self):
        data = format_csv([make_record('say "hi"\nbye')])
        assert data.endswith(b'"say ""hi""\nbye"\n')
        rows = list(csv.reader(io.StringIO(data.decode())))
        assert rows[1][3] == 'say "hi"\nbye'

    def test_ansi_stripped(self):
        data = format_csv([make_record('\x1b[31mred\x1b[0m alert')])
        assert b'\x1b' not in data
        assert data.endswith(b',red alert\n')

    def test_unknown_timestamp(self):
        data = format_csv([make_record(timestamp=UNKNOWN_TIMESTAMP)])
        assert b'0001-01-01 00:00:00,api,INFO,Test message\n' in data


class TestFormatPlainText:
    """Tests for format_plain_text()."""

    def test_snapshot(self):
        records = [
            make_record(),
            make_record('boom', Severity.ERROR, 'web'),
            make_record('hmm', Severity.WARN, ''),
            make_record('???', Severity.UNKNOWN, 'db'),
        ]
        assert format_plain_text(records) == (
            b'2025-01-01 12:00:00 INFO  [api] Test message\n'
            b'2025-01-01 12:00:00 ERROR [web] boom\n'
            b'2025-01-01 12:00:00 WARN  hmm\n'
            b'2025-01-01 12:00:00 UNKNOWN [db] ???\n'
        )

    def test_ansi_stripped(self):
        data = format_plain_text([make_record('\x1b[32mgreen\x1b[0m')])
        assert data == b'2025-01-01 12:00:00 INFO  [api] green\n'

    def test_converted_to_utc(self):
        ts = datetime(2025, 1, 1, 7, 0, 0, tzinfo=timezone(timedelta(hours=-5)))
        data = format_plain_text([make_record(timestamp=ts)])
        assert data.startswith(b'2025-01-01 12:00:00 ')

    def test_empty(self):
        assert format_plain_text([]) == b''


class TestTruncateMessage:
    """Tests for truncate_message()."""

    @pytest.mark.parametrize('message, max_length, expected', [
        ('This is a very long message', 10, 'This is...'),
        ('Test', 2, 'Te'),
        ('', 10, ''),
        ('Hello', 5, 'Hello'),
        ('Hello World', 3, '...'),
        ('Hello', 0, ''),
        ('Hello', -1, ''),
        ('Hello', 1, 'H'),
    ])
    def test_boundaries(self, message, max_length, expected):
        assert truncate_message(message, max_length) == expected


class TestExportRecords:
    """Tests for export_records() and export_filename()."""

    @pytest.mark.parametrize('fmt, content_type, extension', [
        ('json', 'application/json', 'json'),
        ('NDJSON', 'application/x-ndjson', 'ndjson'),
        ('csv', 'text/csv', 'csv'),
        ('txt', 'text/plain', 'txt'),
        ('text', 'text/plain', 'txt'),
    ])
    def test_dispatch(self, fmt, content_type, extension):
        result = export_records([make_record()], fmt)
        assert result.content_type == content_type
        assert result.extension == extension
        assert result.content

    @pytest.mark.parametrize('fmt', ['json', 'ndjson', 'csv', 'txt'])
    def test_record_from_unpaired_escape_exports(self, fmt):
        record = parse_line('{"level":"info","msg":"bad \\ud800 char"}', 'api')
        result = export_records([record], fmt)
        assert 'bad \ufffd char'.encode('utf-8') in result.content

    def test_csv_content_matches_renderer(self):
        records = [make_record()]
        assert export_records(records, 'csv').content == format_csv(records)

    def test_unknown_format(self):
        with pytest.raises(ExportError):
            export_records([make_record()], 'xml')

    def test_filename(self):
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert export_filename('api', 'csv', now) == 'api-logs-20250102-030405.csv'
        assert export_filename('', 'txt', now) == 'logs-20250102-030405.txt'
