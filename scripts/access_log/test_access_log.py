#!/usr/bin/env python3
"""
Tests for access logging: schema, validation, configuration and store.

Run with: python3 -m pytest scripts/access_log/test_access_log.py -v
Or: python3 scripts/access_log/test_access_log.py
"""

import json
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

# Add parent directory to path for imports when run directly
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent.parent))

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from access_log.config import DigestConfig, load_config
from access_log.errors import ConfigurationError, FetchError, StoreError
from access_log.schema import AccessRecord, ClientMetadata, parse_timestamp, to_iso
from access_log.store import AccessLogStore, is_local_traffic
from access_log.validation import validate_client_metadata, validate_log_access_body, validate_required_strings


def sample_meta(**overrides):
    """Wire-format client metadata."""
    meta = {
        "browser": {"name": "Chrome", "version": "120.0"},
        "os": {"name": "Windows", "version": "10"},
        "device": {"type": "desktop", "model": "PC"},
        "platform": "Win32",
        "userAgent": "Mozilla/5.0",
        "screen": {"w": 1920, "h": 1080, "dpr": 1.5},
        "locale": "en-US",
        "timezone": "America/New_York",
        "referrer": "https://google.com/",
        "pageUrl": "https://example.com/app",
        "clientTime": "2024-01-01T10:00:00.000Z",
    }
    meta.update(overrides)
    return meta


def sample_item(item_id="id-1", app_name="app-a", timestamp="2024-01-01T10:00:00.000Z", meta=None):
    item = {"id": item_id, "appName": app_name, "timestamp": timestamp}
    if meta is not None:
        item["meta"] = meta
    return item


class TestSchema(unittest.TestCase):
    """Test record model conversions."""

    def test_to_iso_uses_z_suffix_and_milliseconds(self):
        """Stored timestamps are lexically sortable UTC strings."""
        value = datetime(2024, 1, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        self.assertEqual(to_iso(value), "2024-01-01T10:00:00.123Z")

    def test_parse_timestamp_assumes_utc(self):
        """Naive timestamps are treated as UTC."""
        parsed = parse_timestamp("2024-01-01T10:00:00")
        self.assertEqual(parsed, datetime(2024, 1, 1, 10, tzinfo=timezone.utc))

    def test_from_item_with_meta(self):
        """Stored items become records with parsed metadata."""
        record = AccessRecord.from_item(sample_item(meta=sample_meta()))

        self.assertEqual(record.app_name, "app-a")
        self.assertEqual(record.timestamp, datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
        self.assertEqual(record.meta.browser.name, "Chrome")
        self.assertEqual(record.meta.page_url, "https://example.com/app")
        self.assertEqual(record.meta.screen.dpr, 1.5)

    def test_from_item_without_meta(self):
        """Legacy items without metadata are accepted."""
        record = AccessRecord.from_item(sample_item())
        self.assertIsNone(record.meta)

    def test_from_item_lenient_metadata(self):
        """Mistyped metadata values become None instead of failing."""
        meta = sample_meta(browser="Chrome", locale=42)
        record = AccessRecord.from_item(sample_item(meta=meta))

        self.assertIsNone(record.meta.browser.name)
        self.assertIsNone(record.meta.locale)
        self.assertEqual(record.meta.os.name, "Windows")

    def test_decimal_screen_values(self):
        """DynamoDB Decimals are converted back to plain numbers."""
        meta = sample_meta(screen={"w": Decimal("1920"), "h": Decimal("1080"), "dpr": Decimal("2.5")})
        record = AccessRecord.from_item(sample_item(meta=meta))

        self.assertEqual(record.meta.screen.w, 1920)
        self.assertIsInstance(record.meta.screen.w, int)
        self.assertEqual(record.meta.screen.dpr, 2.5)

    def test_to_item_round_trip(self):
        """Items written by to_item read back to an equal record."""
        record = AccessRecord.create("app-a", ClientMetadata.from_dict(sample_meta()))
        item = record.to_item()

        self.assertIsInstance(item["meta"]["screen"]["w"], Decimal)
        self.assertTrue(item["timestamp"].endswith("Z"))
        self.assertEqual(item["meta"]["userAgent"], "Mozilla/5.0")

        restored = AccessRecord.from_item(item)
        self.assertEqual(restored.id, record.id)
        self.assertEqual(restored.meta, record.meta)

    def test_create_assigns_unique_ids(self):
        """Server-assigned ids are unique."""
        first = AccessRecord.create("app-a")
        second = AccessRecord.create("app-a")
        self.assertNotEqual(first.id, second.id)
        self.assertIsNotNone(first.timestamp.tzinfo)


class TestValidation(unittest.TestCase):
    """Test request body validation."""

    def test_valid_metadata(self):
        """Complete metadata validates to a ClientMetadata."""
        result = validate_client_metadata(sample_meta())

        self.assertTrue(result.ok)
        self.assertIsInstance(result.value, ClientMetadata)
        self.assertEqual(result.value.device.model, "PC")

    def test_metadata_field_errors(self):
        """Each wrong field is reported with its dotted path."""
        meta = sample_meta(locale=None, screen={"w": "wide", "h": 1080, "dpr": True})
        del meta["browser"]

        result = validate_client_metadata(meta)

        self.assertFalse(result.ok)
        paths = {e.path for e in result.errors}
        self.assertEqual(paths, {"meta.browser", "meta.locale", "meta.screen.w", "meta.screen.dpr"})

    def test_metadata_must_be_object(self):
        """Non-object metadata is rejected."""
        result = validate_client_metadata(["not", "an", "object"])
        self.assertFalse(result.ok)
        self.assertEqual(result.errors[0].path, "meta")

    def test_log_access_body_requires_app_name(self):
        """appName must be a non-empty string."""
        for body in ({}, {"appName": ""}, {"appName": "   "}, {"appName": 3}):
            result = validate_log_access_body(body)
            self.assertFalse(result.ok)
            self.assertIn("appName is required", result.message)

    def test_log_access_body_without_meta(self):
        """meta is optional."""
        result = validate_log_access_body({"appName": "app-a"})

        self.assertTrue(result.ok)
        self.assertEqual(result.value.app_name, "app-a")
        self.assertIsNone(result.value.meta)

    def test_log_access_body_with_invalid_meta(self):
        """Metadata errors are reported alongside appName errors."""
        result = validate_log_access_body({"appName": "", "meta": sample_meta(pageUrl=7)})

        self.assertFalse(result.ok)
        self.assertEqual([e.path for e in result.errors], ["appName", "meta.pageUrl"])

    def test_required_strings_reports_first_missing(self):
        """Contact form fields are checked in order."""
        result = validate_required_strings({"name": "Ann", "subject": "Hi"}, ("name", "email", "subject"))

        self.assertFalse(result.ok)
        self.assertEqual(result.message, "email is required")


class TestConfig(unittest.TestCase):
    """Test configuration loading."""

    def test_defaults(self):
        """Defaults apply when nothing is configured."""
        config = load_config(environ={})

        self.assertEqual(config.email_region, "us-east-1")
        self.assertEqual(config.display_timezone, "America/Sao_Paulo")
        self.assertEqual(config.delivery_method, "ses")
        self.assertEqual(config.table_name, "")

    def test_environment_overrides(self):
        """Environment variables override defaults."""
        config = load_config(environ={
            "TABLE_NAME": "access-logs",
            "EMAIL_FROM": "from@example.com",
            "EMAIL_TO": "to@example.com",
            "REPORT_TIMEZONE": "UTC",
            "SMTP_PORT": "2525",
            "LOG_LEVEL": "debug",
        })

        self.assertEqual(config.table_name, "access-logs")
        self.assertEqual(config.email_from, "from@example.com")
        self.assertEqual(config.display_timezone, "UTC")
        self.assertEqual(config.smtp.port, 2525)
        self.assertEqual(config.log_level, "DEBUG")

    def test_file_then_environment(self):
        """File values are merged over defaults and the environment wins."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.json"
            path.write_text(json.dumps({
                "store": {"table_name": "from-file"},
                "email": {"method": "smtp", "to_address": "file@example.com"},
                "smtp": {"server": "smtp.example.com", "use_tls": "false"},
            }))

            config = load_config(path, environ={"TABLE_NAME": "from-env"})

        self.assertEqual(config.table_name, "from-env")
        self.assertEqual(config.email_to, "file@example.com")
        self.assertEqual(config.delivery_method, "smtp")
        self.assertEqual(config.smtp.server, "smtp.example.com")
        self.assertFalse(config.smtp.use_tls)
        self.assertEqual(config.email_region, "us-east-1")

    def test_unreadable_file(self):
        """A broken config file is a ConfigurationError."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.json"
            path.write_text("{not json")
            with self.assertRaises(ConfigurationError):
                load_config(path, environ={})

    def test_require(self):
        """Missing settings are named in the error."""
        config = DigestConfig(table_name="t")
        config.require("table_name")

        with self.assertRaises(ConfigurationError) as ctx:
            config.require("table_name", "email_from", "email_to")
        self.assertIn("email_from, email_to", str(ctx.exception))

    def test_require_smtp_server(self):
        """SMTP delivery needs a server."""
        config = DigestConfig(table_name="t", delivery_method="smtp")
        with self.assertRaises(ConfigurationError):
            config.require("table_name")


class TestStore(unittest.TestCase):
    """Test the DynamoDB record store."""

    def setUp(self):
        self.table = Mock()
        self.store = AccessLogStore("access-logs", table=self.table)
        self.start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.end = datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_fetch_paginates_and_filters_by_range(self):
        """Scans follow LastEvaluatedKey and filter on the inclusive range."""
        self.table.scan.side_effect = [
            {"Items": [sample_item("id-1", meta=sample_meta())], "LastEvaluatedKey": {"id": "id-1"}},
            {"Items": [sample_item("id-2", timestamp="2024-01-01T11:00:00.000Z")]},
        ]

        records = self.store.fetch_access_records(self.start, self.end)

        self.assertEqual([r.id for r in records], ["id-1", "id-2"])
        self.assertEqual(self.table.scan.call_count, 2)

        first_call, second_call = self.table.scan.call_args_list
        expected = Attr("timestamp").between("2024-01-01T00:00:00.000Z", "2024-01-02T00:00:00.000Z")
        self.assertEqual(first_call.kwargs["FilterExpression"], expected)
        self.assertNotIn("ExclusiveStartKey", first_call.kwargs)
        self.assertEqual(second_call.kwargs["ExclusiveStartKey"], {"id": "id-1"})

    def test_fetch_excludes_local_traffic(self):
        """localhost and 127.0.0.1 pages never leave the store."""
        self.table.scan.return_value = {"Items": [
            sample_item("local", meta=sample_meta(pageUrl="http://localhost:3000/")),
            sample_item("loopback", meta=sample_meta(pageUrl="http://127.0.0.1:8080/app")),
            sample_item("real", meta=sample_meta()),
            sample_item("legacy"),
        ]}

        records = self.store.fetch_access_records(self.start, self.end)

        self.assertEqual(sorted(r.id for r in records), ["legacy", "real"])

    def test_fetch_skips_malformed_items(self):
        """Items missing required keys are skipped."""
        self.table.scan.return_value = {"Items": [{"id": "broken"}, sample_item("ok")]}

        records = self.store.fetch_access_records(self.start, self.end)

        self.assertEqual([r.id for r in records], ["ok"])

    def test_fetch_error(self):
        """Scan failures surface as FetchError."""
        self.table.scan.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "missing"}}, "Scan"
        )
        with self.assertRaises(FetchError):
            self.store.fetch_access_records(self.start, self.end)

    def test_put_access_record(self):
        """Records are written as stored items."""
        record = AccessRecord.create("app-a", ClientMetadata.from_dict(sample_meta()))
        self.store.put_access_record(record)

        item = self.table.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["id"], record.id)
        self.assertEqual(item["appName"], "app-a")

    def test_put_error(self):
        """Write failures surface as StoreError."""
        self.table.put_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}}, "PutItem"
        )
        with self.assertRaises(StoreError):
            self.store.put_access_record(AccessRecord.create("app-a"))

    def test_is_local_traffic(self):
        """Local traffic detection only looks at the page URL."""
        local = AccessRecord.from_item(sample_item(meta=sample_meta(pageUrl="http://localhost/")))
        remote = AccessRecord.from_item(sample_item(meta=sample_meta()))
        legacy = AccessRecord.from_item(sample_item())

        self.assertTrue(is_local_traffic(local))
        self.assertFalse(is_local_traffic(remote))
        self.assertFalse(is_local_traffic(legacy))


if __name__ == "__main__":
    unittest.main(verbosity=2)
