"""
DynamoDB-backed access record store.

Reads are time-range scans filtered on the ISO timestamp string; writes put
one item per logged access. Local development traffic is dropped on the way
out so report code never sees it.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from .errors import FetchError, StoreError
from .schema import AccessRecord, to_iso

logger = logging.getLogger(__name__)

LOCAL_TRAFFIC_PATTERN = re.compile(r"(localhost|127\.0\.0\.1)")


def is_local_traffic(record: AccessRecord) -> bool:
    """True when the record was sent from a local development page."""
    if record.meta is None or not record.meta.page_url:
        return False
    return bool(LOCAL_TRAFFIC_PATTERN.search(record.meta.page_url))


class AccessLogStore:
    """Gateway to the access log table."""

    def __init__(self, table_name: str, table: Any = None, dynamodb: Any = None):
        """
        Initialize store.

        Args:
            table_name: DynamoDB table name
            table: Pre-built Table resource (tests inject a double here)
            dynamodb: Pre-built DynamoDB service resource
        """
        self.table_name = table_name
        if table is None:
            dynamodb = dynamodb or boto3.resource("dynamodb")
            table = dynamodb.Table(table_name)
        self.table = table

    def fetch_access_records(self, start: datetime, end: datetime) -> List[AccessRecord]:
        """
        Fetch records whose timestamp lies within [start, end], inclusive.

        Args:
            start: Window start (UTC)
            end: Window end (UTC)

        Returns:
            Records in no particular order, local traffic removed

        Raises:
            FetchError: If the scan fails
        """
        start_iso, end_iso = to_iso(start), to_iso(end)
        logger.info("Scanning %s for accesses between %s and %s", self.table_name, start_iso, end_iso)

        try:
            items = list(self._scan(Attr("timestamp").between(start_iso, end_iso)))
        except (ClientError, BotoCoreError) as e:
            raise FetchError(f"Failed to scan {self.table_name}: {e}") from e

        records = []
        skipped = 0
        for item in items:
            try:
                record = AccessRecord.from_item(item)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed item %r: %s", item.get("id"), e)
                skipped += 1
                continue
            if is_local_traffic(record):
                skipped += 1
                continue
            records.append(record)

        logger.info("Fetched %d records (%d skipped)", len(records), skipped)
        return records

    def put_access_record(self, record: AccessRecord):
        """
        Persist one access record.

        Raises:
            StoreError: If the write fails
        """
        try:
            self.table.put_item(Item=record.to_item())
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to write access record to {self.table_name}: {e}") from e
        logger.debug("Logged access %s for %s", record.id, record.app_name)

    def _scan(self, filter_expression) -> Iterable[Dict[str, Any]]:
        """Paginated scan following LastEvaluatedKey."""
        last_key: Optional[Dict[str, Any]] = None
        while True:
            kwargs = {"FilterExpression": filter_expression}
            if last_key:
                kwargs["ExclusiveStartKey"] = last_key

            resp = self.table.scan(**kwargs)
            yield from resp.get("Items", [])

            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
