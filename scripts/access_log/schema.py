"""
Data model for logged accesses.

Defines dataclasses for access records and the client metadata they carry,
plus conversion to and from the stored item layout.
"""

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Union

from dateutil import parser as dateparser

Number = Union[int, float]


def to_iso(value: datetime) -> str:
    """Format a datetime as a UTC ISO-8601 string with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    parsed = dateparser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class BrowserInfo:
    """Browser name and version."""
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class OsInfo:
    """Operating system name and version."""
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class DeviceInfo:
    """Device type ("desktop", "mobile", ...) and model."""
    type: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class ScreenInfo:
    """Screen width, height and device pixel ratio."""
    w: Optional[Number] = None
    h: Optional[Number] = None
    dpr: Optional[Number] = None


@dataclass(frozen=True)
class ClientMetadata:
    """Descriptive attributes of the client that sent an access."""
    browser: BrowserInfo = BrowserInfo()
    os: OsInfo = OsInfo()
    device: DeviceInfo = DeviceInfo()
    platform: Optional[str] = None
    user_agent: Optional[str] = None
    screen: ScreenInfo = ScreenInfo()
    locale: Optional[str] = None
    timezone: Optional[str] = None
    referrer: Optional[str] = None
    page_url: Optional[str] = None
    client_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientMetadata":
        """
        Build metadata from its wire/stored layout.

        Parsing is lenient: missing or mistyped values become None so a
        single malformed record never breaks a report.
        """
        browser = _section(data, "browser")
        os_data = _section(data, "os")
        device = _section(data, "device")
        screen = _section(data, "screen")

        return cls(
            browser=BrowserInfo(name=_str(browser, "name"), version=_str(browser, "version")),
            os=OsInfo(name=_str(os_data, "name"), version=_str(os_data, "version")),
            device=DeviceInfo(type=_str(device, "type"), model=_str(device, "model")),
            platform=_str(data, "platform"),
            user_agent=_str(data, "userAgent"),
            screen=ScreenInfo(w=_num(screen, "w"), h=_num(screen, "h"), dpr=_num(screen, "dpr")),
            locale=_str(data, "locale"),
            timezone=_str(data, "timezone"),
            referrer=_str(data, "referrer"),
            page_url=_str(data, "pageUrl"),
            client_time=_str(data, "clientTime"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire layout, dropping unset values."""
        data = {
            "browser": asdict(self.browser),
            "os": asdict(self.os),
            "device": asdict(self.device),
            "platform": self.platform,
            "userAgent": self.user_agent,
            "screen": asdict(self.screen),
            "locale": self.locale,
            "timezone": self.timezone,
            "referrer": self.referrer,
            "pageUrl": self.page_url,
            "clientTime": self.client_time,
        }
        return _drop_none(data)


@dataclass(frozen=True)
class AccessRecord:
    """One logged visit to an application."""
    id: str
    app_name: str
    timestamp: datetime
    meta: Optional[ClientMetadata] = None

    @classmethod
    def create(cls, app_name: str, meta: Optional[ClientMetadata] = None) -> "AccessRecord":
        """Create a new record with a server-assigned id and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            app_name=app_name,
            timestamp=datetime.now(timezone.utc),
            meta=meta,
        )

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "AccessRecord":
        """Build a record from a stored item."""
        meta = item.get("meta")
        return cls(
            id=str(item["id"]),
            app_name=str(item["appName"]),
            timestamp=parse_timestamp(str(item["timestamp"])),
            meta=ClientMetadata.from_dict(meta) if isinstance(meta, Mapping) else None,
        )

    def to_item(self) -> Dict[str, Any]:
        """
        Convert to the stored item layout.

        Numbers are stored as Decimal, as required by the DynamoDB resource API.
        """
        item: Dict[str, Any] = {
            "id": self.id,
            "appName": self.app_name,
            "timestamp": to_iso(self.timestamp),
        }
        if self.meta is not None:
            meta = self.meta.to_dict()
            screen = meta.get("screen")
            if screen:
                meta["screen"] = {k: Decimal(str(v)) for k, v in screen.items()}
            item["meta"] = meta
        return item


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _num(data: Mapping[str, Any], key: str) -> Optional[Number]:
    value = data.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (int, float)):
        return value
    return None


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _drop_none(value)
            if not value:
                continue
        if value is not None:
            cleaned[key] = value
    return cleaned
