"""
Output formatters for access digests.

Renders aggregated access data as an HTML email document or plain text
using Jinja2 templates, and frames bodies in a titled document shell.
"""

import traceback
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from access_log.errors import RenderError
from access_log.schema import AccessRecord

from .aggregator import UNKNOWN, AppReport, total_accesses
from .windows import resolve_timezone

TEMPLATES_DIR = Path(__file__).parent / "templates"
FORMATS = ("html", "text")
SUMMARY_SEPARATOR = ", "


def iso_utc(value: datetime) -> str:
    """Second-precision ISO-8601 UTC string, e.g. 2024-01-01T00:00:00Z."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def flatten_table(table: Mapping[str, int]) -> str:
    """Flatten a frequency table to "key: count" pairs, keeping its order."""
    return SUMMARY_SEPARATOR.join(f"{key}: {count}" for key, count in table.items())


class DigestRenderer:
    """Render digest bodies and wrap them in a document shell."""

    def __init__(
        self,
        display_timezone: str = "America/Sao_Paulo",
        date_format: str = "%d/%m/%Y, %H:%M:%S",
        format: str = "html",
    ):
        """
        Initialize renderer.

        Args:
            display_timezone: Timezone every rendered date is shown in
            date_format: strftime pattern for rendered dates
            format: "html" or "text"
        """
        if format not in FORMATS:
            raise ValueError(f"Unknown format: {format}")

        self.display_timezone = display_timezone
        self.zone: tzinfo = resolve_timezone(display_timezone)
        self.date_format = date_format
        self.format = format
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(enabled_extensions=("html.jinja2",), default_for_string=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @classmethod
    def from_config(cls, config, format: str = "html") -> "DigestRenderer":
        return cls(
            display_timezone=config.display_timezone,
            date_format=config.date_format,
            format=format,
        )

    def format_date(self, value: datetime) -> str:
        """Format a timestamp in the report's display timezone."""
        return value.astimezone(self.zone).strftime(self.date_format)

    def render_empty_window(self, period_label: str, start: datetime, end: datetime) -> str:
        """
        Render the body for a window with no accesses.

        Args:
            period_label: Human label of the period ("day", "month"), empty for custom windows
            start: Window start
            end: Window end

        Returns:
            Body fragment
        """
        return self._render(
            "empty_window",
            period_label=period_label,
            window=self._window_context(start, end),
        )

    def render_report(self, reports: Sequence[AppReport], start: datetime, end: datetime) -> str:
        """
        Render the body for a window with accesses.

        Args:
            reports: Aggregated reports, already ordered
            start: Window start
            end: Window end

        Returns:
            Body fragment
        """
        return self._render(
            "report",
            total=total_accesses(reports),
            window=self._window_context(start, end),
            apps=[self._app_context(report) for report in reports],
        )

    def wrap(self, title: str, body: str, image_url: str = "") -> str:
        """
        Frame a body fragment in a titled document.

        The body is inserted verbatim. An empty image URL omits the image.
        """
        if self.format == "html":
            body = Markup(body)
        return self._render("shell", title=title, body=body, image_url=image_url or "")

    def render_error(self, error: BaseException) -> str:
        """Render the body of an unexpected-error notification."""
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return self._render(
            "error",
            message=str(error) or type(error).__name__,
            stack=stack.strip() or "No stack trace available",
        )

    def render_contact(self, name: str, email: str, subject: str, message: str) -> str:
        """Render a contact form submission."""
        return self._render("contact", name=name, email=email, subject=subject, message=message)

    def _render(self, template: str, **context: Any) -> str:
        name = f"{template}.{'html' if self.format == 'html' else 'txt'}.jinja2"
        try:
            return self.env.get_template(name).render(**context).strip()
        except TemplateError as e:
            raise RenderError(f"Failed to render {name}: {e}") from e

    def _window_context(self, start: datetime, end: datetime) -> Dict[str, str]:
        return {
            "start_iso": iso_utc(start),
            "end_iso": iso_utc(end),
            "start_local": self.format_date(start),
            "end_local": self.format_date(end),
            "timezone": self.display_timezone,
        }

    def _app_context(self, report: AppReport) -> Dict[str, Any]:
        return {
            "name": report.app_name,
            "total": report.total,
            "browsers": flatten_table(report.browsers),
            "os": flatten_table(report.os),
            "locales": flatten_table(report.locales),
            "rows": [self._access_row(access) for access in report.accesses],
        }

    def _access_row(self, access: AccessRecord) -> List[str]:
        """Table cells: timestamp, locale/TZ, OS, browser, device, referrer."""
        m = access.meta
        if m is None:
            return [self.format_date(access.timestamp), UNKNOWN, UNKNOWN, UNKNOWN, UNKNOWN, ""]

        return [
            self.format_date(access.timestamp),
            f"{_cell(m.timezone)} / {_cell(m.locale)}",
            _pair(m.os.name, m.os.version),
            _pair(m.browser.name, m.browser.version),
            _pair(m.device.type, m.device.model),
            m.referrer or "",
        ]


def _cell(value: Optional[str]) -> str:
    return value if value else UNKNOWN


def _pair(first: Optional[str], second: Optional[str]) -> str:
    if not first and not second:
        return UNKNOWN
    return " ".join(v for v in (first, second) if v)
