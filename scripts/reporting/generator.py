"""
Digest generator for access reports.

Orchestrates fetching, aggregation, rendering and delivery for one report
window. Each run is a single pass with no retries and no stored state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from access_log.errors import ConfigurationError, DeliveryError, DigestError, FetchError, RenderError, UnknownError

from .aggregator import AccessAggregator
from .formatters import DigestRenderer
from .windows import ReportWindow, last_24_hours, previous_calendar_month, resolve_timezone

logger = logging.getLogger(__name__)

DAILY_TITLE = "Daily Access Report"
MONTHLY_TITLE = "Monthly Access Report"


class RunState(str, Enum):
    START = "start"
    FETCH = "fetch"
    EMPTY_PATH = "empty_path"
    REPORT_PATH = "report_path"
    DELIVER = "deliver"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DigestResult:
    """Outcome of one digest run."""
    state: RunState
    window: ReportWindow
    title: str
    record_count: int = 0
    app_count: int = 0
    document: str = ""


class ReportGenerator:
    """Main digest generator class."""

    def __init__(
        self,
        config,
        store,
        mailer=None,
        gif_source=None,
        renderer: Optional[DigestRenderer] = None,
        aggregator: Optional[AccessAggregator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize generator.

        Args:
            config: DigestConfig
            store: Object with fetch_access_records(start, end)
            mailer: Object with send(subject, html_body); required for delivery
            gif_source: Object with random_gif_url(), optional
            renderer: Renderer to use (defaults to HTML from config)
            aggregator: Aggregator to use
            clock: Returns the current UTC time
        """
        self.config = config
        self.store = store
        self.mailer = mailer
        self.gif_source = gif_source
        self.renderer = renderer or DigestRenderer.from_config(config)
        self.aggregator = aggregator or AccessAggregator()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def send_daily_report(self, now: Optional[datetime] = None) -> DigestResult:
        """Send the report for the last 24 hours."""
        return self.run(last_24_hours(now or self.clock()), DAILY_TITLE)

    def send_monthly_report(self, now: Optional[datetime] = None) -> DigestResult:
        """Send the report for the previous calendar month."""
        zone = resolve_timezone(self.config.display_timezone)
        return self.run(previous_calendar_month(now or self.clock(), zone), MONTHLY_TITLE)

    def run(self, window: ReportWindow, title: str) -> DigestResult:
        """
        Build and deliver the digest for a window.

        Args:
            window: Report window
            title: Document title and email subject

        Returns:
            DigestResult in state DONE

        Raises:
            DigestError: Typed by stage; its stage attribute names the state the run failed in
        """
        result = self.build_document(window, title)

        result.state = RunState.DELIVER
        if self.mailer is None:
            raise self._fail(result, ConfigurationError("No mailer configured"))
        try:
            self.mailer.send(title, result.document)
        except Exception as e:
            raise self._fail(result, e, DeliveryError)

        result.state = RunState.DONE
        logger.info("%s delivered: %d accesses across %d apps", title, result.record_count, result.app_count)
        return result

    def build_document(self, window: ReportWindow, title: str) -> DigestResult:
        """Fetch, aggregate and render a window without delivering it."""
        result = DigestResult(state=RunState.START, window=window, title=title)

        result.state = RunState.FETCH
        try:
            records = self.store.fetch_access_records(window.start, window.end)
        except Exception as e:
            raise self._fail(result, e, FetchError)
        result.record_count = len(records)

        reports = []
        if records:
            result.state = RunState.REPORT_PATH
            try:
                reports = self.aggregator.aggregate(records)
            except Exception as e:
                raise self._fail(result, e)
            result.app_count = len(reports)
        else:
            result.state = RunState.EMPTY_PATH

        try:
            if reports:
                body = self.renderer.render_report(reports, window.start, window.end)
            else:
                body = self.renderer.render_empty_window(window.period_label, window.start, window.end)

            image_url = self.gif_source.random_gif_url() if self.gif_source else ""
            result.document = self.renderer.wrap(title, body, image_url)
        except Exception as e:
            raise self._fail(result, e, RenderError)

        return result

    def _fail(self, result: DigestResult, error: Exception, wrap_as=UnknownError) -> DigestError:
        """Mark the run failed and return a typed error carrying the failed stage."""
        stage = result.state.value
        result.state = RunState.FAILED
        if isinstance(error, DigestError):
            if error.stage is None:
                error.stage = stage
            typed = error
        else:
            typed = wrap_as(f"{type(error).__name__}: {error}", stage=stage)
            typed.__cause__ = error
        logger.error("%s failed during %s: %s", result.title, stage, typed.message)
        return typed
