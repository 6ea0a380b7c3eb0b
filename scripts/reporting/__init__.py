"""
Access digest reporting system.

Provides aggregation, rendering, report windows and digest generation for
logged accesses.
"""

from .aggregator import AccessAggregator, AppReport, aggregate, total_accesses, UNKNOWN
from .formatters import DigestRenderer, flatten_table, iso_utc
from .generator import ReportGenerator, DigestResult, RunState, DAILY_TITLE, MONTHLY_TITLE
from .windows import ReportWindow, last_24_hours, previous_calendar_month, custom_window

__all__ = [
    'AccessAggregator',
    'AppReport',
    'aggregate',
    'total_accesses',
    'UNKNOWN',
    'DigestRenderer',
    'flatten_table',
    'iso_utc',
    'ReportGenerator',
    'DigestResult',
    'RunState',
    'DAILY_TITLE',
    'MONTHLY_TITLE',
    'ReportWindow',
    'last_24_hours',
    'previous_calendar_month',
    'custom_window',
]
