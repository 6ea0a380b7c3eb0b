"""
Access aggregation for digest reporting.

Groups access records by application, builds browser/OS/locale frequency
tables and orders applications by access volume.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from access_log.schema import AccessRecord

UNKNOWN = "unknown"


@dataclass
class AppReport:
    """Aggregated accesses for one application."""
    app_name: str
    accesses: List[AccessRecord] = field(default_factory=list)
    browsers: Dict[str, int] = field(default_factory=dict)
    os: Dict[str, int] = field(default_factory=dict)
    locales: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.accesses)


class AccessAggregator:
    """Aggregates a window of access records into per-application reports."""

    def aggregate(self, records: Iterable[AccessRecord]) -> List[AppReport]:
        """
        Aggregate records into AppReports.

        Args:
            records: Access records in any order

        Returns:
            AppReports ordered by access count (descending), then app name
        """
        groups = self._group_by_app(records)
        reports = [self._build_app_report(name, accesses) for name, accesses in groups.items()]
        return self._sort_reports(reports)

    def _group_by_app(self, records: Iterable[AccessRecord]) -> Dict[str, List[AccessRecord]]:
        """Group records by application name."""
        groups: Dict[str, List[AccessRecord]] = defaultdict(list)
        for record in records:
            groups[record.app_name].append(record)
        return groups

    def _build_app_report(self, app_name: str, accesses: List[AccessRecord]) -> AppReport:
        """Order one group newest first and count its categories."""
        ordered = sorted(accesses, key=lambda r: (r.timestamp, r.id), reverse=True)

        return AppReport(
            app_name=app_name,
            accesses=ordered,
            browsers=self._frequency_table(ordered, lambda m: m.browser.name),
            os=self._frequency_table(ordered, lambda m: m.os.name),
            locales=self._frequency_table(ordered, lambda m: m.locale),
        )

    @staticmethod
    def _frequency_table(
        accesses: List[AccessRecord],
        key: Callable[..., Optional[str]],
    ) -> Dict[str, int]:
        """Count category values in order of first occurrence."""
        counts: Dict[str, int] = {}
        for access in accesses:
            value = key(access.meta) if access.meta is not None else None
            value = value or UNKNOWN
            counts[value] = counts.get(value, 0) + 1
        return counts

    @staticmethod
    def _sort_reports(reports: List[AppReport]) -> List[AppReport]:
        # Equal counts fall back to app name so output is deterministic
        return sorted(reports, key=lambda r: (-r.total, r.app_name))


def aggregate(records: Iterable[AccessRecord]) -> List[AppReport]:
    """Aggregate records with a default AccessAggregator."""
    return AccessAggregator().aggregate(records)


def total_accesses(reports: Iterable[AppReport]) -> int:
    """Total number of accesses across reports."""
    return sum(r.total for r in reports)
