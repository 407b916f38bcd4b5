"""
ErrorAggregator Class - Deduplicates reports and computes statistics

This module merges repeated occurrences of the same logical error and
derives ErrorStats from the reports it holds.
"""

import threading
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from models.data_models import Category, ErrorReport, ErrorStats, Severity
from services.report_builder import fingerprint
from utils.helpers import now_ms
from utils.logging import get_logger

logger = get_logger(__name__, component="aggregator")

MINUTE_MS = 60 * 1000


class ErrorAggregator:
    """
    Accumulates error reports.
    Responsibilities:
    - Merge repeats by fingerprint (count, last occurrence)
    - Bound the number of distinct reports held
    - Track resolution
    - Compute counts by category/severity, error rate and top offenders
    """

    def __init__(self, max_errors: int = 100, clock: Callable[[], int] = now_ms):
        self.max_errors = max(1, max_errors)
        self.clock = clock
        self._reports: "OrderedDict[str, ErrorReport]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._reports)

    def add(self, report: ErrorReport) -> ErrorReport:
        """
        Store a report, or merge it into the report with the same fingerprint.
        Returns the stored report.
        """
        key = report.fingerprint or fingerprint(report.category, report.name, report.message)
        with self._lock:
            existing = self._reports.get(key)

            if existing is not None:
                existing.count += max(1, report.count)
                existing.first_occurrence = min(existing.first_occurrence, report.first_occurrence)
                existing.last_occurrence = max(existing.last_occurrence, report.last_occurrence)
                if existing.resolved:
                    existing.resolved = False
                    existing.resolved_at = None
                    logger.info("Resolved error reoccurred", extra={"report_id": existing.id})
                logger.debug(
                    "Merged duplicate error",
                    extra={"report_id": existing.id, "count": existing.count},
                )
                return existing

            report.fingerprint = key
            self._reports[key] = report

            while len(self._reports) > self.max_errors:
                _, evicted = self._reports.popitem(last=False)
                logger.info("Evicted oldest error report", extra={"report_id": evicted.id})

            return report

    def get(self, report_id: str) -> Optional[ErrorReport]:
        with self._lock:
            for report in self._reports.values():
                if report.id == report_id:
                    return report
            return None

    def resolve(self, report_id: str) -> Optional[ErrorReport]:
        """Mark a report resolved; None if the id is unknown"""
        with self._lock:
            report = self.get(report_id)
            if report is None:
                return None
            if not report.resolved:
                report.resolved = True
                report.resolved_at = self.clock()
                logger.info("Error report resolved", extra={"report_id": report_id})
            return report

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()

    def reports(
        self,
        category: Optional[Category] = None,
        severity: Optional[Severity] = None,
        limit: Optional[int] = None,
    ) -> List[ErrorReport]:
        """Reports, most recently seen first"""
        with self._lock:
            held = list(self._reports.values())
        out = [
            r for r in held
            if (category is None or r.category == category)
            and (severity is None or r.severity == severity)
        ]
        out.sort(key=lambda r: r.last_occurrence, reverse=True)
        return out[:limit] if limit is not None else out

    def recent(self, minutes: int) -> List[ErrorReport]:
        """Reports seen within the last `minutes`"""
        since = self.clock() - minutes * MINUTE_MS
        return [r for r in self.reports() if r.last_occurrence > since]

    def critical(self) -> List[ErrorReport]:
        return self.reports(severity=Severity.CRITICAL)

    def compute_stats(self, top_n: int = 10, window_minutes: int = 60) -> ErrorStats:
        """Compute aggregated statistics over the held reports"""
        with self._lock:
            reports = list(self._reports.values())

        by_category: Dict[str, int] = {c.value: 0 for c in Category}
        by_severity: Dict[str, int] = {s.value: 0 for s in Severity}
        for r in reports:
            by_category[r.category.value] += r.count
            by_severity[r.severity.value] += r.count

        # Errors per minute over the window
        window_minutes = max(1, window_minutes)
        error_rate = len(self.recent(window_minutes)) / window_minutes

        resolution_times = [
            r.resolved_at - r.first_occurrence
            for r in reports
            if r.resolved and r.resolved_at is not None
        ]
        avg_resolution = (
            sum(resolution_times) / len(resolution_times) if resolution_times else 0.0
        )

        top = sorted(reports, key=lambda r: r.count, reverse=True)[: max(0, top_n)]

        return ErrorStats(
            total_errors=sum(r.count for r in reports),
            errors_by_category=by_category,
            errors_by_severity=by_severity,
            error_rate=error_rate,
            average_resolution_time=float(avg_resolution),
            top_errors=top,
        )
