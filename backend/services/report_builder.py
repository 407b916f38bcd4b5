"""
ReportBuilder Class - Assembles normalized error reports

This module combines the classifier and the context collector into
ErrorReport records. Building a report never raises: missing input
fields are replaced by defaults.
"""

import hashlib
import traceback
import uuid
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional

from models.data_models import (
    Category,
    ErrorContext,
    ErrorReport,
    NetworkErrorInfo,
    PerformanceErrorInfo,
    Severity,
)
from services.classifier import categorize, determine_severity, error_message, error_name
from services.context import ContextCollector
from services.parser import ReportParser
from utils.helpers import normalize_message, now_ms
from utils.logging import get_logger

logger = get_logger(__name__, component="report_builder")

MAX_STACK_LINES = 10

ContextOverrides = Optional[Mapping[str, Any]]


def generate_error_id() -> str:
    return f"error_{now_ms()}_{uuid.uuid4().hex[:9]}"


def fingerprint(category: Category, name: str, message: str) -> str:
    """Dedup key: hash of category, name and normalized message"""
    key = "|".join((category.value, name, normalize_message(message)))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def clean_stack(stack: Optional[str]) -> Optional[str]:
    """First MAX_STACK_LINES lines, trimmed, blanks dropped"""
    if not stack:
        return None
    lines = [line.strip() for line in stack.split("\n")[:MAX_STACK_LINES]]
    cleaned = "\n".join(line for line in lines if line)
    return cleaned or None


def format_number(value: float) -> str:
    """Integral values without a decimal point, others at full precision"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def _exception_stack(error: BaseException) -> str:
    # Exception line first, then frames innermost first
    lines = [line.rstrip("\n") for line in traceback.format_exception_only(type(error), error)]
    for frame in reversed(traceback.extract_tb(error.__traceback__)):
        lines.append(f"at {frame.name} ({frame.filename}:{frame.lineno})")
    return "\n".join(lines)


def extract_stack_trace(error: Any) -> Optional[str]:
    """
    Stack trace of a raised Python exception, or the `stack` field of a
    client error payload.
    """
    try:
        if isinstance(error, BaseException) and error.__traceback__ is not None:
            stack = _exception_stack(error)
        elif isinstance(error, Mapping):
            stack = error.get("stack")
        else:
            stack = getattr(error, "stack", None)
        return clean_stack(stack if isinstance(stack, str) else None)
    except Exception:
        return None


def _impact_severity(impact: str) -> Severity:
    if impact == "high":
        return Severity.HIGH
    if impact == "medium":
        return Severity.MEDIUM
    return Severity.LOW


class ReportBuilder:
    """
    Builds ErrorReport records.
    Responsibilities:
    - Classify generic errors
    - Synthesize network and performance reports
    - Stamp identity, timestamps and counters
    """

    def __init__(
        self,
        collector: ContextCollector,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = generate_error_id,
    ):
        self.collector = collector
        self.clock = clock
        self.id_factory = id_factory

    def build(self, error: Any, context_overrides: ContextOverrides = None) -> ErrorReport:
        """Report for an arbitrary error object (exception, mapping, ...)"""
        category = categorize(error)
        severity = determine_severity(error, category)
        context = self._context(context_overrides)

        stack_trace = extract_stack_trace(error)
        if stack_trace:
            context = replace(context, stack_trace=stack_trace)

        return self._report(
            message=error_message(error),
            name=error_name(error),
            severity=severity,
            category=category,
            context=context,
        )

    def build_network(self, network_info: Any, context_overrides: ContextOverrides = None) -> ErrorReport:
        """Report for a failed HTTP call; 5xx is high, anything else medium"""
        info: NetworkErrorInfo = ReportParser.network_error_info(network_info)

        detail = " ".join(str(p) for p in (info.status, info.status_text) if p not in (None, ""))
        message = f"Network error: {info.method} {info.url}"
        if detail:
            message = f"{message} - {detail}"

        severity = Severity.HIGH if info.status is not None and info.status >= 500 else Severity.MEDIUM

        return self._report(
            message=message,
            name="NetworkError",
            severity=severity,
            category=Category.NETWORK,
            context=self._context(context_overrides),
        )

    def build_performance(self, performance_info: Any, context_overrides: ContextOverrides = None) -> ErrorReport:
        """Report for a threshold breach; severity follows the given impact"""
        info: PerformanceErrorInfo = ReportParser.performance_error_info(performance_info)

        message = (
            f"Performance issue: {info.metric} ({format_number(info.value)}) "
            f"exceeded threshold ({format_number(info.threshold)})"
        )

        return self._report(
            message=message,
            name="PerformanceError",
            severity=_impact_severity(info.impact),
            category=Category.PERFORMANCE,
            context=self._context(context_overrides),
        )

    def _context(self, overrides: ContextOverrides) -> ErrorContext:
        return ContextCollector.merge(self.collector.collect(), overrides)

    def _report(
        self,
        message: str,
        name: str,
        severity: Severity,
        category: Category,
        context: ErrorContext,
    ) -> ErrorReport:
        now = self.clock()
        report = ErrorReport(
            id=self.id_factory(),
            message=message,
            name=name,
            severity=severity,
            category=category,
            context=context,
            count=1,
            first_occurrence=now,
            last_occurrence=now,
            resolved=False,
            fingerprint=fingerprint(category, name, message),
        )
        logger.debug(
            "Built error report",
            extra={"report_id": report.id, "category": category.value, "severity": severity.value},
        )
        return report
