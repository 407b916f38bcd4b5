"""
ErrorMonitor Class - Capture entry points, reporting queue and hooks

This module is the surface application code talks to: it gates capture on
the monitor config, feeds built reports to the aggregator, queues them for
the store, and can hook interpreter-level unhandled exceptions.
"""

import sys
import threading
from typing import Any, Dict, List, Optional

from models.data_models import ErrorReport, ErrorStats, MonitorConfig
from services.aggregator import ErrorAggregator
from services.report_builder import ContextOverrides, ReportBuilder
from services.storage import ReportStore
from utils.logging import get_logger

logger = get_logger(__name__, component="monitor")


class ErrorMonitor:
    """
    Front door for error capture.
    Responsibilities:
    - Capture generic, network and performance errors
    - Queue captured reports and flush them to the store
    - Resolve and clear reports, expose statistics
    - Install/uninstall unhandled exception hooks
    """

    def __init__(
        self,
        builder: ReportBuilder,
        aggregator: ErrorAggregator,
        store: Optional[ReportStore] = None,
        config: Optional[MonitorConfig] = None,
    ):
        self.builder = builder
        self.aggregator = aggregator
        self.store = store
        self.config = config or MonitorConfig()
        self._queue: List[ErrorReport] = []
        self._lock = threading.Lock()
        self._previous_hooks: Optional[Dict[str, Any]] = None

    @property
    def pending(self) -> List[ErrorReport]:
        with self._lock:
            return list(self._queue)

    def bind(self, builder: ReportBuilder) -> "ErrorMonitor":
        """Monitor using another builder but sharing aggregator, store and queue"""
        bound = ErrorMonitor(builder, self.aggregator, self.store, self.config)
        bound._queue = self._queue
        bound._lock = self._lock
        return bound

    def capture_error(self, error: Any, context_overrides: ContextOverrides = None) -> Optional[ErrorReport]:
        if not self.config.enabled:
            return None
        return self._add(self.builder.build(error, context_overrides))

    def capture_network_error(self, network_info: Any, context_overrides: ContextOverrides = None) -> Optional[ErrorReport]:
        if not self.config.enabled or not self.config.capture_network_errors:
            return None
        return self._add(self.builder.build_network(network_info, context_overrides))

    def capture_performance_error(self, performance_info: Any, context_overrides: ContextOverrides = None) -> Optional[ErrorReport]:
        if not self.config.enabled:
            return None
        return self._add(self.builder.build_performance(performance_info, context_overrides))

    def resolve_error(self, report_id: str) -> Optional[ErrorReport]:
        return self.aggregator.resolve(report_id)

    def clear_errors(self) -> None:
        self.aggregator.clear()
        with self._lock:
            self._queue.clear()

    def stats(self, top_n: Optional[int] = None, window_minutes: Optional[int] = None) -> ErrorStats:
        return self.aggregator.compute_stats(
            top_n=self.config.top_n if top_n is None else top_n,
            window_minutes=self.config.recent_window_minutes if window_minutes is None else window_minutes,
        )

    def flush(self) -> Dict[str, Any]:
        """
        Hand pending reports to the store. On failure the queue is kept so
        the next flush retries the same reports.
        """
        with self._lock:
            batch = list(self._queue)
            del self._queue[:]

        if not batch:
            return {"status": "ok", "written": 0, "pending": 0}
        if self.store is None:
            self._requeue(batch)
            return {"status": "no_store", "written": 0, "pending": len(batch)}

        try:
            written = self.store.append_reports(batch)
        except OSError:
            self._requeue(batch)
            logger.error("Failed to flush error reports", exc_info=True, extra={"pending": len(batch)})
            return {"status": "error", "written": 0, "pending": len(batch)}

        logger.info("Flushed error reports", extra={"written": written})
        return {"status": "ok", "written": written, "pending": 0}

    def install(self) -> None:
        """Capture unhandled exceptions from the main thread and worker threads"""
        if self._previous_hooks is not None:
            return

        self._previous_hooks = {"sys": sys.excepthook, "threading": threading.excepthook}
        sys.excepthook = self._handle_exception
        threading.excepthook = self._handle_thread_exception

    def uninstall(self) -> None:
        if self._previous_hooks is None:
            return

        sys.excepthook = self._previous_hooks["sys"]
        threading.excepthook = self._previous_hooks["threading"]
        self._previous_hooks = None

    def _handle_exception(self, exc_type, exc_value, exc_tb) -> None:
        if exc_value is not None:
            self._capture_unhandled(exc_value)
        previous = (self._previous_hooks or {}).get("sys", sys.__excepthook__)
        previous(exc_type, exc_value, exc_tb)

    def _handle_thread_exception(self, args) -> None:
        if args.exc_value is not None:
            thread_name = args.thread.name if args.thread is not None else None
            self._capture_unhandled(args.exc_value, {"component_stack": thread_name})
        previous = (self._previous_hooks or {}).get("threading", threading.__excepthook__)
        previous(args)

    def _capture_unhandled(self, error: BaseException, context_overrides: ContextOverrides = None) -> None:
        if not self.config.capture_unhandled or isinstance(error, KeyboardInterrupt):
            return
        try:
            self.capture_error(error, context_overrides)
        except Exception:
            logger.exception("Failed to capture unhandled exception")

    def _requeue(self, batch: List[ErrorReport]) -> None:
        with self._lock:
            self._queue[:0] = batch

    def _add(self, report: ErrorReport) -> ErrorReport:
        stored = self.aggregator.add(report)
        with self._lock:
            self._queue.append(report)
        logger.info(
            "Captured error",
            extra={
                "report_id": stored.id,
                "category": stored.category.value,
                "severity": stored.severity.value,
                "count": stored.count,
            },
        )
        return stored
