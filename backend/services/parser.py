"""
ReportParser Class - Handles parsing and normalization

This module turns raw client payloads and stored JSON lines into the
structured models, and back.
"""

import json
from dataclasses import asdict, fields
from typing import Any, Dict, List, Mapping, Optional

from models.data_models import (
    Category,
    ErrorContext,
    ErrorReport,
    NetworkErrorInfo,
    NetworkInfo,
    PerformanceErrorInfo,
    Severity,
)
from utils.helpers import first_key, safe_float, safe_int, safe_str, to_epoch_ms

# field -> accepted payload keys
_CONTEXT_KEYS = {
    "url": ("url", "href"),
    "user_agent": ("user_agent", "userAgent"),
    "timestamp": ("timestamp", "time"),
    "user_id": ("user_id", "userId"),
    "session_id": ("session_id", "sessionId"),
    "component_stack": ("component_stack", "componentStack"),
    "stack_trace": ("stack_trace", "stackTrace"),
    "user_actions": ("user_actions", "userActions"),
    "performance_metrics": ("performance_metrics", "performanceMetrics"),
    "network_info": ("network_info", "networkInfo"),
}


def _as_bool(x: Any) -> Optional[bool]:
    if isinstance(x, bool):
        return x
    if x is None:
        return None
    s = str(x).strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    return None


def _enum(enum_cls: Any, raw: Any, default: Any) -> Any:
    try:
        return enum_cls(str(raw).strip().lower())
    except Exception:
        return default


class ReportParser:
    """
    Parses raw payloads into models.
    Responsibilities:
    - Parse JSON lines
    - Normalize camelCase / snake_case variants
    - Coerce or drop malformed values instead of failing
    - Serialize reports for storage and the HTTP API
    """

    @staticmethod
    def parse_json(line: str) -> Optional[Dict[str, Any]]:
        """Parse JSON line, return None if invalid or not an object"""
        try:
            obj = json.loads(line)
        except Exception:
            return None
        return obj if isinstance(obj, dict) else None

    @staticmethod
    def network_info(raw: Any) -> Optional[NetworkInfo]:
        if isinstance(raw, NetworkInfo):
            return raw
        if not isinstance(raw, Mapping):
            return None
        online = _as_bool(raw.get("online"))
        return NetworkInfo(
            online=online if online is not None else True,
            connection_type=safe_str(first_key(raw, "connection_type", "connectionType")),
            effective_type=safe_str(first_key(raw, "effective_type", "effectiveType")),
        )

    @staticmethod
    def context_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
        """
        ErrorContext fields present in raw, coerced to their types.
        Missing, None and uncoercible values are left out.
        """
        if not isinstance(raw, Mapping):
            return {}

        out: Dict[str, Any] = {}
        for field_name, keys in _CONTEXT_KEYS.items():
            value = first_key(raw, *keys)
            if value is None:
                continue

            if field_name == "timestamp":
                value = to_epoch_ms(value)
            elif field_name == "user_actions":
                value = [str(a) for a in value] if isinstance(value, (list, tuple)) else None
            elif field_name == "performance_metrics":
                value = dict(value) if isinstance(value, Mapping) else None
            elif field_name == "network_info":
                value = ReportParser.network_info(value)
            else:
                value = safe_str(value)

            if value is not None:
                out[field_name] = value
        return out

    @staticmethod
    def context_from_dict(raw: Mapping[str, Any]) -> ErrorContext:
        values = ReportParser.context_fields(raw)
        values.setdefault("url", "")
        values.setdefault("user_agent", "")
        values.setdefault("timestamp", 0)
        return ErrorContext(**values)

    @staticmethod
    def network_error_info(raw: Any) -> NetworkErrorInfo:
        if isinstance(raw, NetworkErrorInfo):
            raw = {f.name: getattr(raw, f.name, None) for f in fields(raw)}
        raw = raw if isinstance(raw, Mapping) else {}
        return NetworkErrorInfo(
            url=safe_str(raw.get("url")) or "",
            method=(safe_str(raw.get("method")) or "GET").upper(),
            status=safe_int(raw.get("status")),
            status_text=safe_str(first_key(raw, "status_text", "statusText")),
            response_time=safe_float(first_key(raw, "response_time", "responseTime")),
            request_size=safe_int(first_key(raw, "request_size", "requestSize")),
            response_size=safe_int(first_key(raw, "response_size", "responseSize")),
        )

    @staticmethod
    def performance_error_info(raw: Any) -> PerformanceErrorInfo:
        if isinstance(raw, PerformanceErrorInfo):
            raw = {f.name: getattr(raw, f.name, None) for f in fields(raw)}
        raw = raw if isinstance(raw, Mapping) else {}
        return PerformanceErrorInfo(
            metric=safe_str(raw.get("metric")) or "unknown",
            value=safe_float(raw.get("value")) or 0.0,
            threshold=safe_float(raw.get("threshold")) or 0.0,
            impact=(safe_str(raw.get("impact")) or "low").lower(),
        )

    @staticmethod
    def report_from_dict(raw: Mapping[str, Any]) -> Optional[ErrorReport]:
        """Rebuild a stored report; None when it has no identifier"""
        report_id = safe_str(raw.get("id"))
        if not report_id:
            return None

        first = to_epoch_ms(first_key(raw, "first_occurrence", "firstOccurrence")) or 0
        last = to_epoch_ms(first_key(raw, "last_occurrence", "lastOccurrence")) or first
        tags = raw.get("tags")

        return ErrorReport(
            id=report_id,
            message=safe_str(raw.get("message")) or "Unknown error",
            name=safe_str(raw.get("name")) or "Error",
            severity=_enum(Severity, raw.get("severity"), Severity.LOW),
            category=_enum(Category, raw.get("category"), Category.UNKNOWN),
            context=ReportParser.context_from_dict(raw.get("context") or {}),
            count=max(1, safe_int(raw.get("count")) or 1),
            first_occurrence=min(first, last),
            last_occurrence=max(first, last),
            resolved=bool(_as_bool(raw.get("resolved"))),
            tags=[str(t) for t in tags] if isinstance(tags, list) else None,
            fingerprint=safe_str(raw.get("fingerprint")) or "",
            resolved_at=to_epoch_ms(first_key(raw, "resolved_at", "resolvedAt")),
        )

    @staticmethod
    def report_to_dict(report: ErrorReport) -> Dict[str, Any]:
        data = asdict(report)
        data["severity"] = report.severity.value
        data["category"] = report.category.value
        return data

    @staticmethod
    def reports_to_dicts(reports: List[ErrorReport]) -> List[Dict[str, Any]]:
        return [ReportParser.report_to_dict(r) for r in reports]
