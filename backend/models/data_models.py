"""
Data Models (DTOs - Data Transfer Objects)

This module contains all dataclass definitions used throughout the application.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from utils.helpers import now_ms


class Category(str, Enum):
    """Origin domain of an error"""
    JAVASCRIPT = "javascript"
    NETWORK = "network"
    REACT = "react"
    API = "api"
    PERFORMANCE = "performance"
    USER_INTERACTION = "user_interaction"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    """Impact level, ordered low < medium < high < critical"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


@dataclass(frozen=True)
class NetworkInfo:
    """Network status at capture time"""
    online: bool = True
    connection_type: Optional[str] = None
    effective_type: Optional[str] = None


@dataclass(frozen=True)
class ErrorContext:
    """Environment snapshot taken when an error is captured"""
    url: str
    user_agent: str
    timestamp: int
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    component_stack: Optional[str] = None
    stack_trace: Optional[str] = None
    user_actions: Optional[List[str]] = None
    performance_metrics: Optional[Dict[str, Any]] = None
    network_info: Optional[NetworkInfo] = None


@dataclass
class ErrorReport:
    """Normalized, deduplicable record of one logical error"""
    id: str
    message: str
    name: str
    severity: Severity
    category: Category
    context: ErrorContext
    count: int
    first_occurrence: int
    last_occurrence: int
    resolved: bool = False
    tags: Optional[List[str]] = None
    fingerprint: str = ""
    resolved_at: Optional[int] = None


@dataclass
class ErrorStats:
    """Aggregated statistics, derived on demand"""
    total_errors: int
    errors_by_category: Dict[str, int]
    errors_by_severity: Dict[str, int]
    error_rate: float
    average_resolution_time: float
    top_errors: List[ErrorReport]


@dataclass
class NetworkErrorInfo:
    """Failed HTTP call as seen by the client"""
    url: str
    method: str
    status: Optional[int] = None
    status_text: Optional[str] = None
    response_time: Optional[float] = None
    request_size: Optional[int] = None
    response_size: Optional[int] = None


@dataclass
class PerformanceErrorInfo:
    """Performance metric that crossed its threshold"""
    metric: str
    value: float
    threshold: float
    impact: str = "low"


@dataclass
class Environment:
    """Ambient facts a context probe can report"""
    url: Optional[str] = None
    user_agent: Optional[str] = None
    online: Optional[bool] = None
    connection_type: Optional[str] = None
    effective_type: Optional[str] = None


@dataclass
class SessionContext:
    """
    Session identity, created once by the hosting application and passed
    to the context collector.
    """
    user_id: Optional[str] = None
    _session_id: Optional[str] = field(default=None, repr=False)

    @property
    def session_id(self) -> str:
        if self._session_id is None:
            self._session_id = f"session_{now_ms()}_{uuid.uuid4().hex[:9]}"
        return self._session_id

    @classmethod
    def resume(cls, session_id: str, user_id: Optional[str] = None) -> "SessionContext":
        """Session with an identifier issued earlier"""
        return cls(user_id=user_id, _session_id=session_id)


@dataclass
class MonitorConfig:
    """Error monitor switches and limits"""
    enabled: bool = True
    max_errors: int = 100
    capture_unhandled: bool = True
    capture_network_errors: bool = True
    recent_window_minutes: int = 60
    top_n: int = 10


@dataclass
class HealthStatus:
    """Health check response"""
    status: str
    store_exists: bool
    path: str
    size_bytes: int
    total_lines: int
    aggregated_reports: int = 0
    pending_reports: int = 0
