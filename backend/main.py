from __future__ import annotations

import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from models.data_models import Category, Environment, MonitorConfig, SessionContext, Severity
from services.aggregator import ErrorAggregator
from services.context import ContextCollector
from services.monitor import ErrorMonitor
from services.parser import ReportParser
from services.report_builder import ReportBuilder
from services.storage import ReportStore
from utils.helpers import safe_int
from utils.logging import get_logger, setup_logging

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────

API_PREFIX = "/api"
ERROR_STORE_FILE = os.getenv("ERROR_STORE_FILE", "./data/errors.jsonl")  # stored as JSONL
MONITOR_ENABLED = os.getenv("ERROR_MONITOR_ENABLED", "true").strip().lower() in ("true", "1", "yes")
MAX_REPORTS = safe_int(os.getenv("ERROR_MAX_REPORTS")) or 100
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

setup_logging(LOG_LEVEL)
logger = get_logger(__name__, component="api")

# ──────────────────────────────────────────────────────────────────────────────
# Wiring
# ──────────────────────────────────────────────────────────────────────────────

SERVICE_SESSION = SessionContext()


def build_monitor(store_path: str = ERROR_STORE_FILE, config: Optional[MonitorConfig] = None) -> ErrorMonitor:
    config = config or MonitorConfig(enabled=MONITOR_ENABLED, max_errors=MAX_REPORTS)
    collector = ContextCollector(SERVICE_SESSION)
    return ErrorMonitor(
        builder=ReportBuilder(collector),
        aggregator=ErrorAggregator(max_errors=config.max_errors),
        store=ReportStore(store_path),
        config=config,
    )


monitor = build_monitor()
logger.info(
    "Error monitor ready",
    extra={"store": os.path.abspath(ERROR_STORE_FILE), "enabled": MONITOR_ENABLED, "max_reports": MAX_REPORTS},
)


def request_session(request: Request) -> SessionContext:
    """Client session from X-Session-Id / X-User-Id, else the service session"""
    session_id = request.headers.get("x-session-id")
    user_id = request.headers.get("x-user-id")
    if session_id:
        return SessionContext.resume(session_id, user_id=user_id)
    return SERVICE_SESSION


def request_monitor(request: Request) -> ErrorMonitor:
    """Monitor whose context probe reads the incoming request"""

    def probe() -> Environment:
        return Environment(
            url=request.headers.get("referer") or str(request.url),
            user_agent=request.headers.get("user-agent"),
            online=True,
            effective_type=request.headers.get("ect"),
        )

    collector = ContextCollector(request_session(request), probe=probe)
    return monitor.bind(ReportBuilder(collector))


def parse_category(raw: Optional[str]) -> Optional[Category]:
    if raw is None:
        return None
    try:
        return Category(raw.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown category: {raw}") from None


def parse_severity(raw: Optional[str]) -> Optional[Severity]:
    if raw is None:
        return None
    try:
        return Severity(raw.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown severity: {raw}") from None


def capture_response(report) -> Dict[str, Any]:
    if report is None:
        return {"captured": False, "report": None}
    return {"captured": True, "report": ReportParser.report_to_dict(report)}


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Hook unhandled exceptions while serving; flush what is left on shutdown"""
    active = monitor
    if active.config.enabled:
        active.install()
    try:
        yield
    finally:
        active.uninstall()
        active.flush()


app = FastAPI(title="Error Monitoring (Capture → Classify → Aggregate)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev OK; lock down in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    """Report exceptions escaping a route, then answer 500"""
    request_logger = logger.with_context(path=request.url.path, method=request.method)
    request_logger.error("Unhandled exception in request", exc_info=exc)
    try:
        request_monitor(request).capture_error(exc, {"component_stack": f"{request.method} {request.url.path}"})
    except Exception:
        request_logger.exception("Failed to capture request exception")
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# ──────────────────────────────────────────────────────────────────────────────
# Capture
# ──────────────────────────────────────────────────────────────────────────────


@app.post(f"{API_PREFIX}/errors")
async def capture_error(request: Request, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """
    Accepts a client error: {message, name, stack, context}.
    `context` may use camelCase or snake_case keys and overrides what the
    server collects from the request.
    """
    error = {k: payload.get(k) for k in ("message", "name", "stack")}
    report = request_monitor(request).capture_error(error, payload.get("context"))
    return capture_response(report)


@app.post(f"{API_PREFIX}/errors/network")
async def capture_network_error(request: Request, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Accepts {url, method, status, statusText, ..., context}"""
    report = request_monitor(request).capture_network_error(payload, payload.get("context"))
    return capture_response(report)


@app.post(f"{API_PREFIX}/errors/performance")
async def capture_performance_error(request: Request, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Accepts {metric, value, threshold, impact, context}"""
    report = request_monitor(request).capture_performance_error(payload, payload.get("context"))
    return capture_response(report)


# ──────────────────────────────────────────────────────────────────────────────
# Reports
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/errors")
async def list_errors(
    limit: int = Query(50, ge=1, le=500),
    category: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
) -> Dict[str, Any]:
    reports = monitor.aggregator.reports(
        category=parse_category(category),
        severity=parse_severity(severity),
        limit=limit,
    )
    return {"errors": ReportParser.reports_to_dicts(reports)}


@app.get(f"{API_PREFIX}/errors/{{report_id}}")
async def get_error(report_id: str) -> Dict[str, Any]:
    report = monitor.aggregator.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Error report not found")
    return {"report": ReportParser.report_to_dict(report)}


@app.post(f"{API_PREFIX}/errors/{{report_id}}/resolve")
async def resolve_error(report_id: str) -> Dict[str, Any]:
    report = monitor.resolve_error(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Error report not found")
    return {"report": ReportParser.report_to_dict(report)}


@app.delete(f"{API_PREFIX}/errors")
async def clear_errors() -> Dict[str, Any]:
    monitor.clear_errors()
    return {"status": "ok"}


# ──────────────────────────────────────────────────────────────────────────────
# Statistics
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/stats")
async def stats(
    top: int = Query(10, ge=0, le=100),
    minutes: int = Query(60, ge=1, le=60 * 24 * 14),
) -> Dict[str, Any]:
    computed = monitor.stats(top_n=top, window_minutes=minutes)
    data = asdict(computed)
    data["top_errors"] = ReportParser.reports_to_dicts(computed.top_errors)
    return {"stats": data}


# ──────────────────────────────────────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────────────────────────────────────


@app.post(f"{API_PREFIX}/flush")
def flush() -> Dict[str, Any]:
    result = monitor.flush()
    if result["status"] == "error":
        raise HTTPException(status_code=503, detail="Report store unavailable")
    return result


@app.get(f"{API_PREFIX}/history")
def history(limit: int = Query(50, ge=1, le=1000)) -> Dict[str, Any]:
    """Flushed reports, newest first"""
    if monitor.store is None:
        return {"history": []}
    reports = monitor.store.load_reports()[-limit:]
    reports.reverse()
    return {"history": ReportParser.reports_to_dicts(reports)}


# ──────────────────────────────────────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/health")
def health() -> Dict[str, Any]:
    if monitor.store is None:
        return {"status": "ok", "store": None, "aggregated_reports": len(monitor.aggregator)}

    status = monitor.store.stat()
    status.aggregated_reports = len(monitor.aggregator)
    status.pending_reports = len(monitor.pending)
    return {
        "status": status.status,
        "store": {
            "exists": status.store_exists,
            "path": status.path,
            "size_bytes": status.size_bytes,
            "total_lines": status.total_lines,
        },
        "aggregated_reports": status.aggregated_reports,
        "pending_reports": status.pending_reports,
        "monitoring": monitor.config.enabled,
    }
