"""
Unit tests for the report builder.
"""

import pytest

from models.data_models import Category, NetworkErrorInfo, PerformanceErrorInfo, Severity
from services.report_builder import (
    MAX_STACK_LINES,
    clean_stack,
    extract_stack_trace,
    fingerprint,
    format_number,
)


def _raise(exc):
    try:
        raise exc
    except Exception as caught:
        return caught


def test_fresh_report(builder, clock):
    report = builder.build({"message": "Network request failed", "name": "Error"})

    assert report.id.startswith("error_")
    assert report.message == "Network request failed"
    assert report.name == "Error"
    assert report.category == Category.NETWORK
    assert report.severity == Severity.HIGH
    assert report.count == 1
    assert report.first_occurrence == report.last_occurrence == clock.now
    assert report.resolved is False
    assert report.fingerprint


def test_ids_are_unique(builder):
    assert builder.build({"message": "a"}).id != builder.build({"message": "a"}).id


def test_defaults_for_empty_error(builder):
    report = builder.build({})
    assert report.message == "Unknown error"
    assert report.name == "Error"
    assert report.category == Category.JAVASCRIPT
    assert report.severity == Severity.LOW


@pytest.mark.parametrize("error", [None, 0, "text", object()])
def test_build_never_raises(builder, error):
    report = builder.build(error)
    assert report.count == 1


def test_context_overrides_win(builder):
    report = builder.build({"message": "x"}, {"url": "https://elsewhere", "userId": "99"})
    assert report.context.url == "https://elsewhere"
    assert report.context.user_id == "99"


def test_same_session_across_builders(builder):
    first = builder.build({"message": "a"})
    second = builder.build_network({"url": "/api/tasks", "method": "GET", "status": 500})
    third = builder.build_performance({"metric": "LCP", "value": 4000, "threshold": 2500})
    assert first.context.session_id == second.context.session_id == third.context.session_id


def test_stack_from_payload(builder):
    stack = "Error: x\n    at foo (app.js:1:1)\n\n    at bar (app.js:2:2)"
    report = builder.build({"message": "x", "stack": stack})
    assert report.context.stack_trace == "Error: x\nat foo (app.js:1:1)\nat bar (app.js:2:2)"


def test_stack_from_raised_exception(builder):
    report = builder.build(_raise(RuntimeError("fatal state")))
    assert report.name == "RuntimeError"
    assert report.severity == Severity.CRITICAL
    lines = report.context.stack_trace.split("\n")
    assert lines[0] == "RuntimeError: fatal state"
    assert lines[1].startswith("at _raise (")
    assert "Traceback" not in report.context.stack_trace


def _recurse(depth):
    if depth == 0:
        raise RecursionError("too deep")
    return _recurse(depth - 1)


def test_deep_stack_keeps_message_and_innermost_frames(builder):
    try:
        _recurse(50)
    except RecursionError as exc:
        report = builder.build(exc)

    lines = report.context.stack_trace.split("\n")
    assert len(lines) == MAX_STACK_LINES
    assert lines[0] == "RecursionError: too deep"
    assert all(line.startswith("at _recurse (") for line in lines[1:])


def test_unraised_exception_has_no_stack(builder):
    report = builder.build(ValueError("invalid"))
    assert report.context.stack_trace is None


def test_clean_stack_limits_lines():
    stack = "\n".join(f"  line {i}  " for i in range(30))
    lines = clean_stack(stack).split("\n")
    assert len(lines) == MAX_STACK_LINES
    assert lines[0] == "line 0"
    assert all(line for line in lines)


def test_clean_stack_drops_blank_lines():
    assert clean_stack("a\n   \n\nb") == "a\nb"
    assert clean_stack("   \n  ") is None
    assert clean_stack(None) is None


def test_extract_stack_ignores_non_strings():
    assert extract_stack_trace({"stack": ["a", "b"]}) is None


@pytest.mark.parametrize("status,expected", [(503, Severity.HIGH), (500, Severity.HIGH), (404, Severity.MEDIUM), (None, Severity.MEDIUM)])
def test_network_severity(builder, status, expected):
    report = builder.build_network({"url": "/api/tasks", "method": "post", "status": status})
    assert report.severity == expected
    assert report.category == Category.NETWORK
    assert report.name == "NetworkError"


def test_network_message(builder):
    report = builder.build_network(
        NetworkErrorInfo(url="/api/tasks", method="GET", status=503, status_text="Service Unavailable")
    )
    assert report.message == "Network error: GET /api/tasks - 503 Service Unavailable"


def test_network_message_without_status(builder):
    report = builder.build_network({"url": "/api/tasks", "method": "get"})
    assert report.message == "Network error: GET /api/tasks"


@pytest.mark.parametrize("impact,expected", [("high", Severity.HIGH), ("medium", Severity.MEDIUM), ("low", Severity.LOW), ("bogus", Severity.LOW)])
def test_performance_severity_follows_impact(builder, impact, expected):
    report = builder.build_performance({"metric": "LCP", "value": 4000, "threshold": 2500, "impact": impact})
    assert report.severity == expected
    assert report.category == Category.PERFORMANCE


def test_performance_message(builder):
    report = builder.build_performance(PerformanceErrorInfo(metric="LCP", value=4000, threshold=2500.5, impact="high"))
    assert report.message == "Performance issue: LCP (4000) exceeded threshold (2500.5)"
    assert report.name == "PerformanceError"


def test_performance_message_keeps_precision(builder):
    report = builder.build_performance({"metric": "heapUsed", "value": 123456789, "threshold": 1234.5678})
    assert report.message == "Performance issue: heapUsed (123456789) exceeded threshold (1234.5678)"


@pytest.mark.parametrize("value,expected", [(4000.0, "4000"), (123456789, "123456789"), (0.1, "0.1"), (1234.5678, "1234.5678")])
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_network_info_instance_is_coerced(builder):
    report = builder.build_network(NetworkErrorInfo(url="/api", method="get", status="503"))
    assert report.severity == Severity.HIGH
    assert report.message == "Network error: GET /api - 503"


def test_performance_info_instance_is_coerced(builder):
    report = builder.build_performance(PerformanceErrorInfo(metric="LCP", value=None, threshold=2500))
    assert report.message == "Performance issue: LCP (0) exceeded threshold (2500)"


def test_non_finite_timestamp_override_is_ignored(builder, clock):
    report = builder.build({"message": "x"}, {"timestamp": float("inf")})
    assert report.context.timestamp == clock.now


def test_fingerprint_normalizes_message():
    a = fingerprint(Category.API, "Error", "Bad   Response ")
    b = fingerprint(Category.API, "Error", "bad response")
    c = fingerprint(Category.NETWORK, "Error", "bad response")
    assert a == b
    assert a != c
