"""
Unit tests for payload parsing and report serialization.
"""

from models.data_models import Category, NetworkErrorInfo, PerformanceErrorInfo, Severity
from services.parser import ReportParser


def test_parse_json():
    assert ReportParser.parse_json('{"id": "a"}') == {"id": "a"}
    assert ReportParser.parse_json("not json") is None
    assert ReportParser.parse_json("[1, 2]") is None


def test_context_fields_accept_both_casings():
    fields = ReportParser.context_fields(
        {"userAgent": "ua", "session_id": "s1", "timestamp": "2024-01-01T00:00:00Z"}
    )
    assert fields == {"user_agent": "ua", "session_id": "s1", "timestamp": 1704067200000}


def test_context_fields_drop_bad_values():
    fields = ReportParser.context_fields(
        {"userActions": "click", "performanceMetrics": [1], "timestamp": "yesterday-ish"}
    )
    assert fields == {}


def test_network_error_info_defaults():
    info = ReportParser.network_error_info({"status": "502", "statusText": "Bad Gateway"})
    assert info.url == ""
    assert info.method == "GET"
    assert info.status == 502
    assert info.status_text == "Bad Gateway"


def test_performance_error_info_from_garbage():
    info = ReportParser.performance_error_info(None)
    assert info.metric == "unknown"
    assert info.value == 0.0
    assert info.impact == "low"


def test_report_round_trip(builder):
    report = builder.build({"message": "Bad API response", "stack": "at a\nat b"}, {"userActions": ["save"]})
    restored = ReportParser.report_from_dict(ReportParser.report_to_dict(report))
    assert restored == report


def test_report_from_dict_repairs_values():
    report = ReportParser.report_from_dict(
        {
            "id": "error_1",
            "category": "nonsense",
            "severity": "HIGH",
            "count": 0,
            "firstOccurrence": 2000,
            "lastOccurrence": 1000,
            "context": {"url": "/x"},
        }
    )
    assert report.category == Category.UNKNOWN
    assert report.severity == Severity.HIGH
    assert report.count == 1
    assert report.first_occurrence == 1000
    assert report.last_occurrence == 2000
    assert report.message == "Unknown error"
    assert report.context.url == "/x"


def test_report_from_dict_requires_id():
    assert ReportParser.report_from_dict({"message": "x"}) is None


def test_context_fields_drop_non_finite_timestamps():
    assert ReportParser.context_fields({"timestamp": float("inf")}) == {}
    assert ReportParser.context_fields({"timestamp": float("-inf")}) == {}
    assert ReportParser.context_fields({"timestamp": float("nan")}) == {}


def test_network_error_info_coerces_instances():
    info = ReportParser.network_error_info(NetworkErrorInfo(url="/api", method="post", status="503"))
    assert info.status == 503
    assert info.method == "POST"


def test_performance_error_info_coerces_instances():
    info = ReportParser.performance_error_info(PerformanceErrorInfo(metric="LCP", value=None, threshold="2500", impact="HIGH"))
    assert info.value == 0.0
    assert info.threshold == 2500.0
    assert info.impact == "high"
