"""
Error Classifier - Maps raw errors to a category and a severity

Both decisions are ordered rule tables evaluated first-match, so the
priority between overlapping keywords is the order of the table.
"""

from typing import Any, Callable, List, Mapping, Tuple

from models.data_models import Category, Severity

UNKNOWN_MESSAGE = "Unknown error"
DEFAULT_NAME = "Error"


def _read(error: Any, key: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(key)
    try:
        return getattr(error, key, None)
    except Exception:
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    try:
        return str(value)
    except Exception:
        return ""


def _raw_message(error: Any) -> str:
    message = _text(_read(error, "message"))
    if not message and isinstance(error, BaseException):
        message = _text(error)
    return message


def _raw_name(error: Any) -> str:
    name = _text(_read(error, "name"))
    if not name and isinstance(error, BaseException):
        name = type(error).__name__
    return name


def error_message(error: Any) -> str:
    """Message of an exception, a mapping or any object with .message"""
    return _raw_message(error) or UNKNOWN_MESSAGE


def error_name(error: Any) -> str:
    """Name of an exception type, or the .name / ["name"] of anything else"""
    return _raw_name(error) or DEFAULT_NAME


def _contains(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)


# (message, name) -> bool
CategoryRule = Tuple[Callable[[str, str], bool], Category]

CATEGORY_RULES: List[CategoryRule] = [
    (lambda msg, name: _contains(msg, "network", "fetch") or "networkerror" in name, Category.NETWORK),
    (lambda msg, name: _contains(msg, "api", "response", "request"), Category.API),
    (lambda msg, name: "react" in msg or "invariant" in name, Category.REACT),
    (lambda msg, name: _contains(msg, "performance", "timeout"), Category.PERFORMANCE),
    (lambda msg, name: _contains(msg, "auth", "unauthorized", "forbidden"), Category.AUTHENTICATION),
    (lambda msg, name: _contains(msg, "validation", "invalid", "required"), Category.VALIDATION),
]

# (message, category) -> bool
SeverityRule = Tuple[Callable[[str, Category], bool], Severity]

SEVERITY_RULES: List[SeverityRule] = [
    (
        lambda msg, cat: _contains(msg, "critical", "fatal") or cat == Category.AUTHENTICATION,
        Severity.CRITICAL,
    ),
    (
        lambda msg, cat: "error" in msg or cat in (Category.NETWORK, Category.API),
        Severity.HIGH,
    ),
    (
        lambda msg, cat: "warning" in msg or cat in (Category.VALIDATION, Category.PERFORMANCE),
        Severity.MEDIUM,
    ),
]


def categorize(error: Any) -> Category:
    """Category of the first rule matching the lowercased message/name"""
    message = _raw_message(error).lower()
    name = _raw_name(error).lower()
    for predicate, category in CATEGORY_RULES:
        if predicate(message, name):
            return category
    return Category.JAVASCRIPT


def determine_severity(error: Any, category: Category) -> Severity:
    """Severity of the first rule matching the message and category"""
    message = _raw_message(error).lower()
    for predicate, severity in SEVERITY_RULES:
        if predicate(message, category):
            return severity
    return Severity.LOW
