import re
from typing import Dict, Optional

__all__ = [
    'DashboardError', 'ValidationError', 'ConflictError', 'NetworkError', 'ServerError',
    'user_message', 'is_technical',
]


class DashboardError(Exception):
    """Base class for every failure the dashboard reports to the user."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.status_code = status_code


class ValidationError(DashboardError):
    default_message = "Please correct the errors and try again."

    def __init__(self, field_errors: Dict[str, str]):
        super().__init__(self.default_message)
        self.field_errors = dict(field_errors)

    def __eq__(self, other) -> bool:
        return isinstance(other, ValidationError) and self.field_errors == other.field_errors

    __hash__ = DashboardError.__hash__


class ConflictError(DashboardError):
    default_message = "A budget for this period already exists."


class NetworkError(DashboardError):
    default_message = "Network error. Please check your connection and try again."


class ServerError(DashboardError):
    default_message = "The server could not complete the request. Please try again later."


TECHNICAL_PATTERNS = (
    re.compile(r'\b\w+(Exception|Error)\b'),
    re.compile(r'\b(SELECT|INSERT|UPDATE|DELETE)\b.+\b(FROM|INTO|SET|WHERE)\b', re.IGNORECASE),
    re.compile(r'\bSQL\b|SQLState|ORA-\d+|jdbc', re.IGNORECASE),
    re.compile(r'\bat\s+[\w$]+(\.[\w$]+)+\('),
    re.compile(r'\b(org|java|javax|com|jakarta)\.[a-z]\w*\.'),
    re.compile(r'Traceback \(most recent call last\)'),
    re.compile(r'could not execute|constraint|hibernate', re.IGNORECASE),
)

TRUNCATION_PATTERN = re.compile(r'data too long|value too long|truncat', re.IGNORECASE)
CONSTRAINT_PATTERN = re.compile(r'constraint|duplicate key|unique', re.IGNORECASE)


def is_technical(text: str) -> bool:
    return any(p.search(text) for p in TECHNICAL_PATTERNS) or bool(TRUNCATION_PATTERN.search(text))


def user_message(exc: Exception) -> str:
    """One human-readable sentence for any error; raw backend payloads never leak."""
    if isinstance(exc, ValidationError):
        return exc.message
    if not isinstance(exc, DashboardError):
        return DashboardError.default_message
    text = (exc.message or "").strip()
    if not text:
        return exc.default_message
    if TRUNCATION_PATTERN.search(text):
        return "One of the values is too long. Please shorten it and try again."
    if is_technical(text):
        if CONSTRAINT_PATTERN.search(text):
            return "This change conflicts with existing budget data."
        return exc.default_message
    return text
