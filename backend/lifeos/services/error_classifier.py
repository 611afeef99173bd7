"""
Error message extraction and plan-limit classification.

Backend failures arrive in several shapes: a plain string, an exception with
a ``message``, an ``ApiError`` whose ``response`` holds the error envelope,
or the envelope itself (``{success, message, errors: [{field, message}]}``).

The backend reports plan-limit violations as ordinary validation errors with
no dedicated code, so classification relies on message content. Callers only
use ``extract_message``, ``is_limit_error`` and ``classify_failure``; the
matching rules can change here without touching them.
"""

from typing import Any

from lifeos.constants import (
    DEFAULT_ERROR_MESSAGE,
    GENERIC_VALIDATION_MESSAGE,
    LIMIT_ENTRY_KEYWORDS,
    LIMIT_MESSAGE_KEYWORDS,
    NESTED_ERROR_FALLBACK,
    SUBSCRIPTION_ERROR_FIELD,
)
from lifeos.models.limits import FailureClassification, FailureKind


def _field(obj: Any, name: str) -> Any:
    if obj is None or isinstance(obj, str):
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _message_of(obj: Any) -> str | None:
    message = _field(obj, "message")
    if isinstance(message, str) and message:
        return message
    if message is None and isinstance(obj, BaseException):
        return str(obj) or None
    return None


def _response_data(error: Any) -> Any:
    """The attached error envelope if there is one, else the error itself."""
    return _field(error, "response") or error


def _errors(data: Any) -> list:
    errors = _field(data, "errors")
    if isinstance(errors, list):
        return errors
    return []


def _entry_message(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry or None
    message = _field(entry, "message")
    return message if isinstance(message, str) and message else None


def _mentions(message: str | None, keywords: tuple[str, ...]) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(keyword in lowered for keyword in keywords)


def _is_subscription_entry(entry: Any, keywords: tuple[str, ...]) -> bool:
    if _field(entry, "field") == SUBSCRIPTION_ERROR_FIELD:
        return True
    return _mentions(_entry_message(entry), keywords)


def extract_message(error: Any) -> str:
    """Return the single most useful human-readable message of an error."""
    if isinstance(error, str):
        return error

    data = _response_data(error)
    errors = _errors(data)

    if errors:
        for entry in errors:
            if _is_subscription_entry(entry, LIMIT_ENTRY_KEYWORDS) and _entry_message(entry):
                return _entry_message(entry)
        first = _entry_message(errors[0])
        if first:
            return first

    nested = _field(data, "error")
    if nested:
        if isinstance(nested, str):
            return nested
        return _message_of(nested) or NESTED_ERROR_FALLBACK

    own_message = _message_of(error)
    if own_message and own_message != GENERIC_VALIDATION_MESSAGE:
        return own_message

    top_message = _message_of(data)
    if top_message and top_message != GENERIC_VALIDATION_MESSAGE:
        return top_message

    if top_message == GENERIC_VALIDATION_MESSAGE and errors:
        first = _entry_message(errors[0])
        if first:
            return first

    return DEFAULT_ERROR_MESSAGE


def is_limit_error(error: Any) -> bool:
    """True when the failure means the user hit a plan limit."""
    errors = _errors(_response_data(error))
    if any(_is_subscription_entry(entry, ("limit", "upgrade")) for entry in errors):
        return True
    return _mentions(extract_message(error), LIMIT_MESSAGE_KEYWORDS)


def classify_failure(error: Any) -> FailureClassification:
    """Upgrade prompt for plan-limit failures, generic error for the rest."""
    kind = FailureKind.PLAN_LIMIT if is_limit_error(error) else FailureKind.GENERIC
    return FailureClassification(kind=kind, message=extract_message(error))
