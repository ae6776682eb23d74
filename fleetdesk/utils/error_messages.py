from typing import Any, List

from fleetdesk.core.errors import ServiceError

MESSAGE_KEYS = ("message", "msg")


def extract_error_messages(error: Any) -> List[str]:
    """
    Flatten a (possibly nested) error structure into its human-readable messages.

    Mappings that carry a ``message``/``msg`` key contribute that text only; any other
    mapping or sequence is searched recursively in order.
    """
    if error is None:
        return []
    if isinstance(error, ServiceError):
        return [error.message] + extract_error_messages(error.details)
    if isinstance(error, str):
        return [error] if error else []
    if isinstance(error, dict):
        for key in MESSAGE_KEYS:
            if isinstance(error.get(key), str) and error[key]:
                return [error[key]]
        messages: List[str] = []
        for value in error.values():
            messages.extend(extract_error_messages(value))
        return messages
    if isinstance(error, (list, tuple, set)):
        messages = []
        for item in error:
            messages.extend(extract_error_messages(item))
        return messages
    if isinstance(error, Exception):
        return [str(error)] if str(error) else []
    return [str(error)]


def first_error_message(error: Any, default: str = "Something went wrong") -> str:
    messages = extract_error_messages(error)
    return messages[0] if messages else default
