"""Error Decoding — turns a collaborator failure into one user-facing message.

Invariants:
    - Precedence: page errors > single message > field errors > stringified raw error
    - Multiple page errors joined with "; "; field errors rendered "field: message"
    - decode_error_message NEVER raises: any decode failure yields GENERIC_DECODE_MESSAGE

Design Decisions:
    - Accepts RemoteError, a bare error-body dict, or anything else: collaborators
      in the wild hand back all three
    - Walks the record-service body shape ({pageErrors, message, fieldErrors}) so a
      RemoteError and a raw body decode identically
"""

import json
import logging

from purchase_tool.core.errors import DecodeError, RemoteError

logger = logging.getLogger(__name__)

GENERIC_DECODE_MESSAGE = "error parsing server response"
SEPARATOR = "; "


def _messages(entries) -> list[str]:
    """[{'message': 'x'}, 'y', ...] -> ['x', 'y']"""
    if entries is None:
        return []
    if isinstance(entries, (str, dict)):
        entries = [entries]
    out = []
    for entry in entries:
        if isinstance(entry, dict):
            message = entry.get("message")
        else:
            message = entry
        if message:
            out.append(str(message))
    return out


def _field_messages(field_errors) -> list[str]:
    if not field_errors:
        return []
    if not isinstance(field_errors, dict):
        raise DecodeError(f"fieldErrors is {type(field_errors).__name__}, not a mapping")
    return [
        f"{name}: {message}"
        for name, entries in field_errors.items()
        for message in _messages(entries)
    ]


def _body_of(error) -> dict | None:
    if isinstance(error, RemoteError):
        return error.body
    if isinstance(error, dict):
        return error.get("body", error) if isinstance(error.get("body"), dict) else error
    return None


def _stringify(error) -> str:
    if isinstance(error, RemoteError):
        return error.message
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return json.dumps(error, default=str)


def _decode(error) -> str:
    body = _body_of(error)
    if body is not None:
        page = _messages(body.get("pageErrors"))
        if page:
            return SEPARATOR.join(page)
        message = body.get("message")
        if message:
            return str(message)
        fields = _field_messages(body.get("fieldErrors"))
        if fields:
            return SEPARATOR.join(fields)
    return _stringify(error)


def decode_error_message(error) -> str:
    """Best available message for a collaborator failure. Never raises."""
    try:
        message = _decode(error)
    except Exception as e:
        logger.warning(f"Could not decode collaborator error: {e}")
        return GENERIC_DECODE_MESSAGE
    return message or GENERIC_DECODE_MESSAGE


def reported_message(error, fallback: str) -> str:
    """Collaborator's own message verbatim if it sent one, else fallback."""
    if isinstance(error, RemoteError) and error.body_message:
        return error.body_message
    if isinstance(error, dict):
        body = _body_of(error) or {}
        if body.get("message"):
            return str(body["message"])
    return fallback
