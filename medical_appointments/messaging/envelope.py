"""
Envelope unwrapping for queue message bodies.

A body is one of a closed set of shapes:

- ``DIRECT``: the event document itself
- ``NOTIFICATION``: a topic notification whose ``Message`` field holds the
  serialized event
- ``RELAY``: a cross-service relay event whose ``detail`` field holds the
  event (as an object or a serialized string)

Exactly one level is unwrapped. Any failure is a ``MalformedMessageError``.
"""

import json
from collections.abc import Callable
from enum import Enum
from typing import Any

from medical_appointments.core.exceptions import MalformedMessageError


class EnvelopeKind(str, Enum):
    """Shapes a queue message body can take."""

    DIRECT = "direct"
    NOTIFICATION = "notification"
    RELAY = "relay"


def decode_body(body: str | bytes) -> dict[str, Any]:
    """Parse a raw body into a JSON object."""
    try:
        document = json.loads(body)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Message body is not valid JSON: {e}", body=body) from e
    if not isinstance(document, dict):
        raise MalformedMessageError("Message body is not a JSON object", body=body)
    return document


def detect_envelope(document: dict[str, Any]) -> EnvelopeKind:
    """Decide which envelope wraps ``document`` from the fields present."""
    if "Message" in document:
        return EnvelopeKind.NOTIFICATION
    if "detail" in document:
        return EnvelopeKind.RELAY
    return EnvelopeKind.DIRECT


def _load_inner(inner: Any, field_name: str) -> dict[str, Any]:
    if isinstance(inner, dict):
        return inner
    if isinstance(inner, (str, bytes)):
        try:
            inner = json.loads(inner)
        except ValueError as e:
            raise MalformedMessageError(f"Envelope field '{field_name}' is not valid JSON") from e
        if isinstance(inner, dict):
            return inner
    raise MalformedMessageError(f"Envelope field '{field_name}' does not hold a JSON object")


def unwrap_direct(document: dict[str, Any]) -> dict[str, Any]:
    return document


def unwrap_notification(document: dict[str, Any]) -> dict[str, Any]:
    """Extract the event from a notification's ``Message`` field."""
    return _load_inner(document.get("Message"), "Message")


def unwrap_relay(document: dict[str, Any]) -> dict[str, Any]:
    """Extract the event from a relay event's ``detail`` field."""
    return _load_inner(document.get("detail"), "detail")


UNWRAPPERS: dict[EnvelopeKind, Callable[[dict[str, Any]], dict[str, Any]]] = {
    EnvelopeKind.DIRECT: unwrap_direct,
    EnvelopeKind.NOTIFICATION: unwrap_notification,
    EnvelopeKind.RELAY: unwrap_relay,
}


def unwrap_event(body: str | bytes) -> tuple[EnvelopeKind, dict[str, Any]]:
    """
    Decode a queue body and unwrap one envelope level.

    Args:
        body: Raw queue message body

    Returns:
        Envelope kind that was detected and the inner event document

    Raises:
        MalformedMessageError: If the body or the envelope cannot be decoded
    """
    document = decode_body(body)
    kind = detect_envelope(document)
    try:
        return kind, UNWRAPPERS[kind](document)
    except MalformedMessageError as e:
        e.body = body
        raise
