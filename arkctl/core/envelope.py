"""Envelope decoding and success/failure classification."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional, Type

from pydantic import ValidationError

from arkctl.core.errors import DecodeError, RemoteOperationError
from arkctl.core.models import ResponseEnvelope

SUCCESS_CODE = "SUCCESS"
FAILED_CODE = "FAILED"
# The only nested sub-code treated as success (uninstall of a biz that is already gone).
NOT_FOUND_BIZ = "NOT_FOUND_BIZ"


class Outcome(str, Enum):
    SUCCESS = "SUCCESS"
    IDEMPOTENT_NOOP = "IDEMPOTENT_NOOP"


def decode_envelope(body: str, payload_type: Any, *, operation: str = "") -> ResponseEnvelope:
    """
    Two-phase decode: parse JSON, then validate into `ResponseEnvelope[payload_type]`.

    Raises:
        DecodeError: body is not JSON, not an object, lacks a string `code`, or `data`
            does not fit `payload_type`.
    """
    where = f" from {operation}" if operation else ""
    try:
        raw = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"invalid JSON response{where}: {e}; body: {_clip(body)}") from e
    if not isinstance(raw, dict):
        raise DecodeError(f"unexpected response{where}: expected a JSON object, got {type(raw).__name__}")

    model: Type[ResponseEnvelope] = ResponseEnvelope[payload_type]  # type: ignore[valid-type]
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(f"malformed envelope{where}: {e}") from e


def failure_message(envelope: ResponseEnvelope) -> str:
    msg = envelope.message or ""
    if envelope.error_stack_trace:
        msg += " \n Caused by: " + envelope.error_stack_trace
    return msg


def classify(envelope: ResponseEnvelope, *, action: Optional[str] = None) -> Outcome:
    """Return SUCCESS iff the top-level code is SUCCESS; otherwise raise RemoteOperationError."""
    if envelope.is_success():
        return Outcome.SUCCESS
    detail = failure_message(envelope)
    raise RemoteOperationError(
        f"{action} failed: {detail}" if action else detail,
        code=envelope.code,
        envelope=envelope.model_dump(mode="json", by_alias=True),
    )


def classify_uninstall(envelope: ResponseEnvelope, *, action: Optional[str] = "uninstall biz") -> Outcome:
    """
    Uninstall-specific classification.

    A FAILED envelope whose payload carries `code == NOT_FOUND_BIZ` means the biz is
    already absent, which is an acceptable end state. Any other failure reproduces the
    whole envelope so unmapped sub-codes stay diagnosable.
    """
    if envelope.is_success():
        return Outcome.SUCCESS
    nested = getattr(envelope.data, "code", None)
    if envelope.code == FAILED_CODE and nested == NOT_FOUND_BIZ:
        return Outcome.IDEMPOTENT_NOOP
    rendered = envelope.render()
    raise RemoteOperationError(
        f"{action} failed: {rendered}" if action else rendered,
        code=envelope.code,
        envelope=envelope.model_dump(mode="json", by_alias=True),
    )


def _clip(text: Any, limit: int = 200) -> str:
    s = str(text)
    return s if len(s) <= limit else s[:limit] + "..."
