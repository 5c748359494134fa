"""Classify completed HTTP exchanges into success or a failure kind.

The WorkFlowy API uses two success conventions side by side:

- HTTP_STATUS: a 2xx status is success and the body is handed to the
  response decoder (fetch, list, create, export).
- STATUS_OK_BODY: a 2xx status must additionally carry a JSON object with
  ``status`` equal to "ok", compared case-insensitively (update, delete,
  complete, uncomplete, move).

Both modes are kept explicit; callers pick one per operation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from ..models import (
    AuthenticationError,
    HttpFailure,
    MalformedResponse,
    NodeNotFoundError,
    RateLimitError,
    RequestTimeoutError,
    StatusNotOk,
    TransportFailure,
    UnexpectedShape,
    WorkFlowyError,
)


class ConfirmationMode(str, Enum):
    HTTP_STATUS = "http_status"
    STATUS_OK_BODY = "status_ok_body"


class Outcome(str, Enum):
    SUCCESS = "success"
    SUCCESS_CONFIRMED = "success_confirmed"
    TRANSPORT_FAILURE = "transport_failure"
    HTTP_FAILURE = "http_failure"
    MALFORMED_RESPONSE = "malformed_response"
    UNEXPECTED_SHAPE = "unexpected_shape"
    STATUS_NOT_OK = "status_not_ok"


@dataclass(frozen=True)
class HttpExchange:
    """What came back from one transport call.

    ``transport_error`` is set (and ``status_code`` is 0) when no response
    was obtained at all. ``node_id`` is the node the call addressed, if any.
    """

    status_code: int
    reason: str = ""
    body: str | None = None
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    transport_error: str | None = None
    timed_out: bool = False
    path: str | None = None
    node_id: str | None = None


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    operation: str
    status_code: int
    message: str = ""
    detail: Any = None
    raw_body: str | None = None
    exchange: HttpExchange | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.SUCCESS, Outcome.SUCCESS_CONFIRMED)

    def to_error(self) -> WorkFlowyError | None:
        """Build the exception matching this classification (None on success)."""
        if self.ok:
            return None

        common: dict[str, Any] = {
            "operation": self.operation,
            "status_code": self.status_code,
            "detail": self.detail,
            "raw_body": self.raw_body,
        }

        if self.outcome is Outcome.TRANSPORT_FAILURE:
            if self.exchange is not None and self.exchange.timed_out:
                return RequestTimeoutError(self.message, **common)
            return TransportFailure(self.message, **common)

        if self.outcome is Outcome.HTTP_FAILURE:
            return _http_failure(self, common)

        if self.outcome is Outcome.MALFORMED_RESPONSE:
            return MalformedResponse(self.message, **common)

        if self.outcome is Outcome.UNEXPECTED_SHAPE:
            return UnexpectedShape(self.message, **common)

        return StatusNotOk(self.message, **common)

    def raise_for_failure(self) -> None:
        error = self.to_error()
        if error is not None:
            raise error


def _http_failure(classification: Classification, common: dict[str, Any]) -> HttpFailure:
    status = classification.status_code
    message = classification.message
    exchange = classification.exchange

    if status in (401, 403):
        return AuthenticationError(message, **common)

    if status == 404:
        node_id = exchange.node_id if exchange is not None else None
        return NodeNotFoundError(message, node_id=node_id, **common)

    if status == 429:
        retry_after = None
        if exchange is not None:
            header = exchange.headers.get("Retry-After")
            if header and header.strip().isdigit():
                retry_after = int(header.strip())
        return RateLimitError(message, retry_after=retry_after, **common)

    return HttpFailure(message, **common)


def parse_error_body(body: str | None) -> Any:
    """Parse an error body as JSON when possible, otherwise keep the raw text."""
    if body is None or not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body


def is_status_ok(value: Any) -> bool:
    return isinstance(value, str) and value.lower() == "ok"


def classify_exchange(
    exchange: HttpExchange,
    operation: str,
    mode: ConfirmationMode = ConfirmationMode.HTTP_STATUS,
) -> Classification:
    """Decide the outcome of one exchange for ``operation``."""
    if exchange.transport_error is not None:
        return Classification(
            outcome=Outcome.TRANSPORT_FAILURE,
            operation=operation,
            status_code=0,
            message=f"{operation}: no response from API",
            detail=exchange.transport_error,
            exchange=exchange,
        )

    body = exchange.body

    if not 200 <= exchange.status_code <= 299:
        reason = f" {exchange.reason}" if exchange.reason else ""
        return Classification(
            outcome=Outcome.HTTP_FAILURE,
            operation=operation,
            status_code=exchange.status_code,
            message=f"{operation}: HTTP {exchange.status_code}{reason}",
            detail=parse_error_body(body),
            raw_body=body,
            exchange=exchange,
        )

    if mode is ConfirmationMode.HTTP_STATUS:
        return Classification(
            outcome=Outcome.SUCCESS,
            operation=operation,
            status_code=exchange.status_code,
            raw_body=body,
            exchange=exchange,
        )

    try:
        parsed = json.loads(body or "")
    except ValueError as err:
        return Classification(
            outcome=Outcome.MALFORMED_RESPONSE,
            operation=operation,
            status_code=exchange.status_code,
            message=f"{operation}: error parsing response JSON: {err}",
            detail=body,
            raw_body=body,
            exchange=exchange,
        )

    if not isinstance(parsed, dict) or "status" not in parsed:
        return Classification(
            outcome=Outcome.UNEXPECTED_SHAPE,
            operation=operation,
            status_code=exchange.status_code,
            message=f"{operation}: unexpected response shape (missing 'status')",
            detail=parsed,
            raw_body=body,
            exchange=exchange,
        )

    status = parsed["status"]
    if not is_status_ok(status):
        return Classification(
            outcome=Outcome.STATUS_NOT_OK,
            operation=operation,
            status_code=exchange.status_code,
            message=f"{operation}: status != ok ({status})",
            detail=parsed,
            raw_body=body,
            exchange=exchange,
        )

    return Classification(
        outcome=Outcome.SUCCESS_CONFIRMED,
        operation=operation,
        status_code=exchange.status_code,
        raw_body=body,
        exchange=exchange,
    )
