"""Proxy controller: client calls wrapped in a problem-details envelope.

Every handler returns ``(http_status, envelope)`` where the envelope is::

    {"type", "title", "status", "detail", "data", "errors", "traceId"}

Route registration lives in ``server.py``; this module only shapes results
and maps the client's error kinds onto HTTP statuses.
"""

import logging
import uuid
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from .client import WorkFlowyClient
from .models import (
    DecodeError,
    HttpFailure,
    MalformedResponse,
    MoveTarget,
    NodeCreateRequest,
    NodeListRequest,
    NodeUpdateRequest,
    Position,
    RequestTimeoutError,
    StatusNotOk,
    TransportFailure,
    UnexpectedShape,
    WorkFlowyError,
)

logger = logging.getLogger(__name__)

VALIDATION_TITLE = "One or more validation errors occurred."
VALIDATION_TYPE = "https://tools.ietf.org/html/rfc9110#section-15.5.1"
API_ERROR_TITLE = "Workflowy API error"

Envelope = dict[str, Any]
Result = tuple[int, Envelope]


def new_trace_id() -> str:
    return uuid.uuid4().hex


def envelope_ok(data: Any, trace_id: str | None = None) -> Result:
    return 200, {
        "type": None,
        "title": "OK",
        "status": 200,
        "detail": None,
        "data": data,
        "errors": {},
        "traceId": trace_id or new_trace_id(),
    }


def envelope_problem(
    title: str,
    status: int,
    errors: Any = None,
    detail: str | None = None,
    trace_id: str | None = None,
    problem_type: str = "about:blank",
) -> Result:
    return status, {
        "type": problem_type,
        "title": title,
        "status": status,
        "detail": detail,
        "data": None,
        "errors": errors if errors is not None else {},
        "traceId": trace_id or new_trace_id(),
    }


def validation_problem(errors: dict[str, list[str]], trace_id: str | None = None) -> Result:
    return envelope_problem(
        VALIDATION_TITLE, 400, errors=errors, trace_id=trace_id, problem_type=VALIDATION_TYPE
    )


def validation_errors(err: ValidationError) -> dict[str, list[str]]:
    """Flatten a pydantic ValidationError into ``field -> [messages]``."""
    errors: dict[str, list[str]] = {}
    for item in err.errors(include_url=False, include_context=False):
        field = ".".join(str(part) for part in item.get("loc", ())) or "body"
        errors.setdefault(field, []).append(item.get("msg", "Invalid value"))
    return errors


def status_for_error(error: WorkFlowyError) -> int:
    """HTTP status the proxy answers with for a client error."""
    if isinstance(error, HttpFailure):
        return error.status_code if error.status_code >= 400 else 502
    if isinstance(error, RequestTimeoutError):
        return 504
    if isinstance(error, TransportFailure):
        return 502
    if isinstance(error, (MalformedResponse, UnexpectedShape, StatusNotOk, DecodeError)):
        return 502
    return 500


def _error_payload(error: WorkFlowyError) -> Any:
    detail = error.detail
    if isinstance(detail, (dict, list)):
        return detail
    if detail is not None:
        return {"body": detail}
    if error.raw_body:
        return {"body": error.raw_body}
    return {}


def envelope_for_error(error: WorkFlowyError, trace_id: str | None = None) -> Result:
    return envelope_problem(
        API_ERROR_TITLE,
        status_for_error(error),
        errors={"kind": error.kind, "remote": _error_payload(error)},
        detail=error.message,
        trace_id=trace_id,
    )


def _required_id(node_id: str | None) -> dict[str, list[str]] | None:
    if node_id is None or not node_id.strip():
        return {"id": ["Node ID is required."]}
    return None


class NodeController:
    """Handlers behind the HTTP proxy routes."""

    def __init__(self, client: WorkFlowyClient) -> None:
        self.client = client

    async def _run(
        self,
        action: str,
        call: Callable[[], Awaitable[Any]],
        trace_id: str | None,
    ) -> Result:
        trace_id = trace_id or new_trace_id()
        try:
            data = await call()
        except WorkFlowyError as err:
            logger.warning("%s failed [%s]: %s", action, trace_id, err)
            return envelope_for_error(err, trace_id)
        except ValueError as err:
            return validation_problem({"request": [str(err)]}, trace_id)
        return envelope_ok(data, trace_id)

    async def get_node(self, node_id: str, trace_id: str | None = None) -> Result:
        """GET /node/{id}"""
        invalid = _required_id(node_id)
        if invalid:
            return validation_problem(invalid, trace_id)

        async def call() -> Any:
            node = await self.client.get_node(node_id)
            return node.to_wire()

        return await self._run("get_node", call, trace_id)

    async def get_nodes(self, parent_id: str | None = None, trace_id: str | None = None) -> Result:
        """GET /nodes?parentId="""

        async def call() -> Any:
            nodes = await self.client.list_nodes(NodeListRequest(parent_id=parent_id))
            return [node.to_wire() for node in nodes]

        return await self._run("get_nodes", call, trace_id)

    async def create_node(self, body: Any, trace_id: str | None = None) -> Result:
        """POST /node"""
        if not isinstance(body, dict):
            return validation_problem({"body": ["A JSON object is required."]}, trace_id)
        try:
            request = NodeCreateRequest.model_validate(body)
        except ValidationError as err:
            return validation_problem(validation_errors(err), trace_id)

        async def call() -> Any:
            return {"item_id": await self.client.create_node(request)}

        return await self._run("create_node", call, trace_id)

    async def update_node(self, node_id: str, body: Any, trace_id: str | None = None) -> Result:
        """POST /node/{id}"""
        invalid = _required_id(node_id)
        if invalid:
            return validation_problem(invalid, trace_id)
        if not isinstance(body, dict):
            return validation_problem({"body": ["A JSON object is required."]}, trace_id)
        try:
            request = NodeUpdateRequest.model_validate(body)
        except ValidationError as err:
            return validation_problem(validation_errors(err), trace_id)

        async def call() -> Any:
            await self.client.update_node(node_id, request)
            return {"status": "ok"}

        return await self._run("update_node", call, trace_id)

    async def delete_node(self, node_id: str, trace_id: str | None = None) -> Result:
        """DELETE /node/{id}"""
        return await self._status_call("delete_node", self.client.delete_node, node_id, trace_id)

    async def complete_node(self, node_id: str, trace_id: str | None = None) -> Result:
        """POST /node/{id}/complete"""
        return await self._status_call("complete_node", self.client.complete_node, node_id, trace_id)

    async def uncomplete_node(self, node_id: str, trace_id: str | None = None) -> Result:
        """POST /node/{id}/uncomplete"""
        return await self._status_call(
            "uncomplete_node", self.client.uncomplete_node, node_id, trace_id
        )

    async def move_node(self, node_id: str, body: Any, trace_id: str | None = None) -> Result:
        """POST /node/{id}/move"""
        invalid = _required_id(node_id)
        if invalid:
            return validation_problem(invalid, trace_id)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            return validation_problem({"body": ["A JSON object is required."]}, trace_id)

        errors: dict[str, list[str]] = {}
        raw_target = body.get("parent_id", body.get("parentId"))
        if raw_target is not None and not isinstance(raw_target, str):
            errors["parent_id"] = ["Must be a string."]
        try:
            position = Position(body.get("position") or Position.TOP.value)
        except ValueError:
            errors["position"] = ["Must be 'top' or 'bottom'."]
        if errors:
            return validation_problem(errors, trace_id)

        target = MoveTarget.parse(raw_target)

        async def call() -> Any:
            await self.client.move_node(node_id, target, position)
            return {"status": "ok"}

        return await self._run("move_node", call, trace_id)

    async def _status_call(
        self,
        action: str,
        method: Callable[[str], Awaitable[None]],
        node_id: str,
        trace_id: str | None,
    ) -> Result:
        invalid = _required_id(node_id)
        if invalid:
            return validation_problem(invalid, trace_id)

        async def call() -> Any:
            await method(node_id)
            return {"status": "ok"}

        return await self._run(action, call, trace_id)
