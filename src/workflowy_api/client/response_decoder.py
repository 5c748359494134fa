"""Map WorkFlowy response bodies onto the node model.

Envelope shapes seen on the wire:

    {"node": {...}}          single node (GET /nodes/{id})
    {"nodes": [...]}         node list (GET /nodes, GET /nodes-export)
    [...]                    bare node array (older /nodes responses)
    {"item_id": "..."}       create
    "..." / plain text       create, bare id

``NODE_LIST`` accepts either list form; ``CREATED_ID`` accepts any of the
create forms.

Every decode failure carries the raw body for diagnostics.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..models import DecodeError, MalformedResponse, UnexpectedShape, WorkFlowyNode


class ResponseShape(str, Enum):
    SINGLE_NODE_ENVELOPE = "single_node_envelope"
    NODE_ARRAY_ENVELOPE = "node_array_envelope"
    BARE_NODE_ARRAY = "bare_node_array"
    NODE_LIST = "node_list"
    CREATED_ID = "created_id"
    GENERIC = "generic"


def parse_json(body: str | None, operation: str) -> Any:
    """Parse a body that must be JSON."""
    if body is None or not body.strip():
        raise MalformedResponse(
            f"{operation}: empty response body", operation=operation, raw_body=body
        )
    try:
        return json.loads(body)
    except ValueError as err:
        raise MalformedResponse(
            f"{operation}: response is not valid JSON ({err})",
            operation=operation,
            detail=body,
            raw_body=body,
        ) from err


def node_from_payload(payload: Any, operation: str, raw_body: str | None = None) -> WorkFlowyNode:
    if not isinstance(payload, dict):
        raise DecodeError(
            f"{operation}: node payload is {type(payload).__name__}, expected object",
            operation=operation,
            detail=payload,
            raw_body=raw_body,
        )
    try:
        return WorkFlowyNode.model_validate(payload)
    except ValidationError as err:
        raise DecodeError(
            f"{operation}: node could not be decoded",
            operation=operation,
            detail=err.errors(include_url=False, include_context=False),
            raw_body=raw_body,
        ) from err


def nodes_from_payload(items: Any, operation: str, raw_body: str | None = None) -> list[WorkFlowyNode]:
    if not isinstance(items, list):
        raise DecodeError(
            f"{operation}: expected a node array, got {type(items).__name__}",
            operation=operation,
            detail=items,
            raw_body=raw_body,
        )
    return [node_from_payload(item, operation, raw_body) for item in items]


def decode_node(body: str | None, operation: str = "get_node") -> WorkFlowyNode:
    """Decode ``{"node": {...}}``, falling back to a bare node object."""
    data = parse_json(body, operation)

    if isinstance(data, dict) and "node" in data:
        return node_from_payload(data["node"], operation, body)

    # Fallback for unexpected format: the object itself looks like a node
    if isinstance(data, dict) and "id" in data:
        return node_from_payload(data, operation, body)

    raise UnexpectedShape(
        f"{operation}: response has no 'node' object",
        operation=operation,
        detail=data,
        raw_body=body,
    )


def decode_node_envelope_list(body: str | None, operation: str = "export_nodes") -> list[WorkFlowyNode]:
    """Decode ``{"nodes": [...]}`` strictly."""
    data = parse_json(body, operation)
    if not isinstance(data, dict) or "nodes" not in data:
        raise UnexpectedShape(
            f"{operation}: response has no 'nodes' array",
            operation=operation,
            detail=data,
            raw_body=body,
        )
    return nodes_from_payload(data["nodes"], operation, body)


def decode_bare_node_array(body: str | None, operation: str = "list_nodes") -> list[WorkFlowyNode]:
    data = parse_json(body, operation)
    if not isinstance(data, list):
        raise UnexpectedShape(
            f"{operation}: expected a bare node array",
            operation=operation,
            detail=data,
            raw_body=body,
        )
    return nodes_from_payload(data, operation, body)


def decode_node_list(body: str | None, operation: str = "list_nodes") -> list[WorkFlowyNode]:
    """Decode a child listing: ``{"nodes": [...]}`` or a bare array."""
    if body is not None and body.lstrip().startswith("["):
        return decode_bare_node_array(body, operation)
    return decode_node_envelope_list(body, operation)


def decode_generic(body: str | None) -> Any:
    """Parse JSON when possible; otherwise return the text itself."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body


def decode_created_id(body: str | None, operation: str = "create_node") -> str:
    """Extract the new node id from a create response.

    Accepts ``{"item_id": "..."}``, a JSON string, or plain non-JSON text.
    """
    if body is None or not body.strip():
        raise UnexpectedShape(
            f"{operation}: empty response, no item id", operation=operation, raw_body=body
        )

    data = decode_generic(body)

    if isinstance(data, dict):
        for key in ("item_id", "id"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value
        raise UnexpectedShape(
            f"{operation}: response has no 'item_id'",
            operation=operation,
            detail=data,
            raw_body=body,
        )

    if isinstance(data, str) and data.strip():
        return data.strip()

    raise UnexpectedShape(
        f"{operation}: cannot read an item id from {type(data).__name__} response",
        operation=operation,
        detail=data,
        raw_body=body,
    )


def decode_response(body: str | None, shape: ResponseShape, operation: str) -> Any:
    """Dispatch on the expected shape tag."""
    if shape is ResponseShape.SINGLE_NODE_ENVELOPE:
        return decode_node(body, operation)
    if shape is ResponseShape.NODE_ARRAY_ENVELOPE:
        return decode_node_envelope_list(body, operation)
    if shape is ResponseShape.BARE_NODE_ARRAY:
        return decode_bare_node_array(body, operation)
    if shape is ResponseShape.NODE_LIST:
        return decode_node_list(body, operation)
    if shape is ResponseShape.CREATED_ID:
        return decode_created_id(body, operation)
    return decode_generic(body)
