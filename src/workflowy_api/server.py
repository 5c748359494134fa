"""WorkFlowy MCP server and HTTP proxy using FastMCP."""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from .client import WorkFlowyClient, format_outline
from .config import ServerConfig, setup_logging
from .controller import NodeController, validation_problem
from .models import (
    MoveTarget,
    NodeCreateRequest,
    NodeListRequest,
    NodeUpdateRequest,
    Position,
    WorkFlowyNode,
)

logger = logging.getLogger(__name__)

# Global client instance, shared by MCP tools and proxy routes
_client: WorkFlowyClient | None = None
_active_sessions: int = 0


def get_client() -> WorkFlowyClient:
    """Get the global WorkFlowy client, creating it from the environment if needed."""
    global _client
    if _client is None:
        config = ServerConfig()  # type: ignore[call-arg]
        api_config = config.get_api_config()
        _client = WorkFlowyClient(api_config)
        logger.info(f"WorkFlowy client initialized with base URL: {api_config.base_url}")
    return _client


def get_controller() -> NodeController:
    return NodeController(get_client())


@asynccontextmanager
async def lifespan(_app: FastMCP):  # type: ignore[no-untyped-def]
    """Manage server lifecycle."""
    global _client, _active_sessions

    logger.info("Starting WorkFlowy MCP server")
    get_client()
    _active_sessions += 1

    try:
        yield
    finally:
        _active_sessions -= 1
        if _active_sessions <= 0 and _client is not None:
            logger.info("Shutting down WorkFlowy MCP server")
            await _client.close()
            _client = None


# Initialize FastMCP server
mcp = FastMCP(
    "WorkFlowy API",
    instructions="Typed access to WorkFlowy outlines: CRUD on nodes, moves, and full-tree export",
    lifespan=lifespan,
)


# Tool: Create Node
@mcp.tool(name="workflowy_create_node", description="Create a WorkFlowy node and return its id")
async def create_node(
    name: str,
    parent_id: str | None = None,
    note: str | None = None,
    layout_mode: str = "default",
    position: Literal["top", "bottom"] = "bottom",
) -> dict:
    """Create a new node.

    Args:
        name: Text of the node
        parent_id: Parent node ID (omit for the top level)
        note: Optional note
        layout_mode: Display layout (default "default")
        position: 'top' or 'bottom' among the parent's children

    Returns:
        Dictionary with the new item_id
    """
    request = NodeCreateRequest(
        parent_id=parent_id,
        name=name,
        note=note,
        layout_mode=layout_mode,
        position=Position(position),
    )
    item_id = await get_client().create_node(request)
    return {"item_id": item_id}


# Tool: Get Node
@mcp.tool(name="workflowy_get_node", description="Retrieve a specific WorkFlowy node by ID")
async def get_node(node_id: str) -> WorkFlowyNode:
    return await get_client().get_node(node_id)


# Tool: List Nodes
@mcp.tool(name="workflowy_list_nodes", description="List WorkFlowy nodes (omit parent_id for root)")
async def list_nodes(parent_id: str | None = None) -> dict:
    """List the children of a node.

    Args:
        parent_id: ID of parent node (omit to list top-level nodes)

    Returns:
        Dictionary with 'nodes' list and 'total' count
    """
    nodes = await get_client().list_nodes(NodeListRequest(parent_id=parent_id))
    return {"nodes": [node.to_wire() for node in nodes], "total": len(nodes)}


# Tool: Update Node
@mcp.tool(name="workflowy_update_node", description="Update an existing WorkFlowy node")
async def update_node(
    node_id: str,
    name: str | None = None,
    note: str | None = None,
    layout_mode: str | None = None,
) -> dict:
    """Replace name, note and/or layout of a node."""
    request = NodeUpdateRequest(name=name, note=note, layout_mode=layout_mode)
    await get_client().update_node(node_id, request)
    return {"success": True, "updated_id": node_id}


# Tool: Delete Node
@mcp.tool(name="workflowy_delete_node", description="Delete a WorkFlowy node and all its children")
async def delete_node(node_id: str) -> dict:
    await get_client().delete_node(node_id)
    return {"success": True, "deleted_id": node_id}


# Tool: Complete Node
@mcp.tool(name="workflowy_complete_node", description="Mark a WorkFlowy node as completed")
async def complete_node(node_id: str) -> dict:
    await get_client().complete_node(node_id)
    return {"success": True, "completed_id": node_id}


# Tool: Uncomplete Node
@mcp.tool(name="workflowy_uncomplete_node", description="Mark a WorkFlowy node as not completed")
async def uncomplete_node(node_id: str) -> dict:
    await get_client().uncomplete_node(node_id)
    return {"success": True, "uncompleted_id": node_id}


# Tool: Move Node
@mcp.tool(name="workflowy_move_node", description="Move a WorkFlowy node to a new parent")
async def move_node(
    node_id: str,
    parent_id: str | None = None,
    position: Literal["top", "bottom"] = "top",
) -> dict:
    """Move a node to a new parent.

    Args:
        node_id: The ID of the node to move
        parent_id: The new parent node ID, 'home', 'inbox', or None for the top level
        position: Where to place the node ('top' or 'bottom', default 'top')
    """
    target = MoveTarget.parse(parent_id)
    await get_client().move_node(node_id, target, Position(position))
    return {"success": True, "moved_id": node_id, "parent_id": target.wire_value}


# Tool: Export Nodes
@mcp.tool(name="workflowy_export_nodes", description="Export every WorkFlowy node as a flat list")
async def export_nodes() -> dict:
    nodes = await get_client().export_nodes()
    return {"nodes": [node.to_wire() for node in nodes], "total": len(nodes)}


# Tool: Get Tree
@mcp.tool(name="workflowy_get_tree", description="Export all nodes and return them as a nested tree")
async def get_tree(order_by_priority: bool = False) -> dict:
    """Rebuild the full outline as nested dictionaries."""
    forest = await get_client().get_all_nodes_as_tree(order_by_priority=order_by_priority)

    def to_dict(tree_node: Any) -> dict:
        item = tree_node.node.to_wire()
        item["children"] = [to_dict(child) for child in tree_node.children]
        return item

    return {
        "roots": [to_dict(root) for root in forest.roots],
        "node_count": forest.node_count,
        "orphan_ids": forest.orphan_ids,
    }


# Resource: WorkFlowy Outline
@mcp.resource(
    uri="workflowy://outline",
    name="workflowy_outline",
    description="The complete WorkFlowy outline structure",
)
async def get_outline() -> str:
    forest = await get_client().get_all_nodes_as_tree()
    return format_outline(forest)


# ---------------------------------------------------------------------------
# HTTP proxy routes
# ---------------------------------------------------------------------------


_INVALID_JSON = object()


def _respond(result: tuple[int, dict]) -> JSONResponse:
    status, envelope = result
    return JSONResponse(envelope, status_code=status)


def _trace_id(request: Request) -> str | None:
    return request.headers.get("x-request-id")


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return await request.json()
    except ValueError:
        return _INVALID_JSON


@mcp.custom_route("/node/{id}", methods=["GET"])
async def proxy_get_node(request: Request) -> JSONResponse:
    return _respond(await get_controller().get_node(request.path_params["id"], _trace_id(request)))


@mcp.custom_route("/nodes", methods=["GET"])
async def proxy_get_nodes(request: Request) -> JSONResponse:
    parent_id = request.query_params.get("parentId") or None
    return _respond(await get_controller().get_nodes(parent_id, _trace_id(request)))


@mcp.custom_route("/node", methods=["POST"])
async def proxy_create_node(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if body is _INVALID_JSON:
        return _respond(validation_problem({"body": ["Invalid JSON."]}, _trace_id(request)))
    return _respond(await get_controller().create_node(body, _trace_id(request)))


@mcp.custom_route("/node/{id}", methods=["POST"])
async def proxy_update_node(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if body is _INVALID_JSON:
        return _respond(validation_problem({"body": ["Invalid JSON."]}, _trace_id(request)))
    return _respond(
        await get_controller().update_node(request.path_params["id"], body, _trace_id(request))
    )


@mcp.custom_route("/node/{id}", methods=["DELETE"])
async def proxy_delete_node(request: Request) -> JSONResponse:
    return _respond(await get_controller().delete_node(request.path_params["id"], _trace_id(request)))


@mcp.custom_route("/node/{id}/complete", methods=["POST"])
async def proxy_complete_node(request: Request) -> JSONResponse:
    return _respond(
        await get_controller().complete_node(request.path_params["id"], _trace_id(request))
    )


@mcp.custom_route("/node/{id}/uncomplete", methods=["POST"])
async def proxy_uncomplete_node(request: Request) -> JSONResponse:
    return _respond(
        await get_controller().uncomplete_node(request.path_params["id"], _trace_id(request))
    )


@mcp.custom_route("/node/{id}/move", methods=["POST"])
async def proxy_move_node(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if body is _INVALID_JSON:
        return _respond(validation_problem({"body": ["Invalid JSON."]}, _trace_id(request)))
    return _respond(
        await get_controller().move_node(request.path_params["id"], body, _trace_id(request))
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="WorkFlowy MCP server / HTTP proxy")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio")
    parser.add_argument("--host", default=None, help="Bind address for --transport http")
    parser.add_argument("--port", type=int, default=None, help="Port for --transport http")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args(argv)

    config = ServerConfig()  # type: ignore[call-arg]
    setup_logging(args.log_level or config.log_level)

    if args.transport == "http":
        mcp.run(
            transport="http",
            host=args.host or config.http_host,
            port=args.port or config.http_port,
        )
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
