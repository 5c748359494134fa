"""WorkFlowy API client - Core CRUD operations."""

import sys
from datetime import datetime
from typing import Any

import httpx

from ..models import (
    APIConfiguration,
    MoveTarget,
    NodeCreateRequest,
    NodeListRequest,
    NodeUpdateRequest,
    Position,
    WorkFlowyError,
    WorkFlowyNode,
)
from .response_decoder import ResponseShape, decode_response
from .status_classifier import (
    Classification,
    ConfirmationMode,
    HttpExchange,
    classify_exchange,
)


def log_event(message: str, component: str = "CLIENT") -> None:
    """Log an event to stderr with timestamp and consistent formatting."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] [{component}] {message}", file=sys.stderr, flush=True)


def _log(message: str, component: str = "CLIENT") -> None:
    """Unified log wrapper used throughout this client.

    All client logging goes through the same DATETIME+TAG prefix and plain
    print(..., file=sys.stderr), which reliably surfaces in the MCP
    connector console (unlike the standard logging module, which stdio MCP
    hosts swallow).
    """
    log_event(message, component)


class _ClientLogger:
    """Lightweight logger that delegates to _log / log_event.

    Methods accept arbitrary *args/**kwargs for compatibility with the
    logging.Logger call style but only the first message argument is used.
    """

    def __init__(self, component: str = "CLIENT") -> None:
        self._component = component

    def _msg(self, msg: object) -> str:
        try:
            return str(msg)
        except Exception:
            return repr(msg)

    def info(self, msg: object, *args: object, **kwargs: object) -> None:  # noqa: D401
        """Info-level log (no explicit level tag; message already descriptive)."""
        _log(self._msg(msg), self._component)

    def warning(self, msg: object, *args: object, **kwargs: object) -> None:
        _log(f"WARNING: {self._msg(msg)}", self._component)

    def error(self, msg: object, *args: object, **kwargs: object) -> None:
        _log(f"ERROR: {self._msg(msg)}", self._component)

    def debug(self, msg: object, *args: object, **kwargs: object) -> None:
        _log(f"DEBUG: {self._msg(msg)}", self._component)


def _require_id(node_id: str | None, field: str = "node_id") -> str:
    if node_id is None or not str(node_id).strip():
        raise ValueError(f"{field} is required")
    return str(node_id).strip()


class WorkFlowyClientCore:
    """Core WorkFlowy API client - CRUD operations.

    The client keeps no per-call state; concurrent calls share only the
    underlying httpx connection pool.
    """

    def __init__(
        self,
        config: APIConfiguration,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the WorkFlowy API client.

        Args:
            config: API key, base URL, timeout and user agent.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
        """
        self.config = config
        self.base_url = config.base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {
                "Authorization": f"Bearer {self.config.api_key.get_secret_value()}",
                "User-Agent": self.config.user_agent,
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "WorkFlowyClientCore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        node_id: str | None = None,
    ) -> HttpExchange:
        """Issue one request; transport errors become an exchange with status 0."""
        try:
            response = await self.client.request(method, path, json=json_body, params=params)
        except httpx.TimeoutException as err:
            return HttpExchange(
                status_code=0,
                transport_error=f"Timeout after {self.config.timeout}s: {err!r}",
                timed_out=True,
                path=path,
                node_id=node_id,
            )
        except httpx.HTTPError as err:
            return HttpExchange(
                status_code=0,
                transport_error=str(err) or repr(err),
                path=path,
                node_id=node_id,
            )

        return HttpExchange(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=response.text,
            headers=response.headers,
            path=path,
            node_id=node_id,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        mode: ConfirmationMode = ConfirmationMode.HTTP_STATUS,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        node_id: str | None = None,
    ) -> Classification:
        """Send and classify; raises the matching WorkFlowyError on failure."""
        exchange = await self._send(
            method, path, json_body=json_body, params=params, node_id=node_id
        )
        classification = classify_exchange(exchange, operation, mode)

        if not classification.ok:
            _ClientLogger().warning(
                f"{operation} failed ({classification.outcome.value}, "
                f"status={classification.status_code}): {classification.message}"
            )
            classification.raise_for_failure()

        return classification

    def _decode(self, shape: ResponseShape, classification: Classification) -> Any:
        try:
            return decode_response(classification.raw_body, shape, classification.operation)
        except WorkFlowyError as err:
            err.status_code = classification.status_code
            _ClientLogger().warning(f"{classification.operation} decode failed: {err}")
            raise

    async def create_node(self, request: NodeCreateRequest) -> str:
        """Create a new node and return its id.

        The create endpoint answers ``{"item_id": "..."}``; a bare id
        string is accepted too.
        """
        classification = await self._request(
            "POST", "/nodes", "create_node", json_body=request.to_payload()
        )
        return self._decode(ResponseShape.CREATED_ID, classification)

    async def get_node(self, node_id: str) -> WorkFlowyNode:
        """Retrieve a specific node by ID.

        Single-node fetches do not carry ``parent_id``.
        """
        node_id = _require_id(node_id)
        classification = await self._request(
            "GET", f"/nodes/{node_id}", "get_node", node_id=node_id
        )
        return self._decode(ResponseShape.SINGLE_NODE_ENVELOPE, classification)

    async def list_nodes(self, request: NodeListRequest | None = None) -> list[WorkFlowyNode]:
        """List the children of ``request.parent_id`` (root scope when absent)."""
        request = request or NodeListRequest()
        classification = await self._request(
            "GET", "/nodes", "list_nodes", params=request.to_params()
        )
        return self._decode(ResponseShape.NODE_LIST, classification)

    async def update_node(self, node_id: str, request: NodeUpdateRequest) -> None:
        """Replace name/note/layout of an existing node.

        API returns {"status": "ok"}.
        """
        node_id = _require_id(node_id)
        await self._request(
            "POST",
            f"/nodes/{node_id}",
            "update_node",
            ConfirmationMode.STATUS_OK_BODY,
            json_body=request.to_payload(),
            node_id=node_id,
        )

    async def delete_node(self, node_id: str) -> None:
        """Delete a node and all its children."""
        node_id = _require_id(node_id)
        await self._request(
            "DELETE",
            f"/nodes/{node_id}",
            "delete_node",
            ConfirmationMode.STATUS_OK_BODY,
            node_id=node_id,
        )

    async def complete_node(self, node_id: str) -> None:
        """Mark a node as completed."""
        node_id = _require_id(node_id)
        await self._request(
            "POST",
            f"/nodes/{node_id}/complete",
            "complete_node",
            ConfirmationMode.STATUS_OK_BODY,
            node_id=node_id,
        )

    async def uncomplete_node(self, node_id: str) -> None:
        """Mark a node as not completed."""
        node_id = _require_id(node_id)
        await self._request(
            "POST",
            f"/nodes/{node_id}/uncomplete",
            "uncomplete_node",
            ConfirmationMode.STATUS_OK_BODY,
            node_id=node_id,
        )

    async def move_node(
        self,
        node_id: str,
        target: MoveTarget | str | None = None,
        position: Position | str = Position.TOP,
    ) -> None:
        """Move a node under a new parent.

        Args:
            node_id: The ID of the node to move
            target: Destination node, a reserved target (home, inbox) or
                None for the top level
            position: Where to place the node ('top' or 'bottom', default 'top')
        """
        node_id = _require_id(node_id)
        destination = MoveTarget.parse(target)
        payload = {
            "parent_id": destination.wire_value,
            "position": Position(position).value,
        }
        await self._request(
            "POST",
            f"/nodes/{node_id}/move",
            "move_node",
            ConfirmationMode.STATUS_OK_BODY,
            json_body=payload,
            node_id=node_id,
        )
