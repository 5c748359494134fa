"""WorkFlowy data models, request payloads and error types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_serializer,
    field_validator,
    model_validator,
)

DEFAULT_BASE_URL = "https://workflowy.com/api/v1/"
DEFAULT_USER_AGENT = "workflowy-api/0.1.0"
DEFAULT_TIMEOUT = 30.0

# The /nodes endpoint needs an explicit "no parent" marker for the root scope.
ROOT_PARENT_SENTINEL = "None"

# ASCII digits only, with an optional all-zero fraction (e.g. "1700000000.0")
_EPOCH_TEXT = re.compile(r"^([+-]?[0-9]+)(?:\.([0-9]+))?$")


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_epoch_seconds(value: Any) -> datetime | None:
    """Decode a wire timestamp (epoch seconds) into an aware UTC datetime.

    Accepts JSON numbers and numeric strings, both holding whole seconds.
    A string decodes exactly like the number it spells. None and blank
    strings decode to None; every other token type is rejected.
    """
    if value is None or isinstance(value, datetime):
        return value

    # bool is an int subclass; true/false are not timestamps
    if isinstance(value, bool):
        raise ValueError(f"Invalid epoch timestamp: {value!r}")

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Epoch timestamp must be whole seconds: {value!r}")
        value = int(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        match = _EPOCH_TEXT.match(text)
        if match is None:
            raise ValueError(f"Invalid epoch timestamp: {value!r}")
        whole, fraction = match.groups()
        if fraction and fraction.strip("0"):
            raise ValueError(f"Epoch timestamp must be whole seconds: {value!r}")
        value = int(whole)

    if not isinstance(value, int):
        raise ValueError(f"Invalid epoch timestamp: {value!r}")

    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as err:
        raise ValueError(f"Epoch timestamp out of range: {value!r}") from err


def to_epoch_seconds(value: datetime | None) -> int | None:
    """Encode a datetime as whole epoch seconds (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


# ---------------------------------------------------------------------------
# Node model
# ---------------------------------------------------------------------------


class NodeData(BaseModel):
    """Nested structural metadata of a node."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    layout_mode: str | None = Field(default=None, alias="layoutMode")


class WorkFlowyNode(BaseModel):
    """One WorkFlowy outline item as returned by the API.

    ``parent_id`` is only populated by /nodes-export; single-node fetches
    omit it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    note: str | None = None
    parent_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("parent_id", "parentId"),
        serialization_alias="parent_id",
    )
    priority: int = 0
    completed: bool = False
    data: NodeData = Field(default_factory=NodeData)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    modified_at: datetime | None = Field(default=None, alias="modifiedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @field_validator("created_at", "modified_at", "completed_at", mode="before")
    @classmethod
    def _decode_timestamp(cls, value: Any) -> datetime | None:
        return parse_epoch_seconds(value)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_serializer("created_at", "modified_at", "completed_at")
    def _encode_timestamp(self, value: datetime | None) -> int | None:
        return to_epoch_seconds(value)

    @property
    def layout_mode(self) -> str | None:
        return self.data.layout_mode

    def to_wire(self) -> dict[str, Any]:
        """Dump using API field names (timestamps as epoch seconds)."""
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class Position(str, Enum):
    """Placement among the destination's children."""

    TOP = "top"
    BOTTOM = "bottom"


class TargetKind(str, Enum):
    """Kinds of move destinations accepted by the API."""

    TOP_LEVEL = "top_level"
    HOME = "home"
    INBOX = "inbox"
    NODE = "node"


_TARGET_WIRE_VALUES = {
    TargetKind.TOP_LEVEL: ROOT_PARENT_SENTINEL,
    TargetKind.HOME: "home",
    TargetKind.INBOX: "inbox",
}


@dataclass(frozen=True)
class MoveTarget:
    """Destination of a move: a reserved target or a concrete node id."""

    kind: TargetKind
    node_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind is TargetKind.NODE:
            if not self.node_id or not self.node_id.strip():
                raise ValueError("A node move target requires a non-blank node_id")
        elif self.node_id is not None:
            raise ValueError(f"Target {self.kind.value!r} does not take a node_id")

    @classmethod
    def top_level(cls) -> "MoveTarget":
        return cls(TargetKind.TOP_LEVEL)

    @classmethod
    def home(cls) -> "MoveTarget":
        return cls(TargetKind.HOME)

    @classmethod
    def inbox(cls) -> "MoveTarget":
        return cls(TargetKind.INBOX)

    @classmethod
    def node(cls, node_id: str) -> "MoveTarget":
        return cls(TargetKind.NODE, node_id.strip() if node_id else node_id)

    @classmethod
    def parse(cls, value: "str | MoveTarget | None") -> "MoveTarget":
        """Map a loose destination string onto a target.

        None, blank, "None" and "top-level" mean the top level; "home" and
        "inbox" are the reserved targets; anything else is a node id.
        """
        if isinstance(value, MoveTarget):
            return value
        text = (value or "").strip()
        lowered = text.lower()
        if lowered in ("", "none", "top-level", "top_level"):
            return cls.top_level()
        if lowered == "home":
            return cls.home()
        if lowered == "inbox":
            return cls.inbox()
        return cls.node(text)

    @property
    def wire_value(self) -> str:
        if self.kind is TargetKind.NODE:
            return self.node_id  # type: ignore[return-value]
        return _TARGET_WIRE_VALUES[self.kind]


class NodeCreateRequest(BaseModel):
    """Payload for POST /nodes."""

    model_config = ConfigDict(populate_by_name=True)

    parent_id: str | None = Field(
        default=None, validation_alias=AliasChoices("parent_id", "parentId")
    )
    name: str = Field(min_length=1)
    note: str | None = None
    layout_mode: str = Field(
        default="default", validation_alias=AliasChoices("layout_mode", "layoutMode")
    )
    position: Position = Position.BOTTOM

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "layout_mode": self.layout_mode or "default",
            "position": self.position.value,
        }
        # The API wants the field absent (not "") for top-level creation
        if self.parent_id and self.parent_id.strip():
            payload["parent_id"] = self.parent_id
        if self.note is not None:
            payload["note"] = self.note
        return payload


class NodeUpdateRequest(BaseModel):
    """Fields replaced by POST /nodes/{id}."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    note: str | None = None
    layout_mode: str | None = Field(
        default=None, validation_alias=AliasChoices("layout_mode", "layoutMode")
    )

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "NodeUpdateRequest":
        if self.name is None and self.note is None and self.layout_mode is None:
            raise ValueError("At least one of name, note or layout_mode is required")
        return self

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.name is not None:
            payload["name"] = self.name
        if self.note is not None:
            payload["note"] = self.note
        if self.layout_mode is not None:
            payload["layout_mode"] = self.layout_mode
        return payload


class NodeListRequest(BaseModel):
    """Query for GET /nodes (no parent means the root scope)."""

    model_config = ConfigDict(populate_by_name=True)

    parent_id: str | None = Field(
        default=None, validation_alias=AliasChoices("parent_id", "parentId")
    )

    def to_params(self) -> dict[str, str]:
        if self.parent_id and self.parent_id.strip():
            return {"parent_id": self.parent_id}
        return {"parent_id": ROOT_PARENT_SENTINEL}


class APIConfiguration(BaseModel):
    """Connection settings for the WorkFlowy REST API."""

    api_key: SecretStr
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    user_agent: str = DEFAULT_USER_AGENT


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WorkFlowyError(Exception):
    """Base class for every failure surfaced by the client."""

    kind: ClassVar[str] = "error"

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        status_code: int = 0,
        detail: Any = None,
        raw_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        self.raw_body = raw_body

    @property
    def details(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "operation": self.operation,
            "status_code": self.status_code,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        if self.detail is None or self.detail == "":
            return self.message
        return f"{self.message}: {self.detail}"


class TransportFailure(WorkFlowyError):
    """No HTTP response was obtained (connection error, timeout)."""

    kind = "transport_failure"


class RequestTimeoutError(TransportFailure):
    """The transport gave up waiting for the API."""


class HttpFailure(WorkFlowyError):
    """The API answered with a status outside 200-299."""

    kind = "http_failure"


class AuthenticationError(HttpFailure):
    """Invalid API key or unauthorized access (401/403)."""


class NodeNotFoundError(HttpFailure):
    """The addressed node does not exist (404)."""

    def __init__(self, message: str, *, node_id: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.node_id = node_id


class RateLimitError(HttpFailure):
    """The API throttled the request (429)."""

    def __init__(self, message: str, *, retry_after: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    @property
    def details(self) -> dict[str, Any]:
        return {**super().details, "retry_after": self.retry_after}


class MalformedResponse(WorkFlowyError):
    """2xx response whose body is not JSON where JSON is required."""

    kind = "malformed_response"


class UnexpectedShape(WorkFlowyError):
    """JSON parsed but a required field (status, node, nodes...) is absent."""

    kind = "unexpected_shape"


class StatusNotOk(WorkFlowyError):
    """The body carries a ``status`` that is not "ok"."""

    kind = "status_not_ok"


class DecodeError(WorkFlowyError):
    """Payload could not be mapped onto the node model."""

    kind = "decode_error"
