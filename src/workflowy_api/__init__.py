"""Typed WorkFlowy REST API client with tree reconstruction and an MCP/HTTP proxy."""

from .client import NodeForest, TreeNode, WorkFlowyClient, build_tree
from .models import (
    APIConfiguration,
    AuthenticationError,
    DecodeError,
    HttpFailure,
    MalformedResponse,
    MoveTarget,
    NodeCreateRequest,
    NodeListRequest,
    NodeNotFoundError,
    NodeUpdateRequest,
    Position,
    RateLimitError,
    RequestTimeoutError,
    StatusNotOk,
    TargetKind,
    TransportFailure,
    UnexpectedShape,
    WorkFlowyError,
    WorkFlowyNode,
)

__version__ = "0.1.0"

__all__ = [
    "APIConfiguration",
    "AuthenticationError",
    "DecodeError",
    "HttpFailure",
    "MalformedResponse",
    "MoveTarget",
    "NodeCreateRequest",
    "NodeForest",
    "NodeListRequest",
    "NodeNotFoundError",
    "NodeUpdateRequest",
    "Position",
    "RateLimitError",
    "RequestTimeoutError",
    "StatusNotOk",
    "TargetKind",
    "TransportFailure",
    "TreeNode",
    "UnexpectedShape",
    "WorkFlowyClient",
    "WorkFlowyError",
    "WorkFlowyNode",
    "build_tree",
]
