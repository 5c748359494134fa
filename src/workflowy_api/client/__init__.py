"""WorkFlowy REST API client."""

from .api_client import WorkFlowyClient
from .api_client_core import WorkFlowyClientCore
from .response_decoder import ResponseShape, decode_response
from .status_classifier import (
    Classification,
    ConfirmationMode,
    HttpExchange,
    Outcome,
    classify_exchange,
)
from .tree_builder import (
    NodeForest,
    TreeBuildError,
    TreeCycleError,
    TreeNode,
    build_tree,
    format_outline,
)

__all__ = [
    "Classification",
    "ConfirmationMode",
    "HttpExchange",
    "NodeForest",
    "Outcome",
    "ResponseShape",
    "TreeBuildError",
    "TreeCycleError",
    "TreeNode",
    "WorkFlowyClient",
    "WorkFlowyClientCore",
    "build_tree",
    "classify_exchange",
    "decode_response",
    "format_outline",
]
