"""WorkFlowy API client - full export and tree reconstruction."""

from ..models import WorkFlowyNode
from .api_client_core import WorkFlowyClientCore, _ClientLogger
from .response_decoder import ResponseShape
from .tree_builder import NodeForest, build_tree


class WorkFlowyClient(WorkFlowyClientCore):
    """Complete WorkFlowy client - CRUD plus /nodes-export and tree rebuild."""

    async def export_nodes(self) -> list[WorkFlowyNode]:
        """Fetch every node in the account as a flat list.

        Unlike single-node fetches, exported nodes carry ``parent_id``.
        """
        classification = await self._request("GET", "/nodes-export", "export_nodes")
        nodes = self._decode(ResponseShape.NODE_ARRAY_ENVELOPE, classification)
        _ClientLogger().info(f"export_nodes: {len(nodes)} nodes")
        return nodes

    async def get_all_nodes_as_tree(self, order_by_priority: bool = False) -> NodeForest:
        """Export all nodes and link them into a forest of TreeNodes."""
        nodes = await self.export_nodes()
        forest = build_tree(nodes, order_by_priority=order_by_priority)
        _ClientLogger().info(
            f"tree rebuilt: {forest.node_count} nodes, {len(forest.roots)} roots, "
            f"{len(forest.orphan_ids)} orphans"
        )
        return forest
