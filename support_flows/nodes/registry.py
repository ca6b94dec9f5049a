"""
Node Registry.

Manages registration and lookup of node types.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ..config import NodeCategory, NodeType, PortStrategy
from ..errors import InvalidNodeData, UnknownNodeType
from ..models import NodeDefinition
from .definitions import ALL_NODES

logger = logging.getLogger(__name__)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


class NodeRegistry:
    """
    Registry for node type definitions.

    Provides lookup, schema validation and default data for every node
    type the builder can place on the canvas.
    """

    def __init__(self):
        """Initialize registry with all node definitions."""
        self._nodes: Dict[NodeType, NodeDefinition] = {}
        self._by_category: Dict[NodeCategory, List[NodeDefinition]] = {}

        for node_def in ALL_NODES:
            self.register(node_def)

        logger.info(f"Registered {len(self._nodes)} node types")

    def register(self, node_def: NodeDefinition) -> None:
        """Register a node definition."""
        if node_def.type in self._nodes:
            logger.warning(f"Overwriting existing node type: {node_def.type.value}")
            self._by_category[self._nodes[node_def.type].category].remove(
                self._nodes[node_def.type]
            )

        self._nodes[node_def.type] = node_def
        self._by_category.setdefault(node_def.category, []).append(node_def)

    def find(self, node_type: Union[NodeType, str]) -> Optional[NodeDefinition]:
        """Get node definition by type, or None if the tag is unknown."""
        try:
            return self._nodes.get(NodeType(node_type))
        except ValueError:
            return None

    def get(self, node_type: Union[NodeType, str]) -> NodeDefinition:
        """
        Get node definition by type.

        Raises:
            UnknownNodeType: if the tag is not registered
        """
        node_def = self.find(node_type)
        if node_def is None:
            raise UnknownNodeType(node_type)
        return node_def

    def is_known(self, node_type: Union[NodeType, str]) -> bool:
        """Check if a node type is registered."""
        return self.find(node_type) is not None

    def default_data(self, node_type: Union[NodeType, str]) -> Dict[str, Any]:
        """Data bag for a newly created node."""
        return self.get(node_type).default_data()

    def accepts_input(self, node_type: Union[NodeType, str]) -> bool:
        """Whether nodes of this type have an inbound connection point."""
        return self.get(node_type).accepts_input

    def port_strategy(self, node_type: Union[NodeType, str]) -> PortStrategy:
        """Port derivation strategy for this type."""
        return self.get(node_type).port_strategy

    def validate_data(
        self,
        node_type: Union[NodeType, str],
        data: Dict[str, Any],
        node_id: Optional[str] = None,
    ) -> BaseModel:
        """
        Validate a node data bag against its type's schema.

        Returns:
            The parsed data model

        Raises:
            UnknownNodeType: if the tag is not registered
            InvalidNodeData: if the data does not match the schema
        """
        node_def = self.get(node_type)
        if not isinstance(data, dict):
            raise InvalidNodeData(node_def.type.value, "data must be an object", node_id)
        try:
            return node_def.data_model.model_validate(data)
        except ValidationError as e:
            raise InvalidNodeData(
                node_def.type.value, _format_validation_error(e), node_id
            ) from e

    def normalize_data(
        self,
        node_type: Union[NodeType, str],
        data: Dict[str, Any],
        node_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate a data bag and return it in its persisted shape.

        Keys are camelCase, coerced values are stored coerced and extra keys
        are kept.

        Raises:
            UnknownNodeType: if the tag is not registered
            InvalidNodeData: if the data does not match the schema
        """
        model = self.validate_data(node_type, data, node_id)
        return model.model_dump(by_alias=True, exclude_none=True, mode="json")

    def list_all(self) -> List[NodeDefinition]:
        """List all registered node definitions."""
        return list(self._nodes.values())

    def list_by_category(self, category: NodeCategory) -> List[NodeDefinition]:
        """List nodes in a specific category."""
        return self._by_category.get(category, [])

    def get_categories(self) -> List[NodeCategory]:
        """Get all categories with registered nodes."""
        return [c for c, nodes in self._by_category.items() if nodes]

    def search(self, query: str) -> List[NodeDefinition]:
        """Search nodes by name, description or type tag."""
        query = query.lower()
        return [
            node_def
            for node_def in self._nodes.values()
            if (
                query in node_def.name.lower()
                or query in node_def.description.lower()
                or query in node_def.type.value
            )
        ]

    def to_catalog(self) -> Dict[str, List[Dict]]:
        """
        Export registry as a catalog organized by category.

        Returns:
            Dict mapping category names to lists of node definitions
        """
        catalog = {}

        for category in NodeCategory:
            nodes = self.list_by_category(category)
            if nodes:
                catalog[category.value] = [n.to_dict() for n in nodes]

        return catalog


@lru_cache
def get_node_registry() -> NodeRegistry:
    """Get the singleton node registry."""
    return NodeRegistry()
