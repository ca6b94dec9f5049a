"""
Flow Graph Model.

Mutable view over a FlowDefinition used by the builder. Every mutation keeps
the structural invariants:

- an edge's source handle is always one of the source node's current ports;
- start/trigger nodes have no inbound edge;
- every other node has at most one inbound edge.

Mutations raise on bad input and leave the graph unchanged when they do.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..attributes import AttributeRegistry
from ..config import ENTRY_NODE_TYPES, NodeType
from ..errors import (
    FlowError,
    InvalidConnection,
    InvalidNodeType,
    InvalidPort,
    NodeNotFound,
    SelfLoop,
)
from ..models import (
    DEFAULT_PORT_ID,
    Edge,
    FlowDefinition,
    InputVariable,
    Node,
    OutputPort,
    Position,
    ValidationReport,
)
from ..nodes import NodeRegistry, derive_ports, get_node_registry
from .validator import FlowLookup, FlowValidator

logger = logging.getLogger(__name__)


def _position(value: Union[Position, Mapping[str, Any], None]) -> Position:
    if isinstance(value, Position):
        return Position(x=value.x, y=value.y)
    if isinstance(value, Mapping):
        return Position(x=float(value.get("x", 0)), y=float(value.get("y", 0)))
    return Position()


def _input_variable(value: Union[InputVariable, Mapping[str, Any]]) -> InputVariable:
    if isinstance(value, InputVariable):
        return value
    return InputVariable(
        key=str(value["key"]),
        label=str(value.get("label") or ""),
        required=bool(value.get("required", False)),
    )


class FlowGraph:
    """
    Nodes and edges of one flow, with invariant-preserving mutations.

    Args:
        flow: Flow definition to edit in place
        registry: Node type registry
        flows: Other flows, used to resolve start_flow targets on validate
        attributes: Custom attribute definitions for variable checks
        on_change: Called after every successful mutation
    """

    def __init__(
        self,
        flow: FlowDefinition,
        registry: Optional[NodeRegistry] = None,
        flows: Union[FlowLookup, Mapping[str, FlowDefinition], None] = None,
        attributes: Optional[AttributeRegistry] = None,
        on_change: Optional[Callable[[], Any]] = None,
    ):
        self.flow = flow
        self.on_change = on_change
        self.registry = registry or get_node_registry()
        self.attributes = attributes
        if isinstance(flows, Mapping):
            self._lookup: Optional[FlowLookup] = flows.get
        else:
            self._lookup = flows

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def nodes(self) -> List[Node]:
        return self.flow.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.flow.edges

    def find_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.flow.nodes if n.id == node_id), None)

    def get_node(self, node_id: str) -> Node:
        """
        Get a node by id.

        Raises:
            NodeNotFound: if no node has this id
        """
        node = self.find_node(node_id)
        if node is None:
            raise NodeNotFound(node_id)
        return node

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return next((e for e in self.flow.edges if e.id == edge_id), None)

    def ports_for(self, node_id: str) -> List[OutputPort]:
        """Current output ports of a node."""
        node = self.get_node(node_id)
        return derive_ports(node.type, node.data, self.registry)

    def outgoing(self, node_id: str, port_id: Optional[str] = None) -> List[Edge]:
        return [
            e
            for e in self.flow.edges
            if e.source == node_id and (port_id is None or e.source_handle == port_id)
        ]

    def incoming(self, node_id: str) -> List[Edge]:
        return [e for e in self.flow.edges if e.target == node_id]

    def entry_nodes(self) -> List[Node]:
        """start/trigger nodes, in canvas order."""
        return [
            n
            for n in self.flow.nodes
            if n.type in ENTRY_NODE_TYPES
        ]

    def next_node(self, node_id: str, port_id: Optional[str] = None) -> Optional[Node]:
        """
        Node traversal continues to after leaving through ``port_id``.

        Falls back to the node's first outgoing edge when the port has no
        edge or no port is given, as the runtime does.
        """
        edges = self.outgoing(node_id, port_id) if port_id else []
        edges = edges or self.outgoing(node_id)
        if not edges:
            return None
        return self.find_node(edges[0].target)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_node(
        self,
        node_type: Union[NodeType, str],
        position: Union[Position, Mapping[str, Any], None] = None,
        data: Optional[Dict[str, Any]] = None,
        node_id: Optional[str] = None,
    ) -> Node:
        """
        Create a node with the type's default data.

        Raises:
            InvalidNodeType: if the tag is not registered
            InvalidNodeData: if ``data`` does not match the type's schema
        """
        node_def = self.registry.find(node_type)
        if node_def is None:
            raise InvalidNodeType(node_type)

        merged = node_def.default_data()
        merged.update(data or {})
        merged = self.registry.normalize_data(node_def.type, merged, node_id)

        node_id = node_id or f"{node_def.type.value}-{uuid.uuid4().hex[:8]}"
        if self.find_node(node_id) is not None:
            raise FlowError(f"Duplicate node id: {node_id}")

        node = Node(
            id=node_id,
            type=node_def.type.value,
            position=_position(position),
            data=merged,
        )
        self.flow.nodes.append(node)
        self._changed()

        logger.debug(f"Added {node.type} node {node.id} to flow {self.flow.id}")
        return node

    def update_node_data(self, node_id: str, partial: Dict[str, Any]) -> List[Edge]:
        """
        Merge ``partial`` into a node's data.

        Edges leaving from ports that no longer exist afterwards are pruned.

        Returns:
            The pruned edges

        Raises:
            NodeNotFound: if no node has this id
            UnknownNodeType: if the node's stored type is not registered
            InvalidNodeData: if the merged data does not match the schema
        """
        node = self.get_node(node_id)
        merged = dict(node.data)
        merged.update(partial or {})
        node.data = self.registry.normalize_data(node.type, merged, node.id)

        pruned = self._prune_node(node)
        self._changed()
        return pruned

    def remove_node(self, node_id: str) -> List[Edge]:
        """
        Delete a node and every edge touching it.

        Returns:
            The removed edges
        """
        node = self.get_node(node_id)
        removed = [e for e in self.flow.edges if node.id in (e.source, e.target)]
        self.flow.edges = [e for e in self.flow.edges if e not in removed]
        self.flow.nodes = [n for n in self.flow.nodes if n.id != node.id]
        self._changed()

        logger.debug(
            f"Removed node {node.id} and {len(removed)} edge(s) from flow {self.flow.id}"
        )
        return removed

    def move_node(
        self, node_id: str, position: Union[Position, Mapping[str, Any]]
    ) -> Node:
        node = self.get_node(node_id)
        node.position = _position(position)
        self._changed()
        return node

    def connect(
        self,
        source_id: str,
        port_id: Optional[str],
        target_id: str,
        edge_id: Optional[str] = None,
    ) -> Edge:
        """
        Connect a source port to a target node.

        Connecting an existing (source, port, target) triple returns the
        existing edge. Any other inbound edge of the target is replaced.

        Raises:
            NodeNotFound: if either node does not exist
            InvalidPort: if the port is not among the source's current ports
            SelfLoop: if source and target are the same node
            InvalidConnection: if the target is a start/trigger node
        """
        source = self.get_node(source_id)
        target = self.get_node(target_id)
        port_id = port_id or DEFAULT_PORT_ID

        ports = [p.id for p in derive_ports(source.type, source.data, self.registry)]
        if port_id not in ports:
            raise InvalidPort(source.id, port_id)
        if source.id == target.id:
            raise SelfLoop(source.id)
        if not self.registry.accepts_input(target.type):
            raise InvalidConnection(target.id, f"{target.type} nodes have no input")

        existing = next(
            (
                e
                for e in self.flow.edges
                if e.source == source.id
                and e.source_handle == port_id
                and e.target == target.id
            ),
            None,
        )
        if existing is not None:
            return existing

        replaced = self.incoming(target.id)
        if replaced:
            logger.debug(
                f"Replacing inbound edge(s) {[e.id for e in replaced]} of node {target.id}"
            )
        self.flow.edges = [e for e in self.flow.edges if e.target != target.id]

        edge = Edge(
            id=edge_id or f"edge-{uuid.uuid4().hex[:12]}",
            source=source.id,
            target=target.id,
            source_handle=port_id,
        )
        self.flow.edges.append(edge)
        self._changed()
        return edge

    def disconnect(self, edge_id: str) -> bool:
        """Delete an edge. Returns False if it did not exist."""
        edge = self.get_edge(edge_id)
        if edge is None:
            return False
        self.flow.edges.remove(edge)
        self._changed()
        return True

    def replace_input_variables(
        self, variables: Iterable[Union[InputVariable, Mapping[str, Any]]]
    ) -> List[InputVariable]:
        """Replace the flow's declared input variables, keeping order."""
        parsed = [_input_variable(v) for v in variables]
        keys = [v.key for v in parsed]
        if len(keys) != len(set(keys)):
            raise FlowError("Input variable keys must be unique")
        self.flow.input_variables = parsed
        self._changed()
        return parsed

    def prune_dangling_edges(self) -> List[Edge]:
        """Drop every edge whose endpoints or source port no longer exist."""
        pruned: List[Edge] = []
        node_ids = {n.id for n in self.flow.nodes}
        for edge in list(self.flow.edges):
            if edge.source not in node_ids or edge.target not in node_ids:
                self.flow.edges.remove(edge)
                pruned.append(edge)
        for node in self.flow.nodes:
            if self.registry.is_known(node.type):
                pruned.extend(self._prune_node(node))
        if pruned:
            self._changed()
        return pruned

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _prune_node(self, node: Node) -> List[Edge]:
        ports = {p.id for p in derive_ports(node.type, node.data, self.registry)}
        pruned = [
            e for e in self.flow.edges if e.source == node.id and e.source_handle not in ports
        ]
        if pruned:
            self.flow.edges = [e for e in self.flow.edges if e not in pruned]
            logger.debug(
                f"Pruned {len(pruned)} dangling edge(s) from node {node.id}: "
                f"{[e.source_handle for e in pruned]}"
            )
        return pruned

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self, validator: Optional[FlowValidator] = None) -> ValidationReport:
        """Validate the whole flow. Never raises for an incomplete graph."""
        validator = validator or FlowValidator(
            registry=self.registry, attributes=self.attributes
        )
        return validator.validate(self.flow, self._lookup)

    def to_dict(self) -> Dict[str, Any]:
        return self.flow.to_dict()


__all__ = ["FlowGraph"]
