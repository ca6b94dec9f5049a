"""
Flow graph exceptions.

Mutation operations raise these and leave the graph untouched. Problems found
while validating a whole flow are reported as ValidationIssue entries instead,
so an in-progress graph stays editable.
"""

from typing import Any, Optional


class FlowError(Exception):
    """Base exception for flow graph errors."""
    pass


class UnknownNodeType(FlowError):
    """Node type tag is not part of the registry."""

    def __init__(self, node_type: Any):
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type!r}")


class InvalidNodeType(UnknownNodeType):
    """A node of an unknown type was requested from the builder."""
    pass


class InvalidNodeData(FlowError):
    """Node data does not satisfy its type's schema."""

    def __init__(self, node_type: str, message: str, node_id: Optional[str] = None):
        self.node_type = node_type
        self.node_id = node_id
        super().__init__(f"Invalid data for {node_type} node: {message}")


class NodeNotFound(FlowError):
    """Referenced node does not exist in the flow."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class InvalidPort(FlowError):
    """Port is not produced by the current derivation of the source node."""

    def __init__(self, node_id: str, port_id: Optional[str]):
        self.node_id = node_id
        self.port_id = port_id
        super().__init__(f"Node {node_id} has no output port {port_id!r}")


class SelfLoop(FlowError):
    """An edge would connect a node to itself."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node {node_id} cannot connect to itself")


class InvalidConnection(FlowError):
    """Target node does not accept inbound connections."""

    def __init__(self, node_id: str, reason: str):
        self.node_id = node_id
        super().__init__(f"Cannot connect to {node_id}: {reason}")


class FlowNotFound(FlowError):
    """Referenced flow does not exist in the catalog."""

    def __init__(self, flow_id: str):
        self.flow_id = flow_id
        super().__init__(f"Flow not found: {flow_id}")


class FlowLoadError(FlowError):
    """Persisted flow document is not usable at all."""
    pass


class PublishBlocked(FlowError):
    """Publishing was refused because validation reported errors."""

    def __init__(self, flow_id: str, report: Any):
        self.flow_id = flow_id
        self.report = report
        super().__init__(
            f"Flow {flow_id} has {len(report.errors)} validation error(s)"
        )


__all__ = [
    "FlowError",
    "UnknownNodeType",
    "InvalidNodeType",
    "InvalidNodeData",
    "NodeNotFound",
    "InvalidPort",
    "SelfLoop",
    "InvalidConnection",
    "FlowNotFound",
    "FlowLoadError",
    "PublishBlocked",
]
