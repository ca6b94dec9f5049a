"""
Data Models for the Flow graph core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from .config import (
    AttributeModel,
    IssueCode,
    NodeCategory,
    NodeType,
    PortStrategy,
    Severity,
)


# =============================================================================
# Node Type Models
# =============================================================================


@dataclass(frozen=True)
class OutputPort:
    """Outbound connection point of a node, derived from its data."""

    id: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label}


DEFAULT_PORT_ID = "default"

# The generic, unlabeled outbound point of nodes without content-derived ports.
DEFAULT_PORT = OutputPort(id=DEFAULT_PORT_ID, label="")


@dataclass
class NodeDefinition:
    """Definition of a node type."""

    type: NodeType
    category: NodeCategory
    name: str
    description: str
    icon: str
    data_model: Type[BaseModel]

    # Behavior
    accepts_input: bool = True
    port_strategy: PortStrategy = PortStrategy.SINGLE

    def default_data(self) -> Dict[str, Any]:
        """Data bag for a freshly created node of this type."""
        return self.data_model().model_dump(by_alias=True, exclude_none=True, mode="json")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "accepts_input": self.accepts_input,
            "port_strategy": self.port_strategy.value,
            "default_data": self.default_data(),
        }


# =============================================================================
# Graph Models
# =============================================================================


@dataclass
class Position:
    """Canvas position. Layout only, no semantic effect."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class Node:
    """Instance of a node in a flow."""

    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": self.data,
        }


@dataclass
class Edge:
    """Connection from one node's output port to another node's inbound point."""

    id: str
    source: str
    target: str
    source_handle: str = DEFAULT_PORT_ID
    target_handle: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "sourceHandle": (
                None if self.source_handle == DEFAULT_PORT_ID else self.source_handle
            ),
            "targetHandle": self.target_handle,
        }
        if self.data:
            result["data"] = self.data
        return result


@dataclass
class InputVariable:
    """Input a caller (another flow or the AI) must supply to start a flow."""

    key: str
    label: str = ""
    required: bool = False

    @property
    def display_name(self) -> str:
        return self.label or self.key

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "label": self.label, "required": self.required}


@dataclass
class AttributeDefinition:
    """Custom attribute definition owned by the tenant's attribute registry."""

    id: str
    display_name: str
    key: str
    attribute_model: AttributeModel = AttributeModel.CONTACT
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "key": self.key,
            "description": self.description,
            "attributeModel": self.attribute_model.value,
        }


@dataclass
class FlowDefinition:
    """Complete flow definition."""

    id: str
    name: str
    description: str = ""
    enabled: bool = True
    ai_tool: bool = False
    ai_tool_description: str = ""
    input_variables: List[InputVariable] = field(default_factory=list)
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def required_inputs(self) -> List[InputVariable]:
        return [v for v in self.input_variables if v.required]

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "aiTool": self.ai_tool,
            "aiToolDescription": self.ai_tool_description,
            "inputVariables": [v.to_dict() for v in self.input_variables],
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
        if self.created_at:
            result["createdAt"] = self.created_at
        if self.updated_at:
            result["updatedAt"] = self.updated_at
        return result


# =============================================================================
# Validation Models
# =============================================================================


@dataclass
class ValidationIssue:
    """A validation issue found in a flow."""

    code: IssueCode
    severity: Severity
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "field": self.field,
        }


@dataclass
class ValidationReport:
    """Result of flow validation."""

    flow_id: str
    issues: List[ValidationIssue] = field(default_factory=list)
    checked_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def publishable(self) -> bool:
        return not self.errors

    def codes(self) -> List[IssueCode]:
        return [i.code for i in self.issues]

    def by_node(self) -> Dict[Optional[str], List[ValidationIssue]]:
        """Group issues by node id; flow-level issues are keyed by None."""
        grouped: Dict[Optional[str], List[ValidationIssue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.node_id, []).append(issue)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_id": self.flow_id,
            "valid": self.publishable,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "checked_at": self.checked_at.isoformat(),
        }


__all__ = [
    # Node types
    "OutputPort",
    "DEFAULT_PORT",
    "DEFAULT_PORT_ID",
    "NodeDefinition",
    # Graph
    "Position",
    "Node",
    "Edge",
    "InputVariable",
    "AttributeDefinition",
    "FlowDefinition",
    # Validation
    "ValidationIssue",
    "ValidationReport",
]
