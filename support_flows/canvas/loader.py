"""
Flow persistence codec.

Converts between FlowDefinition and the camelCase JSON document the external
store keeps. Ports are never read from or written to the document; they are
derived again from node data after loading.

Loading is lenient per node: a node with an unknown type is kept as-is and
reported, so one corrupted node never makes a whole flow unloadable.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..config import IssueCode, NodeType, Severity
from ..errors import FlowLoadError
from ..models import (
    DEFAULT_PORT_ID,
    Edge,
    FlowDefinition,
    InputVariable,
    Node,
    Position,
    ValidationIssue,
)
from ..nodes import NodeRegistry, get_node_registry
from ..nodes.ports import ELSE_PORT_ID

logger = logging.getLogger(__name__)

# Condition edges saved by older builders used "false" for the fallback branch.
LEGACY_ELSE_HANDLE = "false"


@dataclass
class LoadResult:
    """A loaded flow and the per-node problems met while loading it."""

    flow: FlowDefinition
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _parse_input_variable(raw: Dict[str, Any]) -> InputVariable:
    return InputVariable(
        key=str(raw.get("key") or ""),
        label=str(raw.get("label") or ""),
        required=bool(raw.get("required", False)),
    )


def _parse_node(
    raw: Any, index: int, registry: NodeRegistry, issues: List[ValidationIssue]
) -> Optional[Node]:
    if not isinstance(raw, dict) or not raw.get("id"):
        issues.append(
            ValidationIssue(
                code=IssueCode.INVALID_NODE_DATA,
                severity=Severity.ERROR,
                message=f"Node #{index} has no id and was skipped",
            )
        )
        return None

    position = raw.get("position") if isinstance(raw.get("position"), dict) else {}
    data = raw.get("data")
    if not isinstance(data, dict):
        data = {}

    node = Node(
        id=str(raw["id"]),
        type=str(raw.get("type") or ""),
        position=Position(x=_as_float(position.get("x")), y=_as_float(position.get("y"))),
        data=data,
    )

    if not registry.is_known(node.type):
        logger.warning(f"Node {node.id} has unknown type {node.type!r}")
        issues.append(
            ValidationIssue(
                code=IssueCode.UNKNOWN_NODE_TYPE,
                severity=Severity.ERROR,
                message=f"Unknown node type: {node.type}",
                node_id=node.id,
            )
        )
    return node


def _parse_edge(
    raw: Any, index: int, nodes: Dict[str, Node], issues: List[ValidationIssue]
) -> Optional[Edge]:
    if not isinstance(raw, dict) or not raw.get("source") or not raw.get("target"):
        issues.append(
            ValidationIssue(
                code=IssueCode.DANGLING_EDGE,
                severity=Severity.ERROR,
                message=f"Edge #{index} has no source or target and was skipped",
            )
        )
        return None

    source = str(raw["source"])
    handle = raw.get("sourceHandle")
    handle = str(handle) if handle else DEFAULT_PORT_ID

    source_node = nodes.get(source)
    if (
        handle == LEGACY_ELSE_HANDLE
        and source_node is not None
        and source_node.type == NodeType.CONDITION.value
    ):
        handle = ELSE_PORT_ID

    target_handle = raw.get("targetHandle")
    data = raw.get("data")
    return Edge(
        id=str(raw.get("id") or f"edge-{source}-{handle}-{raw['target']}"),
        source=source,
        target=str(raw["target"]),
        source_handle=handle,
        target_handle=str(target_handle) if target_handle else None,
        data=data if isinstance(data, dict) else {},
    )


def load_flow(
    raw: Union[Dict[str, Any], str, bytes],
    registry: Optional[NodeRegistry] = None,
) -> LoadResult:
    """
    Parse a persisted flow document.

    Raises:
        FlowLoadError: if the document is not a JSON object with an id
    """
    registry = registry or get_node_registry()

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise FlowLoadError(f"Flow document is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise FlowLoadError("Flow document must be a JSON object")
    if not raw.get("id"):
        raise FlowLoadError("Flow document has no id")

    issues: List[ValidationIssue] = []

    input_variables = [
        _parse_input_variable(v)
        for v in raw.get("inputVariables") or []
        if isinstance(v, dict) and v.get("key")
    ]

    nodes: List[Node] = []
    for index, item in enumerate(raw.get("nodes") or []):
        node = _parse_node(item, index, registry, issues)
        if node is not None:
            nodes.append(node)

    by_id = {n.id: n for n in nodes}
    edges: List[Edge] = []
    for index, item in enumerate(raw.get("edges") or []):
        edge = _parse_edge(item, index, by_id, issues)
        if edge is not None:
            edges.append(edge)

    flow = FlowDefinition(
        id=str(raw["id"]),
        name=str(raw.get("name") or ""),
        description=str(raw.get("description") or ""),
        enabled=bool(raw.get("enabled", True)),
        ai_tool=bool(raw.get("aiTool", False)),
        ai_tool_description=str(raw.get("aiToolDescription") or ""),
        input_variables=input_variables,
        nodes=nodes,
        edges=edges,
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )

    if issues:
        logger.warning(f"Loaded flow {flow.id} with {len(issues)} issue(s)")
    return LoadResult(flow=flow, issues=issues)


def dump_flow(flow: FlowDefinition) -> Dict[str, Any]:
    """Persisted document for a flow."""
    return flow.to_dict()


def dumps_flow(flow: FlowDefinition, indent: Optional[int] = 2) -> str:
    return json.dumps(dump_flow(flow), indent=indent)


__all__ = ["LoadResult", "load_flow", "dump_flow", "dumps_flow"]
