"""
Port Derivation.

Output ports are a pure projection of a node's type and data. They are never
stored: every caller recomputes them from the current data bag.

Note the asymmetry between node types, which mirrors what the builder has
always persisted: condition branches drop blank names before deciding whether
custom branches exist, while every index of a buttons/select list yields a
port even when its text is blank.
"""

from typing import Any, Dict, List, Optional, Union

from ..config import NodeType, PortStrategy
from ..models import DEFAULT_PORT, OutputPort
from .registry import NodeRegistry, get_node_registry

TRUE_PORT_ID = "true"
ELSE_PORT_ID = "else"


def _choice_text(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        for key in ("label", "value"):
            value = entry.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def _condition_ports(data: Dict[str, Any]) -> List[OutputPort]:
    outputs = data.get("outputs")
    custom = (
        [o for o in outputs if isinstance(o, str) and o.strip()]
        if isinstance(outputs, list)
        else []
    )
    if custom:
        return [
            OutputPort(id=f"out-{index}", label=label)
            for index, label in enumerate(custom)
        ] + [OutputPort(id=ELSE_PORT_ID, label="Else")]
    return [
        OutputPort(id=TRUE_PORT_ID, label="Yes"),
        OutputPort(id=ELSE_PORT_ID, label="Else"),
    ]


def _class_ports(data: Dict[str, Any]) -> List[OutputPort]:
    classes = data.get("classes")
    if not isinstance(classes, list) or len(classes) <= 1:
        return []
    return [
        OutputPort(id=f"class-{index}", label=f"CLASS {index + 1}")
        for index in range(len(classes))
    ]


def _choice_ports(entries: Any, prefix: str, fallback: str) -> List[OutputPort]:
    if not isinstance(entries, list):
        return []
    return [
        OutputPort(
            id=f"{prefix}-{index}",
            label=_choice_text(entry) or f"{fallback} {index + 1}",
        )
        for index, entry in enumerate(entries)
    ]


def content_ports(
    node_type: Union[NodeType, str],
    data: Optional[Dict[str, Any]],
    registry: Optional[NodeRegistry] = None,
) -> List[OutputPort]:
    """
    Ports derived from node content alone.

    Returns an empty list for node types whose single outbound point is
    not data-dependent.

    Raises:
        UnknownNodeType: if the tag is not registered
    """
    registry = registry or get_node_registry()
    strategy = registry.port_strategy(node_type)
    data = data if isinstance(data, dict) else {}

    if strategy == PortStrategy.CONDITION:
        return _condition_ports(data)
    if strategy == PortStrategy.CLASSES:
        return _class_ports(data)
    if strategy == PortStrategy.BUTTONS:
        return _choice_ports(data.get("buttons"), "btn", "Button")
    if strategy == PortStrategy.OPTIONS:
        return _choice_ports(data.get("options"), "opt", "Option")
    return []


def derive_ports(
    node_type: Union[NodeType, str],
    data: Optional[Dict[str, Any]],
    registry: Optional[NodeRegistry] = None,
) -> List[OutputPort]:
    """
    Effective output ports of a node.

    Content-derived ports when there are any, otherwise the single generic
    DEFAULT_PORT.
    """
    return content_ports(node_type, data, registry) or [DEFAULT_PORT]


def port_ids(
    node_type: Union[NodeType, str],
    data: Optional[Dict[str, Any]],
    registry: Optional[NodeRegistry] = None,
) -> List[str]:
    return [p.id for p in derive_ports(node_type, data, registry)]


def route_reply(
    node_type: Union[NodeType, str],
    data: Optional[Dict[str, Any]],
    reply: str,
) -> Optional[str]:
    """
    Port selected by a visitor's reply to a buttons/select node.

    The reply is compared case-insensitively with each entry's label and
    value. Returns None when nothing matches or the node is not a choice node;
    the runtime then follows the node's first edge.
    """
    try:
        node_type = NodeType(node_type)
    except ValueError:
        return None
    if node_type == NodeType.BUTTONS:
        key, prefix = "buttons", "btn"
    elif node_type == NodeType.SELECT:
        key, prefix = "options", "opt"
    else:
        return None

    entries = (data or {}).get(key)
    if not isinstance(entries, list):
        return None

    wanted = reply.strip().lower()
    for index, entry in enumerate(entries):
        if isinstance(entry, dict):
            candidates = [entry.get("label"), entry.get("value")]
        else:
            candidates = [entry]
        if any(isinstance(c, str) and c.lower() == wanted for c in candidates):
            return f"{prefix}-{index}"
    return None
