"""
Node Types, Registry and Port Derivation.

This module provides the node type definitions, the registry used to look
them up, and the pure functions that derive each node's output ports.
"""

from .registry import NodeRegistry, get_node_registry
from .definitions import (
    ALL_NODES,
    ENTRY_NODES,
    MESSAGE_NODES,
    INTERACTIVE_NODES,
    AI_NODES,
    LOGIC_NODES,
    ACTION_NODES,
    INTEGRATION_NODES,
)
from .ports import content_ports, derive_ports, port_ids, route_reply

__all__ = [
    "NodeRegistry",
    "get_node_registry",
    "ALL_NODES",
    "ENTRY_NODES",
    "MESSAGE_NODES",
    "INTERACTIVE_NODES",
    "AI_NODES",
    "LOGIC_NODES",
    "ACTION_NODES",
    "INTEGRATION_NODES",
    "content_ports",
    "derive_ports",
    "port_ids",
    "route_reply",
]
