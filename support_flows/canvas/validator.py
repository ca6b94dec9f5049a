"""
Flow Validator.

Validates flow structure, connections, node data and sub-flow contracts.
Problems are collected into a ValidationReport; nothing here raises for an
incomplete graph.
"""

import logging
from collections import deque
from typing import Callable, Dict, List, Optional, Set

from ..attributes import AttributeRegistry
from ..conditions import compile_condition
from ..config import (
    ENTRY_NODE_TYPES,
    AttributeModel,
    IssueCode,
    NodeType,
    Severity,
    Settings,
    get_settings,
)
from ..errors import InvalidNodeData
from ..models import FlowDefinition, Node, ValidationIssue, ValidationReport
from ..nodes import NodeRegistry, derive_ports, get_node_registry
from ..subflows import check_start_flow
from ..variables import VariableResolver, defined_variable_keys

logger = logging.getLogger(__name__)

FlowLookup = Callable[[str], Optional[FlowDefinition]]


def _no_flows(flow_id: str) -> Optional[FlowDefinition]:
    return None


class FlowValidator:
    """
    Validates flow structure and configuration.

    Checks:
    - Structure (entry node, duplicate ids)
    - Node data (known type, schema, condition rules, sub-flow bindings)
    - Connections (ports, self loops, inbound rules)
    - Reachability from the entry node
    - Interpolation tokens
    - Limits
    """

    def __init__(
        self,
        registry: Optional[NodeRegistry] = None,
        attributes: Optional[AttributeRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize validator."""
        self.settings = settings or get_settings()
        self.registry = registry or get_node_registry()
        self.attributes = attributes

    def validate(
        self, flow: FlowDefinition, lookup: Optional[FlowLookup] = None
    ) -> ValidationReport:
        """
        Validate a complete flow.

        Args:
            flow: Flow to validate
            lookup: Resolves start_flow target ids to flows

        Returns:
            ValidationReport with issues found
        """
        issues: List[ValidationIssue] = []

        issues.extend(self._validate_structure(flow))
        issues.extend(self._validate_nodes(flow, lookup or _no_flows))
        issues.extend(self._validate_connections(flow))
        issues.extend(self._validate_reachability(flow))
        issues.extend(self._validate_variables(flow))
        issues.extend(self._validate_limits(flow))

        report = ValidationReport(flow_id=flow.id, issues=issues)
        logger.debug(
            f"Validated flow {flow.id}: {len(report.errors)} error(s), "
            f"{len(report.warnings)} warning(s)"
        )
        return report

    def _entry_nodes(self, flow: FlowDefinition) -> List[Node]:
        return [
            n
            for n in flow.nodes
            if n.type in ENTRY_NODE_TYPES
        ]

    def _validate_structure(self, flow: FlowDefinition) -> List[ValidationIssue]:
        """Validate basic flow structure."""
        issues = []

        entries = self._entry_nodes(flow)
        if not entries:
            severity = (
                Severity.ERROR
                if self.settings.validation.require_entry_for_publish
                else Severity.WARNING
            )
            issues.append(
                ValidationIssue(
                    code=IssueCode.MISSING_ENTRY,
                    severity=severity,
                    message="Flow must have a start or trigger node",
                )
            )
        elif len(entries) > 1:
            for node in entries[1:]:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.MULTIPLE_ENTRIES,
                        severity=Severity.ERROR,
                        message="Flow must have exactly one start or trigger node",
                        node_id=node.id,
                    )
                )

        # Check for duplicate node IDs
        seen_ids: Set[str] = set()
        for node in flow.nodes:
            if node.id in seen_ids:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.DUPLICATE_ID,
                        severity=Severity.ERROR,
                        message=f"Duplicate node ID: {node.id}",
                        node_id=node.id,
                    )
                )
            seen_ids.add(node.id)

        # Check for duplicate edge IDs
        seen_edge_ids: Set[str] = set()
        for edge in flow.edges:
            if edge.id in seen_edge_ids:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.DUPLICATE_ID,
                        severity=Severity.ERROR,
                        message=f"Duplicate edge ID: {edge.id}",
                        edge_id=edge.id,
                    )
                )
            seen_edge_ids.add(edge.id)

        return issues

    def _validate_nodes(
        self, flow: FlowDefinition, lookup: FlowLookup
    ) -> List[ValidationIssue]:
        """Validate individual nodes."""
        issues = []

        for node in flow.nodes:
            if not self.registry.is_known(node.type):
                issues.append(
                    ValidationIssue(
                        code=IssueCode.UNKNOWN_NODE_TYPE,
                        severity=Severity.ERROR,
                        message=f"Unknown node type: {node.type}",
                        node_id=node.id,
                    )
                )
                continue

            try:
                self.registry.validate_data(node.type, node.data, node.id)
            except InvalidNodeData as e:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.INVALID_NODE_DATA,
                        severity=Severity.ERROR,
                        message=str(e),
                        node_id=node.id,
                    )
                )
                continue

            if node.type == NodeType.CONDITION.value:
                _, rule_issues = compile_condition(node.data, self.attributes, node.id)
                issues.extend(rule_issues)
            elif node.type == NodeType.START_FLOW.value:
                issues.extend(check_start_flow(node, flow, lookup))
            elif node.type == NodeType.SET_ATTRIBUTE.value:
                issues.extend(self._validate_set_attribute(node))

        return issues

    def _validate_set_attribute(self, node: Node) -> List[ValidationIssue]:
        if self.attributes is None:
            return []
        name = str(node.data.get("attributeName") or "").strip()
        model = AttributeModel(node.data.get("target") or AttributeModel.CONTACT.value)
        if not name or self.attributes.has(name, model):
            return []
        return [
            ValidationIssue(
                code=IssueCode.UNKNOWN_ATTRIBUTE,
                severity=Severity.WARNING,
                message=f"Undefined {model.value} attribute: {name}",
                node_id=node.id,
                field="attributeName",
            )
        ]

    def _validate_connections(self, flow: FlowDefinition) -> List[ValidationIssue]:
        """Validate edges between nodes."""
        issues = []
        nodes: Dict[str, Node] = {n.id: n for n in flow.nodes}
        inbound: Dict[str, List[str]] = {}

        for edge in flow.edges:
            source = nodes.get(edge.source)
            target = nodes.get(edge.target)

            if source is None or target is None:
                missing = edge.source if source is None else edge.target
                issues.append(
                    ValidationIssue(
                        code=IssueCode.DANGLING_EDGE,
                        severity=Severity.ERROR,
                        message=f"Edge references missing node: {missing}",
                        edge_id=edge.id,
                    )
                )
                continue

            if edge.source == edge.target:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.SELF_LOOP,
                        severity=Severity.ERROR,
                        message="Node has a connection to itself",
                        node_id=edge.source,
                        edge_id=edge.id,
                    )
                )

            if self.registry.is_known(source.type):
                ports = {p.id for p in derive_ports(source.type, source.data, self.registry)}
                if edge.source_handle not in ports:
                    issues.append(
                        ValidationIssue(
                            code=IssueCode.INVALID_PORT,
                            severity=Severity.ERROR,
                            message=f"Invalid source port: {edge.source_handle}",
                            node_id=source.id,
                            edge_id=edge.id,
                        )
                    )

            if self.registry.is_known(target.type) and not self.registry.accepts_input(
                target.type
            ):
                issues.append(
                    ValidationIssue(
                        code=IssueCode.INBOUND_ON_ENTRY,
                        severity=Severity.ERROR,
                        message=f"{target.type} nodes cannot have inbound connections",
                        node_id=target.id,
                        edge_id=edge.id,
                    )
                )
            else:
                inbound.setdefault(target.id, []).append(edge.id)

        for node_id, edge_ids in inbound.items():
            for edge_id in edge_ids[1:]:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.MULTIPLE_INBOUND,
                        severity=Severity.ERROR,
                        message="Node has more than one inbound connection",
                        node_id=node_id,
                        edge_id=edge_id,
                    )
                )

        return issues

    def _successors(self, flow: FlowDefinition) -> Dict[str, List[str]]:
        graph: Dict[str, List[str]] = {n.id: [] for n in flow.nodes}
        for edge in flow.edges:
            if edge.source in graph:
                graph[edge.source].append(edge.target)
        return graph

    def _validate_reachability(self, flow: FlowDefinition) -> List[ValidationIssue]:
        """Warn about nodes no entry node can reach."""
        if not self.settings.validation.warn_unreachable:
            return []

        entry_ids = [n.id for n in self._entry_nodes(flow)]
        if not entry_ids:
            return []

        graph = self._successors(flow)
        reachable: Set[str] = set()
        queue = deque(entry_ids)
        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            queue.extend(graph.get(current, []))

        return [
            ValidationIssue(
                code=IssueCode.UNREACHABLE_NODE,
                severity=Severity.WARNING,
                message="Node is not reachable from the start node",
                node_id=node.id,
            )
            for node in flow.nodes
            if node.id not in reachable
        ]

    def _upstream_keys(self, flow: FlowDefinition) -> Dict[str, Set[str]]:
        """Variables written by each node's ancestors."""
        predecessors: Dict[str, List[str]] = {n.id: [] for n in flow.nodes}
        for edge in flow.edges:
            if edge.target in predecessors:
                predecessors[edge.target].append(edge.source)
        nodes = {n.id: n for n in flow.nodes}

        result: Dict[str, Set[str]] = {}
        for node in flow.nodes:
            keys: Set[str] = set()
            seen: Set[str] = set()
            queue = deque(predecessors[node.id])
            while queue:
                current = queue.popleft()
                if current in seen or current not in nodes:
                    continue
                seen.add(current)
                keys |= defined_variable_keys(nodes[current])
                queue.extend(predecessors.get(current, []))
            result[node.id] = keys
        return result

    def _validate_variables(self, flow: FlowDefinition) -> List[ValidationIssue]:
        """Warn about interpolation tokens no scope can resolve."""
        if not self.settings.validation.warn_unknown_variables:
            return []

        resolver = VariableResolver.for_flow(flow, self.attributes)
        upstream = self._upstream_keys(flow)
        issues = []
        for node in flow.nodes:
            issues.extend(resolver.scan_node(node, upstream.get(node.id, set())))
        return issues

    def _validate_limits(self, flow: FlowDefinition) -> List[ValidationIssue]:
        """Validate resource limits."""
        issues = []
        builder = self.settings.builder

        if len(flow.nodes) > builder.max_nodes_per_flow:
            issues.append(
                ValidationIssue(
                    code=IssueCode.LIMIT_EXCEEDED,
                    severity=Severity.ERROR,
                    message=f"Flow exceeds maximum nodes ({len(flow.nodes)} > {builder.max_nodes_per_flow})",
                )
            )

        if len(flow.edges) > builder.max_edges_per_flow:
            issues.append(
                ValidationIssue(
                    code=IssueCode.LIMIT_EXCEEDED,
                    severity=Severity.ERROR,
                    message=f"Flow exceeds maximum edges ({len(flow.edges)} > {builder.max_edges_per_flow})",
                )
            )

        return issues


__all__ = ["FlowLookup", "FlowValidator"]
