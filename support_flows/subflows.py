"""
Sub-flow Invocation Contract.

A ``start_flow`` node names a target flow and binds values to the target's
input variables. Bindings are literals or ``{{token}}`` templates resolved in
the caller's scopes at the moment of invocation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import IssueCode, Severity
from .models import FlowDefinition, InputVariable, Node, ValidationIssue
from .variables import VariableResolver

logger = logging.getLogger(__name__)


@dataclass
class SubflowInvocation:
    """Everything the runtime needs to start a sub-flow."""

    flow_id: str
    bindings: Dict[str, str] = field(default_factory=dict)
    carried: Dict[str, str] = field(default_factory=dict)
    missing: List[InputVariable] = field(default_factory=list)
    ai_collect_inputs: bool = False

    @property
    def variables(self) -> Dict[str, str]:
        """Initial variables of the sub-flow; explicit bindings win."""
        merged = dict(self.carried)
        merged.update(self.bindings)
        return merged

    @property
    def escalate(self) -> bool:
        """Whether the runtime must ask the visitor for missing inputs first."""
        return bool(self.missing) and self.ai_collect_inputs

    @property
    def missing_labels(self) -> List[str]:
        return [v.display_name for v in self.missing]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_id": self.flow_id,
            "variables": self.variables,
            "missing": self.missing_labels,
            "escalate": self.escalate,
        }


def _bindings(data: Mapping[str, Any]) -> Dict[str, str]:
    raw = data.get("variableBindings")
    if not isinstance(raw, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in raw.items()}


def missing_required_inputs(
    target: FlowDefinition, values: Mapping[str, Any]
) -> List[InputVariable]:
    """Required inputs of ``target`` with no value or a blank one."""
    return [
        var
        for var in target.required_inputs
        if not str(values.get(var.key) or "").strip()
    ]


def plan_invocation(
    data: Mapping[str, Any],
    target: FlowDefinition,
    caller_values: Optional[Mapping[str, Any]] = None,
    resolver: Optional[VariableResolver] = None,
) -> SubflowInvocation:
    """
    Resolve a start_flow node's bindings against the caller's values.

    Tokens with no value in the caller resolve to an empty string, so the
    corresponding input counts as missing. Caller variables that are not
    bound explicitly are carried over unchanged.
    """
    caller_values = dict(caller_values or {})
    resolver = resolver or VariableResolver()

    bindings = {
        key: resolver.interpolate(template, caller_values, keep_unknown=False)
        for key, template in _bindings(data).items()
    }
    carried = {
        str(k): "" if v is None else str(v)
        for k, v in caller_values.items()
        if k not in bindings
    }

    invocation = SubflowInvocation(
        flow_id=target.id,
        bindings=bindings,
        carried=carried,
        ai_collect_inputs=bool(data.get("aiCollectInputs")),
    )
    invocation.missing = missing_required_inputs(target, invocation.variables)

    if invocation.escalate:
        logger.info(
            f"Sub-flow {target.id} needs inputs from the visitor: {invocation.missing_labels}"
        )
    return invocation


def check_start_flow(
    node: Node,
    caller: FlowDefinition,
    lookup: Callable[[str], Optional[FlowDefinition]],
) -> List[ValidationIssue]:
    """
    Design-time checks of a start_flow node.

    A required input of the target counts as bound when its binding is not
    blank. ``aiCollectInputs`` lifts the requirement.
    """
    issues: List[ValidationIssue] = []
    data = node.data if isinstance(node.data, dict) else {}
    flow_id = str(data.get("flowId") or "").strip()

    if not flow_id:
        issues.append(
            ValidationIssue(
                code=IssueCode.UNKNOWN_SUBFLOW,
                severity=Severity.ERROR,
                message="Start Flow node has no target flow",
                node_id=node.id,
                field="flowId",
            )
        )
        return issues

    if flow_id == caller.id:
        issues.append(
            ValidationIssue(
                code=IssueCode.RECURSIVE_SUBFLOW,
                severity=Severity.WARNING,
                message="Start Flow node invokes its own flow",
                node_id=node.id,
                field="flowId",
            )
        )

    target = caller if flow_id == caller.id else lookup(flow_id)
    if target is None:
        issues.append(
            ValidationIssue(
                code=IssueCode.UNKNOWN_SUBFLOW,
                severity=Severity.ERROR,
                message=f"Target flow not found: {flow_id}",
                node_id=node.id,
                field="flowId",
            )
        )
        return issues

    bindings = _bindings(data)
    declared = {v.key for v in target.input_variables}
    for key in bindings:
        if key not in declared:
            issues.append(
                ValidationIssue(
                    code=IssueCode.UNDECLARED_BINDING,
                    severity=Severity.WARNING,
                    message=f"Flow '{target.name}' does not declare input '{key}'",
                    node_id=node.id,
                    field=f"variableBindings.{key}",
                )
            )

    if not data.get("aiCollectInputs"):
        for var in missing_required_inputs(target, bindings):
            issues.append(
                ValidationIssue(
                    code=IssueCode.UNBOUND_REQUIRED_INPUT,
                    severity=Severity.ERROR,
                    message=(
                        f"Required input '{var.display_name}' of flow "
                        f"'{target.name}' is not bound"
                    ),
                    node_id=node.id,
                    field=f"variableBindings.{var.key}",
                )
            )

    return issues


__all__ = [
    "SubflowInvocation",
    "missing_required_inputs",
    "plan_invocation",
    "check_start_flow",
]
