"""
Condition Evaluator.

Compiles a condition node's rule list into a small program and evaluates it
the way the execution runtime does:

- every rule compares one attribute of the conversation with a comparand;
- a single logic operator (``and`` / ``or``) combines the whole rule list;
- a match follows the first branch port, anything else follows ``else``.

Exactly one port is selected per evaluation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .attributes import AttributeRegistry
from .config import (
    AttributeModel,
    ConditionOperator,
    IssueCode,
    LogicOperator,
    NodeType,
    Severity,
    get_settings,
)
from .models import OutputPort, ValidationIssue
from .nodes.ports import ELSE_PORT_ID, content_ports

logger = logging.getLogger(__name__)


# =============================================================================
# Attribute Sources
# =============================================================================

CONVERSATION_SOURCES = frozenset(
    {"message", "channel", "status", "priority", "assignee", "team", "inbox"}
)

CONTACT_FIELD_SOURCES = frozenset(
    {
        "contact.name",
        "contact.email",
        "contact.phone",
        "contact.company",
        "contact.location",
    }
)

CONTACT_IDENTIFIED = "contact.identified"
CONTACT_ATTRIBUTE = "contact_attribute"
CONVERSATION_ATTRIBUTE = "conversation_attribute"

CONTACT_ATTR_PREFIX = "contact_attr."
CONV_ATTR_PREFIX = "conv_attr."


@dataclass
class ConversationFacts:
    """
    Values a condition can inspect, as the runtime sees them.

    Anything missing resolves to an empty string.
    """

    message: str = ""
    channel: str = ""
    status: str = ""
    priority: str = ""
    assignee: str = ""
    team: str = ""
    inbox: str = ""
    contact: Dict[str, str] = field(default_factory=dict)
    contact_attributes: Dict[str, str] = field(default_factory=dict)
    conversation_attributes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ConversationFacts":
        def _strings(value: Any) -> Dict[str, str]:
            if not isinstance(value, dict):
                return {}
            return {str(k): "" if v is None else str(v) for k, v in value.items()}

        return cls(
            **{
                name: "" if raw.get(name) is None else str(raw.get(name))
                for name in CONVERSATION_SOURCES
            },
            contact=_strings(raw.get("contact")),
            contact_attributes=_strings(
                raw.get("contactAttributes", raw.get("contact_attributes"))
            ),
            conversation_attributes=_strings(
                raw.get("conversationAttributes", raw.get("conversation_attributes"))
            ),
        )


# =============================================================================
# Compiled Program
# =============================================================================


@dataclass(frozen=True)
class CompiledRule:
    """One rule with its attribute source resolved."""

    source: str
    operator: ConditionOperator
    value: str
    attribute_model: Optional[AttributeModel] = None
    attribute_key: Optional[str] = None

    def actual_value(self, facts: ConversationFacts) -> str:
        if self.attribute_model == AttributeModel.CONTACT:
            return facts.contact_attributes.get(self.attribute_key or "", "")
        if self.attribute_model == AttributeModel.CONVERSATION:
            return facts.conversation_attributes.get(self.attribute_key or "", "")
        if self.source in CONVERSATION_SOURCES:
            return getattr(facts, self.source)
        if self.source == CONTACT_IDENTIFIED:
            return "true" if facts.contact.get("email") else "false"
        if self.source in CONTACT_FIELD_SOURCES:
            return facts.contact.get(self.source[len("contact."):], "")
        return ""

    def evaluate(self, facts: ConversationFacts, case_sensitive: bool = True) -> bool:
        return evaluate_rule(
            self.actual_value(facts), self.operator, self.value, case_sensitive
        )


@dataclass
class ConditionProgram:
    """Compiled condition node."""

    rules: List[CompiledRule]
    logic: LogicOperator
    ports: List[OutputPort]
    legacy_contains: str = ""

    @property
    def match_port(self) -> str:
        return self.ports[0].id

    @property
    def else_port(self) -> str:
        return ELSE_PORT_ID

    def matches(self, facts: ConversationFacts, case_sensitive: bool = True) -> bool:
        if not self.rules:
            if self.legacy_contains:
                return evaluate_rule(
                    facts.message,
                    ConditionOperator.CONTAINS,
                    self.legacy_contains,
                    case_sensitive,
                )
            return False

        results = [rule.evaluate(facts, case_sensitive) for rule in self.rules]
        if self.logic == LogicOperator.OR:
            return any(results)
        return all(results)

    def select_port(self, facts: ConversationFacts, case_sensitive: bool = True) -> str:
        return self.match_port if self.matches(facts, case_sensitive) else self.else_port


# =============================================================================
# Operators
# =============================================================================


def _to_float(value: str) -> float:
    try:
        return float(value.strip())
    except (AttributeError, ValueError):
        return 0.0


def _parse_operator(raw: Any) -> ConditionOperator:
    try:
        return ConditionOperator(raw)
    except ValueError:
        return ConditionOperator.EQUALS


def evaluate_rule(
    actual: str,
    operator: Any,
    expected: str,
    case_sensitive: bool = True,
) -> bool:
    """
    Apply one comparison operator.

    Unknown operators compare for equality. Numeric operators read
    unparseable input as 0.
    """
    operator = _parse_operator(operator)
    actual = actual or ""
    expected = expected or ""

    if operator == ConditionOperator.IS_EMPTY:
        return not actual.strip()
    if operator == ConditionOperator.IS_NOT_EMPTY:
        return bool(actual.strip())
    if operator == ConditionOperator.GREATER_THAN:
        return _to_float(actual) > _to_float(expected)
    if operator == ConditionOperator.LESS_THAN:
        return _to_float(actual) < _to_float(expected)

    if not case_sensitive:
        actual, expected = actual.lower(), expected.lower()

    if operator == ConditionOperator.NOT_EQUALS:
        return actual != expected
    if operator == ConditionOperator.CONTAINS:
        return expected in actual
    if operator == ConditionOperator.NOT_CONTAINS:
        return expected not in actual
    if operator == ConditionOperator.STARTS_WITH:
        return actual.startswith(expected)
    if operator == ConditionOperator.ENDS_WITH:
        return actual.endswith(expected)
    return actual == expected


# =============================================================================
# Compilation
# =============================================================================


def _rule_issue(
    code: IssueCode, message: str, node_id: Optional[str], index: int
) -> ValidationIssue:
    return ValidationIssue(
        code=code,
        severity=Severity.WARNING,
        message=message,
        node_id=node_id,
        field=f"rules[{index}]",
    )


def _compile_rule(
    raw: Dict[str, Any],
    index: int,
    attributes: Optional[AttributeRegistry],
    node_id: Optional[str],
) -> Tuple[CompiledRule, List[ValidationIssue]]:
    issues: List[ValidationIssue] = []
    source = str(raw.get("attribute") or "message")
    operator = _parse_operator(raw.get("operator") or ConditionOperator.EQUALS.value)
    value = raw.get("value")
    value = "" if value is None else str(value)

    model: Optional[AttributeModel] = None
    key: Optional[str] = None

    if source in (CONTACT_ATTRIBUTE, CONVERSATION_ATTRIBUTE):
        model = (
            AttributeModel.CONTACT
            if source == CONTACT_ATTRIBUTE
            else AttributeModel.CONVERSATION
        )
        key = str(raw.get("attributeKey") or raw.get("attribute_key") or "").strip()
        if not key:
            issues.append(
                _rule_issue(
                    IssueCode.INVALID_NODE_DATA,
                    f"Rule {index + 1} reads a {model.value} attribute but has no attributeKey",
                    node_id,
                    index,
                )
            )
    elif source.startswith(CONTACT_ATTR_PREFIX):
        model, key = AttributeModel.CONTACT, source[len(CONTACT_ATTR_PREFIX):]
    elif source.startswith(CONV_ATTR_PREFIX):
        model, key = AttributeModel.CONVERSATION, source[len(CONV_ATTR_PREFIX):]
    elif not (
        source in CONVERSATION_SOURCES
        or source in CONTACT_FIELD_SOURCES
        or source == CONTACT_IDENTIFIED
    ):
        issues.append(
            _rule_issue(
                IssueCode.UNKNOWN_ATTRIBUTE,
                f"Rule {index + 1} reads unknown attribute '{source}'",
                node_id,
                index,
            )
        )

    if model is not None and key and attributes is not None:
        if attributes.get(key, model) is None:
            issues.append(
                _rule_issue(
                    IssueCode.UNKNOWN_ATTRIBUTE,
                    f"Rule {index + 1} reads undefined {model.value} attribute '{key}'",
                    node_id,
                    index,
                )
            )

    rule = CompiledRule(
        source=source,
        operator=operator,
        value=value,
        attribute_model=model,
        attribute_key=key,
    )
    return rule, issues


def compile_condition(
    data: Optional[Dict[str, Any]],
    attributes: Optional[AttributeRegistry] = None,
    node_id: Optional[str] = None,
) -> Tuple[ConditionProgram, List[ValidationIssue]]:
    """
    Compile a condition node's data bag.

    Returns:
        The program and any design-time issues found in its rules
    """
    data = data if isinstance(data, dict) else {}
    rules: List[CompiledRule] = []
    issues: List[ValidationIssue] = []

    raw_rules = data.get("rules")
    for index, raw in enumerate(raw_rules if isinstance(raw_rules, list) else []):
        if not isinstance(raw, dict):
            continue
        rule, rule_issues = _compile_rule(raw, index, attributes, node_id)
        rules.append(rule)
        issues.extend(rule_issues)

    logic = (
        LogicOperator.OR
        if str(data.get("logicOperator") or "").lower() == LogicOperator.OR.value
        else LogicOperator.AND
    )
    # Nodes saved before rule lists existed carry a bare "contains" instead.
    legacy = data.get("contains") if not isinstance(raw_rules, list) else None

    program = ConditionProgram(
        rules=rules,
        logic=logic,
        ports=content_ports(NodeType.CONDITION, data),
        legacy_contains=legacy.strip() if isinstance(legacy, str) else "",
    )
    return program, issues


class ConditionEvaluator:
    """
    Reference evaluator for condition nodes.

    String comparison follows ``ConditionConfig.case_sensitive`` unless
    overridden.
    """

    def __init__(
        self,
        attributes: Optional[AttributeRegistry] = None,
        case_sensitive: Optional[bool] = None,
    ):
        self.attributes = attributes
        if case_sensitive is None:
            case_sensitive = get_settings().condition.case_sensitive
        self.case_sensitive = case_sensitive

    def compile(
        self, data: Optional[Dict[str, Any]], node_id: Optional[str] = None
    ) -> Tuple[ConditionProgram, List[ValidationIssue]]:
        return compile_condition(data, self.attributes, node_id)

    def evaluate(self, data: Optional[Dict[str, Any]], facts: ConversationFacts) -> bool:
        """Whether the node's rule set is satisfied."""
        program, _ = self.compile(data)
        return program.matches(facts, self.case_sensitive)

    def select_port(self, data: Optional[Dict[str, Any]], facts: ConversationFacts) -> str:
        """The single port id traversal follows."""
        program, _ = self.compile(data)
        port = program.select_port(facts, self.case_sensitive)
        logger.debug(f"Condition selected port {port}")
        return port


__all__ = [
    "ConversationFacts",
    "CompiledRule",
    "ConditionProgram",
    "ConditionEvaluator",
    "compile_condition",
    "evaluate_rule",
]
