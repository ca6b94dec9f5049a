"""
Variable Resolver.

Expands ``{{key}}`` interpolation tokens found in string-valued node fields.

Keys come from three scopes:

1. Contact scope: ``contact.name``, ``contact.email``, ``contact.phone``,
   ``contact.company`` and ``contact.location`` are always resolvable.
2. Flow scope: the enclosing flow's input variable keys.
3. Custom scope: keys from the attribute registry, filtered to a model where
   the node targets one. Contact attributes are also reachable as
   ``contact.<key>``.

At design time only resolvability is checked. Unknown tokens produce an
UnknownVariable warning and are left in the text as typed.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Set, Union

from .attributes import AttributeRegistry
from .config import ENTRY_NODE_TYPES, AttributeModel, IssueCode, NodeType, Severity
from .models import FlowDefinition, InputVariable, Node, ValidationIssue

logger = logging.getLogger(__name__)

CONTACT_KEYS = frozenset(
    {
        "contact.name",
        "contact.email",
        "contact.phone",
        "contact.company",
        "contact.location",
    }
)

CONTACT_PREFIX = "contact."

TOKEN_PATTERN = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_.]*)\s*\}\}")


def find_tokens(text: str) -> List[str]:
    """Keys referenced by ``{{...}}`` tokens, in order of appearance."""
    if not isinstance(text, str):
        return []
    return TOKEN_PATTERN.findall(text)


@dataclass
class ResolutionResult:
    """Text after substitution plus the warnings raised along the way."""

    text: str
    warnings: List[ValidationIssue] = field(default_factory=list)
    unknown_keys: List[str] = field(default_factory=list)


def _unknown_variable(
    key: str, node_id: Optional[str], field_path: Optional[str]
) -> ValidationIssue:
    where = f" in {field_path}" if field_path else ""
    return ValidationIssue(
        code=IssueCode.UNKNOWN_VARIABLE,
        severity=Severity.WARNING,
        message=f"Unknown variable {{{{{key}}}}}{where}",
        node_id=node_id,
        field=field_path,
    )


class VariableResolver:
    """
    Resolves interpolation tokens against contact, flow and custom scopes.

    Never raises on unknown keys.
    """

    def __init__(
        self,
        input_variables: Iterable[Union[InputVariable, str]] = (),
        attributes: Optional[AttributeRegistry] = None,
    ):
        self.flow_keys: Set[str] = {
            v.key if isinstance(v, InputVariable) else str(v) for v in input_variables
        }
        self.attributes = attributes or AttributeRegistry()

    @classmethod
    def for_flow(
        cls, flow: FlowDefinition, attributes: Optional[AttributeRegistry] = None
    ) -> "VariableResolver":
        return cls(flow.input_variables, attributes)

    def known_keys(
        self,
        model: Optional[AttributeModel] = None,
        extra_keys: Iterable[str] = (),
    ) -> Set[str]:
        """All keys resolvable for a node applying to ``model`` (None = any)."""
        keys = set(CONTACT_KEYS) | self.flow_keys | set(extra_keys)
        keys |= self.attributes.keys(model)
        if model in (None, AttributeModel.CONTACT):
            keys |= {
                CONTACT_PREFIX + k for k in self.attributes.keys(AttributeModel.CONTACT)
            }
        return keys

    def is_resolvable(
        self,
        key: str,
        model: Optional[AttributeModel] = None,
        extra_keys: Iterable[str] = (),
    ) -> bool:
        return key in self.known_keys(model, extra_keys)

    def check(
        self,
        text: str,
        model: Optional[AttributeModel] = None,
        extra_keys: Iterable[str] = (),
    ) -> List[str]:
        """Unknown keys referenced in ``text``, deduplicated, in order."""
        known = self.known_keys(model, extra_keys)
        unknown: List[str] = []
        for key in find_tokens(text):
            if key not in known and key not in unknown:
                unknown.append(key)
        return unknown

    def resolve(
        self,
        text: str,
        values: Optional[Mapping[str, Any]] = None,
        model: Optional[AttributeModel] = None,
        extra_keys: Iterable[str] = (),
        node_id: Optional[str] = None,
        field_path: Optional[str] = None,
    ) -> ResolutionResult:
        """
        Substitute values for resolvable tokens.

        Keys present in ``values`` count as resolvable. A resolvable key
        without a value keeps its token, since its value only exists at
        execution time. Unknown keys keep their token and add one warning
        per distinct key.
        """
        values = dict(values or {})
        known = self.known_keys(model, extra_keys) | set(values)
        warned: List[str] = []
        warnings: List[ValidationIssue] = []

        def _replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key not in known:
                if key not in warned:
                    warned.append(key)
                    warnings.append(_unknown_variable(key, node_id, field_path))
                return match.group(0)
            if key in values and values[key] is not None:
                return str(values[key])
            return match.group(0)

        if not isinstance(text, str):
            return ResolutionResult(text="" if text is None else str(text))

        resolved = TOKEN_PATTERN.sub(_replace, text)
        if warnings:
            logger.debug(f"Unresolved tokens: {warned}")
        return ResolutionResult(text=resolved, warnings=warnings, unknown_keys=warned)

    def interpolate(
        self,
        text: str,
        values: Mapping[str, Any],
        keep_unknown: bool = True,
    ) -> str:
        """
        Runtime-style substitution of concrete values.

        With ``keep_unknown=False`` every token without a value becomes an
        empty string, which is what the execution runtime does.
        """
        if not keep_unknown:
            return TOKEN_PATTERN.sub(
                lambda m: "" if values.get(m.group(1)) is None else str(values[m.group(1)]),
                text or "",
            )
        return self.resolve(text, values).text

    def scan_node(
        self,
        node: Node,
        extra_keys: Iterable[str] = (),
    ) -> List[ValidationIssue]:
        """Check every string field of a node's data, recursively."""
        model = node_attribute_model(node)
        extra = set(extra_keys)
        issues: List[ValidationIssue] = []
        for path, text in _walk_strings(node.data):
            for key in self.check(text, model, extra):
                issues.append(_unknown_variable(key, node.id, path))
        return issues


def node_attribute_model(node: Node) -> Optional[AttributeModel]:
    """Attribute model a node's tokens are restricted to, if any."""
    if node.type == NodeType.SET_ATTRIBUTE.value:
        try:
            return AttributeModel(node.data.get("target") or AttributeModel.CONTACT.value)
        except ValueError:
            return None
    return None


def defined_variable_keys(node: Node) -> Set[str]:
    """Flow variables a node writes when it runs (quick_input, input_form)."""
    keys: Set[str] = set()
    data = node.data if isinstance(node.data, dict) else {}
    if node.type == NodeType.QUICK_INPUT.value:
        name = data.get("variableName")
        if isinstance(name, str) and name.strip():
            keys.add(name.strip())
    elif node.type == NodeType.INPUT_FORM.value or node.type in ENTRY_NODE_TYPES:
        for entry in data.get("fields") or []:
            if isinstance(entry, dict):
                for attr in ("key", "name"):
                    value = entry.get(attr)
                    if isinstance(value, str) and value.strip():
                        keys.add(value.strip())
                        break
    return keys


def _walk_strings(value: Any, path: str = "") -> Iterable[tuple]:
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from _walk_strings(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _walk_strings(item, f"{path}[{index}]")


__all__ = [
    "CONTACT_KEYS",
    "TOKEN_PATTERN",
    "ResolutionResult",
    "VariableResolver",
    "find_tokens",
    "node_attribute_model",
    "defined_variable_keys",
]
