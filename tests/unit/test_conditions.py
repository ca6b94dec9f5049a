"""Unit tests for condition evaluation."""

import pytest

from support_flows.conditions import (
    ConditionEvaluator,
    ConversationFacts,
    compile_condition,
    evaluate_rule,
)
from support_flows.config import AttributeModel, ConditionOperator, LogicOperator
from support_flows.nodes import port_ids


@pytest.fixture
def facts():
    """A conversation on the web widget."""
    return ConversationFacts(
        message="I want a Refund please",
        channel="web",
        status="open",
        priority="3",
        contact={"name": "Ana", "email": "ana@example.com"},
        contact_attributes={"plan": "pro"},
        conversation_attributes={"order_total": "120.5"},
    )


@pytest.fixture
def evaluator(attributes):
    """Case-sensitive evaluator."""
    return ConditionEvaluator(attributes=attributes, case_sensitive=True)


class TestOperators:
    """Tests for evaluate_rule."""

    @pytest.mark.parametrize(
        "operator,actual,expected,result",
        [
            ("equals", "web", "web", True),
            ("not_equals", "web", "email", True),
            ("contains", "hello world", "lo w", True),
            ("not_contains", "hello", "x", True),
            ("starts_with", "hello", "he", True),
            ("ends_with", "hello", "lo", True),
            ("is_empty", "   ", "", True),
            ("is_not_empty", " a ", "", True),
            ("greater_than", "10", "9.5", True),
            ("less_than", "abc", "1", True),
            ("greater_than", "", "0", False),
        ],
    )
    def test_operators(self, operator, actual, expected, result):
        """Each operator follows the runtime semantics."""
        assert evaluate_rule(actual, operator, expected) is result

    def test_case_sensitivity(self):
        """String operators honour the case setting."""
        assert evaluate_rule("Web", ConditionOperator.EQUALS, "web") is False
        assert evaluate_rule("Web", ConditionOperator.EQUALS, "web", case_sensitive=False) is True
        assert evaluate_rule("REFUND", "contains", "fund", case_sensitive=False) is True

    def test_unknown_operator_is_equals(self):
        """Unknown operators compare for equality."""
        assert evaluate_rule("a", "matches", "a") is True
        assert evaluate_rule("a", "matches", "b") is False


class TestCompile:
    """Tests for compile_condition."""

    def test_attribute_sources(self, attributes):
        """Rules resolve to their attribute model and key."""
        program, issues = compile_condition(
            {
                "rules": [
                    {"attribute": "contact_attribute", "attributeKey": "plan", "operator": "equals", "value": "pro"},
                    {"attribute": "conv_attr.order_total", "operator": "greater_than", "value": 100},
                    {"attribute": "channel", "operator": "equals", "value": "web"},
                ],
                "logicOperator": "or",
            },
            attributes,
        )
        assert issues == []
        assert program.logic == LogicOperator.OR
        assert program.rules[0].attribute_model == AttributeModel.CONTACT
        assert program.rules[1].attribute_key == "order_total"
        assert program.rules[1].value == "100"
        assert program.rules[2].attribute_model is None

    def test_defaults(self):
        """Missing fields take the runtime defaults."""
        program, _ = compile_condition({"rules": [{}]})
        rule = program.rules[0]
        assert (rule.source, rule.operator, rule.value) == ("message", ConditionOperator.EQUALS, "")
        assert program.logic == LogicOperator.AND

    def test_ports_match_derivation(self):
        """The program's ports are the node's derived ports."""
        data = {"outputs": ["VIP"], "rules": []}
        program, _ = compile_condition(data)
        assert [p.id for p in program.ports] == port_ids("condition", data)
        assert program.match_port == "out-0"
        assert program.else_port == "else"


class TestSelectPort:
    """Tests for branch selection."""

    def test_and_requires_all(self, evaluator, facts):
        """AND needs every rule."""
        data = {
            "rules": [
                {"attribute": "message", "operator": "contains", "value": "Refund"},
                {"attribute": "channel", "operator": "equals", "value": "email"},
            ],
            "logicOperator": "and",
        }
        assert evaluator.select_port(data, facts) == "else"

    def test_or_needs_one(self, evaluator, facts):
        """OR needs any rule, across the whole list."""
        data = {
            "rules": [
                {"attribute": "message", "operator": "contains", "value": "Refund"},
                {"attribute": "channel", "operator": "equals", "value": "email"},
                {"attribute": "status", "operator": "equals", "value": "closed"},
            ],
            "logicOperator": "or",
        }
        assert evaluator.select_port(data, facts) == "true"

    def test_named_branch(self, evaluator, facts):
        """A match follows the first named branch."""
        data = {
            "rules": [{"attribute": "contact_attr.plan", "operator": "equals", "value": "pro"}],
            "outputs": ["Pro customer", "Other"],
        }
        assert evaluator.select_port(data, facts) == "out-0"

    def test_custom_attributes(self, evaluator, facts):
        """Custom attributes resolve through attributeKey."""
        data = {
            "rules": [
                {"attribute": "conversation_attribute", "attributeKey": "order_total",
                 "operator": "greater_than", "value": "100"},
            ]
        }
        assert evaluator.evaluate(data, facts) is True

    def test_contact_fields(self, evaluator, facts):
        """Contact fields and identification are available."""
        data = {
            "rules": [
                {"attribute": "contact.name", "operator": "equals", "value": "Ana"},
                {"attribute": "contact.identified", "operator": "equals", "value": "true"},
            ]
        }
        assert evaluator.evaluate(data, facts) is True
        assert evaluator.evaluate(data, ConversationFacts()) is False

    def test_missing_values_are_empty(self, evaluator):
        """Absent attributes read as empty strings."""
        data = {"rules": [{"attribute": "contact_attr.unknown", "operator": "is_empty"}]}
        assert evaluator.select_port(data, ConversationFacts()) == "true"

    def test_empty_rules_never_match(self, evaluator, facts):
        """Without rules the else branch is taken."""
        assert evaluator.select_port({"rules": []}, facts) == "else"

    def test_legacy_contains(self, facts):
        """Old nodes with a bare contains field still evaluate."""
        evaluator = ConditionEvaluator(case_sensitive=False)
        assert evaluator.select_port({"contains": "refund"}, facts) == "true"
        assert evaluator.select_port({"contains": "invoice"}, facts) == "else"

    def test_empty_rule_list_ignores_legacy_contains(self, facts):
        """A declared but empty rule list never matches, even with contains."""
        evaluator = ConditionEvaluator(case_sensitive=False)
        data = {"rules": [], "contains": "refund"}
        assert evaluator.evaluate(data, facts) is False
        assert evaluator.select_port(data, facts) == "else"
        assert compile_condition(data)[0].legacy_contains == ""

    def test_case_insensitive_setting(self, facts):
        """Case sensitivity is configurable."""
        data = {"rules": [{"attribute": "message", "operator": "contains", "value": "refund"}]}
        assert ConditionEvaluator(case_sensitive=True).evaluate(data, facts) is False
        assert ConditionEvaluator(case_sensitive=False).evaluate(data, facts) is True

    def test_default_case_sensitivity_from_settings(self):
        """Without an override the setting decides."""
        from support_flows.config import get_settings

        assert ConditionEvaluator().case_sensitive == get_settings().condition.case_sensitive

    @pytest.mark.parametrize("logic", ["and", "or"])
    @pytest.mark.parametrize("outputs", [[], ["A"], ["A", "B", " "]])
    def test_exactly_one_derived_port(self, evaluator, facts, logic, outputs):
        """Evaluation always selects one of the derived ports."""
        for value in ("Refund", "nothing"):
            data = {
                "rules": [{"attribute": "message", "operator": "contains", "value": value}],
                "logicOperator": logic,
                "outputs": outputs,
            }
            assert evaluator.select_port(data, facts) in port_ids("condition", data)


class TestConversationFacts:
    """Tests for building facts from runtime payloads."""

    def test_from_dict(self):
        """camelCase payloads are accepted and values stringified."""
        facts = ConversationFacts.from_dict(
            {
                "message": "hi",
                "priority": 2,
                "contact": {"email": "a@b.c"},
                "contactAttributes": {"plan": "pro"},
                "conversationAttributes": {"total": 10},
            }
        )
        assert facts.priority == "2"
        assert facts.channel == ""
        assert facts.contact_attributes == {"plan": "pro"}
        assert facts.conversation_attributes == {"total": "10"}
