"""Unit tests for flow validation."""

import pytest

from support_flows.canvas import FlowGraph, FlowValidator
from support_flows.config import IssueCode, Severity
from support_flows.models import Edge, FlowDefinition, Node


@pytest.fixture
def validator(settings, attributes):
    """Validator with default settings."""
    return FlowValidator(attributes=attributes, settings=settings)


def _codes(report, severity=None):
    return [i.code for i in report.issues if severity is None or i.severity == severity]


class TestStructure:
    """Tests for entry node and id checks."""

    def test_missing_entry_blocks_publish(self, validator, empty_flow):
        """A flow without start/trigger is not publishable."""
        report = validator.validate(empty_flow)
        assert _codes(report, Severity.ERROR) == [IssueCode.MISSING_ENTRY]
        assert not report.publishable

    def test_missing_entry_warning_when_not_required(self, settings, empty_flow):
        """The entry requirement can be relaxed."""
        settings.validation.require_entry_for_publish = False
        report = FlowValidator(settings=settings).validate(empty_flow)
        assert report.publishable
        assert IssueCode.MISSING_ENTRY in _codes(report, Severity.WARNING)

    def test_multiple_entries(self, validator, graph):
        """Exactly one entry node is allowed."""
        graph.add_node("trigger", node_id="second")
        report = validator.validate(graph.flow)
        assert IssueCode.MULTIPLE_ENTRIES in _codes(report, Severity.ERROR)

    def test_duplicate_ids(self, validator):
        """Duplicate node and edge ids are errors."""
        flow = FlowDefinition(
            id="f",
            name="Dupes",
            nodes=[Node(id="s", type="start"), Node(id="m", type="message"), Node(id="m", type="note")],
            edges=[Edge(id="e", source="s", target="m"), Edge(id="e", source="s", target="m")],
        )
        report = validator.validate(flow)
        assert _codes(report).count(IssueCode.DUPLICATE_ID) == 2


class TestNodes:
    """Tests for per-node checks."""

    def test_unknown_type_is_reported(self, validator, graph):
        """Unknown node types become issues, not exceptions."""
        graph.flow.nodes.append(Node(id="odd", type="teleport"))
        report = validator.validate(graph.flow)
        issues = report.by_node()["odd"]
        assert issues[0].code == IssueCode.UNKNOWN_NODE_TYPE
        assert issues[0].severity == Severity.ERROR

    def test_invalid_data_is_reported(self, validator, graph):
        """Schema violations in stored data are errors."""
        graph.flow.nodes.append(Node(id="bad", type="assign", data={"assignTo": "robot"}))
        report = validator.validate(graph.flow)
        assert IssueCode.INVALID_NODE_DATA in [i.code for i in report.by_node()["bad"]]

    def test_condition_rule_issues(self, validator, graph):
        """Condition rules reading unknown attributes are flagged."""
        graph.add_node(
            "condition",
            node_id="cond",
            data={
                "rules": [
                    {"attribute": "weather", "operator": "equals", "value": "sunny"},
                    {"attribute": "contact_attribute", "operator": "equals", "value": "pro"},
                    {"attribute": "conv_attr.missing", "operator": "is_empty"},
                ]
            },
        )
        graph.connect("start", None, "cond")
        report = validator.validate(graph.flow)
        codes = [i.code for i in report.by_node()["cond"]]
        assert codes == [
            IssueCode.UNKNOWN_ATTRIBUTE,
            IssueCode.INVALID_NODE_DATA,
            IssueCode.UNKNOWN_ATTRIBUTE,
        ]
        assert report.publishable

    def test_set_attribute_unknown_key(self, validator, graph):
        """Writing an undefined attribute is a warning."""
        graph.add_node(
            "set_attribute",
            node_id="set",
            data={"target": "conversation", "attributeName": "plan", "attributeValue": "x"},
        )
        graph.connect("start", None, "set")
        report = validator.validate(graph.flow)
        assert [i.code for i in report.by_node()["set"]] == [IssueCode.UNKNOWN_ATTRIBUTE]


class TestConnections:
    """Tests for edge checks on stored graphs."""

    def test_dangling_and_invalid_edges(self, validator, graph):
        """Edges loaded from storage are checked against derived ports."""
        graph.add_node("buttons", node_id="menu", data={"buttons": ["A"]})
        graph.add_node("message", node_id="m")
        graph.add_node("message", node_id="n")
        graph.flow.edges.extend(
            [
                Edge(id="e1", source="start", target="menu"),
                Edge(id="e2", source="menu", target="n", source_handle="btn-4"),
                Edge(id="e3", source="menu", target="ghost", source_handle="btn-0"),
                Edge(id="e4", source="m", target="m"),
                Edge(id="e5", source="m", target="start"),
            ]
        )
        report = validator.validate(graph.flow)
        by_edge = {i.edge_id: i.code for i in report.issues if i.edge_id}

        assert by_edge["e2"] == IssueCode.INVALID_PORT
        assert by_edge["e3"] == IssueCode.DANGLING_EDGE
        assert by_edge["e4"] == IssueCode.SELF_LOOP
        assert by_edge["e5"] == IssueCode.INBOUND_ON_ENTRY

    def test_multiple_inbound(self, validator, graph):
        """A second inbound edge on one node is an error."""
        graph.add_node("message", node_id="a")
        graph.add_node("message", node_id="t")
        graph.flow.edges.extend(
            [
                Edge(id="e1", source="start", target="a"),
                Edge(id="e2", source="start", target="t"),
                Edge(id="e3", source="a", target="t"),
            ]
        )
        report = validator.validate(graph.flow)
        multiple = [i for i in report.issues if i.code == IssueCode.MULTIPLE_INBOUND]
        assert [i.edge_id for i in multiple] == ["e3"]


class TestReachability:
    """Tests for reachability warnings."""

    def test_unreachable_is_warning(self, validator, graph):
        """Disconnected nodes do not block publishing."""
        graph.add_node("message", node_id="island")
        report = validator.validate(graph.flow)
        assert report.by_node()["island"][0].code == IssueCode.UNREACHABLE_NODE
        assert report.by_node()["island"][0].severity == Severity.WARNING
        assert report.publishable

    def test_reachable_chain(self, validator, graph):
        """Nodes reached through any port are fine."""
        graph.add_node("condition", node_id="c")
        graph.add_node("message", node_id="yes")
        graph.add_node("message", node_id="no")
        graph.connect("start", None, "c")
        graph.connect("c", "true", "yes")
        graph.connect("c", "else", "no")
        report = validator.validate(graph.flow)
        assert report.issues == []

    def test_can_be_disabled(self, settings, graph):
        """Reachability warnings follow the setting."""
        settings.validation.warn_unreachable = False
        graph.add_node("message", node_id="island")
        report = FlowValidator(settings=settings).validate(graph.flow)
        assert report.issues == []


class TestVariables:
    """Tests for interpolation checks."""

    def test_unknown_variable_warning(self, validator, graph):
        """Unknown tokens are warnings with the field path."""
        graph.add_node("message", node_id="m", data={"text": "Code {{missing_key}}"})
        graph.connect("start", None, "m")
        report = validator.validate(graph.flow)
        issues = report.by_node()["m"]
        assert [i.code for i in issues] == [IssueCode.UNKNOWN_VARIABLE]
        assert issues[0].field == "text"
        assert report.publishable

    def test_upstream_quick_input_defines_variable(self, validator, graph):
        """Variables captured upstream resolve downstream only."""
        graph.add_node("quick_input", node_id="ask", data={"variableName": "email"})
        graph.add_node("message", node_id="after", data={"text": "Thanks {{email}}"})
        graph.add_node("message", node_id="before", data={"text": "Hi {{email}}"})
        graph.connect("start", None, "before")
        graph.connect("before", None, "ask")
        graph.connect("ask", None, "after")
        report = validator.validate(graph.flow)
        nodes = report.by_node()
        assert "after" not in nodes
        assert nodes["before"][0].code == IssueCode.UNKNOWN_VARIABLE

    def test_set_attribute_scope(self, validator, graph):
        """set_attribute tokens only see attributes of its target model."""
        graph.add_node(
            "set_attribute",
            node_id="set",
            data={"target": "conversation", "attributeName": "order_total", "attributeValue": "{{plan}}"},
        )
        graph.connect("start", None, "set")
        report = validator.validate(graph.flow)
        assert [i.code for i in report.by_node()["set"]] == [IssueCode.UNKNOWN_VARIABLE]


class TestSubflows:
    """Tests for start_flow checks."""

    def _caller(self, order_flow, data):
        graph = FlowGraph(FlowDefinition(id="caller", name="Caller"), flows={order_flow.id: order_flow})
        graph.add_node("start", node_id="start")
        graph.add_node("start_flow", node_id="sub", data=data)
        graph.connect("start", None, "sub")
        return graph

    def test_unbound_required_input(self, order_flow):
        """A missing required binding blocks publishing."""
        graph = self._caller(order_flow, {"flowId": "flow_order", "aiCollectInputs": False})
        report = graph.validate()
        assert IssueCode.UNBOUND_REQUIRED_INPUT in _codes(report, Severity.ERROR)
        assert not report.publishable

    def test_ai_collect_inputs_passes(self, order_flow):
        """Letting the AI collect inputs makes the flow valid."""
        graph = self._caller(order_flow, {"flowId": "flow_order", "aiCollectInputs": False})
        graph.update_node_data("sub", {"aiCollectInputs": True})
        report = graph.validate()
        assert report.publishable
        assert report.issues == []

    def test_binding_satisfies_requirement(self, order_flow):
        """A non-blank binding counts as bound."""
        graph = self._caller(
            order_flow, {"flowId": "flow_order", "variableBindings": {"order_id": "{{contact.email}}"}}
        )
        assert graph.validate().publishable

    def test_blank_binding_is_missing(self, order_flow):
        """Whitespace bindings do not count."""
        graph = self._caller(order_flow, {"flowId": "flow_order", "variableBindings": {"order_id": "  "}})
        assert IssueCode.UNBOUND_REQUIRED_INPUT in graph.validate().codes()

    def test_unknown_target(self, order_flow):
        """Targets must exist."""
        graph = self._caller(order_flow, {"flowId": "flow_nope"})
        assert IssueCode.UNKNOWN_SUBFLOW in _codes(graph.validate(), Severity.ERROR)

    def test_undeclared_binding_and_recursion(self, order_flow):
        """Extra bindings and self invocation are warnings."""
        graph = self._caller(
            order_flow,
            {"flowId": "flow_order", "variableBindings": {"order_id": "1", "colour": "red"}},
        )
        assert _codes(graph.validate()) == [IssueCode.UNDECLARED_BINDING]

        graph.update_node_data("sub", {"flowId": "caller"})
        assert IssueCode.RECURSIVE_SUBFLOW in _codes(graph.validate(), Severity.WARNING)


class TestLimits:
    """Tests for size limits."""

    def test_node_limit(self, settings, graph):
        """Exceeding the node limit is an error."""
        settings.builder.max_nodes_per_flow = 2
        graph.add_node("message", node_id="a")
        graph.add_node("message", node_id="b")
        graph.connect("start", None, "a")
        graph.connect("a", None, "b")
        report = FlowValidator(settings=settings).validate(graph.flow)
        assert _codes(report) == [IssueCode.LIMIT_EXCEEDED]
