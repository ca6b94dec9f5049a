"""Unit tests for sub-flow invocation."""

from support_flows.subflows import missing_required_inputs, plan_invocation


class TestPlanInvocation:
    """Tests for plan_invocation."""

    def test_bindings_resolve_in_caller_scope(self, order_flow):
        """Templates are filled from the caller's values."""
        invocation = plan_invocation(
            {"flowId": "flow_order", "variableBindings": {"order_id": "#{{ref}}"}},
            order_flow,
            {"ref": "A-17"},
        )
        assert invocation.flow_id == "flow_order"
        assert invocation.bindings == {"order_id": "#A-17"}
        assert invocation.missing == []
        assert invocation.escalate is False

    def test_unbound_caller_values_are_carried(self, order_flow):
        """Caller variables travel to the sub-flow unless rebound."""
        invocation = plan_invocation(
            {"variableBindings": {"order_id": "42"}},
            order_flow,
            {"order_id": "7", "email": "a@b.c", "count": 3},
        )
        assert invocation.carried == {"email": "a@b.c", "count": "3"}
        assert invocation.variables == {"email": "a@b.c", "count": "3", "order_id": "42"}

    def test_carried_value_satisfies_requirement(self, order_flow):
        """A carried caller variable can fill a required input."""
        invocation = plan_invocation({}, order_flow, {"order_id": "7"})
        assert invocation.missing == []

    def test_unresolved_token_is_missing(self, order_flow):
        """Tokens without a value resolve blank and count as missing."""
        invocation = plan_invocation(
            {"variableBindings": {"order_id": "{{ref}}"}, "aiCollectInputs": False},
            order_flow,
        )
        assert invocation.bindings == {"order_id": ""}
        assert invocation.missing_labels == ["Order ID"]
        assert invocation.escalate is False

    def test_escalates_when_ai_collects(self, order_flow):
        """Missing inputs with aiCollectInputs pause for the visitor."""
        invocation = plan_invocation(
            {"variableBindings": {"order_id": "  "}, "aiCollectInputs": True},
            order_flow,
        )
        assert invocation.escalate is True
        assert invocation.to_dict() == {
            "flow_id": "flow_order",
            "variables": {"order_id": "  "},
            "missing": ["Order ID"],
            "escalate": True,
        }


class TestMissingRequiredInputs:
    """Tests for missing_required_inputs."""

    def test_only_required_inputs(self, order_flow):
        """Optional inputs never count as missing."""
        missing = missing_required_inputs(order_flow, {"note": ""})
        assert [v.key for v in missing] == ["order_id"]

    def test_label_falls_back_to_key(self, order_flow):
        """Inputs without a label display their key."""
        assert order_flow.input_variables[1].display_name == "note"
