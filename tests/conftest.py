"""Shared pytest fixtures for testing."""

import pytest

from support_flows.attributes import AttributeRegistry
from support_flows.canvas import FlowCatalog, FlowGraph
from support_flows.config import AttributeModel, Settings
from support_flows.models import AttributeDefinition, FlowDefinition, InputVariable
from support_flows.nodes import get_node_registry


# =============================================================================
# Registry Fixtures
# =============================================================================


@pytest.fixture
def registry():
    """Node type registry."""
    return get_node_registry()


@pytest.fixture
def attributes():
    """Custom attributes of a sample tenant."""
    return AttributeRegistry(
        [
            AttributeDefinition(
                id="attr_1",
                display_name="Plan",
                key="plan",
                attribute_model=AttributeModel.CONTACT,
            ),
            AttributeDefinition(
                id="attr_2",
                display_name="Order Total",
                key="order_total",
                attribute_model=AttributeModel.CONVERSATION,
            ),
        ]
    )


@pytest.fixture
def settings():
    """Default settings, independent of the environment cache."""
    return Settings()


# =============================================================================
# Flow Fixtures
# =============================================================================


@pytest.fixture
def empty_flow():
    """Flow without nodes."""
    return FlowDefinition(id="flow_main", name="Main")


@pytest.fixture
def graph(empty_flow, attributes):
    """Graph with a start node."""
    graph = FlowGraph(empty_flow, attributes=attributes)
    graph.add_node("start", {"x": 0, "y": 0}, node_id="start")
    return graph


@pytest.fixture
def order_flow():
    """Flow with one required input variable."""
    return FlowDefinition(
        id="flow_order",
        name="Order Status",
        input_variables=[
            InputVariable(key="order_id", label="Order ID", required=True),
            InputVariable(key="note", label="", required=False),
        ],
    )


@pytest.fixture
def catalog(attributes):
    """Empty flow catalog."""
    return FlowCatalog(attributes=attributes)


@pytest.fixture
def sample_document():
    """Persisted flow document as the builder saves it."""
    return {
        "id": "flow_welcome",
        "name": "Welcome",
        "description": "Greets new visitors",
        "enabled": True,
        "aiTool": False,
        "aiToolDescription": "",
        "inputVariables": [{"key": "topic", "label": "Topic", "required": False}],
        "nodes": [
            {
                "id": "start",
                "type": "start",
                "position": {"x": 0, "y": 0},
                "data": {"on": "widget_open"},
            },
            {
                "id": "greet",
                "type": "message",
                "position": {"x": 0, "y": 120},
                "data": {"text": "Hi {{contact.name}}, about {{topic}}?"},
            },
            {
                "id": "menu",
                "type": "buttons",
                "position": {"x": 0, "y": 240},
                "data": {"text": "Pick one", "buttons": ["Sales", "Support"]},
            },
            {
                "id": "check",
                "type": "condition",
                "position": {"x": 200, "y": 360},
                "data": {
                    "rules": [
                        {"attribute": "message", "operator": "contains", "value": "refund"}
                    ],
                    "logicOperator": "and",
                    "outputs": [],
                },
            },
            {
                "id": "bye",
                "type": "end",
                "position": {"x": 0, "y": 480},
                "data": {"behavior": "close"},
            },
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "greet", "sourceHandle": None},
            {"id": "e2", "source": "greet", "target": "menu"},
            {"id": "e3", "source": "menu", "target": "check", "sourceHandle": "btn-1"},
            {"id": "e4", "source": "check", "target": "bye", "sourceHandle": "else"},
        ],
    }
