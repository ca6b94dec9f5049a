"""
Node Type Definitions.

Complete definitions for all node types available in the flow builder.
"""

from ..config import NodeCategory, NodeType, PortStrategy
from ..models import NodeDefinition
from .schemas import (
    AssignData,
    ButtonsData,
    CarouselData,
    ClassifierData,
    CloseConversationData,
    CodeData,
    ConditionData,
    CsatData,
    EndData,
    EntryData,
    HttpData,
    InputFormData,
    LlmData,
    MessageData,
    NoteData,
    QuickInputData,
    SelectData,
    SetAttributeData,
    StartFlowData,
    TagData,
    WaitData,
)


# =============================================================================
# Entry Nodes
# =============================================================================

ENTRY_NODES = [
    NodeDefinition(
        type=NodeType.START,
        category=NodeCategory.TRIGGER,
        name="Start",
        description="Entry point of the flow",
        icon="play",
        data_model=EntryData,
        accepts_input=False,
    ),
    NodeDefinition(
        type=NodeType.TRIGGER,
        category=NodeCategory.TRIGGER,
        name="Trigger",
        description="Starts the flow on a widget event or matching visitor message",
        icon="zap",
        data_model=EntryData,
        accepts_input=False,
    ),
]


# =============================================================================
# Messaging & Interactive Nodes
# =============================================================================

MESSAGE_NODES = [
    NodeDefinition(
        type=NodeType.MESSAGE,
        category=NodeCategory.MESSAGE,
        name="Message",
        description="Send a bot message (supports {{variables}})",
        icon="message-square",
        data_model=MessageData,
    ),
]

INTERACTIVE_NODES = [
    NodeDefinition(
        type=NodeType.BUTTONS,
        category=NodeCategory.INTERACTIVE,
        name="Buttons",
        description="Ask the visitor to pick one of several buttons",
        icon="mouse-pointer-click",
        data_model=ButtonsData,
        port_strategy=PortStrategy.BUTTONS,
    ),
    NodeDefinition(
        type=NodeType.SELECT,
        category=NodeCategory.INTERACTIVE,
        name="Select",
        description="Ask the visitor to pick an option from a dropdown",
        icon="list",
        data_model=SelectData,
        port_strategy=PortStrategy.OPTIONS,
    ),
    NodeDefinition(
        type=NodeType.CAROUSEL,
        category=NodeCategory.INTERACTIVE,
        name="Carousel",
        description="Show a horizontally scrollable set of cards",
        icon="gallery-horizontal",
        data_model=CarouselData,
    ),
    NodeDefinition(
        type=NodeType.INPUT_FORM,
        category=NodeCategory.INTERACTIVE,
        name="Input Form",
        description="Collect several named fields from the visitor",
        icon="file-text",
        data_model=InputFormData,
    ),
    NodeDefinition(
        type=NodeType.QUICK_INPUT,
        category=NodeCategory.INTERACTIVE,
        name="Quick Input",
        description="Collect a single value into a flow variable",
        icon="pencil",
        data_model=QuickInputData,
    ),
]


# =============================================================================
# AI Nodes
# =============================================================================

AI_NODES = [
    NodeDefinition(
        type=NodeType.AI,
        category=NodeCategory.AI,
        name="AI Agent",
        description="Let the AI reply, optionally routing by question class",
        icon="bot",
        data_model=ClassifierData,
        port_strategy=PortStrategy.CLASSES,
    ),
    NodeDefinition(
        type=NodeType.QUESTION_CLASSIFIER,
        category=NodeCategory.AI,
        name="Question Classifier",
        description="Route the conversation by the class of the visitor's question",
        icon="split",
        data_model=ClassifierData,
        port_strategy=PortStrategy.CLASSES,
    ),
    NodeDefinition(
        type=NodeType.LLM,
        category=NodeCategory.AI,
        name="LLM",
        description="Run a prompt against a language model",
        icon="sparkles",
        data_model=LlmData,
    ),
]


# =============================================================================
# Logic Nodes
# =============================================================================

LOGIC_NODES = [
    NodeDefinition(
        type=NodeType.CONDITION,
        category=NodeCategory.LOGIC,
        name="If / Else",
        description="Branch on conversation, contact or custom attributes",
        icon="git-branch",
        data_model=ConditionData,
        port_strategy=PortStrategy.CONDITION,
    ),
    NodeDefinition(
        type=NodeType.WAIT,
        category=NodeCategory.LOGIC,
        name="Wait",
        description="Pause the flow for a duration",
        icon="clock",
        data_model=WaitData,
    ),
    NodeDefinition(
        type=NodeType.START_FLOW,
        category=NodeCategory.LOGIC,
        name="Start Flow",
        description="Invoke another flow with bound input variables",
        icon="workflow",
        data_model=StartFlowData,
    ),
    NodeDefinition(
        type=NodeType.END,
        category=NodeCategory.LOGIC,
        name="End",
        description="Stop the flow, close the conversation or hand over to a human",
        icon="square",
        data_model=EndData,
    ),
]


# =============================================================================
# Conversation Action Nodes
# =============================================================================

ACTION_NODES = [
    NodeDefinition(
        type=NodeType.ASSIGN,
        category=NodeCategory.ACTION,
        name="Assign",
        description="Assign the conversation to a team or agent",
        icon="user-plus",
        data_model=AssignData,
    ),
    NodeDefinition(
        type=NodeType.CLOSE_CONVERSATION,
        category=NodeCategory.ACTION,
        name="Close Conversation",
        description="Close the conversation, optionally asking for a rating",
        icon="x-circle",
        data_model=CloseConversationData,
    ),
    NodeDefinition(
        type=NodeType.CSAT,
        category=NodeCategory.ACTION,
        name="CSAT Rating",
        description="Ask the visitor to rate the conversation",
        icon="star",
        data_model=CsatData,
    ),
    NodeDefinition(
        type=NodeType.TAG,
        category=NodeCategory.ACTION,
        name="Tag",
        description="Add or remove conversation tags",
        icon="tag",
        data_model=TagData,
    ),
    NodeDefinition(
        type=NodeType.SET_ATTRIBUTE,
        category=NodeCategory.ACTION,
        name="Set Attribute",
        description="Write a contact or conversation custom attribute",
        icon="hash",
        data_model=SetAttributeData,
    ),
    NodeDefinition(
        type=NodeType.NOTE,
        category=NodeCategory.ACTION,
        name="Note",
        description="Leave a private note for agents",
        icon="sticky-note",
        data_model=NoteData,
    ),
]


# =============================================================================
# Integration Nodes
# =============================================================================

INTEGRATION_NODES = [
    NodeDefinition(
        type=NodeType.WEBHOOK,
        category=NodeCategory.INTEGRATION,
        name="Webhook",
        description="Fire-and-forget request to an external URL",
        icon="send",
        data_model=HttpData,
    ),
    NodeDefinition(
        type=NodeType.HTTP,
        category=NodeCategory.INTEGRATION,
        name="HTTP Request",
        description="Call an external HTTP endpoint",
        icon="globe",
        data_model=HttpData,
    ),
    NodeDefinition(
        type=NodeType.CODE,
        category=NodeCategory.INTEGRATION,
        name="Code",
        description="Run a code snippet in the execution runtime",
        icon="code",
        data_model=CodeData,
    ),
]


ALL_NODES = (
    ENTRY_NODES
    + MESSAGE_NODES
    + INTERACTIVE_NODES
    + AI_NODES
    + LOGIC_NODES
    + ACTION_NODES
    + INTEGRATION_NODES
)
