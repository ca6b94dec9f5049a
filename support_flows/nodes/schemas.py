"""
Node Data Schemas.

One pydantic model per node type. Field names are exposed under the camelCase
keys the builder persists (``logicOperator``, ``variableBindings`` ...).
Unknown keys are kept so that the data bag round-trips untouched.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import AttributeModel, ConditionOperator, EndBehavior, LogicOperator


class NodeData(BaseModel):
    """Base for all node data bags."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    label: Optional[str] = None


# Buttons, options and carousel entries are either plain strings or
# {"label": ..., "value": ...} objects.
Choice = Union[str, Dict[str, Any]]


# =============================================================================
# Entry Nodes
# =============================================================================


class EntryData(NodeData):
    """start / trigger."""

    on: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    fields: List[Dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# Messaging & Interactive Nodes
# =============================================================================


class MessageData(NodeData):
    text: str = ""
    delay_ms: Optional[int] = None


class ButtonsData(NodeData):
    text: str = ""
    buttons: List[Choice] = Field(default_factory=list)


class SelectData(NodeData):
    text: str = ""
    options: List[Choice] = Field(default_factory=list)


class CarouselData(NodeData):
    text: str = ""
    items: List[Dict[str, Any]] = Field(default_factory=list)


class InputFormData(NodeData):
    text: str = ""
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    submit_label: str = "Submit"


class QuickInputData(NodeData):
    text: str = ""
    placeholder: str = ""
    input_type: str = "text"
    variable_name: str = ""


# =============================================================================
# AI Nodes
# =============================================================================


class ClassifierData(NodeData):
    """ai / question_classifier."""

    prompt: str = ""
    classes: List[str] = Field(default_factory=list)


class LlmData(NodeData):
    prompt: str = ""
    model: Optional[str] = None


# =============================================================================
# Logic Nodes
# =============================================================================


class ConditionRule(BaseModel):
    """Single comparison inside a condition node."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    attribute: str = "message"
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: str = ""
    attribute_key: Optional[str] = None


class ConditionData(NodeData):
    rules: List[ConditionRule] = Field(default_factory=list)
    logic_operator: LogicOperator = LogicOperator.AND
    outputs: List[str] = Field(default_factory=list)


class WaitData(NodeData):
    duration: int = 60
    unit: str = "seconds"


class StartFlowData(NodeData):
    flow_id: str = ""
    variable_bindings: Dict[str, str] = Field(default_factory=dict)
    ai_collect_inputs: bool = False


class EndData(NodeData):
    behavior: EndBehavior = EndBehavior.STOP
    close_message: str = ""
    handover_message: str = ""


# =============================================================================
# Conversation Action Nodes
# =============================================================================


class AssignData(NodeData):
    assign_to: Literal["team", "agent"] = "team"
    team_name: str = ""
    agent_email: str = ""
    message: str = ""


class CloseConversationData(NodeData):
    message: str = ""
    send_csat: bool = False


class CsatData(NodeData):
    text: str = ""


class TagData(NodeData):
    action: Literal["add", "remove"] = "add"
    tags: List[str] = Field(default_factory=list)


class SetAttributeData(NodeData):
    target: AttributeModel = AttributeModel.CONTACT
    attribute_name: str = ""
    attribute_value: str = ""


class NoteData(NodeData):
    text: str = ""


# =============================================================================
# Integration Nodes
# =============================================================================


class HttpData(NodeData):
    """webhook / http."""

    url: str = ""
    method: str = "POST"
    headers: Union[Dict[str, str], str] = Field(default_factory=dict)
    body: str = ""


class CodeData(NodeData):
    code: str = ""


__all__ = [
    "NodeData",
    "Choice",
    "EntryData",
    "MessageData",
    "ButtonsData",
    "SelectData",
    "CarouselData",
    "InputFormData",
    "QuickInputData",
    "ClassifierData",
    "LlmData",
    "ConditionRule",
    "ConditionData",
    "WaitData",
    "StartFlowData",
    "EndData",
    "AssignData",
    "CloseConversationData",
    "CsatData",
    "TagData",
    "SetAttributeData",
    "NoteData",
    "HttpData",
    "CodeData",
]
