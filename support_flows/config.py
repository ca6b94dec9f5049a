"""
Configuration for the Flow graph core.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NodeCategory(str, Enum):
    """Node category types."""

    TRIGGER = "trigger"
    MESSAGE = "message"
    INTERACTIVE = "interactive"
    AI = "ai"
    LOGIC = "logic"
    ACTION = "action"
    INTEGRATION = "integration"


class NodeType(str, Enum):
    """Available node types."""

    # Entry points
    START = "start"
    TRIGGER = "trigger"

    # Messaging
    MESSAGE = "message"

    # Interactive
    BUTTONS = "buttons"
    SELECT = "select"
    CAROUSEL = "carousel"
    INPUT_FORM = "input_form"
    QUICK_INPUT = "quick_input"

    # AI
    AI = "ai"
    QUESTION_CLASSIFIER = "question_classifier"
    LLM = "llm"

    # Logic
    CONDITION = "condition"
    WAIT = "wait"
    START_FLOW = "start_flow"
    END = "end"

    # Conversation actions
    ASSIGN = "assign"
    CLOSE_CONVERSATION = "close_conversation"
    CSAT = "csat"
    TAG = "tag"
    SET_ATTRIBUTE = "set_attribute"
    NOTE = "note"

    # Integrations
    WEBHOOK = "webhook"
    HTTP = "http"
    CODE = "code"


# Tags as persisted on nodes.
ENTRY_NODE_TYPES = frozenset({NodeType.START.value, NodeType.TRIGGER.value})


class PortStrategy(str, Enum):
    """How a node type derives its output ports from its data."""

    SINGLE = "single"
    CONDITION = "condition"
    CLASSES = "classes"
    BUTTONS = "buttons"
    OPTIONS = "options"


class AttributeModel(str, Enum):
    """Entity a custom attribute is attached to."""

    CONTACT = "contact"
    CONVERSATION = "conversation"


class LogicOperator(str, Enum):
    """Combinator applied across all rules of a condition node."""

    AND = "and"
    OR = "or"


class ConditionOperator(str, Enum):
    """Comparison operators available to condition rules."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class TriggerEvent(str, Enum):
    """Events a start/trigger node can fire on."""

    PAGE_OPEN = "page_open"
    WIDGET_OPEN = "widget_open"
    FIRST_MESSAGE = "first_message"
    ANY_MESSAGE = "any_message"
    VISITOR_MESSAGE = "visitor_message"


class EndBehavior(str, Enum):
    """What an end node does to the conversation."""

    CLOSE = "close"
    HANDOVER = "handover"
    STOP = "stop"


class Severity(str, Enum):
    """Validation issue severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCode(str, Enum):
    """Machine-readable validation issue codes."""

    UNKNOWN_NODE_TYPE = "UnknownNodeType"
    INVALID_NODE_DATA = "InvalidNodeData"
    INVALID_PORT = "InvalidPort"
    SELF_LOOP = "SelfLoop"
    DANGLING_EDGE = "DanglingEdge"
    INBOUND_ON_ENTRY = "InboundOnEntry"
    MULTIPLE_INBOUND = "MultipleInbound"
    DUPLICATE_ID = "DuplicateId"
    MISSING_ENTRY = "MissingEntry"
    MULTIPLE_ENTRIES = "MultipleEntries"
    UNREACHABLE_NODE = "UnreachableNode"
    UNKNOWN_SUBFLOW = "UnknownSubflow"
    UNBOUND_REQUIRED_INPUT = "UnboundRequiredInput"
    UNDECLARED_BINDING = "UndeclaredBinding"
    RECURSIVE_SUBFLOW = "RecursiveSubflow"
    UNKNOWN_VARIABLE = "UnknownVariable"
    UNKNOWN_ATTRIBUTE = "UnknownAttribute"
    LIMIT_EXCEEDED = "LimitExceeded"


class BuilderConfig(BaseSettings):
    """Graph editing limits."""

    model_config = SettingsConfigDict(env_prefix="BUILDER_")

    max_nodes_per_flow: int = Field(default=500, description="Max nodes per flow")
    max_edges_per_flow: int = Field(default=2000, description="Max edges per flow")


class ValidationConfig(BaseSettings):
    """Validation behaviour."""

    model_config = SettingsConfigDict(env_prefix="VALIDATION_")

    warn_unreachable: bool = Field(default=True, description="Report unreachable nodes")
    warn_unknown_variables: bool = Field(
        default=True, description="Report unresolvable {{tokens}}"
    )
    require_entry_for_publish: bool = Field(
        default=True, description="Publishing requires exactly one start/trigger node"
    )


class ConditionConfig(BaseSettings):
    """Condition rule semantics handed to the execution runtime."""

    model_config = SettingsConfigDict(env_prefix="CONDITION_")

    case_sensitive: bool = Field(
        default=True, description="Compare strings case-sensitively"
    )


class Settings(BaseSettings):
    """Main settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="support-flows", description="Service name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="info", description="Log level")

    builder: BuilderConfig = Field(default_factory=BuilderConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    condition: ConditionConfig = Field(default_factory=ConditionConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
