"""
Trigger matching.

Decides whether a flow should start for a widget event or visitor message,
from the ``on`` event and ``keywords`` of its first start/trigger node.
"""

from typing import Optional, Union

from .config import ENTRY_NODE_TYPES, TriggerEvent
from .models import FlowDefinition, Node


def entry_node(flow: FlowDefinition) -> Optional[Node]:
    """First start/trigger node of a flow, in canvas order."""
    return next(
        (
            n
            for n in flow.nodes
            if n.type in ENTRY_NODE_TYPES
        ),
        None,
    )


def _event_matches(trigger_on: str, event: TriggerEvent, first_message: bool) -> bool:
    if trigger_on == TriggerEvent.PAGE_OPEN.value:
        return event == TriggerEvent.PAGE_OPEN
    if trigger_on == TriggerEvent.WIDGET_OPEN.value:
        return event == TriggerEvent.WIDGET_OPEN
    if trigger_on == TriggerEvent.FIRST_MESSAGE.value:
        return event == TriggerEvent.VISITOR_MESSAGE and first_message
    return event == TriggerEvent.VISITOR_MESSAGE


def trigger_matches(
    flow: FlowDefinition,
    text: str = "",
    event: Union[TriggerEvent, str] = TriggerEvent.VISITOR_MESSAGE,
    first_message: bool = False,
) -> bool:
    """
    Whether ``flow`` starts for this event.

    Flows without an entry node only start on visitor messages. For visitor
    messages a non-empty keyword list requires one keyword to appear in the
    text, ignoring case.
    """
    event = TriggerEvent(event)
    node = entry_node(flow)
    if node is None:
        return event == TriggerEvent.VISITOR_MESSAGE

    data = node.data if isinstance(node.data, dict) else {}
    trigger_on = str(data.get("on") or TriggerEvent.WIDGET_OPEN.value).lower()
    if not _event_matches(trigger_on, event, first_message):
        return False

    if event != TriggerEvent.VISITOR_MESSAGE:
        return True

    keywords = data.get("keywords")
    if not isinstance(keywords, list) or not keywords:
        return True

    lowered = (text or "").lower()
    needles = [k.strip().lower() for k in keywords if isinstance(k, str)]
    return any(needle and needle in lowered for needle in needles)


__all__ = ["entry_node", "trigger_matches"]
