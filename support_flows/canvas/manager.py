"""
Flow Catalog.

In-memory store of the tenant's flow definitions. Resolves start_flow
targets during validation, duplicates flows and gates publishing on a clean
validation report.
"""

import copy
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..attributes import AttributeRegistry
from ..config import NodeType, Settings, TriggerEvent, get_settings
from ..errors import FlowError, FlowNotFound, PublishBlocked
from ..models import (
    Edge,
    FlowDefinition,
    InputVariable,
    Node,
    Position,
    ValidationReport,
)
from ..nodes import NodeRegistry, get_node_registry
from ..triggers import trigger_matches
from .graph import FlowGraph
from .loader import LoadResult, load_flow
from .validator import FlowValidator

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.utcnow().isoformat()


class FlowCatalog:
    """
    Manages flow lifecycle and operations.

    Features:
    - Flow CRUD operations
    - Version counter and published snapshots
    - Duplication with fresh ids
    - Publish gated on validation
    """

    def __init__(
        self,
        registry: Optional[NodeRegistry] = None,
        attributes: Optional[AttributeRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the catalog."""
        self.settings = settings or get_settings()
        self.registry = registry or get_node_registry()
        self.attributes = attributes
        self.validator = FlowValidator(
            registry=self.registry, attributes=attributes, settings=self.settings
        )

        self._flows: Dict[str, FlowDefinition] = {}
        self._versions: Dict[str, int] = {}
        self._published: Dict[str, List[FlowDefinition]] = {}

    def __contains__(self, flow_id: str) -> bool:
        return flow_id in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    def create_flow(
        self,
        name: str,
        description: str = "",
        input_variables: Optional[List[InputVariable]] = None,
        flow_id: Optional[str] = None,
        with_start: bool = True,
    ) -> FlowDefinition:
        """
        Create a new flow.

        Args:
            name: Flow name
            description: Optional description
            input_variables: Declared inputs
            flow_id: Explicit id, generated when omitted
            with_start: Place a start node on the empty canvas

        Returns:
            Created FlowDefinition
        """
        flow_id = flow_id or str(uuid.uuid4())
        if flow_id in self._flows:
            raise FlowError(f"Flow already exists: {flow_id}")

        now = _now()
        flow = FlowDefinition(
            id=flow_id,
            name=name,
            description=description,
            input_variables=list(input_variables or []),
            created_at=now,
            updated_at=now,
        )
        if with_start:
            FlowGraph(flow, self.registry).add_node(
                NodeType.START, Position(x=250, y=50), node_id="start"
            )

        self._flows[flow_id] = flow
        self._versions[flow_id] = 1

        logger.info(f"Created flow: {flow_id} ({name})")
        return flow

    def add_flow(self, flow: FlowDefinition) -> FlowDefinition:
        """Store an existing definition, replacing any flow with its id."""
        self._flows[flow.id] = flow
        self._versions[flow.id] = self._versions.get(flow.id, 0) + 1
        return flow

    def load(self, raw: Union[Dict[str, Any], str, bytes]) -> LoadResult:
        """Load a persisted document into the catalog."""
        result = load_flow(raw, self.registry)
        self.add_flow(result.flow)
        logger.info(f"Loaded flow: {result.flow.id} ({result.flow.name})")
        return result

    def get_flow(self, flow_id: str) -> Optional[FlowDefinition]:
        """Get a flow by ID."""
        return self._flows.get(flow_id)

    def require_flow(self, flow_id: str) -> FlowDefinition:
        """
        Get a flow by ID.

        Raises:
            FlowNotFound: if the flow does not exist
        """
        flow = self._flows.get(flow_id)
        if flow is None:
            raise FlowNotFound(flow_id)
        return flow

    def version(self, flow_id: str) -> int:
        """Monotonic change counter of a flow."""
        self.require_flow(flow_id)
        return self._versions[flow_id]

    def list_flows(
        self,
        search: Optional[str] = None,
        enabled: Optional[bool] = None,
        ai_tool: Optional[bool] = None,
    ) -> List[FlowDefinition]:
        """List flows with filtering, sorted by name."""
        flows = list(self._flows.values())

        if enabled is not None:
            flows = [f for f in flows if f.enabled == enabled]

        if ai_tool is not None:
            flows = [f for f in flows if f.ai_tool == ai_tool]

        if search:
            search_lower = search.lower()
            flows = [
                f
                for f in flows
                if (
                    search_lower in f.name.lower()
                    or search_lower in f.description.lower()
                )
            ]

        flows.sort(key=lambda f: f.name.lower())
        return flows

    def ai_tools(self) -> List[FlowDefinition]:
        """Enabled flows an AI agent may call as tools."""
        return self.list_flows(enabled=True, ai_tool=True)

    def update_flow(self, flow_id: str, updates: Dict[str, Any]) -> FlowDefinition:
        """
        Update flow-level fields.

        Accepts the persisted camelCase keys. Graph edits go through graph().
        """
        flow = self.require_flow(flow_id)

        if "name" in updates:
            flow.name = str(updates["name"])

        if "description" in updates:
            flow.description = str(updates["description"] or "")

        if "enabled" in updates:
            flow.enabled = bool(updates["enabled"])

        if "aiTool" in updates:
            flow.ai_tool = bool(updates["aiTool"])

        if "aiToolDescription" in updates:
            flow.ai_tool_description = str(updates["aiToolDescription"] or "")

        if "inputVariables" in updates:
            FlowGraph(flow, self.registry).replace_input_variables(
                updates["inputVariables"]
            )

        self.touch(flow_id)
        logger.info(f"Updated flow: {flow_id} (v{self._versions[flow_id]})")
        return flow

    def touch(self, flow_id: str) -> int:
        """Record a change to a flow. Returns its new version."""
        flow = self.require_flow(flow_id)
        flow.updated_at = _now()
        self._versions[flow_id] += 1
        return self._versions[flow_id]

    def delete_flow(self, flow_id: str) -> bool:
        """Delete a flow."""
        if flow_id not in self._flows:
            return False

        del self._flows[flow_id]
        self._versions.pop(flow_id, None)
        self._published.pop(flow_id, None)

        logger.info(f"Deleted flow: {flow_id}")
        return True

    def graph(self, flow_id: str) -> FlowGraph:
        """
        Editable graph of a flow, resolving sub-flows through this catalog.

        Every mutation made through the graph bumps the flow's version.
        """
        return FlowGraph(
            self.require_flow(flow_id),
            registry=self.registry,
            flows=self.get_flow,
            attributes=self.attributes,
            on_change=lambda: self.touch(flow_id),
        )

    def validate_flow(self, flow_id: str) -> ValidationReport:
        """Validate a flow."""
        return self.validator.validate(self.require_flow(flow_id), self.get_flow)

    def publish(self, flow_id: str) -> ValidationReport:
        """
        Validate and publish a flow.

        Raises:
            FlowNotFound: if the flow does not exist
            PublishBlocked: if validation reports errors
        """
        report = self.validate_flow(flow_id)
        if not report.publishable:
            logger.info(
                f"Publish of flow {flow_id} blocked by {len(report.errors)} error(s)"
            )
            raise PublishBlocked(flow_id, report)

        self._published.setdefault(flow_id, []).append(
            copy.deepcopy(self._flows[flow_id])
        )
        version = self.touch(flow_id)
        logger.info(f"Published flow: {flow_id} (v{version})")
        return report

    def published(self, flow_id: str) -> Optional[FlowDefinition]:
        """Latest published snapshot of a flow."""
        snapshots = self._published.get(flow_id)
        return snapshots[-1] if snapshots else None

    def duplicate_flow(
        self, flow_id: str, new_name: Optional[str] = None
    ) -> FlowDefinition:
        """
        Duplicate a flow with fresh flow, node and edge ids.

        Raises:
            FlowNotFound: if the source does not exist
        """
        source = self.require_flow(flow_id)
        new_id = str(uuid.uuid4())
        now = _now()

        old_to_new = {
            n.id: f"{n.type}-{uuid.uuid4().hex[:8]}" for n in source.nodes
        }

        new_flow = FlowDefinition(
            id=new_id,
            name=new_name or f"{source.name} (Copy)",
            description=source.description,
            enabled=source.enabled,
            ai_tool=source.ai_tool,
            ai_tool_description=source.ai_tool_description,
            input_variables=[
                InputVariable(key=v.key, label=v.label, required=v.required)
                for v in source.input_variables
            ],
            nodes=[
                Node(
                    id=old_to_new[n.id],
                    type=n.type,
                    position=Position(x=n.position.x, y=n.position.y),
                    data=copy.deepcopy(n.data),
                )
                for n in source.nodes
            ],
            edges=[
                Edge(
                    id=f"edge-{uuid.uuid4().hex[:12]}",
                    source=old_to_new.get(e.source, e.source),
                    target=old_to_new.get(e.target, e.target),
                    source_handle=e.source_handle,
                    target_handle=e.target_handle,
                    data=copy.deepcopy(e.data),
                )
                for e in source.edges
            ],
            created_at=now,
            updated_at=now,
        )

        self._flows[new_id] = new_flow
        self._versions[new_id] = 1

        logger.info(f"Duplicated flow: {flow_id} -> {new_id}")
        return new_flow

    def match_triggers(
        self,
        text: str = "",
        event: Union[TriggerEvent, str] = TriggerEvent.VISITOR_MESSAGE,
        first_message: bool = False,
    ) -> List[FlowDefinition]:
        """Enabled flows whose entry node fires for this event."""
        return [
            f
            for f in self.list_flows(enabled=True)
            if trigger_matches(f, text, event, first_message)
        ]


__all__ = ["FlowCatalog"]
