"""
Graph <-> domain mapping.

``to_graph`` turns persisted journey nodes into editable canvas nodes: the
display subtype is inferred, the catalog fills missing display values, typed
configurations are attached and display hints are computed. ``to_domain``
goes the other way; trigger nodes are re-normalized on the way back, their
execution payload is derived from the canonical configuration and the legacy
mirror is regenerated into the node's meta bag.

Both directions are total. A graph node that cannot be mapped degrades to a
generic action node instead of failing the whole journey.
"""

from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from journey_builder.core.logging import get_logger
from journey_builder.models.delay_config import DelayConfiguration, DelayType
from journey_builder.models.experiment_config import ExperimentConfiguration
from journey_builder.models.goal_config import ConditionConfiguration
from journey_builder.models.graph import DisplayHints, GraphEdge, GraphNode, GraphNodeData, JourneyGraph, NodeVariant
from journey_builder.models.journey import (
    ActionNode,
    ActionPayload,
    BaseJourneyNode,
    ConditionArgs,
    ConditionNode,
    ConditionPayload,
    DelayNode,
    DelayPayload,
    ExitNode,
    GoalNode,
    GoalPayload,
    Journey,
    JourneyEdge,
    JourneyNode,
    NodeType,
    TriggerNode,
    TriggerPayload,
)
from journey_builder.models.trigger_config import TriggerCategory, TriggerConfiguration
from journey_builder.services.mapping.catalog import find_catalog_entry
from journey_builder.services.mapping.edge_labels import rederive_edge_labels
from journey_builder.services.normalization import (
    condition_config_from_meta,
    condition_config_or_default,
    derive_payload,
    experiment_config_or_default,
    fixed_delay_config,
    goal_config_or_none,
    normalize,
    parse_action_payload,
    parse_delay_config,
    to_legacy_mirror,
    validate_experiment,
)
from journey_builder.services.summaries import (
    summarize_action,
    summarize_condition,
    summarize_delay,
    summarize_experiment,
    summarize_goal,
    summarize_trigger,
)
from journey_builder.utils.coercion import as_int, as_number, as_str, one_of
from journey_builder.utils.constants import (
    ACTION_KIND_SUBTYPES,
    DELAY_TYPE_SUBTYPES,
    DELAY_UNITS,
    EXIT_META_KEY,
    EXIT_SUBTYPE,
    EXPERIMENT_SUBTYPE,
    LEGACY_SUBTYPE_CATEGORIES,
    LOG_CONTEXT_NODE_ID,
    TRIGGER_TYPE_TO_SUBTYPE,
)

logger = get_logger(__name__)

# Trigger payload fields that the canonical configuration does not model
TRIGGER_PAYLOAD_EXTRAS = ("tag", "productId", "hours", "webhookEvent")

HINT_STATUSES = ("draft", "active")


def infer_subtype(node: BaseJourneyNode) -> str:
    """Display subtype: the explicit one, else derived from the node's payload."""
    if node.subtype:
        return node.subtype
    if isinstance(node, TriggerNode):
        if node.triggerConfiguration is not None:
            return derive_payload(node.triggerConfiguration)[1]
        return TRIGGER_TYPE_TO_SUBTYPE.get(node.trigger.type, "manual_entry")
    if isinstance(node, ActionNode):
        return ACTION_KIND_SUBTYPES.get(node.action.kind, "send_whatsapp")
    if isinstance(node, DelayNode):
        if node.delay.config is not None:
            return DELAY_TYPE_SUBTYPES.get(node.delay.config.delayType, "fixed_delay")
        return "fixed_delay"
    if isinstance(node, ConditionNode):
        if node.experiment is not None and node.condition is None:
            return EXPERIMENT_SUBTYPE
        return node.condition.kind if node.condition else "if_else"
    if isinstance(node, ExitNode):
        return EXIT_SUBTYPE
    return "goal_achieved"


def variant_for(node_type: str, subtype: Optional[str]) -> str:
    """Canvas variant for a domain node type and display subtype."""
    if node_type == NodeType.TRIGGER.value:
        return NodeVariant.TRIGGER.value
    if node_type == NodeType.CONDITION.value:
        return NodeVariant.EXPERIMENT.value if subtype == EXPERIMENT_SUBTYPE else NodeVariant.DECISION.value
    if node_type == NodeType.DELAY.value:
        return NodeVariant.WAIT.value
    if node_type in (NodeType.GOAL.value, NodeType.EXIT.value):
        return NodeVariant.GOAL.value
    return NodeVariant.ACTION.value


# Triggers
def trigger_source(node: TriggerNode) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Flat trigger record and fallback subtype for a node without a canonical
    configuration. Meta values win over values read from the payload.
    """
    payload = node.trigger
    source: Dict[str, Any] = {}
    if payload.segmentId:
        source["segmentId"] = payload.segmentId
    payload_data = payload.data or {}
    for key, target in (("shopifyEvent", "shopifyEvent"), ("timeBased", "timeBased"), ("manual", "manualTrigger")):
        if isinstance(payload_data.get(key), dict):
            source[target] = deepcopy(payload_data[key])
    source.update(deepcopy(node.data))

    if node.subtype in LEGACY_SUBTYPE_CATEGORIES:
        return source, node.subtype
    return source, TRIGGER_TYPE_TO_SUBTYPE.get(payload.type)


def canonical_trigger(node: TriggerNode) -> TriggerConfiguration:
    """The node's canonical configuration, rebuilt from legacy data when absent."""
    if node.triggerConfiguration is not None:
        return node.triggerConfiguration.model_copy(deep=True)
    source, fallback = trigger_source(node)
    return normalize(source, fallback_subtype=fallback)


def _trigger_configured(config: TriggerConfiguration) -> bool:
    if config.category == TriggerCategory.SEGMENT.value:
        return bool(config.segment.segmentId)
    if config.category == TriggerCategory.TIME_BASED.value:
        schedule = config.timeBased
        if schedule.type == "specific_datetime":
            return bool(schedule.startsAt)
        if schedule.type == "attribute_date":
            return bool(schedule.attributeKey)
    return True


def _carry_payload_extras(payload: TriggerPayload, previous: Optional[TriggerPayload]) -> TriggerPayload:
    if previous is None or previous.type != payload.type:
        return payload
    extras = {
        key: getattr(previous, key) for key in TRIGGER_PAYLOAD_EXTRAS if getattr(previous, key) is not None
    }
    return payload.model_copy(update=extras) if extras else payload


# Conditions and delays
def condition_config_from_payload(payload: Optional[ConditionPayload]) -> ConditionConfiguration:
    if payload is None:
        return ConditionConfiguration()
    return condition_config_or_default({
        "conditionType": payload.kind,
        "join": payload.args.join,
        "conditions": payload.args.conditions,
        "trueLabel": payload.args.trueLabel,
        "falseLabel": payload.args.falseLabel,
    })


def condition_payload_from_config(config: ConditionConfiguration) -> ConditionPayload:
    return ConditionPayload(
        kind=config.conditionType,
        args=ConditionArgs(
            join=config.join,
            conditions=deepcopy(config.conditions),
            trueLabel=config.trueLabel,
            falseLabel=config.falseLabel,
        ),
    )


def delay_unit_value(config: DelayConfiguration, meta: Dict[str, Any]) -> Tuple[str, Any]:
    """
    Legacy ``(unit, value)`` for a delay.

    Fixed delays take them from the canonical duration (weeks become days);
    other delay types keep the values stashed in meta.
    """
    if config.delayType == DelayType.FIXED_TIME.value:
        duration = config.specificConfig.duration
        if duration.unit == "weeks":
            return "days", duration.value * 7
        return duration.unit, duration.value
    return one_of(meta.get("unit"), DELAY_UNITS, "hours"), as_number(meta.get("duration"), 24)


# Domain -> graph
def to_graph_node(node: BaseJourneyNode) -> GraphNode:
    subtype = infer_subtype(node)
    variant = variant_for(node.type, subtype)
    entry = find_catalog_entry(subtype)
    meta = deepcopy(node.data)

    fields: Dict[str, Any] = {
        "label": node.name or (entry.name if entry else None) or "Node",
        "description": node.description if node.description is not None else (entry.description if entry else None),
        "variant": variant,
        "subtype": subtype,
        "icon": entry.icon if entry else None,
    }
    hints = DisplayHints()

    if isinstance(node, TriggerNode):
        config = canonical_trigger(node)
        fields["triggerConfig"] = config
        fields["trigger"] = node.trigger.model_copy(deep=True)
        hints.summary = summarize_trigger(config)
        hints.isConfigured = _trigger_configured(config)
        status = meta.get("status")
        hints.status = status if status in HINT_STATUSES else None
        hints.userCount = as_int(meta.get("userCount"))

    elif isinstance(node, ActionNode):
        fields["action"] = node.action.model_copy(deep=True)
        hints.summary = summarize_action(node.action)
        hints.isConfigured = node.action.kind != "whatsapp_template" or bool(node.action.templateName.strip())

    elif isinstance(node, DelayNode):
        config = node.delay.config
        if config is None:
            config = fixed_delay_config(node.delay.value, node.delay.unit)
        else:
            config = config.model_copy(deep=True)
        if config.delayType != DelayType.FIXED_TIME.value:
            meta["unit"] = node.delay.unit
            meta["duration"] = node.delay.value
        fields["delayConfig"] = config
        hints.summary = summarize_delay(config)
        hints.isConfigured = True

    elif isinstance(node, ConditionNode) and variant == NodeVariant.EXPERIMENT.value:
        config = node.experiment.model_copy(deep=True) if node.experiment else ExperimentConfiguration()
        fields["experimentConfig"] = config
        hints.summary = summarize_experiment(config)
        hints.isConfigured = not validate_experiment(config)

    elif isinstance(node, ConditionNode):
        if node.condition is not None:
            config = condition_config_from_payload(node.condition)
        else:
            config = condition_config_from_meta(meta) or ConditionConfiguration()
        fields["conditionConfig"] = config
        hints.summary = summarize_condition(config)
        hints.isConfigured = bool(config.conditions)

    elif isinstance(node, GoalNode):
        config = node.goal.config.model_copy(deep=True) if node.goal.config else None
        if config is None and node.goal.description is not None:
            meta["goalDescription"] = node.goal.description
        fields["goalConfig"] = config
        hints.summary = summarize_goal(config)
        hints.isConfigured = config is not None

    else:
        meta[EXIT_META_KEY] = True
        hints.summary = "Exit journey"
        hints.isConfigured = True

    fields["hints"] = hints
    fields["meta"] = meta
    return GraphNode(id=node.id, position=node.position.model_copy(), data=GraphNodeData(**fields))


def to_graph(journey: Journey) -> JourneyGraph:
    """
    Build the editable graph for a journey.

    Edges whose endpoints do not exist are dropped and all edge labels are
    re-derived from the source nodes.
    """
    nodes = [to_graph_node(node) for node in journey.nodes]
    node_ids = {node.id for node in nodes}
    edges = [
        GraphEdge(**edge.model_dump())
        for edge in journey.edges
        if edge.source in node_ids and edge.target in node_ids
    ]
    dropped = len(journey.edges) - len(edges)
    if dropped:
        logger.debug("Dropped dangling edges while building graph", extra={"dropped": dropped})
    return JourneyGraph(nodes=nodes, edges=rederive_edge_labels(edges, nodes))


# Graph -> domain
def _domain_trigger(data: GraphNodeData, base: Dict[str, Any]) -> TriggerNode:
    meta = base["data"]
    source = data.triggerConfig if data.triggerConfig is not None else meta
    config = normalize(source, fallback_subtype=data.subtype or None)
    payload, subtype = derive_payload(config)
    meta.update(to_legacy_mirror(config))
    return TriggerNode(
        **base,
        subtype=subtype,
        trigger=_carry_payload_extras(payload, data.trigger),
        triggerConfiguration=config,
    )


def _domain_action(data: GraphNodeData, base: Dict[str, Any]) -> ActionNode:
    if data.action is not None:
        action = data.action.model_copy(deep=True)
    else:
        action = parse_action_payload(base["data"]).unwrap_or_else(lambda reason: ActionPayload())
    subtype = data.subtype or ACTION_KIND_SUBTYPES.get(action.kind, "send_whatsapp")
    return ActionNode(**base, subtype=subtype, action=action)


def _domain_delay(data: GraphNodeData, base: Dict[str, Any]) -> DelayNode:
    meta = base["data"]
    if data.delayConfig is not None:
        config = data.delayConfig.model_copy(deep=True)
    else:
        config = parse_delay_config(meta.get("delayConfig")).unwrap_or(None)
        if config is None:
            config = fixed_delay_config(
                as_number(meta.get("duration"), 24), one_of(meta.get("unit"), DELAY_UNITS, "hours")
            )
    unit, value = delay_unit_value(config, meta)
    subtype = data.subtype or DELAY_TYPE_SUBTYPES.get(config.delayType, "fixed_delay")
    return DelayNode(**base, subtype=subtype, delay=DelayPayload(unit=unit, value=value, config=config))


def _domain_decision(data: GraphNodeData, base: Dict[str, Any]) -> ConditionNode:
    if data.conditionConfig is not None:
        config = data.conditionConfig.model_copy(deep=True)
    else:
        config = condition_config_from_meta(base["data"]) or ConditionConfiguration()
    subtype = data.subtype if data.subtype and data.subtype != EXPERIMENT_SUBTYPE else "if_else"
    return ConditionNode(**base, subtype=subtype, condition=condition_payload_from_config(config))


def _domain_experiment(data: GraphNodeData, base: Dict[str, Any]) -> ConditionNode:
    if data.experimentConfig is not None:
        config = data.experimentConfig.model_copy(deep=True)
    else:
        config = experiment_config_or_default(base["data"].get("experimentConfig") or {})
    return ConditionNode(**base, subtype=EXPERIMENT_SUBTYPE, experiment=config)


def _domain_goal(data: GraphNodeData, base: Dict[str, Any]) -> BaseJourneyNode:
    meta = base["data"]
    exit_node = meta.pop(EXIT_META_KEY, False) is True
    if exit_node or data.subtype == EXIT_SUBTYPE:
        return ExitNode(**base, subtype=data.subtype or EXIT_SUBTYPE)
    if data.goalConfig is not None:
        config = data.goalConfig.model_copy(deep=True)
    else:
        config = goal_config_or_none(meta.get("goalConfig"))
    if config is not None:
        description = config.goalDescription or config.goalName
    else:
        description = as_str(meta.get("goalDescription"))
    return GoalNode(
        **base,
        subtype=data.subtype or "goal_achieved",
        goal=GoalPayload(description=description, config=config),
    )


DOMAIN_BUILDERS = {
    NodeVariant.TRIGGER.value: _domain_trigger,
    NodeVariant.ACTION.value: _domain_action,
    NodeVariant.WAIT.value: _domain_delay,
    NodeVariant.DECISION.value: _domain_decision,
    NodeVariant.EXPERIMENT.value: _domain_experiment,
    NodeVariant.GOAL.value: _domain_goal,
}


def _base_fields(node: GraphNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "position": node.position.model_copy(),
        "name": node.data.label,
        "description": node.data.description,
        "data": deepcopy(node.data.meta),
    }


def to_domain_node(node: GraphNode) -> JourneyNode:
    """
    Map one canvas node to its persisted form.

    Variants map to types as decision -> condition, experiment ->
    condition/ab_test, wait -> delay and goal -> goal, or exit for the
    ``exit_journey`` subtype. Nodes that cannot be mapped become generic
    action nodes.
    """
    variant = node.data.variant
    builder = DOMAIN_BUILDERS.get(variant)
    if builder is None:
        logger.warning(
            "Unknown node variant, mapping as action",
            extra={LOG_CONTEXT_NODE_ID: node.id, "variant": variant},
        )
        builder = _domain_action

    try:
        return builder(node.data, _base_fields(node))
    except ValidationError as e:
        logger.warning(
            "Graph node could not be mapped, degrading to action",
            extra={LOG_CONTEXT_NODE_ID: node.id, "validation_errors": e.errors(include_url=False)},
        )
        return ActionNode(**_base_fields(node), subtype=node.data.subtype or "send_whatsapp")


def to_domain(
    nodes: Iterable[GraphNode],
    edges: Iterable[GraphEdge],
) -> Tuple[List[JourneyNode], List[JourneyEdge]]:
    """Map a canvas graph to persisted nodes and edges, dropping dangling edges."""
    nodes = list(nodes)
    node_ids = {node.id for node in nodes}
    kept = [edge for edge in edges if edge.source in node_ids and edge.target in node_ids]
    labelled = rederive_edge_labels(kept, nodes)
    return (
        [to_domain_node(node) for node in nodes],
        [JourneyEdge(**edge.model_dump()) for edge in labelled],
    )


def apply_graph(journey: Journey, graph: JourneyGraph) -> Journey:
    """Copy of ``journey`` whose nodes and edges are taken from ``graph``."""
    nodes, edges = to_domain(graph.nodes, graph.edges)
    return journey.model_copy(deep=True, update={"nodes": nodes, "edges": edges})
