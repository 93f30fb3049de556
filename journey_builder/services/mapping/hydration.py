"""
Lenient hydration of stored journey and graph JSON.

Stored journeys come from several generations of the editor, so every field
is read defensively: missing values get defaults, unknown node types are read
as actions, configurations that older editors kept in a node's ``data`` bag
are lifted into the typed payloads and edges pointing at missing nodes are
dropped. A corrupted journey always opens.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Type

from pydantic import BaseModel, ValidationError

from journey_builder.core.logging import get_logger
from journey_builder.models.goal_config import ConditionConfiguration
from journey_builder.models.graph import DisplayHints, GraphEdge, GraphNode, GraphNodeData, JourneyGraph, NodeVariant
from journey_builder.models.journey import (
    ActionNode,
    ActionPayload,
    ConditionArgs,
    ConditionNode,
    ConditionPayload,
    DelayNode,
    DelayPayload,
    EntrySettings,
    ExitNode,
    ExitSettings,
    GoalNode,
    GoalPayload,
    Journey,
    JourneyConfig,
    JourneyEdge,
    JourneyNode,
    JourneySettings,
    JourneyStats,
    NODE_CLASSES,
    NodeType,
    Position,
    ReEntryRules,
    TriggerNode,
    TriggerPayload,
)
from journey_builder.services.mapping.graph_mapper import (
    canonical_trigger,
    condition_payload_from_config,
    delay_unit_value,
)
from journey_builder.services.normalization import (
    condition_config_from_meta,
    experiment_config_or_default,
    goal_config_or_none,
    normalize,
    parse_action_payload,
    parse_condition_config,
    parse_delay_config,
    parse_experiment_config,
    parse_goal_config,
)
from journey_builder.utils.coercion import (
    as_bool,
    as_dict,
    as_int,
    as_list,
    as_number,
    as_str,
    first_present,
    one_of,
    str_list,
)
from journey_builder.utils.constants import (
    DEFAULT_TIMEZONE,
    DELAY_UNITS,
    EXPERIMENT_SUBTYPE,
    LOG_CONTEXT_JOURNEY_ID,
    LOG_CONTEXT_NODE_ID,
    TRIGGER_CATEGORIES,
)
from journey_builder.utils.ids import generate_id

logger = get_logger(__name__)

STATS_FIELDS = ("totalEnrollments", "activeEnrollments", "completedEnrollments", "goalConversionRate")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _timestamp(value: Any) -> Optional[Any]:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _position(value: Any) -> Position:
    data = as_dict(value)
    return Position(x=as_number(data.get("x"), 0), y=as_number(data.get("y"), 0))


# Journey-level records
def _journey_config(value: Any) -> JourneyConfig:
    data = as_dict(value)
    rules = as_dict(data.get("reEntryRules"))
    config = {key: item for key, item in data.items() if key not in ("reEntryRules", "maxEnrollments", "timezone")}
    config.update({
        "reEntryRules": ReEntryRules(
            allow=as_bool(rules.get("allow")),
            cooldownDays=as_number(rules.get("cooldownDays"), 0),
        ),
        "maxEnrollments": as_number(data.get("maxEnrollments")),
        "timezone": as_str(data.get("timezone")) or DEFAULT_TIMEZONE,
    })
    return JourneyConfig.model_validate(config)


def _journey_settings(value: Any, config: JourneyConfig) -> JourneySettings:
    data = as_dict(value)
    entry = as_dict(data.get("entry"))
    exit_settings = as_dict(data.get("exit"))
    allow_reentry = data.get("allowReentry")
    return JourneySettings(
        entry=EntrySettings(
            frequency=one_of(entry.get("frequency"), ("once", "multiple"), "once"),
            segmentId=as_str(entry.get("segmentId")),
            maxEntries=as_int(entry.get("maxEntries")),
        ),
        exit=ExitSettings(
            onGoal=as_bool(exit_settings.get("onGoal"), True),
            autoExitAfterDays=as_int(exit_settings.get("autoExitAfterDays")),
        ),
        allowReentry=allow_reentry if isinstance(allow_reentry, bool) else config.reEntryRules.allow,
        reentryCooldownDays=as_number(data.get("reentryCooldownDays"), config.reEntryRules.cooldownDays),
        timezone=as_str(data.get("timezone")) or config.timezone or DEFAULT_TIMEZONE,
        testMode=as_bool(data.get("testMode")),
        testPhoneNumbers=str_list(data.get("testPhoneNumbers")),
        goalDescription=as_str(data.get("goalDescription")),
    )


def _journey_stats(value: Any) -> JourneyStats:
    data = as_dict(value)
    stats = {key: item for key, item in data.items() if key not in STATS_FIELDS}
    stats.update({key: as_number(data.get(key), 0) for key in STATS_FIELDS})
    return JourneyStats.model_validate(stats)


# Nodes
def _trigger_payload(value: Any) -> TriggerPayload:
    data = as_dict(value)
    return TriggerPayload(
        type=as_str(data.get("type")) or "manual",
        segmentId=as_str(data.get("segmentId")),
        tag=as_str(data.get("tag")),
        productId=as_str(data.get("productId")),
        hours=as_number(data.get("hours")),
        webhookEvent=as_str(data.get("webhookEvent")),
        data=data["data"] if isinstance(data.get("data"), dict) else None,
    )


def _trigger_node(raw: Dict[str, Any], base: Dict[str, Any]) -> TriggerNode:
    node = TriggerNode(**base, trigger=_trigger_payload(raw.get("trigger")))
    embedded = raw.get("triggerConfiguration")
    if isinstance(embedded, dict) and embedded.get("category") in TRIGGER_CATEGORIES:
        config = normalize(embedded)
    else:
        config = canonical_trigger(node)
    return node.model_copy(update={"triggerConfiguration": config})


def _action_node(raw: Dict[str, Any], base: Dict[str, Any]) -> ActionNode:
    action = parse_action_payload(raw.get("action")).unwrap_or_else(lambda reason: ActionPayload())
    return ActionNode(**base, action=action)


def _delay_node(raw: Dict[str, Any], base: Dict[str, Any]) -> DelayNode:
    delay = as_dict(raw.get("delay"))
    source = first_present(delay.get("config"), base["data"].get("delayConfig"))
    config = parse_delay_config(source).unwrap_or(None) if source is not None else None
    if config is not None and config.delayType == "fixed_time":
        unit, value = delay_unit_value(config, base["data"])
    else:
        unit = one_of(delay.get("unit"), DELAY_UNITS, "hours")
        value = as_number(delay.get("value"), 24)
    return DelayNode(**base, delay=DelayPayload(unit=unit, value=value, config=config))


def _condition_node(raw: Dict[str, Any], base: Dict[str, Any]) -> ConditionNode:
    experiment = first_present(raw.get("experiment"), base["data"].get("experimentConfig"))
    condition = raw.get("condition")
    if base["subtype"] == EXPERIMENT_SUBTYPE or (experiment is not None and not isinstance(condition, dict)):
        return ConditionNode(
            **{**base, "subtype": EXPERIMENT_SUBTYPE},
            experiment=experiment_config_or_default(experiment),
        )

    payload = None
    if isinstance(condition, dict):
        args = as_dict(condition.get("args"))
        payload = ConditionPayload(
            kind=as_str(condition.get("kind")) or "custom_condition",
            args=ConditionArgs(
                join=one_of(args.get("join"), ("all", "any"), "all"),
                conditions=[item for item in as_list(args.get("conditions")) if isinstance(item, dict)],
                trueLabel=as_str(args.get("trueLabel")),
                falseLabel=as_str(args.get("falseLabel")),
            ),
        )
    else:
        legacy = condition_config_from_meta(base["data"])
        if legacy is not None:
            payload = condition_payload_from_config(legacy)
    return ConditionNode(**base, condition=payload)


def _goal_node(raw: Dict[str, Any], base: Dict[str, Any]) -> GoalNode:
    goal = as_dict(raw.get("goal"))
    config = goal_config_or_none(first_present(goal.get("config"), base["data"].get("goalConfig")))
    return GoalNode(**base, goal=GoalPayload(description=as_str(goal.get("description")), config=config))


def _exit_node(raw: Dict[str, Any], base: Dict[str, Any]) -> ExitNode:
    return ExitNode(**base)


NODE_READERS = {
    NodeType.TRIGGER.value: _trigger_node,
    NodeType.ACTION.value: _action_node,
    NodeType.DELAY.value: _delay_node,
    NodeType.CONDITION.value: _condition_node,
    NodeType.GOAL.value: _goal_node,
    NodeType.EXIT.value: _exit_node,
}


def parse_domain_node(raw: Any) -> JourneyNode:
    """
    Read one stored node leniently.

    Unknown node types and nodes whose payload cannot be read at all become
    generic action nodes carrying the original id, position and meta.
    """
    data = as_dict(raw)
    node_id = as_str(data.get("id")) or generate_id("node")
    node_type = as_str(data.get("type"))
    if node_type not in NODE_CLASSES:
        logger.warning("Unknown node type, reading as action", extra={LOG_CONTEXT_NODE_ID: node_id, "node_type": node_type})
        node_type = NodeType.ACTION.value

    base = {
        "id": node_id,
        "position": _position(data.get("position")),
        "name": as_str(data.get("name")),
        "description": as_str(data.get("description")),
        "subtype": as_str(data.get("subtype")),
        "data": as_dict(data.get("data")),
    }
    try:
        return NODE_READERS[node_type](data, base)
    except ValidationError as e:
        logger.warning(
            "Stored node could not be read, degrading to action",
            extra={LOG_CONTEXT_NODE_ID: node_id, "validation_errors": e.errors(include_url=False)},
        )
        return ActionNode(**base)


def _read_edges(value: Any, node_ids: Set[str], model: Type[BaseModel]) -> List[Any]:
    edges = []
    seen = set()
    for raw in as_list(value):
        if not isinstance(raw, dict):
            continue
        source = as_str(raw.get("source"))
        target = as_str(raw.get("target"))
        if source not in node_ids or target not in node_ids:
            logger.debug("Dropping dangling edge", extra={"edge_id": raw.get("id"), "source": source, "target": target})
            continue
        edge_id = as_str(raw.get("id")) or generate_id("edge")
        if edge_id in seen:
            continue
        seen.add(edge_id)
        edges.append(model(
            id=edge_id,
            source=source,
            target=target,
            sourceHandle=as_str(raw.get("sourceHandle")),
            label=as_str(raw.get("label")),
        ))
    return edges


def normalize_journey(raw: Any) -> Journey:
    """
    Hydrate a stored journey, filling every default.

    Never raises: unreadable nodes degrade to actions, duplicate node ids keep
    their first occurrence and dangling edges are removed.
    """
    data = as_dict(raw)
    journey_id = as_str(data.get("id")) or generate_id("journey")
    config = _journey_config(data.get("config"))

    nodes: List[JourneyNode] = []
    seen: Set[str] = set()
    for entry in as_list(data.get("nodes")):
        if not isinstance(entry, dict):
            continue
        node = parse_domain_node(entry)
        if node.id in seen:
            logger.warning(
                "Duplicate node id, keeping first occurrence",
                extra={LOG_CONTEXT_JOURNEY_ID: journey_id, LOG_CONTEXT_NODE_ID: node.id},
            )
            continue
        seen.add(node.id)
        nodes.append(node)

    created_at = _timestamp(data.get("createdAt")) or _now_iso()
    return Journey(
        id=journey_id,
        name=as_str(data.get("name")) or "Untitled journey",
        description=as_str(data.get("description")),
        status=data.get("status"),
        settings=_journey_settings(data.get("settings"), config),
        config=config,
        stats=_journey_stats(data.get("stats")),
        nodes=nodes,
        edges=_read_edges(data.get("edges"), seen, JourneyEdge),
        createdAt=created_at,
        updatedAt=_timestamp(data.get("updatedAt")) or created_at,
        storeId=as_str(data.get("storeId")),
    )


# Editable graph
def _hints(value: Any) -> DisplayHints:
    data = as_dict(value)
    status = data.get("status")
    return DisplayHints(
        summary=as_str(data.get("summary")),
        isConfigured=as_bool(data.get("isConfigured")),
        status=status if status in ("draft", "active") else None,
        userCount=as_int(data.get("userCount")),
    )


def _condition_config(variant: str, node_data: Dict[str, Any]) -> Optional[ConditionConfiguration]:
    config = parse_condition_config(node_data.get("conditionConfig")).unwrap_or(None)
    if config is None and variant == NodeVariant.DECISION.value:
        config = condition_config_from_meta(node_data.get("meta"))
    return config


def parse_graph_node(raw: Any) -> Optional[GraphNode]:
    """Read one canvas node leniently; returns None when it has no id."""
    data = as_dict(raw)
    node_id = as_str(data.get("id"))
    if not node_id:
        logger.debug("Skipping graph node without id")
        return None

    node_data = as_dict(data.get("data"))
    variant = as_str(node_data.get("variant"))
    if variant not in [member.value for member in NodeVariant]:
        logger.warning("Unknown node variant, reading as action", extra={LOG_CONTEXT_NODE_ID: node_id, "variant": variant})
        variant = NodeVariant.ACTION.value

    trigger_config = node_data.get("triggerConfig")
    trigger = node_data.get("trigger")
    fields = {
        "label": as_str(node_data.get("label")) or "Node",
        "description": as_str(node_data.get("description")),
        "variant": variant,
        "subtype": as_str(node_data.get("subtype"), ""),
        "icon": as_str(node_data.get("icon")),
        "hints": _hints(node_data.get("hints")),
        "meta": as_dict(node_data.get("meta")),
        "triggerConfig": normalize(trigger_config) if isinstance(trigger_config, dict) else None,
        "trigger": _trigger_payload(trigger) if isinstance(trigger, dict) else None,
        "action": parse_action_payload(node_data.get("action")).unwrap_or(None),
        "delayConfig": parse_delay_config(node_data.get("delayConfig")).unwrap_or(None),
        "conditionConfig": _condition_config(variant, node_data),
        "experimentConfig": parse_experiment_config(node_data.get("experimentConfig")).unwrap_or(None),
        "goalConfig": parse_goal_config(node_data.get("goalConfig")).unwrap_or(None),
    }
    position = _position(data.get("position"))
    try:
        return GraphNode(id=node_id, position=position, data=GraphNodeData(**fields))
    except ValidationError as e:
        logger.warning(
            "Graph node could not be read, degrading to action",
            extra={LOG_CONTEXT_NODE_ID: node_id, "validation_errors": e.errors(include_url=False)},
        )
        return GraphNode(id=node_id, position=position, data=GraphNodeData(label=fields["label"], meta=fields["meta"]))


def parse_graph(raw: Any) -> JourneyGraph:
    """Read a ``{nodes, edges}`` canvas graph leniently."""
    data = as_dict(raw)
    nodes: List[GraphNode] = []
    seen: Set[str] = set()
    for entry in as_list(data.get("nodes")):
        node = parse_graph_node(entry)
        if node is None or node.id in seen:
            continue
        seen.add(node.id)
        nodes.append(node)
    return JourneyGraph(nodes=nodes, edges=_read_edges(data.get("edges"), seen, GraphEdge))
