"""
Parsers for node configurations.

Every parser takes untrusted JSON and returns ``Ok(config)`` with missing
values filled from the defaults, or ``Err(reason)`` when the input cannot be
read as that configuration at all (not an object, unknown discriminator).
Callers that must not fail use ``unwrap_or_else`` with the default factory.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from journey_builder.core.logging import get_logger
from journey_builder.models.delay_config import DelayConfiguration, DelayType
from journey_builder.models.experiment_config import ExperimentConfiguration, Variant, default_variants
from journey_builder.models.goal_config import ConditionConfiguration, GoalConfiguration
from journey_builder.models.journey import ActionPayload
from journey_builder.utils.coercion import (
    as_bool,
    as_dict,
    as_int,
    as_list,
    as_number,
    as_str,
    first_present,
    one_of,
)
from journey_builder.utils.constants import (
    ACTION_KIND_SUBTYPES,
    CUSTOMER_TIMEZONE,
    DEFAULT_FALSE_LABEL,
    DEFAULT_TRUE_LABEL,
    DURATION_UNITS,
    LEGACY_CONDITION_KEYS,
)
from journey_builder.utils.result import Err, Ok, ParseResult

logger = get_logger(__name__)

DELAY_TYPES = [member.value for member in DelayType]
ON_TIMEOUT = ("continue", "exit", "branch")


def _duration(value: Any, default_value: float, default_unit: str) -> Dict[str, Any]:
    data = as_dict(value)
    amount = as_number(data.get("value"))
    return {
        "value": default_value if amount is None else amount,
        "unit": one_of(data.get("unit"), DURATION_UNITS, default_unit),
    }


def _time_of_day(value: Any, default_hour: int, default_minute: int = 0) -> Dict[str, int]:
    if isinstance(value, str) and ":" in value:
        hour_text, _, minute_text = value.partition(":")
        value = {"hour": hour_text, "minute": minute_text}
    data = as_dict(value)
    hour = as_int(data.get("hour"), default_hour)
    minute = as_int(data.get("minute"), default_minute)
    return {"hour": min(max(hour, 0), 23), "minute": min(max(minute, 0), 59)}


def _validated(model, payload: Dict[str, Any], kind: str) -> ParseResult:
    try:
        return Ok(model.model_validate(payload))
    except ValidationError as e:
        logger.debug(f"{kind} configuration rejected", extra={"validation_errors": e.errors(include_url=False)})
        return Err(f"invalid {kind} configuration: {e.error_count()} error(s)")


# Delay
def _specific_delay_config(delay_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("type") not in (None, delay_type):
        data = {}
    if delay_type == DelayType.FIXED_TIME.value:
        return {"type": delay_type, "duration": _duration(data.get("duration"), 1, "days")}
    if delay_type == DelayType.WAIT_UNTIL_TIME.value:
        return {
            "type": delay_type,
            "time": _time_of_day(data.get("time"), 10),
            "timezone": as_str(data.get("timezone")) or CUSTOMER_TIMEZONE,
            "ifPassed": one_of(
                data.get("ifPassed"), ("wait_until_tomorrow", "send_immediately", "skip"), "wait_until_tomorrow"
            ),
        }
    if delay_type == DelayType.WAIT_FOR_EVENT.value:
        return {
            "type": delay_type,
            "eventName": as_str(data.get("eventName"), ""),
            "eventFilters": [item for item in as_list(data.get("eventFilters")) if isinstance(item, dict)],
            "maxWaitTime": _duration(data.get("maxWaitTime"), 3, "days"),
            "onTimeout": one_of(data.get("onTimeout"), ON_TIMEOUT, "continue"),
        }
    if delay_type == DelayType.OPTIMAL_SEND_TIME.value:
        window = as_dict(data.get("window"))
        return {
            "type": delay_type,
            "window": {"duration": _duration(window.get("duration"), 24, "hours")},
            "fallbackTime": _time_of_day(data.get("fallbackTime"), 10),
            "timezone": as_str(data.get("timezone")) or CUSTOMER_TIMEZONE,
        }
    target = data.get("targetValue", "")
    return {
        "type": delay_type,
        "attributePath": as_str(data.get("attributePath"), ""),
        "targetValue": "" if target is None else target,
        "maxWaitTime": _duration(data.get("maxWaitTime"), 7, "days"),
        "onTimeout": one_of(data.get("onTimeout"), ON_TIMEOUT, "continue"),
    }


def parse_delay_config(value: Any) -> ParseResult[DelayConfiguration]:
    """Parse a delay configuration. A missing ``delayType`` means fixed time."""
    if isinstance(value, DelayConfiguration):
        return Ok(value.model_copy(deep=True))
    if not isinstance(value, dict):
        return Err("delay configuration must be an object")

    specific = as_dict(value.get("specificConfig"))
    delay_type = value.get("delayType") or specific.get("type") or DelayType.FIXED_TIME.value
    if delay_type not in DELAY_TYPES:
        return Err(f"unknown delay type: {delay_type}")

    quiet = as_dict(value.get("quietHours"))
    holidays = as_dict(value.get("holidaySettings"))
    throttling = as_dict(value.get("throttling"))
    payload = {
        "delayType": delay_type,
        "specificConfig": _specific_delay_config(delay_type, specific),
        "quietHours": {
            "enabled": as_bool(quiet.get("enabled")),
            "startTime": _time_of_day(quiet.get("startTime"), 21),
            "endTime": _time_of_day(quiet.get("endTime"), 9),
            "timezone": as_str(quiet.get("timezone")) or CUSTOMER_TIMEZONE,
        },
        "holidaySettings": {
            "skipWeekends": as_bool(holidays.get("skipWeekends")),
            "skipHolidays": as_bool(holidays.get("skipHolidays")),
            "holidayCalendar": as_str(holidays.get("holidayCalendar")) or "us",
        },
        "throttling": {
            "enabled": as_bool(throttling.get("enabled")),
            "maxUsersPerHour": as_int(throttling.get("maxUsersPerHour")),
            "maxUsersPerDay": as_int(throttling.get("maxUsersPerDay")),
        },
    }
    return _validated(DelayConfiguration, payload, "delay")


def fixed_delay_config(value: Any, unit: str) -> DelayConfiguration:
    """Fixed-time delay equivalent to a legacy ``{unit, value}`` delay."""
    amount = as_number(value, 24)
    return DelayConfiguration.model_validate({
        "delayType": DelayType.FIXED_TIME.value,
        "specificConfig": {
            "type": DelayType.FIXED_TIME.value,
            "duration": {"value": amount, "unit": one_of(unit, DURATION_UNITS, "hours")},
        },
    })


# Goal
def parse_goal_config(value: Any) -> ParseResult[GoalConfiguration]:
    """Parse a goal configuration."""
    if isinstance(value, GoalConfiguration):
        return Ok(value.model_copy(deep=True))
    if not isinstance(value, dict):
        return Err("goal configuration must be an object")

    payload = {
        "goalType": as_str(value.get("goalType")) or "journey_completion",
        "goalName": as_str(value.get("goalName")) or "Journey Completed",
        "goalDescription": as_str(value.get("goalDescription")),
        "goalCategory": one_of(
            value.get("goalCategory"), ("conversion", "engagement", "retention", "custom"), "conversion"
        ),
        "eventName": as_str(value.get("eventName")),
        "segmentId": as_str(value.get("segmentId")),
        "eventFilters": [item for item in as_list(value.get("eventFilters")) if isinstance(item, dict)],
        "attributionWindow": _duration(value.get("attributionWindow"), 7, "days"),
        "attributionModel": one_of(
            value.get("attributionModel"), ("first_touch", "last_touch", "linear"), "last_touch"
        ),
        "countMultipleConversions": as_bool(value.get("countMultipleConversions")),
        "exitAfterGoal": as_bool(value.get("exitAfterGoal"), True),
        "markAsCompleted": as_bool(value.get("markAsCompleted"), True),
    }
    return _validated(GoalConfiguration, payload, "goal")


# Condition
def parse_condition_config(value: Any) -> ParseResult[ConditionConfiguration]:
    """Parse a decision configuration. Blank branch labels fall back to Yes/No."""
    if isinstance(value, ConditionConfiguration):
        return Ok(value.model_copy(deep=True))
    if not isinstance(value, dict):
        return Err("condition configuration must be an object")

    payload = {
        "conditionType": as_str(value.get("conditionType")) or "custom_condition",
        "join": one_of(first_present(value.get("join"), value.get("conditionJoin")), ("all", "any"), "all"),
        "conditions": [item for item in as_list(value.get("conditions")) if isinstance(item, dict)],
        "trueLabel": (as_str(value.get("trueLabel")) or "").strip() or DEFAULT_TRUE_LABEL,
        "falseLabel": (as_str(value.get("falseLabel")) or "").strip() or DEFAULT_FALSE_LABEL,
    }
    return _validated(ConditionConfiguration, payload, "condition")


# Action
def _hour(value: Any, default: int) -> int:
    return min(max(as_int(value, default), 0), 23)


def parse_action_payload(value: Any) -> ParseResult[ActionPayload]:
    """Parse an action payload. ``templateLanguage`` is accepted for ``language``."""
    if isinstance(value, ActionPayload):
        return Ok(value.model_copy(deep=True))
    if not isinstance(value, dict):
        return Err("action payload must be an object")

    window = value.get("sendWindow")
    payload = {
        "kind": one_of(value.get("kind"), list(ACTION_KIND_SUBTYPES), "whatsapp_template"),
        "templateName": as_str(value.get("templateName")) or "WhatsApp Template",
        "language": as_str(value.get("language")) or as_str(value.get("templateLanguage")) or "en",
        "variables": {
            str(key): item for key, item in as_dict(value.get("variables")).items() if isinstance(item, str)
        },
        "sendWindow": {
            "startHour": _hour(window.get("startHour"), 9),
            "endHour": _hour(window.get("endHour"), 21),
        } if isinstance(window, dict) else None,
        "fallbackText": as_str(value.get("fallbackText")),
    }
    return _validated(ActionPayload, payload, "action")


# Experiment
def _variants(value: Any) -> List[Dict[str, Any]]:
    variants = []
    seen = set()
    for index, raw in enumerate(as_list(value)):
        if not isinstance(raw, dict):
            continue
        variant_id = as_str(raw.get("id")) or f"variant_{index}"
        if variant_id in seen:
            continue
        seen.add(variant_id)
        variants.append({
            "id": variant_id,
            "name": as_str(raw.get("name")) or variant_id,
            "trafficAllocation": as_number(raw.get("trafficAllocation"), 0),
            "isControl": as_bool(raw.get("isControl")),
            "color": as_str(raw.get("color")),
            "description": as_str(raw.get("description")),
        })
    if not variants:
        variants = [variant.model_dump() for variant in default_variants()]
    return variants


def _goals(value: Any) -> List[Dict[str, Any]]:
    goals = []
    seen = set()
    for raw in as_list(value):
        if not isinstance(raw, dict):
            continue
        goal_id = as_str(raw.get("id"))
        if not goal_id or goal_id in seen:
            continue
        seen.add(goal_id)
        goals.append({
            "id": goal_id,
            "name": as_str(raw.get("name")) or goal_id,
            "type": as_str(raw.get("type")) or "conversion",
            "attributionWindow": _duration(raw.get("attributionWindow"), 7, "days"),
            "isPrimary": as_bool(raw.get("isPrimary")),
        })
    return goals


def parse_experiment_config(value: Any) -> ParseResult[ExperimentConfiguration]:
    """
    Parse an experiment configuration.

    Variants without an id get a positional one and duplicate ids are skipped.
    An empty variant list is replaced by the Control / Variant B default.
    A primary goal id that references no goal is dropped.
    """
    if isinstance(value, ExperimentConfiguration):
        return Ok(value.model_copy(deep=True))
    if not isinstance(value, dict):
        return Err("experiment configuration must be an object")

    variants = _variants(value.get("variants"))
    goals = _goals(value.get("goals"))
    primary_goal_id = as_str(value.get("primaryGoalId"), "")
    if primary_goal_id and primary_goal_id not in {goal["id"] for goal in goals}:
        logger.debug("Dropping dangling primary goal reference", extra={"primary_goal_id": primary_goal_id})
        primary_goal_id = ""

    sample = as_dict(value.get("sampleSize"))
    params = as_dict(sample.get("params"))
    duration = as_dict(value.get("duration"))
    criteria = as_dict(value.get("winningCriteria"))
    status = as_dict(value.get("status"))
    variant_ids = {variant["id"] for variant in variants}
    winner = as_str(status.get("winnerVariantId"))
    specific_variant = as_str(criteria.get("specificVariantId"))

    payload = {
        "experimentName": as_str(value.get("experimentName"), ""),
        "description": as_str(value.get("description"), ""),
        "hypothesis": as_str(value.get("hypothesis"), ""),
        "experimentType": one_of(value.get("experimentType"), ("ab_test", "multivariate"), "ab_test"),
        "variants": variants,
        "goals": goals,
        "primaryGoalId": primary_goal_id,
        "sampleSize": {
            "params": {
                "baselineConversionRate": as_number(params.get("baselineConversionRate"), 0.05),
                "minimumDetectableEffect": as_number(params.get("minimumDetectableEffect"), 0.2),
                "confidenceLevel": as_number(params.get("confidenceLevel"), 0.95),
                "statisticalPower": as_number(params.get("statisticalPower"), 0.8),
                "numberOfVariants": as_int(params.get("numberOfVariants"), len(variants)),
            },
            "result": sample["result"] if isinstance(sample.get("result"), dict) else None,
        },
        "duration": {
            "minimumDays": as_int(duration.get("minimumDays"), 7),
            "maximumDays": as_int(duration.get("maximumDays")),
        },
        "winningCriteria": {
            "strategy": one_of(criteria.get("strategy"), ("automatic", "manual"), "automatic"),
            "statisticalSignificance": as_number(criteria.get("statisticalSignificance"), 0.95),
            "minimumLift": as_number(criteria.get("minimumLift"), 0.05),
            "minimumRuntime": _duration(criteria.get("minimumRuntime"), 7, "days"),
            "postTestAction": one_of(
                criteria.get("postTestAction"),
                ("send_all_to_winner", "send_all_to_specific", "keep_split", "end_journey"),
                "send_all_to_winner",
            ),
            "specificVariantId": specific_variant if specific_variant in variant_ids else None,
            "removeLosingPaths": as_bool(criteria.get("removeLosingPaths"), True),
        },
        "status": {
            "state": one_of(status.get("state"), ("draft", "running", "completed"), "draft"),
            "winnerVariantId": winner if winner in variant_ids else None,
        },
    }
    return _validated(ExperimentConfiguration, payload, "experiment")


def normalized_allocations(variants: List[Variant]) -> List[float]:
    """
    Rescale traffic allocations so they sum to 100 for display.

    Allocations already summing to 100 are returned unchanged. Values are
    rounded to one decimal and the last variant absorbs the rounding remainder.
    """
    if not variants:
        return []
    allocations = [float(variant.trafficAllocation) for variant in variants]
    total = sum(allocations)
    if total <= 0:
        share = round(100.0 / len(variants), 1)
        scaled = [share] * len(variants)
        scaled[-1] = round(100.0 - share * (len(variants) - 1), 1)
        return scaled
    if abs(total - 100) <= 0.01:
        return allocations
    factor = 100.0 / total
    scaled = []
    accumulated = 0.0
    for index, allocation in enumerate(allocations):
        value = round(allocation * factor, 1)
        if index == len(allocations) - 1:
            value = round(100.0 - accumulated, 1)
        accumulated += value
        scaled.append(value)
    return scaled


def validate_experiment(config: ExperimentConfiguration) -> List[str]:
    """Readiness problems that keep an experiment from being launched."""
    errors = []
    if not config.experimentName.strip():
        errors.append("Experiment name is required.")
    if len(config.variants) < 2:
        errors.append("At least two variants required.")
    total = sum(variant.trafficAllocation for variant in config.variants)
    if abs(total - 100) > 0.5:
        errors.append("Traffic allocation must sum to 100%.")
    if sum(1 for variant in config.variants if variant.isControl) != 1:
        errors.append("Exactly one control variant required.")
    if not config.goals:
        errors.append("At least one goal required.")
    if not config.primaryGoalId:
        errors.append("Primary goal must be selected.")
    criteria = config.winningCriteria
    if criteria.strategy == "automatic" and not criteria.minimumRuntime.value:
        errors.append("Minimum runtime required for automatic strategy.")
    if criteria.postTestAction == "send_all_to_specific" and not criteria.specificVariantId:
        errors.append("Choose a variant for post-test action.")
    return errors


def goal_config_or_none(value: Any) -> Optional[GoalConfiguration]:
    if value is None:
        return None
    return parse_goal_config(value).unwrap_or(None)


def condition_config_or_default(value: Any) -> ConditionConfiguration:
    return parse_condition_config(value).unwrap_or_else(lambda reason: ConditionConfiguration())


def condition_config_from_meta(meta: Any) -> Optional[ConditionConfiguration]:
    """
    Decision settings kept in a node's ``meta`` bag.

    ``conditionConfig`` wins when present; otherwise the flat ``trueLabel``,
    ``falseLabel``, ``conditionType``, ``conditionJoin`` and ``conditions``
    keys written by older canvases are read. None when neither is there.
    """
    data = as_dict(meta)
    if isinstance(data.get("conditionConfig"), dict):
        return condition_config_or_default(data["conditionConfig"])
    legacy = {key: data[key] for key in LEGACY_CONDITION_KEYS if key in data}
    if not legacy:
        return None
    return condition_config_or_default(legacy)


def experiment_config_or_default(value: Any) -> ExperimentConfiguration:
    return parse_experiment_config(value).unwrap_or_else(lambda reason: ExperimentConfiguration())
