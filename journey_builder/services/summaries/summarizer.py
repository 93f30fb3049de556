"""
One-line summaries of node configurations.

Summaries depend only on the configuration passed in, so they are stable
across reloads and safe to cache in display hints.
"""

from typing import Optional, Union

from journey_builder.models.delay_config import DelayConfiguration, DelayType, Duration, TimeOfDay
from journey_builder.models.experiment_config import ExperimentConfiguration
from journey_builder.models.goal_config import ConditionConfiguration, GoalConfiguration
from journey_builder.models.journey import ActionPayload
from journey_builder.models.trigger_config import DurationValue, TriggerCategory, TriggerConfiguration
from journey_builder.utils.constants import CUSTOMER_TIMEZONE


def _number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def format_duration(duration: Union[Duration, DurationValue]) -> str:
    """``3 days``, ``1 hour``."""
    value = duration.value if isinstance(duration, Duration) else duration.amount
    unit = duration.unit
    if value == 1 and unit.endswith("s"):
        unit = unit[:-1]
    return f"{_number(value)} {unit}"


def format_time_of_day(time: TimeOfDay, timezone: Optional[str] = None) -> str:
    """``9:00 AM (customer local time)``."""
    hour12 = time.hour % 12 or 12
    suffix = "PM" if time.hour >= 12 else "AM"
    tz = timezone if timezone and timezone != CUSTOMER_TIMEZONE else "customer local time"
    return f"{hour12}:{time.minute:02d} {suffix} ({tz})"


def summarize_delay(config: DelayConfiguration) -> str:
    details = config.specificConfig
    if config.delayType == DelayType.FIXED_TIME:
        return f"Wait {format_duration(details.duration)}"
    if config.delayType == DelayType.WAIT_UNTIL_TIME:
        return f"Wait until {format_time_of_day(details.time, details.timezone)}"
    if config.delayType == DelayType.WAIT_FOR_EVENT:
        event_name = details.eventName or "selected event"
        return f"Wait for {event_name} (max {format_duration(details.maxWaitTime)})"
    if config.delayType == DelayType.OPTIMAL_SEND_TIME:
        return f"AI window {format_duration(details.window.duration)}"
    if config.delayType == DelayType.WAIT_FOR_ATTRIBUTE:
        target = details.targetValue
        target_text = "?" if target is None or target == "" else str(target)
        return f"Wait for {details.attributePath or 'attribute'} = {target_text}"
    return "Delay"


def summarize_goal(config: Optional[GoalConfiguration]) -> str:
    if config is None:
        return "Goal not configured"

    goal_type = config.goalType or "goal"
    if goal_type == "journey_completion":
        return "Journey completion"
    if goal_type == "segment_entry":
        return f"Segment entry • {config.segmentId or 'segment'}"
    if goal_type == "shopify_event":
        return f"Shopify event • {config.eventName or 'event'}"
    if goal_type == "whatsapp_engagement":
        return f"WhatsApp engagement • {config.eventName or 'engagement'}"
    if goal_type == "custom_event":
        return f"Custom event • {config.eventName or 'event'}"
    return goal_type.replace("_", " ")


def summarize_experiment(config: ExperimentConfiguration) -> str:
    """``2 variants • Purchases • Control 50.0%, Variant B 50.0%``."""
    primary_goal = config.primary_goal
    goal_name = primary_goal.name if primary_goal else "No primary goal"
    variant_summary = ", ".join(
        f"{variant.name} {float(variant.trafficAllocation):.1f}%" for variant in config.variants
    )
    return f"{len(config.variants)} variants • {goal_name} • {variant_summary}"


def summarize_trigger(config: TriggerConfiguration) -> str:
    if config.category == TriggerCategory.SEGMENT:
        segment = config.segment
        verb = "Exits segment" if segment.mode == "exit" else "Enters segment"
        return f"{verb} • {segment.segmentName or segment.segmentId or 'segment'}"

    if config.category == TriggerCategory.SHOPIFY_EVENT:
        event = config.shopifyEvent
        event_label = (event.customEventName or event.eventType).replace("_", " ").capitalize()
        selection = event.productSelection
        if selection.summary:
            scope = selection.summary
        elif selection.mode == "specific":
            scope = f"{len(selection.productIds)} products"
        elif selection.mode == "collections":
            scope = f"{len(selection.collectionIds)} collections"
        else:
            scope = "any product"
        return f"{event_label} • {scope}"

    if config.category == TriggerCategory.TIME_BASED:
        schedule = config.timeBased
        if schedule.type == "recurring_schedule":
            if schedule.cadence == "weekly":
                when = f"Weekly on {', '.join(schedule.daysOfWeek)}"
            elif schedule.cadence == "monthly":
                when = f"Monthly on day {schedule.dayOfMonth or 1}"
            else:
                when = "Daily"
            return f"{when} at {schedule.timeOfDay} ({schedule.timezone})"
        if schedule.type == "attribute_date":
            offset = schedule.offset
            if offset.amount == 0:
                relation = "On"
            elif offset.amount > 0:
                relation = f"{format_duration(offset)} after"
            else:
                relation = f"{format_duration(DurationValue(amount=-offset.amount, unit=offset.unit))} before"
            return f"{relation} {schedule.attributeKey or 'date attribute'}"
        return f"Once at {schedule.startsAt or 'unscheduled time'} ({schedule.timezone})"

    mode = config.manual.mode if config.manual else "api"
    return "Manual entry via CSV" if mode == "csv" else "Manual entry via API"


def summarize_condition(config: ConditionConfiguration) -> str:
    count = len(config.conditions)
    if count == 0:
        return "No rules configured"
    rules = "rule" if count == 1 else "rules"
    return f"{count} {rules} • match {config.join}"


def summarize_action(action: ActionPayload) -> str:
    if action.kind == "whatsapp_template":
        return f"Template {action.templateName} ({action.language})"
    return action.kind.replace("_", " ").capitalize()
