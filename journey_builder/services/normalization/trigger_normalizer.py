"""
Trigger configuration normalizer.

Turns any trigger input into a complete, category-tagged
``TriggerConfiguration``. Three input shapes are accepted:

1. A tagged configuration (``category`` present, directly or under a nested
   ``triggerConfiguration`` key). Missing nested values are defaulted.
2. The flat legacy shape (``triggerType``, ``segmentId``, ``scheduledAt``...).
   The category is inferred from the legacy subtype through
   ``LEGACY_SUBTYPE_CATEGORIES`` and the configuration is rebuilt.
3. Anything else, including ``None``. A manual configuration is returned.

Only the sub-configuration of the resolved category is kept; stale
sub-configurations of other categories are dropped.

The companion ``to_legacy_mirror`` produces the flat shape for consumers that
still read it, and ``derive_payload`` maps a configuration to the minimal
payload and subtype consumed by the execution engine.
"""

from copy import deepcopy
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from journey_builder.core.logging import get_logger
from journey_builder.models.journey import TriggerPayload
from journey_builder.models.trigger_config import CATEGORY_FIELDS, TriggerCategory, TriggerConfiguration
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
    DURATION_UNITS,
    LEGACY_SUBTYPE_CATEGORIES,
    SHOPIFY_EVENT_PAYLOADS,
    SHOPIFY_EVENT_TYPES,
    SHOPIFY_FALLBACK_PAYLOAD,
    TIME_BASED_TYPES,
    TRIGGER_CATEGORIES,
    TRIGGER_TYPE_CATEGORIES,
)
from journey_builder.utils.result import Err, Ok, ParseResult

logger = get_logger(__name__)

DEFAULT_EVENT_TYPE = "order_placed"

# Legacy subtype -> default Shopify event type when the event itself is missing
LEGACY_EVENT_TYPES: Dict[str, str] = {
    "cart_abandoned": "cart_abandoned",
    "abandoned_cart": "cart_abandoned",
    "product_viewed": "product_viewed",
}


def default_trigger_configuration() -> TriggerConfiguration:
    """Manual trigger with default entry settings."""
    return TriggerConfiguration(category=TriggerCategory.MANUAL.value)


def normalize(value: Any, fallback_subtype: Optional[str] = None) -> TriggerConfiguration:
    """
    Normalize any trigger input into a canonical configuration.

    Args:
        value: Tagged configuration, legacy flat record, model instance or junk
        fallback_subtype: Legacy subtype used when ``value`` carries none

    Returns:
        Fully populated trigger configuration. Never raises.
    """
    raw = as_dict(value)
    try:
        return TriggerConfiguration.model_validate(_resolve(raw, fallback_subtype))
    except ValidationError as e:
        logger.warning(
            "Trigger configuration rejected after normalization, using manual default",
            extra={"validation_errors": e.errors(include_url=False)},
        )
        return default_trigger_configuration()


def parse_trigger_configuration(value: Any) -> ParseResult[TriggerConfiguration]:
    """Strict variant of ``normalize``: only tagged configurations are accepted."""
    if not isinstance(value, (dict, TriggerConfiguration)):
        return Err(f"expected an object, got {type(value).__name__}")
    raw = as_dict(value)
    category = raw.get("category")
    if category is None:
        return Err("missing category")
    if category not in TRIGGER_CATEGORIES:
        return Err(f"unknown category: {category}")
    return Ok(normalize(raw))


def _resolve(raw: Dict[str, Any], fallback_subtype: Optional[str]) -> Dict[str, Any]:
    if raw.get("category") in TRIGGER_CATEGORIES:
        return _from_tagged(raw)

    embedded = raw.get("triggerConfiguration")
    if isinstance(embedded, dict) and embedded.get("category") in TRIGGER_CATEGORIES:
        return _from_tagged(embedded)

    category, subtype = infer_category(raw, fallback_subtype)
    if category is None:
        if raw:
            logger.debug(
                "No trigger category could be inferred, defaulting to manual",
                extra={"keys": sorted(raw.keys())},
            )
        category = TriggerCategory.MANUAL.value
    return _from_legacy(raw, category, subtype)


def infer_category(raw: Dict[str, Any], fallback_subtype: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
    """
    Infer the trigger category of a flat legacy record.

    Returns:
        ``(category, legacy_subtype)``; category is None when nothing matched.
    """
    for candidate in (as_str(raw.get("triggerType")), fallback_subtype):
        if not candidate:
            continue
        if candidate in LEGACY_SUBTYPE_CATEGORIES:
            return LEGACY_SUBTYPE_CATEGORIES[candidate], candidate
        if candidate in TRIGGER_TYPE_CATEGORIES:
            return TRIGGER_TYPE_CATEGORIES[candidate], candidate
        # The mirror writes the Shopify event type as triggerType
        if candidate in SHOPIFY_EVENT_TYPES:
            return TriggerCategory.SHOPIFY_EVENT.value, candidate

    # Structural hints from the mirror keys
    if isinstance(raw.get("shopifyEvent"), dict):
        return TriggerCategory.SHOPIFY_EVENT.value, None
    if any(isinstance(raw.get(key), dict) for key in ("timeBased", "recurringSchedule", "attributeDate")):
        return TriggerCategory.TIME_BASED.value, None
    if raw.get("scheduledAt"):
        return TriggerCategory.TIME_BASED.value, None
    if isinstance(raw.get("manualTrigger"), dict):
        return TriggerCategory.MANUAL.value, None
    if raw.get("segmentId") or raw.get("segmentMode"):
        return TriggerCategory.SEGMENT.value, None
    return None, None


# Tagged input
def _from_tagged(config: Dict[str, Any]) -> Dict[str, Any]:
    category = config["category"]
    canonical = _shared_settings(config)
    canonical["category"] = category
    builders = {
        TriggerCategory.SEGMENT.value: _segment,
        TriggerCategory.SHOPIFY_EVENT.value: _shopify_event,
        TriggerCategory.TIME_BASED.value: _time_based,
        TriggerCategory.MANUAL.value: _manual,
    }
    field = CATEGORY_FIELDS[category]
    canonical[field] = builders[category](as_dict(config.get(field)))
    return canonical


def _shared_settings(source: Dict[str, Any]) -> Dict[str, Any]:
    shared = {
        "entryFrequency": _entry_frequency(source.get("entryFrequency")),
        "entryWindow": _entry_window(source.get("entryWindow")),
    }
    estimate = _estimate(source.get("estimate"))
    if estimate is not None:
        shared["estimate"] = estimate
    return shared


def _duration(value: Any) -> Optional[Dict[str, Any]]:
    data = as_dict(value)
    amount = as_number(data.get("amount"))
    if amount is None:
        return None
    return {"amount": amount, "unit": one_of(data.get("unit"), DURATION_UNITS, "days")}


def _entry_frequency(value: Any) -> Dict[str, Any]:
    data = as_dict(value)
    return {
        "allowReentry": as_bool(data.get("allowReentry")),
        "cooldown": _duration(data.get("cooldown")),
        "entryLimit": as_number(data.get("entryLimit")),
    }


def _entry_window(value: Any) -> Dict[str, Any]:
    data = as_dict(value)
    return {
        "startsAt": as_str(data.get("startsAt")),
        "endsAt": as_str(data.get("endsAt")),
        "timezone": as_str(data.get("timezone")) or DEFAULT_TIMEZONE,
    }


def _estimate(value: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(value, dict):
        return None
    return {
        "dailyEntries": as_number(value.get("dailyEntries")),
        "totalAudience": as_number(value.get("totalAudience")),
        "warnings": str_list(value.get("warnings")),
        "conflicts": [item for item in as_list(value.get("conflicts")) if isinstance(item, dict)],
        "lastCalculatedAt": as_str(value.get("lastCalculatedAt")),
    }


def _segment(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "mode": "exit" if data.get("mode") == "exit" else "enter",
        "segmentId": as_str(data.get("segmentId")),
        "segmentName": as_str(data.get("segmentName")),
        "estimatedAudience": as_number(data.get("estimatedAudience")),
    }


def _product_selection(value: Any) -> Dict[str, Any]:
    data = as_dict(value)
    selection = {
        "mode": one_of(data.get("mode"), ("any", "specific", "collections"), "any"),
        "productIds": str_list(data.get("productIds")),
        "collectionIds": str_list(data.get("collectionIds")),
    }
    summary = as_str(data.get("summary"))
    if summary is not None:
        selection["summary"] = summary
    return selection


def _shopify_event(data: Dict[str, Any]) -> Dict[str, Any]:
    event = {
        "eventType": as_str(data.get("eventType")) or DEFAULT_EVENT_TYPE,
        "productSelection": _product_selection(data.get("productSelection")),
        "filters": data["filters"] if isinstance(data.get("filters"), dict) else None,
        "advanced": data["advanced"] if isinstance(data.get("advanced"), dict) else None,
    }
    custom_event_name = as_str(data.get("customEventName"))
    if custom_event_name is not None:
        event["customEventName"] = custom_event_name
    return event


def _time_based(data: Dict[str, Any]) -> Dict[str, Any]:
    kind = one_of(data.get("type"), TIME_BASED_TYPES, "specific_datetime")
    if kind == "recurring_schedule":
        days = str_list(data.get("daysOfWeek"))
        return {
            "type": kind,
            "cadence": one_of(data.get("cadence"), ("daily", "weekly", "monthly"), "weekly"),
            "daysOfWeek": days or ["monday"],
            "dayOfMonth": as_int(data.get("dayOfMonth")),
            "timeOfDay": as_str(data.get("timeOfDay")) or "09:00",
            "timezone": as_str(data.get("timezone")) or DEFAULT_TIMEZONE,
        }
    if kind == "attribute_date":
        return {
            "type": kind,
            "attributeKey": as_str(data.get("attributeKey"), ""),
            "offset": _duration(data.get("offset")) or {"amount": 0, "unit": "days"},
            "timezoneBehavior": one_of(data.get("timezoneBehavior"), ("customer", "fixed"), "customer"),
            "fallbackTime": as_str(data.get("fallbackTime")) or "09:00",
        }
    return {
        "type": "specific_datetime",
        "startsAt": as_str(data.get("startsAt"), ""),
        "timezone": as_str(data.get("timezone")) or DEFAULT_TIMEZONE,
    }


def _manual(data: Dict[str, Any]) -> Dict[str, Any]:
    manual = {"mode": one_of(data.get("mode"), ("api", "csv"), "api")}
    notes = as_str(data.get("notes"))
    if notes is not None:
        manual["notes"] = notes
    return manual


# Legacy input
def _from_legacy(raw: Dict[str, Any], category: str, subtype: Optional[str]) -> Dict[str, Any]:
    canonical = _shared_settings(raw)
    canonical["category"] = category

    if category == TriggerCategory.SEGMENT.value:
        estimate = canonical.get("estimate") or {}
        canonical["segment"] = _segment({
            "mode": "exit" if raw.get("segmentMode") == "exit" or subtype == "segment_exited" else "enter",
            "segmentId": raw.get("segmentId"),
            "segmentName": raw.get("segmentName"),
            "estimatedAudience": first_present(as_number(raw.get("previewCount")), estimate.get("totalAudience")),
        })
    elif category == TriggerCategory.SHOPIFY_EVENT.value:
        shopify = as_dict(raw.get("shopifyEvent"))
        event_type = as_str(shopify.get("eventType"))
        if not event_type:
            if subtype in SHOPIFY_EVENT_TYPES:
                event_type = subtype
            else:
                event_type = LEGACY_EVENT_TYPES.get(subtype or "", DEFAULT_EVENT_TYPE)
        shopify["eventType"] = event_type
        shopify["productSelection"] = first_present(shopify.get("productSelection"), raw.get("productSelection"))
        canonical["shopifyEvent"] = _shopify_event(shopify)
    elif category == TriggerCategory.TIME_BASED.value:
        canonical["timeBased"] = _time_based(_legacy_time_based(raw, subtype))
    else:
        canonical["manual"] = _manual(as_dict(raw.get("manualTrigger")))
    return canonical


def _legacy_time_based(raw: Dict[str, Any], subtype: Optional[str]) -> Dict[str, Any]:
    if isinstance(raw.get("timeBased"), dict):
        return deepcopy(raw["timeBased"])
    for key, kind in (("attributeDate", "attribute_date"), ("recurringSchedule", "recurring_schedule")):
        if isinstance(raw.get(key), dict):
            resolved = deepcopy(raw[key])
            resolved.setdefault("type", kind)
            return resolved
    if raw.get("scheduledAt"):
        return {
            "type": "specific_datetime",
            "startsAt": as_str(raw.get("scheduledAt"), ""),
            "timezone": as_str(raw.get("timezone")) or DEFAULT_TIMEZONE,
        }
    if subtype in TIME_BASED_TYPES:
        return {"type": subtype}
    return {"type": "specific_datetime"}


# Legacy mirror
def legacy_trigger_type(config: TriggerConfiguration) -> str:
    """Legacy ``triggerType`` string for a canonical configuration."""
    if config.category == TriggerCategory.SEGMENT.value:
        return "segment_exited" if config.segment.mode == "exit" else "segment_joined"
    if config.category == TriggerCategory.SHOPIFY_EVENT.value:
        return config.shopifyEvent.eventType
    if config.category == TriggerCategory.TIME_BASED.value:
        kind = config.timeBased.type
        return "date_time" if kind == "specific_datetime" else kind
    return "manual_entry"


def to_legacy_mirror(config: Any) -> Dict[str, Any]:
    """
    Project a canonical configuration onto the flat legacy shape.

    The mirror is always regenerated from the canonical configuration and
    embeds it under ``triggerConfiguration``.
    """
    if not isinstance(config, TriggerConfiguration):
        config = normalize(config)
    data = config.to_dict()
    mirror: Dict[str, Any] = {
        "triggerConfiguration": data,
        "triggerType": legacy_trigger_type(config),
        "entryFrequency": deepcopy(data["entryFrequency"]),
        "entryWindow": deepcopy(data["entryWindow"]),
    }
    if "estimate" in data:
        mirror["estimate"] = deepcopy(data["estimate"])

    if config.category == TriggerCategory.SEGMENT.value:
        segment = data["segment"]
        for key in ("segmentId", "segmentName"):
            if segment.get(key) is not None:
                mirror[key] = segment[key]
        mirror["segmentMode"] = segment["mode"]
        preview = first_present(segment.get("estimatedAudience"), (data.get("estimate") or {}).get("totalAudience"))
        if preview is not None:
            mirror["previewCount"] = preview
    elif config.category == TriggerCategory.SHOPIFY_EVENT.value:
        mirror["shopifyEvent"] = deepcopy(data["shopifyEvent"])
        mirror["productSelection"] = deepcopy(data["shopifyEvent"]["productSelection"])
    elif config.category == TriggerCategory.TIME_BASED.value:
        time_based = data["timeBased"]
        mirror["timeBased"] = deepcopy(time_based)
        if time_based["type"] == "specific_datetime":
            mirror["scheduledAt"] = time_based["startsAt"]
            mirror["timezone"] = time_based["timezone"]
        elif time_based["type"] == "recurring_schedule":
            mirror["recurringSchedule"] = deepcopy(time_based)
        else:
            mirror["attributeDate"] = deepcopy(time_based)
    else:
        mirror["manualTrigger"] = deepcopy(data["manual"])
    return mirror


def derive_from_mirror(mirror: Any) -> TriggerConfiguration:
    """Rebuild a configuration from the flat mirror fields alone."""
    flat = {key: value for key, value in as_dict(mirror).items() if key != "triggerConfiguration"}
    return normalize(flat)


# Execution payload
def derive_payload(config: Any) -> Tuple[TriggerPayload, str]:
    """
    Map a configuration to the execution payload and display subtype.

    Returns:
        ``(payload, subtype)``, e.g. a cart-abandoned Shopify event yields
        type ``abandoned_cart`` and subtype ``cart_abandoned``.
    """
    if not isinstance(config, TriggerConfiguration):
        config = normalize(config)
    data = config.to_dict()

    if config.category == TriggerCategory.SEGMENT.value:
        return TriggerPayload(type="segment", segmentId=config.segment.segmentId), "segment_joined"
    if config.category == TriggerCategory.SHOPIFY_EVENT.value:
        trigger_type, subtype = SHOPIFY_EVENT_PAYLOADS.get(config.shopifyEvent.eventType, SHOPIFY_FALLBACK_PAYLOAD)
        return TriggerPayload(type=trigger_type, data={"shopifyEvent": data["shopifyEvent"]}), subtype
    if config.category == TriggerCategory.TIME_BASED.value:
        return TriggerPayload(type="custom_date", data={"timeBased": data["timeBased"]}), "date_time"
    return TriggerPayload(type="manual", data={"manual": data["manual"]}), "manual_entry"
