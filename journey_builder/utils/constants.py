"""
Constants used throughout the application.
"""

from typing import Dict, List, Tuple

# HTTP Error Response Codes
ERROR_RESPONSES: Dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}

# Journey statuses accepted by the storage service
JOURNEY_STATUSES: List[str] = ["DRAFT", "ACTIVE", "PAUSED"]
DEFAULT_JOURNEY_STATUS = "DRAFT"

DEFAULT_TIMEZONE = "UTC"
CUSTOMER_TIMEZONE = "customer"

# Trigger categories
TRIGGER_CATEGORIES: List[str] = ["segment", "shopify_event", "time_based", "manual"]

# Legacy trigger subtype -> trigger category.
# Kept as data: several subtypes fold into one category and the table is
# extended by hand whenever the storage service grows a new legacy subtype.
LEGACY_SUBTYPE_CATEGORIES: Dict[str, str] = {
    "segment_joined": "segment",
    "segment_exited": "segment",
    "order_placed": "shopify_event",
    "cart_abandoned": "shopify_event",
    "abandoned_cart": "shopify_event",
    "product_viewed": "shopify_event",
    "event_trigger": "shopify_event",
    "unified_trigger": "shopify_event",
    "date_time": "time_based",
    "specific_datetime": "time_based",
    "recurring_schedule": "time_based",
    "attribute_date": "time_based",
    "manual_entry": "manual",
}

# Domain trigger payload type -> trigger category
TRIGGER_TYPE_CATEGORIES: Dict[str, str] = {
    "segment": "segment",
    "order_placed": "shopify_event",
    "abandoned_cart": "shopify_event",
    "product_viewed": "shopify_event",
    "tag_added": "shopify_event",
    "first_purchase": "shopify_event",
    "repeat_purchase": "shopify_event",
    "webhook": "shopify_event",
    "birthday": "time_based",
    "custom_date": "time_based",
    "manual": "manual",
}

# Domain trigger payload type -> display subtype
TRIGGER_TYPE_TO_SUBTYPE: Dict[str, str] = {
    "segment": "segment_joined",
    "product_viewed": "product_viewed",
    "order_placed": "order_placed",
    "abandoned_cart": "cart_abandoned",
    "tag_added": "event_trigger",
    "first_purchase": "event_trigger",
    "repeat_purchase": "event_trigger",
    "birthday": "date_time",
    "custom_date": "date_time",
    "webhook": "event_trigger",
    "manual": "manual_entry",
}

# Shopify event type -> (domain trigger type, display subtype)
SHOPIFY_EVENT_PAYLOADS: Dict[str, Tuple[str, str]] = {
    "cart_abandoned": ("abandoned_cart", "cart_abandoned"),
    "product_viewed": ("product_viewed", "product_viewed"),
    "order_placed": ("order_placed", "order_placed"),
}
SHOPIFY_FALLBACK_PAYLOAD: Tuple[str, str] = ("webhook", "event_trigger")

SHOPIFY_EVENT_TYPES: List[str] = [
    "product_viewed",
    "cart_abandoned",
    "order_placed",
    "customer_created",
    "product_added_to_cart",
    "checkout_started",
    "custom_event",
    "price_drop",
    "back_in_stock",
    "browse_abandonment",
    "cod_order_placed",
    "repeat_purchase",
    "review_requested",
    "subscription_created",
    "subscription_cancelled",
    "date_property_trigger",
    "whatsapp_reply_received",
    "whatsapp_button_clicked",
    "utm_link_clicked",
    "campaign_opened",
]

TIME_BASED_TYPES: List[str] = ["specific_datetime", "recurring_schedule", "attribute_date"]
DURATION_UNITS: List[str] = ["minutes", "hours", "days", "weeks"]
DELAY_UNITS: List[str] = ["minutes", "hours", "days"]

# Delay type -> display subtype
DELAY_TYPE_SUBTYPES: Dict[str, str] = {
    "fixed_time": "fixed_delay",
    "wait_until_time": "wait_until",
    "wait_for_event": "wait_for_event",
    "optimal_send_time": "optimal_send_time",
    "wait_for_attribute": "wait_for_attribute",
}

# Action kind -> display subtype
ACTION_KIND_SUBTYPES: Dict[str, str] = {
    "whatsapp_template": "send_whatsapp",
    "add_tag": "add_tag",
    "update_property": "update_property",
    "create_task": "create_task",
}

# Decision source handles
TRUE_HANDLES = ("yes", "true")
FALSE_HANDLES = ("no", "false")
DEFAULT_TRUE_LABEL = "Yes"
DEFAULT_FALSE_LABEL = "No"
LEGACY_CONDITION_KEYS: Tuple[str, ...] = ("conditionType", "conditionJoin", "conditions", "trueLabel", "falseLabel")

EXPERIMENT_SUBTYPE = "ab_test"
EXIT_SUBTYPE = "exit_journey"
# Graph meta key recording that a goal-variant node is an exit node
EXIT_META_KEY = "exitNode"

# Cache keys
JOURNEY_CACHE_KEY = "journey:{journey_id}"
JOURNEY_DRAFT_CACHE_KEY = "journey:{journey_id}:draft"
JOURNEY_STATS_CACHE_KEY = "journey:{journey_id}:stats"

# Snapshot reasons
SNAPSHOT_NODE_REMOVED = "Auto snapshot • Node removed"
SNAPSHOT_BEFORE_ACTIVATION = "Snapshot before activation"

# Validation statuses
VALIDATION_PASS = "pass"
VALIDATION_NEEDS_ATTENTION = "needs_attention"
VALIDATION_FAIL = "fail"
DEFAULT_ISSUE_MESSAGES = {"error": "Validation error", "warning": "Validation warning"}

# Logging Context Keys
LOG_CONTEXT_REQUEST_ID = "request_id"
LOG_CONTEXT_JOURNEY_ID = "journey_id"
LOG_CONTEXT_NODE_ID = "node_id"
LOG_CONTEXT_SAVE_REASON = "save_reason"
LOG_CONTEXT_DURATION = "duration_ms"
LOG_CONTEXT_RESOURCE = "resource"
LOG_CONTEXT_ATTEMPT = "attempt"
