"""
Node catalog: display defaults for every known subtype.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from journey_builder.models.graph import NodeVariant


@dataclass(frozen=True)
class CatalogEntry:
    """Palette entry describing one node subtype."""
    subtype: str
    name: str
    description: str
    variant: str
    icon: str


@dataclass(frozen=True)
class CatalogCategory:
    id: str
    label: str
    variant: str
    entries: List[CatalogEntry]


NODE_CATALOG: List[CatalogCategory] = [
    CatalogCategory(
        id="triggers",
        label="Triggers",
        variant=NodeVariant.TRIGGER.value,
        entries=[
            CatalogEntry("unified_trigger", "Trigger", "Start when customers match trigger rules", "trigger", "zap"),
            CatalogEntry("segment_joined", "Segment Joined", "Start when a customer joins a segment", "trigger", "users"),
            CatalogEntry("order_placed", "Order Placed", "Start after an order is placed", "trigger", "shopping-bag"),
            CatalogEntry("cart_abandoned", "Cart Abandoned", "Start when a cart is abandoned", "trigger", "shopping-cart"),
            CatalogEntry("product_viewed", "Product Viewed", "Start when a product is viewed", "trigger", "eye"),
            CatalogEntry("event_trigger", "Event Trigger", "Start on a custom store event", "trigger", "zap"),
            CatalogEntry("date_time", "Date / Time", "Start at a date or on a schedule", "trigger", "calendar"),
            CatalogEntry("manual_entry", "Manual Entry", "Enroll customers by API or CSV", "trigger", "user"),
        ],
    ),
    CatalogCategory(
        id="actions",
        label="Actions",
        variant=NodeVariant.ACTION.value,
        entries=[
            CatalogEntry("send_whatsapp", "Send WhatsApp", "Send a WhatsApp template message", "action", "message-circle"),
            CatalogEntry("add_tag", "Add Tag", "Tag the customer", "action", "tag"),
            CatalogEntry("update_property", "Update Property", "Set a customer property", "action", "edit-3"),
            CatalogEntry("create_task", "Create Task", "Create a follow-up task", "action", "check-square"),
        ],
    ),
    CatalogCategory(
        id="decisions",
        label="Decisions",
        variant=NodeVariant.DECISION.value,
        entries=[
            CatalogEntry("if_else", "If / Else Condition", "Branch by condition", "decision", "git-branch"),
            CatalogEntry("split_test", "Split Test", "Split traffic randomly", "decision", "shuffle"),
            CatalogEntry(
                "ab_test", "A/B Test", "Experiment with multiple variants and measure outcomes", "experiment", "git-branch"
            ),
            CatalogEntry("behavior_split", "Behavior Split", "Split based on behavior", "decision", "trending-up"),
        ],
    ),
    CatalogCategory(
        id="delays",
        label="Delays",
        variant=NodeVariant.WAIT.value,
        entries=[
            CatalogEntry("fixed_delay", "Fixed Delay", "Wait X hours / days", "wait", "clock"),
            CatalogEntry("wait_until", "Wait Until", "Wait until date / time", "wait", "calendar-clock"),
            CatalogEntry("wait_for_event", "Wait for Event", "Wait for customer action", "wait", "bell"),
            CatalogEntry("optimal_send_time", "Smart Send Time", "Send in the best engagement window", "wait", "sparkles"),
            CatalogEntry("wait_for_attribute", "Wait for Attribute", "Wait until a property changes", "wait", "user-check"),
        ],
    ),
    CatalogCategory(
        id="goals",
        label="Goals",
        variant=NodeVariant.GOAL.value,
        entries=[
            CatalogEntry("goal_achieved", "Goal Achieved", "Track goal completion", "goal", "target"),
            CatalogEntry("order_goal", "Order Goal", "Track conversions tied to orders", "goal", "target"),
            CatalogEntry("exit_journey", "Exit Journey", "End journey for customer", "goal", "log-out"),
        ],
    ),
]

_BY_SUBTYPE: Dict[str, CatalogEntry] = {
    entry.subtype: entry for category in NODE_CATALOG for entry in category.entries
}


def find_catalog_entry(subtype: Optional[str]) -> Optional[CatalogEntry]:
    """Catalog entry for a subtype, or None when the subtype is unknown."""
    if not subtype:
        return None
    return _BY_SUBTYPE.get(subtype)


def catalog_as_dict() -> List[Dict[str, object]]:
    """Palette listing for API consumers."""
    return [
        {
            "id": category.id,
            "label": category.label,
            "variant": category.variant,
            "nodes": [
                {
                    "subtype": entry.subtype,
                    "name": entry.name,
                    "description": entry.description,
                    "variant": entry.variant,
                    "icon": entry.icon,
                }
                for entry in category.entries
            ],
        }
        for category in NODE_CATALOG
    ]
