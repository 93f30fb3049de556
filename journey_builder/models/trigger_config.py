"""
Trigger configuration models.

A trigger configuration is tagged by ``category``; only the sub-configuration
matching the category is populated. Entry frequency and entry window are
shared by every category and are always present.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from journey_builder.utils.constants import DEFAULT_TIMEZONE

Number = Union[int, float]
DurationUnit = Literal["minutes", "hours", "days", "weeks"]


class TriggerCategory(str, Enum):
    """Trigger source categories."""
    SEGMENT = "segment"
    SHOPIFY_EVENT = "shopify_event"
    TIME_BASED = "time_based"
    MANUAL = "manual"


class DurationValue(BaseModel):
    """Amount of time used by cooldowns and offsets."""
    amount: Number
    unit: DurationUnit = "days"


class SegmentTriggerConfig(BaseModel):
    """Customers entering (or leaving) a segment."""
    mode: Literal["enter", "exit"] = "enter"
    segmentId: Optional[str] = None
    segmentName: Optional[str] = None
    estimatedAudience: Optional[Number] = None


class ProductSelectionConfig(BaseModel):
    """Products or collections an event must concern."""
    mode: Literal["any", "specific", "collections"] = "any"
    productIds: List[str] = Field(default_factory=list)
    collectionIds: List[str] = Field(default_factory=list)
    summary: Optional[str] = None


class ShopifyEventTriggerConfig(BaseModel):
    """Store event trigger."""
    eventType: str = "order_placed"
    productSelection: ProductSelectionConfig = Field(default_factory=ProductSelectionConfig)
    filters: Optional[Dict[str, Any]] = None
    advanced: Optional[Dict[str, Any]] = None
    customEventName: Optional[str] = None


class SpecificDateTriggerConfig(BaseModel):
    type: Literal["specific_datetime"] = "specific_datetime"
    startsAt: str = ""
    timezone: str = DEFAULT_TIMEZONE


class RecurringScheduleTriggerConfig(BaseModel):
    type: Literal["recurring_schedule"] = "recurring_schedule"
    cadence: Literal["daily", "weekly", "monthly"] = "weekly"
    daysOfWeek: List[str] = Field(default_factory=lambda: ["monday"])
    dayOfMonth: Optional[int] = None
    timeOfDay: str = "09:00"
    timezone: str = DEFAULT_TIMEZONE


class AttributeDateTriggerConfig(BaseModel):
    type: Literal["attribute_date"] = "attribute_date"
    attributeKey: str = ""
    offset: DurationValue = Field(default_factory=lambda: DurationValue(amount=0, unit="days"))
    timezoneBehavior: Literal["customer", "fixed"] = "customer"
    fallbackTime: str = "09:00"


TimeBasedTriggerConfig = Annotated[
    Union[SpecificDateTriggerConfig, RecurringScheduleTriggerConfig, AttributeDateTriggerConfig],
    Field(discriminator="type"),
]


class ManualTriggerConfig(BaseModel):
    """Customers enrolled by API call or CSV upload."""
    mode: Literal["api", "csv"] = "api"
    notes: Optional[str] = None


class EntryFrequencySettings(BaseModel):
    allowReentry: bool = False
    cooldown: Optional[DurationValue] = None
    entryLimit: Optional[Number] = None


class EntryWindowSettings(BaseModel):
    startsAt: Optional[str] = None
    endsAt: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE


class AudienceEstimate(BaseModel):
    dailyEntries: Optional[Number] = None
    totalAudience: Optional[Number] = None
    warnings: List[str] = Field(default_factory=list)
    conflicts: List[Dict[str, Any]] = Field(default_factory=list)
    lastCalculatedAt: Optional[str] = None


# Sub-configuration field for each category
CATEGORY_FIELDS: Dict[str, str] = {
    TriggerCategory.SEGMENT.value: "segment",
    TriggerCategory.SHOPIFY_EVENT.value: "shopifyEvent",
    TriggerCategory.TIME_BASED.value: "timeBased",
    TriggerCategory.MANUAL.value: "manual",
}

_CATEGORY_DEFAULTS = {
    TriggerCategory.SEGMENT.value: SegmentTriggerConfig,
    TriggerCategory.SHOPIFY_EVENT.value: ShopifyEventTriggerConfig,
    TriggerCategory.TIME_BASED.value: SpecificDateTriggerConfig,
    TriggerCategory.MANUAL.value: ManualTriggerConfig,
}


class TriggerConfiguration(BaseModel):
    """Canonical, category-tagged trigger configuration."""

    model_config = ConfigDict(use_enum_values=True)

    category: TriggerCategory
    segment: Optional[SegmentTriggerConfig] = None
    shopifyEvent: Optional[ShopifyEventTriggerConfig] = None
    timeBased: Optional[TimeBasedTriggerConfig] = None
    manual: Optional[ManualTriggerConfig] = None
    entryFrequency: EntryFrequencySettings = Field(default_factory=EntryFrequencySettings)
    entryWindow: EntryWindowSettings = Field(default_factory=EntryWindowSettings)
    estimate: Optional[AudienceEstimate] = None

    @model_validator(mode="after")
    def ensure_category_config(self):
        """The sub-configuration for the active category is always populated."""
        field = CATEGORY_FIELDS[self.category]
        if getattr(self, field) is None:
            setattr(self, field, _CATEGORY_DEFAULTS[self.category]())
        return self

    @property
    def category_config(self):
        """Sub-configuration of the active category."""
        return getattr(self, CATEGORY_FIELDS[self.category])

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        data = self.model_dump(mode="json", exclude_none=True)
        # Nullable leaves that must always be present
        data["entryFrequency"].setdefault("cooldown", None)
        data["entryFrequency"].setdefault("entryLimit", None)
        data["entryWindow"].setdefault("startsAt", None)
        data["entryWindow"].setdefault("endsAt", None)
        if "segment" in data:
            data["segment"].setdefault("estimatedAudience", None)
        time_based = data.get("timeBased")
        if time_based and time_based.get("type") == "recurring_schedule":
            time_based.setdefault("dayOfMonth", None)
        return data
