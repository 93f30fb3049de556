"""
Delay configuration models.

``delayType`` selects the shape of ``specificConfig``; quiet hours, holiday
settings and throttling apply to every delay type.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from journey_builder.utils.constants import CUSTOMER_TIMEZONE

Number = Union[int, float]


class DelayType(str, Enum):
    """Delay behaviours."""
    FIXED_TIME = "fixed_time"
    WAIT_UNTIL_TIME = "wait_until_time"
    WAIT_FOR_EVENT = "wait_for_event"
    OPTIMAL_SEND_TIME = "optimal_send_time"
    WAIT_FOR_ATTRIBUTE = "wait_for_attribute"


class Duration(BaseModel):
    value: Number
    unit: Literal["minutes", "hours", "days", "weeks"] = "days"


class TimeOfDay(BaseModel):
    hour: int = Field(default=0, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class FixedTimeDelayConfig(BaseModel):
    type: Literal["fixed_time"] = "fixed_time"
    duration: Duration = Field(default_factory=lambda: Duration(value=1, unit="days"))


class WaitUntilTimeConfig(BaseModel):
    type: Literal["wait_until_time"] = "wait_until_time"
    time: TimeOfDay = Field(default_factory=lambda: TimeOfDay(hour=10, minute=0))
    timezone: str = CUSTOMER_TIMEZONE
    ifPassed: Literal["wait_until_tomorrow", "send_immediately", "skip"] = "wait_until_tomorrow"


class WaitForEventConfig(BaseModel):
    type: Literal["wait_for_event"] = "wait_for_event"
    eventName: str = ""
    eventFilters: List[Dict[str, Any]] = Field(default_factory=list)
    maxWaitTime: Duration = Field(default_factory=lambda: Duration(value=3, unit="days"))
    onTimeout: Literal["continue", "exit", "branch"] = "continue"


class OptimalWindow(BaseModel):
    duration: Duration = Field(default_factory=lambda: Duration(value=24, unit="hours"))


class OptimalSendTimeConfig(BaseModel):
    type: Literal["optimal_send_time"] = "optimal_send_time"
    window: OptimalWindow = Field(default_factory=OptimalWindow)
    fallbackTime: TimeOfDay = Field(default_factory=lambda: TimeOfDay(hour=10, minute=0))
    timezone: str = CUSTOMER_TIMEZONE


class WaitForAttributeConfig(BaseModel):
    type: Literal["wait_for_attribute"] = "wait_for_attribute"
    attributePath: str = ""
    targetValue: Any = ""
    maxWaitTime: Duration = Field(default_factory=lambda: Duration(value=7, unit="days"))
    onTimeout: Literal["continue", "exit", "branch"] = "continue"


DelaySpecificConfig = Annotated[
    Union[
        FixedTimeDelayConfig,
        WaitUntilTimeConfig,
        WaitForEventConfig,
        OptimalSendTimeConfig,
        WaitForAttributeConfig,
    ],
    Field(discriminator="type"),
]

SPECIFIC_CONFIG_DEFAULTS = {
    DelayType.FIXED_TIME.value: FixedTimeDelayConfig,
    DelayType.WAIT_UNTIL_TIME.value: WaitUntilTimeConfig,
    DelayType.WAIT_FOR_EVENT.value: WaitForEventConfig,
    DelayType.OPTIMAL_SEND_TIME.value: OptimalSendTimeConfig,
    DelayType.WAIT_FOR_ATTRIBUTE.value: WaitForAttributeConfig,
}


class QuietHours(BaseModel):
    enabled: bool = False
    startTime: TimeOfDay = Field(default_factory=lambda: TimeOfDay(hour=21, minute=0))
    endTime: TimeOfDay = Field(default_factory=lambda: TimeOfDay(hour=9, minute=0))
    timezone: str = CUSTOMER_TIMEZONE


class HolidaySettings(BaseModel):
    skipWeekends: bool = False
    skipHolidays: bool = False
    holidayCalendar: str = "us"


class Throttling(BaseModel):
    enabled: bool = False
    maxUsersPerHour: Optional[int] = None
    maxUsersPerDay: Optional[int] = None


class DelayConfiguration(BaseModel):
    """Canonical delay configuration."""

    model_config = ConfigDict(use_enum_values=True)

    delayType: DelayType = DelayType.FIXED_TIME
    specificConfig: DelaySpecificConfig = Field(default_factory=FixedTimeDelayConfig)
    quietHours: QuietHours = Field(default_factory=QuietHours)
    holidaySettings: HolidaySettings = Field(default_factory=HolidaySettings)
    throttling: Throttling = Field(default_factory=Throttling)

    @model_validator(mode="after")
    def align_specific_config(self):
        """specificConfig always matches delayType."""
        if self.specificConfig.type != self.delayType:
            self.specificConfig = SPECIFIC_CONFIG_DEFAULTS[self.delayType]()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json")
