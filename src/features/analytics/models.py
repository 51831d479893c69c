"""Analytics data models."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


class SentBy(str, Enum):
    """Who sent a chat message."""

    LEAD = "lead"
    OPERATOR = "operator"
    ASSISTANT = "assistant"


class ResponderKind(str, Enum):
    """Who answered a lead."""

    HUMAN = "human"
    ASSISTANT = "assistant"


class ResponseTimeClass(str, Enum):
    """Performance class of a mean response time."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    NO_DATA = "no_data"


class ChatMessage(BaseModel):
    """Message of a lead conversation, as stored by the CRM."""

    id: str
    lead_id: str
    clinic_id: str
    content: str = ""
    sent_by: SentBy
    # Raw value from storage; unparseable values are dropped during analysis
    created_at: datetime | str | None = None


class BusinessHoursConfig(BaseModel):
    """
    Weekly business hours of a clinic.

    Times are "HH:mm" strings in the clinic's own timezone. Timestamps
    checked against this config must already be in the same frame.
    """

    weekday_start: str = "08:00"
    weekday_end: str = "18:00"
    saturday_enabled: bool = False
    saturday_start: Optional[str] = None
    saturday_end: Optional[str] = None
    sunday_enabled: bool = False
    sunday_start: Optional[str] = None
    sunday_end: Optional[str] = None
    # Every day counts as closed
    closed: bool = False

    @field_validator(
        "weekday_start",
        "weekday_end",
        "saturday_start",
        "saturday_end",
        "sunday_start",
        "sunday_end",
    )
    @classmethod
    def normalize_time(cls, value: Optional[str]) -> Optional[str]:
        """Accept HH:mm or HH:mm:ss and keep HH:mm."""
        if value is None or value == "":
            return None
        if not _TIME_PATTERN.match(value):
            raise ValueError(f"Invalid time {value!r}, expected HH:mm")
        return value[:5]

    @model_validator(mode="after")
    def reject_overnight_windows(self) -> "BusinessHoursConfig":
        """Windows crossing midnight are not supported."""
        if self.weekday_start is None or self.weekday_end is None:
            raise ValueError("Weekday business hours are required")

        windows = [
            ("weekday", self.weekday_start, self.weekday_end),
            ("saturday", self.saturday_start, self.saturday_end),
            ("sunday", self.sunday_start, self.sunday_end),
        ]
        for day, start, end in windows:
            if start and end and end < start:
                raise ValueError(
                    f"{day} business hours end ({end}) before they start ({start})"
                )
        return self


class ResponseTimeFilters(BaseModel):
    """Which responses count toward the mean."""

    include_human: bool = True
    include_assistant: bool = True
    business_hours_only: bool = False


class ResponsePair(BaseModel):
    """A lead message and the reply that directly followed it."""

    lead_timestamp: datetime
    response_timestamp: datetime
    responder_kind: ResponderKind


class ResponseTimeDistribution(BaseModel):
    """Histogram of response times."""

    up_to_30_min: int = 0
    from_30_to_60_min: int = 0
    from_1_to_4_hours: int = 0
    over_4_hours: int = 0


class ResponseTimeBreakdown(BaseModel):
    """Means for fixed filter combinations plus the distribution."""

    human_mean_minutes: float = 0.0
    human_formatted_mean: str = "< 1min"
    assistant_mean_minutes: float = 0.0
    assistant_formatted_mean: str = "< 1min"
    business_hours_mean_minutes: float = 0.0
    business_hours_formatted_mean: str = "< 1min"
    distribution: ResponseTimeDistribution = Field(
        default_factory=ResponseTimeDistribution
    )


class ResponseTimeResult(BaseModel):
    """Response time statistics for a set of messages."""

    mean_minutes: float
    formatted_mean: str
    classification: ResponseTimeClass
    breakdown: ResponseTimeBreakdown
    sample_size: int


class ResponseTimeRequest(BaseModel):
    """Request body for computing response times over supplied messages."""

    messages: list[ChatMessage] = Field(default_factory=list, max_length=50_000)
    business_hours: Optional[BusinessHoursConfig] = None
    filters: ResponseTimeFilters = Field(default_factory=ResponseTimeFilters)


class DailyLeads(BaseModel):
    """Leads created on one day."""

    label: str  # "dd/MM"
    leads: int


class CategoryConversions(BaseModel):
    """Conversions for one service category."""

    category: str
    conversions: int


class AdPerformance(BaseModel):
    """Leads and conversions attributed to one ad."""

    ad: str
    leads: int
    conversions: int


class DashboardMetrics(BaseModel):
    """Complete dashboard metrics for a clinic and time window."""

    total_contacts: int
    leads_from_ads: int
    leads_with_ad_name: int
    scheduled_appointments: int
    completed_appointments: int
    conversion_rate: int
    realized_revenue: float
    leads_per_day: list[DailyLeads]
    conversions_by_category: list[CategoryConversions]
    leads_by_ad: list[AdPerformance]
    response_time: ResponseTimeResult
