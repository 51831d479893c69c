"""Response time and dashboard analytics module."""

from .models import BusinessHoursConfig, ChatMessage, ResponseTimeFilters, ResponseTimeResult
from .response_time import (
    calculate_response_time,
    classify_response_time,
    extract_response_pairs,
    format_response_time,
    is_within_business_hours,
)

__all__ = [
    "BusinessHoursConfig",
    "ChatMessage",
    "ResponseTimeFilters",
    "ResponseTimeResult",
    "calculate_response_time",
    "classify_response_time",
    "extract_response_pairs",
    "format_response_time",
    "is_within_business_hours",
]
