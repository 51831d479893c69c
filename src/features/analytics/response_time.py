"""
Response time analysis for lead conversations.

Finds every lead message that was directly followed by a reply from an
operator or the assistant, measures the delay and aggregates it into
means, a distribution and a performance class.

All functions are pure: inputs are never mutated and identical inputs
always give identical results.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from .models import (
    BusinessHoursConfig,
    ChatMessage,
    ResponderKind,
    ResponsePair,
    ResponseTimeBreakdown,
    ResponseTimeClass,
    ResponseTimeDistribution,
    ResponseTimeFilters,
    ResponseTimeResult,
    SentBy,
)

logger = logging.getLogger(__name__)

# Delays above one week are not representative
MAX_RESPONSE_MINUTES = 10080

SATURDAY = 5
SUNDAY = 6

RESPONDER_KINDS = {
    SentBy.OPERATOR: ResponderKind.HUMAN,
    SentBy.ASSISTANT: ResponderKind.ASSISTANT,
}

HUMAN_ONLY = ResponseTimeFilters(include_human=True, include_assistant=False)
ASSISTANT_ONLY = ResponseTimeFilters(include_human=False, include_assistant=True)
BUSINESS_HOURS_ONLY = ResponseTimeFilters(business_hours_only=True)

_datetime_adapter = TypeAdapter(datetime)


def parse_timestamp(value: datetime | str | None) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Returns None when the value is missing or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def _comparable(timestamp: datetime) -> datetime:
    # Naive values are ordered as UTC so they compare with aware ones.
    # Wall-clock fields stay untouched.
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def extract_response_pairs(messages: Iterable[ChatMessage]) -> list[ResponsePair]:
    """
    Extract lead -> reply pairs from chat messages.

    Messages are grouped by lead and sorted by creation time (ties keep
    their input order). Only directly adjacent transitions from a lead
    message to an operator or assistant message count, so a lead message
    followed by another lead message never starts a pair.

    Args:
        messages: Chat messages of one clinic, in any order

    Returns:
        Pairs grouped by lead, chronological within each lead
    """
    by_lead: dict[str, list[tuple[datetime, SentBy]]] = defaultdict(list)

    for message in messages:
        timestamp = parse_timestamp(message.created_at)
        if timestamp is None:
            logger.debug(
                "Skipping message with unparseable timestamp: id=%s created_at=%r",
                message.id,
                message.created_at,
            )
            continue
        by_lead[message.lead_id].append((timestamp, message.sent_by))

    pairs = []
    for thread in by_lead.values():
        ordered = sorted(thread, key=lambda item: _comparable(item[0]))

        for (sent_at, sender), (replied_at, replier) in zip(ordered, ordered[1:]):
            if sender != SentBy.LEAD or replier not in RESPONDER_KINDS:
                continue
            pairs.append(
                ResponsePair(
                    lead_timestamp=sent_at,
                    response_timestamp=replied_at,
                    responder_kind=RESPONDER_KINDS[replier],
                )
            )

    return pairs


def is_within_business_hours(timestamp: datetime, config: BusinessHoursConfig) -> bool:
    """
    Check whether a timestamp falls inside the configured business hours.

    The timestamp's own wall clock is used; no timezone conversion is done.
    Weekend days that are enabled but lack a bound count as closed.
    """
    if config.closed:
        return False

    current_time = f"{timestamp.hour:02d}:{timestamp.minute:02d}"
    day = timestamp.weekday()

    if day == SATURDAY:
        start, end = config.saturday_start, config.saturday_end
        if not config.saturday_enabled or not start or not end:
            return False
        return start <= current_time <= end

    if day == SUNDAY:
        start, end = config.sunday_start, config.sunday_end
        if not config.sunday_enabled or not start or not end:
            return False
        return start <= current_time <= end

    return config.weekday_start <= current_time <= config.weekday_end


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((_comparable(end) - _comparable(start)) / timedelta(minutes=1))


def _collect_minutes(
    pairs: list[ResponsePair],
    business_hours: Optional[BusinessHoursConfig],
    filters: ResponseTimeFilters,
) -> list[int]:
    """Apply one filter combination and return the accepted delays."""
    minutes = []
    for pair in pairs:
        if filters.business_hours_only and business_hours is not None:
            if not is_within_business_hours(pair.response_timestamp, business_hours):
                continue

        if pair.responder_kind == ResponderKind.HUMAN and not filters.include_human:
            continue
        if pair.responder_kind == ResponderKind.ASSISTANT and not filters.include_assistant:
            continue

        delay = minutes_between(pair.lead_timestamp, pair.response_timestamp)
        if 0 <= delay <= MAX_RESPONSE_MINUTES:
            minutes.append(delay)

    return minutes


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def build_distribution(minutes: list[int]) -> ResponseTimeDistribution:
    """Bucket delays into <=30min, 30-60min, 1-4h and >4h."""
    distribution = ResponseTimeDistribution()
    for value in minutes:
        if value <= 30:
            distribution.up_to_30_min += 1
        elif value <= 60:
            distribution.from_30_to_60_min += 1
        elif value <= 240:
            distribution.from_1_to_4_hours += 1
        else:
            distribution.over_4_hours += 1
    return distribution


def format_response_time(minutes: float) -> str:
    """
    Format minutes for display.

    Examples: "< 1min", "45min", "2h", "2h 5min", "1d", "3d 4h".
    """
    if minutes < 1:
        return "< 1min"

    total = int(minutes)
    if total < 60:
        return f"{total}min"

    hours, remaining_minutes = divmod(total, 60)
    if hours < 24:
        if remaining_minutes == 0:
            return f"{hours}h"
        return f"{hours}h {remaining_minutes}min"

    days, remaining_hours = divmod(hours, 24)
    if remaining_hours == 0:
        return f"{days}d"
    return f"{days}d {remaining_hours}h"


def classify_response_time(minutes: float) -> ResponseTimeClass:
    """Classify a mean response time (thresholds are inclusive)."""
    if minutes <= 60:
        return ResponseTimeClass.EXCELLENT
    if minutes <= 240:
        return ResponseTimeClass.GOOD
    if minutes <= 1440:
        return ResponseTimeClass.FAIR
    return ResponseTimeClass.POOR


def calculate_response_time(
    messages: Iterable[ChatMessage],
    business_hours: Optional[BusinessHoursConfig] = None,
    filters: Optional[ResponseTimeFilters] = None,
) -> ResponseTimeResult:
    """
    Calculate response time statistics.

    The overall mean and the distribution follow ``filters``. The human,
    assistant and business hours means in the breakdown are separate passes
    over the same pairs with fixed filters; they are not slices of the
    overall pass and do not have to agree with it.

    Args:
        messages: Chat messages of one clinic and time window
        business_hours: Clinic business hours, if configured
        filters: Which replies count (defaults: all replies, any hour)

    Returns:
        Mean, formatted mean, classification, breakdown and sample size.
        An empty sample reports a mean of 0 and the ``no_data`` class.
    """
    filters = filters or ResponseTimeFilters()
    pairs = extract_response_pairs(messages)

    overall = _collect_minutes(pairs, business_hours, filters)
    human = _mean(_collect_minutes(pairs, business_hours, HUMAN_ONLY))
    assistant = _mean(_collect_minutes(pairs, business_hours, ASSISTANT_ONLY))
    in_hours = _mean(_collect_minutes(pairs, business_hours, BUSINESS_HOURS_ONLY))

    mean = _mean(overall)
    if overall:
        classification = classify_response_time(mean)
    else:
        classification = ResponseTimeClass.NO_DATA

    return ResponseTimeResult(
        mean_minutes=mean,
        formatted_mean=format_response_time(mean),
        classification=classification,
        breakdown=ResponseTimeBreakdown(
            human_mean_minutes=human,
            human_formatted_mean=format_response_time(human),
            assistant_mean_minutes=assistant,
            assistant_formatted_mean=format_response_time(assistant),
            business_hours_mean_minutes=in_hours,
            business_hours_formatted_mean=format_response_time(in_hours),
            distribution=build_distribution(overall),
        ),
        sample_size=len(overall),
    )
