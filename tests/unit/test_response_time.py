"""Response time analysis tests."""

from datetime import datetime, timedelta

import pytest

from src.features.analytics.models import (
    BusinessHoursConfig,
    ChatMessage,
    ResponderKind,
    ResponseTimeClass,
    ResponseTimeFilters,
)
from src.features.analytics.response_time import (
    calculate_response_time,
    classify_response_time,
    extract_response_pairs,
    format_response_time,
    minutes_between,
)

# Monday
BASE = datetime(2024, 5, 6, 10, 0)


def message(lead_id: str, sent_by: str, minutes: float, message_id: str | None = None):
    created_at = BASE + timedelta(minutes=minutes)
    return ChatMessage(
        id=message_id or f"{lead_id}-{sent_by}-{minutes}",
        lead_id=lead_id,
        clinic_id="clinic-1",
        content="hello",
        sent_by=sent_by,
        created_at=created_at.isoformat(),
    )


class TestExtractResponsePairs:
    def test_lead_followed_by_operator_makes_one_pair(self):
        pairs = extract_response_pairs(
            [message("a", "lead", 0), message("a", "operator", 15)]
        )
        assert len(pairs) == 1
        assert pairs[0].responder_kind == ResponderKind.HUMAN
        assert minutes_between(pairs[0].lead_timestamp, pairs[0].response_timestamp) == 15

    def test_only_adjacent_lead_message_pairs(self):
        pairs = extract_response_pairs(
            [
                message("a", "lead", 0),
                message("a", "lead", 5),
                message("a", "assistant", 7),
            ]
        )
        assert len(pairs) == 1
        assert pairs[0].lead_timestamp == BASE + timedelta(minutes=5)
        assert pairs[0].responder_kind == ResponderKind.ASSISTANT

    def test_messages_are_sorted_per_lead(self):
        pairs = extract_response_pairs(
            [
                message("a", "operator", 20),
                message("b", "lead", 1),
                message("a", "lead", 10),
                message("b", "assistant", 2),
            ]
        )
        assert len(pairs) == 2
        assert {p.responder_kind for p in pairs} == {
            ResponderKind.HUMAN,
            ResponderKind.ASSISTANT,
        }

    def test_reply_before_any_lead_message_is_ignored(self):
        pairs = extract_response_pairs(
            [message("a", "operator", 0), message("a", "operator", 5)]
        )
        assert pairs == []

    def test_equal_timestamps_keep_input_order(self):
        lead_first = [message("a", "lead", 0), message("a", "operator", 0)]
        reply_first = [message("a", "operator", 0), message("a", "lead", 0)]

        assert len(extract_response_pairs(lead_first)) == 1
        assert extract_response_pairs(reply_first) == []

    def test_unparseable_timestamp_is_skipped(self):
        broken = ChatMessage(
            id="x",
            lead_id="a",
            clinic_id="clinic-1",
            sent_by="lead",
            created_at="not a date",
        )
        pairs = extract_response_pairs(
            [message("a", "lead", 0), broken, message("a", "operator", 3)]
        )
        assert len(pairs) == 1

    def test_missing_timestamp_is_skipped(self):
        undated = ChatMessage(id="x", lead_id="a", clinic_id="clinic-1", sent_by="lead")
        pairs = extract_response_pairs(
            [message("a", "lead", 0), undated, message("a", "operator", 5)]
        )
        assert len(pairs) == 1
        assert undated.created_at is None

    def test_input_is_not_mutated(self):
        messages = [message("a", "operator", 10), message("a", "lead", 0)]
        snapshot = [m.model_copy() for m in messages]

        extract_response_pairs(messages)

        assert messages == snapshot

    def test_mixed_naive_and_aware_timestamps(self):
        pairs = extract_response_pairs(
            [
                message("a", "lead", 0),
                ChatMessage(
                    id="r",
                    lead_id="a",
                    clinic_id="clinic-1",
                    sent_by="operator",
                    created_at="2024-05-06T10:30:00Z",
                ),
            ]
        )
        assert len(pairs) == 1
        assert minutes_between(pairs[0].lead_timestamp, pairs[0].response_timestamp) == 30


class TestFormatResponseTime:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (0, "< 1min"),
            (0.5, "< 1min"),
            (1, "1min"),
            (59, "59min"),
            (59.9, "59min"),
            (60, "1h"),
            (125, "2h 5min"),
            (1439, "23h 59min"),
            (1440, "1d"),
            (1500, "1d 1h"),
            (3000, "2d 2h"),
        ],
    )
    def test_format(self, minutes, expected):
        assert format_response_time(minutes) == expected


class TestClassifyResponseTime:
    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (0, ResponseTimeClass.EXCELLENT),
            (60, ResponseTimeClass.EXCELLENT),
            (61, ResponseTimeClass.GOOD),
            (240, ResponseTimeClass.GOOD),
            (241, ResponseTimeClass.FAIR),
            (1440, ResponseTimeClass.FAIR),
            (1441, ResponseTimeClass.POOR),
        ],
    )
    def test_classify(self, minutes, expected):
        assert classify_response_time(minutes) == expected


class TestCalculateResponseTime:
    def test_mean_and_distribution(self):
        messages = [
            message("a", "lead", 0),
            message("a", "operator", 10),
            message("b", "lead", 0),
            message("b", "assistant", 45),
            message("c", "lead", 0),
            message("c", "operator", 120),
            message("d", "lead", 0),
            message("d", "operator", 300),
        ]

        result = calculate_response_time(messages)

        assert result.sample_size == 4
        assert result.mean_minutes == pytest.approx((10 + 45 + 120 + 300) / 4)
        assert result.formatted_mean == "1h 58min"
        assert result.classification == ResponseTimeClass.GOOD
        distribution = result.breakdown.distribution
        assert distribution.up_to_30_min == 1
        assert distribution.from_30_to_60_min == 1
        assert distribution.from_1_to_4_hours == 1
        assert distribution.over_4_hours == 1

    def test_distribution_bounds_are_inclusive(self):
        messages = []
        for lead, delay in [("a", 30), ("b", 60), ("c", 240), ("d", 241)]:
            messages += [message(lead, "lead", 0), message(lead, "operator", delay)]

        distribution = calculate_response_time(messages).breakdown.distribution

        assert distribution.up_to_30_min == 1
        assert distribution.from_30_to_60_min == 1
        assert distribution.from_1_to_4_hours == 1
        assert distribution.over_4_hours == 1

    def test_outlier_bound(self):
        included = [message("a", "lead", 0), message("a", "operator", 10080)]
        excluded = [message("b", "lead", 0), message("b", "operator", 10081)]

        result = calculate_response_time(included + excluded)

        assert result.sample_size == 1
        assert result.mean_minutes == 10080
        assert result.breakdown.human_mean_minutes == 10080
        assert result.breakdown.distribution.over_4_hours == 1

    def test_fractional_minutes_are_truncated(self):
        messages = [message("a", "lead", 0), message("a", "operator", 1.9)]
        assert calculate_response_time(messages).mean_minutes == 1

    def test_excluding_both_responders_gives_empty_result(self):
        messages = [message("a", "lead", 0), message("a", "operator", 10)] * 5
        filters = ResponseTimeFilters(include_human=False, include_assistant=False)

        result = calculate_response_time(messages, filters=filters)

        assert result.sample_size == 0
        assert result.mean_minutes == 0
        assert result.classification == ResponseTimeClass.NO_DATA
        assert result.formatted_mean == "< 1min"

    def test_no_messages(self):
        result = calculate_response_time([])
        assert result.sample_size == 0
        assert result.mean_minutes == 0
        assert result.classification == ResponseTimeClass.NO_DATA

    def test_responder_filters(self):
        messages = [
            message("a", "lead", 0),
            message("a", "operator", 20),
            message("b", "lead", 0),
            message("b", "assistant", 2),
        ]

        human = calculate_response_time(
            messages, filters=ResponseTimeFilters(include_assistant=False)
        )
        assistant = calculate_response_time(
            messages, filters=ResponseTimeFilters(include_human=False)
        )

        assert human.mean_minutes == 20
        assert assistant.mean_minutes == 2

    def test_breakdown_means_ignore_caller_filters(self):
        messages = [
            message("a", "lead", 0),
            message("a", "operator", 20),
            message("b", "lead", 0),
            message("b", "assistant", 2),
        ]
        filters = ResponseTimeFilters(include_human=False)

        result = calculate_response_time(messages, filters=filters)

        assert result.mean_minutes == 2
        assert result.breakdown.human_mean_minutes == 20
        assert result.breakdown.assistant_mean_minutes == 2
        assert result.breakdown.business_hours_mean_minutes == 11

    def test_business_hours_filter_uses_response_timestamp(self):
        hours = BusinessHoursConfig(weekday_start="08:00", weekday_end="18:00")
        messages = [
            # Lead writes at 17:50 and gets a reply at 18:30 (after hours)
            message("a", "lead", 470),
            message("a", "operator", 510),
            # Lead writes at 07:50 and gets a reply at 08:10 (inside hours)
            message("b", "lead", -130),
            message("b", "operator", -110),
        ]

        result = calculate_response_time(
            messages, hours, ResponseTimeFilters(business_hours_only=True)
        )

        assert result.sample_size == 1
        assert result.mean_minutes == 20
        assert result.breakdown.business_hours_mean_minutes == 20

    def test_business_hours_filter_without_config_keeps_everything(self):
        messages = [message("a", "lead", 600), message("a", "operator", 700)]

        result = calculate_response_time(
            messages, None, ResponseTimeFilters(business_hours_only=True)
        )

        assert result.sample_size == 1

    def test_reply_sorted_before_lead_message_does_not_count(self):
        messages = [
            message("a", "lead", 10),
            ChatMessage(
                id="r",
                lead_id="a",
                clinic_id="clinic-1",
                sent_by="operator",
                created_at=BASE.isoformat(),
            ),
            message("a", "lead", 20),
        ]
        assert calculate_response_time(messages).sample_size == 0

    def test_is_deterministic(self):
        messages = [
            message("a", "lead", 0),
            message("a", "operator", 12),
            message("b", "lead", 3),
            message("b", "assistant", 4),
        ]
        hours = BusinessHoursConfig()

        first = calculate_response_time(messages, hours)
        second = calculate_response_time(messages, hours)

        assert first.model_dump() == second.model_dump()

    def test_accepts_datetime_values(self):
        messages = [
            ChatMessage(id="1", lead_id="a", clinic_id="c", sent_by="lead", created_at=BASE),
            ChatMessage(
                id="2",
                lead_id="a",
                clinic_id="c",
                sent_by="assistant",
                created_at=BASE + timedelta(minutes=3),
            ),
        ]
        assert calculate_response_time(messages).mean_minutes == 3
