"""Tests for recurring time-block expansion."""

from datetime import timedelta

import pytz

from conftest import make_block, utc
from opsuite.domain.scheduling.recurrence import (
    expand_recurring_block,
    expand_time_blocks,
    make_instance_id,
    parse_instance_id,
)


class TestInstanceIds:
    def test_make_and_parse(self):
        assert make_instance_id(12, 3) == "12_3"
        assert parse_instance_id("12_3") == (12, 3)

    def test_plain_ids_are_not_instances(self):
        assert parse_instance_id("12") is None
        assert parse_instance_id("abc_1") is None
        assert parse_instance_id("") is None


class TestWeekly:
    def test_saturday_holiday_over_three_weeks(self):
        # Template on Saturday 2025-03-01 10:00-12:00, window covers the next three Saturdays
        block = make_block(
            1, utc(2025, 3, 1, 10), utc(2025, 3, 1, 12),
            title="Holiday", block_type="holiday",
            is_recurring=True, recurrence_pattern="weekly", block_id=7,
        )
        instances = expand_time_blocks([block], utc(2025, 3, 2), utc(2025, 3, 23))

        assert len(instances) == 3
        assert [i.start_time.date().isoformat() for i in instances] == [
            "2025-03-08", "2025-03-15", "2025-03-22",
        ]
        for instance in instances:
            assert instance.start_time.weekday() == 5
            assert (instance.start_time.hour, instance.start_time.minute) == (10, 0)
            assert instance.end_time - instance.start_time == timedelta(hours=2)
            assert instance.is_recurring_instance
            assert instance.original_id == 7
            assert instance.type == "holiday"
        assert [i.id for i in instances] == ["7_1", "7_2", "7_3"]

    def test_ids_are_stable_across_calls(self):
        block = make_block(
            1, utc(2025, 3, 1, 10), utc(2025, 3, 1, 12),
            is_recurring=True, recurrence_pattern="weekly", block_id=7,
        )
        first = expand_time_blocks([block], utc(2025, 3, 2), utc(2025, 4, 30))
        second = expand_time_blocks([block], utc(2025, 3, 2), utc(2025, 4, 30))
        assert first == second

    def test_keeps_local_time_across_dst(self):
        chicago = pytz.timezone("America/Chicago")
        # 09:00 CST on Saturday 2025-03-01 is 15:00 UTC
        block = make_block(
            1, utc(2025, 3, 1, 15), utc(2025, 3, 1, 16),
            is_recurring=True, recurrence_pattern="weekly", block_id=3,
        )
        instances = expand_time_blocks([block], utc(2025, 3, 14), utc(2025, 3, 17), tz=chicago)

        assert len(instances) == 1
        # 09:00 CDT on 2025-03-15 is 14:00 UTC
        assert instances[0].start_time == utc(2025, 3, 15, 14)
        assert instances[0].start_time.astimezone(chicago).hour == 9

    def test_recurrence_end_date_is_inclusive(self):
        block = make_block(
            1, utc(2025, 3, 1, 10), utc(2025, 3, 1, 12),
            is_recurring=True, recurrence_pattern="weekly",
            recurrence_end_date=utc(2025, 3, 15, 23, 59), block_id=7,
        )
        instances = expand_time_blocks([block], utc(2025, 3, 1), utc(2025, 4, 1))
        assert [i.id for i in instances] == ["7_0", "7_1", "7_2"]


class TestDaily:
    def test_forever_template_terminates_within_window(self):
        block = make_block(
            1, utc(2020, 1, 1, 9), utc(2020, 1, 1, 10),
            is_recurring=True, recurrence_pattern="daily", block_id=4,
        )
        window_start, window_end = utc(2025, 1, 1), utc(2026, 1, 1)
        instances = expand_time_blocks([block], window_start, window_end)

        assert len(instances) == 365
        for instance in instances:
            assert instance.start_time < window_end
            assert instance.end_time > window_start

    def test_count_cap_applies_to_absolute_index(self):
        block = make_block(
            1, utc(2025, 3, 3, 9), utc(2025, 3, 3, 10),
            is_recurring=True, recurrence_pattern="daily", recurrence_count=5, block_id=2,
        )
        whole_month = expand_time_blocks([block], utc(2025, 3, 1), utc(2025, 4, 1))
        assert [i.id for i in whole_month] == ["2_0", "2_1", "2_2", "2_3", "2_4"]

        later = expand_time_blocks([block], utc(2025, 3, 5), utc(2025, 4, 1))
        assert [i.id for i in later] == ["2_2", "2_3", "2_4"]

    def test_step_limit_stops_expansion(self, caplog):
        block = make_block(
            1, utc(2025, 1, 1, 9), utc(2025, 1, 1, 10),
            is_recurring=True, recurrence_pattern="daily", block_id=9,
        )
        instances = expand_recurring_block(block, utc(2025, 1, 1), utc(2026, 1, 1), max_steps=10)
        assert len(instances) == 10
        assert "stopped after 10 steps" in caplog.text

    def test_occurrence_straddling_window_start_is_included(self):
        block = make_block(
            1, utc(2025, 3, 1, 22), utc(2025, 3, 2, 2),
            is_recurring=True, recurrence_pattern="daily", block_id=5,
        )
        instances = expand_time_blocks([block], utc(2025, 3, 4), utc(2025, 3, 5))
        assert [i.start_time for i in instances] == [utc(2025, 3, 3, 22), utc(2025, 3, 4, 22)]


class TestMonthlyAndYearly:
    def test_month_end_clamps_without_drift(self):
        block = make_block(
            1, utc(2025, 1, 31, 9), utc(2025, 1, 31, 10),
            is_recurring=True, recurrence_pattern="monthly", block_id=1,
        )
        instances = expand_time_blocks([block], utc(2025, 1, 1), utc(2025, 5, 1))
        assert [i.start_time.date().isoformat() for i in instances] == [
            "2025-01-31", "2025-02-28", "2025-03-31", "2025-04-30",
        ]

    def test_yearly(self):
        block = make_block(
            1, utc(2020, 12, 25), utc(2020, 12, 26),
            title="Christmas", block_type="holiday",
            is_recurring=True, recurrence_pattern="yearly", block_id=8,
        )
        instances = expand_time_blocks([block], utc(2025, 1, 1), utc(2026, 1, 1))
        assert len(instances) == 1
        assert instances[0].start_time == utc(2025, 12, 25)
        assert instances[0].id == "8_5"


class TestNonRecurring:
    def test_one_off_block_in_window(self):
        block = make_block(1, utc(2025, 3, 3, 12), utc(2025, 3, 3, 13), block_id=11)
        instances = expand_time_blocks([block], utc(2025, 3, 3), utc(2025, 3, 4))
        assert len(instances) == 1
        assert instances[0].id == "11"
        assert not instances[0].is_recurring_instance

    def test_touching_window_edge_is_excluded(self):
        block = make_block(1, utc(2025, 3, 2, 23), utc(2025, 3, 3), block_id=11)
        assert expand_time_blocks([block], utc(2025, 3, 3), utc(2025, 3, 4)) == []

    def test_recurring_flag_without_pattern_is_a_single_block(self):
        block = make_block(1, utc(2025, 3, 3, 12), utc(2025, 3, 3, 13), is_recurring=True, block_id=6)
        instances = expand_time_blocks([block], utc(2025, 3, 1), utc(2025, 4, 1))
        assert [i.id for i in instances] == ["6"]

    def test_output_sorted_by_start(self):
        late = make_block(1, utc(2025, 3, 3, 15), utc(2025, 3, 3, 16), block_id=1)
        early = make_block(1, utc(2025, 3, 3, 8), utc(2025, 3, 3, 9), block_id=2)
        instances = expand_time_blocks([late, early], utc(2025, 3, 3), utc(2025, 3, 4))
        assert [i.id for i in instances] == ["2", "1"]
