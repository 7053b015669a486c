"""Tests for hourly timeline alignment."""

from datetime import UTC, datetime, timedelta

import pytest

from conftest import NOW, make_lab, make_treatment
from whatif.core.forecasting.timeline import (
    align_to_slot,
    day_of_week,
    decoder_slot_time,
    encoder_slot_time,
    reference_now,
)


class TestAlignToSlot:
    def test_reference_time_is_last_slot(self):
        assert align_to_slot(NOW, NOW) == 47

    def test_hours_back_map_one_to_one_onto_slots(self):
        slots = [
            align_to_slot(NOW - timedelta(hours=h, minutes=30), NOW) for h in range(48)
        ]
        assert slots == [47 - h for h in range(48)]
        assert sorted(slots) == list(range(48))

    def test_partial_hours_round_down(self):
        assert align_to_slot(NOW - timedelta(minutes=59), NOW) == 47
        assert align_to_slot(NOW - timedelta(minutes=60), NOW) == 46

    def test_older_than_window_is_dropped(self):
        assert align_to_slot(NOW - timedelta(hours=48), NOW) is None
        assert align_to_slot(NOW - timedelta(days=30), NOW) is None

    def test_future_event_is_dropped(self):
        assert align_to_slot(NOW + timedelta(minutes=1), NOW) is None
        assert align_to_slot(NOW + timedelta(hours=3), NOW) is None

    def test_custom_slot_count(self):
        assert align_to_slot(NOW, NOW, slot_count=12) == 11
        assert align_to_slot(NOW - timedelta(hours=12), NOW, slot_count=12) is None


class TestReferenceNow:
    def test_latest_record_across_labs_and_treatments(self):
        labs = [make_lab(5, 120.0), make_lab(3, 118.0)]
        treatments = [make_treatment(1, "Insulin")]
        assert reference_now(labs, treatments) == NOW - timedelta(hours=1)

    def test_ignores_wall_clock_when_records_exist(self):
        wall = datetime(2030, 1, 1, tzinfo=UTC)
        assert reference_now([make_lab(2, 100.0)], [], wall) == NOW - timedelta(hours=2)

    def test_falls_back_to_wall_clock(self):
        wall = datetime(2030, 1, 1, tzinfo=UTC)
        assert reference_now([], [], wall) == wall

    def test_falls_back_to_current_time(self):
        before = datetime.now(UTC)
        result = reference_now([], [])
        assert before <= result <= datetime.now(UTC)


class TestSlotTimes:
    def test_encoder_and_decoder_times(self):
        assert encoder_slot_time(47, NOW) == NOW
        assert encoder_slot_time(0, NOW) == NOW - timedelta(hours=47)
        assert decoder_slot_time(0, NOW) == NOW + timedelta(hours=1)
        assert decoder_slot_time(23, NOW) == NOW + timedelta(hours=24)

    @pytest.mark.parametrize(
        ("day", "expected"),
        [(9, 0), (10, 1), (14, 5), (15, 6)],  # 2025-03-09 is a Sunday
    )
    def test_day_of_week_starts_on_sunday(self, day, expected):
        assert day_of_week(datetime(2025, 3, day, 12, tzinfo=UTC)) == expected
