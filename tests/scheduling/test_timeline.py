"""Tests for the weekly timeline projection."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from conftest import NOW, make_job

from cronspine.core.errors import ValidationError
from cronspine.core.models.scheduler import CronJob, CronSchedule, OneShotSchedule
from cronspine.core.scheduling.timeline import JOB_COLORS, build_timeline, job_color


class TestColumns:
    def test_seven_days_starting_today(self):
        timeline = build_timeline([], NOW)
        assert [d.date for d in timeline.days] == [date(2024, 1, 1) + timedelta(days=i) for i in range(7)]
        assert timeline.days[0].is_today
        assert not any(d.is_today for d in timeline.days[1:])

    def test_labels(self):
        timeline = build_timeline([], NOW)
        assert timeline.days[0].label == "Today"
        assert timeline.days[0].sub_label == "Mon 1"
        assert timeline.days[1].label == "Tue 2"
        assert timeline.days[1].sub_label == "Jan"

    def test_today_follows_display_timezone(self):
        timeline = build_timeline([], NOW, timezone="America/New_York")
        assert timeline.days[0].date == date(2023, 12, 31)

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            build_timeline([], NOW, timezone="Nowhere/Special")


class TestEvents:
    def test_daily_job_lands_in_every_column(self):
        timeline = build_timeline([make_job(expr="0 9 * * *")], NOW)
        assert [len(d.events) for d in timeline.days] == [1] * 7
        assert timeline.days[0].events[0].time == datetime(2024, 1, 1, 9, tzinfo=UTC)

    def test_weekday_job_skips_weekend(self):
        timeline = build_timeline([make_job(expr="0 9 * * 1-5")], NOW)
        # Mon..Fri then Sat 6, Sun 7
        assert [len(d.events) for d in timeline.days] == [1, 1, 1, 1, 1, 0, 0]

    def test_events_sorted_within_day(self):
        jobs = [make_job("late", expr="0 18 * * *"), make_job("early", expr="0 6 * * *")]
        timeline = build_timeline(jobs, NOW)
        assert [e.job_id for e in timeline.days[0].events] == ["early", "late"]

    def test_events_beyond_horizon_dropped(self):
        timeline = build_timeline([make_job(expr="0 9 * * *")], NOW, horizon_days=2)
        assert len(timeline.days) == 2
        assert timeline.total_events == 2

    def test_elapsed_events_today_excluded_by_default(self):
        now = NOW + timedelta(hours=12)
        timeline = build_timeline([make_job(expr="0 9 * * *")], now)
        assert timeline.days[0].events == []
        with_elapsed = build_timeline([make_job(expr="0 9 * * *")], now, include_elapsed=True)
        assert [e.time for e in with_elapsed.days[0].events] == [datetime(2024, 1, 1, 9, tzinfo=UTC)]

    def test_bucketed_by_display_timezone(self):
        job = make_job(expr="0 9 * * *", timezone="America/New_York")
        timeline = build_timeline([job], NOW, timezone="America/New_York")
        # today (Dec 31 local) has no 09:00 left; the first run is Jan 1 09:00 local
        assert timeline.days[0].events == []
        assert timeline.days[1].date == date(2024, 1, 1)
        assert timeline.days[1].events[0].time == datetime(2024, 1, 1, 14, tzinfo=UTC)

    def test_one_shot_placed_once(self):
        at = datetime(2024, 1, 3, 14, 30, tzinfo=UTC)
        job = CronJob(id="once", name="Once", schedule=OneShotSchedule(at=at))
        timeline = build_timeline([job], NOW)
        assert timeline.total_events == 1
        assert timeline.days[2].events[0].time == at

    def test_max_occurrences_bounds_enumeration(self):
        timeline = build_timeline([make_job(expr="0 * * * *")], NOW, max_occurrences=5)
        assert timeline.total_events == 5


class TestBadges:
    def test_short_interval_becomes_badge_on_every_column(self):
        timeline = build_timeline([make_job("poll", every_ms=900_000)], NOW)
        assert all(len(d.recurring_badges) == 1 for d in timeline.days)
        assert all(d.events == [] for d in timeline.days)
        badge = timeline.days[3].recurring_badges[0]
        assert badge.job_id == "poll"
        assert badge.label == "Every 15m"

    def test_daily_interval_is_enumerated(self):
        timeline = build_timeline([make_job("daily", every_ms=86_400_000)], NOW)
        assert all(d.recurring_badges == [] for d in timeline.days)
        # Jan 2 .. Jan 7; Jan 8 00:00 falls outside the last column
        assert timeline.total_events == 6


class TestLegend:
    def test_disabled_jobs_omitted(self):
        jobs = [make_job("on"), make_job("off", enabled=False)]
        timeline = build_timeline(jobs, NOW)
        assert [entry.job_id for entry in timeline.legend] == ["on"]
        assert all(e.job_id == "on" for d in timeline.days for e in d.events)

    def test_colors_cycle_by_position(self):
        jobs = [make_job(f"job-{i}") for i in range(len(JOB_COLORS) + 1)]
        timeline = build_timeline(jobs, NOW)
        assert [entry.color for entry in timeline.legend] == [job_color(i) for i in range(len(jobs))]
        assert timeline.legend[-1].color == JOB_COLORS[0]

    def test_invalid_schedule_excluded_entirely(self):
        broken = CronJob(id="broken", name="Broken", schedule=CronSchedule("70 * * * *"))
        timeline = build_timeline([broken, make_job("ok")], NOW)
        assert [entry.job_id for entry in timeline.legend] == ["ok"]
        assert all(e.job_id == "ok" for d in timeline.days for e in d.events)
        assert all(not d.recurring_badges for d in timeline.days)

    def test_color_keeps_enabled_position_after_invalid_job(self):
        broken = CronJob(id="broken", name="Broken", schedule=CronSchedule("70 * * * *"))
        timeline = build_timeline([broken, make_job("ok")], NOW)
        assert timeline.legend[0].color == job_color(1)

    def test_event_color_matches_legend(self):
        timeline = build_timeline([make_job("a"), make_job("b", expr="0 10 * * *")], NOW)
        colors = {entry.job_id: entry.color for entry in timeline.legend}
        assert all(e.color == colors[e.job_id] for d in timeline.days for e in d.events)
