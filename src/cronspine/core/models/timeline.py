"""Weekly timeline shapes (derived, never stored).

Tags:
    cronspine, models, timeline, dataclasses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    """A discrete occurrence placed in a day column."""

    job_id: str
    time: datetime
    color: str
    is_recurring_badge: bool = False


@dataclass(frozen=True, slots=True)
class RecurringBadge:
    """Sub-daily interval job shown once per day instead of per occurrence."""

    job_id: str
    label: str
    color: str


@dataclass
class DayColumn:
    """One calendar day in the display timezone."""

    date: date
    label: str
    sub_label: str
    is_today: bool = False
    events: list[TimelineEvent] = field(default_factory=list)
    recurring_badges: list[RecurringBadge] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class LegendEntry:
    job_id: str
    name: str
    color: str


@dataclass
class Timeline:
    """Full projection returned by ``build_timeline``."""

    days: list[DayColumn]
    legend: list[LegendEntry]
    generated_at: datetime
    horizon_days: int
    timezone: str = "UTC"

    @property
    def total_events(self) -> int:
        return sum(len(d.events) for d in self.days)
