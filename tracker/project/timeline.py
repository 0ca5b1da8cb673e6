"""
Past / current / future windows for iterations and milestones.

Both timelines are pure: they take the collection and a reference `now`
and never read the clock themselves.
"""

from __future__ import annotations

import enum
from datetime import date, timedelta
from typing import Iterable, List, Optional

from tracker import settings


class Window(str, enum.Enum):
    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"


class IterationTimeline:
    def __init__(self, iterations: Iterable, now: date):
        self.iterations = sorted(iterations, key=lambda i: i.start_date)
        self.now = now

    def classify(self, iteration) -> Window:
        if iteration.end_date < self.now:
            return Window.PAST
        if iteration.start_date > self.now:
            return Window.FUTURE
        return Window.CURRENT

    def past(self) -> List:
        """Finished iterations, most recent first."""
        return [i for i in reversed(self.iterations) if self.classify(i) is Window.PAST]

    def future(self) -> List:
        return [i for i in self.iterations if self.classify(i) is Window.FUTURE]

    def all_current(self) -> List:
        return [i for i in self.iterations if self.classify(i) is Window.CURRENT]

    def current(self) -> Optional[object]:
        # overlapping iterations: the earliest start wins
        current = self.all_current()
        return current[0] if current else None

    def previous(self) -> Optional[object]:
        past = self.past()
        return past[0] if past else None

    def next(self) -> Optional[object]:
        future = self.future()
        return future[0] if future else None


class MilestoneTimeline:
    def __init__(self, milestones: Iterable, now: date, recent_window: timedelta = None):
        self.milestones = sorted(milestones, key=lambda m: m.date)
        self.now = now
        if recent_window is None:
            recent_window = timedelta(days=settings.MILESTONE_RECENT_DAYS)
        self.recent_window = recent_window

    def future(self) -> List:
        return [m for m in self.milestones if m.date > self.now]

    def recent(self) -> List:
        """Milestones inside the recent window (today included), most recent first."""
        start = self.now - self.recent_window
        return [m for m in reversed(self.milestones) if start <= m.date <= self.now]

    def past(self) -> List:
        return [m for m in reversed(self.milestones) if m.date < self.now]
