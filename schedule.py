"""Monthly calendar of the tasks a user can see, keyed by due date."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date

from errors import ValidationError
from models import Requester, Task
from task_store import TaskStoreDB

# Weeks start on Sunday.
_CALENDAR = calendar.Calendar(firstweekday=calendar.SUNDAY)


@dataclass
class MonthView:
    year: int
    month: int
    weeks: list[list[int]]  # day numbers, 0 = padding
    tasks_by_date: dict[str, list[Task]] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def tasks_on(self, day: int) -> list[Task]:
        return self.tasks_by_date.get(date(self.year, self.month, day).isoformat(), [])

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "title": self.title,
            "weeks": self.weeks,
            "tasks": {
                key: [t.to_dict() for t in tasks]
                for key, tasks in self.tasks_by_date.items()
            },
        }


def month_view(requester: Requester, year: int, month: int) -> MonthView:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12.")
    if not date.min.year <= year <= date.max.year:
        raise ValidationError("Year out of range.")

    weeks = _CALENDAR.monthdayscalendar(year, month)
    last_day = calendar.monthrange(year, month)[1]
    start = date(year, month, 1).isoformat()
    end = date(year, month, last_day).isoformat()

    by_date: dict[str, list[Task]] = {}
    for task in TaskStoreDB(requester).due_between(start, end):
        by_date.setdefault(task.due_date, []).append(task)
    return MonthView(year, month, weeks, by_date)
