"""Tests for schedule.py — the monthly task calendar."""

import pytest

from errors import ValidationError
from models import Cohort
from schedule import month_view
from task_store import TaskStoreDB


class TestMonthGrid:
    def test_weeks_start_on_sunday(self, db, student):
        # 1 November 2026 is a Sunday.
        view = month_view(student, 2026, 11)
        assert view.weeks[0][0] == 1
        assert view.title == "November 2026"

    def test_leading_padding(self, db, student):
        # 1 October 2026 is a Thursday: Sun..Wed are padding.
        view = month_view(student, 2026, 10)
        assert view.weeks[0][:5] == [0, 0, 0, 0, 1]
        assert max(max(week) for week in view.weeks) == 31

    def test_february_leap_year(self, db, student):
        view = month_view(student, 2028, 2)
        assert max(max(week) for week in view.weeks) == 29

    @pytest.mark.parametrize("month", [0, 13])
    def test_bad_month(self, db, student, month):
        with pytest.raises(ValidationError):
            month_view(student, 2026, month)


class TestMonthTasks:
    def test_tasks_grouped_by_due_date(self, db, teacher, student, ece_student):
        store = TaskStoreDB(teacher)
        a = store.create("Quiz", "Unit 1", "2026-11-05", assignment=Cohort("CSE", 3))
        b = store.create("Lab", "Exp 2", "2026-11-05", assignment=Cohort("CSE", 3))
        store.create("Viva", "Unit 2", "2026-12-01", assignment=Cohort("CSE", 3))

        view = month_view(student, 2026, 11)
        assert [t.id for t in view.tasks_on(5)] == [a.id, b.id]
        assert view.tasks_on(6) == []
        assert list(view.tasks_by_date) == ["2026-11-05"]

        assert month_view(ece_student, 2026, 11).tasks_by_date == {}

    def test_to_dict(self, db, student):
        TaskStoreDB(student).create("Revise", "Trees", "2026-11-30")
        data = month_view(student, 2026, 11).to_dict()
        assert data["title"] == "November 2026"
        assert data["tasks"]["2026-11-30"][0]["title"] == "Revise"
