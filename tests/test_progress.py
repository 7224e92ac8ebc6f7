"""Tests for task progress logging and completion aggregation."""
from datetime import datetime
from types import SimpleNamespace

import pytest

from freelancedash.models.progress_update import ProgressUpdate
from freelancedash.services.contract_service import sign_contract
from freelancedash.services.progress_service import (
    completion_percentage,
    create_task,
    list_progress_updates,
    log_progress,
    project_progress,
)
from freelancedash.utils.exceptions import InvalidState, NotFound, PermissionDenied, ValidationError


def _tasks(*statuses):
    return [SimpleNamespace(status=s) for s in statuses]


@pytest.fixture
def task(session, project, freelancer):
    return create_task(session, project.id, freelancer.id, {"title": "Wireframes", "estimated_hours": 10})


class TestCompletionPercentage:

    def test_no_tasks_is_zero(self):
        assert completion_percentage([]) == 0

    def test_one_of_four(self):
        assert completion_percentage(_tasks("completed", "pending", "in-progress", "pending")) == 25

    def test_all_completed(self):
        assert completion_percentage(_tasks("completed", "completed")) == 100

    @pytest.mark.parametrize("completed,total,expected", [
        (1, 8, 13),   # 12.5 rounds up
        (1, 3, 33),
        (2, 3, 67),
        (5, 8, 63),   # 62.5 rounds up
    ])
    def test_rounds_half_up(self, completed, total, expected):
        statuses = ["completed"] * completed + ["pending"] * (total - completed)
        assert completion_percentage(_tasks(*statuses)) == expected


class TestLogProgress:

    def test_same_value_twice_gives_two_records(self, session, task, freelancer):
        first, _, _ = log_progress(session, task.id, freelancer.id, 40, notes="layout")
        second, task, _ = log_progress(session, task.id, freelancer.id, 40, notes="layout again")

        assert session.query(ProgressUpdate).filter_by(task_id=task.id).count() == 2
        assert first.id != second.id
        assert second.old_progress == 40
        assert second.progress_change == 0
        assert task.progress == 40
        assert task.status == "in-progress"

    def test_update_records_change(self, session, task, freelancer):
        update, task, _ = log_progress(session, task.id, freelancer.id, 30, hours=2.5)

        assert update.old_progress == 0
        assert update.new_progress == 30
        assert update.progress_change == 30
        assert update.updated_by == freelancer.id
        assert task.time_spent == 2.5

    def test_full_progress_completes_task_and_project(self, session, task, freelancer):
        _, task, project = log_progress(session, task.id, freelancer.id, 100)

        assert task.status == "completed"
        assert task.completed_at is not None
        assert project.status == "completed"

    def test_partial_completion_keeps_project_active(self, session, project, task, freelancer):
        create_task(session, project.id, freelancer.id, {"title": "Copywriting"})

        _, _, project = log_progress(session, task.id, freelancer.id, 100)

        assert project.status == "active"
        assert project_progress(session, project.id, freelancer.id)["completionPercentage"] == 50

    def test_dropping_below_full_reopens(self, session, task, freelancer):
        log_progress(session, task.id, freelancer.id, 100)
        _, task, project = log_progress(session, task.id, freelancer.id, 80)

        assert task.status == "in-progress"
        assert task.completed_at is None
        assert project.status == "active"

    @pytest.mark.parametrize("value", [-1, 101, 50.5, "50", True])
    def test_rejects_invalid_progress(self, session, task, freelancer, value):
        with pytest.raises(ValidationError):
            log_progress(session, task.id, freelancer.id, value)

    def test_unknown_task(self, session, freelancer):
        with pytest.raises(NotFound):
            log_progress(session, "tsk-missing", freelancer.id, 10)

    def test_only_owner_logs(self, session, task, other_freelancer):
        with pytest.raises(PermissionDenied):
            log_progress(session, task.id, other_freelancer.id, 10)

    def test_blocked_until_contract_signed(self, session, accepted, freelancer, client_user):
        _, contract, project = accepted
        task = create_task(session, project.id, freelancer.id, {"title": "Kickoff"})

        with pytest.raises(InvalidState):
            log_progress(session, task.id, freelancer.id, 10)

        sign_contract(session, contract.id, client_user.id, "Carl Client")
        update, _, _ = log_progress(session, task.id, freelancer.id, 10)
        assert update.new_progress == 10


class TestProgressHistory:

    def test_since_filter(self, session, project, task, freelancer):
        log_progress(session, task.id, freelancer.id, 10, now=datetime(2026, 1, 1, 9, 0))
        log_progress(session, task.id, freelancer.id, 20, now=datetime(2026, 1, 3, 9, 0))

        all_updates = list_progress_updates(session, project.id, freelancer.id)
        recent = list_progress_updates(session, project.id, freelancer.id, since=datetime(2026, 1, 2))

        assert [u.new_progress for u in all_updates] == [20, 10]
        assert [u.new_progress for u in recent] == [20]

    def test_outsider_cannot_read(self, session, project, other_client):
        with pytest.raises(PermissionDenied):
            list_progress_updates(session, project.id, other_client.id)

    def test_project_progress_summary(self, session, project, task, freelancer):
        log_progress(session, task.id, freelancer.id, 100, hours=3)
        summary = project_progress(session, project.id, freelancer.id)

        assert summary["totalTasks"] == 1
        assert summary["completedTasks"] == 1
        assert summary["completionPercentage"] == 100
        assert summary["hoursLogged"] == 3
