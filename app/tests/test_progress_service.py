from datetime import timedelta
from types import SimpleNamespace

import pytest

from app.core.exceptions import NotFoundError
from app.db.models.calendar import (
    CalendarEvent,
    SOURCE_ASSIGNMENT_DEADLINE,
    SOURCE_MILESTONE,
    STATUS_COMPLETED,
    STATUS_UPCOMING,
)
from app.services.calendar_service import EventReconciler
from app.services.progress_service import ProgressRecalculator, compute_progress


def _milestone(weight, completed=False):
    return SimpleNamespace(weight=weight, completed=completed)


def _event_status(db, source_type, source_id):
    db.expire_all()
    event = db.query(CalendarEvent).filter(
        CalendarEvent.source_type == source_type,
        CalendarEvent.source_id == source_id
    ).first()
    return event.status if event else None


def test_compute_progress_without_milestones_is_zero():
    assert compute_progress([]) == 0


def test_compute_progress_rounds_half_up():
    assert compute_progress([_milestone(1, True), _milestone(1), _milestone(1)]) == 33
    assert compute_progress([_milestone(1, True), _milestone(1, True), _milestone(1)]) == 67
    # 12.5% rounds up
    assert compute_progress([_milestone(1, True), _milestone(7)]) == 13


def test_compute_progress_ignores_non_positive_weights():
    assert compute_progress([_milestone(0, True), _milestone(2)]) == 0
    assert compute_progress([_milestone(0), _milestone(-1), _milestone(2, True)]) == 100
    assert compute_progress([_milestone(0, True)]) == 0


def test_toggle_recalculates_weighted_progress(db, make_user, make_assignment, make_milestone):
    user = make_user()
    assignment = make_assignment(user)
    make_milestone(assignment, title="Read", weight=1)
    make_milestone(assignment, title="Notes", weight=1)
    heavy = make_milestone(assignment, title="Write", weight=2)
    recalculator = ProgressRecalculator(db)

    result = recalculator.toggle(heavy.id, user.id)
    assert result.milestone.completed is True
    assert result.assignment_progress == 50
    db.refresh(assignment)
    assert assignment.progress_percent == 50

    result = recalculator.toggle(heavy.id, user.id)
    assert result.milestone.completed is False
    assert result.assignment_progress == 0


def test_toggle_marks_milestone_and_deadline_events(db, make_user, make_assignment, make_milestone, now):
    user = make_user()
    assignment = make_assignment(user, due_at=now + timedelta(days=7))
    only = make_milestone(assignment, due_at=now + timedelta(days=3))
    reconciler = EventReconciler(db)
    reconciler.generate_assignment_deadline_event(assignment.id, user.id)
    reconciler.generate_milestone_events(assignment.id, user.id)

    ProgressRecalculator(db).toggle(only.id, user.id)

    assert _event_status(db, SOURCE_MILESTONE, only.id) == STATUS_COMPLETED
    assert _event_status(db, SOURCE_ASSIGNMENT_DEADLINE, assignment.id) == STATUS_COMPLETED

    ProgressRecalculator(db).toggle(only.id, user.id)

    assert _event_status(db, SOURCE_MILESTONE, only.id) == STATUS_UPCOMING
    assert _event_status(db, SOURCE_ASSIGNMENT_DEADLINE, assignment.id) == STATUS_UPCOMING


def test_toggle_without_events_does_not_create_any(db, make_user, make_assignment, make_milestone, event_count):
    user = make_user()
    assignment = make_assignment(user)
    milestone = make_milestone(assignment)

    ProgressRecalculator(db).toggle(milestone.id, user.id)

    assert event_count() == 0


def test_toggle_other_users_milestone_is_not_found(db, make_user, make_assignment, make_milestone):
    owner = make_user()
    intruder = make_user()
    milestone = make_milestone(make_assignment(owner))

    with pytest.raises(NotFoundError):
        ProgressRecalculator(db).toggle(milestone.id, intruder.id)
    with pytest.raises(NotFoundError):
        ProgressRecalculator(db).toggle(milestone.id + 50, owner.id)

    db.refresh(milestone)
    assert milestone.completed is False


def test_remove_milestone_recalculates_and_drops_its_event(db, make_user, make_assignment, make_milestone, now, event_count):
    user = make_user()
    assignment = make_assignment(user, due_at=now + timedelta(days=5))
    make_milestone(assignment, title="Done", weight=1, completed=True)
    pending = make_milestone(assignment, title="Pending", weight=1, due_at=now + timedelta(days=2))
    reconciler = EventReconciler(db)
    reconciler.generate_assignment_deadline_event(assignment.id, user.id)
    reconciler.generate_milestone_events(assignment.id, user.id)
    pending_id = pending.id

    progress = ProgressRecalculator(db).remove_milestone(pending_id, user.id)

    assert progress == 100
    assert event_count(source_type=SOURCE_MILESTONE, source_id=pending_id) == 0
    assert _event_status(db, SOURCE_ASSIGNMENT_DEADLINE, assignment.id) == STATUS_COMPLETED


def test_remove_last_milestone_resets_progress(db, make_user, make_assignment, make_milestone):
    user = make_user()
    assignment = make_assignment(user)
    milestone = make_milestone(assignment, completed=True)

    progress = ProgressRecalculator(db).remove_milestone(milestone.id, user.id)

    assert progress == 0
    db.refresh(assignment)
    assert assignment.progress_percent == 0
    assert assignment.milestones == []
