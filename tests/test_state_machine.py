import pytest

from database.models import SessionStatus
from modules.interview.state_machine import advance, can_transition, check_transition, next_action
from utils.errors import InvalidTransitionError, SessionNotFoundError

FORWARD = [
    ("uploading", "ats_processing"),
    ("ats_processing", "ats_ready"),
    ("ats_ready", "configured"),
    ("configured", "interview_ready"),
    ("interview_ready", "in_progress"),
    ("in_progress", "completed"),
]


@pytest.mark.parametrize("current,requested", FORWARD)
def test_forward_edges_are_allowed(current, requested):
    assert can_transition(current, requested)


@pytest.mark.parametrize("current,requested", [
    ("uploading", "interview_ready"),
    ("ats_ready", "interview_ready"),
    ("completed", "in_progress"),
    ("in_progress", "configured"),
    ("interview_ready", "configured"),
])
def test_skips_and_regressions_are_rejected(current, requested):
    assert not can_transition(current, requested)
    with pytest.raises(InvalidTransitionError):
        check_transition(current, requested)


def test_same_status_rewrite_is_allowed():
    for status in SessionStatus:
        assert can_transition(status, status)


def test_unknown_status_is_rejected():
    with pytest.raises(InvalidTransitionError):
        check_transition("configured", "archived")


def test_advance_writes_status_and_patch(session_store, make_session):
    session = make_session("ats_ready")

    updated = advance(session_store, session["id"], "configured", {"interviewDuration": 30})

    assert updated["status"] == "configured"
    assert updated["interviewDuration"] == 30
    assert session_store.get(session["id"])["status"] == "configured"


def test_rejected_advance_leaves_record_unchanged(session_store, make_session):
    session = make_session("uploading")
    before = session_store.get(session["id"])

    with pytest.raises(InvalidTransitionError):
        advance(session_store, session["id"], "interview_ready", {"vapiSessionId": "asst-1"})

    assert session_store.get(session["id"]) == before


def test_completion_sets_completed_at(session_store, make_session):
    session = make_session("in_progress")
    updated = advance(session_store, session["id"], SessionStatus.COMPLETED)
    assert updated["completedAt"]


def test_concurrent_status_change_is_detected(session_store, make_session, monkeypatch):
    session = make_session("configured")
    real_update = session_store.update_if_status

    def racing_update(session_id, expected_status, updates):
        # another request wins the race first
        session_store.update(session_id, {"status": "ats_ready"})
        return real_update(session_id, expected_status, updates)

    monkeypatch.setattr(session_store, "update_if_status", racing_update)

    with pytest.raises(InvalidTransitionError) as exc:
        advance(session_store, session["id"], "interview_ready")
    assert exc.value.current == "ats_ready"


def test_advance_unknown_session(session_store):
    with pytest.raises(SessionNotFoundError):
        advance(session_store, "64b7f0c2a1b2c3d4e5f60718", "ats_processing")


@pytest.mark.parametrize("status,action", [
    ("uploading", "render_upload_form"),
    ("ats_processing", "run_ats_analysis"),
    ("configured", "prepare_interview"),
    ("completed", "show_results"),
])
def test_next_action(status, action):
    assert next_action({"status": status}) == action
