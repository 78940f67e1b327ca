# backend/modules/interview/state_machine.py
"""
Session lifecycle:

    uploading -> ats_processing -> ats_ready -> configured
              -> interview_ready -> in_progress -> completed

Every status write goes through `advance`, which checks the transition table
before touching the record. Rewriting the current status is always allowed so
a failed stage can be retried with the same patch.
"""

import logging
from typing import Any, Dict, Optional

from database.models import SessionStatus, now_ms
from utils.errors import InvalidTransitionError, SessionNotFoundError

logger = logging.getLogger(__name__)

S = SessionStatus

TRANSITIONS = {
    S.UPLOADING: {S.ATS_PROCESSING},
    S.ATS_PROCESSING: {S.ATS_READY},
    S.ATS_READY: {S.CONFIGURED},
    # reconfigure is allowed until questions exist
    S.CONFIGURED: {S.INTERVIEW_READY, S.ATS_READY},
    # a call can end before the client reported it as started
    S.INTERVIEW_READY: {S.IN_PROGRESS, S.COMPLETED},
    S.IN_PROGRESS: {S.COMPLETED},
    S.COMPLETED: set(),
}

# status -> what the page for this session should do next
NEXT_ACTIONS = {
    S.UPLOADING: "render_upload_form",
    S.ATS_PROCESSING: "run_ats_analysis",
    S.ATS_READY: "render_configuration_form",
    S.CONFIGURED: "prepare_interview",
    S.INTERVIEW_READY: "start_interview",
    S.IN_PROGRESS: "resume_interview",
    S.COMPLETED: "show_results",
}


def can_transition(current, requested) -> bool:
    current = SessionStatus.parse(current)
    requested = SessionStatus.parse(requested)
    return requested == current or requested in TRANSITIONS[current]


def check_transition(current, requested) -> SessionStatus:
    """Returns the parsed target status or raises InvalidTransitionError."""
    try:
        target = SessionStatus.parse(requested)
    except ValueError:
        raise InvalidTransitionError(str(current), str(requested)) from None
    if not can_transition(current, target):
        raise InvalidTransitionError(SessionStatus.parse(current).value, target.value)
    return target


def advance(store, session_id: str, new_status, patch: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Validate and write `new_status` plus `patch` in one update.

    The write is conditioned on the status read here, so a concurrent
    status change makes this call fail instead of silently overwriting it.
    """
    session = store.get(session_id)
    current = SessionStatus.parse(session["status"])
    target = check_transition(current, new_status)

    updates = dict(patch or {})
    updates["status"] = target.value
    if target == S.COMPLETED and not updates.get("completedAt"):
        updates["completedAt"] = session.get("completedAt") or now_ms()

    updated = store.update_if_status(session_id, current.value, updates)
    if updated is None:
        latest = store.get(session_id)
        raise InvalidTransitionError(latest.get("status"), target.value)

    logger.info("session %s: %s -> %s", session_id, current.value, target.value)
    return updated


def next_action(session: Optional[Dict[str, Any]]) -> str:
    if session is None:
        raise SessionNotFoundError("unknown")
    return NEXT_ACTIONS[SessionStatus.parse(session.get("status"))]
