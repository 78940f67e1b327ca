# backend/modules/interview/session_flow.py
"""
Stage actions of the candidate journey, one function per page action.

Each action reads the session, calls the providers it needs and then writes
the next status together with its results through `state_machine.advance`.
A provider failure raises before the write, so the status stays where it was
and the client can simply retry the same request.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from database.models import (
    INTERVIEW_DURATIONS,
    AIModel,
    Difficulty,
    InterviewType,
    SessionStatus,
    now_ms,
    questions_to_dicts,
)
from modules.ats.report_generator import generate_ats_report, parse_resume_structure
from modules.feedback.feedback_generator import generate_interview_feedback
from modules.intake.text_extractor import extract_text_from_url
from modules.interview.question_generator import generate_interview_questions
from modules.interview.state_machine import advance, check_transition
from modules.voice.providers import get_voice_provider
from utils.errors import InvalidTransitionError, MissingInputError

logger = logging.getLogger(__name__)

S = SessionStatus

OUTCOME_FIELDS = (
    "overallScore",
    "technicalScore",
    "communicationScore",
    "confidenceScore",
    "feedbackData",
    "improvementAreas",
    "strengths",
    "vapiCallId",
)

# a voice call may only be attached while the session is in one of these
LIVE_STATUSES = (S.INTERVIEW_READY, S.IN_PROGRESS)

# statuses at or after interview_ready; questions must not be regenerated there
_PREPARED = (S.INTERVIEW_READY, S.IN_PROGRESS, S.COMPLETED)


def _status(session: Dict[str, Any]) -> SessionStatus:
    return SessionStatus.parse(session.get("status"))


def is_live(session: Dict[str, Any]) -> bool:
    return _status(session) in LIVE_STATUSES


# -------------------------------
# INTAKE TEXT
# -------------------------------

def resolve_text(content: Optional[str], url: Optional[str], label: str) -> str:
    """
    Pasted/extracted text wins; otherwise try the uploaded file.
    A URL whose file yields no text counts as missing input.
    """
    if content and content.strip():
        return content
    if url:
        logger.info("%s content missing, extracting from %s", label, url)
        text = extract_text_from_url(url)
        if text and text.strip():
            return text
    raise MissingInputError(f"{label} content is required",
                            details=f"Provide {label.lower()} text or a readable file")


def ats_payload(report, structure, resume_text: str, job_description_text: str) -> Dict[str, Any]:
    """Wire form of an ATS run, shared by the stateless and session routes."""
    payload = {
        "success": True,
        "atsReport": report.data,
        "parsedResumeData": structure.data,
        "extractedResumeText": resume_text,
        "extractedJobDescriptionText": job_description_text,
    }
    if report.is_fallback or structure.is_fallback:
        payload["isFallback"] = True
    return payload


# -------------------------------
# STAGES
# -------------------------------

def run_ats_analysis(store, session_id: str) -> Dict[str, Any]:
    session = store.get(session_id)
    status = _status(session)
    if status != S.ATS_PROCESSING:
        # a reloaded report page must not rerun the model
        if status in (S.ATS_READY, S.CONFIGURED) + _PREPARED:
            return session
        raise InvalidTransitionError(status.value, S.ATS_READY.value)

    resume_text = resolve_text(session.get("resumeContent"), session.get("resumeFileUrl"), "Resume")
    jd_text = resolve_text(session.get("jobDescriptionContent"),
                           session.get("jobDescriptionFileUrl"), "Job description")

    report = generate_ats_report(resume_text, jd_text)
    structure = parse_resume_structure(resume_text)

    return advance(store, session_id, S.ATS_READY, {
        "resumeContent": resume_text,
        "jobDescriptionContent": jd_text,
        "atsScore": report.data.get("overallScore"),
        "atsReport": report.data,
        "parsedResumeData": structure.data,
        "atsReportIsFallback": report.is_fallback,
    })


def _choice(value, enum_cls, field_name: str) -> str:
    try:
        return enum_cls((value or "").strip().lower()).value
    except (ValueError, AttributeError):
        allowed = ", ".join(e.value for e in enum_cls)
        raise MissingInputError(f"Invalid {field_name}", details=f"Expected one of: {allowed}") from None


def validate_configuration(payload: Dict[str, Any]) -> Dict[str, Any]:
    payload = payload or {}
    try:
        duration = int(payload.get("interviewDuration"))
    except (TypeError, ValueError):
        duration = None
    if duration not in INTERVIEW_DURATIONS:
        raise MissingInputError("Invalid interviewDuration",
                                details=f"Expected one of: {', '.join(map(str, INTERVIEW_DURATIONS))}")

    return {
        "aiModel": _choice(payload.get("aiModel"), AIModel, "aiModel"),
        "interviewType": _choice(payload.get("interviewType"), InterviewType, "interviewType"),
        "difficulty": _choice(payload.get("difficulty"), Difficulty, "difficulty"),
        "interviewDuration": duration,
    }


def configure(store, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    settings = validate_configuration(payload)
    return advance(store, session_id, S.CONFIGURED, settings)


def prepare_interview(store, session_id: str, provider=None) -> Dict[str, Any]:
    """
    Generate questions and set up the voice assistant, then mark the session
    interview_ready. Sessions already past that point are returned as they are.
    """
    session = store.get(session_id)
    status = _status(session)
    if status in _PREPARED:
        logger.info("session %s already prepared (%s), skipping generation", session_id, status.value)
        return session
    check_transition(status, S.INTERVIEW_READY)

    resume_text = resolve_text(session.get("resumeContent"), session.get("resumeFileUrl"), "Resume")
    jd_text = resolve_text(session.get("jobDescriptionContent"),
                           session.get("jobDescriptionFileUrl"), "Job description")

    result = generate_interview_questions(
        resume_text,
        jd_text,
        interview_type=session.get("interviewType"),
        difficulty=session.get("difficulty"),
        duration=session.get("interviewDuration"),
        ai_model=session.get("aiModel"),
    )
    questions = questions_to_dicts(result.data)

    provider = provider or get_voice_provider()
    setup = provider.setup(session_id, questions, {
        "type": session.get("interviewType"),
        "difficulty": session.get("difficulty"),
        "duration": session.get("interviewDuration"),
        "aiModel": session.get("aiModel"),
    })

    return advance(store, session_id, S.INTERVIEW_READY, {
        "generatedQuestions": questions,
        "questionsAreFallback": result.is_fallback,
        "vapiSessionId": setup.get("assistantId"),
        "voiceProvider": provider.name,
    })


def start_interview(store, session_id: str, provider=None) -> Dict[str, Any]:
    session = store.get(session_id)
    if _status(session) != S.IN_PROGRESS:
        session = advance(store, session_id, S.IN_PROGRESS)
    provider = provider or get_voice_provider(session.get("voiceProvider"))
    return {"session": session, "voice": provider.start_info(session)}


def complete_session(store, session_id: str, outcome: Dict[str, Any] = None) -> Dict[str, Any]:
    patch = {k: v for k, v in (outcome or {}).items() if k in OUTCOME_FIELDS}
    return advance(store, session_id, S.COMPLETED, patch)


def mark_call_started(store, session_id: str) -> None:
    """The voice platform connected; move a prepared session to in_progress."""
    session = store.get(session_id)
    if _status(session) == S.INTERVIEW_READY:
        advance(store, session_id, S.IN_PROGRESS)


def finish_call(store, session_id: str, transcript: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Score the finished call and complete the session once."""
    session = store.get(session_id)
    status = _status(session)
    if status == S.COMPLETED:
        return session
    if status not in LIVE_STATUSES:
        logger.warning("call ended for session %s in status %s, not completing", session_id, status.value)
        return None

    feedback = generate_interview_feedback(
        transcript,
        session.get("generatedQuestions") or [],
        interview_config={
            "type": session.get("interviewType"),
            "difficulty": session.get("difficulty"),
            "duration": session.get("interviewDuration"),
        },
        ai_model=session.get("aiModel"),
    )
    data = feedback.data
    feedback_data = dict(data)
    feedback_data["isFallback"] = feedback.is_fallback
    feedback_data["transcript"] = transcript

    return complete_session(store, session_id, {
        "overallScore": data.get("overallScore"),
        "technicalScore": data.get("technicalScore"),
        "communicationScore": data.get("communicationScore"),
        "confidenceScore": data.get("confidenceScore"),
        "strengths": data.get("strengths") or [],
        "improvementAreas": data.get("improvementAreas") or [],
        "feedbackData": feedback_data,
    })


# -------------------------------
# DRAFTS
# -------------------------------

def submit_draft(session_store, draft_store, draft_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a resume draft plus a job description into a session ready for ATS analysis."""
    draft = draft_store.get(draft_id)
    payload = payload or {}

    resume_content = draft.get("resumeContent") or ""
    resume_url = draft.get("resumeFileUrl")
    jd_content = (payload.get("jobDescriptionContent") or "").strip()
    jd_url = payload.get("jobDescriptionFileUrl")

    if not resume_content.strip() and not resume_url:
        raise MissingInputError("Resume is required", details="The draft has neither resume text nor a file")
    if not jd_content and not jd_url:
        raise MissingInputError("Job description is required")

    session = session_store.create(
        draft["userId"],
        resume_file_url=resume_url,
        resume_content=resume_content or None,
        job_description_file_url=jd_url,
        job_description_content=jd_content or None,
        status=S.ATS_PROCESSING.value,
    )
    draft_store.delete(draft_id)
    logger.info("draft %s submitted as session %s", draft_id, session["id"])
    return session


# -------------------------------
# ANSWERS
# -------------------------------

def _rating(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MissingInputError("Invalid rating", details="rating must be a number")
    return float(value)


def save_answer(session_store, answer_store, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Record one answer against the session's owner; feedback and rating may come later."""
    session = session_store.get(session_id)
    payload = payload or {}
    question = (payload.get("question") or "").strip()
    user_answer = (payload.get("userAnswer") or "").strip()
    if not question or not user_answer:
        raise MissingInputError("User answer and question are required")

    return answer_store.create(
        session_id,
        session["userId"],
        question,
        user_answer,
        feedback=payload.get("feedback"),
        rating=_rating(payload.get("rating")),
    )


def rate_answer(answer_store, answer_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    payload = payload or {}
    feedback = payload.get("feedback")
    rating = _rating(payload.get("rating"))
    if not feedback or rating is None:
        raise MissingInputError("Feedback and rating are required")
    return answer_store.update_feedback(answer_id, feedback, rating)


# -------------------------------
# PROGRESS
# -------------------------------

def user_progress(store, user_id: str, top: int = 5, answer_store=None) -> Dict[str, Any]:
    sessions = store.list_by_user(user_id)
    completed = [s for s in sessions if s.get("status") == S.COMPLETED.value]
    scored = [s["overallScore"] for s in completed if isinstance(s.get("overallScore"), (int, float))]

    strengths = Counter(x for s in completed for x in (s.get("strengths") or []))
    improvements = Counter(x for s in completed for x in (s.get("improvementAreas") or []))

    answers = answer_store.list_by_user(user_id) if answer_store is not None else []
    ratings = [a["rating"] for a in answers if a.get("rating") is not None]

    return {
        "userId": user_id,
        "totalAnswers": len(answers),
        "averageRating": round(sum(ratings) / len(ratings), 2) if ratings else 0,
        "totalInterviews": len(sessions),
        "completedInterviews": len(completed),
        "averageScore": round(sum(scored) / len(scored), 2) if scored else 0,
        "strengths": [name for name, _ in strengths.most_common(top)],
        "improvementAreas": [name for name, _ in improvements.most_common(top)],
        "lastUpdated": now_ms(),
    }

