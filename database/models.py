# backend/database/models.py
"""
=====================================================
models.py
-----------------------------------------------------
Document shapes for interview sessions, generated
questions and intake drafts. Sessions live in a
single MongoDB collection; field names use the
camelCase wire form the web client reads.
=====================================================
"""

import time
from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionStatus(str, Enum):
    UPLOADING = "uploading"
    ATS_PROCESSING = "ats_processing"
    ATS_READY = "ats_ready"
    CONFIGURED = "configured"
    INTERVIEW_READY = "interview_ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value) -> "SessionStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown session status: {value!r}") from None


class AIModel(str, Enum):
    CHATGPT = "chatgpt"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"


class InterviewType(str, Enum):
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    MIXED = "mixed"
    HR = "hr"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


INTERVIEW_DURATIONS = (15, 30, 45, 60, 75, 90)

DEFAULT_INTERVIEW_TYPE = InterviewType.MIXED.value
DEFAULT_DIFFICULTY = Difficulty.INTERMEDIATE.value
DEFAULT_DURATION = 60
DEFAULT_AI_MODEL = AIModel.CHATGPT.value

# Fields a client may patch directly on a session
UPDATABLE_FIELDS = (
    "status",
    "resumeFileUrl",
    "resumeContent",
    "jobDescriptionFileUrl",
    "jobDescriptionContent",
    "atsScore",
    "atsReport",
    "parsedResumeData",
    "aiModel",
    "interviewType",
    "difficulty",
    "interviewDuration",
    "generatedQuestions",
    "vapiSessionId",
    "vapiCallId",
    "overallScore",
    "technicalScore",
    "communicationScore",
    "confidenceScore",
    "feedbackData",
    "improvementAreas",
    "strengths",
    "completedAt",
)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Question:
    """One generated interview question. Immutable once generated."""
    id: int
    question: str
    type: str
    category: str
    difficulty: str
    expected_duration: str
    follow_up_suggestions: tuple = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], index: int = 0,
                  default_type: str = DEFAULT_INTERVIEW_TYPE,
                  default_difficulty: str = DEFAULT_DIFFICULTY) -> "Question":
        """Coerce a model-produced question object; missing fields get defaults."""
        try:
            qid = int(raw.get("id", index + 1))
        except (TypeError, ValueError):
            qid = index + 1

        suggestions = raw.get("followUpSuggestions") or raw.get("follow_up_suggestions") or []
        if isinstance(suggestions, str):
            suggestions = [suggestions]

        return cls(
            id=qid,
            question=str(raw.get("question") or raw.get("text") or "").strip(),
            type=str(raw.get("type") or default_type),
            category=str(raw.get("category") or "general"),
            difficulty=str(raw.get("difficulty") or default_difficulty),
            expected_duration=str(raw.get("expectedDuration") or raw.get("expected_duration") or "3-5 minutes"),
            follow_up_suggestions=tuple(str(s) for s in suggestions),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "type": self.type,
            "category": self.category,
            "difficulty": self.difficulty,
            "expectedDuration": self.expected_duration,
            "followUpSuggestions": list(self.follow_up_suggestions),
        }


def new_session_document(user_id: str,
                         resume_file_url: Optional[str] = None,
                         resume_content: Optional[str] = None,
                         job_description_file_url: Optional[str] = None,
                         job_description_content: Optional[str] = None,
                         status: Optional[str] = None) -> Dict[str, Any]:
    ts = now_ms()
    return {
        "userId": user_id,
        "resumeFileUrl": resume_file_url,
        "resumeContent": resume_content,
        "jobDescriptionFileUrl": job_description_file_url,
        "jobDescriptionContent": job_description_content,
        "status": SessionStatus.parse(status or SessionStatus.UPLOADING).value,
        "createdAt": ts,
        "updatedAt": ts,
    }


def new_draft_document(user_id: str,
                       resume_content: Optional[str] = None,
                       resume_file_url: Optional[str] = None,
                       resume_file: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Intake draft carrying the resume step's data to the job description step
    before a session exists.
    """
    return {
        "userId": user_id,
        "resumeContent": resume_content or "",
        "resumeFileUrl": resume_file_url,
        "resumeFile": resume_file,
        "createdAt": datetime.now(timezone.utc),
    }


def new_answer_document(session_id: str,
                        user_id: str,
                        question: str,
                        user_answer: str,
                        feedback: Optional[str] = None,
                        rating: Optional[float] = None) -> Dict[str, Any]:
    return {
        "sessionId": session_id,
        "userId": user_id,
        "question": question,
        "userAnswer": user_answer,
        "feedback": feedback,
        "rating": rating,
        "createdAt": now_ms(),
    }


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Mongo document -> JSON-safe dict with a string `id`."""
    if doc is None:
        return None
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["id"] = str(doc.get("_id"))
    return out


def questions_to_dicts(questions: List[Question]) -> List[Dict[str, Any]]:
    return [q.to_dict() for q in questions]
