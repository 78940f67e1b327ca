# backend/modules/feedback/feedback_generator.py

import json
import logging
from typing import Any, Dict, List

from utils.llm_client import LLMResult, chat_completion, try_parse_json
from utils.scoring_utils import clamp_score, weighted_average

logger = logging.getLogger(__name__)

SCORE_WEIGHTS = {
    "technical": 0.45,
    "communication": 0.35,
    "confidence": 0.20,
}


# -------------------------------
# SCORING HELPER FUNCTIONS
# -------------------------------

def _candidate_turns(transcript: List[Dict[str, Any]]) -> List[str]:
    return [m.get("message", "") for m in transcript if m.get("role") == "user" and m.get("message")]


def _participation_score(transcript: List[Dict[str, Any]], question_total: int) -> float:
    """Rough engagement estimate used when the model gives us nothing."""
    turns = _candidate_turns(transcript)
    if not turns:
        return 0.0

    words = sum(len(t.split()) for t in turns)
    coverage = min(1.0, len(turns) / max(question_total, 1))
    depth = min(1.0, words / (60.0 * max(question_total, 1)))
    return round(100.0 * (0.5 * coverage + 0.5 * depth), 1)


def _rating_from_score(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 65:
        return "Good"
    if score >= 45:
        return "Average"
    return "Poor"


def _score_or_none(value):
    try:
        float(value)
    except (TypeError, ValueError):
        return None
    return clamp_score(value)


def _merge_scores(parsed: Dict[str, Any]) -> Dict[str, Any]:
    scores = {
        "technical": _score_or_none(parsed.get("technicalScore")),
        "communication": _score_or_none(parsed.get("communicationScore")),
        "confidence": _score_or_none(parsed.get("confidenceScore")),
    }
    overall = _score_or_none(parsed.get("overallScore"))
    if overall is None:
        overall = weighted_average(scores, SCORE_WEIGHTS)
    return {"overall": overall, **scores}


def _fallback_feedback(transcript, questions, reason: str) -> Dict[str, Any]:
    score = _participation_score(transcript, len(questions))
    rating = _rating_from_score(score)
    return {
        "overallScore": score,
        "technicalScore": score,
        "communicationScore": score,
        "confidenceScore": score,
        "strengths": ["Completed the interview session"] if _candidate_turns(transcript) else [],
        "improvementAreas": [
            "Give longer, structured answers (situation, action, result)",
            "Support claims with concrete examples and numbers",
        ],
        "feedback": (
            f"Your approximate score is {round(score)}% ({rating}). "
            "We could not generate a detailed AI analysis right now. "
            "Try to keep answers structured and add examples where possible."
        ),
        "rating": rating,
        "error": reason,
    }


# -------------------------------
# MAIN FEEDBACK GENERATOR
# -------------------------------

def generate_interview_feedback(transcript: List[Dict[str, Any]],
                                questions: List[Dict[str, Any]],
                                interview_config: Dict[str, Any] = None,
                                ai_model: str = None) -> LLMResult:
    """
    Score a finished interview from its committed transcript.

    Returns an LLMResult whose `data` holds overall/technical/communication/
    confidence scores (0-100), strengths, improvementAreas and feedback text.
    Never raises: provider or parse failures produce tagged fallback data.
    """
    interview_config = interview_config or {}

    if not _candidate_turns(transcript):
        return LLMResult(
            data=_fallback_feedback(transcript, questions, "No candidate answers were captured"),
            is_fallback=True,
            error="No candidate answers were captured",
        )

    prompt_payload = {
        "interview": {
            "type": interview_config.get("type"),
            "difficulty": interview_config.get("difficulty"),
            "durationMinutes": interview_config.get("duration"),
        },
        "questions": [q.get("question") for q in questions],
        "transcript": [{"role": m.get("role"), "message": m.get("message")} for m in transcript],
    }

    prompt = f"""
You are a supportive but honest interview coach.

Given the following mock interview (questions asked and the full transcript):
{json.dumps(prompt_payload, indent=2, ensure_ascii=False)}

Evaluate the candidate and answer in EXACT JSON format:

{{
  "overallScore": <0-100>,
  "technicalScore": <0-100>,
  "communicationScore": <0-100>,
  "confidenceScore": <0-100>,
  "strengths": ["strength1", "strength2"],
  "improvementAreas": ["area1", "area2"],
  "feedback": "<full feedback text, structured like: summary, strengths, improvements, action plan>"
}}

Tone: encouraging, clear, respectful, never harsh.
"""

    content = None
    try:
        content = chat_completion(prompt, model_name=ai_model or "chatgpt", temperature=0.3, max_tokens=1200)
        parsed = try_parse_json(content)
        if not isinstance(parsed, dict) or not parsed.get("feedback"):
            raise ValueError("Missing feedback field")
    except Exception as e:
        logger.exception("interview feedback generation failed, using fallback")
        return LLMResult(
            data=_fallback_feedback(transcript, questions, f"Fallback feedback due to error: {e}"),
            is_fallback=True,
            error=str(e),
            raw=content,
        )

    scores = _merge_scores(parsed)
    overall = scores["overall"] if scores["overall"] is not None else _participation_score(transcript, len(questions))
    data = {
        "overallScore": overall,
        "technicalScore": scores["technical"],
        "communicationScore": scores["communication"],
        "confidenceScore": scores["confidence"],
        "strengths": [str(s) for s in parsed.get("strengths") or []],
        "improvementAreas": [str(s) for s in parsed.get("improvementAreas") or []],
        "feedback": parsed["feedback"],
        "rating": _rating_from_score(overall),
    }
    return LLMResult(data=data, raw=content, model=ai_model)
