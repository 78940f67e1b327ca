import json
from unittest.mock import patch

import pytest

from modules.feedback.feedback_generator import generate_interview_feedback
from utils.errors import UpstreamServiceError
from utils.scoring_utils import ats_compatibility, clamp_score, weighted_average

TRANSCRIPT = [
    {"role": "system", "message": "Call connected."},
    {"role": "assistant", "message": "Tell me about a project you are proud of."},
    {"role": "user", "message": "I rebuilt our billing service in Flask and cut latency by forty percent."},
]
QUESTIONS = [{"question": "Tell me about a project you are proud of."}]


def test_no_candidate_answers_skip_the_model():
    with patch("modules.feedback.feedback_generator.chat_completion") as mock_chat:
        result = generate_interview_feedback(TRANSCRIPT[:2], QUESTIONS)
    mock_chat.assert_not_called()
    assert result.is_fallback
    assert result.data["overallScore"] == 0.0
    assert result.data["strengths"] == []


@patch("modules.feedback.feedback_generator.chat_completion")
def test_model_scores_are_clamped(mock_chat):
    mock_chat.return_value = json.dumps({
        "overallScore": 130,
        "technicalScore": 85,
        "communicationScore": "n/a",
        "confidenceScore": -5,
        "strengths": ["Concrete metrics"],
        "improvementAreas": ["Explain trade-offs"],
        "feedback": "Well done.",
    })

    result = generate_interview_feedback(TRANSCRIPT, QUESTIONS, {"type": "technical"}, "gemini")

    assert not result.is_fallback
    assert result.data["overallScore"] == 100
    assert result.data["communicationScore"] is None
    assert result.data["confidenceScore"] == 0
    assert result.data["rating"] == "Excellent"
    assert mock_chat.call_args.kwargs["model_name"] == "gemini"


@patch("modules.feedback.feedback_generator.chat_completion")
def test_missing_overall_uses_weighted_average(mock_chat):
    mock_chat.return_value = json.dumps({
        "technicalScore": 80, "communicationScore": 60, "feedback": "Fine."
    })
    data = generate_interview_feedback(TRANSCRIPT, QUESTIONS).data
    assert data["overallScore"] == pytest.approx(71.25, abs=0.1)


@patch("modules.feedback.feedback_generator.chat_completion")
def test_provider_error_falls_back(mock_chat):
    mock_chat.side_effect = UpstreamServiceError("LLM request failed", details="timeout")
    result = generate_interview_feedback(TRANSCRIPT, QUESTIONS)
    assert result.is_fallback
    assert 0 < result.data["overallScore"] <= 100
    assert result.data["strengths"] == ["Completed the interview session"]


class TestScoringUtils:
    def test_clamp(self):
        assert clamp_score(150) == 100
        assert clamp_score(-1) == 0
        assert clamp_score("72") == 72.0
        assert clamp_score(None) == 50.0
        assert clamp_score(float("nan"), default=10) == 10.0

    def test_weighted_average_ignores_missing(self):
        assert weighted_average({"a": 80, "b": None}, {"a": 0.5, "b": 0.5}) == 80.0
        assert weighted_average({"a": None}, {"a": 1}) is None

    def test_compatibility_bands(self):
        assert [ats_compatibility(s) for s in (95, 80, 79, 60, 59)] == ["High", "High", "Medium", "Medium", "Low"]
