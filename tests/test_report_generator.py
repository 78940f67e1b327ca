import json
from unittest.mock import patch

import pytest

from modules.ats.report_generator import (
    FALLBACK_ERROR,
    generate_ats_report,
    normalize_ats_report,
    parse_resume_structure,
)
from utils.errors import UpstreamServiceError

RESUME = "Jane Doe. Python developer. Flask, MongoDB, Docker."
JOB = "Backend engineer. Python, AWS, Docker required."


@patch("modules.ats.report_generator.chat_completion")
def test_malformed_reply_uses_tagged_fallback(mock_chat):
    mock_chat.return_value = "Sorry, I could not analyze this resume."

    result = generate_ats_report(RESUME, JOB)

    assert result.is_fallback
    assert result.error
    assert result.data["error"] == FALLBACK_ERROR
    assert result.data["rawResponse"] == "Sorry, I could not analyze this resume."
    assert 0 <= result.data["overallScore"] <= 100
    assert 0 <= result.data["matchPercentage"] <= 100


@patch("modules.ats.report_generator.chat_completion")
def test_fenced_reply_is_parsed(mock_chat):
    report = {
        "overallScore": 88,
        "matchPercentage": 76,
        "keywordMatches": {"found": ["Python"], "missing": ["AWS"]},
        "strengths": ["Relevant stack"],
        "summary": "Strong match.",
    }
    mock_chat.return_value = f"```json\n{json.dumps(report)}\n```"

    result = generate_ats_report(RESUME, JOB)

    assert not result.is_fallback
    assert result.data["overallScore"] == 88
    assert result.data["estimatedATSCompatibility"] == "High"
    assert set(result.data["sections"]) == {"skills", "experience", "education", "formatting"}
    assert mock_chat.call_args.kwargs["model_name"] == "deepseek"


@patch("modules.ats.report_generator.chat_completion")
def test_out_of_range_scores_are_clamped(mock_chat):
    mock_chat.return_value = json.dumps({
        "overallScore": 140,
        "matchPercentage": -12,
        "sections": {"skills": {"score": "high"}},
    })

    data = generate_ats_report(RESUME, JOB).data

    assert data["overallScore"] == 100
    assert data["matchPercentage"] == 0
    assert 0 <= data["sections"]["skills"]["score"] <= 100


@patch("modules.ats.report_generator.chat_completion")
def test_provider_failure_propagates(mock_chat):
    mock_chat.side_effect = UpstreamServiceError("LLM request failed", details="502 Bad Gateway")
    with pytest.raises(UpstreamServiceError):
        generate_ats_report(RESUME, JOB)


def test_normalize_fills_missing_lists():
    data = normalize_ats_report({"overallScore": 55})
    assert data["keywordMatches"] == {"found": [], "missing": []}
    assert data["recommendations"] == []
    assert data["estimatedATSCompatibility"] == "Low"


@patch("modules.ats.report_generator.chat_completion")
def test_resume_structure_fallback(mock_chat):
    mock_chat.return_value = "not json at all"

    result = parse_resume_structure(RESUME)

    assert result.is_fallback
    assert "personalInfo" in result.data
    assert result.data["experience"] == []


@patch("modules.ats.report_generator.chat_completion")
def test_resume_structure_parsed(mock_chat):
    mock_chat.return_value = json.dumps({"personalInfo": {"name": "Jane Doe"}, "skills": {"technical": ["Python"]}})

    result = parse_resume_structure(RESUME)

    assert not result.is_fallback
    assert result.data["personalInfo"]["name"] == "Jane Doe"
