# backend/modules/ats/report_generator.py

import logging
from typing import Any, Dict

from utils.llm_client import LLMResult, chat_completion, try_parse_json
from utils.scoring_utils import ats_compatibility, clamp_score

logger = logging.getLogger(__name__)

ATS_MODEL = "deepseek"
FALLBACK_ERROR = "Used fallback data due to JSON parsing error"
PARSE_ERROR = "Failed to parse model response as JSON"

REPORT_SECTIONS = ("skills", "experience", "education", "formatting")


def _fallback_ats_report() -> Dict[str, Any]:
    return {
        "overallScore": 75,
        "matchPercentage": 70,
        "keywordMatches": {
            "found": ["JavaScript", "React", "Node.js"],
            "missing": ["Python", "AWS", "Docker"],
        },
        "sections": {
            "skills": {"score": 80, "feedback": "Good technical skills demonstrated",
                       "suggestions": ["Add cloud platform experience"]},
            "experience": {"score": 75, "feedback": "Relevant work experience",
                           "suggestions": ["Quantify achievements with numbers"]},
            "education": {"score": 70, "feedback": "Educational background is adequate",
                          "suggestions": ["Consider additional certifications"]},
            "formatting": {"score": 85, "feedback": "Well-formatted resume",
                           "suggestions": ["Use consistent bullet points"]},
        },
        "strengths": ["Strong technical background", "Good project experience"],
        "improvementAreas": ["Add more quantified achievements", "Include cloud platform skills"],
        "recommendations": ["Add metrics to demonstrate impact", "Include relevant certifications"],
        "estimatedATSCompatibility": "Medium",
        "summary": ("Resume shows good potential but could benefit from more specific "
                    "achievements and technical keywords."),
    }


def _fallback_resume_structure() -> Dict[str, Any]:
    return {
        "personalInfo": {
            "name": "Resume Owner",
            "email": "",
            "phone": "",
            "location": "",
            "linkedIn": "",
            "portfolio": "",
        },
        "summary": "Professional summary not extracted",
        "skills": {"technical": [], "soft": [], "tools": [], "languages": []},
        "experience": [],
        "education": [],
        "projects": [],
        "certifications": [],
        "awards": [],
        "publications": [],
    }


def normalize_ats_report(report: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keeps every score the client renders inside [0, 100] and fills
    the fields a partial model reply may leave out.
    """
    report = dict(report)
    report["overallScore"] = clamp_score(report.get("overallScore"))
    report["matchPercentage"] = clamp_score(report.get("matchPercentage"), default=report["overallScore"])

    keywords = report.get("keywordMatches")
    if not isinstance(keywords, dict):
        keywords = {}
    report["keywordMatches"] = {
        "found": list(keywords.get("found") or []),
        "missing": list(keywords.get("missing") or []),
    }

    sections = report.get("sections")
    if not isinstance(sections, dict):
        sections = {}
    for name in REPORT_SECTIONS:
        section = sections.get(name)
        if not isinstance(section, dict):
            section = {"feedback": "", "suggestions": []}
        section = dict(section)
        section["score"] = clamp_score(section.get("score"), default=report["overallScore"])
        section.setdefault("feedback", "")
        section.setdefault("suggestions", [])
        sections[name] = section
    report["sections"] = sections

    for key in ("strengths", "improvementAreas", "recommendations"):
        if not isinstance(report.get(key), list):
            report[key] = []
    if report.get("estimatedATSCompatibility") not in ("High", "Medium", "Low"):
        report["estimatedATSCompatibility"] = ats_compatibility(report["overallScore"])
    report.setdefault("summary", "")
    return report


def generate_ats_report(resume_text: str, job_description_text: str) -> LLMResult:
    """
    Score a resume against a job description.

    Never raises on bad model output: an unparseable reply yields the
    fallback report, tagged `is_fallback=True`. Provider failures raise
    UpstreamServiceError.
    """
    prompt = f"""
Analyze the following resume against the job description to generate a comprehensive ATS (Applicant Tracking System) report.

RESUME:
{resume_text}

JOB DESCRIPTION:
{job_description_text}

Please provide a detailed ATS analysis in the following JSON format:

{{
  "overallScore": <number 0-100>,
  "matchPercentage": <number 0-100>,
  "keywordMatches": {{
    "found": ["keyword1", "keyword2"],
    "missing": ["keyword3", "keyword4"]
  }},
  "sections": {{
    "skills": {{"score": <number 0-100>, "feedback": "detailed feedback", "suggestions": ["suggestion1", "suggestion2"]}},
    "experience": {{"score": <number 0-100>, "feedback": "detailed feedback", "suggestions": ["suggestion1", "suggestion2"]}},
    "education": {{"score": <number 0-100>, "feedback": "detailed feedback", "suggestions": ["suggestion1", "suggestion2"]}},
    "formatting": {{"score": <number 0-100>, "feedback": "detailed feedback", "suggestions": ["suggestion1", "suggestion2"]}}
  }},
  "strengths": ["strength1", "strength2"],
  "improvementAreas": ["area1", "area2"],
  "recommendations": ["recommendation1", "recommendation2"],
  "estimatedATSCompatibility": "<High/Medium/Low>",
  "summary": "Overall summary of the resume's performance against this job description"
}}

Focus on:
1. Keyword matching between resume and job requirements
2. Skills alignment
3. Experience relevance
4. Education requirements
5. ATS-friendly formatting
6. Missing critical elements
7. Actionable improvement suggestions
"""

    # provider failures propagate; only an unusable reply falls back
    content = chat_completion(prompt, model_name=ATS_MODEL, temperature=0.3, max_tokens=2000)
    parsed = try_parse_json(content)
    if isinstance(parsed, dict):
        return LLMResult(data=normalize_ats_report(parsed), raw=content, model=ATS_MODEL)

    logger.error("ATS report reply was not JSON (len=%d), using fallback data", len(content or ""))
    report = _fallback_ats_report()
    report["error"] = FALLBACK_ERROR
    report["rawResponse"] = content
    return LLMResult(data=report, is_fallback=True, error=PARSE_ERROR, raw=content, model=ATS_MODEL)


def parse_resume_structure(resume_text: str) -> LLMResult:
    """Extract structured resume data; fallback skeleton on parse failure."""
    prompt = f"""
Parse the following resume and extract structured information in JSON format:

RESUME:
{resume_text}

Please extract and structure the information in the following JSON format:

{{
  "personalInfo": {{
    "name": "Full Name",
    "email": "email@example.com",
    "phone": "phone number",
    "location": "city, state/country",
    "linkedIn": "linkedin profile",
    "portfolio": "portfolio/website url"
  }},
  "summary": "Professional summary or objective",
  "skills": {{
    "technical": ["skill1", "skill2"],
    "soft": ["skill1", "skill2"],
    "tools": ["tool1", "tool2"],
    "languages": ["language1", "language2"]
  }},
  "experience": [
    {{
      "title": "Job Title",
      "company": "Company Name",
      "duration": "Start Date - End Date",
      "location": "Location",
      "responsibilities": ["responsibility1", "responsibility2"],
      "achievements": ["achievement1", "achievement2"]
    }}
  ],
  "education": [
    {{
      "degree": "Degree Type",
      "institution": "Institution Name",
      "year": "Graduation Year",
      "gpa": "GPA if mentioned",
      "relevantCourses": ["course1", "course2"]
    }}
  ],
  "projects": [
    {{
      "name": "Project Name",
      "description": "Project Description",
      "technologies": ["tech1", "tech2"],
      "url": "project url if available"
    }}
  ],
  "certifications": [
    {{"name": "Certification Name", "issuer": "Issuing Organization", "date": "Date Obtained"}}
  ],
  "awards": ["award1", "award2"],
  "publications": ["publication1", "publication2"]
}}

If any section is not found in the resume, use empty arrays or null values appropriately.
"""

    content = chat_completion(prompt, model_name=ATS_MODEL, temperature=0.2, max_tokens=1500)
    parsed = try_parse_json(content)
    if isinstance(parsed, dict):
        return LLMResult(data=parsed, raw=content, model=ATS_MODEL)

    logger.error("resume structure reply was not JSON (len=%d), using fallback data", len(content or ""))
    data = _fallback_resume_structure()
    data["error"] = FALLBACK_ERROR
    data["rawResponse"] = content
    return LLMResult(data=data, is_fallback=True, error=PARSE_ERROR, raw=content, model=ATS_MODEL)
