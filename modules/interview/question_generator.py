# backend/modules/interview/question_generator.py

import logging
import math
from typing import List

from database.models import (
    DEFAULT_AI_MODEL,
    DEFAULT_DIFFICULTY,
    DEFAULT_DURATION,
    DEFAULT_INTERVIEW_TYPE,
    Question,
)
from utils.llm_client import LLMResult, chat_completion, try_parse_json

logger = logging.getLogger(__name__)

MINUTES_PER_QUESTION = 5

QUESTION_TYPE_GUIDELINES = {
    "technical": """
- 70% Technical/Problem-solving questions
- 20% Experience-based technical questions
- 10% Communication and teamwork in technical contexts
- Include coding problems, system design, or technical concepts
- Ask about specific technologies mentioned in resume/job description""",
    "behavioral": """
- 60% Behavioral questions using STAR method
- 25% Situational/hypothetical scenarios
- 15% Cultural fit and motivation questions
- Focus on past experiences and how they handled situations
- Explore leadership, teamwork, conflict resolution""",
    "mixed": """
- 40% Technical questions
- 40% Behavioral questions
- 20% Situational and general questions
- Balance technical competency with soft skills assessment
- Include both problem-solving and experience-based questions""",
    "hr": """
- 50% Cultural fit and company alignment
- 30% Career goals and motivation
- 20% General background and communication
- Focus on personality, work style, and company fit
- Explore career aspirations and work preferences""",
}

DIFFICULTY_GUIDELINES = {
    "beginner": """
- Focus on fundamental concepts and basic applications
- Ask about learning experiences and growth mindset
- Include entry-level scenarios and simple problem-solving
- Avoid complex system design or advanced technical concepts
- Encourage explanation of basic principles""",
    "intermediate": """
- Mix of fundamental and intermediate concepts
- Include real-world application scenarios
- Ask about past project experiences and decision-making
- Include some challenging but not expert-level problems
- Balance theory with practical experience""",
    "advanced": """
- Focus on complex problem-solving and system thinking
- Include architecture and design decisions
- Ask about leadership, mentoring, and strategic thinking
- Include challenging technical problems and trade-offs
- Explore expertise depth and breadth""",
}

FALLBACK_QUESTIONS = {
    "technical": [
        "Tell me about a challenging technical problem you solved recently.",
        "How do you approach debugging a complex issue?",
        "Describe your experience with the main technologies mentioned in the job description.",
        "Walk me through your development process for a typical project.",
        "How do you stay updated with new technologies and best practices?",
    ],
    "behavioral": [
        "Tell me about a time when you had to work with a difficult team member.",
        "Describe a situation where you had to meet a tight deadline.",
        "Give me an example of when you had to learn something new quickly.",
        "Tell me about a time when you made a mistake and how you handled it.",
        "Describe a project you're particularly proud of and why.",
    ],
    "mixed": [
        "Tell me about a technical project that required significant collaboration.",
        "How do you handle conflicting requirements from different stakeholders?",
        "Describe a time when you had to make a technical decision with incomplete information.",
        "Tell me about a time when you had to explain a complex technical concept to a non-technical person.",
        "How do you balance technical debt with feature development?",
    ],
    "hr": [
        "What interests you most about this role and our company?",
        "Where do you see yourself in your career in 5 years?",
        "What kind of work environment do you thrive in?",
        "Tell me about your greatest professional achievement.",
        "Why are you looking to make a change from your current position?",
    ],
}

FALLBACK_FOLLOW_UPS = (
    "Can you provide more specific details about that?",
    "What would you do differently if you faced a similar situation again?",
)


def question_count(duration) -> int:
    """Roughly five minutes per question."""
    return math.ceil(float(duration) / MINUTES_PER_QUESTION)


def get_question_type_guidelines(interview_type: str) -> str:
    return QUESTION_TYPE_GUIDELINES.get(
        interview_type, "Create a balanced mix of technical and behavioral questions."
    )


def get_difficulty_guidelines(difficulty: str) -> str:
    return DIFFICULTY_GUIDELINES.get(
        difficulty, "Adjust question complexity to match the candidate level."
    )


def generate_fallback_questions(interview_type: str, count: int, difficulty: str) -> List[Question]:
    pool = FALLBACK_QUESTIONS.get(interview_type, FALLBACK_QUESTIONS["mixed"])
    return [
        Question(
            id=index + 1,
            question=text,
            type=interview_type,
            category="general",
            difficulty=difficulty,
            expected_duration="3-5 minutes",
            follow_up_suggestions=FALLBACK_FOLLOW_UPS,
        )
        for index, text in enumerate(pool[:count])
    ]


def build_question_prompt(resume_content: str, job_description_content: str,
                          interview_type: str, difficulty: str, duration, count: int) -> str:
    return f"""
You are an expert interviewer creating a {difficulty} level {interview_type} interview. Generate exactly {count} interview questions.

CANDIDATE'S RESUME:
{resume_content}

JOB DESCRIPTION:
{job_description_content}

INTERVIEW SPECIFICATIONS:
- Type: {interview_type}
- Difficulty: {difficulty}
- Duration: {duration} minutes
- Questions needed: {count}

QUESTION TYPES BASED ON INTERVIEW TYPE:
{get_question_type_guidelines(interview_type)}

DIFFICULTY LEVEL GUIDELINES:
{get_difficulty_guidelines(difficulty)}

Generate exactly {count} questions in JSON format:
{{
  "questions": [
    {{
      "id": 1,
      "question": "Your question here",
      "type": "technical|behavioral|situational|general",
      "expectedDuration": "2-5 minutes",
      "difficulty": "{difficulty}",
      "category": "relevant skill/topic",
      "followUpSuggestions": ["potential follow-up question 1", "potential follow-up question 2"]
    }}
  ]
}}

IMPORTANT REQUIREMENTS:
1. Make questions specific to the candidate's background and the job requirements
2. Ensure questions are appropriate for the {difficulty} difficulty level
3. Include a mix of question types appropriate for {interview_type} interviews
4. Each question should be clear, concise, and open-ended
5. Include follow-up suggestions for deeper exploration
6. Avoid yes/no questions
7. Ensure questions can realistically be answered in the expected duration

Focus on creating questions that will help evaluate the candidate's fit for this specific role while giving them opportunities to showcase their relevant experience and skills.
"""


def generate_interview_questions(resume_content: str,
                                 job_description_content: str,
                                 interview_type: str = None,
                                 difficulty: str = None,
                                 duration=None,
                                 ai_model: str = None) -> LLMResult:
    """
    Ask the selected model for `question_count(duration)` questions.

    `data` is always a list of Question. On an unparseable reply the
    per-type fallback pool is used and the result is tagged as fallback.
    """
    interview_type = interview_type or DEFAULT_INTERVIEW_TYPE
    difficulty = difficulty or DEFAULT_DIFFICULTY
    duration = duration or DEFAULT_DURATION
    ai_model = ai_model or DEFAULT_AI_MODEL
    count = question_count(duration)

    prompt = build_question_prompt(
        resume_content, job_description_content, interview_type, difficulty, duration, count
    )

    content = chat_completion(prompt, model_name=ai_model, temperature=0.7, max_tokens=2000)
    parsed = try_parse_json(content)

    raw_questions = None
    if isinstance(parsed, dict) and isinstance(parsed.get("questions"), list):
        raw_questions = parsed["questions"]
    elif isinstance(parsed, list):
        raw_questions = parsed

    if raw_questions is not None:
        questions = [
            Question.from_dict(q, index=i, default_type=interview_type, default_difficulty=difficulty)
            for i, q in enumerate(raw_questions)
            if isinstance(q, dict)
        ]
        questions = [q for q in questions if q.question]
        if questions:
            return LLMResult(data=questions, raw=content, model=ai_model,
                             meta={"questionCount": count})

    logger.error("question reply was not usable JSON (len=%d), using fallback questions", len(content or ""))
    return LLMResult(
        data=generate_fallback_questions(interview_type, count, difficulty),
        is_fallback=True,
        error="Failed to parse model response as JSON",
        raw=content,
        model=ai_model,
        meta={"questionCount": count},
    )
