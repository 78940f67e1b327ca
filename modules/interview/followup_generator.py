# backend/modules/interview/followup_generator.py

import logging
import random

from utils.errors import UpstreamServiceError
from utils.llm_client import openrouter_chat

logger = logging.getLogger(__name__)

FOLLOWUP_MODEL = "deepseek/deepseek-chat"

HTTP_ERROR_REPLY = ("That's interesting! Can you tell me more about the specific challenges "
                    "you faced and how you overcame them?")
EMPTY_REPLY = "Thank you for sharing that. Could you provide a specific example to illustrate your point?"

FALLBACK_RESPONSES = [
    "That's a great point! Can you walk me through a specific example?",
    "Interesting approach! What was the outcome of that situation?",
    "I'd love to hear more details about that experience.",
    "That sounds challenging! How did you handle the pressure?",
    "Can you elaborate on the steps you took to achieve that result?",
]


def generate_followup(user_answer: str, question: str, question_type: str = None) -> str:
    """
    Short conversational follow-up (<50 words) to a candidate's answer.
    Always returns text; provider problems fall back to canned replies.
    """
    system_prompt = f"""You are an experienced AI interviewer conducting a {question_type or 'professional'} interview. Your role is to:

1. Acknowledge the candidate's response professionally
2. Ask 1-2 relevant follow-up questions to dive deeper
3. Keep responses conversational and under 50 words
4. Be encouraging but professional
5. Focus on getting specific examples and details

Current question being discussed: "{question}"

Generate a natural, conversational follow-up response that encourages the candidate to elaborate or provide more specific details."""

    user_prompt = f"""The candidate just answered: "{user_answer}"

Please provide a brief, encouraging follow-up response that asks for more specific details or examples. Keep it conversational and under 50 words."""

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    try:
        reply = openrouter_chat(messages, model=FOLLOWUP_MODEL, temperature=0.7, max_tokens=150)
    except UpstreamServiceError as e:
        logger.error("OpenRouter follow-up failed: %s", e.details)
        return HTTP_ERROR_REPLY
    except Exception:
        logger.exception("Follow-up generation error")
        return random.choice(FALLBACK_RESPONSES)

    return reply or EMPTY_REPLY
