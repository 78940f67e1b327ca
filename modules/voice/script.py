# backend/modules/voice/script.py
"""
Prompt and assistant-configuration builders for the voice interviewer.
Both voice providers share these so the managed and inline flows ask the
same questions the same way.
"""

from typing import Any, Dict, List

from config import Config
from database.models import DEFAULT_DIFFICULTY, DEFAULT_DURATION, DEFAULT_INTERVIEW_TYPE

ASSISTANT_MODEL = {"provider": "openai", "model": "gpt-4o-mini", "temperature": 0.7, "maxTokens": 500}
ASSISTANT_VOICE = {"provider": "11labs", "voiceId": "burt"}
ASSISTANT_TRANSCRIBER = {"provider": "deepgram", "model": "nova-2", "language": "en"}

END_CALL_MESSAGE = ("Thank you for completing the interview. You'll receive detailed feedback "
                    "shortly. Have a great day!")
END_CALL_PHRASES = ["end interview", "finish interview", "that's all", "we're done", "goodbye"]

CLIENT_MESSAGES = ["transcript", "hang", "function-call", "speech-update", "metadata", "conversation-update"]
SERVER_MESSAGES = ["end-of-call-report", "status-update", "hang", "function-call", "transcript", "speech-update"]

BUFFER_MINUTES = 5


def normalize_interview_config(config: Dict[str, Any]) -> Dict[str, Any]:
    config = dict(config or {})
    config["type"] = config.get("type") or config.get("interviewType") or DEFAULT_INTERVIEW_TYPE
    config["difficulty"] = config.get("difficulty") or DEFAULT_DIFFICULTY
    try:
        config["duration"] = int(config.get("duration") or config.get("interviewDuration") or DEFAULT_DURATION)
    except (TypeError, ValueError):
        config["duration"] = DEFAULT_DURATION
    return config


def build_interview_script(questions: List[Dict[str, Any]], config: Dict[str, Any]) -> str:
    config = normalize_interview_config(config)
    questions_list = "\n".join(
        f"{index + 1}. {q.get('question')} (Expected duration: {q.get('expectedDuration', '3-5 minutes')})"
        for index, q in enumerate(questions)
    )
    minutes_per_question = config["duration"] // max(len(questions), 1)

    return f"""You are a professional interview assistant conducting a {config['type']} interview at {config['difficulty']} level.

INTERVIEW CONFIGURATION:
- Type: {config['type']}
- Difficulty: {config['difficulty']}
- Duration: {config['duration']} minutes
- Number of questions: {len(questions)}

INTERVIEW QUESTIONS TO ASK:
{questions_list}

INSTRUCTIONS:
1. Be professional, friendly, and encouraging
2. Ask questions one at a time in the order provided
3. Listen carefully to the candidate's responses
4. Ask natural follow-up questions when appropriate
5. Keep track of time and pace the interview accordingly
6. If a candidate's answer is too brief, politely ask for more details
7. If a candidate goes off-topic, gently redirect them
8. Provide brief acknowledgments like "That's interesting" or "I see" between questions
9. Give the candidate a chance to ask questions at the end
10. Keep responses concise and focused on gathering information

BEHAVIORAL GUIDELINES:
- Maintain a warm but professional tone
- Show genuine interest in their responses
- Avoid being overly chatty or taking up too much time
- Be patient if they need a moment to think
- Encourage them if they seem nervous
- Stay neutral and avoid expressing strong opinions about their answers

TIMING:
- Aim for approximately {minutes_per_question} minutes per question
- Give a gentle time warning if needed: "We have about X minutes left, so let's move to the next question"
- Save 2-3 minutes at the end for their questions

Remember: Your role is to facilitate a positive interview experience while gathering comprehensive information about the candidate's qualifications and fit for the role."""


def build_welcome_message(config: Dict[str, Any]) -> str:
    config = normalize_interview_config(config)
    return (
        f"Hello! Welcome to your {config['type']} interview. I'm your AI interview assistant, "
        f"and I'll be conducting your {config['duration']}-minute interview session today. "
        "Before we begin, please make sure you're in a quiet environment with a good internet connection. "
        "You can speak naturally - I'll be listening and asking you questions about your background "
        "and experience. Are you ready to get started with the first question?"
    )


def events_url(session_id: str) -> str:
    base = (Config.PUBLIC_BASE_URL or "").rstrip("/")
    return f"{base}/api/vapi/events/{session_id}" if base else ""


def build_assistant_payload(questions: List[Dict[str, Any]], config: Dict[str, Any],
                            session_id: str, name: str = None) -> Dict[str, Any]:
    """Full assistant definition understood by the voice platform."""
    config = normalize_interview_config(config)
    model = dict(ASSISTANT_MODEL)
    model["messages"] = [{"role": "system", "content": build_interview_script(questions, config)}]

    payload = {
        "name": name or f"Interview Assistant - Session {session_id}",
        "model": model,
        "voice": dict(ASSISTANT_VOICE),
        "transcriber": dict(ASSISTANT_TRANSCRIBER),
        "firstMessage": build_welcome_message(config),
        "endCallMessage": END_CALL_MESSAGE,
        "endCallPhrases": list(END_CALL_PHRASES),
        "recordingEnabled": True,
        "maxDurationSeconds": (config["duration"] + BUFFER_MINUTES) * 60,
        "silenceTimeoutSeconds": 30,
        "responseDelaySeconds": 1,
        "numWordsToInterruptAssistant": 2,
        "clientMessages": list(CLIENT_MESSAGES),
        "serverMessages": list(SERVER_MESSAGES),
        "metadata": {
            "sessionId": session_id,
            "interviewType": config["type"],
            "difficulty": config["difficulty"],
            "questionCount": len(questions),
        },
    }

    url = events_url(session_id)
    if url:
        payload["serverUrl"] = url
    return payload
