# backend/modules/voice/providers.py
"""
Voice interview providers.

Two ways of running the same interview on the voice platform:

- ManagedAssistantProvider creates a named assistant through the platform's
  REST API; the browser starts the call with the returned assistant id.
- InlineAssistantProvider creates nothing server-side; the browser starts the
  call with the full assistant configuration returned here.

`get_voice_provider()` picks one from Config.VOICE_PROVIDER.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import requests

from config import Config
from modules.voice.script import build_assistant_payload
from utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class VoiceInterviewProvider(ABC):
    name = "base"

    @abstractmethod
    def setup(self, session_id: str, questions: List[Dict[str, Any]],
              interview_config: Dict[str, Any]) -> Dict[str, Any]:
        """Prepare the assistant; returns at least `assistantId`."""

    @abstractmethod
    def start_info(self, session: Dict[str, Any]) -> Dict[str, Any]:
        """What the browser needs to start the call for a prepared session."""

    def _base_start_info(self) -> Dict[str, Any]:
        return {"provider": self.name, "publicKey": Config.VAPI_PUBLIC_KEY}


def _session_config(session: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": session.get("interviewType"),
        "difficulty": session.get("difficulty"),
        "duration": session.get("interviewDuration"),
        "aiModel": session.get("aiModel"),
    }


class ManagedAssistantProvider(VoiceInterviewProvider):
    name = "managed"

    def setup(self, session_id, questions, interview_config):
        if not Config.VAPI_PRIVATE_KEY:
            logger.error("VAPI private key missing")
            raise UpstreamServiceError("VAPI private key not configured")

        payload = build_assistant_payload(questions, interview_config, session_id)
        logger.debug("creating assistant %s (maxDurationSeconds=%s)",
                     payload["name"], payload["maxDurationSeconds"])

        url = f"{Config.VAPI_BASE_URL.rstrip('/')}/assistant"
        headers = {
            "Authorization": f"Bearer {Config.VAPI_PRIVATE_KEY}",
            "Content-Type": "application/json",
        }
        try:
            r = requests.post(url, headers=headers, json=payload, timeout=Config.HTTP_TIMEOUT)
        except requests.RequestException as e:
            raise UpstreamServiceError("VAPI API error", details=str(e)) from e

        if not r.ok:
            logger.error("VAPI API error response: %s %s", r.status_code, r.text)
            raise UpstreamServiceError(f"VAPI API error: {r.status_code}", details=r.text)

        assistant = r.json()
        logger.info("VAPI assistant created: %s", assistant.get("id"))
        return {
            "assistantId": assistant.get("id"),
            "phoneNumberId": Config.VAPI_PHONE_NUMBER_ID,
        }

    def start_info(self, session):
        info = self._base_start_info()
        info["assistantId"] = session.get("vapiSessionId")
        return info


class InlineAssistantProvider(VoiceInterviewProvider):
    name = "inline"

    def setup(self, session_id, questions, interview_config):
        payload = build_assistant_payload(questions, interview_config, session_id,
                                          name="Interview Assistant")
        return {
            "assistantId": f"inline-{session_id}",
            "phoneNumberId": Config.VAPI_PHONE_NUMBER_ID,
            "assistant": payload,
        }

    def start_info(self, session):
        info = self._base_start_info()
        info["assistant"] = build_assistant_payload(
            session.get("generatedQuestions") or [],
            _session_config(session),
            session["id"],
            name="Interview Assistant",
        )
        return info


PROVIDERS = {
    ManagedAssistantProvider.name: ManagedAssistantProvider,
    InlineAssistantProvider.name: InlineAssistantProvider,
}


def get_voice_provider(name: str = None) -> VoiceInterviewProvider:
    """Unknown names fall back to the managed provider."""
    key = (name or Config.VOICE_PROVIDER or "managed").strip().lower()
    return PROVIDERS.get(key, ManagedAssistantProvider)()
