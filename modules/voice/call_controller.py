# backend/modules/voice/call_controller.py
"""
Server-side view of one live voice interview.

Events arrive either in the browser SDK shape (`{"type": "call-start"}`,
`{"type": "message", "message": {...}}`) or in the platform's server-message
shape (`{"message": {"type": "status-update", ...}}`); both are normalized to
the SDK event names before handling.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from config import Config
from modules.voice.transcript import TranscriptAssembler

logger = logging.getLogger(__name__)

CALL_CONNECTED_MESSAGE = "Call connected. The AI interviewer will begin shortly."

CLIENT_EVENTS = ("call-start", "call-end", "speech-start", "speech-end", "volume-level", "message", "error")


def normalize_event(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Map an incoming payload to `{"type": <sdk event>, ...}`.
    Returns None for payloads that carry nothing this controller tracks.
    """
    if not isinstance(payload, dict):
        return None

    if payload.get("type") in CLIENT_EVENTS:
        return payload

    message = payload.get("message")
    if not isinstance(message, dict):
        return None

    kind = message.get("type")
    if kind == "status-update":
        status = message.get("status")
        if status == "in-progress":
            return {"type": "call-start", "call": message.get("call") or {}}
        if status == "ended":
            return {"type": "call-end", "reason": message.get("endedReason")}
        return None
    if kind == "end-of-call-report":
        return {"type": "call-end", "reason": message.get("endedReason")}
    if kind == "speech-update":
        started = message.get("status") == "started"
        if message.get("role") == "assistant":
            return {"type": "speech-start" if started else "speech-end"}
        if started:
            return {"type": "user-speech-start"}
        return None
    if kind == "transcript":
        return {"type": "message", "message": message}
    return None


class InterviewCallController:
    def __init__(self, session_id: str,
                 on_call_end: Callable[[str, list], None] = None,
                 on_call_start: Callable[[str], None] = None,
                 idle_seconds: float = None,
                 timer_factory=threading.Timer):
        self.session_id = session_id
        self.transcript = TranscriptAssembler(
            idle_seconds=Config.TRANSCRIPT_IDLE_SECONDS if idle_seconds is None else idle_seconds,
            timer_factory=timer_factory,
        )
        self._on_call_end = on_call_end
        self._on_call_start = on_call_start
        self._lock = threading.Lock()

        self.is_call_active = False
        self.is_muted = False
        self.assistant_is_speaking = False
        self.volume_level = 0.0
        self.error: Optional[str] = None
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None
        self.control_url: Optional[str] = None
        self.call_id: Optional[str] = None

    # ---- event handling ----

    def handle_event(self, payload: Dict[str, Any]) -> bool:
        """Apply one event; returns False when the payload was ignored."""
        event = normalize_event(payload)
        if event is None:
            return False

        kind = event["type"]
        if kind == "call-start":
            self._call_started(event.get("call") or {})
        elif kind == "call-end":
            self._call_ended()
        elif kind == "speech-start":
            self.assistant_is_speaking = True
        elif kind == "speech-end":
            self.assistant_is_speaking = False
            self.transcript.assistant_speech_end()
        elif kind == "user-speech-start":
            # the candidate started talking; commit what the assistant said
            self.transcript.assistant_speech_end()
        elif kind == "volume-level":
            try:
                self.volume_level = float(event.get("level", event.get("volume", 0.0)))
            except (TypeError, ValueError):
                pass
        elif kind == "message":
            self._on_message(event.get("message") or {})
        elif kind == "error":
            err = event.get("error")
            detail = err.get("message") if isinstance(err, dict) else err
            self.error = f"Call error: {detail or 'Unknown error'}"
            self.is_call_active = False
            logger.error("voice platform error for session %s: %s", self.session_id, detail)
        return True

    def _call_started(self, call: Dict[str, Any]) -> None:
        with self._lock:
            self.is_call_active = True
            self.error = None
            self.started_at = time.time()
            self.ended_at = None
            self.call_id = call.get("id") or self.call_id
            self.control_url = ((call.get("monitor") or {}).get("controlUrl")) or self.control_url
        self.transcript.reset()
        self.transcript.add_system_message(CALL_CONNECTED_MESSAGE)
        logger.info("call started for session %s", self.session_id)
        if self._on_call_start:
            self._on_call_start(self.session_id)

    def _call_ended(self) -> None:
        with self._lock:
            already_ended = self.ended_at is not None
            self.is_call_active = False
            self.assistant_is_speaking = False
            if not already_ended:
                self.ended_at = time.time()
        self.transcript.close()
        if already_ended:
            return
        logger.info("call ended for session %s", self.session_id)
        if self._on_call_end:
            self._on_call_end(self.session_id, [m.to_dict() for m in self.transcript.messages])

    def _on_message(self, message: Dict[str, Any]) -> None:
        if message.get("type") != "transcript" or not message.get("transcript"):
            return
        # partial transcripts are revised later; only final ones are kept
        if message.get("transcriptType", "final") != "final":
            return
        self.transcript.add_fragment(message.get("role"), message["transcript"])

    # ---- pass-through controls ----

    def set_muted(self, muted: bool) -> None:
        self.is_muted = bool(muted)

    def end_call(self) -> None:
        """Ask the platform to hang up when it gave us a control URL, then close locally."""
        if self.control_url:
            try:
                requests.post(self.control_url, json={"type": "end-call"}, timeout=Config.HTTP_TIMEOUT)
            except requests.RequestException:
                logger.exception("end-call request failed for session %s", self.session_id)
        self._call_ended()

    # ---- read side ----

    @property
    def call_duration(self) -> int:
        if self.started_at is None:
            return 0
        end = self.ended_at or time.time()
        return int(end - self.started_at)

    def snapshot(self) -> Dict[str, Any]:
        pending = self.transcript.pending
        return {
            "sessionId": self.session_id,
            "isCallActive": self.is_call_active,
            "isMuted": self.is_muted,
            "assistantIsSpeaking": self.assistant_is_speaking,
            "volumeLevel": self.volume_level,
            "callDuration": self.call_duration,
            "error": self.error,
            "transcript": [m.to_dict() for m in self.transcript.messages],
            "pending": pending.to_dict() if pending else None,
        }


class ControllerRegistry:
    """Process-local controllers, one per session."""

    def __init__(self, factory: Callable[[str], InterviewCallController]):
        self._factory = factory
        self._controllers: Dict[str, InterviewCallController] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[InterviewCallController]:
        with self._lock:
            return self._controllers.get(session_id)

    def get_or_create(self, session_id: str) -> InterviewCallController:
        with self._lock:
            controller = self._controllers.get(session_id)
            if controller is None:
                controller = self._factory(session_id)
                self._controllers[session_id] = controller
            return controller

    def discard(self, session_id: str) -> None:
        with self._lock:
            controller = self._controllers.pop(session_id, None)
        if controller is not None:
            controller.transcript.close()
