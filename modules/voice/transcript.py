# backend/modules/voice/transcript.py
"""
Transcript assembly for a live voice interview.

The voice platform streams speech-to-text fragments tagged by speaker. Those
fragments are joined per speaker into a pending buffer and committed to the
visible transcript when:

- the assistant's `speech-end` event fires (assistant buffer),
- the idle timer fires after the last user fragment (user buffer),
- the other speaker starts talking (whatever is pending is committed first).

Each assembler owns its own Debouncer, so concurrent interviews never share
an idle timer.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ROLES = ("assistant", "user", "system")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationMessage:
    role: str
    message: str
    timestamp: datetime = field(default_factory=_now)
    is_complete: bool = True

    def to_dict(self):
        return {
            "role": self.role,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "isComplete": self.is_complete,
        }


class Debouncer:
    """
    Runs `callback` once `delay` seconds after the last `trigger()`.

    Every trigger supersedes the previous one; a timer that was already
    running when it got superseded does nothing when it fires.
    """

    def __init__(self, delay: float, callback: Callable[[], None],
                 timer_factory=threading.Timer):
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    def trigger(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self.callback()


class TranscriptAssembler:
    def __init__(self, idle_seconds: float = 2.0, timer_factory=threading.Timer):
        self._lock = threading.RLock()
        self._messages: List[ConversationMessage] = []
        self._buffer_role: Optional[str] = None
        self._buffer: List[str] = []
        self._idle = Debouncer(idle_seconds, self.user_idle, timer_factory=timer_factory)

    def add_fragment(self, role: str, text: str) -> None:
        role = "assistant" if role == "assistant" else "user"
        text = (text or "").strip()
        if not text:
            return

        with self._lock:
            if self._buffer_role is not None and self._buffer_role != role:
                self._commit_locked()
            self._buffer_role = role
            self._buffer.append(text)
            # armed under the lock; a speaker switch always cancels it
            if role == "user":
                self._idle.trigger()

    def user_idle(self) -> Optional[ConversationMessage]:
        """Idle timer callback: the candidate went quiet, commit their words only."""
        with self._lock:
            if self._buffer_role != "user":
                return None
            return self._commit_locked()

    def assistant_speech_end(self) -> None:
        with self._lock:
            if self._buffer_role == "assistant":
                self._commit_locked()

    def add_system_message(self, text: str) -> None:
        with self._lock:
            self._commit_locked()
            self._messages.append(ConversationMessage(role="system", message=text))

    def flush(self) -> Optional[ConversationMessage]:
        """Commit whatever is pending. Safe to call with nothing pending."""
        with self._lock:
            return self._commit_locked()

    def reset(self) -> None:
        self._idle.cancel()
        with self._lock:
            self._messages = []
            self._buffer_role = None
            self._buffer = []

    def close(self) -> None:
        self.flush()
        self._idle.cancel()

    @property
    def messages(self) -> List[ConversationMessage]:
        with self._lock:
            return list(self._messages)

    @property
    def pending(self) -> Optional[ConversationMessage]:
        with self._lock:
            if self._buffer_role is None:
                return None
            return ConversationMessage(role=self._buffer_role, message=" ".join(self._buffer),
                                       is_complete=False)

    def _commit_locked(self) -> Optional[ConversationMessage]:
        if self._buffer_role is None:
            return None
        if self._buffer_role == "user":
            self._idle.cancel()
        message = ConversationMessage(role=self._buffer_role, message=" ".join(self._buffer))
        self._messages.append(message)
        self._buffer_role = None
        self._buffer = []
        logger.debug("committed %s utterance (%d chars)", message.role, len(message.message))
        return message
