# backend/utils/errors.py
"""
Exceptions raised by the service layer.

Routes translate them into the `{ "error": ..., "details": ... }` envelope
using `status_code`.
"""


class InterviewPrepError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class MissingInputError(InterviewPrepError):
    status_code = 400


class UnsupportedFileTypeError(InterviewPrepError):
    status_code = 400

    def __init__(self, extension: str):
        super().__init__(f"Unsupported file type: {extension or 'unknown'}")
        self.extension = extension


class ExtractionError(InterviewPrepError):
    status_code = 400


class SessionNotFoundError(InterviewPrepError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("Session not found", details=str(session_id))
        self.session_id = session_id


class InvalidTransitionError(InterviewPrepError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            "Invalid status transition",
            details=f"{current} -> {requested}",
        )
        self.current = current
        self.requested = requested


class UpstreamServiceError(InterviewPrepError):
    """A provider (LLM, voice platform, storage) failed; `details` carries its message."""
    status_code = 500


class DraftNotFoundError(SessionNotFoundError):
    def __init__(self, draft_id: str):
        super().__init__(draft_id)
        self.message = "Draft not found"
        self.args = (self.message,)


class NoActiveCallError(InterviewPrepError):
    status_code = 409

    def __init__(self, session_id: str, status: str):
        super().__init__("No active call for this session", details=f"{session_id} is {status}")
        self.session_id = session_id


class AnswerNotFoundError(SessionNotFoundError):
    def __init__(self, answer_id: str):
        super().__init__(answer_id)
        self.message = "Answer not found"
        self.args = (self.message,)
