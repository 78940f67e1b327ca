# backend/app.py

import logging
import time

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from database.models import UPDATABLE_FIELDS, SessionStatus, questions_to_dicts
from modules.ats.report_generator import generate_ats_report, parse_resume_structure
from modules.intake.storage import storage_status, upload_file
from modules.intake.text_extractor import extract_text, extract_text_from_url
from modules.interview import session_flow
from modules.interview.followup_generator import generate_followup
from modules.interview.question_generator import generate_interview_questions
from modules.interview.state_machine import advance, next_action
from modules.voice.call_controller import ControllerRegistry, InterviewCallController
from modules.voice.providers import get_voice_provider
from utils.errors import ExtractionError, InterviewPrepError, MissingInputError, NoActiveCallError

logging.basicConfig(level=logging.DEBUG if Config.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

CALL_ACTIONS = ("mute", "unmute", "end")


def create_app(config_overrides=None, session_store=None, draft_store=None, answer_store=None):
    """Initialize Flask app and load configuration"""
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config["MAX_CONTENT_LENGTH"] = Config.MAX_UPLOAD_MB * 1024 * 1024
    if config_overrides:
        app.config.update(config_overrides)

    # ---- CORS: the web client runs on its own origin
    CORS(
        app,
        resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=False,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PATCH", "OPTIONS"],
        max_age=86400,
    )

    # -----------------------------
    # Stores (created on first use so the app starts without MongoDB)
    # -----------------------------
    stores = {"sessions": session_store, "drafts": draft_store, "answers": answer_store}

    def _sessions():
        if stores["sessions"] is None:
            from database.session_store import SessionStore
            stores["sessions"] = SessionStore()
        return stores["sessions"]

    def _drafts():
        if stores["drafts"] is None:
            from database.session_store import DraftStore
            stores["drafts"] = DraftStore()
        return stores["drafts"]

    def _answers():
        if stores["answers"] is None:
            from database.session_store import AnswerStore
            stores["answers"] = AnswerStore()
        return stores["answers"]

    # -----------------------------
    # Live call controllers
    # -----------------------------
    def _on_call_start(session_id):
        try:
            session_flow.mark_call_started(_sessions(), session_id)
        except InterviewPrepError:
            logger.exception("could not mark session %s in progress", session_id)

    def _on_call_end(session_id, transcript):
        try:
            session_flow.finish_call(_sessions(), session_id, transcript)
        except InterviewPrepError:
            logger.exception("could not complete session %s after call end", session_id)
        finally:
            controllers.discard(session_id)

    controllers = ControllerRegistry(
        lambda sid: InterviewCallController(sid, on_call_end=_on_call_end, on_call_start=_on_call_start)
    )
    app.extensions["interview_prep"] = {"stores": stores, "controllers": controllers}

    def _controller_for(session):
        """Existing controller, or a new one only while a call can still happen."""
        controller = controllers.get(session["id"])
        if controller is None and session_flow.is_live(session):
            controller = controllers.get_or_create(session["id"])
        return controller

    # -----------------------------
    # Helpers
    # -----------------------------
    def _json_body():
        return request.get_json(silent=True) or {}

    def _error(e: InterviewPrepError):
        return jsonify(e.to_dict()), e.status_code

    def _intake_text(upload, text, url, label):
        """Uploaded file first, then the file URL when no text was pasted."""
        text = text or ""
        if upload is not None and upload.filename:
            data = upload.read()
            if data:
                try:
                    return extract_text(upload.filename, data)
                except InterviewPrepError as e:
                    logger.error("%s file extraction failed: %s", label, e.message)
                    if not text:
                        raise ExtractionError(f"Failed to extract text from {label} file",
                                              details=e.details or e.message) from e
                    return text
        if url and not text:
            try:
                return extract_text_from_url(url)
            except InterviewPrepError as e:
                logger.error("%s file URL extraction failed: %s", label, e.message)
                raise ExtractionError(f"Failed to extract text from {label} file URL",
                                      details=e.details or e.message) from e
        return text

    @app.errorhandler(InterviewPrepError)
    def handle_domain_error(e):
        if e.status_code >= 500:
            logger.error("request failed: %s (%s)", e.message, e.details)
        return _error(e)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.name, "details": e.description}), e.code
        logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    # =============================
    # Root & health
    # =============================
    @app.route("/")
    def home():
        return jsonify(
            {
                "message": "Interview prep backend is running",
                "voiceProvider": Config.VOICE_PROVIDER,
            }
        ), 200

    @app.route("/health")
    def health():
        return jsonify({"ok": True}), 200

    # =============================
    # Intake
    # =============================
    @app.route("/api/extract-text", methods=["POST"])
    def extract_text_route():
        upload = request.files.get("file")
        if upload is None:
            return jsonify({"error": "No file provided"}), 400

        try:
            data = upload.read()
            logger.debug("File details: name=%s size=%d", upload.filename, len(data))
            text = extract_text(upload.filename, data)
            return jsonify(
                {
                    "success": True,
                    "text": text,
                    "fileName": upload.filename,
                    "fileSize": len(data),
                }
            ), 200
        except InterviewPrepError as e:
            return _error(e)
        except Exception as e:
            logger.exception("Text extraction error")
            return jsonify({"error": "Text extraction failed", "details": str(e)}), 500

    @app.route("/api/upload", methods=["POST"])
    def upload_route():
        upload = request.files.get("file")
        if upload is None:
            return jsonify({"error": "No file provided"}), 400

        try:
            result = upload_file(
                upload.read(),
                request.form.get("fileName") or upload.filename,
                folder=request.form.get("folder"),
            )
            return jsonify({"success": True, **result}), 200
        except InterviewPrepError as e:
            return _error(e)
        except Exception as e:
            logger.exception("ImageKit upload error")
            return jsonify({"error": "Upload failed", "details": str(e)}), 500

    @app.route("/api/test-imagekit", methods=["GET"])
    def test_imagekit():
        return jsonify({"message": "ImageKit Test Endpoint", "environment": storage_status()}), 200

    @app.route("/api/test-imagekit", methods=["POST"])
    def test_imagekit_upload():
        try:
            result = upload_file(b"Hello World Test", "test.txt", folder="/test")
            return jsonify({"success": True, "message": "ImageKit test successful", "result": result}), 200
        except InterviewPrepError as e:
            return jsonify({"success": False, "error": "ImageKit test failed",
                            "details": e.details or e.message}), 500

    # =============================
    # Stateless generation endpoints
    # =============================
    @app.route("/api/generate-ats-report", methods=["POST"])
    def generate_ats_report_route():
        try:
            if request.mimetype == "multipart/form-data":
                form = request.form
                resume_text = _intake_text(request.files.get("resumeFile"), form.get("resumeText"),
                                           form.get("resumeFileUrl"), "resume")
                jd_text = _intake_text(request.files.get("jobDescriptionFile"), form.get("jobDescriptionText"),
                                       form.get("jobDescriptionFileUrl"), "job description")
            else:
                body = _json_body()
                resume_text = _intake_text(None, body.get("resumeText"), body.get("resumeFileUrl"), "resume")
                jd_text = _intake_text(None, body.get("jobDescriptionText"),
                                       body.get("jobDescriptionFileUrl"), "job description")

            if not resume_text.strip() or not jd_text.strip():
                raise MissingInputError("Both resume and job description are required")

            report = generate_ats_report(resume_text, jd_text)
            structure = parse_resume_structure(resume_text)
            return jsonify(session_flow.ats_payload(report, structure, resume_text, jd_text)), 200

        except InterviewPrepError as e:
            if e.status_code < 500:
                return _error(e)
            logger.error("ATS Report generation error: %s (%s)", e.message, e.details)
            return jsonify({"error": "Failed to generate ATS report", "details": e.details or e.message}), 500
        except Exception as e:
            logger.exception("ATS Report generation error")
            return jsonify({"error": "Failed to generate ATS report", "details": str(e)}), 500

    @app.route("/api/generate-questions", methods=["POST"])
    def generate_questions_route():
        body = _json_body()
        if not body.get("resumeContent") or not body.get("jobDescriptionContent"):
            return jsonify({"error": "Resume and job description are required"}), 400

        try:
            result = generate_interview_questions(
                body["resumeContent"],
                body["jobDescriptionContent"],
                interview_type=body.get("interviewType"),
                difficulty=body.get("difficulty"),
                duration=body.get("duration"),
                ai_model=body.get("aiModel"),
            )
            payload = {
                "success": True,
                "questions": questions_to_dicts(result.data),
                "sessionId": body.get("sessionId"),
            }
            if result.is_fallback:
                payload["isFallback"] = True
                payload["warning"] = result.error
            return jsonify(payload), 200
        except Exception as e:
            logger.exception("Question generation error")
            details = e.details if isinstance(e, InterviewPrepError) else str(e)
            return jsonify({"error": "Failed to generate interview questions", "details": details}), 500

    @app.route("/api/generate-followup", methods=["POST"])
    def generate_followup_route():
        body = _json_body()
        if not body.get("userAnswer") or not body.get("question"):
            return jsonify({"error": "User answer and question are required"}), 400

        reply = generate_followup(body["userAnswer"], body["question"], body.get("questionType"))
        return jsonify({"response": reply}), 200

    @app.route("/api/setup-vapi", methods=["POST"])
    def setup_vapi():
        """
        Strong-safe: any failure after input validation still answers 200
        with a mock assistant id so the rest of the flow stays usable.
        """
        body = _json_body()
        session_id = body.get("sessionId")
        questions = body.get("questions") or []
        if not questions:
            return jsonify({"error": "Questions are required"}), 400

        try:
            provider = get_voice_provider()
            setup = provider.setup(session_id, questions, body.get("interviewConfig") or {})
            return jsonify({"success": True, "sessionId": session_id, **setup}), 200
        except Exception as e:
            logger.exception("VAPI setup error, returning mock assistant")
            message = e.message if isinstance(e, InterviewPrepError) else str(e)
            return jsonify(
                {
                    "success": True,
                    "assistantId": f"mock-assistant-{int(time.time() * 1000)}",
                    "phoneNumberId": Config.VAPI_PHONE_NUMBER_ID or "mock-phone-number",
                    "sessionId": session_id,
                    "note": "Mock VAPI setup - voice interview not available yet",
                    "error": message or "Unknown error",
                }
            ), 200

    # =============================
    # Intake drafts
    # =============================
    @app.route("/api/drafts", methods=["POST"])
    def create_draft():
        body = _json_body()
        if not body.get("userId"):
            raise MissingInputError("userId is required")
        if not (body.get("resumeContent") or "").strip() and not body.get("resumeFileUrl"):
            raise MissingInputError("Resume is required", details="Provide resume text or an uploaded file URL")

        draft = _drafts().create(
            body["userId"],
            resume_content=body.get("resumeContent"),
            resume_file_url=body.get("resumeFileUrl"),
            resume_file=body.get("resumeFile"),
        )
        return jsonify({"success": True, "draft": draft}), 200

    @app.route("/api/drafts/<draft_id>", methods=["GET"])
    def get_draft(draft_id):
        return jsonify({"success": True, "draft": _drafts().get(draft_id)}), 200

    @app.route("/api/drafts/<draft_id>", methods=["PATCH"])
    def update_draft(draft_id):
        body = _json_body()
        updates = {k: body[k] for k in ("resumeContent", "resumeFileUrl", "resumeFile") if k in body}
        draft = _drafts().update(draft_id, updates) if updates else _drafts().get(draft_id)
        return jsonify({"success": True, "draft": draft}), 200

    @app.route("/api/drafts/<draft_id>/submit", methods=["POST"])
    def submit_draft(draft_id):
        session = session_flow.submit_draft(_sessions(), _drafts(), draft_id, _json_body())
        return jsonify({"success": True, "session": session, "nextAction": next_action(session)}), 200

    # =============================
    # Sessions
    # =============================
    @app.route("/api/sessions", methods=["POST"])
    def create_session():
        body = _json_body()
        if not body.get("userId"):
            raise MissingInputError("userId is required")

        status = body.get("status") or SessionStatus.UPLOADING.value
        if status not in (SessionStatus.UPLOADING.value, SessionStatus.ATS_PROCESSING.value):
            raise MissingInputError("Invalid initial status", details=status)

        session = _sessions().create(
            body["userId"],
            resume_file_url=body.get("resumeFileUrl"),
            resume_content=body.get("resumeContent"),
            job_description_file_url=body.get("jobDescriptionFileUrl"),
            job_description_content=body.get("jobDescriptionContent"),
            status=status,
        )
        return jsonify({"success": True, "session": session}), 200

    @app.route("/api/sessions", methods=["GET"])
    def list_sessions():
        user_id = request.args.get("userId")
        if not user_id:
            raise MissingInputError("userId is required")
        return jsonify({"success": True, "sessions": _sessions().list_by_user(user_id)}), 200

    @app.route("/api/sessions/<session_id>", methods=["GET"])
    def get_session(session_id):
        return jsonify({"success": True, "session": _sessions().get(session_id)}), 200

    @app.route("/api/sessions/<session_id>", methods=["PATCH"])
    def update_session(session_id):
        body = _json_body()
        updates = {k: v for k, v in body.items() if k in UPDATABLE_FIELDS}
        status = updates.pop("status", None)

        if status is not None:
            session = advance(_sessions(), session_id, status, updates)
        elif updates:
            session = _sessions().update(session_id, updates)
        else:
            session = _sessions().get(session_id)
        return jsonify({"success": True, "session": session}), 200

    @app.route("/api/sessions/<session_id>/next", methods=["GET"])
    def session_next(session_id):
        session = _sessions().get(session_id)
        return jsonify({"success": True, "status": session["status"], "nextAction": next_action(session)}), 200

    @app.route("/api/sessions/<session_id>/ats-report", methods=["POST"])
    def session_ats_report(session_id):
        session = session_flow.run_ats_analysis(_sessions(), session_id)
        return jsonify(
            {
                "success": True,
                "session": session,
                "atsReport": session.get("atsReport"),
                "parsedResumeData": session.get("parsedResumeData"),
                "isFallback": bool(session.get("atsReportIsFallback")),
            }
        ), 200

    @app.route("/api/sessions/<session_id>/configure", methods=["POST"])
    def session_configure(session_id):
        session = session_flow.configure(_sessions(), session_id, _json_body())
        return jsonify({"success": True, "session": session}), 200

    @app.route("/api/sessions/<session_id>/prepare", methods=["POST"])
    def session_prepare(session_id):
        session = session_flow.prepare_interview(_sessions(), session_id)
        return jsonify(
            {
                "success": True,
                "session": session,
                "questions": session.get("generatedQuestions") or [],
                "assistantId": session.get("vapiSessionId"),
            }
        ), 200

    @app.route("/api/sessions/<session_id>/start", methods=["POST"])
    def session_start(session_id):
        result = session_flow.start_interview(_sessions(), session_id)
        return jsonify({"success": True, **result}), 200

    @app.route("/api/sessions/<session_id>/complete", methods=["POST"])
    def session_complete(session_id):
        session = session_flow.complete_session(_sessions(), session_id, _json_body())
        return jsonify({"success": True, "session": session}), 200

    @app.route("/api/sessions/<session_id>/transcript", methods=["GET"])
    def session_transcript(session_id):
        session = _sessions().get(session_id)
        controller = controllers.get(session_id)
        if controller is None:
            stored = (session.get("feedbackData") or {}).get("transcript") or []
            return jsonify({"success": True, "sessionId": session_id, "isCallActive": False,
                            "transcript": stored, "pending": None}), 200
        return jsonify({"success": True, **controller.snapshot()}), 200

    @app.route("/api/sessions/<session_id>/call/<action>", methods=["POST"])
    def session_call_action(session_id, action):
        if action not in CALL_ACTIONS:
            raise MissingInputError("Unknown call action", details=f"Expected one of: {', '.join(CALL_ACTIONS)}")
        session = _sessions().get(session_id)

        controller = _controller_for(session)
        if controller is None:
            raise NoActiveCallError(session_id, session.get("status"))
        if action == "end":
            controller.end_call()
        else:
            controller.set_muted(action == "mute")
        return jsonify({"success": True, **controller.snapshot()}), 200

    # =============================
    # Voice platform webhook
    # =============================
    @app.route("/api/vapi/events/<session_id>", methods=["POST"])
    def vapi_events(session_id):
        session = _sessions().get(session_id)
        payload = _json_body()
        controller = _controller_for(session)
        handled = controller.handle_event(payload) if controller is not None else False
        if not handled:
            logger.debug("ignored voice event for session %s: %s", session_id,
                         (payload.get("message") or {}).get("type") or payload.get("type"))
        return jsonify({"received": True, "handled": handled}), 200

    # =============================
    # Answers
    # =============================
    @app.route("/api/sessions/<session_id>/answers", methods=["POST"])
    def save_answer(session_id):
        answer = session_flow.save_answer(_sessions(), _answers(), session_id, _json_body())
        return jsonify({"success": True, "answer": answer}), 200

    @app.route("/api/sessions/<session_id>/answers", methods=["GET"])
    def list_answers(session_id):
        _sessions().get(session_id)
        return jsonify({"success": True, "answers": _answers().list_by_session(session_id)}), 200

    @app.route("/api/answers/<answer_id>", methods=["PATCH"])
    def rate_answer(answer_id):
        answer = session_flow.rate_answer(_answers(), answer_id, _json_body())
        return jsonify({"success": True, "answer": answer}), 200

    # =============================
    # Progress
    # =============================
    @app.route("/api/users/<user_id>/progress", methods=["GET"])
    def user_progress(user_id):
        progress = session_flow.user_progress(_sessions(), user_id, answer_store=_answers())
        return jsonify({"success": True, "progress": progress}), 200

    return app


# =============================
# Run the Application
# =============================
if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=5000, debug=Config.DEBUG)
