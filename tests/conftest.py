import io

import docx
import mongomock
import pytest

from app import create_app
from config import Config
from database.session_store import AnswerStore, DraftStore, SessionStore


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, delay, function, args=None):
        self.delay = delay
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, function, args=None):
        timer = FakeTimer(delay, function, args=args)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


def build_docx(*paragraphs):
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Skill"
    table.rows[0].cells[1].text = "Python"
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def build_pdf(text):
    """Single-page PDF with one line of Helvetica text and a correct xref table."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
    ]

    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(f"{number} 0 obj\n".encode() + body + b"\nendobj\n")
    xref_at = out.tell()
    out.write(f"xref\n0 {len(objects) + 1}\n".encode())
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(f"{offset:010d} 00000 n \n".encode())
    out.write(f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode())
    return out.getvalue()


@pytest.fixture(autouse=True)
def offline_config(monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setattr(Config, "OPENROUTER_API_KEY", "test-openrouter-key")
    monkeypatch.setattr(Config, "VAPI_PRIVATE_KEY", None)
    monkeypatch.setattr(Config, "VAPI_PUBLIC_KEY", "test-public-key")
    monkeypatch.setattr(Config, "VAPI_PHONE_NUMBER_ID", None)
    monkeypatch.setattr(Config, "VOICE_PROVIDER", "managed")
    monkeypatch.setattr(Config, "PUBLIC_BASE_URL", "")
    monkeypatch.setattr(Config, "IMAGEKIT_PRIVATE_KEY", None)
    monkeypatch.setattr(Config, "TRANSCRIPT_IDLE_SECONDS", 2.0)


@pytest.fixture
def timer_factory():
    return TimerFactory()


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["interview_prep_test"]


@pytest.fixture
def session_store(mongo_db):
    return SessionStore(mongo_db["interview_sessions"])


@pytest.fixture
def draft_store(mongo_db):
    return DraftStore(mongo_db["intake_drafts"])


@pytest.fixture
def answer_store(mongo_db):
    return AnswerStore(mongo_db["user_answers"])


@pytest.fixture
def app(session_store, draft_store, answer_store):
    return create_app({"TESTING": True}, session_store=session_store, draft_store=draft_store,
                      answer_store=answer_store)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_session(session_store):
    """Create a session and force it into `status` without going through the lifecycle."""

    def _make(status="uploading", **fields):
        fields.setdefault("resume_content", "Python developer with 5 years of Flask and MongoDB.")
        fields.setdefault("job_description_content", "Backend engineer: Python, REST APIs, MongoDB.")
        session = session_store.create("user-1", **fields)
        if status != "uploading":
            session = session_store.update(session["id"], {"status": status})
        return session

    return _make


@pytest.fixture(name="make_docx")
def make_docx_fixture():
    return build_docx


@pytest.fixture(name="make_pdf")
def make_pdf_fixture():
    return build_pdf
