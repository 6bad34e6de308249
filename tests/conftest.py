import os
from datetime import datetime, timedelta

os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["GEMINI_API_KEY"] = ""

import smtplib  # noqa: E402

import mongomock  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from backend import config  # noqa: E402
from backend.database import ensure_indexes, get_db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models import new_question, new_session_doc, new_user_doc  # noqa: E402
from backend.security import create_access_token, hash_password  # noqa: E402

PASSWORD = "secret123"


class FakeSMTP:
    """Stands in for smtplib.SMTP and records every message sent."""

    outbox = []
    fail = False

    def __init__(self, host, port, timeout=None):
        if FakeSMTP.fail:
            raise OSError("connection refused")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.outbox.append(msg)


@pytest.fixture(autouse=True)
def smtp(monkeypatch):
    FakeSMTP.outbox = []
    FakeSMTP.fail = False
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def db():
    database = mongomock.MongoClient().mock_interview_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, role="candidate", email=None, first="Test", last="User", is_active=True):
    email = email or f"{role}@example.com"
    user = new_user_doc(first, last, email, hash_password(PASSWORD), role=role, is_active=is_active)
    db.users.insert_one(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def candidate(db):
    return make_user(db, "candidate", first="Cara", last="Candidate")


@pytest.fixture
def interviewer(db):
    return make_user(db, "interviewer", first="Ivan", last="Interviewer")


@pytest.fixture
def admin(db):
    return make_user(db, "admin", first="Ada", last="Admin")


def completed_session(db, user_id, score=7.0, skills=("Python",), completed_at=None, answers=("An answer",),
                      difficulty="intermediate", qtype="technical"):
    """Insert a completed session whose questions all carry `score`."""
    completed_at = completed_at or datetime.utcnow()
    questions = []
    for text in answers:
        q = new_question(f"Question about {skills[0]}", qtype, difficulty)
        q["answer"] = {"text": text, "timestamp": completed_at}
        q["evaluation"] = {"score": score, "feedback": "ok",
                           "criteria": {"technical_accuracy": score, "communication": score,
                                        "problem_solving": score, "confidence": score}}
        questions.append(q)
    session = new_session_doc(user_id, "Practice", qtype, difficulty, list(skills), 30, questions)
    session.update({
        "status": "completed",
        "startedAt": completed_at - timedelta(minutes=20),
        "completedAt": completed_at,
        "totalDuration": 20,
        "createdAt": completed_at - timedelta(minutes=20),
        "overallEvaluation": {
            "totalScore": score * len(questions),
            "averageScore": score,
            "criteriaBreakdown": {"technical_accuracy": score, "communication": score,
                                  "problem_solving": score, "confidence": score},
        },
    })
    db.interview_sessions.insert_one(session)
    return session
