"""
Document shapes for the MongoDB collections.

pymongo stores plain dicts, so each collection gets a small factory that
fills in defaults and timestamps, plus serializers that strip private fields
before a document leaves the API.
"""
from datetime import datetime
from typing import List, Optional

from backend.database import new_id

# ---------------- Enums ----------------
ROLES = ("candidate", "interviewer", "admin")
EXPERIENCE_LEVELS = ("fresher", "1-3", "3-5", "5-10", "10+")
INTERVIEW_TYPES = ("technical", "behavioral", "mixed")
QUESTION_TYPES = ("technical", "behavioral", "situational")
DIFFICULTIES = ("beginner", "intermediate", "advanced")
GUIDE_DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")
SESSION_STATUSES = ("scheduled", "in-progress", "completed", "cancelled")
SCHEDULE_STATUSES = ("scheduled", "confirmed", "completed", "cancelled")
SKILL_CATEGORIES = ("programming", "framework", "database", "tool", "soft-skill", "other")
RECOMMENDATIONS = ("strongly_recommend", "recommend", "neutral", "not_recommend", "strongly_not_recommend")
CRITERIA = ("technical_accuracy", "communication", "problem_solving", "confidence")


def _now():
    return datetime.utcnow()


# ---------------- Users ----------------
def new_user_doc(first_name: str, last_name: str, email: str, password_hash: str,
                 role: str = "candidate", is_active: bool = True) -> dict:
    now = _now()
    return {
        "_id": new_id(),
        "firstName": first_name.strip(),
        "lastName": last_name.strip(),
        "email": email.lower().strip(),
        "password_hash": password_hash,
        "role": role,
        "profile": {"experience": "fresher", "skills": [], "bio": None, "resume": None},
        "isActive": is_active,
        "lastLogin": None,
        "createdAt": now,
        "updatedAt": now,
    }


def public_user(user: Optional[dict]) -> Optional[dict]:
    if not user:
        return None
    out = {k: v for k, v in user.items() if k != "password_hash"}
    profile = dict(out.get("profile") or {})
    resume = profile.get("resume")
    if resume:
        # extracted text can be large; the dashboard only needs the metadata
        profile["resume"] = {k: v for k, v in resume.items() if k != "textContent"}
    out["profile"] = profile
    out["fullName"] = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
    return out


# ---------------- Interview sessions ----------------
def new_question(question: str, qtype: str = "technical", difficulty: str = "intermediate",
                 expected_answer: str = "") -> dict:
    return {
        "questionId": new_id(),
        "question": question,
        "type": qtype,
        "difficulty": difficulty,
        "expectedAnswer": expected_answer or "",
        "answer": None,
        "evaluation": None,
        "timeSpent": 0,
    }


def new_session_doc(candidate_id: str, title: str, itype: str, difficulty: str, skills: List[str],
                    duration: int, questions: List[dict], scheduled: bool = False,
                    interviewer_id: Optional[str] = None) -> dict:
    now = _now()
    return {
        "_id": new_id(),
        "candidate": candidate_id,
        "interviewer": interviewer_id,
        "title": title.strip(),
        "description": f"{itype} interview covering: {', '.join(skills)}",
        "type": itype,
        "difficulty": difficulty,
        "skills": skills,
        "duration": duration,
        "status": "scheduled" if scheduled else "in-progress",
        "questions": questions,
        "overallEvaluation": None,
        "startedAt": None if scheduled else now,
        "completedAt": None,
        "totalDuration": None,
        "createdAt": now,
        "updatedAt": now,
    }


def answered_questions(session: dict) -> List[dict]:
    return [q for q in session.get("questions", []) if (q.get("answer") or {}).get("text")]


def progress_of(session: dict) -> int:
    total = len(session.get("questions", []))
    if total == 0:
        return 0
    return round(len(answered_questions(session)) / total * 100)


# ---------------- Achievements ----------------
def new_achievement_doc(user_id: str, badge: dict, current: int) -> dict:
    now = _now()
    return {
        "_id": new_id(),
        "userId": user_id,
        "badgeId": badge["id"],
        "badgeName": badge["name"],
        "badgeDescription": badge["description"],
        "badgeIcon": badge["icon"],
        "badgeCategory": badge["category"],
        "earnedAt": now,
        "progress": {"current": current, "target": badge["criteria"]["target"]},
        "createdAt": now,
        "updatedAt": now,
    }


# ---------------- Interview guides ----------------
def new_guide_question(question: str, answer: str, category: str, tags=None, code_example: str = "",
                       references=None, order: int = 0) -> dict:
    return {
        "_id": new_id(),
        "question": question.strip(),
        "answer": answer.strip(),
        "category": category.strip(),
        "tags": tags or [],
        "codeExample": code_example or "",
        "references": references or [],
        "order": order,
    }


def guide_summary(guide: dict) -> dict:
    """List view: hide answers and code examples, expose the question count."""
    out = dict(guide)
    out["questions"] = [
        {k: v for k, v in q.items() if k not in ("answer", "codeExample")}
        for q in guide.get("questions", [])
    ]
    out["questionCount"] = len(guide.get("questions", []))
    return out


# ---------------- System settings ----------------
DEFAULT_SETTINGS = {
    "siteName": "Mock Interview Platform",
    "siteDescription": "Practice interviews with AI-powered feedback",
    "contactEmail": "admin@example.com",
    "enableRegistration": True,
    "enableEmailNotifications": True,
    "maxSessionsPerUser": 10,
    "sessionTimeoutMinutes": 60,
    "enableAnalytics": True,
    "maintenanceMode": False,
}

SETTINGS_ID = "system"


def get_settings(db) -> dict:
    """Fetch the settings singleton, creating it with defaults on first use."""
    settings = db.system_settings.find_one({"_id": SETTINGS_ID})
    if settings:
        return settings
    # upsert so concurrent first requests converge on one document
    db.system_settings.update_one(
        {"_id": SETTINGS_ID},
        {"$setOnInsert": {**DEFAULT_SETTINGS, "createdAt": _now(), "updatedAt": _now()}},
        upsert=True,
    )
    return db.system_settings.find_one({"_id": SETTINGS_ID})


def public_settings(settings: dict) -> dict:
    return {k: settings.get(k, v) for k, v in DEFAULT_SETTINGS.items()}


# ---------------- Interviewer configuration ----------------
DEFAULT_INTERVIEWER_CONFIG = {
    "defaultDuration": 30,
    "defaultDifficulty": "intermediate",
    "autoGenerateQuestions": True,
    "aiAssistanceEnabled": True,
    "recordInterviews": False,
    "allowCandidateRescheduling": True,
    "notificationPreferences": {
        "emailReminders": True,
        "smsReminders": False,
        "beforeInterviewHours": 24,
    },
}


def mask_email(email: str) -> str:
    local, sep, domain = (email or "").partition("@")
    if not sep or len(local) < 2:
        return email
    return f"{local[:2]}***@{domain}"
