"""Badge catalogue and the rules that award badges from completed interview sessions."""
import logging
from datetime import timedelta
from typing import List

from pymongo.errors import DuplicateKeyError

from backend.models import answered_questions, new_achievement_doc

logger = logging.getLogger(__name__)


def _badge(badge_id, name, description, icon, category, ctype, target, rarity, condition=None):
    criteria = {"type": ctype, "target": target}
    if condition:
        criteria["condition"] = condition
    return {
        "id": badge_id,
        "name": name,
        "description": description,
        "icon": icon,
        "category": category,
        "criteria": criteria,
        "rarity": rarity,
    }


AVAILABLE_BADGES = [
    # interview completion
    _badge("first_interview", "First Steps", "Complete your first interview", "🎯",
           "interview", "interviews_completed", 1, "common"),
    _badge("interview_5", "Getting Started", "Complete 5 interviews", "🌟",
           "interview", "interviews_completed", 5, "common"),
    _badge("interview_10", "Practice Makes Perfect", "Complete 10 interviews", "💫",
           "interview", "interviews_completed", 10, "rare"),
    _badge("interview_25", "Dedicated Learner", "Complete 25 interviews", "🏆",
           "interview", "interviews_completed", 25, "epic"),
    _badge("interview_50", "Interview Master", "Complete 50 interviews", "👑",
           "interview", "interviews_completed", 50, "legendary"),
    # scores
    _badge("perfect_score", "Perfect Performance", "Score 10/10 on an interview", "💯",
           "milestone", "perfect_score", 1, "epic"),
    _badge("high_achiever", "High Achiever", "Score above 8/10 in 5 interviews", "⭐",
           "milestone", "high_scores", 5, "rare", "score >= 8"),
    # skill mastery
    _badge("java_master", "Java Expert", "Complete 10 Java interviews with avg score > 7", "☕",
           "skill", "skill_mastery", 10, "epic", "skill=Java,avgScore>7"),
    _badge("javascript_master", "JavaScript Guru", "Complete 10 JavaScript interviews with avg score > 7", "🟨",
           "skill", "skill_mastery", 10, "epic", "skill=JavaScript,avgScore>7"),
    _badge("python_master", "Python Pro", "Complete 10 Python interviews with avg score > 7", "🐍",
           "skill", "skill_mastery", 10, "epic", "skill=Python,avgScore>7"),
    _badge("fullstack_master", "Full Stack Champion", "Complete interviews in 5 different tech stacks", "🚀",
           "skill", "diverse_skills", 5, "legendary"),
    # streaks
    _badge("streak_7", "Week Warrior", "Practice for 7 consecutive days", "🔥",
           "milestone", "daily_streak", 7, "rare"),
    _badge("streak_30", "Monthly Dedication", "Practice for 30 consecutive days", "💪",
           "milestone", "daily_streak", 30, "legendary"),
    # special
    _badge("early_bird", "Early Adopter", "One of the first 100 users", "🐦",
           "special", "user_rank", 100, "legendary"),
    _badge("feedback_master", "Feedback Champion", "Provide detailed answers in 20 interviews", "📝",
           "special", "detailed_answers", 20, "rare"),
    _badge("quick_learner", "Quick Learner", "Improve score by 3 points across 5 interviews", "⚡",
           "milestone", "score_improvement", 5, "epic", "improvement>=3"),
    _badge("night_owl", "Night Owl", "Complete 10 interviews after 10 PM", "🦉",
           "special", "late_night_interviews", 10, "rare"),
]

DETAILED_ANSWER_WORDS = 50
LATE_NIGHT_HOUR = 22


def _score(session: dict) -> float:
    return ((session.get("overallEvaluation") or {}).get("averageScore")) or 0


def _parse_condition(condition: str) -> dict:
    out = {}
    for part in (condition or "").split(","):
        for op in (">=", ">", "="):
            if op in part:
                key, value = part.split(op, 1)
                out[key.strip()] = value.strip()
                break
    return out


def longest_daily_streak(sessions: List[dict]) -> int:
    days = sorted({s["completedAt"].date() for s in sessions if s.get("completedAt")})
    best = run = 0
    prev = None
    for day in days:
        run = run + 1 if prev is not None and day - prev == timedelta(days=1) else 1
        best = max(best, run)
        prev = day
    return best


def _is_detailed(session: dict) -> bool:
    answers = [q["answer"]["text"] for q in answered_questions(session)]
    if not answers:
        return False
    words = sum(len(a.split()) for a in answers)
    return words / len(answers) >= DETAILED_ANSWER_WORDS


def badge_progress(badge: dict, sessions: List[dict], user_rank: int):
    """Return (current, earned) for one badge given the user's completed sessions, oldest first."""
    ctype = badge["criteria"]["type"]
    target = badge["criteria"]["target"]

    if ctype == "interviews_completed":
        current = len(sessions)
    elif ctype == "perfect_score":
        current = sum(1 for s in sessions if _score(s) >= 10)
    elif ctype == "high_scores":
        current = sum(1 for s in sessions if _score(s) >= 8)
    elif ctype == "skill_mastery":
        skill = _parse_condition(badge["criteria"].get("condition")).get("skill", "").lower()
        matching = [s for s in sessions if skill in [k.lower() for k in s.get("skills", [])]]
        current = len(matching)
        avg = sum(_score(s) for s in matching) / len(matching) if matching else 0
        return current, current >= target and avg > 7
    elif ctype == "diverse_skills":
        current = len({k.lower() for s in sessions for k in s.get("skills", [])})
    elif ctype == "daily_streak":
        current = longest_daily_streak(sessions)
    elif ctype == "user_rank":
        return user_rank, 0 < user_rank <= target
    elif ctype == "detailed_answers":
        current = sum(1 for s in sessions if _is_detailed(s))
    elif ctype == "score_improvement":
        current = len(sessions)
        if current < target:
            return current, False
        improvement = max(_score(s) for s in sessions) - _score(sessions[0])
        return current, improvement >= 3
    elif ctype == "late_night_interviews":
        current = sum(1 for s in sessions if s.get("completedAt") and s["completedAt"].hour >= LATE_NIGHT_HOUR)
    else:
        logger.warning("Unknown badge criteria type %s", ctype)
        return 0, False
    return current, current >= target


def _user_rank(db, user_id: str) -> int:
    user = db.users.find_one({"_id": user_id}, {"createdAt": 1})
    if not user or not user.get("createdAt"):
        return 0
    return db.users.count_documents({"createdAt": {"$lt": user["createdAt"]}}) + 1


def evaluate_achievements(db, user_id: str) -> dict:
    """Award any newly satisfied badges and report earned and unearned ones."""
    sessions = list(db.interview_sessions.find({"candidate": user_id, "status": "completed"}).sort("completedAt", 1))
    earned_ids = {a["badgeId"] for a in db.achievements.find({"userId": user_id}, {"badgeId": 1})}
    rank = _user_rank(db, user_id)

    new_achievements = []
    unearned = []
    for badge in AVAILABLE_BADGES:
        if badge["id"] in earned_ids:
            continue
        current, earned = badge_progress(badge, sessions, rank)
        if earned:
            doc = new_achievement_doc(user_id, badge, current)
            try:
                db.achievements.insert_one(doc)
            except DuplicateKeyError:
                # awarded concurrently by another request
                continue
            logger.info("User %s earned badge %s", user_id, badge["id"])
            new_achievements.append(doc)
        else:
            target = badge["criteria"]["target"]
            if badge["criteria"]["type"] == "user_rank":
                percentage = 0
            else:
                percentage = min(100, round(current / target * 100)) if target else 0
            unearned.append({**badge, "progress": {"current": current, "target": target, "percentage": percentage},
                             "earned": False})

    all_earned = list(db.achievements.find({"userId": user_id}).sort("earnedAt", -1))
    return {
        "success": True,
        "earnedAchievements": all_earned,
        "unearnedBadges": unearned,
        "newAchievements": new_achievements,
        "totalEarned": len(all_earned),
        "totalAvailable": len(AVAILABLE_BADGES),
    }
