"""Aggregations behind the candidate, interviewer, admin and leaderboard dashboards."""
import logging
from collections import OrderedDict, defaultdict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from backend.models import mask_email

logger = logging.getLogger(__name__)

TIME_RANGES = {"30d": 30, "90d": 90, "1y": 365}
LEADERBOARD_TIMEFRAMES = {"week": 7, "month": 30}
LEADERBOARD_LIMIT = 100
INTERVIEWER_DIRECTORY_LIMIT = 50
SCORE_RANGES = (("0-2", 3), ("3-4", 5), ("5-6", 7), ("7-8", 9), ("9-10", None))


def range_start(time_range: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now - timedelta(days=TIME_RANGES.get(time_range, 90))


def _avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def _session_score(session: dict) -> float:
    return (session.get("overallEvaluation") or {}).get("averageScore") or 0


def _month_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m")


def _month_label(key: str) -> str:
    return datetime.strptime(key + "-01", "%Y-%m-%d").strftime("%b %Y")


def _scored_questions(sessions: Iterable[dict]):
    for s in sessions:
        for q in s.get("questions", []):
            ev = q.get("evaluation") or {}
            if ev.get("score") is not None:
                yield q, ev["score"]


def _group_scores(pairs, key_fn):
    groups = OrderedDict()
    for q, score in pairs:
        groups.setdefault(key_fn(q), []).append(score)
    return groups


# ---------------- Candidate analytics ----------------
def user_analytics(db, user_id: str, time_range: str = "90d") -> dict:
    sessions = list(db.interview_sessions.find({
        "candidate": user_id,
        "status": "completed",
        "completedAt": {"$gte": range_start(time_range)},
    }).sort("completedAt", 1))

    total = len(sessions)
    average_score = _avg([_session_score(s) for s in sessions])

    score_trend = [{"date": s["completedAt"].strftime("%Y-%m-%d"), "score": _session_score(s)} for s in sessions]

    by_type = _group_scores(_scored_questions(sessions), lambda q: q.get("type") or "general")
    skill_proficiency = sorted(
        [{"skill": k.capitalize(), "avgScore": _avg(v), "interviewCount": len(v)} for k, v in by_type.items()],
        key=lambda x: x["avgScore"], reverse=True)
    question_type_performance = sorted(
        [{"type": k, "avgScore": _avg(v), "count": len(v)} for k, v in by_type.items()],
        key=lambda x: x["avgScore"], reverse=True)

    by_difficulty = _group_scores(_scored_questions(sessions), lambda q: q.get("difficulty"))
    difficulty_performance = sorted(
        [{"difficulty": k, "avgScore": _avg(v), "count": len(v)} for k, v in by_difficulty.items()],
        key=lambda x: x["avgScore"], reverse=True)

    months = defaultdict(list)
    for s in sessions:
        months[_month_key(s["completedAt"])].append(_session_score(s))
    monthly_progress = [
        {"month": _month_label(k), "interviews": len(v), "avgScore": _avg(v)} for k, v in sorted(months.items())
    ]

    # earlier half vs later half of the period
    mid = total // 2
    first_avg = _avg([_session_score(s) for s in sessions[:mid]])
    second_avg = _avg([_session_score(s) for s in sessions[mid:]])
    improvement_rate = ((second_avg - first_avg) / first_avg * 100) if first_avg > 0 else 0

    strongest = skill_proficiency[0]["skill"] if skill_proficiency else "N/A"
    weakest = skill_proficiency[-1]["skill"] if skill_proficiency else "N/A"

    recommendations = []
    if total < 3:
        recommendations.append("Complete more interviews to get better analytics and personalized recommendations.")
    if average_score < 5:
        recommendations.append(
            "Focus on building fundamental knowledge in your selected skills. Consider reviewing basic concepts.")
    if len(skill_proficiency) > 1 and skill_proficiency[0]["avgScore"] - skill_proficiency[-1]["avgScore"] > 2:
        recommendations.append(f"Work on improving your {weakest} skills to balance your overall performance.")
    if question_type_performance and question_type_performance[-1]["avgScore"] < 6:
        worst = question_type_performance[-1]["type"]
        recommendations.append(f"Practice more {worst} questions to improve your performance in this area.")
    if improvement_rate < 0:
        recommendations.append(
            "Your recent performance shows a decline. Consider reviewing recent feedback and adjusting your "
            "preparation strategy.")
    elif improvement_rate > 10:
        recommendations.append("Great improvement! Keep up the good work and continue practicing regularly.")
    advanced = next((d for d in difficulty_performance if d["difficulty"] == "advanced"), None)
    if advanced and advanced["avgScore"] < 5:
        recommendations.append("Consider focusing on intermediate-level questions before attempting advanced ones.")

    return {
        "scoreTrend": score_trend,
        "skillProficiency": skill_proficiency,
        "questionTypePerformance": question_type_performance,
        "difficultyPerformance": difficulty_performance,
        "monthlyProgress": monthly_progress,
        "recommendations": recommendations,
        "totalInterviews": total,
        "averageScore": average_score,
        "improvementRate": improvement_rate,
        "strongestSkill": strongest,
        "weakestSkill": weakest,
    }


def _score_range(score: float) -> str:
    return next(label for label, upper in SCORE_RANGES if upper is None or score < upper)


def benchmark(db, user_id: str, skill: Optional[str] = None) -> dict:
    """The user's completed sessions measured against every completed session on the platform."""
    query = {"status": "completed"}
    if skill:
        query["skills"] = skill
    platform = list(db.interview_sessions.find(query, {"candidate": 1, "skills": 1, "overallEvaluation": 1,
                                                       "completedAt": 1}))
    mine = sorted((s for s in platform if s.get("candidate") == user_id),
                  key=lambda s: s.get("completedAt") or datetime.min)

    user_avg = _avg([_session_score(s) for s in mine])
    platform_scores = [_session_score(s) for s in platform]
    distribution = OrderedDict((label, 0) for label, _ in SCORE_RANGES)
    for s in mine:
        distribution[_score_range(_session_score(s))] += 1

    platform_by_skill = defaultdict(list)
    for s in platform:
        for name in s.get("skills", []):
            platform_by_skill[name].append(_session_score(s))
    mine_by_skill = defaultdict(list)
    for s in mine:
        for name in s.get("skills", []):
            mine_by_skill[name].append(_session_score(s))
    skill_comparison = sorted(
        [{"skill": name, "averageScore": round(_avg(scores), 1), "interviewCount": len(scores),
          "platformAverage": round(_avg(platform_by_skill[name]), 1)}
         for name, scores in mine_by_skill.items()],
        key=lambda x: x["averageScore"], reverse=True)[:10]

    below = sum(1 for score in platform_scores if score < user_avg)
    return {
        "userStats": {
            "totalInterviews": len(mine),
            "averageScore": round(user_avg, 1),
            "scoreDistribution": [{"label": k, "count": v} for k, v in distribution.items()],
        },
        "industryBenchmark": {
            "averageScore": round(_avg(platform_scores), 1),
            "percentile": round(below / len(platform_scores) * 100) if mine else 0,
            "totalParticipants": len({s.get("candidate") for s in platform}),
        },
        "skillComparison": skill_comparison,
        "progressTrend": [
            {"date": s["completedAt"].strftime("%Y-%m-%d") if s.get("completedAt") else None,
             "score": _session_score(s)}
            for s in mine[-10:]
        ],
    }


def history_statistics(db, user_id: str) -> dict:
    completed = list(db.interview_sessions.find({"candidate": user_id, "status": "completed"},
                                                {"overallEvaluation": 1, "totalDuration": 1}))
    minutes = sum(s.get("totalDuration") or 0 for s in completed)
    return {
        "totalCompleted": len(completed),
        "averageScore": round(_avg([_session_score(s) for s in completed]), 2),
        "totalHours": round(minutes / 60, 1),
    }


# ---------------- Leaderboard ----------------
def leaderboard(db, timeframe: str = "all-time", skill: Optional[str] = None) -> dict:
    query = {"status": "completed"}
    if timeframe in LEADERBOARD_TIMEFRAMES:
        query["completedAt"] = {"$gte": datetime.utcnow() - timedelta(days=LEADERBOARD_TIMEFRAMES[timeframe])}
    if skill:
        query["skills"] = skill

    per_user = {}
    for s in db.interview_sessions.find(query, {"candidate": 1, "overallEvaluation": 1, "questions": 1,
                                                "completedAt": 1}):
        agg = per_user.setdefault(s["candidate"], {"scores": [], "totalQuestions": 0, "lastInterviewDate": None})
        agg["scores"].append(_session_score(s))
        agg["totalQuestions"] += len(s.get("questions", []))
        if s.get("completedAt") and (agg["lastInterviewDate"] is None or s["completedAt"] > agg["lastInterviewDate"]):
            agg["lastInterviewDate"] = s["completedAt"]

    users = {u["_id"]: u for u in db.users.find({"_id": {"$in": list(per_user)}},
                                                 {"firstName": 1, "lastName": 1, "email": 1})}
    rows = []
    for user_id, agg in per_user.items():
        user = users.get(user_id)
        if not user:
            continue
        rows.append({
            "userId": user_id,
            "name": f"{user.get('firstName', '')} {user.get('lastName', '')}".strip(),
            "email": mask_email(user["email"]),
            "totalInterviews": len(agg["scores"]),
            "averageScore": round(_avg(agg["scores"]), 2),
            "totalQuestions": agg["totalQuestions"],
            "lastInterviewDate": agg["lastInterviewDate"],
        })
    rows.sort(key=lambda r: (r["averageScore"], r["totalInterviews"]), reverse=True)
    rows = rows[:LEADERBOARD_LIMIT]
    for i, row in enumerate(rows, 1):
        row["rank"] = i

    return {"success": True, "leaderboard": rows, "timeframe": timeframe, "skill": skill, "totalUsers": len(rows)}


# ---------------- Interviewer ----------------
def _interviewer_filter(user_id: str) -> dict:
    return {"$or": [{"userId": user_id}, {"interviewerId": user_id}]}


def interviewer_stats(db, user_id: str) -> dict:
    owned = _interviewer_filter(user_id)
    scheduled = db.scheduled_interviews.count_documents(
        {"$and": [owned, {"status": {"$in": ["scheduled", "confirmed"]}}]})
    completed = list(db.scheduled_interviews.find({"$and": [owned, {"status": "completed"}]}, {"rating": 1}))
    ratings = [c.get("rating") or 0 for c in completed]
    avg_rating = (sum(ratings) / len(ratings)) if ratings else 0
    candidates = {c["candidateEmail"] for c in db.scheduled_interviews.find(owned, {"candidateEmail": 1})
                  if c.get("candidateEmail")}
    return {
        "scheduledInterviews": scheduled,
        "completedAssessments": len(completed),
        "activeCandidates": len(candidates),
        "avgRating": round(avg_rating or 4.7, 1),
    }


def interviewer_directory(db, expertise: Optional[str] = None, min_rating: float = 0) -> List[dict]:
    query = {"role": "interviewer", "isActive": True}
    if expertise:
        query["profile.skills"] = expertise
    rows = []
    for user in db.users.find(query, {"firstName": 1, "lastName": 1, "profile": 1}):
        completed = list(db.scheduled_interviews.find(
            {"$and": [_interviewer_filter(user["_id"]), {"status": "completed"}]}, {"rating": 1}))
        ratings = [c["rating"] for c in completed if c.get("rating")]
        rating = round(_avg(ratings), 1) if ratings else None
        if min_rating > 0 and (rating is None or rating < min_rating):
            continue
        profile = user.get("profile") or {}
        rows.append({
            "id": user["_id"],
            "name": f"{user.get('firstName', '')} {user.get('lastName', '')}".strip() or "Anonymous",
            "bio": profile.get("bio"),
            "expertise": profile.get("skills", []),
            "rating": rating,
            "totalInterviews": len(completed),
        })
    rows.sort(key=lambda r: (r["rating"] or 0, r["totalInterviews"]), reverse=True)
    return rows[:INTERVIEWER_DIRECTORY_LIMIT]


def interviewer_analytics(db, user_id: str, time_range: str = "90d") -> dict:
    sessions = list(db.interview_sessions.find({
        "interviewer": user_id,
        "createdAt": {"$gte": range_start(time_range)},
    }).sort("createdAt", -1))

    total = len(sessions)
    completed = [s for s in sessions if s["status"] == "completed"]
    pending = sum(1 for s in sessions if s["status"] in ("scheduled", "in-progress"))
    scored = [_session_score(s) for s in completed if _session_score(s)]

    months = defaultdict(lambda: {"interviews": 0, "completed": 0})
    for s in sessions:
        m = months[_month_key(s["createdAt"])]
        m["interviews"] += 1
        if s["status"] == "completed":
            m["completed"] += 1
    monthly_progress = [{"month": k, **v} for k, v in sorted(months.items())]

    per_candidate = defaultdict(list)
    for s in completed:
        if s.get("candidate"):
            per_candidate[s["candidate"]].append(_session_score(s))
    names = {u["_id"]: f"{u.get('firstName', '')} {u.get('lastName', '')}".strip()
             for u in db.users.find({"_id": {"$in": list(per_candidate)}}, {"firstName": 1, "lastName": 1})}
    top_performers = sorted(
        [{"candidateId": cid, "candidateName": names.get(cid) or f"Candidate {cid[-6:]}",
          "avgScore": _avg(scores), "interviewCount": len(scores)} for cid, scores in per_candidate.items()],
        key=lambda x: x["avgScore"], reverse=True)[:5]

    return {
        "totalInterviews": total,
        "completedInterviews": len(completed),
        "pendingInterviews": pending,
        "averageRating": round(_avg(scored), 1),
        "monthlyProgress": monthly_progress,
        "topPerformers": top_performers,
        "completionRate": round(len(completed) / total * 100) if total else 0,
    }


# ---------------- Platform (admin) ----------------
def _growth(current: int, previous: int) -> float:
    return round((current - previous) / previous * 100, 2) if previous > 0 else 0


def _month_start(now: datetime, months_back: int) -> datetime:
    year, month = now.year, now.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    while month > 12:
        month -= 12
        year += 1
    return datetime(year, month, 1)


def platform_analytics(db, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    month_ago = now - timedelta(days=30)

    guides = list(db.interview_guides.find({}, {"questions": 1, "createdAt": 1}))
    active_today = db.users.count_documents({"lastLogin": {"$gte": today, "$lt": today + timedelta(days=1)}})
    active_prev = db.users.count_documents({"lastLogin": {"$gte": month_ago - timedelta(days=30), "$lt": month_ago}})

    def window(collection, start, end):
        return db[collection].count_documents({"createdAt": {"$gte": start, "$lt": end}})

    def before(collection, end):
        return db[collection].count_documents({"createdAt": {"$lt": end}})

    monthly_stats = []
    for i in range(5, -1, -1):
        start = _month_start(now, i)
        end = _month_start(now, i - 1)
        monthly_stats.append({
            "month": start.strftime("%b %Y"),
            "users": window("users", start, end),
            "sessions": window("interview_sessions", start, end),
            "questions": sum(len(g.get("questions", [])) for g in guides
                             if g.get("createdAt") and start <= g["createdAt"] < end),
        })

    return {
        "totalUsers": db.users.count_documents({}),
        "totalSessions": db.interview_sessions.count_documents({}),
        "totalQuestions": sum(len(g.get("questions", [])) for g in guides),
        "activeUsersToday": active_today,
        "userGrowth": _growth(window("users", month_ago, now), before("users", month_ago)),
        "sessionGrowth": _growth(window("interview_sessions", month_ago, now), before("interview_sessions", month_ago)),
        "questionGrowth": _growth(window("interview_guides", month_ago, now), before("interview_guides", month_ago)),
        "activeUsersGrowth": _growth(active_today, active_prev),
        "monthlyStats": monthly_stats,
    }


def reminder_candidates(db, days: int) -> List[dict]:
    """Active candidates with at least one completed interview, none of them within `days`."""
    now = datetime.utcnow()
    cutoff = now - timedelta(days=days)
    out = []
    for user in db.users.find({"role": "candidate", "isActive": True},
                              {"firstName": 1, "lastName": 1, "email": 1}):
        last = db.interview_sessions.find_one({"candidate": user["_id"], "status": "completed"},
                                              sort=[("completedAt", -1)])
        if not last or not last.get("completedAt") or last["completedAt"] >= cutoff:
            continue
        out.append({
            "id": user["_id"],
            "name": f"{user.get('firstName', '')} {user.get('lastName', '')}".strip(),
            "email": user["email"],
            "lastInterview": last["completedAt"],
            "daysSinceLastInterview": (now - last["completedAt"]).days,
        })
    return out
