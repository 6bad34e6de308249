from datetime import datetime, timedelta

from conftest import completed_session, make_user

from backend.achievements import AVAILABLE_BADGES, badge_progress, evaluate_achievements, longest_daily_streak

BADGES = {b["id"]: b for b in AVAILABLE_BADGES}


def session(score=7.0, skills=("Python",), completed_at=None, answer="short answer"):
    return {
        "skills": list(skills),
        "completedAt": completed_at or datetime(2024, 5, 1, 12, 0),
        "overallEvaluation": {"averageScore": score},
        "questions": [{"answer": {"text": answer}}],
    }


def test_catalogue_has_unique_ids():
    assert len(AVAILABLE_BADGES) == 17
    assert len(BADGES) == 17


def test_interviews_completed():
    assert badge_progress(BADGES["first_interview"], [session()], 5) == (1, True)
    assert badge_progress(BADGES["interview_5"], [session()] * 4, 5) == (4, False)


def test_perfect_and_high_scores():
    sessions = [session(10), session(8), session(8.5), session(3)]
    assert badge_progress(BADGES["perfect_score"], sessions, 5) == (1, True)
    assert badge_progress(BADGES["high_achiever"], sessions, 5) == (3, False)


def test_skill_mastery_needs_count_and_average():
    strong = [session(8, skills=("python",))] * 10
    weak = [session(6, skills=("Python",))] * 10
    assert badge_progress(BADGES["python_master"], strong, 5) == (10, True)
    assert badge_progress(BADGES["python_master"], weak, 5) == (10, False)
    assert badge_progress(BADGES["java_master"], strong, 5) == (0, False)


def test_diverse_skills_case_insensitive():
    sessions = [session(skills=("Python", "SQL")), session(skills=("python", "Go", "Rust", "Docker"))]
    assert badge_progress(BADGES["fullstack_master"], sessions, 5) == (5, True)


def test_longest_daily_streak():
    start = datetime(2024, 1, 1, 9)
    days = [0, 1, 1, 2, 5, 6]
    sessions = [session(completed_at=start + timedelta(days=d)) for d in days]
    assert longest_daily_streak(sessions) == 3
    assert longest_daily_streak([]) == 0


def test_user_rank_badge():
    assert badge_progress(BADGES["early_bird"], [], 100) == (100, True)
    assert badge_progress(BADGES["early_bird"], [], 101) == (101, False)
    assert badge_progress(BADGES["early_bird"], [], 0) == (0, False)


def test_detailed_answers():
    long_answer = " ".join(["word"] * 60)
    sessions = [session(answer=long_answer)] * 20 + [session(answer="too short")]
    assert badge_progress(BADGES["feedback_master"], sessions, 5) == (20, True)


def test_score_improvement_against_first_session():
    sessions = [session(4), session(5), session(6), session(7.5), session(5)]
    assert badge_progress(BADGES["quick_learner"], sessions, 5) == (5, True)
    assert badge_progress(BADGES["quick_learner"], sessions[:4], 5) == (4, False)
    flat = [session(7)] * 5
    assert badge_progress(BADGES["quick_learner"], flat, 5) == (5, False)


def test_late_night():
    late = [session(completed_at=datetime(2024, 1, d, 22, 30)) for d in range(1, 11)]
    early = [session(completed_at=datetime(2024, 2, 1, 21, 59))]
    assert badge_progress(BADGES["night_owl"], late + early, 5) == (10, True)


def test_evaluate_achievements_awards_once(db):
    user = make_user(db)
    completed_session(db, user["_id"])

    first = evaluate_achievements(db, user["_id"])
    new_ids = {a["badgeId"] for a in first["newAchievements"]}
    assert new_ids == {"first_interview", "early_bird"}
    assert first["totalEarned"] == 2

    second = evaluate_achievements(db, user["_id"])
    assert second["newAchievements"] == []
    assert second["totalEarned"] == 2
    assert db.achievements.count_documents({"userId": user["_id"]}) == 2
    assert all(b["earned"] is False for b in second["unearnedBadges"])
