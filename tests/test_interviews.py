import pytest
from conftest import auth_headers

from backend import ai_service, interview_service
from backend.models import get_settings


def create(client, user, **overrides):
    body = {"title": "Backend practice", "skills": ["Python", "SQL"], "questionCount": 5}
    body.update(overrides)
    return client.post("/api/interview/create", json=body, headers=auth_headers(user))


@pytest.fixture
def session(client, candidate):
    r = create(client, candidate)
    assert r.status_code == 201
    return r.json()["session"]


def answer(client, user, session, index=0, text="I would use a generator to stream rows lazily."):
    qid = session["questions"][index]["questionId"]
    return client.post(f"/api/interview/{session['_id']}/submit",
                       json={"questionId": qid, "answer": text, "timeSpent": 42},
                       headers=auth_headers(user))


# ---------------- Create ----------------
def test_create_uses_fallback_questions_without_ai(session):
    assert session["status"] == "in-progress"
    assert session["questionCount"] == 2
    assert "Python" in session["questions"][0]["question"]
    assert "SQL" in session["questions"][1]["question"]
    assert session["questions"][0]["questionNumber"] == 1


def test_create_requires_skills(client, candidate):
    assert create(client, candidate, skills=[]).status_code == 400


@pytest.mark.parametrize("count", [0, 21])
def test_create_question_count_bounds(client, candidate, count):
    assert create(client, candidate, questionCount=count).status_code == 400


def test_create_increments_skill_usage(client, db, candidate):
    db.skills.insert_one({"_id": "s1", "name": "Python", "usageCount": 3, "isActive": True})
    create(client, candidate)
    assert db.skills.find_one({"_id": "s1"})["usageCount"] == 4


def test_mixed_interview_alternates_question_types(client, candidate, monkeypatch):
    generated = [{"question": f"Question {i}", "expectedAnswer": ""} for i in range(4)]
    monkeypatch.setattr(ai_service, "generate_questions", lambda **kwargs: generated)
    r = create(client, candidate, type="mixed", questionCount=4)
    types = [q["type"] for q in r.json()["session"]["questions"]]
    assert types == ["technical", "behavioral", "technical", "behavioral"]


def test_use_resume_feeds_generation(client, db, candidate, monkeypatch):
    db.users.update_one({"_id": candidate["_id"]},
                        {"$set": {"profile.resume": {"textContent": "Built Django APIs", "filename": "cv.pdf"},
                                  "profile.experience": "3-5"}})
    seen = {}

    def fake_generate(**kwargs):
        seen.update(kwargs)
        return [{"question": "Tell me about Django", "expectedAnswer": ""}]

    monkeypatch.setattr(ai_service, "generate_questions", fake_generate)
    assert create(client, candidate, useResume=True).status_code == 201
    assert seen["resume_content"] == "Built Django APIs"
    assert seen["experience"] == "3-5"


def test_max_open_sessions(client, db, candidate):
    get_settings(db)
    db.system_settings.update_one({"_id": "system"}, {"$set": {"maxSessionsPerUser": 1}})
    assert create(client, candidate).status_code == 201
    assert create(client, candidate).status_code == 400


def test_maintenance_mode_blocks_candidates(client, db, candidate, admin):
    get_settings(db)
    db.system_settings.update_one({"_id": "system"}, {"$set": {"maintenanceMode": True}})
    assert create(client, candidate).status_code == 503
    assert create(client, admin).status_code == 201


# ---------------- Lifecycle ----------------
def test_scheduled_session_must_be_started(client, candidate):
    session = create(client, candidate, scheduled=True).json()["session"]
    assert session["status"] == "scheduled"

    url = f"/api/interview/{session['_id']}/start"
    r = client.post(url, headers=auth_headers(candidate))
    assert r.status_code == 200
    assert r.json()["session"]["status"] == "in-progress"
    assert client.post(url, headers=auth_headers(candidate)).status_code == 404


def test_get_session_is_owner_only(client, candidate, interviewer, session):
    assert client.get(f"/api/interview/{session['_id']}", headers=auth_headers(candidate)).status_code == 200
    assert client.get(f"/api/interview/{session['_id']}", headers=auth_headers(interviewer)).status_code == 404


def test_submit_answer_uses_default_evaluation(client, candidate, session):
    r = answer(client, candidate, session)
    assert r.status_code == 200
    data = r.json()
    assert data["evaluation"]["score"] == 5
    assert data["evaluation"]["feedback"] == ai_service.DEFAULT_EVALUATION["feedback"]
    assert data["evaluation"]["aiAnalysis"]["sentiment"] == "neutral"
    assert data["progress"] == 50
    assert data["answeredQuestions"] == 1
    assert data["isLastQuestion"] is False


def test_submit_answer_with_ai_scores(client, candidate, session, monkeypatch):
    monkeypatch.setattr(ai_service, "call_gemini", lambda *a, **kw: (
        "Score: 8\nTechnical Accuracy: 9\nCommunication: 7\nProblem Solving: 8\nConfidence: 6\n"
        "Feedback: Solid answer.\nMention memory usage."))
    monkeypatch.setattr(ai_service, "analyze_response", lambda text: {"sentiment": "positive", "keywords": ["generator"]})
    data = answer(client, candidate, session).json()
    assert data["evaluation"]["score"] == 8
    assert data["evaluation"]["criteria"]["confidence"] == 6
    assert data["evaluation"]["feedback"] == "Solid answer. Mention memory usage."
    assert data["evaluation"]["aiAnalysis"]["keywords"] == ["generator"]


def test_submit_rejects_blank_and_unknown(client, candidate, session):
    assert answer(client, candidate, session, text="   ").status_code == 400
    r = client.post(f"/api/interview/{session['_id']}/submit",
                    json={"questionId": "missing", "answer": "x"}, headers=auth_headers(candidate))
    assert r.status_code == 404


def test_follow_up_requires_answer(client, candidate, session):
    qid = session["questions"][0]["questionId"]
    url = f"/api/interview/{session['_id']}/follow-up"
    assert client.post(url, json={"questionId": qid}, headers=auth_headers(candidate)).status_code == 400

    answer(client, candidate, session)
    r = client.post(url, json={"questionId": qid}, headers=auth_headers(candidate))
    assert r.status_code == 200
    assert r.json()["followUpQuestions"] == []


def test_complete_computes_scores_and_awards_badges(client, db, candidate, session, smtp):
    answer(client, candidate, session, 0)
    answer(client, candidate, session, 1)
    r = client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate))
    assert r.status_code == 200
    results = r.json()["results"]
    assert results["averageScore"] == 5
    assert results["totalScore"] == 10
    assert results["completionRate"] == 100
    assert results["overallEvaluation"]["recommendation"] == "neutral"
    assert {c["criterion"] for c in results["criteriaBreakdown"]} == {
        "technical_accuracy", "communication", "problem_solving", "confidence"}
    assert {b["badgeId"] for b in results["newAchievements"]} >= {"first_interview", "early_bird"}

    stored = db.interview_sessions.find_one({"_id": session["_id"]})
    assert stored["status"] == "completed"
    assert stored["overallEvaluation"]["criteriaBreakdown"]["communication"] == 5
    assert len(smtp.outbox) == 1
    assert smtp.outbox[0]["Subject"] == "Interview Completed: Python, SQL - Score: 50%"

    again = client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate))
    assert again.status_code == 400
    assert answer(client, candidate, session).status_code == 400


def test_complete_counts_zero_scores(client, db, candidate, session, monkeypatch):
    replies = iter([
        "Score: 0\nTechnical Accuracy: 0\nCommunication: 0\nProblem Solving: 0\nConfidence: 0\nFeedback: Off topic.",
        "Score: 10\nTechnical Accuracy: 10\nCommunication: 10\nProblem Solving: 10\nConfidence: 10\nFeedback: Great.",
    ])
    monkeypatch.setattr(ai_service, "call_gemini", lambda *a, **kw: next(replies))
    monkeypatch.setattr(ai_service, "analyze_response", lambda text: {})
    assert answer(client, candidate, session, 0).json()["evaluation"]["score"] == 0
    assert answer(client, candidate, session, 1).json()["evaluation"]["score"] == 10
    monkeypatch.setattr(ai_service, "generate_overall_feedback", lambda *a: {})

    results = client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate)).json()["results"]
    assert results["evaluatedQuestions"] == 2
    assert results["averageScore"] == 5
    assert results["totalScore"] == 10
    assert {c["criterion"]: c["averageScore"] for c in results["criteriaBreakdown"]}["communication"] == 5


# ---------------- Timed assessment ----------------
def assess(client, user, session, index, time_spent, text="Indexes trade write speed for reads."):
    return client.post(f"/api/interview/{session['_id']}/assess",
                       json={"questionIndex": index, "candidateAnswer": text, "timeSpent": time_spent},
                       headers=auth_headers(user))


@pytest.mark.parametrize("time_spent, factor", [(60, 1.0), (180, 1.0), (200, 0.9), (360, 0.7), (3600, 0.7)])
def test_time_factor(time_spent, factor):
    assert interview_service.time_factor(time_spent, 180) == pytest.approx(factor)


def test_assess_applies_time_penalty_and_completes(client, db, candidate, session, smtp):
    first = assess(client, candidate, session, 0, 120)
    assert first.status_code == 200
    data = first.json()
    assert data["assessment"]["score"] == 5
    assert data["assessment"]["timeFactor"] == 1.0
    assert data["assessment"]["isComplete"] is False
    assert data["nextQuestion"] == 1
    assert data["overallProgress"] == {"completed": 1, "total": 2, "percentage": 50}
    assert data["results"] is None

    last = assess(client, candidate, session, 1, 240).json()
    assert last["assessment"]["rawScore"] == 5
    assert last["assessment"]["timeFactor"] == 0.75
    assert last["assessment"]["score"] == 4
    assert last["assessment"]["isComplete"] is True
    assert last["nextQuestion"] is None
    assert last["results"]["averageScore"] == 4.5

    stored = db.interview_sessions.find_one({"_id": session["_id"]})
    assert stored["status"] == "completed"
    assert stored["questions"][1]["evaluation"]["assessedBy"] == "AI"
    assert len(smtp.outbox) == 1


def test_assess_validation(client, candidate, session):
    assert assess(client, candidate, session, 5, 10).status_code == 404
    assert assess(client, candidate, session, 0, 10, text="  ").status_code == 400
    assert assess(client, candidate, session, -1, 10).status_code == 422


def test_assess_requires_in_progress_session(client, candidate, interviewer):
    scheduled = create(client, candidate, scheduled=True).json()["session"]
    assert assess(client, candidate, scheduled, 0, 10).status_code == 404
    started = create(client, candidate).json()["session"]
    assert assess(client, interviewer, started, 0, 10).status_code == 404


def test_completion_email_failure_does_not_fail_request(client, db, candidate, session, smtp):
    smtp.fail = True
    answer(client, candidate, session)
    r = client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate))
    assert r.status_code == 200
    assert db.email_failures.count_documents({"to": candidate["email"]}) == 1


def test_cancel(client, candidate, session):
    r = client.delete(f"/api/interview/{session['_id']}", headers=auth_headers(candidate))
    assert r.status_code == 200
    assert answer(client, candidate, session).status_code == 400


def test_cannot_cancel_completed(client, candidate, session):
    client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate))
    r = client.delete(f"/api/interview/{session['_id']}", headers=auth_headers(candidate))
    assert r.status_code == 400


def test_share_only_completed_and_hides_candidate(client, candidate, session):
    url = f"/api/interview/share/{session['_id']}"
    assert client.get(url).status_code == 404
    answer(client, candidate, session)
    client.post(f"/api/interview/{session['_id']}/complete", headers=auth_headers(candidate))
    r = client.get(url)
    assert r.status_code == 200
    shared = r.json()["session"]
    assert shared["averageScore"] == 5.0
    assert shared["answeredQuestions"] == 1
    assert "candidate" not in shared


# ---------------- Live suggestions ----------------
def test_ai_suggestions_for_interviewer_use_fallback(client, interviewer):
    session = create(client, interviewer).json()["session"]
    r = client.post(f"/api/interview/{session['_id']}/ai-suggestions",
                    json={"duration": 600, "context": "discussing indexes"}, headers=auth_headers(interviewer))
    assert r.status_code == 200
    contents = [s["content"] for s in ai_service.fallback_suggestions(600, "technical")]
    assert r.json()["content"] in contents
    assert r.json()["context"] == "discussing indexes"


def test_ai_suggestions_forbidden_for_candidates(client, candidate, session):
    r = client.post(f"/api/interview/{session['_id']}/ai-suggestions", json={}, headers=auth_headers(candidate))
    assert r.status_code == 403
