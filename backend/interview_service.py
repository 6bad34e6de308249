"""
Interview session lifecycle: create, start, answer, assess, complete, cancel, share.

Functions take the database handle first and raise HTTPException for
client-visible failures so routers stay thin.
"""
import logging
from datetime import datetime
from typing import List

from fastapi import HTTPException

from backend import ai_service, email_service
from backend.achievements import evaluate_achievements
from backend.ai_service import AIServiceError
from backend.models import (CRITERIA, answered_questions, get_settings, new_question, new_session_doc,
                            progress_of)

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 20
DEFAULT_TIME_LIMIT_MINUTES = 3
MIN_TIME_FACTOR = 0.7


# ---------------- Helpers ----------------
def _question_type(interview_type: str, index: int) -> str:
    if interview_type == "mixed":
        return "technical" if index % 2 == 0 else "behavioral"
    return interview_type


def _evaluated(session: dict) -> List[dict]:
    return [q for q in session.get("questions", []) if (q.get("evaluation") or {}).get("score") is not None]


def _evaluate(session_id: str, question: dict, answer: str) -> dict:
    try:
        evaluation = ai_service.evaluate_answer(question["question"], answer, question.get("expectedAnswer"))
        evaluation["feedback"] = evaluation.get("feedback") or "Good effort!"
    except AIServiceError as e:
        logger.warning("AI evaluation failed for session %s: %s", session_id, e)
        evaluation = {**ai_service.DEFAULT_EVALUATION, "criteria": dict(ai_service.DEFAULT_EVALUATION["criteria"])}
    return evaluation


def get_owned_session(db, session_id: str, user_id: str) -> dict:
    session = db.interview_sessions.find_one({"_id": session_id, "candidate": user_id})
    if not session:
        raise HTTPException(status_code=404, detail="Interview session not found")
    return session


def session_view(session: dict) -> dict:
    questions = session.get("questions", [])
    answered = len(answered_questions(session))
    return {
        "_id": session["_id"],
        "title": session["title"],
        "description": session.get("description"),
        "type": session["type"],
        "difficulty": session["difficulty"],
        "skills": session["skills"],
        "duration": session["duration"],
        "status": session["status"],
        "questions": [
            {
                "questionId": q["questionId"],
                "questionNumber": i + 1,
                "question": q["question"],
                "type": q["type"],
                "difficulty": q["difficulty"],
                "answer": (q.get("answer") or {}).get("text"),
                "timeSpent": q.get("timeSpent", 0),
                "evaluation": q.get("evaluation"),
            }
            for i, q in enumerate(questions)
        ],
        "progress": progress_of(session),
        "answeredQuestions": answered,
        "totalQuestions": len(questions),
        "startedAt": session.get("startedAt"),
        "completedAt": session.get("completedAt"),
        "totalDuration": session.get("totalDuration"),
        "overallEvaluation": session.get("overallEvaluation"),
    }


def skill_performance(session: dict) -> List[dict]:
    """Average score per skill over questions whose text mentions the skill."""
    out = []
    for skill in session.get("skills", []):
        scores = [q["evaluation"]["score"] for q in _evaluated(session)
                  if skill.lower() in q["question"].lower()]
        out.append({
            "skill": skill,
            "averageScore": round(sum(scores) / len(scores), 2) if scores else 0,
            "questionsAnswered": len(scores),
        })
    return out


def criteria_breakdown(evaluated: List[dict]) -> List[dict]:
    out = []
    for criterion in CRITERIA:
        values = [q["evaluation"]["criteria"][criterion] for q in evaluated
                  if criterion in (q["evaluation"].get("criteria") or {})]
        out.append({
            "criterion": criterion,
            "averageScore": round(sum(values) / len(values), 2) if values else 0,
            "maxScore": 10,
        })
    return out


# ---------------- Create / start ----------------
def create_session(db, user: dict, body) -> dict:
    if not body.skills:
        raise HTTPException(status_code=400, detail="At least one skill is required")
    if body.questionCount < 1 or body.questionCount > MAX_QUESTIONS:
        raise HTTPException(status_code=400, detail="Question count must be between 1 and 20")

    settings = get_settings(db)
    if settings.get("maintenanceMode") and user.get("role") != "admin":
        raise HTTPException(status_code=503, detail="The platform is in maintenance mode")
    active = db.interview_sessions.count_documents(
        {"candidate": user["_id"], "status": {"$in": ["scheduled", "in-progress"]}})
    if active >= settings.get("maxSessionsPerUser", 10):
        raise HTTPException(status_code=400, detail="Maximum number of open interview sessions reached")

    profile = user.get("profile") or {}
    resume_content = body.resumeContent
    if body.useResume and not resume_content:
        resume_content = (profile.get("resume") or {}).get("textContent", "")

    try:
        generated = ai_service.generate_questions(
            skills=body.skills,
            resume_content=resume_content,
            difficulty=body.difficulty,
            question_count=body.questionCount,
            question_type=body.type,
            experience=profile.get("experience", "fresher"),
        )
        questions = [
            new_question(q["question"], _question_type(body.type, i), body.difficulty, q.get("expectedAnswer", ""))
            for i, q in enumerate(generated)
        ]
    except AIServiceError as e:
        logger.warning("AI question generation failed, using fallback questions: %s", e)
        questions = [
            new_question(q["question"], "technical", body.difficulty, q["expectedAnswer"])
            for q in ai_service.fallback_questions(body.skills, body.questionCount)
        ]

    session = new_session_doc(user["_id"], body.title, body.type, body.difficulty, body.skills,
                              body.duration, questions, scheduled=body.scheduled)
    db.interview_sessions.insert_one(session)
    db.skills.update_many({"name": {"$in": body.skills}}, {"$inc": {"usageCount": 1}})
    logger.info("Interview session %s created for user %s with %d questions",
                session["_id"], user["_id"], len(questions))

    return {
        "_id": session["_id"],
        "title": session["title"],
        "type": session["type"],
        "difficulty": session["difficulty"],
        "skills": session["skills"],
        "duration": session["duration"],
        "status": session["status"],
        "questionCount": len(questions),
        "startedAt": session["startedAt"],
        "questions": [
            {"questionId": q["questionId"], "questionNumber": i + 1, "question": q["question"],
             "type": q["type"], "difficulty": q["difficulty"]}
            for i, q in enumerate(questions)
        ],
    }


def start_session(db, session_id: str, user_id: str) -> dict:
    session = db.interview_sessions.find_one({"_id": session_id, "candidate": user_id, "status": "scheduled"})
    if not session:
        raise HTTPException(status_code=404, detail="Interview session not found or not accessible")
    now = datetime.utcnow()
    db.interview_sessions.update_one({"_id": session_id},
                                     {"$set": {"status": "in-progress", "startedAt": now, "updatedAt": now}})
    return {"id": session_id, "status": "in-progress", "startedAt": now}


# ---------------- Answers ----------------
def submit_answer(db, session_id: str, user_id: str, body) -> dict:
    if not body.questionId or not body.answer.strip():
        raise HTTPException(status_code=400, detail="Question ID and answer are required")

    session = get_owned_session(db, session_id, user_id)
    if session["status"] == "completed":
        raise HTTPException(status_code=400, detail="This interview session has already been completed")
    if session["status"] == "cancelled":
        raise HTTPException(status_code=400, detail="This interview session has been cancelled")

    index = next((i for i, q in enumerate(session["questions"]) if q["questionId"] == body.questionId), None)
    if index is None:
        raise HTTPException(status_code=404, detail="Question not found in this session")
    question = session["questions"][index]
    evaluation = _evaluate(session_id, question, body.answer)

    try:
        analysis = ai_service.analyze_response(body.answer)
    except AIServiceError as e:
        logger.warning("AI response analysis failed for session %s: %s", session_id, e)
        analysis = dict(ai_service.DEFAULT_ANALYSIS)
    evaluation["aiAnalysis"] = {
        "sentiment": analysis.get("sentiment", "neutral"),
        "keywords": analysis.get("keywords", []),
        "clarity_score": analysis.get("clarity_score", 5),
        "confidence_level": analysis.get("confidence_level", "medium"),
    }

    prefix = f"questions.{index}"
    now = datetime.utcnow()
    db.interview_sessions.update_one(
        {"_id": session_id},
        {"$set": {
            f"{prefix}.answer": {"text": body.answer, "timestamp": now},
            f"{prefix}.timeSpent": body.timeSpent,
            f"{prefix}.evaluation": evaluation,
            "updatedAt": now,
        }},
    )

    session = db.interview_sessions.find_one({"_id": session_id})
    answered = len(answered_questions(session))
    total = len(session["questions"])
    return {
        "message": "Answer submitted and evaluated successfully",
        "evaluation": evaluation,
        "progress": progress_of(session),
        "answeredQuestions": answered,
        "totalQuestions": total,
        "isLastQuestion": answered == total,
    }


def follow_up(db, session_id: str, user_id: str, question_id: str) -> dict:
    session = get_owned_session(db, session_id, user_id)
    question = next((q for q in session["questions"] if q["questionId"] == question_id), None)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found in this session")
    answer = (question.get("answer") or {}).get("text")
    if not answer:
        raise HTTPException(status_code=400, detail="Question has not been answered yet")
    try:
        questions = ai_service.generate_follow_up(question["question"], answer)
    except AIServiceError as e:
        logger.warning("Follow-up generation failed: %s", e)
        questions = []
    return {"questionId": question_id, "followUpQuestions": questions}


# ---------------- Completion ----------------
def complete_session(db, session_id: str, user: dict) -> dict:
    session = get_owned_session(db, session_id, user["_id"])
    if session["status"] == "completed":
        raise HTTPException(status_code=400, detail="This interview session has already been completed")
    if session["status"] == "cancelled":
        raise HTTPException(status_code=400, detail="This interview session has been cancelled")

    answered = answered_questions(session)
    evaluated = _evaluated(session)
    total_score = sum(q["evaluation"]["score"] for q in evaluated)
    average_score = round(total_score / len(evaluated), 2) if evaluated else 0

    try:
        feedback = ai_service.generate_overall_feedback(session["questions"], session["skills"])
    except AIServiceError as e:
        logger.warning("AI overall feedback failed for session %s: %s", session_id, e)
        feedback = dict(ai_service.DEFAULT_OVERALL_FEEDBACK)

    breakdown = criteria_breakdown(evaluated)
    overall = {
        "totalScore": total_score,
        "averageScore": average_score,
        "feedback": feedback.get("overall_assessment") or "Interview completed successfully.",
        "strengths": feedback.get("strengths") or [],
        "improvements": feedback.get("improvements") or [],
        "recommendation": feedback.get("recommendation") or "neutral",
        "criteriaBreakdown": {c["criterion"]: c["averageScore"] for c in breakdown},
    }

    completed_at = datetime.utcnow()
    if session.get("startedAt"):
        total_duration = round((completed_at - session["startedAt"]).total_seconds() / 60)
    else:
        total_duration = session["duration"]

    db.interview_sessions.update_one(
        {"_id": session_id},
        {"$set": {
            "status": "completed",
            "completedAt": completed_at,
            "totalDuration": total_duration,
            "overallEvaluation": overall,
            "updatedAt": completed_at,
        }},
    )

    recommendations = ([f"Strength: {s}" for s in overall["strengths"]]
                       + [f"Area for improvement: {i}" for i in overall["improvements"]])
    email_service.send_interview_completion_email(
        db,
        user["email"],
        f"{user.get('firstName', '')} {user.get('lastName', '')}".strip(),
        skill=", ".join(session["skills"]),
        score=round(average_score * 10),
        total_questions=len(session["questions"]),
        duration_seconds=total_duration * 60,
        recommendations=recommendations[:5],
    )

    achievements = evaluate_achievements(db, user["_id"])

    total_questions = len(session["questions"])
    return {
        "sessionId": session_id,
        "status": "completed",
        "totalQuestions": total_questions,
        "answeredQuestions": len(answered),
        "evaluatedQuestions": len(evaluated),
        "completionRate": round(len(answered) / total_questions * 100) if total_questions else 0,
        "averageScore": average_score,
        "totalScore": total_score,
        "duration": total_duration,
        "startedAt": session.get("startedAt"),
        "completedAt": completed_at,
        "overallEvaluation": {
            "feedback": overall["feedback"],
            "strengths": overall["strengths"],
            "improvements": overall["improvements"],
            "recommendation": overall["recommendation"],
        },
        "performanceBySkill": skill_performance(session),
        "criteriaBreakdown": breakdown,
        "newAchievements": achievements["newAchievements"],
    }


# ---------------- Timed assessment ----------------
def time_factor(time_spent: int, limit_seconds: int) -> float:
    """Full credit inside the time limit, then a proportional penalty floored at MIN_TIME_FACTOR."""
    if time_spent <= limit_seconds:
        return 1.0
    return max(MIN_TIME_FACTOR, limit_seconds / time_spent)


def assess_answer(db, session_id: str, user: dict, body) -> dict:
    if not body.candidateAnswer.strip():
        raise HTTPException(status_code=400, detail="Question index and candidate answer are required")

    session = db.interview_sessions.find_one({"_id": session_id, "candidate": user["_id"], "status": "in-progress"})
    if not session:
        raise HTTPException(status_code=404, detail="Interview session not found or not accessible")
    if body.questionIndex >= len(session["questions"]):
        raise HTTPException(status_code=404, detail="Question not found")
    question = session["questions"][body.questionIndex]

    evaluation = _evaluate(session_id, question, body.candidateAnswer)
    limit_seconds = int(question.get("timeLimit") or DEFAULT_TIME_LIMIT_MINUTES) * 60
    factor = time_factor(body.timeSpent, limit_seconds)
    now = datetime.utcnow()
    evaluation.update({
        "rawScore": evaluation["score"],
        "score": int(evaluation["score"] * factor + 0.5),
        "timeFactor": factor,
        "assessedAt": now,
        "assessedBy": "AI",
    })

    prefix = f"questions.{body.questionIndex}"
    db.interview_sessions.update_one(
        {"_id": session_id},
        {"$set": {
            f"{prefix}.answer": {"text": body.candidateAnswer, "timestamp": now},
            f"{prefix}.timeSpent": body.timeSpent,
            f"{prefix}.evaluation": evaluation,
            "updatedAt": now,
        }},
    )

    session = db.interview_sessions.find_one({"_id": session_id})
    questions = session["questions"]
    answered = len(answered_questions(session))
    is_complete = answered == len(questions)
    results = complete_session(db, session_id, user) if is_complete else None
    next_question = None
    if not is_complete:
        next_question = next(i for i, q in enumerate(questions) if not (q.get("answer") or {}).get("text"))

    return {
        "message": "Answer assessed successfully",
        "assessment": {
            "score": evaluation["score"],
            "rawScore": evaluation["rawScore"],
            "timeFactor": factor,
            "feedback": evaluation["feedback"],
            "criteria": evaluation["criteria"],
            "isComplete": is_complete,
        },
        "nextQuestion": next_question,
        "overallProgress": {
            "completed": answered,
            "total": len(questions),
            "percentage": progress_of(session),
        },
        "results": results,
    }


def cancel_session(db, session_id: str, user_id: str) -> dict:
    session = get_owned_session(db, session_id, user_id)
    if session["status"] == "completed":
        raise HTTPException(status_code=400, detail="Completed interviews cannot be cancelled")
    db.interview_sessions.update_one({"_id": session_id},
                                     {"$set": {"status": "cancelled", "updatedAt": datetime.utcnow()}})
    return {"message": "Interview session cancelled", "id": session_id}


def shared_summary(db, session_id: str) -> dict:
    session = db.interview_sessions.find_one({"_id": session_id, "status": "completed"},
                                             {"candidate": 0, "interviewer": 0})
    if not session:
        raise HTTPException(status_code=404, detail="Interview session not found")
    answered = answered_questions(session)
    avg = (sum((q.get("evaluation") or {}).get("score", 0) for q in answered) / len(answered)) if answered else 0
    return {
        "success": True,
        "session": {
            "id": session["_id"],
            "title": session["title"],
            "type": session["type"],
            "difficulty": session["difficulty"],
            "skills": session["skills"],
            "completedAt": session.get("completedAt"),
            "totalQuestions": len(session["questions"]),
            "answeredQuestions": len(answered),
            "averageScore": round(avg, 1),
            "overallEvaluation": session.get("overallEvaluation"),
        },
    }


# ---------------- Live interviewer assistance ----------------
def interviewer_suggestion(db, session_id: str, user: dict, body) -> dict:
    session = db.interview_sessions.find_one({
        "_id": session_id,
        "status": "in-progress",
        "$or": [{"interviewer": user["_id"]}, {"candidate": user["_id"]}],
    })
    if not session:
        raise HTTPException(status_code=404, detail="Interview session not found or not accessible")
    if user.get("role") not in ("interviewer", "admin"):
        raise HTTPException(status_code=403, detail="AI suggestions are only available for interviewers")

    try:
        suggestion = ai_service.generate_interviewer_suggestion(
            ", ".join(session["skills"]), session["type"], body.duration, body.notes, body.context)
    except AIServiceError as e:
        logger.warning("AI suggestion failed, using fallback: %s", e)
        suggestion = ai_service.pick_fallback_suggestion(body.duration, session["type"])

    return {
        "type": suggestion.get("type") or "follow_up",
        "content": suggestion["content"],
        "priority": suggestion.get("priority") or "medium",
        "timestamp": datetime.utcnow(),
        "sessionId": session_id,
        "context": body.context,
    }
