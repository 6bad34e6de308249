import csv
import io
import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from backend import analytics, config
from backend.achievements import evaluate_achievements
from backend.database import get_db
from backend.models import answered_questions, public_user
from backend.resume_service import ResumeError, delete_resume_file, save_resume
from backend.schemas import ProfileUpdate
from backend.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])

CSV_HEADER = [
    "Interview Title", "Type", "Difficulty", "Skills", "Overall Score", "Questions Answered",
    "Total Questions", "Technical Accuracy", "Communication", "Problem Solving", "Confidence",
    "Started At", "Completed At", "Duration (minutes)",
]


# ---------------- Profile ----------------
@router.get("/profile")
def get_profile(current=Depends(get_current_user)):
    return {"message": "Profile retrieved successfully", "user": public_user(current)}


@router.put("/profile")
def update_profile(body: ProfileUpdate, current=Depends(get_current_user), db=Depends(get_db)):
    updates = {}
    if body.firstName is not None:
        updates["firstName"] = body.firstName.strip()
    if body.lastName is not None:
        updates["lastName"] = body.lastName.strip()
    if body.profile is not None:
        for key, value in body.profile.model_dump(exclude_none=True).items():
            updates[f"profile.{key}"] = value
    updates["updatedAt"] = datetime.utcnow()

    db.users.update_one({"_id": current["_id"]}, {"$set": updates})
    user = db.users.find_one({"_id": current["_id"]})
    return {"message": "Profile updated successfully", "user": public_user(user)}


# ---------------- Resume ----------------
@router.post("/resume")
def upload_resume(file: UploadFile = File(...), current=Depends(get_current_user), db=Depends(get_db)):
    # one byte past the limit is enough to reject oversized files
    content = file.file.read(config.MAX_RESUME_BYTES + 1)
    try:
        resume = save_resume(content, file.filename, file.content_type)
    except ResumeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    old = (current.get("profile") or {}).get("resume")
    if old and old.get("path"):
        delete_resume_file(old["path"])

    db.users.update_one({"_id": current["_id"]},
                        {"$set": {"profile.resume": resume, "updatedAt": datetime.utcnow()}})
    return {
        "message": "Resume uploaded successfully",
        "resume": {k: v for k, v in resume.items() if k not in ("textContent", "path")},
        "extractedSkills": resume["extractedSkills"],
    }


@router.delete("/resume")
def delete_resume(current=Depends(get_current_user), db=Depends(get_db)):
    resume = (current.get("profile") or {}).get("resume")
    if not resume:
        raise HTTPException(status_code=404, detail="No resume found")
    if resume.get("path"):
        delete_resume_file(resume["path"])
    db.users.update_one({"_id": current["_id"]},
                        {"$set": {"profile.resume": None, "updatedAt": datetime.utcnow()}})
    return {"message": "Resume deleted successfully"}


# ---------------- History ----------------
@router.get("/interviews")
def interview_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    skill: Optional[str] = None,
    difficulty: Optional[str] = None,
    current=Depends(get_current_user),
    db=Depends(get_db),
):
    query = {"candidate": current["_id"]}
    if status:
        query["status"] = status
    if skill:
        query["skills"] = {"$in": [skill]}
    if difficulty:
        query["difficulty"] = difficulty

    total = db.interview_sessions.count_documents(query)
    cursor = db.interview_sessions.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    sessions = [
        {
            "_id": s["_id"],
            "title": s["title"],
            "type": s["type"],
            "difficulty": s["difficulty"],
            "skills": s["skills"],
            "status": s["status"],
            "questionCount": len(s.get("questions", [])),
            "answeredCount": len(answered_questions(s)),
            "averageScore": (s.get("overallEvaluation") or {}).get("averageScore"),
            "duration": s.get("totalDuration") or s.get("duration"),
            "startedAt": s.get("startedAt"),
            "completedAt": s.get("completedAt"),
            "createdAt": s.get("createdAt"),
        }
        for s in cursor
    ]
    return {
        "sessions": sessions,
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit},
        "statistics": analytics.history_statistics(db, current["_id"]),
    }


@router.get("/export/csv")
def export_csv(current=Depends(get_current_user), db=Depends(get_db)):
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADER)

    for s in db.interview_sessions.find({"candidate": current["_id"], "status": "completed"}).sort("completedAt", -1):
        ev = s.get("overallEvaluation") or {}
        criteria = ev.get("criteriaBreakdown") or {}
        started, completed = s.get("startedAt"), s.get("completedAt")
        duration = round((completed - started).total_seconds() / 60) if started and completed else 0
        writer.writerow([
            s["title"],
            s["type"],
            s["difficulty"],
            ", ".join(s.get("skills", [])),
            ev.get("averageScore", 0),
            len(answered_questions(s)),
            len(s.get("questions", [])),
            criteria.get("technical_accuracy", 0),
            criteria.get("communication", 0),
            criteria.get("problem_solving", 0),
            criteria.get("confidence", 0),
            started.isoformat() if started else "",
            completed.isoformat() if completed else "",
            duration,
        ])

    filename = f"interview-history-{int(datetime.utcnow().timestamp() * 1000)}.csv"
    return Response(
        content=buf.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------- Progress ----------------
@router.get("/achievements")
def achievements(current=Depends(get_current_user), db=Depends(get_db)):
    return evaluate_achievements(db, current["_id"])


@router.get("/analytics")
def user_analytics(timeRange: str = Query("90d", pattern="^(30d|90d|1y)$"),
                   current=Depends(get_current_user), db=Depends(get_db)):
    return analytics.user_analytics(db, current["_id"], timeRange)


@router.get("/analytics/advanced")
def advanced_analytics(skill: Optional[str] = None, current=Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, "analytics": analytics.benchmark(db, current["_id"], skill)}
