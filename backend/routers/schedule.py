import logging
import secrets
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException

from backend import email_service
from backend.config import APP_URL
from backend.database import get_db, new_id
from backend.schemas import CandidateInvite, ScheduleCreate, ScheduleUpdate
from backend.security import get_current_user, require_interviewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


def _utc(dt: datetime) -> datetime:
    """Stored datetimes are naive UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _owner_filter(user_id: str) -> dict:
    return {"$or": [{"userId": user_id}, {"interviewerId": user_id}]}


def _new_scheduled(user_id: str, title: str, scheduled_at: datetime, duration: int, **extra) -> dict:
    now = datetime.utcnow()
    doc = {
        "_id": new_id(),
        "userId": user_id,
        "interviewerId": None,
        "title": title,
        "description": "",
        "candidateName": None,
        "candidateEmail": None,
        "skills": [],
        "scheduledAt": scheduled_at,
        "duration": duration,
        "status": "scheduled",
        "reminderSent": False,
        "meetingLink": None,
        "notes": "",
        "rating": None,
        "createdAt": now,
        "updatedAt": now,
    }
    doc.update(extra)
    return doc


def _get_owned(db, schedule_id: str, user_id: str) -> dict:
    doc = db.scheduled_interviews.find_one({"$and": [{"_id": schedule_id}, _owner_filter(user_id)]})
    if not doc:
        raise HTTPException(status_code=404, detail="Scheduled interview not found")
    return doc


@router.post("", status_code=201)
def schedule_interview(body: ScheduleCreate, current=Depends(get_current_user), db=Depends(get_db)):
    doc = _new_scheduled(
        current["_id"], body.title.strip(), _utc(body.scheduledAt), body.duration,
        description=body.description or "",
        interviewerId=body.interviewerId,
        meetingLink=body.meetingLink,
    )
    db.scheduled_interviews.insert_one(doc)
    return {"success": True, "message": "Interview scheduled successfully", "interview": doc}


@router.get("")
def list_scheduled(
    status: Optional[str] = None,
    upcoming: bool = False,
    current=Depends(get_current_user),
    db=Depends(get_db),
):
    query = _owner_filter(current["_id"])
    if status:
        query = {"$and": [query, {"status": status}]}
    if upcoming:
        query = {"$and": [query, {"scheduledAt": {"$gte": datetime.utcnow()},
                                  "status": {"$in": ["scheduled", "confirmed"]}}]}
    interviews = list(db.scheduled_interviews.find(query).sort("scheduledAt", 1 if upcoming else -1))

    interviewer_ids = {i["interviewerId"] for i in interviews if i.get("interviewerId")}
    interviewers = {u["_id"]: {"_id": u["_id"], "firstName": u.get("firstName"), "lastName": u.get("lastName"),
                               "email": u.get("email")}
                    for u in db.users.find({"_id": {"$in": list(interviewer_ids)}})}
    for i in interviews:
        i["interviewer"] = interviewers.get(i.get("interviewerId"))
    return {"success": True, "interviews": interviews}


@router.put("/{schedule_id}")
def update_scheduled(schedule_id: str, body: ScheduleUpdate, current=Depends(get_current_user),
                     db=Depends(get_db)):
    _get_owned(db, schedule_id, current["_id"])
    updates = body.model_dump(exclude_none=True)
    if "scheduledAt" in updates:
        updates["scheduledAt"] = _utc(updates["scheduledAt"])
        updates["reminderSent"] = False
    updates["updatedAt"] = datetime.utcnow()
    db.scheduled_interviews.update_one({"_id": schedule_id}, {"$set": updates})
    return {"success": True, "message": "Interview updated successfully",
            "interview": db.scheduled_interviews.find_one({"_id": schedule_id})}


@router.delete("/{schedule_id}")
def cancel_scheduled(schedule_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    _get_owned(db, schedule_id, current["_id"])
    db.scheduled_interviews.update_one(
        {"_id": schedule_id}, {"$set": {"status": "cancelled", "updatedAt": datetime.utcnow()}})
    return {"success": True, "message": "Interview cancelled successfully"}


# ---------------- Interviewer invites ----------------
@router.post("/interview", status_code=201)
def invite_candidate(body: CandidateInvite, current=Depends(require_interviewer), db=Depends(get_db)):
    skills = [s.strip() for s in body.skills if s.strip()]
    if not body.candidateName.strip():
        raise HTTPException(status_code=400, detail="Candidate name is required")
    if not skills:
        raise HTTPException(status_code=400, detail="At least one skill is required")
    if body.duration <= 0:
        raise HTTPException(status_code=400, detail="Duration must be greater than 0")
    scheduled_at = _utc(body.scheduledAt)
    if scheduled_at < datetime.utcnow():
        raise HTTPException(status_code=400, detail="Scheduled date must be in the future")

    email = body.candidateEmail.lower()
    token = secrets.token_urlsafe(16)
    doc = _new_scheduled(
        current["_id"], f"Interview - {', '.join(skills)}", scheduled_at, body.duration,
        interviewerId=current["_id"],
        description=body.notes or "",
        notes=body.notes or "",
        candidateName=body.candidateName.strip(),
        candidateEmail=email,
        skills=skills,
        registrationLink=f"{APP_URL}/register?email={quote(email)}&token={token}",
        meetingLink=body.meetingLink or f"{APP_URL}/interview/join/{token}",
    )
    db.scheduled_interviews.insert_one(doc)

    interviewer_name = f"{current.get('firstName', '')} {current.get('lastName', '')}".strip()
    email_sent = email_service.send_schedule_invitation_email(
        db, email, doc["candidateName"], interviewer_name, skills, scheduled_at, body.duration,
        meeting_link=doc["meetingLink"], notes=doc["notes"],
    )
    if not email_sent:
        logger.warning("Invitation email for scheduled interview %s was not sent", doc["_id"])

    return {
        "message": "Interview scheduled successfully",
        "interview": {
            "id": doc["_id"],
            "candidateName": doc["candidateName"],
            "candidateEmail": email,
            "skills": skills,
            "scheduledAt": scheduled_at,
            "duration": body.duration,
            "status": doc["status"],
        },
        "emailSent": email_sent,
    }
