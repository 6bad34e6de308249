import logging
import math
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo import ReturnDocument

from backend.database import get_db, new_id
from backend.models import guide_summary, new_guide_question
from backend.schemas import GuideCreate, GuideQuestionIn, GuideQuestionUpdate, GuideUpdate, VoteRequest
from backend.security import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interview-guides", tags=["interview-guides"])
admin_router = APIRouter(prefix="/api/admin/interview-guides", tags=["admin"])


def _author(db, user_id: Optional[str]) -> Optional[dict]:
    if not user_id:
        return None
    u = db.users.find_one({"_id": user_id}, {"firstName": 1, "lastName": 1})
    return {"_id": u["_id"], "firstName": u.get("firstName"), "lastName": u.get("lastName")} if u else None


def _sorted_questions(guide: dict) -> dict:
    guide["questions"] = sorted(guide.get("questions", []), key=lambda q: q.get("order", 0))
    return guide


def _find_guide(db, guide_id: str) -> dict:
    guide = db.interview_guides.find_one({"_id": guide_id})
    if not guide:
        raise HTTPException(status_code=404, detail="Interview guide not found")
    return guide


def _guide_query(domain, technology, difficulty, search, published_only=True) -> dict:
    query = {"isPublished": True} if published_only else {}
    if domain:
        query["domain"] = domain
    if technology:
        query["technology"] = technology
    if difficulty:
        query["difficulty"] = difficulty
    if search:
        pattern = re.compile(re.escape(search), re.IGNORECASE)
        query["$or"] = [{"title": pattern}, {"description": pattern}, {"tags": pattern}]
    return query


# ---------------- Public ----------------
@router.get("")
def list_guides(
    domain: Optional[str] = None,
    technology: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db=Depends(get_db),
):
    query = _guide_query(domain, technology, difficulty, search)
    total = db.interview_guides.count_documents(query)
    cursor = (db.interview_guides.find(query)
              .sort([("publishedDate", -1), ("views", -1)])
              .skip((page - 1) * limit)
              .limit(limit))
    guides = []
    for g in cursor:
        summary = guide_summary(g)
        summary["createdBy"] = _author(db, g.get("createdBy"))
        guides.append(summary)

    return {
        "guides": guides,
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit},
        "filters": {
            "domains": sorted(db.interview_guides.distinct("domain", {"isPublished": True})),
            "technologies": sorted(db.interview_guides.distinct("technology", {"isPublished": True})),
        },
    }


@router.get("/{guide_id}")
def get_guide(guide_id: str, db=Depends(get_db)):
    guide = db.interview_guides.find_one_and_update(
        {"_id": guide_id, "isPublished": True}, {"$inc": {"views": 1}}, return_document=ReturnDocument.AFTER)
    if not guide:
        raise HTTPException(status_code=404, detail="Interview guide not found")
    guide["createdBy"] = _author(db, guide.get("createdBy"))
    return {"guide": _sorted_questions(guide)}


@router.post("/{guide_id}/vote")
def vote_guide(guide_id: str, body: VoteRequest, current=Depends(get_current_user), db=Depends(get_db)):
    field = "upvotes" if body.voteType == "upvote" else "downvotes"
    guide = db.interview_guides.find_one_and_update(
        {"_id": guide_id, "isPublished": True}, {"$inc": {field: 1}}, return_document=ReturnDocument.AFTER)
    if not guide:
        raise HTTPException(status_code=404, detail="Interview guide not found")
    return {"message": "Vote recorded successfully", "upvotes": guide["upvotes"], "downvotes": guide["downvotes"]}


# ---------------- Admin ----------------
@admin_router.get("")
def admin_list_guides(
    domain: Optional[str] = None,
    technology: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
    isPublished: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    query = _guide_query(domain, technology, difficulty, search, published_only=False)
    if isPublished is not None:
        query["isPublished"] = isPublished
    total = db.interview_guides.count_documents(query)
    guides = list(db.interview_guides.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit))
    for g in guides:
        g["questionCount"] = len(g.get("questions", []))
    return {
        "guides": guides,
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit},
    }


@admin_router.get("/stats")
def guide_stats(admin=Depends(require_admin), db=Depends(get_db)):
    def grouped(field):
        rows = db.interview_guides.aggregate([
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ])
        return list(rows)

    views = list(db.interview_guides.aggregate([{"$group": {"_id": None, "totalViews": {"$sum": "$views"}}}]))
    return {
        "total": db.interview_guides.count_documents({}),
        "published": db.interview_guides.count_documents({"isPublished": True}),
        "views": views[0]["totalViews"] if views else 0,
        "domainStats": grouped("domain"),
        "difficultyStats": grouped("difficulty"),
    }


@admin_router.post("", status_code=201)
def create_guide(body: GuideCreate, admin=Depends(require_admin), db=Depends(get_db)):
    now = datetime.utcnow()
    questions = [
        new_guide_question(q.question, q.answer, q.category, q.tags, q.codeExample, q.references,
                           q.order if q.order is not None else i)
        for i, q in enumerate(body.questions)
    ]
    guide = {
        "_id": new_id(),
        "title": body.title.strip(),
        "description": body.description.strip(),
        "domain": body.domain.strip(),
        "technology": body.technology.strip(),
        "difficulty": body.difficulty,
        "questions": questions,
        "tags": body.tags,
        "isPublished": body.isPublished,
        "publishedDate": now if body.isPublished else None,
        "views": 0,
        "upvotes": 0,
        "downvotes": 0,
        "createdBy": admin["_id"],
        "lastUpdatedBy": admin["_id"],
        "createdAt": now,
        "updatedAt": now,
    }
    db.interview_guides.insert_one(guide)
    logger.info("Interview guide %s created by %s", guide["_id"], admin["_id"])
    return {"message": "Interview guide created successfully", "guide": guide}


@admin_router.get("/{guide_id}")
def admin_get_guide(guide_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    return {"guide": _sorted_questions(_find_guide(db, guide_id))}


@admin_router.put("/{guide_id}")
def update_guide(guide_id: str, body: GuideUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    guide = _find_guide(db, guide_id)
    updates = body.model_dump(exclude_none=True)
    if updates.get("isPublished") and not guide.get("publishedDate"):
        updates["publishedDate"] = datetime.utcnow()
    updates["lastUpdatedBy"] = admin["_id"]
    updates["updatedAt"] = datetime.utcnow()
    db.interview_guides.update_one({"_id": guide_id}, {"$set": updates})
    return {"message": "Interview guide updated successfully", "guide": _find_guide(db, guide_id)}


@admin_router.delete("/{guide_id}")
def delete_guide(guide_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    result = db.interview_guides.delete_one({"_id": guide_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Interview guide not found")
    return {"message": "Interview guide deleted successfully"}


# ---------------- Admin: guide questions ----------------
@admin_router.post("/{guide_id}/questions")
def add_question(guide_id: str, q: GuideQuestionIn, admin=Depends(require_admin), db=Depends(get_db)):
    guide = _find_guide(db, guide_id)
    order = q.order if q.order is not None else len(guide.get("questions", []))
    question = new_guide_question(q.question, q.answer, q.category, q.tags, q.codeExample, q.references, order)
    db.interview_guides.update_one(
        {"_id": guide_id},
        {"$push": {"questions": question},
         "$set": {"lastUpdatedBy": admin["_id"], "updatedAt": datetime.utcnow()}},
    )
    return {"message": "Question added successfully", "guide": _find_guide(db, guide_id)}


@admin_router.put("/{guide_id}/questions")
def update_question(guide_id: str, body: GuideQuestionUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    guide = _find_guide(db, guide_id)
    index = next((i for i, q in enumerate(guide.get("questions", [])) if q["_id"] == body.questionId), None)
    if index is None:
        raise HTTPException(status_code=404, detail="Question not found")

    changes = body.model_dump(exclude_none=True, exclude={"questionId"})
    updates = {f"questions.{index}.{k}": v for k, v in changes.items()}
    updates.update({"lastUpdatedBy": admin["_id"], "updatedAt": datetime.utcnow()})
    db.interview_guides.update_one({"_id": guide_id}, {"$set": updates})
    return {"message": "Question updated successfully", "guide": _find_guide(db, guide_id)}


@admin_router.delete("/{guide_id}/questions")
def delete_question(guide_id: str, questionId: str = Query(...), admin=Depends(require_admin), db=Depends(get_db)):
    _find_guide(db, guide_id)
    db.interview_guides.update_one(
        {"_id": guide_id},
        {"$pull": {"questions": {"_id": questionId}},
         "$set": {"lastUpdatedBy": admin["_id"], "updatedAt": datetime.utcnow()}},
    )
    return {"message": "Question deleted successfully", "guide": _find_guide(db, guide_id)}
