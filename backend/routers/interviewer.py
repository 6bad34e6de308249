import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend import analytics
from backend.database import get_db, new_id
from backend.models import DEFAULT_INTERVIEWER_CONFIG
from backend.schemas import InterviewerConfigIn, TemplateIn
from backend.security import require_interviewer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interviewer", tags=["interviewer"])

SORTABLE_FIELDS = ("scheduledAt", "createdAt", "candidateName", "status", "duration")


# ---------------- Stats & analytics ----------------
@router.get("/stats")
def stats(current=Depends(require_interviewer), db=Depends(get_db)):
    return analytics.interviewer_stats(db, current["_id"])


@router.get("/scheduled-interviews")
def scheduled_interviews(
    status: Optional[str] = None,
    sortBy: str = "scheduledAt",
    sortOrder: str = Query("desc", pattern="^(asc|desc)$"),
    current=Depends(require_interviewer),
    db=Depends(get_db),
):
    if sortBy not in SORTABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sortBy}")
    query = {"$or": [{"userId": current["_id"]}, {"interviewerId": current["_id"]}]}
    if status and status != "all":
        query = {"$and": [query, {"status": status}]}
    interviews = list(db.scheduled_interviews.find(query).sort(sortBy, 1 if sortOrder == "asc" else -1))
    return {"interviews": interviews, "total": len(interviews)}


@router.get("/analytics")
def interviewer_analytics(timeRange: str = Query("90d", pattern="^(30d|90d|1y)$"),
                          current=Depends(require_interviewer), db=Depends(get_db)):
    return analytics.interviewer_analytics(db, current["_id"], timeRange)


# ---------------- Templates ----------------
def _visible_templates(user_id: str) -> dict:
    return {"$or": [{"createdBy": user_id}, {"isDefault": True}]}


def _template_fields(body: TemplateIn) -> dict:
    skills = [s.strip() for s in body.skills if s.strip()]
    if not body.name.strip() or not skills:
        raise HTTPException(status_code=400, detail="Name and at least one skill are required")
    fields = body.model_dump()
    fields["name"] = body.name.strip()
    fields["skills"] = skills
    return fields


@router.get("/templates")
def list_templates(current=Depends(require_interviewer), db=Depends(get_db)):
    templates = list(db.interview_templates.find(_visible_templates(current["_id"])).sort("createdAt", -1))
    return {"templates": templates}


@router.post("/templates", status_code=201)
def create_template(body: TemplateIn, current=Depends(require_interviewer), db=Depends(get_db)):
    now = datetime.utcnow()
    template = {
        "_id": new_id(),
        **_template_fields(body),
        "createdBy": current["_id"],
        "isDefault": False,
        "createdAt": now,
        "updatedAt": now,
    }
    db.interview_templates.insert_one(template)
    logger.info("Template %s created by %s", template["_id"], current["_id"])
    return {"message": "Template created successfully", "template": template}


@router.get("/templates/{template_id}")
def get_template(template_id: str, current=Depends(require_interviewer), db=Depends(get_db)):
    template = db.interview_templates.find_one({"$and": [{"_id": template_id}, _visible_templates(current["_id"])]})
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return {"template": template}


@router.put("/templates/{template_id}")
def update_template(template_id: str, body: TemplateIn, current=Depends(require_interviewer),
                    db=Depends(get_db)):
    owned = {"_id": template_id, "createdBy": current["_id"], "isDefault": False}
    if not db.interview_templates.find_one(owned):
        raise HTTPException(status_code=404, detail="Template not found or cannot be modified")
    db.interview_templates.update_one(owned, {"$set": {**_template_fields(body), "updatedAt": datetime.utcnow()}})
    return {"message": "Template updated successfully", "template": db.interview_templates.find_one(owned)}


@router.delete("/templates/{template_id}")
def delete_template(template_id: str, current=Depends(require_interviewer), db=Depends(get_db)):
    result = db.interview_templates.delete_one({"_id": template_id, "createdBy": current["_id"], "isDefault": False})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Template not found or cannot be deleted")
    return {"message": "Template deleted successfully"}


# ---------------- Configuration ----------------
@router.get("/configuration")
def get_configuration(current=Depends(require_interviewer), db=Depends(get_db)):
    config = db.interviewer_configurations.find_one({"userId": current["_id"]}, {"_id": 0, "userId": 0})
    if not config:
        return {"configuration": DEFAULT_INTERVIEWER_CONFIG}
    return {"configuration": {**DEFAULT_INTERVIEWER_CONFIG, **config}}


@router.put("/configuration")
def save_configuration(body: InterviewerConfigIn, current=Depends(require_interviewer), db=Depends(get_db)):
    values = body.model_dump()
    now = datetime.utcnow()
    db.interviewer_configurations.update_one(
        {"userId": current["_id"]},
        {"$set": {**values, "updatedAt": now}, "$setOnInsert": {"_id": new_id(), "createdAt": now}},
        upsert=True,
    )
    return {"message": "Configuration saved successfully", "configuration": values}
