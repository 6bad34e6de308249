import logging
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.database import get_db, new_id
from backend.schemas import SkillIn
from backend.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/skills", tags=["skills"])
admin_router = APIRouter(prefix="/api/admin/skills", tags=["admin"])

PUBLIC_FIELDS = {"name": 1, "category": 1, "description": 1, "level": 1}


def _skill_query(category: Optional[str], search: Optional[str]) -> dict:
    query = {}
    if category and category != "all":
        query["category"] = category
    if search:
        pattern = re.compile(re.escape(search), re.IGNORECASE)
        query["$or"] = [{"name": pattern}, {"description": pattern}]
    return query


def _name_taken(db, name: str, exclude_id: Optional[str] = None) -> bool:
    query = {"name": re.compile(f"^{re.escape(name)}$", re.IGNORECASE)}
    if exclude_id:
        query["_id"] = {"$ne": exclude_id}
    return db.skills.find_one(query) is not None


@router.get("")
def list_skills(category: Optional[str] = None, search: Optional[str] = None, db=Depends(get_db)):
    query = _skill_query(category, search)
    query["isActive"] = True
    skills = list(db.skills.find(query, PUBLIC_FIELDS).sort([("usageCount", -1), ("name", 1)]).limit(100))
    return {"message": "Skills retrieved successfully", "skills": skills}


# ---------------- Admin ----------------
@admin_router.get("")
def admin_list_skills(
    category: Optional[str] = None,
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    limit: int = Query(200, ge=1, le=1000),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    query = _skill_query(category, search)
    if isActive is not None:
        query["isActive"] = isActive
    skills = list(db.skills.find(query).sort("name", 1).limit(limit))
    return {"skills": skills, "total": db.skills.count_documents(query)}


@admin_router.post("", status_code=201)
def create_skill(body: SkillIn, admin=Depends(require_admin), db=Depends(get_db)):
    name = body.name.strip()
    if _name_taken(db, name):
        raise HTTPException(status_code=400, detail="Skill already exists")
    now = datetime.utcnow()
    skill = {
        "_id": new_id(),
        "name": name,
        "category": body.category,
        "description": (body.description or "").strip(),
        "level": body.level,
        "isActive": body.isActive,
        "usageCount": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    db.skills.insert_one(skill)
    logger.info("Skill %r created by %s", name, admin["_id"])
    return {"message": "Skill created successfully", "skill": skill}


@admin_router.put("/{skill_id}")
def update_skill(skill_id: str, body: SkillIn, admin=Depends(require_admin), db=Depends(get_db)):
    if not db.skills.find_one({"_id": skill_id}):
        raise HTTPException(status_code=404, detail="Skill not found")
    name = body.name.strip()
    if _name_taken(db, name, exclude_id=skill_id):
        raise HTTPException(status_code=400, detail="Skill name already exists")

    db.skills.update_one({"_id": skill_id}, {"$set": {
        "name": name,
        "category": body.category,
        "description": (body.description or "").strip(),
        "level": body.level,
        "isActive": body.isActive,
        "updatedAt": datetime.utcnow(),
    }})
    return {"message": "Skill updated successfully", "skill": db.skills.find_one({"_id": skill_id})}


@admin_router.delete("/{skill_id}")
def delete_skill(skill_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    result = db.skills.delete_one({"_id": skill_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Skill not found")
    return {"message": "Skill deleted successfully"}
