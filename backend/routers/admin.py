import logging
import math
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend import analytics, email_service
from backend.database import get_db
from backend.models import SETTINGS_ID, get_settings, new_user_doc, public_settings, public_user
from backend.schemas import AdminUserCreate, AdminUserUpdate, ReminderRequest, SettingsUpdate
from backend.security import hash_password, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------- Users ----------------
@router.get("/users")
def list_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    query = {}
    if role and role != "all":
        query["role"] = role
    if search:
        pattern = re.compile(re.escape(search), re.IGNORECASE)
        query["$or"] = [{"firstName": pattern}, {"lastName": pattern}, {"email": pattern}]
    total = db.users.count_documents(query)
    users = [public_user(u) for u in
             db.users.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)]
    return {
        "users": users,
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit},
    }


@router.get("/users/count")
def count_users(admin=Depends(require_admin), db=Depends(get_db)):
    return {
        "count": db.users.count_documents({}),
        "active": db.users.count_documents({"isActive": True}),
        "admins": db.users.count_documents({"role": "admin"}),
    }


@router.post("/users", status_code=201)
def create_user(body: AdminUserCreate, admin=Depends(require_admin), db=Depends(get_db)):
    if db.users.find_one({"email": body.email.lower()}):
        raise HTTPException(status_code=400, detail="User already exists with this email")
    user = new_user_doc(body.firstName, body.lastName, body.email, hash_password(body.password),
                        role=body.role, is_active=body.isActive)
    db.users.insert_one(user)
    logger.info("Admin %s created %s user %s", admin["_id"], user["role"], user["_id"])
    return {"message": "User created successfully", "user": public_user(user)}


@router.put("/users/{user_id}")
def update_user(user_id: str, body: AdminUserUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    if not db.users.find_one({"_id": user_id}):
        raise HTTPException(status_code=404, detail="User not found")
    email = body.email.lower()
    if db.users.find_one({"email": email, "_id": {"$ne": user_id}}):
        raise HTTPException(status_code=400, detail="Email already in use by another user")

    updates = {
        "firstName": body.firstName.strip(),
        "lastName": body.lastName.strip(),
        "email": email,
        "updatedAt": datetime.utcnow(),
    }
    if body.role is not None:
        updates["role"] = body.role
    if body.isActive is not None:
        updates["isActive"] = body.isActive
    if body.password:
        updates["password_hash"] = hash_password(body.password)

    db.users.update_one({"_id": user_id}, {"$set": updates})
    return {"message": "User updated successfully", "user": public_user(db.users.find_one({"_id": user_id}))}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    if user_id == admin["_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    result = db.users.delete_one({"_id": user_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Admin %s deleted user %s", admin["_id"], user_id)
    return {"message": "User deleted successfully"}


# ---------------- Analytics ----------------
@router.get("/analytics")
def platform_analytics(admin=Depends(require_admin), db=Depends(get_db)):
    return analytics.platform_analytics(db)


# ---------------- Settings ----------------
@router.get("/settings")
def get_system_settings(admin=Depends(require_admin), db=Depends(get_db)):
    return {"settings": public_settings(get_settings(db))}


@router.put("/settings")
def update_system_settings(body: SettingsUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    get_settings(db)
    values = body.model_dump()
    values["siteName"] = values["siteName"].strip()
    db.system_settings.update_one({"_id": SETTINGS_ID}, {"$set": {**values, "updatedAt": datetime.utcnow()}})
    logger.info("System settings updated by %s", admin["_id"])
    return {"message": "Settings updated successfully", "settings": public_settings(get_settings(db))}


# ---------------- Reminders ----------------
@router.get("/reminders")
def preview_reminders(days: int = Query(7, ge=1), admin=Depends(require_admin), db=Depends(get_db)):
    users = analytics.reminder_candidates(db, days)
    return {"users": users, "count": len(users)}


@router.post("/reminders")
def send_reminders(body: ReminderRequest, admin=Depends(require_admin), db=Depends(get_db)):
    targets = analytics.reminder_candidates(db, body.daysSinceLastInterview)[:body.maxReminders]
    sent = failed = 0
    for user in targets:
        ok = email_service.send_interview_reminder_email(
            db, user["email"], user["name"], user["daysSinceLastInterview"])
        if ok:
            sent += 1
        else:
            failed += 1
    logger.info("Reminder run by %s: %d sent, %d failed", admin["_id"], sent, failed)
    return {
        "message": f"Sent {sent} reminder emails",
        "sent": sent,
        "failed": failed,
        "total": len(targets),
    }
