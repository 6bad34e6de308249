import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from backend.database import get_db
from backend.models import get_settings, new_user_doc, public_user
from backend.schemas import LoginRequest, PasswordChange, UserCreate
from backend.security import create_access_token, get_current_user, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(u: UserCreate, db=Depends(get_db)):
    if not get_settings(db).get("enableRegistration", True):
        raise HTTPException(status_code=403, detail="Registration is currently disabled")

    if db.users.find_one({"email": u.email.lower()}):
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = new_user_doc(u.firstName, u.lastName, u.email, hash_password(u.password), role=u.role)
    db.users.insert_one(user)
    logger.info("Registered %s user %s", user["role"], user["_id"])
    return {
        "message": "User registered successfully",
        "token": create_access_token(user),
        "user": public_user(user),
    }


@router.post("/login")
def login(req: LoginRequest, db=Depends(get_db)):
    user = db.users.find_one({"email": req.email.lower()})
    if not user or not verify_password(req.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")

    now = datetime.utcnow()
    db.users.update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now}})
    user["lastLogin"] = now
    return {"message": "Login successful", "token": create_access_token(user), "user": public_user(user)}


@router.get("/me")
def me(current=Depends(get_current_user)):
    return {"user": public_user(current)}


@router.put("/password")
def change_password(body: PasswordChange, current=Depends(get_current_user), db=Depends(get_db)):
    if not verify_password(body.currentPassword, current["password_hash"]):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    db.users.update_one(
        {"_id": current["_id"]},
        {"$set": {"password_hash": hash_password(body.newPassword), "updatedAt": datetime.utcnow()}},
    )
    return {"message": "Password updated successfully"}
