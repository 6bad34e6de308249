import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from passlib.hash import argon2

from backend.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGO, JWT_SECRET
from backend.database import get_db

logger = logging.getLogger(__name__)


# ---------------- Passwords ----------------
def hash_password(password: str) -> str:
    return argon2.hash(password)


def verify_password(password: str, hash_: str) -> bool:
    try:
        return argon2.verify(password, hash_)
    except (ValueError, TypeError) as e:
        logger.warning("Password verify error: %s", e)
        return False


# ---------------- Tokens ----------------
def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": user["_id"],
        "userId": user["_id"],
        "email": user["email"],
        "role": user.get("role", "candidate"),
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except JWTError as e:
        logger.info("JWT decoding error: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def _token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization")
    if auth:
        parts = auth.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise HTTPException(status_code=401, detail="Invalid Authorization header format. Must be 'Bearer <token>'")
        return parts[1]
    return request.cookies.get("token")


# ---------------- Dependencies ----------------
def get_current_user(request: Request, db=Depends(get_db)) -> dict:
    """Resolve the bearer token (header or `token` cookie) to an active user document."""
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")

    payload = decode_token(token)
    user_id = payload.get("sub") or payload.get("userId")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token structure")

    user = db.users.find_one({"_id": user_id})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")
    return user


def require_roles(*roles: str):
    def checker(current=Depends(get_current_user)):
        if current.get("role") not in roles:
            raise HTTPException(status_code=403, detail="Not allowed")
        return current
    return checker


require_admin = require_roles("admin")
require_interviewer = require_roles("interviewer", "admin")
