from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend import analytics
from backend.database import get_db

router = APIRouter(prefix="/api/interviewers", tags=["interviewers"])


# public, no auth
@router.get("")
def list_interviewers(expertise: Optional[str] = None, minRating: float = Query(0, ge=0, le=5),
                      db=Depends(get_db)):
    return {"success": True, "interviewers": analytics.interviewer_directory(db, expertise, minRating)}
