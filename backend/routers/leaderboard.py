from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend import analytics
from backend.database import get_db

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("")
def leaderboard(timeframe: str = Query("all-time", pattern="^(week|month|all-time)$"),
                skill: Optional[str] = None, db=Depends(get_db)):
    return analytics.leaderboard(db, timeframe, skill)
