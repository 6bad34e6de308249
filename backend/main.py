import logging
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from backend.config import CORS_ORIGINS, LOG_LEVEL, check_settings
from backend.database import db, ensure_indexes
from backend.routers import (admin, auth, guides, interviewer, interviewers, interviews, leaderboard, schedule, skills,
                             users)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("backend")

app = FastAPI(title="Mock Interview Platform Backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# ---------------- Startup ----------------
@app.on_event("startup")
def startup():
    check_settings()
    ensure_indexes(db)
    logger.info("Backend started")


# ---------------- Middleware & errors ----------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code,
                (time.perf_counter() - started) * 1000)
    return response


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), "Record")
    return JSONResponse(status_code=400, content={"detail": f"{field} already exists"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ---------------- Routers ----------------
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(interviews.router)
app.include_router(leaderboard.router)
app.include_router(guides.router)
app.include_router(guides.admin_router)
app.include_router(skills.router)
app.include_router(skills.admin_router)
app.include_router(schedule.router)
app.include_router(interviewer.router)
app.include_router(interviewers.router)
app.include_router(admin.router)


# ---------------- Root ----------------
@app.get("/")
def root():
    return {"ok": True, "time": datetime.utcnow().isoformat()}


# ---------------- Launch Server ----------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
