import logging

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient

from backend.config import DB_NAME, MONGO_URI

logger = logging.getLogger(__name__)

# Connect to MongoDB (synchronous pymongo; the client connects lazily)
mongo_client = MongoClient(MONGO_URI)
db = mongo_client[DB_NAME]


def get_db():
    """Dependency that provides the database handle."""
    return db


def new_id() -> str:
    return str(ObjectId())


def ensure_indexes(database):
    database.users.create_index("email", unique=True)
    database.interview_sessions.create_index([("candidate", ASCENDING), ("createdAt", DESCENDING)])
    database.interview_sessions.create_index("status")
    database.interview_sessions.create_index("skills")
    database.achievements.create_index([("userId", ASCENDING), ("badgeId", ASCENDING)], unique=True)
    database.skills.create_index("name", unique=True)
    database.skills.create_index([("category", ASCENDING), ("isActive", ASCENDING)])
    database.interview_guides.create_index([("domain", ASCENDING), ("technology", ASCENDING)])
    database.interview_guides.create_index([("isPublished", ASCENDING), ("publishedDate", DESCENDING)])
    database.scheduled_interviews.create_index([("userId", ASCENDING), ("scheduledAt", DESCENDING)])
    database.scheduled_interviews.create_index([("interviewerId", ASCENDING), ("scheduledAt", DESCENDING)])
    database.interviewer_configurations.create_index("userId", unique=True)
    logger.info("MongoDB indexes ensured on %s", database.name)
