import os

from dotenv import load_dotenv
load_dotenv()

# ---------------- CONFIG ----------------
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "mock_interview")

JWT_SECRET = os.getenv("JWT_SECRET", "change_this_secret_in_prod")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", 1025))
SMTP_USER = os.getenv("SMTP_USER", "") or None
SMTP_PASS = os.getenv("SMTP_PASS", "") or None
FROM_EMAIL = os.getenv("FROM_EMAIL", SMTP_USER or "no-reply@mockinterview.local")
SMTP_TIMEOUT_SECONDS = int(os.getenv("SMTP_TIMEOUT_SECONDS", 15))

APP_URL = os.getenv("APP_URL", "http://localhost:3000")
SITE_NAME = os.getenv("SITE_NAME", "Mock Interview Platform")

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_API_URL = os.getenv(
    "GEMINI_API_URL",
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent",
)
AI_TIMEOUT_SECONDS = int(os.getenv("AI_TIMEOUT_SECONDS", 30))

# Resume uploads
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
MAX_RESUME_BYTES = int(os.getenv("MAX_RESUME_BYTES", 5 * 1024 * 1024))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# ----------------------------------------


def check_settings():
    """Refuse to serve requests with the placeholder signing secret."""
    if JWT_SECRET == "change_this_secret_in_prod":
        raise RuntimeError("SECURITY ERROR: Please change JWT_SECRET in your .env file before running the server.")
