import io
import logging
import os
import re
import uuid
from datetime import datetime
from typing import List

import PyPDF2
from PyPDF2.errors import PdfReadError

from backend import config

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}

WORD_PLACEHOLDER = "Word document text extraction not implemented yet. Please use PDF format."

COMMON_SKILLS = [
    # languages
    "javascript", "python", "java", "c++", "c#", "php", "ruby", "go", "rust", "swift",
    "kotlin", "scala", "typescript", "html", "css", "sql",
    # frameworks
    "react", "angular", "vue", "nodejs", "express", "django", "flask", "spring", "laravel",
    "rails", "asp.net", "jquery", "bootstrap", "tailwind",
    # databases
    "mongodb", "mysql", "postgresql", "redis", "elasticsearch", "oracle", "sqlite",
    # tools
    "git", "docker", "kubernetes", "aws", "azure", "gcp", "jenkins", "terraform",
    "nginx", "apache", "linux", "windows", "macos",
    # methodologies
    "agile", "scrum", "devops", "ci/cd", "tdd", "microservices", "rest", "graphql",
]


class ResumeError(ValueError):
    pass


def validate_file(content_type: str, size: int) -> List[str]:
    errors = []
    if content_type not in ALLOWED_TYPES:
        errors.append("Invalid file type. Only PDF and Word documents are allowed.")
    if size > config.MAX_RESUME_BYTES:
        errors.append(f"File size too large. Maximum size is {config.MAX_RESUME_BYTES // (1024 * 1024)}MB.")
    if size == 0:
        errors.append("No file provided")
    return errors


def clean_text(text: str) -> str:
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"[^\x20-\x7E\n]", "", text)
    return text.strip()


def extract_text_from_pdf(pdf_file: bytes) -> str:
    pdf_reader = PyPDF2.PdfReader(io.BytesIO(pdf_file))
    text = ""
    for page in pdf_reader.pages:
        text += (page.extract_text() or "") + "\n"
    return text


def extract_text(file_content: bytes, content_type: str) -> str:
    if content_type == "application/pdf":
        try:
            return clean_text(extract_text_from_pdf(file_content))
        except PdfReadError as e:
            logger.warning("Could not read PDF resume: %s", e)
            raise ResumeError("Failed to extract text from resume") from e
    if content_type in ALLOWED_TYPES:
        return WORD_PLACEHOLDER
    raise ResumeError("Unsupported file format")


def extract_skills(text: str) -> List[str]:
    """Keyword match against COMMON_SKILLS, including punctuation-free variants."""
    text_lower = text.lower()
    found = []
    for skill in COMMON_SKILLS:
        variations = {
            skill,
            re.sub(r"[.\-]", "", skill),
            re.sub(r"js$", "javascript", skill),
            re.sub(r"sql$", " sql", skill),
        }
        for variation in variations:
            pattern = r"(?<![\w])" + re.escape(variation) + r"(?![\w])"
            if re.search(pattern, text_lower):
                found.append(skill)
                break
    return found


def save_resume(file_content: bytes, filename: str, content_type: str) -> dict:
    """Validate, persist and parse an uploaded resume. Returns the profile.resume sub-document."""
    errors = validate_file(content_type, len(file_content))
    if errors:
        raise ResumeError(", ".join(errors))

    text_content = extract_text(file_content, content_type)
    extension = os.path.splitext(filename or "")[1].lower() or ALLOWED_TYPES[content_type]
    stored_name = f"{int(datetime.utcnow().timestamp() * 1000)}-{uuid.uuid4().hex[:12]}{extension}"

    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    path = os.path.join(config.UPLOAD_DIR, stored_name)
    with open(path, "wb") as fh:
        fh.write(file_content)
    logger.info("Stored resume %s (%d bytes)", stored_name, len(file_content))

    return {
        "filename": stored_name,
        "originalName": filename,
        "path": path,
        "url": f"/uploads/{stored_name}",
        "size": len(file_content),
        "mimeType": content_type,
        "textContent": text_content,
        "extractedSkills": extract_skills(text_content),
        "uploadedAt": datetime.utcnow(),
    }


def delete_resume_file(path: str) -> bool:
    try:
        os.remove(path)
        return True
    except OSError as e:
        logger.warning("Error deleting resume file %s: %s", path, e)
        return False
