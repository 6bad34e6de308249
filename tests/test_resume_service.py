import io

import pytest
from PyPDF2 import PdfWriter

from backend import config, resume_service
from backend.resume_service import ResumeError


def blank_pdf():
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def test_clean_text_collapses_whitespace_and_drops_non_printables():
    assert resume_service.clean_text("  Hello\n\n\tWorld• café  ") == "Hello World caf"


def test_extract_skills_word_boundaries():
    text = "Built services in JavaScript, Node.js, C++ and Go. Deployed with Kubernetes on AWS; CI/CD via Jenkins."
    skills = resume_service.extract_skills(text)
    for expected in ("javascript", "c++", "go", "kubernetes", "aws", "ci/cd", "jenkins"):
        assert expected in skills
    assert "java" not in skills


def test_extract_skills_punctuation_free_variant():
    assert "asp.net" in resume_service.extract_skills("Experienced with ASPNET MVC")


def test_validate_file():
    assert resume_service.validate_file("application/pdf", 10) == []
    assert len(resume_service.validate_file("image/png", config.MAX_RESUME_BYTES + 1)) == 2
    assert resume_service.validate_file("application/pdf", 0) == ["No file provided"]


def test_extract_text_from_blank_pdf():
    assert resume_service.extract_text(blank_pdf(), "application/pdf") == ""


def test_extract_text_from_corrupt_pdf():
    with pytest.raises(ResumeError):
        resume_service.extract_text(b"definitely not a pdf", "application/pdf")


def test_save_and_delete_resume(upload_dir):
    resume = resume_service.save_resume(blank_pdf(), "Me.PDF", "application/pdf")
    assert resume["filename"].endswith(".pdf")
    assert resume["url"] == f"/uploads/{resume['filename']}"
    assert resume["originalName"] == "Me.PDF"
    assert (upload_dir / resume["filename"]).exists()

    assert resume_service.delete_resume_file(resume["path"]) is True
    assert resume_service.delete_resume_file(resume["path"]) is False


def test_save_resume_rejects_invalid():
    with pytest.raises(ResumeError):
        resume_service.save_resume(b"", "cv.pdf", "application/pdf")
