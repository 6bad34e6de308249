from datetime import datetime

from backend import email_service
from backend.models import get_settings


def html_part(msg):
    return next(p for p in msg.get_payload() if p.get_content_type() == "text/html").get_payload(decode=True).decode()


def test_send_email_multipart(db, smtp):
    assert email_service.send_email(db, "x@example.com", "Hello", "plain body", "<p>html body</p>") is True
    msg = smtp.outbox[0]
    assert msg["To"] == "x@example.com"
    assert msg["Subject"] == "Hello"
    assert [p.get_content_type() for p in msg.get_payload()] == ["text/plain", "text/html"]


def test_send_email_failure_is_recorded(db, smtp):
    smtp.fail = True
    assert email_service.send_email(db, "x@example.com", "Hello", "t", "h") is False
    failure = db.email_failures.find_one({"to": "x@example.com"})
    assert failure["subject"] == "Hello"
    assert "connection refused" in failure["error"]


def test_disabled_notifications_skip_sending(db, smtp):
    get_settings(db)
    db.system_settings.update_one({"_id": "system"}, {"$set": {"enableEmailNotifications": False}})
    assert email_service.send_email(db, "x@example.com", "Hello", "t", "h") is False
    assert smtp.outbox == []
    assert db.email_failures.count_documents({}) == 0


def test_completion_email_limits_recommendations(db, smtp):
    recs = [f"Tip number {i}" for i in range(8)]
    email_service.send_interview_completion_email(db, "c@example.com", "Cara", "Python", 72, 5, 1500, recs)
    msg = smtp.outbox[0]
    assert msg["Subject"] == "Interview Completed: Python - Score: 72%"
    html = html_part(msg)
    assert "Tip number 4" in html
    assert "Tip number 5" not in html
    assert "25 min" in html


def test_reminder_email(db, smtp):
    email_service.send_interview_reminder_email(db, "c@example.com", "Cara", 9)
    assert "9 days" in html_part(smtp.outbox[0])


def test_invitation_email(db, smtp):
    email_service.send_schedule_invitation_email(
        db, "c@example.com", "Cara", "Ivan Interviewer", ["Python", "SQL"], datetime(2030, 1, 2, 15, 30), 45,
        meeting_link="https://meet.example.com/abc", notes="Bring a laptop")
    msg = smtp.outbox[0]
    assert msg["Subject"] == "Interview Scheduled: Python, SQL on 02 Jan 2030"
    html = html_part(msg)
    assert "Ivan Interviewer" in html
    assert "https://meet.example.com/abc" in html
    assert "Bring a laptop" in html


def test_invitation_escapes_markup(db, smtp):
    anchor = '<a href="https://evil.example/login">Reset your password</a>'
    email_service.send_schedule_invitation_email(
        db, "c@example.com", "<b>Cara</b>", "Ivan <script>", ["C++ & <Go>"], datetime(2030, 1, 2, 15, 30), 45,
        notes=anchor)
    html = html_part(smtp.outbox[0])
    assert anchor not in html
    assert "&lt;a href=&quot;https://evil.example/login&quot;&gt;" in html
    assert "&lt;b&gt;Cara&lt;/b&gt;" in html
    assert "<script>" not in html
    assert "C++ &amp; &lt;Go&gt;" in html


def test_completion_email_escapes_recommendations(db, smtp):
    email_service.send_interview_completion_email(
        db, "c@example.com", "Cara <i>", "Python", 50, 2, 600, ["Use <code>with</code> blocks"])
    html = html_part(smtp.outbox[0])
    assert "Use &lt;code&gt;with&lt;/code&gt; blocks" in html
    assert "Cara &lt;i&gt;" in html
