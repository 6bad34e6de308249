import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List

from backend import config
from backend.models import get_settings

logger = logging.getLogger(__name__)


def notifications_enabled(db) -> bool:
    return bool(get_settings(db).get("enableEmailNotifications", True))


# ---------------- Robust email sender ----------------
def send_email(db, to_email: str, subject: str, text: str, html: str) -> bool:
    """Send a multipart plain/HTML message. Never raises; failures are logged and recorded."""
    if not notifications_enabled(db):
        logger.info("Email notifications disabled, skipping '%s' to %s", subject, to_email)
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["From"] = config.FROM_EMAIL
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=config.SMTP_TIMEOUT_SECONDS) as smtp:
            smtp.ehlo()
            try:
                smtp.starttls()
                smtp.ehlo()
            except smtplib.SMTPNotSupportedError:
                pass

            if config.SMTP_USER and config.SMTP_PASS:
                smtp.login(config.SMTP_USER, config.SMTP_PASS)

            smtp.send_message(msg)
        logger.info("Email '%s' sent to %s", subject, to_email)
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s %s", to_email, type(e).__name__, e)
        db.email_failures.insert_one({
            "to": to_email,
            "subject": subject,
            "error": str(e),
            "when": datetime.utcnow(),
        })
        return False


def _wrap(title: str, subtitle: str, body: str, accent: str = "#6366f1") -> str:
    return f"""\
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; background-color: #f4f4f9;">
    <div style="max-width: 600px; margin: 20px auto; background-color: #ffffff; border-radius: 12px; overflow: hidden; box-shadow: 0 6px 20px rgba(0, 0, 0, 0.1);">
      <div style="background-color: {accent}; color: white; padding: 30px; text-align: center;">
        <h1 style="margin: 0; font-size: 26px;">{title}</h1>
        <p style="margin: 5px 0 0; font-size: 14px;">{subtitle}</p>
      </div>
      <div style="padding: 30px;">
{body}
      </div>
      <div style="background-color: #f7f7f7; padding: 15px; text-align: center; border-top: 1px solid #e0e0e0;">
        <p style="margin: 0; font-size: 12px; color: #9ca3af;">This is an automated message from {config.SITE_NAME}</p>
      </div>
    </div>
  </body>
</html>
"""


def _button(href: str, label: str, color: str) -> str:
    return (
        f'<p style="text-align:center; margin: 30px 0;"><a href="{escape(href)}" style="background-color: {color}; '
        f'color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; font-weight: bold;">{label}</a></p>'
    )


# ---------------- Messages ----------------
def send_interview_completion_email(db, to_email: str, user_name: str, skill: str, score: float,
                                    total_questions: int, duration_seconds: int,
                                    recommendations: List[str]) -> bool:
    subject = f"Interview Completed: {skill} - Score: {score}%"
    dashboard = f"{config.APP_URL}/dashboard"
    recs = "".join(
        f'<div style="margin: 10px 0; padding: 10px; background: #e8f5e8; border-left: 4px solid #4CAF50;">{escape(r)}</div>'
        for r in recommendations[:5]
    )
    recs_block = f"<h3>AI Recommendations for Improvement:</h3>{recs}" if recs else ""
    body = f"""\
        <p>Hi {escape(user_name)},</p>
        <p>You have successfully completed your mock interview session. Here are your results:</p>
        <p style="font-size: 24px; font-weight: bold; color: #4CAF50; text-align: center;">Overall Score: {score}%</p>
        <p><strong>{total_questions}</strong> Questions Answered &middot;
           <strong>{round(duration_seconds / 60)} min</strong> Duration &middot;
           <strong>{escape(skill)}</strong> Skill Focus</p>
        {recs_block}
        <p>Keep practicing to improve your skills! You can start a new interview anytime from your dashboard.</p>
        {_button(dashboard, "View Full Analytics", "#667eea")}"""
    text = f"Interview Completed: {skill} - Score: {score}%. View your results at {dashboard}"
    html = _wrap("Interview Completed!", f"Congratulations on completing your {escape(skill)} interview", body, "#667eea")
    return send_email(db, to_email, subject, text, html)


def send_interview_reminder_email(db, to_email: str, user_name: str, days_since_last_interview: int) -> bool:
    subject = "Time for another mock interview!"
    link = f"{config.APP_URL}/interview"
    body = f"""\
        <p>Hi {escape(user_name)},</p>
        <p>Consistent practice is key to interview success! It's been {days_since_last_interview} days since your last mock interview.</p>
        <p>Regular practice helps you:</p>
        <ul>
          <li>Build confidence in your responses</li>
          <li>Identify areas for improvement</li>
          <li>Track your progress over time</li>
          <li>Stay sharp with current technologies</li>
        </ul>
        {_button(link, "Start New Interview", "#f5576c")}
        <p>Remember: Every expert was once a beginner. Keep pushing forward!</p>"""
    text = (f"It's been {days_since_last_interview} days since your last mock interview. "
            f"Start practicing again at {link}")
    html = _wrap("Interview Reminder", f"It's been {days_since_last_interview} days since your last practice session",
                 body, "#f5576c")
    return send_email(db, to_email, subject, text, html)


def send_schedule_invitation_email(db, to_email: str, candidate_name: str, interviewer_name: str,
                                   skills: List[str], scheduled_at: datetime, duration: int,
                                   meeting_link: str = None, notes: str = "") -> bool:
    when = scheduled_at.strftime("%A, %d %B %Y at %H:%M UTC")
    subject = f"Interview Scheduled: {', '.join(skills)} on {scheduled_at.strftime('%d %b %Y')}"
    link_block = _button(meeting_link, "Join Interview", "#ec4899") if meeting_link else ""
    notes_block = f"<p><strong>Notes:</strong> {escape(notes)}</p>" if notes else ""
    body = f"""\
        <p>Hello {escape(candidate_name)},</p>
        <p>{escape(interviewer_name)} has scheduled an interview with you.</p>
        <div style="background-color: #eef2ff; border-left: 5px solid #6366f1; padding: 15px 20px; margin-bottom: 20px; border-radius: 8px;">
          <p style="margin: 0;"><strong>When:</strong> {when}</p>
          <p style="margin: 0;"><strong>Duration:</strong> {duration} minutes</p>
          <p style="margin: 0;"><strong>Skills:</strong> {escape(', '.join(skills))}</p>
        </div>
        {notes_block}
        {link_block}"""
    text = (f"Hello {candidate_name},\n\n{interviewer_name} has scheduled a {duration} minute interview "
            f"covering {', '.join(skills)} on {when}.\n"
            + (f"\nJoin here: {meeting_link}\n" if meeting_link else "")
            + (f"\nNotes: {notes}\n" if notes else ""))
    html = _wrap("Interview Invitation", when, body)
    return send_email(db, to_email, subject, text, html)
