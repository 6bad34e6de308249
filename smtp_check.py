# smtp_check.py
# Sends one test message through the backend mailer using the SMTP_* settings from .env.
# Usage: python smtp_check.py [recipient]
import sys

from backend import config
from backend.database import db
from backend.email_service import send_email

to = sys.argv[1] if len(sys.argv) > 1 else (config.SMTP_USER or config.FROM_EMAIL)

print("Connecting to", config.SMTP_HOST, config.SMTP_PORT, "as", config.SMTP_USER)
ok = send_email(
    db,
    to,
    "SMTP Test from local dev",
    "If you receive this, SMTP login and send worked.",
    "<p>If you receive this, SMTP login and send worked.</p>",
)
if ok:
    print("Send succeeded, check inbox for:", to)
else:
    print("Send failed, see the log above and the email_failures collection")
    sys.exit(1)
