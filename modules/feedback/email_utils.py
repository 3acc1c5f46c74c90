# modules/feedback/email_utils.py

import smtplib
from email.mime.text import MIMEText
from flask import current_app


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = int(current_app.config.get("SMTP_PORT") or 587)
    user = current_app.config.get("SMTP_USER")
    password = current_app.config.get("SMTP_PASSWORD")
    sender = current_app.config.get("SMTP_FROM") or user or "no-reply@hermitcove.app"

    # Dev fallback → log only
    if not host or not user or not password:
        current_app.logger.warning(
            "[DEV EMAIL] To: %s\nSubject: %s\n%s", to_email, subject, body
        )
        return

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email

    with smtplib.SMTP(host, port, timeout=10) as smtp:
        smtp.starttls()
        smtp.login(user, password)
        smtp.sendmail(sender, [to_email], msg.as_string())


def send_feedback_email(message: str, user_agent: str = None):
    to_email = current_app.config.get("FEEDBACK_EMAIL")
    if not to_email:
        current_app.logger.info("FEEDBACK_EMAIL not set; feedback stored without notification.")
        return
    subject = "Hermit Cove - New Feedback"
    body = (
        "New feedback received from Hermit Cove:\n\n"
        f"{message}\n\n"
        "---\n"
        f"User agent: {user_agent or 'unknown'}"
    )
    send_email(to_email, subject, body)
