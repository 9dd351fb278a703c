# app/services/email_service.py

import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

from app.core.config import settings

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


# Helper to get template
def get_template(template_name: str):
    return _env.get_template(template_name)


# Helper to send email via SMTP
def send_email_via_smtp(to_email: str, subject: str, html_content: str) -> bool:
    # Only HOST is required. User/Pass are optional (Mailpit and friends)
    if not settings.SMTP_HOST:
        logger.warning(f"SMTP host not configured. Skipping email to {to_email}")
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        logger.debug(f"Connecting to SMTP: {settings.SMTP_HOST}:{settings.SMTP_PORT}")

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.ehlo()

            # TLS on submission ports; local catchers on 1025 run plain
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        logger.info(f"Email sent to {to_email}: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render_and_send(template_name: str, to_email: str, subject: str, context: dict) -> bool:
    try:
        html_content = get_template(template_name).render(
            year=datetime.now().year,
            app_name=settings.EMAILS_FROM_NAME,
            **context,
        )
    except Exception as e:
        logger.error(f"Error preparing {template_name}: {e}")
        return False
    return send_email_via_smtp(to_email, subject, html_content)


# ---------------------------------------------------------
# 1. OTP (registration / resend)
# ---------------------------------------------------------
def send_otp_email(email: str, name: str, otp: str, resend: bool = False) -> bool:
    subject = "Your new verification code" if resend else "Verify your email"
    return _render_and_send("otp.html", email, subject, {
        "name": name,
        "otp": otp,
        "expires_minutes": settings.OTP_EXPIRE_MINUTES,
        "resend": resend,
    })


# ---------------------------------------------------------
# 2. WELCOME EMAIL
# ---------------------------------------------------------
def send_welcome_email(email: str, name: str) -> bool:
    return _render_and_send("welcome.html", email, f"Welcome to {settings.EMAILS_FROM_NAME}", {
        "name": name,
        "login_url": f"{settings.FRONTEND_URL}/login",
    })


# ---------------------------------------------------------
# 3. PASSWORD RESET CODE
# ---------------------------------------------------------
def send_password_reset_email(email: str, name: str, token: str) -> bool:
    return _render_and_send("password_reset.html", email, "Password reset code", {
        "name": name,
        "token": token,
        "expires_minutes": settings.RESET_TOKEN_EXPIRE_MINUTES,
        "reset_url": f"{settings.FRONTEND_URL}/reset-password?email={email}",
    })


# ---------------------------------------------------------
# 4. PASSWORD CHANGED NOTICE
# ---------------------------------------------------------
def send_password_changed_email(email: str, name: str) -> bool:
    return _render_and_send("password_changed.html", email, "Your password was changed", {
        "name": name,
        "changed_at": datetime.now().strftime("%d-%m-%Y %I:%M %p"),
    })


# ---------------------------------------------------------
# 5. ROLE CHANGE
# ---------------------------------------------------------
ROLE_LABELS = {
    "user": "User",
    "d_admin": "Department Admin",
    "admin": "Admin",
    "power": "Power Admin",
}


def send_role_change_email(email: str, name: str, old_role: str, new_role: str) -> bool:
    promoted = new_role != "user"
    subject = "You have been promoted" if promoted else "Your administrative role was removed"
    return _render_and_send("role_change.html", email, subject, {
        "name": name,
        "old_role": ROLE_LABELS.get(old_role, old_role),
        "new_role": ROLE_LABELS.get(new_role, new_role),
        "promoted": promoted,
        "login_url": f"{settings.FRONTEND_URL}/login",
    })
