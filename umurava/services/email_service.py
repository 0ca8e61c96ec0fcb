"""
Email service using fastapi-mail with Gmail SMTP.

Gmail setup steps (do this once):
  1. Enable 2-Factor Authentication on your Gmail account
  2. Go to: Google Account → Security → App Passwords
  3. Create an app password for "Mail"
  4. Use that 16-character password as MAIL_PASSWORD in your .env
     (NOT your real Gmail password)

fastapi-mail 1.6.1 changes vs older versions:
  - ConnectionConfig uses MAIL_STARTTLS=True, MAIL_SSL_TLS=False for port 587
  - MAIL_SSL_TLS=True, MAIL_STARTTLS=False for port 465
"""
import logging
from typing import Awaitable, Callable

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from umurava.config import settings

logger = logging.getLogger(__name__)

OTPMailer = Callable[[str, str], Awaitable[None]]

# Build connection config once at module level — don't rebuild on every request
mail_config = ConnectionConfig(
    MAIL_USERNAME=settings.mail_username,
    MAIL_PASSWORD=settings.mail_password,
    MAIL_FROM=settings.mail_from,
    MAIL_FROM_NAME=settings.mail_from_name,
    MAIL_PORT=settings.mail_port,
    MAIL_SERVER=settings.mail_server,
    MAIL_STARTTLS=settings.mail_port == 587,    # STARTTLS on 587
    MAIL_SSL_TLS=settings.mail_port == 465,     # implicit TLS on 465
    USE_CREDENTIALS=bool(settings.mail_username),
    VALIDATE_CERTS=True,
)

fast_mail = FastMail(mail_config)


def _otp_html(otp: str) -> str:
    return f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <h2 style="color: #007bff;">Your OTP Code</h2>
        <p>Hello,</p>
        <p>Your OTP for logging into the platform is:</p>
        <h1 style="color: #007bff; text-align: center;">{otp}</h1>
        <p>Please use this code within the next {settings.otp_expire_minutes} minutes.
        Do not share this code with anyone for security reasons.</p>
        <hr style="border: none; border-top: 1px solid #ddd;" />
        <p style="font-size: 12px; color: #777;">If you did not request this email,
        please ignore it or contact support immediately.</p>
        </div>
    """


async def send_otp_email(email_to: str, otp: str) -> None:
    """
    Send the login OTP. Awaited inline by the login route (not a background
    task); a failure here fails the login.

    Args:
        email_to: recipient email address
        otp: the raw 6-digit OTP string (never stored raw in DB)
    """
    message = MessageSchema(
        subject="Your OTP for Multi-Factor Authentication",
        recipients=[email_to],
        body=_otp_html(otp),
        subtype=MessageType.html,
    )

    await fast_mail.send_message(message)
    logger.info("OTP email sent")


def get_mailer() -> OTPMailer:
    """Dependency hook so tests (or another transport) can swap the sender."""
    return send_otp_email
