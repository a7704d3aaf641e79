import html as html_lib
import smtplib
from email.message import EmailMessage
from core.config import settings
from utils.logger import logger


class Mailer:
    """Sends transactional mail over SMTP (STARTTLS)."""

    def __init__(self, host: str = None, port: int = None, user: str = None, password: str = None):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.EMAIL_USER
        self.password = password if password is not None else settings.EMAIL_PASS

    def send(self, to: str, subject: str, html: str) -> None:
        """Send one HTML message. Raises smtplib.SMTPException / OSError on failure."""
        if not self.user:
            logger.warning(f"SMTP credentials not configured - not sending '{subject}'")
            return

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f'"{settings.EMAIL_FROM_NAME}" <{self.user}>'
        msg["To"] = to
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, int(self.port), timeout=15) as client:
            client.starttls()
            client.login(self.user, self.password)
            client.send_message(msg)
        logger.info(f"Email sent: '{subject}'")


def password_reset_url(token: str) -> str:
    return f"{settings.CLIENT_URL.rstrip('/')}/reset-password/{token}"


def send_password_reset_email(mailer: Mailer, to: str, full_name: str, token: str) -> None:
    reset_url = password_reset_url(token)
    html = f"""
    <h2>Password reset</h2>
    <p>Hi {html_lib.escape(full_name or "")},</p>
    <p>We received a request to reset your {settings.EMAIL_FROM_NAME} password.
    The link below is valid for {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.</p>
    <p><a href="{reset_url}">Reset your password</a></p>
    <p>If you did not ask for this, you can ignore this email.</p>
    """
    mailer.send(to, "Password Reset Request", html)
