import logging
import smtplib
from email.message import EmailMessage
from fastapi import Depends, HTTPException, status

from moviemonday.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Simple SMTP-based email sender."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _get_config(self) -> dict:
        settings = self.settings
        if not settings.SMTP_HOST or not settings.EMAIL_FROM:
            logger.error("SMTP_HOST and EMAIL_FROM must be configured for email sending")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Email service is not configured",
            )

        return {
            "host": settings.SMTP_HOST,
            "port": settings.SMTP_PORT,
            "username": settings.SMTP_USERNAME,
            "password": settings.SMTP_PASSWORD,
            "from_email": settings.EMAIL_FROM,
            "use_tls": settings.SMTP_USE_TLS,
        }

    def build_link(self, path: str) -> str:
        return f"{self.settings.FRONTEND_URL.rstrip('/')}/{path.lstrip('/')}"

    def send_verification_email(self, recipient: str, username: str, token: str) -> None:
        """Send the email-verification link for a new account."""
        link = self.build_link(f"verify-email/{token}")
        subject = "Verify your Movie Monday account"
        body = (
            f"Hi {username},\n\n"
            "Thanks for signing up for Movie Monday.\n"
            "Please confirm your email address by opening the link below:\n\n"
            f"{link}\n\n"
            f"The link expires in {self.settings.VERIFICATION_TOKEN_TTL_HOURS} hours.\n\n"
            "The Movie Monday Team"
        )
        self._send_email(recipient, subject, body)

    def send_password_reset_email(self, recipient: str, token: str) -> None:
        """Send password reset instructions to the specified recipient."""
        link = self.build_link(f"reset-password/{token}")
        subject = "Reset your Movie Monday password"
        body = (
            "Hi there,\n\n"
            "We received a request to reset the password for your Movie Monday account.\n"
            "If you made this request, click the link below to choose a new password:\n\n"
            f"{link}\n\n"
            f"The link expires in {self.settings.RESET_TOKEN_TTL_MINUTES} minutes. "
            "If you did not request a password reset, you can safely ignore this email.\n\n"
            "The Movie Monday Team"
        )
        self._send_email(recipient, subject, body)

    def _send_email(self, recipient: str, subject: str, body: str) -> None:
        config = self._get_config()

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = config["from_email"]
        message["To"] = recipient
        message.set_content(body)

        try:
            with smtplib.SMTP(config["host"], config["port"]) as server:
                server.ehlo()
                if config["use_tls"]:
                    server.starttls()
                    server.ehlo()
                if config["username"] and config["password"]:
                    server.login(config["username"], config["password"])
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - network failures are runtime concerns
            logger.exception("Failed to send email via SMTP: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unable to send email at this time",
            )


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)
