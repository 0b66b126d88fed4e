import asyncio
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

from app.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending transactional emails over SMTP."""

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 1025,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Marketplace Seller Desk"
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Authenticates with STARTTLS only when SMTP credentials are configured,
        so a local relay or mail catcher works without them.

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.from_email:
            logger.warning("Email not configured. Sender address missing.")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                if self.smtp_user and self.smtp_password:
                    server.starttls()
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False

    def send_portal_access_email(
        self,
        to_email: str,
        vendor_name: str,
        temporary_password: str,
        portal_url: str,
    ) -> bool:
        """Send seller-portal credentials to a newly onboarded vendor."""
        subject = "Your Seller Portal Access"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>Welcome to the marketplace, {vendor_name}!</h2>
            <p>Your seller account has been created. Sign in to the seller portal with:</p>
            <p>
                <strong>Email:</strong> {to_email}<br>
                <strong>Temporary password:</strong> <code>{temporary_password}</code>
            </p>
            <p><a href="{portal_url}/login">{portal_url}/login</a></p>
            <p>You will be asked to choose a new password on first login.</p>
        </body>
        </html>
        """

        text_content = f"""
Welcome to the marketplace, {vendor_name}!

Your seller account has been created. Sign in to the seller portal with:

Email: {to_email}
Temporary password: {temporary_password}

{portal_url}/login

You will be asked to choose a new password on first login.
"""

        return self.send_email(to_email, subject, html_content, text_content)


def get_email_service() -> EmailService:
    """Get configured email service instance."""
    return EmailService(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME,
    )


class PortalAccessNotifier:
    """
    Delivery of portal access emails.

    Endpoints schedule notify_portal_access() as a FastAPI background task
    after their transaction commits. The SMTP call runs in a worker thread
    and any failure is logged, never raised.
    """

    def __init__(self, email_service: Optional[EmailService] = None, portal_url: Optional[str] = None):
        self.email_service = email_service or get_email_service()
        self.portal_url = portal_url or settings.PORTAL_URL

    async def notify_portal_access(self, to_email: str, vendor_name: str, temporary_password: str) -> None:
        try:
            sent = await asyncio.to_thread(
                self.email_service.send_portal_access_email,
                to_email,
                vendor_name,
                temporary_password,
                self.portal_url,
            )
            if not sent:
                logger.warning(f"Portal access email to {to_email} was not delivered")
        except Exception as e:
            logger.warning(f"Portal access email to {to_email} failed: {e}")


_notifier: Optional[PortalAccessNotifier] = None


def get_notifier() -> PortalAccessNotifier:
    """Get the process-wide notifier (FastAPI dependency)."""
    global _notifier
    if _notifier is None:
        _notifier = PortalAccessNotifier()
    return _notifier
