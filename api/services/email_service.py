import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from typing import Optional
import logging

from db.repositories.settings_repository import SMTP_REQUIRED_KEYS, SettingsRepository

logger = logging.getLogger(__name__)


class EmailServiceException(Exception):
    def __init__(self, detail):
        super().__init__(detail)
        self.detail = detail

    def __str__(self):
        return str(self.detail)


class EmailService:
    """
    Sends alert emails over SMTP.
    Supports any SMTP server (Gmail, SendGrid, Mailgun, AWS SES, etc.)
    """

    def __init__(self, config: dict):
        """
        Initializes the EmailService with configuration.

        Args:
            config (dict): A dictionary containing configuration parameters.
                           Expected keys:
                           - 'SMTP_HOST': SMTP server hostname (e.g., smtp.gmail.com)
                           - 'SMTP_PORT': SMTP server port (587 for STARTTLS, 465 for SSL)
                           - 'SMTP_USER': SMTP username/email
                           - 'SMTP_PASSWORD': SMTP password or app password
                           - 'SENDER_EMAIL': The sender's email address
                           - 'SENDER_NAME': The sender's name
                           - 'SMTP_USE_TLS': Whether to use STARTTLS (default: "true")
        """
        required_keys = [*SMTP_REQUIRED_KEYS, "SENDER_NAME"]
        if not all(k in config for k in required_keys):
            raise ValueError(f"Config must contain: {', '.join(required_keys)}")

        self.smtp_host = config["SMTP_HOST"]
        self.smtp_port = int(config["SMTP_PORT"])
        self.smtp_user = config["SMTP_USER"]
        self.smtp_password = config["SMTP_PASSWORD"]
        self.sender_email = config["SENDER_EMAIL"]
        self.sender_name = config["SENDER_NAME"]
        self.use_tls = str(config.get("SMTP_USE_TLS") or "true").lower() == "true"

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.smtp_port == 465:
            return smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context)
        server = smtplib.SMTP(self.smtp_host, self.smtp_port)
        if self.use_tls:
            server.starttls(context=context)
        return server

    def send(
        self, to_email: str, subject: str, html_content: str, text_content: str
    ) -> str:
        """
        Sends one email with HTML and plain-text alternatives.

        Returns:
            str: The Message-ID of the sent message.

        Raises:
            EmailServiceException: If the message could not be delivered.
        """
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.sender_name} <{self.sender_email}>"
        message["To"] = to_email
        message_id = make_msgid(domain=self.sender_email.split("@")[-1])
        message["Message-ID"] = message_id

        # Plain text first so clients prefer the HTML part
        message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            with self._connect() as server:
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)
        except smtplib.SMTPAuthenticationError as e:
            raise EmailServiceException(f"SMTP authentication failed: {e}") from e
        except smtplib.SMTPException as e:
            raise EmailServiceException(f"SMTP error: {e}") from e
        except OSError as e:
            raise EmailServiceException(f"Failed to send email: {e}") from e

        logger.info(f"Email sent successfully to {to_email} ({message_id})")
        return message_id

    def test_connection(self) -> bool:
        """Log in to the SMTP server without sending anything."""
        try:
            with self._connect() as server:
                server.login(self.smtp_user, self.smtp_password)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email connection test failed: {e}")
            return False
        logger.info("Email connection test successful")
        return True


def init_email_service(settings_repo: SettingsRepository) -> Optional[EmailService]:
    """Build an EmailService from settings (env vars or database), or None if SMTP is not configured."""
    if not settings_repo.is_smtp_configured():
        logger.info("SMTP not configured, email alerts disabled")
        return None
    try:
        email_service = EmailService(settings_repo.get_smtp_config())
    except ValueError as e:
        logger.warning(f"Failed to initialize email service: {e}")
        return None
    logger.info("Email service initialized successfully")
    return email_service
