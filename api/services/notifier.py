from dataclasses import dataclass
from html import escape
from typing import Optional
from urllib.parse import quote
import logging
import os

from sqlalchemy.exc import SQLAlchemyError

from api.services.email_service import EmailService, EmailServiceException
from api.services.incident_tracker import IncidentOutcome, IncidentTransition
from api.services.prober import CheckResult
from db.base import utcnow
from db.models import CheckStatus, Monitor, MonitorCheck, Notification, NotificationType
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.notification_repository import NotificationRepository
from db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

EMAIL_SERVICE_NOT_CONFIGURED = "Email service not configured"

# subject prefix, status label, colour, icon
_TEMPLATES = {
    NotificationType.DOWN: ("🚨 Monitor DOWN", "DOWN", "#dc2626", "🔴"),
    NotificationType.UP: ("✅ Monitor UP", "UP", "#16a34a", "🟢"),
    NotificationType.SLOW: ("⚠️ Slow Response", "SLOW", "#ea580c", "🟡"),
    NotificationType.RESOLVED: ("✅ Incident Resolved", "RESOLVED", "#16a34a", "✅"),
}


@dataclass
class NotificationDetails:
    status: Optional[str] = None
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    incident_duration_minutes: Optional[int] = None


@dataclass
class EmailTemplate:
    subject: str
    html: str
    text: str


def _describe(notification_type: NotificationType, details: NotificationDetails) -> str:
    if notification_type == NotificationType.DOWN:
        cause = (
            f"The error was: {details.error_message}"
            if details.error_message
            else "This could be due to server issues, network problems, or maintenance."
        )
        return (
            "Your monitor detected that the website is currently down and not "
            f"responding to requests. {cause}"
        )
    if notification_type == NotificationType.UP:
        return "Your monitor is responding normally and the website is back online."
    if notification_type == NotificationType.SLOW:
        return (
            f"Your monitor detected that the website is responding slowly "
            f"({details.response_time_ms}ms). This might indicate performance "
            "issues or high server load."
        )
    return "The incident has been resolved and your monitor is working normally again."


def build_email_template(
    monitor_url: str, notification_type: NotificationType, details: NotificationDetails
) -> EmailTemplate:
    base_url = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
    prefix, status_text, status_color, icon = _TEMPLATES[notification_type]
    subject = f"{prefix}: {monitor_url}"
    description = _describe(notification_type, details)
    monitor_link = f"{base_url}/dashboard/monitors?url={quote(monitor_url, safe='')}"

    facts = [("URL", monitor_url), ("Status", status_text)]
    if details.response_time_ms is not None:
        facts.append(("Response Time", f"{details.response_time_ms}ms"))
    if details.error_message:
        facts.append(("Error", details.error_message))
    if details.incident_duration_minutes is not None:
        facts.append(("Incident Duration", f"{details.incident_duration_minutes} minutes"))

    fact_rows = "\n".join(
        f"<li><strong>{label}:</strong> {escape(str(value))}</li>" for label, value in facts
    )
    html = f"""
    <h2>{icon} Uptime Monitor Alert</h2>
    <p><span style="color: {status_color}; font-weight: bold;">{status_text}</span>
    &mdash; <a href="{escape(monitor_url)}">{escape(monitor_url)}</a></p>

    <h3>Details:</h3>
    <ul>
        {fact_rows}
    </ul>

    <h3>What happened?</h3>
    <p>{escape(description)}</p>

    <p>
        <a href="{base_url}/dashboard/monitors">View Dashboard</a> |
        <a href="{escape(monitor_link)}">View Monitor</a>
    </p>

    <hr>
    <p style="color: #666; font-size: 12px;">
        This is an automated message from the uptime monitoring service.
        Manage your alert preferences in <a href="{base_url}/dashboard/settings">account settings</a>.
    </p>
    """

    text_lines = [f"Uptime Monitor Alert - {subject}", "", "Monitor Details:"]
    text_lines += [f"- {label}: {value}" for label, value in facts]
    text_lines += [
        "",
        description,
        "",
        f"View your dashboard: {base_url}/dashboard/monitors",
        f"View this monitor: {monitor_link}",
        "",
        "---",
        "This is an automated message from the uptime monitoring service.",
        f"To manage your alert preferences, visit: {base_url}/dashboard/settings",
    ]
    return EmailTemplate(subject=subject, html=html, text="\n".join(text_lines))


def _is_slow(monitor: Monitor, status, response_time_ms: Optional[int]) -> bool:
    return (
        status == CheckStatus.UP
        and response_time_ms is not None
        and response_time_ms > monitor.slow_threshold_ms
    )


def select_notifications(
    monitor: Monitor,
    result: CheckResult,
    outcome: IncidentOutcome,
    previous_check: Optional[MonitorCheck] = None,
) -> list[tuple[NotificationType, NotificationDetails]]:
    """Decide which alerts a tick produces, honouring the monitor's alert settings."""
    if not monitor.alerts_enabled:
        return []

    events = []
    if outcome.transition == IncidentTransition.OPENED and monitor.alert_on_down:
        events.append(
            (
                NotificationType.DOWN,
                NotificationDetails(
                    status=result.status.value,
                    response_time_ms=result.response_time_ms,
                    error_message=result.error_message,
                ),
            )
        )
    elif outcome.transition == IncidentTransition.CLOSED and monitor.alert_on_up:
        events.append(
            (
                NotificationType.RESOLVED,
                NotificationDetails(
                    status=result.status.value,
                    response_time_ms=result.response_time_ms,
                    incident_duration_minutes=outcome.incident.duration_minutes
                    if outcome.incident is not None
                    else None,
                ),
            )
        )

    # Only alert when a monitor becomes slow, not on every slow check
    if monitor.alert_on_slow and _is_slow(monitor, result.status, result.response_time_ms):
        was_slow = previous_check is not None and _is_slow(
            monitor, previous_check.status, previous_check.response_time_ms
        )
        if not was_slow:
            events.append(
                (
                    NotificationType.SLOW,
                    NotificationDetails(
                        status=result.status.value,
                        response_time_ms=result.response_time_ms,
                    ),
                )
            )
    return events


class NotifierDispatch:
    def __init__(
        self,
        notification_repo: NotificationRepository,
        monitor_repo: MonitorRepository,
        user_repo: UserRepository,
        email_service: Optional[EmailService] = None,
    ):
        self.notification_repo = notification_repo
        self.monitor_repo = monitor_repo
        self.user_repo = user_repo
        self.email_service = email_service

    def resolve_recipient(self, monitor: Monitor) -> Optional[str]:
        if monitor.alert_email:
            return monitor.alert_email
        owner = self.user_repo.get_user_by_id(monitor.user_id)
        return owner.email if owner else None

    def notify(
        self,
        monitor_id: int,
        notification_type: NotificationType,
        details: Optional[NotificationDetails] = None,
    ) -> bool:
        """
        Record and deliver one notification.

        Returns True only if the email was handed to the SMTP server. The
        notification row ends up SENT or FAILED; nothing is retried here.
        """
        details = details or NotificationDetails()
        try:
            monitor = self.monitor_repo.get(monitor_id)
            if not monitor:
                logger.error(f"Monitor {monitor_id} not found, dropping {notification_type.value} notification")
                return False

            recipient = self.resolve_recipient(monitor)
            if not recipient:
                logger.warning(f"No alert recipient for monitor {monitor_id}, skipping notification")
                return False

            template = build_email_template(monitor.url, notification_type, details)
            notification = self.notification_repo.create(
                Notification(
                    monitor_id=monitor_id,
                    type=notification_type,
                    email=recipient,
                    subject=template.subject,
                    message=template.text,
                )
            )
        except SQLAlchemyError as e:
            self.notification_repo.rollback()
            logger.error(f"Failed to create notification for monitor {monitor_id}: {e}")
            return False

        error_message = None
        message_id = None
        if self.email_service is None:
            error_message = EMAIL_SERVICE_NOT_CONFIGURED
            logger.warning(f"Email service not configured, notification {notification.id} not sent")
        else:
            try:
                message_id = self.email_service.send(
                    to_email=recipient,
                    subject=template.subject,
                    html_content=template.html,
                    text_content=template.text,
                )
            except EmailServiceException as e:
                error_message = str(e)
                logger.error(f"Failed to send email notification {notification.id} for monitor {monitor_id}: {e}")

        try:
            if error_message is None:
                self.notification_repo.mark_sent(notification, utcnow())
            else:
                self.notification_repo.mark_failed(notification, error_message)
        except SQLAlchemyError as e:
            self.notification_repo.rollback()
            logger.error(f"Failed to update notification status for {notification.id}: {e}")

        if error_message is None:
            logger.info(
                f"Email notification sent: notification={notification.id} monitor={monitor_id} "
                f"type={notification_type.value} to={recipient} message_id={message_id}"
            )
            return True
        return False
