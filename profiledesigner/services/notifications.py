"""Email notifications for Cloud Library publishing.

Handles:
- Notifying authors when an administrator approves, rejects or otherwise
  changes the status of their submission
- Confirming to a user that their publish request was cancelled

Delivery is best effort. Failures are logged and never raised to callers.
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Any, Dict, List, Optional

import aiosmtplib
from jinja2 import Environment, StrictUndefined

from profiledesigner.core.approval.models import SubmittedProfile
from profiledesigner.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationEventType(str, Enum):
    """Events that trigger notifications."""
    SUBMISSION_APPROVED = "submission_approved"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_STATUS_CHANGED = "submission_status_changed"
    SUBMISSION_CANCELLED = "submission_cancelled"


EMAIL_TEMPLATES = {
    NotificationEventType.SUBMISSION_APPROVED: {
        "subject": "[Profile Designer] Profile Approved: {{ title }}",
        "body": """
Hello {{ recipient_name }},

Your profile has been approved and is now available in the Cloud Library.

Profile: {{ title }}
Namespace: {{ namespace }}
Version: {{ version }}
Decision: {{ change_summary }}
{% if approval_description %}Comments: {{ approval_description }}
{% endif %}
View it at: {{ profile_url }}

---
CESMII Profile Designer
        """,
    },
    NotificationEventType.SUBMISSION_REJECTED: {
        "subject": "[Profile Designer] Profile Rejected: {{ title }}",
        "body": """
Hello {{ recipient_name }},

Your profile submission to the Cloud Library has been rejected.

Profile: {{ title }}
Namespace: {{ namespace }}
Version: {{ version }}
Decision: {{ change_summary }}
Reason: {{ approval_description or "No reason provided" }}

Update the profile and publish it again at: {{ profile_url }}

---
CESMII Profile Designer
        """,
    },
    NotificationEventType.SUBMISSION_STATUS_CHANGED: {
        "subject": "[Profile Designer] Profile Status Changed: {{ title }}",
        "body": """
Hello {{ recipient_name }},

The status of your Cloud Library submission has changed.

Profile: {{ title }}
Namespace: {{ namespace }}
Version: {{ version }}
New Status: {{ change_summary }}
{% if approval_description %}Comments: {{ approval_description }}
{% endif %}
View it at: {{ profile_url }}

---
CESMII Profile Designer
        """,
    },
    NotificationEventType.SUBMISSION_CANCELLED: {
        "subject": "[Profile Designer] Publish Request Cancelled: {{ title }}",
        "body": """
Hello {{ recipient_name }},

Your request to publish this profile to the Cloud Library was cancelled.

Profile: {{ title }}
Namespace: {{ namespace }}
Version: {{ version }}

The profile remains available in Profile Designer: {{ profile_url }}

---
CESMII Profile Designer
        """,
    },
}


class NotificationDispatcher:
    """
    Sends templated email about Cloud Library submissions.
    """

    def __init__(self, settings: Settings):
        """
        Initialize the dispatcher.

        Args:
            settings: Application settings with SMTP configuration
        """
        self.settings = settings
        self._env = Environment(undefined=StrictUndefined, autoescape=False)

    async def notify_approved(self, submission: SubmittedProfile, change_summary: str, author) -> bool:
        """Tell the author their submission was approved."""
        return await self._notify(
            NotificationEventType.SUBMISSION_APPROVED, submission, author, change_summary
        )

    async def notify_rejected(self, submission: SubmittedProfile, change_summary: str, author) -> bool:
        """Tell the author their submission was rejected."""
        return await self._notify(
            NotificationEventType.SUBMISSION_REJECTED, submission, author, change_summary
        )

    async def notify_status_changed(self, submission: SubmittedProfile, change_summary: str, author) -> bool:
        """Tell the author the status of their submission changed."""
        return await self._notify(
            NotificationEventType.SUBMISSION_STATUS_CHANGED, submission, author, change_summary
        )

    async def notify_cancelled(self, submission: SubmittedProfile, requester) -> bool:
        """Confirm a cancelled publish request to the user who cancelled it."""
        return await self._notify(
            NotificationEventType.SUBMISSION_CANCELLED, submission, requester
        )

    async def _notify(
        self,
        event_type: NotificationEventType,
        submission: SubmittedProfile,
        recipient,
        change_summary: Optional[str] = None,
    ) -> bool:
        email = getattr(recipient, "email", None) if recipient else None
        if not email:
            logger.warning(
                f"No recipient email for {event_type.value} on profile {submission.profile_id}"
            )
            return False

        try:
            context = self._build_context(submission, recipient, change_summary)
            subject, body = self.render(event_type, context)
            return await self._deliver_email([email], subject, body)
        except Exception:
            logger.exception(f"Failed to send {event_type.value} email to {email}")
            return False

    def render(self, event_type: NotificationEventType, context: Dict[str, Any]) -> tuple[str, str]:
        """Render the subject and body for an event."""
        template = EMAIL_TEMPLATES[event_type]
        subject = self._env.from_string(template["subject"]).render(**context)
        body = self._env.from_string(template["body"]).render(**context)
        return subject.strip(), body.strip()

    async def _deliver_email(self, to_emails: List[str], subject: str, body: str) -> bool:
        """Deliver the email via SMTP."""
        if not self.settings.smtp_host:
            logger.warning("SMTP not configured, skipping email delivery")
            return False

        cc_emails = [e for e in self.settings.notification_admin_emails_list if e not in to_emails]

        msg = MIMEMultipart()
        msg["From"] = f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        msg["To"] = ", ".join(to_emails)
        if cc_emails:
            msg["Cc"] = ", ".join(cc_emails)
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        await aiosmtplib.send(
            msg,
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            username=self.settings.smtp_user,
            password=self.settings.smtp_password,
            start_tls=self.settings.smtp_use_tls,
        )
        logger.info(f"Sent '{subject}' to {', '.join(to_emails + cc_emails)}")
        return True

    def _build_context(
        self,
        submission: SubmittedProfile,
        recipient,
        change_summary: Optional[str],
    ) -> Dict[str, Any]:
        """Build template context for a submission notification."""
        return {
            "recipient_name": getattr(recipient, "display_name", None) or recipient.email,
            "title": submission.title or submission.namespace,
            "namespace": submission.namespace,
            "version": submission.version or "N/A",
            "change_summary": change_summary or "N/A",
            "approval_description": submission.approval_description,
            "profile_url": f"{self.settings.app_base_url.rstrip('/')}/profile/{submission.profile_id}",
        }
