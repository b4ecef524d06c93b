"""Email delivery: message shapes, transports and the BoatMe email service"""
import random
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from . import templates
from .logger import log_error, log_info
from .models import Booking, BookingEmailData, UserData


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    template_type: str = "unknown"


@dataclass
class SendResult:
    success: bool
    error: Optional[str] = None


class SupabaseFunctionTransport:
    """Send through the backend's `send-email` edge function."""

    def __init__(self, base_url: str, api_key: str, function: str = "send-email",
                 timeout: float = 30.0, session=None):
        if not base_url:
            raise ValueError("SUPABASE_URL must be set to send email")
        self.url = f"{base_url.rstrip('/')}/functions/v1/{function}"
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, message: EmailMessage) -> SendResult:
        body = {
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
            "cc": message.cc,
            "bcc": message.bcc,
            "templateType": message.template_type,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key

        try:
            response = self.session.post(self.url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            return SendResult(False, f"request failed: {e}")

        if not response.ok:
            return SendResult(False, f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("success") is False:
            return SendResult(False, str(data.get("error") or "send-email reported failure"))
        return SendResult(True)


class LogTransport:
    """Dry-run transport: logs each message and reports success."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> SendResult:
        self.sent.append(message)
        log_info(f"[dry-run] email to {message.to}: {message.subject} ({message.template_type})")
        return SendResult(True)


class EmailService:
    def __init__(self, transport, admin_email: str = "admin@boatme.co.za",
                 site_url: str = "https://boatme.co.za", rng=None):
        self.transport = transport
        self.admin_email = admin_email
        self.site_url = site_url.rstrip("/")
        self.rng = rng or random.Random()

    def send_email(self, message: EmailMessage) -> SendResult:
        try:
            result = self.transport.send(message)
        except Exception as e:
            log_error(f"Email service error sending to {message.to}", e)
            return SendResult(False, str(e) or e.__class__.__name__)
        if not result.success:
            log_error(f"Email sending failed for {message.to}: {result.error}")
        return result

    def send_booking_reminder(self, booking: BookingEmailData) -> SendResult:
        t = templates.booking_reminder(booking, self.site_url)
        return self.send_email(EmailMessage(
            to=booking.guest_email,
            subject=t.subject,
            html=t.html,
            text=t.text,
            template_type="booking_reminder",
        ))

    def send_document_status_email(self, user: UserData, status: str,
                                   reason: Optional[str] = None) -> SendResult:
        t = templates.document_status(user, status, self.site_url, reason)
        return self.send_email(EmailMessage(
            to=user.email,
            subject=t.subject,
            html=t.html,
            text=t.text,
            bcc=[self.admin_email],
            template_type=f"document_{status}",
        ))

    def send_review_reminder(self, booking: Booking) -> SendResult:
        review_url = f"{self.site_url}/reviews/new/{booking.id}"
        # random subject line for A/B testing
        subject_line = self.rng.choice(templates.REVIEW_SUBJECT_LINES)
        t = templates.review_reminder(booking, review_url, subject_line)
        return self.send_email(EmailMessage(
            to=booking.guest_email,
            subject=t.subject,
            html=t.html,
            text=t.text,
            template_type="review_reminder",
        ))


def build_email_service(settings) -> EmailService:
    """EmailService for the given Settings; dry-run when no backend URL is set."""
    if settings.supabase_url:
        transport = SupabaseFunctionTransport(settings.supabase_url, settings.supabase_key)
    else:
        log_info("SUPABASE_URL not set; emails will be logged, not sent")
        transport = LogTransport()
    return EmailService(transport, admin_email=settings.admin_email, site_url=settings.site_url)
