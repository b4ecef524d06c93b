"""HTML/text bodies for the scheduled emails"""
from dataclasses import dataclass
from html import escape
from typing import Optional

from .models import Booking, BookingEmailData, UserData

BRAND_COLOR = "#0ea5e9"

STATUS_COLORS = {
    "approved": "#10b981",
    "rejected": "#ef4444",
    "pending": "#f59e0b",
}

STATUS_TEXT = {
    "approved": "Your documents have been approved! ✅",
    "rejected": "Your documents require attention ❌",
    "pending": "Document verification reminder ⏰",
}

REVIEW_SUBJECT_LINES = [
    "How was your experience? ⭐ Tell us in 1 minute",
    "Share your adventure story! ⭐ Quick review needed",
    "Help others discover amazing experiences ⭐",
    "Your feedback matters! ⭐ 1-minute review",
    "Rate your recent {item_type} experience ⭐",
]


@dataclass
class EmailTemplate:
    subject: str
    html: str
    text: str


def _button(url: str, label: str, color: str = BRAND_COLOR) -> str:
    return f"""
    <div style="text-align: center; margin: 30px 0;">
        <a href="{escape(url)}"
           style="background: {color}; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">
            {label}
        </a>
    </div>
    """


def _wrap(body: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="text-align: center; margin-bottom: 30px;">
            <h1 style="color: {BRAND_COLOR}; margin: 0;">BoatMe.co.za</h1>
        </div>
        {body}
    </div>
    """


def booking_reminder(booking: BookingEmailData, site_url: str) -> EmailTemplate:
    rows = "".join(
        f"<tr><td><strong>{label}:</strong></td><td>{escape(str(value))}</td></tr>"
        for label, value in (
            ("Boat", booking.boat_name),
            ("Start Date", booking.start_date),
            ("Location", booking.location),
            ("Booking ID", booking.booking_id),
        )
    )
    body = f"""
        <h2 style="color: #334155;">Your Adventure Starts Tomorrow! ⛵</h2>
        <p style="color: #475569;">Hi {escape(booking.guest_name)},</p>
        <p style="color: #475569;">Just a friendly reminder that your booking for <strong>{escape(booking.boat_name)}</strong> starts tomorrow!</p>
        <div style="background: #f1f5f9; padding: 20px; border-radius: 8px; margin: 20px 0;">
            <h3 style="color: #334155; margin-top: 0;">Reminder Details:</h3>
            <table style="width: 100%; color: #475569;">{rows}</table>
        </div>
        <div style="background: #dbeafe; padding: 15px; border-radius: 6px; margin: 20px 0;">
            <p style="color: #1d4ed8; margin: 0;"><strong>Don't forget:</strong> Bring valid ID, sunscreen, and any personal items you'll need for your trip!</p>
        </div>
        {_button(f"{site_url}/dashboard", "View Booking Details")}
    """
    return EmailTemplate(
        subject="Reminder: Your boat booking starts tomorrow! 🚤",
        html=_wrap(body),
        text=(
            f"Reminder: Your booking for {booking.boat_name} starts tomorrow "
            f"({booking.start_date}). Booking ID: {booking.booking_id}"
        ),
    )


def document_status(user: UserData, status: str, site_url: str,
                    reason: Optional[str] = None) -> EmailTemplate:
    if status not in STATUS_TEXT:
        raise ValueError(f"Unknown document status: {status!r}")
    heading = STATUS_TEXT[status]
    name = escape(user.name)

    if status == "approved":
        detail = (
            '<p style="color: #475569;">Congratulations! Your documents have been verified and approved. '
            'You can now start listing your boats and accepting bookings.</p>'
            + _button(f"{site_url}/owner/boats", "Create Your First Listing", STATUS_COLORS[status])
        )
        text = f"Hi {user.name}, your documents have been approved. Visit {site_url}/owner/boats to create a listing."
    elif status == "rejected":
        detail = (
            '<p style="color: #475569;">We\'ve reviewed your submitted documents and they require some '
            'updates before we can approve them.</p>'
        )
        if reason:
            detail += (
                '<div style="background: #fef2f2; padding: 15px; border-radius: 6px; margin: 20px 0;">'
                f'<p style="color: #dc2626; margin: 0;"><strong>Reason:</strong> {escape(reason)}</p></div>'
            )
        detail += _button(f"{site_url}/owner/documents", "Update Documents", STATUS_COLORS[status])
        text = f"Hi {user.name}, your documents require attention."
        if reason:
            text += f" Reason: {reason}."
        text += f" Visit {site_url}/owner/documents to update them."
    else:
        detail = (
            '<p style="color: #475569;">Your document verification is still pending. Please make sure all '
            'required documents are uploaded so we can complete your verification.</p>'
            + _button(f"{site_url}/owner/documents", "Check Documents", STATUS_COLORS[status])
        )
        text = (
            f"Hi {user.name}, your document verification is still pending. "
            f"Visit {site_url}/owner/documents to check your documents."
        )

    body = f"""
        <h2 style="color: {STATUS_COLORS[status]};">{heading}</h2>
        <p style="color: #475569;">Hi {name},</p>
        {detail}
    """
    return EmailTemplate(subject=f"Document Status: {heading}", html=_wrap(body), text=text)


def review_reminder(booking: Booking, review_url: str, subject_line: str) -> EmailTemplate:
    kind_label = "boat rental" if booking.item_type == "boat" else "skipper course"
    helps = "Boat owners" if booking.item_type == "boat" else "Course providers"
    dates = f"{booking.start_date} - {booking.end_date}"
    body = f"""
        <h2 style="color: #1e40af;">How was your experience?</h2>
        <p>Hi <strong>{escape(booking.guest_name)}</strong>,</p>
        <p>We hope you had an amazing time with your recent {kind_label}! Your experience matters to us
        and helps other adventurers make informed decisions.</p>
        <div style="background: #f1f5f9; padding: 20px; border-radius: 8px; margin: 20px 0;">
            <h3 style="margin-top: 0; color: #1e40af;">{escape(booking.item_name)}</h3>
            <p style="margin: 5px 0; color: #64748b;"><strong>Dates:</strong> {escape(dates)}</p>
            <p style="margin: 5px 0; color: #64748b;"><strong>Booking ID:</strong> {escape(booking.id)}</p>
        </div>
        <p>Could you spare just 1 minute to leave a review? Your feedback helps:</p>
        <ul style="color: #64748b;">
            <li>Other customers choose the right {escape(booking.item_type)}</li>
            <li>{helps} improve their service</li>
            <li>Build trust within our boating community</li>
        </ul>
        {_button(review_url, "⭐ Leave a Review", "#1e40af")}
        <p style="color: #64748b; font-size: 14px;"><em>This review invitation expires in 30 days.
        If you've already left a review, please ignore this email.</em></p>
    """
    return EmailTemplate(
        subject=subject_line.format(item_type=booking.item_type),
        html=_wrap(body),
        text=(
            f"Hi {booking.guest_name}, please leave a review for your recent {booking.item_type} "
            f"booking: {booking.item_name}. Visit {review_url} to share your experience."
        ),
    )
