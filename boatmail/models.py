from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, Optional

# Job states
PENDING = "pending"
SENT = "sent"
FAILED = "failed"
CANCELLED = "cancelled"

STATUSES = (PENDING, SENT, FAILED, CANCELLED)
TERMINAL_STATUSES = (SENT, FAILED, CANCELLED)

# Job kinds
BOOKING_REMINDER = "booking_reminder"
DOCUMENT_FOLLOWUP = "document_followup"
REVIEW_REMINDER = "review_reminder"
MARKETING = "marketing"  # declared, never produced


@dataclass
class BookingEmailData:
    booking_id: str
    guest_name: str
    guest_email: str
    boat_name: str
    start_date: str
    end_date: str
    owner_name: str = ""
    owner_email: str = ""
    total_amount: float = 0.0
    location: str = ""


@dataclass
class DocumentFollowup:
    name: str
    status: str = PENDING


@dataclass
class Booking:
    """A completed rental or course booking, as needed for a review nudge."""
    id: str
    item_name: str
    item_type: str  # "boat" | "course"
    guest_name: str
    guest_email: str
    start_date: str
    end_date: str
    owner_name: str = ""
    location: str = ""


@dataclass
class UserData:
    name: str
    email: str
    role: Optional[str] = None


@dataclass
class ScheduledEmail:
    id: str
    recipient: str
    fires_at: str
    status: str = PENDING
    created_at: str = ""
    sent_at: Optional[str] = None
    last_error: Optional[str] = None

    # class-level tags, not dataclass fields
    kind = ""
    payload_type = dict


@dataclass
class BookingReminderJob(ScheduledEmail):
    payload: Optional[BookingEmailData] = None

    kind = BOOKING_REMINDER
    payload_type = BookingEmailData


@dataclass
class DocumentFollowupJob(ScheduledEmail):
    payload: Optional[DocumentFollowup] = None

    kind = DOCUMENT_FOLLOWUP
    payload_type = DocumentFollowup


@dataclass
class ReviewReminderJob(ScheduledEmail):
    payload: Optional[Booking] = None

    kind = REVIEW_REMINDER
    payload_type = Booking


@dataclass
class MarketingJob(ScheduledEmail):
    payload: Dict[str, Any] = field(default_factory=dict)

    kind = MARKETING


JOB_TYPES = {
    cls.kind: cls
    for cls in (BookingReminderJob, DocumentFollowupJob, ReviewReminderJob, MarketingJob)
}


def job_to_dict(job: ScheduledEmail) -> Dict[str, Any]:
    data = asdict(job)
    data["kind"] = job.kind
    return data


def _build(cls, data: Dict[str, Any]):
    """Construct a dataclass from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        raise ValueError(f"Expected an object for {cls.__name__}, got {type(data).__name__}")
    names = {f.name for f in fields(cls)}
    try:
        return cls(**{k: v for k, v in data.items() if k in names})
    except TypeError as e:
        raise ValueError(f"Invalid {cls.__name__} record: {e}")


def job_from_dict(data: Dict[str, Any]) -> ScheduledEmail:
    if not isinstance(data, dict):
        raise ValueError(f"Job record must be an object, got {type(data).__name__}")
    kind = data.get("kind")
    cls = JOB_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown job kind: {kind!r}")
    for required in ("id", "recipient", "fires_at"):
        if not data.get(required):
            raise ValueError(f"Job record is missing {required!r}")
    status = data.get("status", PENDING)
    if status not in STATUSES:
        raise ValueError(f"Unknown job status: {status!r}")

    record = {k: v for k, v in data.items() if k != "kind"}
    payload = record.get("payload")
    if cls.payload_type is not dict:
        record["payload"] = _build(cls.payload_type, payload or {})
    elif payload is None:
        record["payload"] = {}
    return _build(cls, record)
