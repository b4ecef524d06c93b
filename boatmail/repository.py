import sqlite3
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from .config import ALLOWED_CONFIG_KEYS, DEFAULT_CONFIG
from .logger import log_error, log_info
from .models import (
    PENDING, CANCELLED, STATUSES,
    Booking, BookingEmailData, DocumentFollowup,
    BookingReminderJob, DocumentFollowupJob, ReviewReminderJob, ScheduledEmail,
)
from .store import JobStore
from .utils import new_job_id, parse_iso, to_iso, utc_now

REVIEW_DELAY = timedelta(hours=24)


# ---------- Config ----------
def get_config(conn) -> Dict[str, str]:
    cur = conn.execute("SELECT key, value FROM config")
    return {r["key"]: r["value"] for r in cur.fetchall()}


def set_config(conn, key: str, value: str):
    if key not in ALLOWED_CONFIG_KEYS:
        raise ValueError(f"Allowed keys: {', '.join(sorted(ALLOWED_CONFIG_KEYS))}")
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer.")
    if number <= 0:
        raise ValueError(f"{key} must be > 0.")
    with conn:
        conn.execute(
            "INSERT INTO config(key,value) VALUES(?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, str(value)),
        )


def config_int(conn, key: str) -> int:
    """Positive integer config value; the default when unset, unreadable or <= 0."""
    try:
        value = int(get_config(conn).get(key, DEFAULT_CONFIG[key]))
    except (ValueError, sqlite3.Error):
        return int(DEFAULT_CONFIG[key])
    return value if value > 0 else int(DEFAULT_CONFIG[key])


# ---------- Jobs ----------
class EmailQueue:
    """Producer and reader/canceller over one JobStore.

    Each call is a full load-mutate-save of the stored list.
    """

    def __init__(self, store: JobStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _append(self, job: ScheduledEmail) -> bool:
        try:
            jobs = self.store.load()
            jobs.append(job)
            self.store.save(jobs)
        except Exception as e:
            log_error(f"Failed to schedule {job.kind} for {job.recipient}", e)
            return False
        log_info(f"{job.kind} {job.id} scheduled for {job.fires_at}")
        return True

    def _new(self, cls, prefix: str, recipient: str,
             fire_at: Union[datetime, str], payload) -> ScheduledEmail:
        return cls(
            id=new_job_id(prefix),
            recipient=recipient,
            fires_at=to_iso(parse_iso(fire_at)),
            status=PENDING,
            created_at=to_iso(self.clock()),
            payload=payload,
        )

    def schedule_booking_reminder(self, booking: BookingEmailData,
                                  fire_at: Union[datetime, str]) -> bool:
        try:
            job = self._new(BookingReminderJob, "reminder", booking.guest_email, fire_at, booking)
        except ValueError as e:
            log_error("Failed to schedule booking reminder", e)
            return False
        return self._append(job)

    def schedule_document_followup(self, address: str, name: str,
                                   fire_at: Union[datetime, str]) -> bool:
        try:
            job = self._new(DocumentFollowupJob, "followup", address, fire_at,
                            DocumentFollowup(name=name, status=PENDING))
        except ValueError as e:
            log_error("Failed to schedule document followup", e)
            return False
        return self._append(job)

    def schedule_review_reminder(self, booking: Booking) -> bool:
        """Schedule a review nudge exactly one day after the booking ends."""
        try:
            fire_at = parse_iso(booking.end_date) + REVIEW_DELAY
            job = self._new(ReviewReminderJob, f"review_{booking.id}", booking.guest_email,
                            fire_at, booking)
        except ValueError as e:
            log_error(f"Failed to schedule review reminder for booking {booking.id}", e)
            return False
        return self._append(job)

    # ---------- Queries ----------
    def list_jobs(self, recipient: Optional[str] = None,
                  status: Optional[str] = None) -> List[ScheduledEmail]:
        try:
            jobs = self.store.load()
        except Exception as e:
            log_error("Failed to list scheduled emails", e)
            return []
        if recipient is not None:
            jobs = [j for j in jobs if j.recipient == recipient]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return jobs

    def counts(self) -> Dict[str, int]:
        out = {s: 0 for s in STATUSES}
        for job in self.list_jobs():
            out[job.status] = out.get(job.status, 0) + 1
        return out

    # ---------- Cancellation ----------
    def cancel(self, job_id: str) -> bool:
        """Remove a job. Unknown ids are a no-op success."""
        try:
            jobs = self.store.load()
            remaining = [j for j in jobs if j.id != job_id]
            self.store.save(remaining)
        except Exception as e:
            log_error(f"Failed to cancel scheduled email {job_id}", e)
            return False
        if len(remaining) != len(jobs):
            log_info(f"Cancelled scheduled email {job_id}")
        return True

    def cancel_review_reminders(self, booking_id: str) -> bool:
        """Mark pending review reminders for a booking as cancelled (kept for the record)."""
        try:
            jobs = self.store.load()
            for job in jobs:
                if (isinstance(job, ReviewReminderJob) and job.status == PENDING
                        and job.payload is not None and job.payload.id == booking_id):
                    job.status = CANCELLED
            self.store.save(jobs)
        except Exception as e:
            log_error(f"Failed to cancel review reminder for booking {booking_id}", e)
            return False
        return True
