import signal
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .logger import log_error, log_info, log_warning
from .mailer import EmailService, SendResult
from .models import (
    PENDING, SENT, FAILED, TERMINAL_STATUSES, UserData,
    BookingReminderJob, DocumentFollowupJob, ReviewReminderJob, MarketingJob, ScheduledEmail,
)
from .repository import EmailQueue
from .utils import parse_iso, to_iso, utc_now

_stop = threading.Event()


@dataclass
class SweepResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    pruned: int = 0


def deliver(job: ScheduledEmail, email_service: EmailService) -> SendResult:
    if isinstance(job, BookingReminderJob):
        return email_service.send_booking_reminder(job.payload)
    if isinstance(job, DocumentFollowupJob):
        user = UserData(name=job.payload.name, email=job.recipient)
        return email_service.send_document_status_email(user, PENDING)
    if isinstance(job, ReviewReminderJob):
        return email_service.send_review_reminder(job.payload)
    if isinstance(job, MarketingJob):
        return SendResult(False, "marketing emails have no delivery")
    log_warning(f"Unknown email type: {job.kind!r}")
    return SendResult(False, f"unknown email type {job.kind!r}")


def is_due(job: ScheduledEmail, now: datetime) -> bool:
    return job.status == PENDING and parse_iso(job.fires_at) <= now


def process_due(queue: EmailQueue, email_service: EmailService,
                now: Optional[datetime] = None, retention_days: int = 30) -> SweepResult:
    """One sweep: deliver every due pending job once, prune old finished jobs, save.

    Due jobs are handled sequentially in stored order. A failed delivery is final.
    """
    result = SweepResult()
    now = parse_iso(now or queue.clock())
    try:
        jobs = queue.store.load()

        for job in jobs:
            try:
                due = is_due(job, now)
            except ValueError as e:
                log_warning(f"Skipping job {job.id} with unreadable fire time: {e}")
                continue
            if not due:
                continue

            log_info(f"Processing scheduled email {job.id} ({job.kind}) -> {job.recipient}")
            try:
                outcome = deliver(job, email_service)
            except Exception as e:
                log_error(f"Failed to send scheduled email {job.id}", e)
                outcome = SendResult(False, str(e) or e.__class__.__name__)

            job.sent_at = to_iso(now)
            result.processed += 1
            if outcome.success:
                job.status = SENT
                result.sent += 1
            else:
                job.status = FAILED
                job.last_error = (outcome.error or "send failed")[:500]
                result.failed += 1

        cutoff = now - timedelta(days=retention_days)
        kept = [j for j in jobs if not _expired(j, cutoff)]
        result.pruned = len(jobs) - len(kept)

        queue.store.save(kept)
    except Exception as e:
        log_error("Failed to process pending emails", e)
        return result

    if result.processed or result.pruned:
        log_info(
            f"Sweep done: processed={result.processed} sent={result.sent} "
            f"failed={result.failed} pruned={result.pruned}"
        )
    return result


def _expired(job: ScheduledEmail, cutoff: datetime) -> bool:
    if job.status not in TERMINAL_STATUSES:
        return False
    try:
        return parse_iso(job.fires_at) < cutoff
    except ValueError:
        return False


class Scheduler:
    """Runs `task` every `interval_seconds` of the injected clock.

    `run_pending()` can be called directly with a fake clock; `start()` polls it
    from a daemon thread. The next run time lives in memory only.
    """

    def __init__(self, task: Callable[[], object], interval_seconds: float,
                 clock: Callable[[], datetime] = utc_now, poll_seconds: float = 1.0,
                 run_immediately: bool = False, name: str = "sweeper"):
        if interval_seconds <= 0:
            raise ValueError("interval must be > 0 seconds")
        self.task = task
        self.interval = timedelta(seconds=interval_seconds)
        self.clock = clock
        self.poll_seconds = poll_seconds
        self.name = name
        start = parse_iso(clock())
        self.next_run_at = start if run_immediately else start + self.interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_pending(self) -> bool:
        now = parse_iso(self.clock())
        if now < self.next_run_at:
            return False
        try:
            self.task()
        except Exception as e:
            log_error(f"[{self.name}] Scheduled task failed", e)
        self.next_run_at = now + self.interval
        return True

    def _loop(self):
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(self.poll_seconds)

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        log_info(f"[{self.name}] Started; next run at {to_iso(self.next_run_at)}")

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            log_info(f"[{self.name}] Stopped.")


def setup_signal_handlers():
    def _handler(signum, frame):
        log_info(f"Received signal {signum}. Stopping worker")
        _stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _handler)
        except ValueError:
            # not on the main thread
            pass


def start_worker(queue: EmailQueue, email_service: EmailService, interval_seconds: int,
                 retention_days: int = 30, run_immediately: bool = False):
    """Sweep the queue on a fixed interval until SIGINT/SIGTERM."""
    setup_signal_handlers()
    _stop.clear()
    scheduler = Scheduler(
        lambda: process_due(queue, email_service, retention_days=retention_days),
        interval_seconds,
        clock=queue.clock,
        run_immediately=run_immediately,
    )
    scheduler.start()
    try:
        while not _stop.wait(0.5):
            pass
    finally:
        scheduler.stop()
