from datetime import datetime, timedelta, timezone

import pytest

from boatmail.mailer import EmailService, SendResult
from boatmail.models import Booking, BookingEmailData
from boatmail.repository import EmailQueue
from boatmail.store import MemoryJobStore

START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingTransport:
    """Collects messages; fails for addresses listed in `fail_for`."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, message):
        self.sent.append(message)
        if message.to in self.fail_for:
            return SendResult(False, "mailbox unavailable")
        return SendResult(True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryJobStore()


@pytest.fixture
def queue(store, clock):
    return EmailQueue(store, clock=clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def email_service(transport):
    return EmailService(transport, admin_email="admin@boatme.test", site_url="https://boatme.test")


@pytest.fixture
def booking_data():
    return BookingEmailData(
        booking_id="bk-1",
        guest_name="Thandi",
        guest_email="a@x.com",
        boat_name="Sea Breeze",
        start_date="2024-06-10",
        end_date="2024-06-12",
        owner_name="Pieter",
        owner_email="owner@x.com",
        total_amount=4500.0,
        location="Knysna",
    )


@pytest.fixture
def finished_booking():
    return Booking(
        id="bk-9",
        item_name="Day Skipper Course",
        item_type="course",
        guest_name="Sam",
        guest_email="b@x.com",
        start_date="2024-05-30T08:00:00Z",
        end_date="2024-06-01T10:00:00Z",
    )
