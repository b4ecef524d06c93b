"""Job store: one named slot holding the whole job list as a JSON array.

Every operation reads or writes the entire list. There is no locking, so two
writers that load the same snapshot lose one of their updates (last save wins).

A slot that does not decode (bad JSON, not a list, or any record with an
unknown kind or status) loads as no jobs, and the next save overwrites it:
the undecodable jobs and every valid job stored beside them are lost.
"""
import json
import sqlite3
from typing import List, Optional

from .config import DEFAULT_QUEUE_KEY
from .logger import log_error
from .models import ScheduledEmail, job_from_dict, job_to_dict


def decode_jobs(raw: Optional[str], key: str = DEFAULT_QUEUE_KEY) -> List[ScheduledEmail]:
    """Decode a slot value. Missing or malformed values decode to []."""
    if not raw:
        return []
    try:
        records = json.loads(raw)
        if not isinstance(records, list):
            raise ValueError(f"expected a JSON array, got {type(records).__name__}")
        return [job_from_dict(r) for r in records]
    except ValueError as e:
        log_error(f"Unreadable job slot '{key}' loads as empty; the next save replaces it: {e}")
        return []


def encode_jobs(jobs: List[ScheduledEmail]) -> str:
    return json.dumps([job_to_dict(j) for j in jobs])


class JobStore:
    key = DEFAULT_QUEUE_KEY

    def load(self) -> List[ScheduledEmail]:
        raise NotImplementedError

    def save(self, jobs: List[ScheduledEmail]):
        raise NotImplementedError


class SqliteJobStore(JobStore):
    """Slot stored as a row of the sqlite `slots` table."""

    def __init__(self, conn, key: str = DEFAULT_QUEUE_KEY):
        self.conn = conn
        self.key = key

    def load(self) -> List[ScheduledEmail]:
        try:
            row = self.conn.execute(
                "SELECT value FROM slots WHERE key=?", (self.key,)
            ).fetchone()
        except sqlite3.Error as e:
            log_error(f"Failed to read job slot '{self.key}'", e)
            return []
        return decode_jobs(row["value"] if row else None, self.key)

    def save(self, jobs: List[ScheduledEmail]):
        raw = encode_jobs(jobs)
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO slots(key,value) VALUES(?,?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    (self.key, raw),
                )
        except sqlite3.Error as e:
            raise RuntimeError(f"DB error while saving job slot '{self.key}': {e}")


class MemoryJobStore(JobStore):
    """In-process slot. `raw` may be seeded with any text, corrupt or not."""

    def __init__(self, raw: Optional[str] = None, key: str = DEFAULT_QUEUE_KEY):
        self.raw = raw
        self.key = key

    def load(self) -> List[ScheduledEmail]:
        return decode_jobs(self.raw, self.key)

    def save(self, jobs: List[ScheduledEmail]):
        self.raw = encode_jobs(jobs)
