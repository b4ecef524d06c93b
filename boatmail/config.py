import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG = {
    "sweep_interval_seconds": "900",          # 15 minutes
    "retention_days": "30",
}

ALLOWED_CONFIG_KEYS = set(DEFAULT_CONFIG.keys())

DEFAULT_QUEUE_KEY = "scheduled_emails"


@dataclass(frozen=True)
class Settings:
    db_file: str
    queue_key: str
    supabase_url: str
    supabase_key: str
    site_url: str
    admin_email: str


def get_settings() -> Settings:
    """Read environment settings (a .env file is honoured)."""
    return Settings(
        db_file=os.environ.get("BOATMAIL_DB", "boatmail.db"),
        queue_key=os.environ.get("BOATMAIL_QUEUE_KEY", DEFAULT_QUEUE_KEY),
        supabase_url=os.environ.get("SUPABASE_URL", ""),
        supabase_key=os.environ.get("SUPABASE_ANON_KEY", ""),
        site_url=os.environ.get("BOATMAIL_SITE_URL", "https://boatme.co.za").rstrip("/"),
        admin_email=os.environ.get("BOATMAIL_ADMIN_EMAIL", "admin@boatme.co.za"),
    )
