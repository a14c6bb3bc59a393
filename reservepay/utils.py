"""Small shared helpers"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def looks_like_email(value: str) -> bool:
    return "@" in value
