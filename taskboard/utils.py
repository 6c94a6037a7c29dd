import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

import bcrypt

from .config import get_settings
from .errors import BadRequestError

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def new_uuid() -> str:
    return str(uuid.uuid4())


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


def require_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise BadRequestError("title must not be empty")
    return title.strip()


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 date or date-time; empty input clears the due date."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise BadRequestError(
            "dueDate must be an ISO 8601 date or date-time", {"dueDate": value}
        ) from None
    return as_utc(parsed)


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    if not tags:
        return []
    cleaned = (tag.strip() for tag in tags)
    return list(dict.fromkeys(tag for tag in cleaned if tag))
