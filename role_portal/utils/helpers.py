"""Shared utility functions for form normalisation and commits.

parse_date:            form date strings -> date (None on bad input)
digits_only:           phone numbers are stored without punctuation
pad_code:              agency / business-unit codes, right zero-padded
as_bool:               form / JSON flags, accepting "true" / "false" strings
username_to_email:     bare usernames get the corporate domain appended
email_to_username:     reverse of the above for edit-form pre-population
commit_or_raise:       commit the session, PersistenceError on failure
atomic:                one unit of work around several staged writes
"""
import logging
import re
from contextlib import contextmanager
from datetime import date, datetime

from email_validator import EmailNotValidError, validate_email
from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from role_portal.core.exceptions import PersistenceError
from role_portal.models import db

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_DOMAIN = "state.mn.us"

USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def parse_date(value):
    """Parse a date string (ISO or MM/DD/YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format, what the date input posts)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - MM/DD/YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%m/%d/%Y").date()
    except (ValueError, TypeError):
        return None


def digits_only(value):
    """Strip every non-digit character; empty input becomes None."""
    if not value:
        return None
    digits = re.sub(r"\D", "", str(value))
    return digits or None


def as_bool(value) -> bool:
    """Checkbox and JSON flags; strings like ``"false"`` or ``"off"`` are False."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def pad_code(value, width, fill="0"):
    """Right-pad *value* with *fill* to exactly *width* characters.

    Longer values are truncated. Empty input yields a string of fill chars.
    """
    text = (value or "").strip()
    return text.ljust(width, fill)[:width]


def email_domain() -> str:
    if has_app_context():
        return current_app.config.get("CORPORATE_EMAIL_DOMAIN", DEFAULT_EMAIL_DOMAIN)
    return DEFAULT_EMAIL_DOMAIN


def username_to_email(username):
    """Turn a bare username into a corporate address.

    Values already containing ``@`` are returned unchanged.
    """
    username = (username or "").strip()
    if not username:
        return None
    if "@" in username:
        return username
    return f"{username}@{email_domain()}"


def email_to_username(email):
    """Strip the corporate domain so the edit form shows the bare username."""
    if not email:
        return ""
    suffix = f"@{email_domain()}"
    if email.endswith(suffix):
        return email[: -len(suffix)]
    return email


def is_valid_email(value) -> bool:
    if not value:
        return False
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_username(value) -> bool:
    """Usernames may be bare (``jane.doe``) or a full address."""
    if not value:
        return False
    value = value.strip()
    if "@" in value:
        return is_valid_email(value)
    return bool(USERNAME_RE.match(value))


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(action: str) -> None:
    """Commit the current SQLAlchemy session or roll back and raise.

    Every multi-step service operation stages all of its writes on the
    session and calls this once, so a store failure leaves nothing half
    applied.

    Raises:
        PersistenceError: wrapping the driver error, after rollback.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error while trying to %s", action)
        raise PersistenceError(f"Failed to {action}. Please try again.") from exc


@contextmanager
def atomic(action: str):
    """Run a block of staged writes as one transaction.

    Commits when the block finishes. Any error inside the block rolls the
    whole unit back; store errors surface as PersistenceError, everything
    else (ValidationError, NotFoundError, ...) is re-raised unchanged.
    """
    try:
        yield db.session
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error while trying to %s", action)
        raise PersistenceError(f"Failed to {action}. Please try again.") from exc
    except Exception:
        db.session.rollback()
        raise
    commit_or_raise(action)


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def to_snake(name: str) -> str:
    """``supervisorUsername`` -> ``supervisor_username``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_keys(data: dict | None) -> dict:
    """Accept camelCase form payloads alongside snake_case ones."""
    return {to_snake(key): value for key, value in (data or {}).items()}
