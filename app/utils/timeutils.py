from datetime import datetime
import pytz

from ..core.exceptions import ValidationError


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the database."""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def to_utc(value) -> datetime:
    """
    Normalize a timestamp to naive UTC.

    Aware datetimes are converted, naive ones are assumed to be UTC already,
    and ISO-8601 strings are parsed first. Anything else is a ValidationError.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Malformed timestamp: {value!r}")

    if not isinstance(value, datetime):
        raise ValidationError(f"Expected a datetime, got {type(value).__name__}")

    if value.tzinfo is not None:
        value = value.astimezone(pytz.UTC).replace(tzinfo=None)
    return value
