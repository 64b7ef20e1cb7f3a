"""Clock helpers. Exchange expirations are whole unix seconds."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def unix_now() -> int:
    return int(utc_now().timestamp())


def from_unix(seconds: int) -> datetime | None:
    """0 means "no expiration" on the exchange and maps to None."""
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, timezone.utc)
