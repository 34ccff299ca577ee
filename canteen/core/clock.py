from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime. Patch this in tests to pin time."""
    return datetime.now(timezone.utc)


def epoch_seconds(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())
