"""Wall-clock source shared by the services."""

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC now; the schema stores timestamps without a zone."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
