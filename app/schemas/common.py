"""Shared field types for API schemas."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AwareDatetime, BeforeValidator


def _assume_utc(value: object) -> object:
    """Treat naive datetimes read back from the store as UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[AwareDatetime, BeforeValidator(_assume_utc)]
