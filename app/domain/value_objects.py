"""Domain value objects for type-safe ledger concepts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from app.domain.exceptions import ValidationError


_WHITESPACE_PATTERN: re.Pattern[str] = re.compile(r"\s+")

# Shorter fragments only ever match exactly
_MIN_FUZZY_LENGTH = 4


class BatchStatus(str, Enum):
    """Coarse lifecycle marker of a batch, in custody order."""

    CREATED = "created"
    DISPATCHED = "dispatched"
    RECEIVED = "received"
    ADMINISTERED = "administered"

    @property
    def rank(self) -> int:
        return _BATCH_STATUS_ORDER.index(self)

    def successor(self) -> BatchStatus | None:
        """Return the next status in custody order, or None at the end."""
        if self.rank + 1 < len(_BATCH_STATUS_ORDER):
            return _BATCH_STATUS_ORDER[self.rank + 1]
        return None

    def can_advance_to(self, new_status: BatchStatus) -> bool:
        """True only for the immediate successor; no skips, no regressions."""
        return self.successor() is new_status


_BATCH_STATUS_ORDER: tuple[BatchStatus, ...] = (
    BatchStatus.CREATED,
    BatchStatus.DISPATCHED,
    BatchStatus.RECEIVED,
    BatchStatus.ADMINISTERED,
)


class DispatchStatus(str, Enum):
    """Delivery state of a single dispatch."""

    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"

    @property
    def is_open(self) -> bool:
        return self is not DispatchStatus.RECEIVED


OPEN_DISPATCH_STATUSES: tuple[DispatchStatus, ...] = (
    DispatchStatus.PENDING,
    DispatchStatus.IN_TRANSIT,
)


@dataclass(frozen=True)
class ScanCode:
    """
    Immutable value object for a physical batch identifier.

    The raw value is kept verbatim for exact matching. ``normalized`` drops
    all whitespace and folds case so that codes read back by a scanner with
    stray spaces or lowercase letters can still be compared.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValidationError("Scan code must not be blank", field="scan_code")

    @property
    def normalized(self) -> str:
        return _WHITESPACE_PATTERN.sub("", self.value).upper()

    def loosely_matches(self, candidate: str) -> bool:
        """
        Whitespace-insensitive, substring-tolerant comparison.

        Matches when either normalized form contains the other, so a decoded
        string carrying extra characters (e.g. ``"QR123 (mirror)"``) still
        resolves to ``"QR123"``.
        """
        mine = self.normalized
        theirs = ScanCode(candidate).normalized
        if mine == theirs:
            return True
        if min(len(mine), len(theirs)) < _MIN_FUZZY_LENGTH:
            return False
        return mine in theirs or theirs in mine

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Quantity:
    """
    Immutable value object for a count of units.

    Enforces a strictly positive integer at construction time.
    """

    units: int

    def __post_init__(self) -> None:
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise ValidationError(
                f"Quantity must be an integer: {self.units!r}", field="quantity"
            )
        if self.units <= 0:
            raise ValidationError(
                f"Quantity must be positive: {self.units}", field="quantity"
            )

    def __int__(self) -> int:
        return self.units

    def __str__(self) -> str:
        return f"{self.units} units"
