"""Bit-packed tier report codec.

A report is a 256-bit unsigned integer made of eight 32-bit fields. Field
``i`` (bits ``[32 * i, 32 * i + 32)``) stores the timestamp at which tier
``i + 1`` was first reached, or :data:`NEVER` when the tier has not been
reached. Tier 0 owns no field and is always held since time 0.

The module level functions are pure and operate on plain ``int`` words so
they can be called from any thread. :class:`TierReport` offers a typed view
over the same layout backed by a fixed ``uint32`` array.
"""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass
from typing import Iterator, Tuple

if importlib.util.find_spec("numpy") is None:  # pragma: no cover - deterministic import guard
    raise ModuleNotFoundError(
        "The numpy package is required for tier reports. Install it with 'pip install numpy'."
    )
import numpy as np

from .report_common import (
    MAX_TIER,
    NEVER,
    NEVER_REPORT,
    REPORT_MASK,
    TIER_BITS,
    check_report,
    check_tier,
    check_timestamp,
    field_offset_for_tier,
    report_from_bytes,
    report_to_bytes,
)


def _write_field(report: int, offset: int, timestamp: int) -> int:
    return (report & ~(NEVER << offset) & REPORT_MASK) | (timestamp << offset)


def tier_at_time_from_report(report: int, timestamp: int) -> int:
    """Return the highest tier held continuously since ``timestamp``.

    Fields are scanned from tier 1 upwards and the scan stops at the first
    field recording a time after ``timestamp``. A report taken later than
    ``timestamp`` therefore only credits tiers that were held through the
    whole interval, not tiers that merely existed at ``timestamp``.
    A :data:`NEVER` field is unreached whatever ``timestamp`` is.
    """

    check_report(report)
    for tier in range(MAX_TIER):
        reached = (report >> (tier * TIER_BITS)) & NEVER
        if reached == NEVER or reached > timestamp:
            return tier
    return MAX_TIER


def report_time_for_tier(report: int, tier: int) -> int:
    """Return the time ``tier`` was reached, ``0`` for tier 0 or :data:`NEVER`."""

    offset = field_offset_for_tier(tier)
    check_report(report)
    if offset is None:
        return 0
    return (report >> offset) & NEVER


def truncate_tiers_above(report: int, tier: int) -> int:
    """Reset every field above ``tier`` to :data:`NEVER`."""

    check_tier(tier)
    check_report(report)
    offset = tier * TIER_BITS
    return report | ((NEVER_REPORT >> offset) << offset)


def update_time_at_tier(report: int, tier: int, timestamp: int) -> int:
    """Record ``timestamp`` as the time tier ``tier + 1`` was reached.

    The tier argument names the tier being left rather than the one being
    reached, so updating tier 0 writes the field for tier 1. Updating
    :data:`MAX_TIER` touches nothing since there is no tier above it.
    """

    check_tier(tier)
    check_report(report)
    check_timestamp(timestamp)
    if tier == MAX_TIER:
        return report
    offset = field_offset_for_tier(tier + 1)
    return _write_field(report, offset, timestamp)


def update_times_for_tier_range(
    report: int, start_tier: int, end_tier: int, timestamp: int
) -> int:
    """Stamp every tier index in ``[start_tier, end_tier)`` with ``timestamp``.

    A non-increasing range leaves the report untouched.
    """

    check_tier(end_tier)
    check_report(report)
    if end_tier <= start_tier:
        return report
    check_tier(start_tier)
    check_timestamp(timestamp)
    for tier in range(start_tier, end_tier):
        report = _write_field(report, field_offset_for_tier(tier + 1), timestamp)
    return report


def update_report_with_tier_at_time(
    report: int, start_tier: int, end_tier: int, timestamp: int
) -> int:
    """Move a report from ``start_tier`` to ``end_tier`` at ``timestamp``.

    ``start_tier`` must be the tier currently held according to
    :func:`tier_at_time_from_report`; it is not verified. Decreasing tiers
    erase history above ``end_tier`` and ignore ``timestamp``.
    """

    if end_tier < start_tier:
        return truncate_tiers_above(report, end_tier)
    return update_times_for_tier_range(report, start_tier, end_tier, timestamp)


@dataclass(frozen=True, eq=False)
class TierReport:
    """Typed view over a packed report backed by eight ``uint32`` fields."""

    fields: np.ndarray

    def __post_init__(self) -> None:
        values = [check_timestamp(int(value)) for value in np.asarray(self.fields).reshape(-1)]
        if len(values) != MAX_TIER:
            raise ValueError(f"Tier reports hold exactly {MAX_TIER} fields, got {len(values)}")
        fields = np.array(values, dtype=np.uint32)
        fields.setflags(write=False)
        object.__setattr__(self, "fields", fields)

    @classmethod
    def never(cls) -> "TierReport":
        return cls.from_word(NEVER_REPORT)

    @classmethod
    def from_word(cls, word: int) -> "TierReport":
        check_report(word)
        return cls(
            np.array(
                [(word >> (index * TIER_BITS)) & NEVER for index in range(MAX_TIER)],
                dtype=np.uint32,
            )
        )

    @classmethod
    def from_bytes(cls, value: bytes) -> "TierReport":
        return cls.from_word(report_from_bytes(bytes(value)))

    def to_word(self) -> int:
        word = 0
        for index, value in enumerate(self.fields):
            word |= int(value) << (index * TIER_BITS)
        return word

    def to_bytes(self) -> bytes:
        return report_to_bytes(self.to_word())

    def tier_timestamp(self, tier: int) -> int:
        offset = field_offset_for_tier(tier)
        if offset is None:
            return 0
        return int(self.fields[offset // TIER_BITS])

    def timestamps(self) -> Tuple[int, ...]:
        """Return the stored times for tiers 1..8 in order."""

        return tuple(int(value) for value in self.fields)

    def tier_at_time(self, timestamp: int) -> int:
        return tier_at_time_from_report(self.to_word(), timestamp)

    def truncate_tiers_above(self, tier: int) -> "TierReport":
        return TierReport.from_word(truncate_tiers_above(self.to_word(), tier))

    def update_time_at_tier(self, tier: int, timestamp: int) -> "TierReport":
        return TierReport.from_word(update_time_at_tier(self.to_word(), tier, timestamp))

    def update_times_for_tier_range(
        self, start_tier: int, end_tier: int, timestamp: int
    ) -> "TierReport":
        return TierReport.from_word(
            update_times_for_tier_range(self.to_word(), start_tier, end_tier, timestamp)
        )

    def update_with_tier_at_time(
        self, start_tier: int, end_tier: int, timestamp: int
    ) -> "TierReport":
        return TierReport.from_word(
            update_report_with_tier_at_time(self.to_word(), start_tier, end_tier, timestamp)
        )

    def is_monotonic(self) -> bool:
        """Return ``True`` when no reached tier sits above an unreached one."""

        unreached = np.flatnonzero(self.fields == NEVER)
        if unreached.size == 0:
            return True
        return bool(np.all(self.fields[unreached[0] :] == NEVER))

    def __iter__(self) -> Iterator[int]:
        return iter(self.timestamps())

    def __len__(self) -> int:
        return MAX_TIER

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TierReport):
            return NotImplemented
        return bool(np.array_equal(self.fields, other.fields))

    def __hash__(self) -> int:
        return hash(self.to_word())

    def __repr__(self) -> str:
        return f"TierReport(0x{self.to_word():064x})"


__all__ = [
    "TierReport",
    "report_time_for_tier",
    "tier_at_time_from_report",
    "truncate_tiers_above",
    "update_report_with_tier_at_time",
    "update_time_at_tier",
    "update_times_for_tier_range",
]
