"""Map numeric values (balances, stakes, scores) onto tiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .report_common import MAX_TIER, check_tier


@dataclass(frozen=True)
class TierValues:
    """Ascending minimum values required to reach tiers 1..8.

    Fewer than eight thresholds may be supplied; the missing tiers cannot be
    reached.
    """

    thresholds: Sequence[int]

    def __post_init__(self) -> None:
        thresholds = tuple(int(value) for value in self.thresholds)
        if len(thresholds) > MAX_TIER:
            raise ValueError(f"At most {MAX_TIER} tier values are supported")
        if any(value < 0 for value in thresholds):
            raise ValueError("Tier values must be non-negative")
        if any(lower > upper for lower, upper in zip(thresholds, thresholds[1:])):
            raise ValueError("Tier values must be ascending")
        object.__setattr__(self, "thresholds", thresholds)

    @property
    def max_tier(self) -> int:
        return len(self.thresholds)


def tier_to_value(values: TierValues, tier: int) -> int:
    check_tier(tier)
    if tier == 0:
        return 0
    if tier > values.max_tier:
        raise ValueError(f"Tier {tier} has no configured value")
    return values.thresholds[tier - 1]


def value_to_tier(values: TierValues, value: int) -> int:
    """Return the highest tier whose threshold ``value`` meets."""

    for tier, threshold in enumerate(values.thresholds):
        if value < threshold:
            return tier
    return values.max_tier


__all__ = ["TierValues", "tier_to_value", "value_to_tier"]
