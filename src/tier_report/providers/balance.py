"""Tier provider derived from a balance lookup and fixed thresholds."""

from __future__ import annotations

from typing import Callable, Sequence, Union

from ..codec.report import truncate_tiers_above
from ..codec.report_common import ALWAYS
from ..codec.values import TierValues, value_to_tier
from .base import BaseTierProvider


class BalanceTierProvider(BaseTierProvider):
    """Report the tier an account's current balance qualifies for.

    Balances carry no history, so every held tier reads as reached at time 0
    and the tiers above it as never reached.
    """

    def __init__(
        self,
        balance_of: Callable[[str], int],
        tier_values: Union[TierValues, Sequence[int]],
    ) -> None:
        self.balance_of = balance_of
        self.tier_values = (
            tier_values if isinstance(tier_values, TierValues) else TierValues(tier_values)
        )

    def tier_of(self, account: str) -> int:
        return value_to_tier(self.tier_values, self.balance_of(account))

    def report(self, account: str, context: Sequence[int] = ()) -> int:
        return truncate_tiers_above(ALWAYS, self.tier_of(account))


__all__ = ["BalanceTierProvider"]
