"""Combine several tier reports into one, tier by tier."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable

from .report import report_time_for_tier, update_time_at_tier
from .report_common import MAX_TIER, NEVER, NEVER_REPORT


class CombineLogic(IntEnum):
    """Whether every report or any report must hold a tier."""

    EVERY = 0
    ANY = 1


class CombineMode(IntEnum):
    """Which qualifying time is kept for a tier."""

    MIN = 0
    MAX = 1
    FIRST = 2


def select_lte(
    reports: Iterable[int],
    timestamp: int,
    logic: CombineLogic = CombineLogic.EVERY,
    mode: CombineMode = CombineMode.MIN,
) -> int:
    """Return a report holding the tiers reached at or before ``timestamp``.

    Only times ``<= timestamp`` qualify. Under :attr:`CombineLogic.EVERY` a
    single report missing the tier leaves it at :data:`NEVER`; under
    :attr:`CombineLogic.ANY` one qualifying report is enough. ``mode`` picks
    the recorded time among the qualifying ones.
    """

    logic = CombineLogic(logic)
    mode = CombineMode(mode)
    reports = list(reports)
    if not reports:
        return NEVER_REPORT

    combined = NEVER_REPORT
    for tier in range(1, MAX_TIER + 1):
        selected = None
        for report in reports:
            reached = report_time_for_tier(report, tier)
            if reached > timestamp:
                if logic is CombineLogic.EVERY:
                    selected = None
                    break
                continue
            if selected is None:
                selected = reached
            elif mode is CombineMode.MIN:
                selected = min(selected, reached)
            elif mode is CombineMode.MAX:
                selected = max(selected, reached)
        combined = update_time_at_tier(
            combined, tier - 1, NEVER if selected is None else selected
        )
    return combined


__all__ = ["CombineLogic", "CombineMode", "select_lte"]
