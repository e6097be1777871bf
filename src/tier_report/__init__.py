"""Compact per-tier timestamp reports and the providers that serve them."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import TYPE_CHECKING

from .codec import (
    ALWAYS,
    MAX_TIER,
    NEVER,
    NEVER_REPORT,
    TierOutOfRange,
    TierReport,
    report_time_for_tier,
    tier_at_time_from_report,
    truncate_tiers_above,
    update_report_with_tier_at_time,
    update_time_at_tier,
    update_times_for_tier_range,
)

_SUBMODULES = ("codec", "providers", "tools")

__all__ = [
    "ALWAYS",
    "MAX_TIER",
    "NEVER",
    "NEVER_REPORT",
    "TierOutOfRange",
    "TierReport",
    "report_time_for_tier",
    "tier_at_time_from_report",
    "truncate_tiers_above",
    "update_report_with_tier_at_time",
    "update_time_at_tier",
    "update_times_for_tier_range",
    *_SUBMODULES,
]


def __getattr__(name: str) -> ModuleType:
    """Lazily import subpackages so the codec stays importable on its own."""

    if name in _SUBMODULES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:  # pragma: no cover - imported for static analyzers
    from . import providers, tools  # noqa: F401
