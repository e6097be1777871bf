"""Tier report codec: packing per-tier timestamps into a single 256-bit word."""

from .combine import CombineLogic, CombineMode, select_lte
from .report import (
    TierReport,
    report_time_for_tier,
    tier_at_time_from_report,
    truncate_tiers_above,
    update_report_with_tier_at_time,
    update_time_at_tier,
    update_times_for_tier_range,
)
from .report_common import (
    ALWAYS,
    MAX_TIER,
    NEVER,
    NEVER_REPORT,
    ReportOutOfRange,
    TierOutOfRange,
    TimestampOutOfRange,
    field_offset_for_tier,
)
from .values import TierValues, tier_to_value, value_to_tier

__all__ = [
    "ALWAYS",
    "CombineLogic",
    "CombineMode",
    "MAX_TIER",
    "NEVER",
    "NEVER_REPORT",
    "ReportOutOfRange",
    "TierOutOfRange",
    "TierReport",
    "TierValues",
    "TimestampOutOfRange",
    "field_offset_for_tier",
    "report_time_for_tier",
    "select_lte",
    "tier_at_time_from_report",
    "tier_to_value",
    "truncate_tiers_above",
    "update_report_with_tier_at_time",
    "update_time_at_tier",
    "update_times_for_tier_range",
    "value_to_tier",
]
