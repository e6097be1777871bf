"""Shared tier report constants and helpers used across the codec and providers."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

MAX_TIER = 8
TIER_BITS = 32
NEVER = 0xFFFFFFFF
REPORT_BITS = MAX_TIER * TIER_BITS
REPORT_BYTES = REPORT_BITS // 8
REPORT_MASK = (1 << REPORT_BITS) - 1
NEVER_REPORT = REPORT_MASK
ALWAYS = 0
SNAPSHOT_VERSION = 1
MSGPACK_SUFFIXES = {".msgpack", ".mpk"}
SNAPSHOT_SUFFIXES = {".json"} | MSGPACK_SUFFIXES


class TierOutOfRange(ValueError):
    """Raised when a tier argument falls outside ``[0, MAX_TIER]``."""

    def __init__(self, tier: int) -> None:
        super().__init__(f"Tier {tier} is outside the supported range 0..{MAX_TIER}")
        self.tier = tier


class TimestampOutOfRange(ValueError):
    """Raised when a timestamp does not fit a 32-bit report field."""

    def __init__(self, timestamp: int) -> None:
        super().__init__(f"Timestamp {timestamp} does not fit in {TIER_BITS} bits")
        self.timestamp = timestamp


class ReportOutOfRange(ValueError):
    """Raised when a report is not a 256-bit unsigned integer."""

    def __init__(self, report: int) -> None:
        super().__init__(f"Report {report:#x} is not a {REPORT_BITS}-bit unsigned integer")
        self.report = report


class SnapshotFormatError(RuntimeError):
    """Raised when a provider snapshot uses an unsupported format."""


def check_tier(tier: int) -> int:
    if not 0 <= tier <= MAX_TIER:
        raise TierOutOfRange(tier)
    return tier


def check_timestamp(timestamp: int) -> int:
    if not 0 <= timestamp <= NEVER:
        raise TimestampOutOfRange(timestamp)
    return timestamp


def check_report(report: int) -> int:
    if not 0 <= report <= REPORT_MASK:
        raise ReportOutOfRange(report)
    return report


def field_offset_for_tier(tier: int) -> Optional[int]:
    """Return the bit offset of the field recording when ``tier`` was reached.

    Tier 0 is held implicitly and owns no bits, so it maps to ``None``. Tier
    ``n`` for ``n >= 1`` lives in field ``n - 1``.
    """

    check_tier(tier)
    if tier == 0:
        return None
    return (tier - 1) * TIER_BITS


def report_to_bytes(report: int) -> bytes:
    """Serialise a report as a 32-byte big-endian word."""

    return check_report(report).to_bytes(REPORT_BYTES, "big")


def report_from_bytes(value: bytes) -> int:
    """Parse a report previously written by :func:`report_to_bytes`."""

    if len(value) != REPORT_BYTES:
        raise SnapshotFormatError(
            f"Report words must be {REPORT_BYTES} bytes, got {len(value)}"
        )
    return int.from_bytes(value, "big")


def encode_report_table(reports: Mapping[str, int]) -> Dict[str, str]:
    """Hex-encode every report as a 32-byte word for JSON snapshots."""

    return {account: report_to_bytes(report).hex() for account, report in sorted(reports.items())}


def decode_report_table(table: object) -> Dict[str, int]:
    """Decode a snapshot report table holding hex strings or raw 32-byte words."""

    if not isinstance(table, dict):
        raise SnapshotFormatError("Snapshot has no report table")
    reports: Dict[str, int] = {}
    for account, raw in table.items():
        if isinstance(raw, str):
            try:
                raw = bytes.fromhex(raw)
            except ValueError as exc:
                raise SnapshotFormatError(f"Report for {account!r} is not valid hex") from exc
        if not isinstance(raw, (bytes, bytearray)):
            raise SnapshotFormatError(f"Report for {account!r} is not a byte string")
        reports[str(account)] = report_from_bytes(bytes(raw))
    return reports


__all__ = [
    "ALWAYS",
    "MAX_TIER",
    "MSGPACK_SUFFIXES",
    "NEVER",
    "NEVER_REPORT",
    "REPORT_BITS",
    "REPORT_BYTES",
    "REPORT_MASK",
    "ReportOutOfRange",
    "SNAPSHOT_SUFFIXES",
    "SNAPSHOT_VERSION",
    "SnapshotFormatError",
    "TIER_BITS",
    "TierOutOfRange",
    "TimestampOutOfRange",
    "check_report",
    "check_tier",
    "check_timestamp",
    "decode_report_table",
    "encode_report_table",
    "field_offset_for_tier",
    "report_from_bytes",
    "report_to_bytes",
]
