"""In-memory tier provider whose tiers are set explicitly by the caller."""

from __future__ import annotations

import importlib.util
import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Sequence

from ..codec.report import tier_at_time_from_report, update_report_with_tier_at_time
from ..codec.report_common import (
    MSGPACK_SUFFIXES,
    NEVER_REPORT,
    SNAPSHOT_VERSION,
    SnapshotFormatError,
    check_report,
    check_tier,
    check_timestamp,
    decode_report_table,
    encode_report_table,
    report_to_bytes,
)
from .base import BaseTierProvider, ConfigLike, ProviderConfig, coerce_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierChange:
    """Outcome of a single :meth:`ReadWriteTierProvider.set_tier` call."""

    account: str
    start_tier: int
    end_tier: int
    timestamp: int
    data: bytes = b""


class ReadWriteTierProvider(BaseTierProvider):
    """Keep one report per account and move accounts between tiers on demand.

    Accounts without history report :data:`NEVER_REPORT`. Who is allowed to
    call :meth:`set_tier` is left to the caller.
    """

    def __init__(
        self,
        config: ConfigLike = None,
        reports: Mapping[str, int] | None = None,
    ) -> None:
        self.config = coerce_config(config, ProviderConfig, ProviderConfig)
        self._lock = threading.Lock()
        self._reports: Dict[str, int] = {}
        for account, report in (reports or {}).items():
            self._reports[str(account)] = check_report(int(report))

    def report(self, account: str, context: Sequence[int] = ()) -> int:
        with self._lock:
            return self._reports.get(account, NEVER_REPORT)

    def accounts(self) -> list[str]:
        with self._lock:
            return sorted(self._reports)

    def set_tier(self, account: str, end_tier: int, data: bytes = b"") -> TierChange:
        """Move ``account`` to ``end_tier`` as of the configured clock.

        With autosave enabled the change is only kept once the snapshot has
        been written.
        """

        check_tier(end_tier)
        timestamp = check_timestamp(int(self.config.clock()))
        with self._lock:
            report = self._reports.get(account, NEVER_REPORT)
            start_tier = tier_at_time_from_report(report, timestamp)
            updated = update_report_with_tier_at_time(report, start_tier, end_tier, timestamp)
            if self.config.autosave:
                pending = dict(self._reports)
                pending[account] = updated
                self._write_snapshot(self.config.snapshot_path, pending)
            self._reports[account] = updated
        logger.info(
            "Tier change for %s: %d -> %d at %d", account, start_tier, end_tier, timestamp
        )
        return TierChange(
            account=account,
            start_tier=start_tier,
            end_tier=end_tier,
            timestamp=timestamp,
            data=bytes(data),
        )

    def save_snapshot(self, path: Path | str | None = None) -> Path:
        """Persist every report to ``path`` (JSON or msgpack by suffix)."""

        target = Path(path) if path is not None else self.config.snapshot_path
        if target is None:
            raise ValueError("No snapshot path given and none configured")
        with self._lock:
            self._write_snapshot(target, self._reports)
        return target

    @staticmethod
    def _write_snapshot(path: Path, reports: Mapping[str, int]) -> None:
        suffix = path.suffix.lower()
        if suffix == ".json":
            payload = {"version": SNAPSHOT_VERSION, "reports": encode_report_table(reports)}
            data = json.dumps(payload, indent=2).encode("utf-8")
        elif suffix in MSGPACK_SUFFIXES:
            payload = {
                "version": SNAPSHOT_VERSION,
                "reports": {
                    account: report_to_bytes(report)
                    for account, report in sorted(reports.items())
                },
            }
            data = _msgpack().packb(payload, use_bin_type=True)
        else:
            raise SnapshotFormatError(f"Unsupported snapshot format: {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
        logger.debug("Wrote %d reports to %s", len(reports), path)

    @classmethod
    def load_snapshot(
        cls, path: Path | str, config: ConfigLike = None
    ) -> "ReadWriteTierProvider":
        """Rebuild a provider from a snapshot written by :meth:`save_snapshot`."""

        path = Path(path)
        suffix = path.suffix.lower()
        if suffix == ".json":
            with path.open("r", encoding="utf-8") as fh:
                blob = json.load(fh)
        elif suffix in MSGPACK_SUFFIXES:
            with path.open("rb") as fh:
                blob = _msgpack().unpack(fh, raw=False)
        else:
            raise SnapshotFormatError(f"Unsupported snapshot format: {path}")

        if not isinstance(blob, dict) or blob.get("version") != SNAPSHOT_VERSION:
            raise SnapshotFormatError(f"Unsupported snapshot version in {path}")
        reports = decode_report_table(blob.get("reports"))
        logger.debug("Loaded %d reports from %s", len(reports), path)
        return cls(config=config, reports=reports)


def _msgpack():
    if importlib.util.find_spec("msgpack") is None:  # pragma: no cover - deterministic import guard
        raise RuntimeError("Support for msgpack snapshots requires the 'msgpack' package")
    import msgpack  # type: ignore

    return msgpack


__all__ = ["ReadWriteTierProvider", "TierChange"]
