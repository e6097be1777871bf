"""Tests for the explicit read/write tier provider and its snapshots."""

from __future__ import annotations

import json
import logging
import sys
import threading
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tier_report.codec.report import tier_at_time_from_report  # noqa: E402
from tier_report.codec.report_common import (  # noqa: E402
    NEVER,
    NEVER_REPORT,
    SnapshotFormatError,
    TierOutOfRange,
    TimestampOutOfRange,
)
from tier_report.providers.base import (  # noqa: E402
    TIER_PROVIDER_INTERFACE_ID,
    ProviderConfig,
    TierProvider,
    supports_tier_provider,
)
from tier_report.providers.read_write import ReadWriteTierProvider, TierChange  # noqa: E402


class _Clock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock(1000)


@pytest.fixture
def provider(clock: _Clock) -> ReadWriteTierProvider:
    return ReadWriteTierProvider({"clock": clock})


def test_unknown_account_has_never_report(provider: ReadWriteTierProvider) -> None:
    assert provider.report("nobody") == NEVER_REPORT
    assert provider.report_time_for_tier("nobody", 0) == 0
    assert provider.report_time_for_tier("nobody", 1) == NEVER


def test_set_tier_moves_account_up_and_down(provider: ReadWriteTierProvider, clock: _Clock) -> None:
    change = provider.set_tier("alice", 3, data=b"kyc")

    assert change == TierChange("alice", 0, 3, 1000, b"kyc")
    assert [provider.report_time_for_tier("alice", tier) for tier in range(1, 5)] == [
        1000,
        1000,
        1000,
        NEVER,
    ]

    clock.now = 2000
    change = provider.set_tier("alice", 1)

    assert (change.start_tier, change.end_tier) == (3, 1)
    assert provider.report_time_for_tier("alice", 1) == 1000
    assert provider.report_time_for_tier("alice", 2) == NEVER

    clock.now = 3000
    change = provider.set_tier("alice", 2)

    assert change.start_tier == 1
    assert provider.report_time_for_tier("alice", 1) == 1000
    assert provider.report_time_for_tier("alice", 2) == 3000
    assert tier_at_time_from_report(provider.report("alice"), 3000) == 2


def test_set_tier_rejects_out_of_range_tier(provider: ReadWriteTierProvider) -> None:
    with pytest.raises(TierOutOfRange):
        provider.set_tier("alice", 9)
    assert provider.accounts() == []


def test_set_tier_rejects_clock_beyond_32_bits(clock: _Clock, provider: ReadWriteTierProvider) -> None:
    clock.now = NEVER + 1

    with pytest.raises(TimestampOutOfRange):
        provider.set_tier("alice", 1)


def test_set_tier_logs_tier_changes(
    provider: ReadWriteTierProvider, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="tier_report.providers.read_write"):
        provider.set_tier("bob", 2)

    assert "Tier change for bob: 0 -> 2 at 1000" in caplog.text


def test_concurrent_updates_are_not_lost(provider: ReadWriteTierProvider) -> None:
    accounts = [f"account-{index}" for index in range(16)]

    threads = [
        threading.Thread(target=provider.set_tier, args=(account, 1 + index % 8))
        for index, account in enumerate(accounts)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert provider.accounts() == sorted(accounts)
    for index, account in enumerate(accounts):
        assert tier_at_time_from_report(provider.report(account), 1000) == 1 + index % 8


@pytest.mark.parametrize("suffix", [".json", ".msgpack"])
def test_snapshot_roundtrip(provider: ReadWriteTierProvider, tmp_path: Path, suffix: str) -> None:
    provider.set_tier("alice", 3)
    provider.set_tier("bob", 8)
    path = tmp_path / f"tiers{suffix}"

    assert provider.save_snapshot(path) == path
    restored = ReadWriteTierProvider.load_snapshot(path)

    assert restored.accounts() == ["alice", "bob"]
    assert restored.report("alice") == provider.report("alice")
    assert restored.report("bob") == provider.report("bob")


def test_json_snapshot_layout(provider: ReadWriteTierProvider, tmp_path: Path) -> None:
    provider.set_tier("alice", 1)
    path = provider.save_snapshot(tmp_path / "tiers.json")

    blob = json.loads(path.read_text(encoding="utf-8"))

    assert blob["version"] == 1
    assert blob["reports"]["alice"].endswith("ff" * 28 + f"{1000:08x}")


def test_autosave_writes_after_each_change(clock: _Clock, tmp_path: Path) -> None:
    path = tmp_path / "state" / "tiers.json"
    provider = ReadWriteTierProvider({"clock": clock, "snapshot_path": path, "autosave": True})

    provider.set_tier("carol", 2)

    assert ReadWriteTierProvider.load_snapshot(path).report("carol") == provider.report("carol")


def test_unsupported_snapshot_suffix(provider: ReadWriteTierProvider, tmp_path: Path) -> None:
    with pytest.raises(SnapshotFormatError):
        provider.save_snapshot(tmp_path / "tiers.yaml")
    with pytest.raises(SnapshotFormatError):
        ReadWriteTierProvider.load_snapshot(tmp_path / "tiers.yaml")


def test_snapshot_version_is_checked(tmp_path: Path) -> None:
    path = tmp_path / "tiers.json"
    path.write_text(json.dumps({"version": 99, "reports": {}}), encoding="utf-8")

    with pytest.raises(SnapshotFormatError):
        ReadWriteTierProvider.load_snapshot(path)


def test_save_snapshot_requires_a_path(provider: ReadWriteTierProvider) -> None:
    with pytest.raises(ValueError):
        provider.save_snapshot()


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        ProviderConfig(autosave=True)
    with pytest.raises(TypeError):
        ReadWriteTierProvider({"unknown": 1})
    with pytest.raises(TypeError):
        ProviderConfig(clock=5)  # type: ignore[arg-type]


def test_provider_advertises_capability(provider: ReadWriteTierProvider) -> None:
    assert isinstance(provider, TierProvider)
    assert provider.supports_interface(TIER_PROVIDER_INTERFACE_ID)
    assert not provider.supports_interface(b"\x00\x00\x00\x00")
    assert supports_tier_provider(provider)
    assert not supports_tier_provider(object())
    assert len(TIER_PROVIDER_INTERFACE_ID) == 4


def test_failed_autosave_keeps_previous_report(clock: _Clock, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    provider = ReadWriteTierProvider(
        {"clock": clock, "snapshot_path": blocker / "tiers.json", "autosave": True}
    )

    with pytest.raises(OSError):
        provider.set_tier("alice", 3)

    assert provider.report("alice") == NEVER_REPORT
    assert provider.accounts() == []


def test_set_tier_succeeds_after_autosave_recovers(clock: _Clock, tmp_path: Path) -> None:
    blocker = tmp_path / "state"
    blocker.write_text("not a directory", encoding="utf-8")
    provider = ReadWriteTierProvider(
        {"clock": clock, "snapshot_path": blocker / "tiers.json", "autosave": True}
    )
    with pytest.raises(OSError):
        provider.set_tier("alice", 3)

    blocker.unlink()
    change = provider.set_tier("alice", 3)

    assert (change.start_tier, change.end_tier) == (0, 3)
    assert ReadWriteTierProvider.load_snapshot(blocker / "tiers.json").report("alice") == (
        provider.report("alice")
    )


@pytest.mark.parametrize("name", ["tiers.yaml", "tiers", "tiers.pkl"])
def test_config_rejects_unsupported_snapshot_suffix(tmp_path: Path, name: str) -> None:
    with pytest.raises(SnapshotFormatError):
        ProviderConfig(snapshot_path=tmp_path / name, autosave=True)
    with pytest.raises(SnapshotFormatError):
        ReadWriteTierProvider({"snapshot_path": tmp_path / name})
