"""Tier provider protocol, capability discovery and shared configuration."""

from __future__ import annotations

import abc
import dataclasses
import hashlib
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence, Type, TypeVar, Union, runtime_checkable

from ..codec.report import report_time_for_tier
from ..codec.report_common import SNAPSHOT_SUFFIXES, SnapshotFormatError

T = TypeVar("T")

TIER_PROVIDER_SIGNATURES = (
    "report(account,context)",
    "report_time_for_tier(account,tier,context)",
)


def interface_id(signatures: Sequence[str]) -> bytes:
    """XOR the four byte selectors of ``signatures`` into an interface id."""

    value = 0
    for signature in signatures:
        digest = hashlib.sha256(signature.encode("utf-8")).digest()
        value ^= int.from_bytes(digest[:4], "big")
    return value.to_bytes(4, "big")


TIER_PROVIDER_INTERFACE_ID = interface_id(TIER_PROVIDER_SIGNATURES)


@runtime_checkable
class TierProvider(Protocol):
    """Anything able to report tiers for an account."""

    def report(self, account: str, context: Sequence[int] = ()) -> int:
        ...

    def report_time_for_tier(
        self, account: str, tier: int, context: Sequence[int] = ()
    ) -> int:
        ...


def supports_tier_provider(candidate: object) -> bool:
    """Return ``True`` when ``candidate`` advertises and implements the protocol."""

    probe = getattr(candidate, "supports_interface", None)
    if not callable(probe):
        return False
    return bool(probe(TIER_PROVIDER_INTERFACE_ID)) and isinstance(candidate, TierProvider)


class BaseTierProvider(abc.ABC):
    """Shared plumbing for providers whose state is a report per account."""

    @abc.abstractmethod
    def report(self, account: str, context: Sequence[int] = ()) -> int:
        """Return the packed report for ``account``."""

    def report_time_for_tier(
        self, account: str, tier: int, context: Sequence[int] = ()
    ) -> int:
        return report_time_for_tier(self.report(account, context), tier)

    def supports_interface(self, candidate_id: bytes) -> bool:
        return bytes(candidate_id) == TIER_PROVIDER_INTERFACE_ID


@dataclass(frozen=True)
class ProviderConfig:
    """Runtime settings for storage-backed providers."""

    clock: Callable[[], float] = time.time
    snapshot_path: Optional[Path] = None
    autosave: bool = False

    def __post_init__(self) -> None:
        if not callable(self.clock):
            raise TypeError("clock must be callable")
        if self.snapshot_path is not None:
            object.__setattr__(self, "snapshot_path", Path(self.snapshot_path))
            if self.snapshot_path.suffix.lower() not in SNAPSHOT_SUFFIXES:
                raise SnapshotFormatError(f"Unsupported snapshot format: {self.snapshot_path}")
        if self.autosave and self.snapshot_path is None:
            raise ValueError("autosave requires snapshot_path")


def coerce_config(
    value: object,
    cls: Type[T],
    factory: Callable[[], T],
) -> T:
    """Return an instance of ``cls`` merging ``value`` with default fields.

    ``value`` may be ``None`` (defaults), an instance of ``cls`` or a
    dictionary overriding only some fields. ``factory`` is evaluated per call
    so defaults are never shared between instances.
    """

    if value is None:
        return factory()
    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        default = factory()
        init_fields = {field.name for field in dataclasses.fields(cls) if field.init}
        merged = {name: getattr(default, name) for name in init_fields}
        for key, val in value.items():
            if key not in init_fields:
                raise TypeError(f"Unknown {cls.__name__} field: {key!r}")
            merged[key] = val
        return cls(**merged)  # type: ignore[arg-type]
    raise TypeError(f"Expected {cls.__name__} or dict, got {type(value)!r}")


ConfigLike = Union[ProviderConfig, dict, None]

__all__ = [
    "BaseTierProvider",
    "ConfigLike",
    "ProviderConfig",
    "TIER_PROVIDER_INTERFACE_ID",
    "TIER_PROVIDER_SIGNATURES",
    "TierProvider",
    "coerce_config",
    "interface_id",
    "supports_tier_provider",
]
