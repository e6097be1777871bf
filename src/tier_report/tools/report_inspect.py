"""Inspect and update packed tier reports from the command line.

Example
-------
tier-report inspect 0xffffffff...000003e8 --at 1500
tier-report update never --from 0 --to 3 --at 1000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, Optional

from ..codec.report import TierReport, update_report_with_tier_at_time
from ..codec.report_common import ALWAYS, MAX_TIER, NEVER, NEVER_REPORT

logger = logging.getLogger(__name__)

_NAMED_WORDS = {"never": NEVER_REPORT, "always": ALWAYS}


class InspectError(ValueError):
    """Raised when a command line argument cannot be interpreted."""


def parse_word(text: str) -> int:
    """Parse ``never``, ``always``, a ``0x`` hex string or a decimal integer."""

    lowered = text.strip().lower()
    if lowered in _NAMED_WORDS:
        return _NAMED_WORDS[lowered]
    try:
        return int(lowered, 16) if lowered.startswith("0x") else int(lowered, 10)
    except ValueError as exc:
        raise InspectError(f"Cannot parse report word {text!r}") from exc


def format_word(word: int) -> str:
    return f"0x{word:064x}"


def describe(report: TierReport, at: Optional[int] = None) -> dict:
    tiers = {
        str(tier): (None if report.tier_timestamp(tier) == NEVER else report.tier_timestamp(tier))
        for tier in range(1, MAX_TIER + 1)
    }
    description = {"word": format_word(report.to_word()), "tiers": tiers}
    if at is not None:
        description["tier_at"] = report.tier_at_time(at)
    return description


def render(description: dict) -> str:
    lines = [f"report {description['word']}"]
    for tier, timestamp in description["tiers"].items():
        lines.append(f"  tier {tier}: {'never' if timestamp is None else timestamp}")
    if "tier_at" in description:
        lines.append(f"tier held: {description['tier_at']}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tier-report",
        description="Decode and update packed tier reports",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each operation at INFO level",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    inspect = commands.add_parser("inspect", help="Print the timestamp of every tier")
    inspect.add_argument("word", help="Report word: never, always, 0x-hex or decimal")
    inspect.add_argument(
        "--at",
        type=int,
        default=None,
        help="Also print the tier held continuously since this timestamp",
    )
    inspect.add_argument("--json", action="store_true", help="Emit JSON instead of text")

    update = commands.add_parser("update", help="Move a report between tiers")
    update.add_argument("word", help="Report word: never, always, 0x-hex or decimal")
    update.add_argument("--from", dest="start_tier", type=int, required=True, help="Tier currently held")
    update.add_argument("--to", dest="end_tier", type=int, required=True, help="Tier to move to")
    update.add_argument("--at", type=int, required=True, help="Timestamp of the change")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(None if argv is None else list(argv))
    if args.verbose and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    try:
        word = parse_word(args.word)
        if args.command == "inspect":
            report = TierReport.from_word(word)
            description = describe(report, args.at)
            logger.info("Decoded %s", description["word"])
            print(json.dumps(description, indent=2) if args.json else render(description))
            return 0

        updated = update_report_with_tier_at_time(word, args.start_tier, args.end_tier, args.at)
        logger.info(
            "Moved report from tier %d to %d at %d", args.start_tier, args.end_tier, args.at
        )
        print(format_word(updated))
        return 0
    except ValueError as exc:
        print(f"tier-report: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main(sys.argv[1:]))
