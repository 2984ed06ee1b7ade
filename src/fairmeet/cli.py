"""
FairMeet CLI entrypoint.

This CLI is intended for quick local demos and debugging without a map UI.
It delegates all search logic to `fairmeet.engine.planner.MeetPlanner`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from fairmeet.config.settings import get_settings
from fairmeet.core.logging import configure_logging
from fairmeet.core.quota import build_quota_guard
from fairmeet.domain.models import KNOWN_CATEGORIES, Point
from fairmeet.domain.session import MeetSession
from fairmeet.engine.engine import build_result_cache
from fairmeet.engine.planner import build_planner
from fairmeet.scoring.explain import one_line_summary


def _parse_party(value: str) -> tuple[str | None, Point]:
    """Parse `[LABEL=]LAT,LNG` into an optional label and a point."""
    label: str | None = None
    coords = value
    if "=" in value:
        label, coords = value.split("=", 1)
        label = label.strip() or None
    parts = [p.strip() for p in coords.split(",")]
    if len(parts) != 2:
        raise ValueError(f"Invalid --party '{value}', expected [LABEL=]LAT,LNG")
    return label, Point(lat=float(parts[0]), lng=float(parts[1]))


def _build_session(party_args: list[str]) -> MeetSession:
    session = MeetSession()
    parsed = [_parse_party(p) for p in party_args]
    for i, (label, point) in enumerate(parsed):
        if i < len(session.parties):
            party = session.parties[i]
            if label:
                party = session.rename_party(party.id, label)
        else:
            party = session.add_party(label)
        session.update_position(party.id, point)
    return session


def _cmd_meet(args: argparse.Namespace) -> int:
    """Handle the `meet` subcommand."""
    settings = get_settings()
    session = _build_session(args.party)
    planner = build_planner(settings, quota=build_quota_guard(settings), cache=build_result_cache(settings))

    result = asyncio.run(planner.plan(session.parties, args.category))

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    labels = {p.id: p.label for p in session.parties}
    print(f"Generated at: {result.generated_at.isoformat()}  status={result.status}")
    if not result.results:
        print("No venues found.")
        return 0
    for i, venue in enumerate(result.results, start=1):
        print(f"{i:>2}. {venue.name} ({venue.vicinity or venue.place_id})  {one_line_summary(venue)}")
        for sample in venue.travel_times:
            who = labels.get(sample.party_id or "", sample.party_id)
            print(f"    - {who}: {sample.duration_seconds / 60:.0f} min, {sample.distance_meters / 1000:.1f} km")
    return 0


def _cmd_quota(_: argparse.Namespace) -> int:
    settings = get_settings()
    print(json.dumps(build_quota_guard(settings).status(), ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the FairMeet CLI."""
    parser = argparse.ArgumentParser(prog="fairmeet")
    sub = parser.add_subparsers(dest="command", required=True)

    meet = sub.add_parser("meet", help="Rank venues by how fairly they split travel time.")
    meet.add_argument(
        "--party",
        action="append",
        required=True,
        help="Repeatable. [LABEL=]LAT,LNG (e.g. You=40.7128,-74.0060)",
    )
    meet.add_argument(
        "--category",
        default="dining",
        help=f"One of {', '.join(KNOWN_CATEGORIES)} or a provider place type.",
    )
    meet.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    meet.set_defaults(func=_cmd_meet)

    q = sub.add_parser("quota", help="Show today's search usage and the expiry date.")
    q.set_defaults(func=_cmd_quota)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m fairmeet.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
