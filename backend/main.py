"""
main.py
-------
Command-line entry point for the pandal route planner.

Usage:
    python main.py plan --request request.json --catalogue catalogue.json
    python main.py --timeout 15 plan --request request.json --db --trace
    python main.py reoptimize <route_id> --catalogue catalogue.json
    python main.py order --pandals p4 p1 p5 --priority shortest-time --hour 19 --catalogue catalogue.json
    python main.py geocode "Bagbazar Sarbojanin, Kolkata"

Every subcommand prints one JSON document to stdout.  Exit codes:
  0  success
  2  invalid request (every failing field is listed on stderr)
  3  pandal or route not found
  4  cancelled / other engine error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Optional

import config
from db.memory_store import InMemoryCatalogue
from errors import NotFoundError, RoutePlanningError, ValidationError
from modules.observability.logger import StructuredLogger
from modules.planning.route_planner import RoutePlanner
from modules.planning.stop_order_optimizer import PRIORITIES, SHORTEST_DISTANCE
from modules.tool_usage.directions_client import DirectionsClient
from modules.tool_usage.request_context import RequestContext

logger = logging.getLogger(__name__)


def _open_store(args: argparse.Namespace) -> Any:
    if args.db:
        from db.postgres_store import PostgresCatalogue
        return PostgresCatalogue()
    return InMemoryCatalogue.from_json(args.catalogue)


def _print_json(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")


def _event_log(args: argparse.Namespace) -> Optional[StructuredLogger]:
    return StructuredLogger() if (args.trace or config.EVENT_LOG_ENABLED) else None


def _build_planner(args: argparse.Namespace, event_log: Optional[StructuredLogger]) -> RoutePlanner:
    return RoutePlanner.from_config(
        pandal_store=_open_store(args),
        directions=DirectionsClient.from_config(),
        curated_food=not args.places_food,
        event_log=event_log,
    )


# ── Subcommands ────────────────────────────────────────────────────────────────

def cmd_plan(args: argparse.Namespace) -> int:
    with open(args.request, encoding="utf-8") as fh:
        payload = json.load(fh)

    event_log = _event_log(args)
    try:
        planner = _build_planner(args, event_log)
        route = planner.plan_route(payload, ctx=RequestContext(timeout_s=args.timeout))
    finally:
        if event_log is not None:
            event_log.close()

    _print_json(route.to_dict())
    return 0


def cmd_reoptimize(args: argparse.Namespace) -> int:
    event_log = _event_log(args)
    try:
        planner = _build_planner(args, event_log)
        route = planner.reoptimize_by_id(
            args.route_id, planner.pandal_store, ctx=RequestContext(timeout_s=args.timeout)
        )
    finally:
        if event_log is not None:
            event_log.close()

    _print_json(route.to_dict())
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    event_log = _event_log(args)
    try:
        planner = _build_planner(args, event_log)
        order = planner.order_stops(
            args.pandals,
            priority=args.priority,
            departure_hour=args.hour,
            transport_mode=args.mode,
            ctx=RequestContext(timeout_s=args.timeout),
        )
    finally:
        if event_log is not None:
            event_log.close()

    _print_json(order.to_dict())
    return 0


def cmd_geocode(args: argparse.Namespace) -> int:
    client = DirectionsClient.from_config()
    result = client.geocode_address(args.address, ctx=RequestContext(timeout_s=args.timeout))
    _print_json({**asdict(result), "success": result.success})
    return 0 if result.success else 4


# ── Argument parsing ───────────────────────────────────────────────────────────

def _add_store_args(p: argparse.ArgumentParser) -> None:
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--catalogue", help="JSON catalogue of pandals / food places / routes")
    source.add_argument("--db", action="store_true", help="Read the catalogue from PostgreSQL")
    p.add_argument(
        "--places-food",
        action="store_true",
        dest="places_food",
        help="Pick food stops with a provider search along the route instead of the catalogue",
    )
    p.add_argument("--trace", action="store_true", help=f"Write JSONL events under {config.LOGS_DIR}")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Plan pandal-hopping itineraries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline in seconds for provider calls (default: none)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="Plan a new itinerary")
    plan.add_argument("--request", required=True, help="Route request JSON file")
    _add_store_args(plan)
    plan.set_defaults(func=cmd_plan)

    reopt = sub.add_parser("reoptimize", help="Re-run directions for a saved itinerary")
    reopt.add_argument("route_id")
    _add_store_args(reopt)
    reopt.set_defaults(func=cmd_reoptimize)

    order = sub.add_parser("order", help="Order pandals locally by distance or time")
    order.add_argument("--pandals", nargs="+", required=True, help="Pandal ids; the first is the starting stop")
    order.add_argument("--priority", choices=PRIORITIES, default=SHORTEST_DISTANCE)
    order.add_argument("--hour", type=int, default=None, help="Departure hour 0-23 (default: now)")
    order.add_argument("--mode", choices=("walking", "car", "public-transport"), default="car")
    _add_store_args(order)
    order.set_defaults(func=cmd_order)

    geo = sub.add_parser("geocode", help="Resolve an address to coordinates")
    geo.add_argument("address")
    geo.set_defaults(func=cmd_geocode)

    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ValidationError as exc:
        for err in exc.errors:
            print(f"invalid request: {err}", file=sys.stderr)
        return 2
    except NotFoundError as exc:
        print(f"not found: {exc}", file=sys.stderr)
        return 3
    except RoutePlanningError as exc:
        logger.error("Request failed: %s", exc)
        return 4


if __name__ == "__main__":
    sys.exit(main())
