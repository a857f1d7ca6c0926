"""
modules/planning/route_planner.py
-----------------------------------
Pandal-hopping itinerary planner.

plan_route() pipeline, one request at a time, no state kept between calls:
  1. Validate the request (every failing field reported; no I/O yet).
  2. Resolve the selected pandals from the catalogue store: active records
     only, invalid coordinates dropped, request order kept.
     None left → NotFoundError.
  3. One directions call start → pandals → end (provider reorders stops;
     any provider failure becomes the Haversine fallback).
  4. Food stops, if requested (per-pandal catalogue lookup, or provider
     search along the roadmap when no catalogue is configured).
  5. Cost, score, difficulty and tips.
  6. Up to two heuristic alternates (best-effort).
  7. Assemble the OptimizedRoute.

reoptimize() re-runs step 3 only for a saved itinerary and overwrites its
distance, time, roadmap and score in place.

order_stops() is a separate, local operation: greedy nearest-neighbour
ordering of the resolved pandals (see stop_order_optimizer.py).

Each public call gets a request id; with an event log configured its JSONL
file is open only for the duration of that call.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence, Union

from db.stores import PandalStore, RouteStore
from errors import NotFoundError
from modules.observability.logger import EventEmitter, StructuredLogger
from modules.planning.alternative_generator import AlternateRouteGenerator
from modules.planning.cost_estimator import CostEstimator
from modules.planning.food_stop_selector import FoodStopSelector
from modules.planning.route_assembler import RouteAssembler
from modules.planning.route_scoring import RouteScorer
from modules.planning.stop_order_optimizer import SHORTEST_DISTANCE, StopOrderOptimizer
from modules.planning.waypoint_optimizer import RoadmapResult, WaypointOptimizer
from modules.tool_usage.directions_client import DirectionsClient
from modules.tool_usage.request_context import RequestContext
from modules.validation import RouteRequestValidator, filter_valid, place_to_dict, validate_place_record
from schemas.request import RouteRequest, parse_route_request
from schemas.route import GeocodeResult, OptimizedRoute, PointOfInterest, StopOrder

logger = logging.getLogger(__name__)


class RoutePlanner:
    """
    Wires the engine components together.

    Usage:
        planner = RoutePlanner.from_config(pandal_store=InMemoryCatalogue.from_json("catalogue.json"))
        route = planner.plan_route({
            "startPoint": {"latitude": 22.5726, "longitude": 88.3639},
            "endPoint":   {"latitude": 22.5448, "longitude": 88.3426},
            "selectedPandalIds": ["p1", "p2", "p3"],
            "transportMode": "car",
            "preferences": {"budget": "low"},
        })
    """

    def __init__(
        self,
        directions: DirectionsClient,
        pandal_store: PandalStore,
        food_selector: Optional[FoodStopSelector] = None,
        validator: Optional[RouteRequestValidator] = None,
        cost_estimator: Optional[CostEstimator] = None,
        scorer: Optional[RouteScorer] = None,
        alternates: Optional[AlternateRouteGenerator] = None,
        stop_order: Optional[StopOrderOptimizer] = None,
        event_log: Optional[StructuredLogger] = None,
    ) -> None:
        self.directions = directions
        self.pandal_store = pandal_store
        self.food_selector = food_selector or FoodStopSelector(food_store=pandal_store)
        self.validator = validator or RouteRequestValidator()
        self.cost_estimator = cost_estimator or CostEstimator()
        self.alternates = alternates or AlternateRouteGenerator()
        self.stop_order = stop_order or StopOrderOptimizer(directions)
        self.waypoints = WaypointOptimizer(directions)
        self.assembler = RouteAssembler(scorer or RouteScorer())
        self.event_log = event_log

    @classmethod
    def from_config(
        cls,
        pandal_store: PandalStore,
        directions: Optional[DirectionsClient] = None,
        curated_food: bool = True,
        event_log: Optional[StructuredLogger] = None,
    ) -> "RoutePlanner":
        """
        Build a planner from config.py settings.

        curated_food=False switches food stops to provider search along the
        roadmap instead of the store's curated food places.
        """
        directions = directions or DirectionsClient.from_config()
        selector = FoodStopSelector.from_config(
            food_store=pandal_store if curated_food else None,
            directions=directions,
        )
        return cls(
            directions=directions,
            pandal_store=pandal_store,
            food_selector=selector,
            validator=RouteRequestValidator.from_config(),
            stop_order=StopOrderOptimizer.from_config(directions),
            event_log=event_log,
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def plan_route(
        self,
        request: Union[RouteRequest, dict[str, Any]],
        ctx: Optional[RequestContext] = None,
        request_id: Optional[str] = None,
    ) -> OptimizedRoute:
        if not isinstance(request, RouteRequest):
            request = parse_route_request(request)
        self.validator.ensure_valid(request)

        request_id = request_id or f"plan_{uuid.uuid4().hex[:12]}"
        with self._events(request_id) as emit:
            emit("plan_start", {
                "pandals": len(request.selected_pandal_ids),
                "transport_mode": request.transport_mode,
                "include_food_stops": request.include_food_stops,
            })

            pandals = self.resolve_pandals(request.selected_pandal_ids)
            result = self.waypoints.optimize(
                request.start_point.to_geo(),
                request.end_point.to_geo(),
                pandals,
                request.transport_mode,
                ctx=ctx,
            )
            _note_fallback(emit, result)

            food_stops = []
            if request.include_food_stops:
                food_stops = self.food_selector.select(
                    pandals,
                    result.roadmap,
                    request.preferences.budget,
                    request.preferences.cuisine,
                    ctx=ctx,
                )
                emit("food_stops_selected", {"ids": [f.id for f in food_stops]})

            cost = self.cost_estimator.estimate(
                result.distance_meters,
                request.transport_mode,
                request.preferences.budget,
                len(food_stops),
            )
            alternates = self.alternates.generate(pandals, request.transport_mode)

            route = self.assembler.assemble(request, pandals, result, food_stops, cost, alternates)
            logger.info(
                "Planned %d pandals (%s): %.2f km, %d min, score %d%s",
                len(pandals), request.transport_mode, route.total_distance_km,
                route.estimated_time_minutes, route.optimization_score,
                " [fallback]" if route.used_fallback else "",
            )
            emit("plan_complete", {
                "total_distance_km": route.total_distance_km,
                "estimated_time_minutes": route.estimated_time_minutes,
                "optimization_score": route.optimization_score,
                "used_fallback": route.used_fallback,
            })
        return route

    def reoptimize(
        self,
        route: OptimizedRoute,
        ctx: Optional[RequestContext] = None,
        request_id: Optional[str] = None,
    ) -> OptimizedRoute:
        """Re-run the directions step for *route*'s pandals; mutates and returns it."""
        request_id = request_id or f"reopt_{route.id or uuid.uuid4().hex[:12]}"
        with self._events(request_id) as emit:
            pandals = self.resolve_pandals(route.pandals_covered)
            result = self.waypoints.optimize(
                route.start_point, route.end_point, pandals, route.transport_mode, ctx=ctx
            )
            _note_fallback(emit, result)
            self.assembler.apply_geometry(route, result)
            emit("reoptimize_complete", {
                "route_id": route.id,
                "total_distance_km": route.total_distance_km,
                "optimization_score": route.optimization_score,
            })
        return route

    def order_stops(
        self,
        pandal_ids: Sequence[str],
        priority: str = SHORTEST_DISTANCE,
        departure_hour: Optional[int] = None,
        transport_mode: str = "car",
        ctx: Optional[RequestContext] = None,
        request_id: Optional[str] = None,
    ) -> StopOrder:
        """
        Locally ordered visit list for *pandal_ids* (first id stays first).

        Uses the same pandal resolution as plan_route(); the directions
        provider is only consulted for its distance matrix.
        """
        request_id = request_id or f"order_{uuid.uuid4().hex[:12]}"
        with self._events(request_id) as emit:
            pandals = self.resolve_pandals(pandal_ids)
            order = self.stop_order.order(
                pandals,
                priority=priority,
                departure_hour=departure_hour,
                transport_mode=transport_mode,
                ctx=ctx,
            )
            emit("stops_ordered", {
                "ids": order.stop_ids,
                "priority": order.priority,
                "used_matrix": order.used_matrix,
            })
        return order

    def reoptimize_by_id(
        self,
        route_id: str,
        route_store: RouteStore,
        ctx: Optional[RequestContext] = None,
    ) -> OptimizedRoute:
        """Load, re-optimize and write back a saved itinerary."""
        route = route_store.get_route(route_id)
        if route is None:
            raise NotFoundError(f"Route {route_id!r} not found")
        self.reoptimize(route, ctx=ctx)
        route_store.save_route_metrics(route)
        return route

    def geocode(self, address: str, ctx: Optional[RequestContext] = None) -> GeocodeResult:
        return self.directions.geocode_address(address, ctx=ctx)

    def resolve_pandals(self, ids: Sequence[str]) -> list[PointOfInterest]:
        """
        Active, well-formed pandals for *ids*, in first-requested order.

        Repeated ids count once.  Raises NotFoundError when nothing resolves.
        """
        wanted = list(dict.fromkeys(ids))
        by_id = {p.id: p for p in self.pandal_store.get_pandals(wanted) if p.is_active}
        ordered = [by_id[i] for i in wanted if i in by_id]
        pandals = filter_valid(ordered, validate_place_record, to_dict=place_to_dict)
        if not pandals:
            raise NotFoundError("No valid pandals found")
        return pandals

    # ── Internals ─────────────────────────────────────────────────────────────

    @contextmanager
    def _events(self, request_id: str) -> Iterator[EventEmitter]:
        """Event emitter for one request; its log file is released on exit."""
        if self.event_log is None:
            yield _discard
            return
        with self.event_log.request_scope(request_id) as emit:
            yield emit


def _discard(event_type: str, payload: dict) -> None:
    pass


def _note_fallback(emit: EventEmitter, result: RoadmapResult) -> None:
    if result.used_fallback:
        emit("directions_fallback", {"error": result.geometry.error})
