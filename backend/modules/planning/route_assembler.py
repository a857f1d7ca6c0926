"""
modules/planning/route_assembler.py
-------------------------------------
Composes the engine's partial results into an OptimizedRoute.

apply_geometry() is the only writer of the provider-derived fields
(distance, time, roadmap, score and the fallback diagnostics); both a fresh
plan and a re-optimize go through it.
"""

from __future__ import annotations

from typing import Sequence

from modules.planning.route_scoring import RouteScorer
from modules.planning.waypoint_optimizer import RoadmapResult
from schemas.request import RouteRequest
from schemas.route import (
    AlternateRoute,
    EstimatedCost,
    FoodStop,
    OptimizedRoute,
    PointOfInterest,
)


class RouteAssembler:
    def __init__(self, scorer: RouteScorer) -> None:
        self.scorer = scorer

    def apply_geometry(self, route: OptimizedRoute, result: RoadmapResult) -> OptimizedRoute:
        route.total_distance_km = result.total_distance_km
        route.estimated_time_minutes = result.estimated_time_minutes
        route.roadmap = list(result.roadmap)
        route.optimization_score = self.scorer.score(result.leg_count)
        route.used_fallback = result.used_fallback
        route.provider_error = result.geometry.error
        return route

    def assemble(
        self,
        request: RouteRequest,
        pandals: Sequence[PointOfInterest],
        result: RoadmapResult,
        food_stops: list[FoodStop],
        cost: EstimatedCost,
        alternates: list[AlternateRoute],
    ) -> OptimizedRoute:
        route = OptimizedRoute(
            start_point=request.start_point.to_geo(),
            end_point=request.end_point.to_geo(),
            transport_mode=request.transport_mode,
            pandals_covered=[p.id for p in pandals],
            food_stops=list(food_stops),
            estimated_cost=cost,
            alternate_routes=list(alternates),
        )
        self.apply_geometry(route, result)
        route.difficulty = self.scorer.difficulty(
            route.total_distance_km, len(pandals), request.transport_mode
        )
        route.tips = self.scorer.tips(route.difficulty, request.include_food_stops)
        return route
