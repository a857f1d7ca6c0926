"""
modules/planning/waypoint_optimizer.py
----------------------------------------
One directions call per plan: start → pandals (as waypoints) → end.

Stop ordering is delegated to the provider (``optimize:true``); pandals are
passed in the order they were requested and never pre-sorted here.  The
provider legs are summed and their steps flattened into the roadmap:

  total_distance_km       = Σ leg.distance_meters / 1000
  estimated_time_minutes  = ⌈Σ leg.duration_seconds / 60⌉

If the provider fails, DirectionsClient hands back its single-step fallback
and the same arithmetic applies to it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from errors import NotFoundError
from modules.tool_usage.directions_client import DirectionsClient
from modules.tool_usage.request_context import RequestContext
from schemas.route import GeoPoint, PointOfInterest, RoadmapStep, RouteGeometry


@dataclass
class RoadmapResult:
    geometry: RouteGeometry
    distance_meters: int
    total_distance_km: float
    estimated_time_minutes: int
    roadmap: list[RoadmapStep]

    @property
    def leg_count(self) -> int:
        return len(self.geometry.legs)

    @property
    def used_fallback(self) -> bool:
        return self.geometry.used_fallback


class WaypointOptimizer:
    def __init__(self, directions: DirectionsClient) -> None:
        self.directions = directions

    def optimize(
        self,
        start: GeoPoint,
        end: GeoPoint,
        pandals: Sequence[PointOfInterest],
        transport_mode: str,
        ctx: Optional[RequestContext] = None,
    ) -> RoadmapResult:
        if not pandals:
            raise NotFoundError("No valid pandals found")

        waypoints = [p.location for p in pandals]
        geometry = self.directions.get_directions(start, end, waypoints, transport_mode, ctx=ctx)

        meters = sum(leg.distance_meters for leg in geometry.legs)
        seconds = sum(leg.duration_seconds for leg in geometry.legs)
        return RoadmapResult(
            geometry=geometry,
            distance_meters=meters,
            total_distance_km=meters / 1000,
            estimated_time_minutes=math.ceil(seconds / 60),
            roadmap=geometry.steps,
        )
