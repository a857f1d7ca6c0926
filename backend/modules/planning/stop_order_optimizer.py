"""
modules/planning/stop_order_optimizer.py
------------------------------------------
Local visit ordering for a set of pandals, independent of the directions
provider's own waypoint reordering.

Algorithm (greedy nearest neighbour, first pandal is the fixed start):
  - From the current stop, pick the unvisited stop with the lowest hop score;
    ties go to the earlier stop in the input list.
  - Hop score, "shortest-distance": matrix distance in km, or
    Haversine km x 1.02 (road-condition allowance) when no matrix cell.
  - Hop score, "shortest-time": matrix travel minutes (traffic-aware for
    car) + visit minutes, or Haversine km at the time-of-day speed + visit
    minutes when no matrix cell.
  - Distance Matrix is requested only for ≤ STOP_ORDER_MATRIX_MAX_POINTS
    stops; a failed or non-OK cell falls back to the Haversine score for
    that hop only.

The result is fully determined by the stops, the priority and the
departure hour.  When no hour is given the current local hour is used.

Totals are always Haversine estimates over consecutive stops, with the
visit time added once per stop.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional, Sequence

import config
from errors import FieldError, ValidationError
from modules.tool_usage.directions_client import DirectionsClient
from modules.tool_usage.distance_tool import distance_km
from modules.tool_usage.request_context import RequestContext
from schemas.route import DistanceMatrix, OrderedStop, PointOfInterest, StopOrder

logger = logging.getLogger(__name__)

SHORTEST_DISTANCE = "shortest-distance"
SHORTEST_TIME = "shortest-time"
PRIORITIES = (SHORTEST_DISTANCE, SHORTEST_TIME)

_ROAD_ALLOWANCE = 1.02

# (first hour, last hour, km/h); first matching row wins, both ends inclusive.
# Speeds used to compare candidate hops.
_HOP_SPEEDS: list[tuple[int, int, float]] = [
    (8, 10, 12.0),    # morning rush
    (10, 12, 18.0),
    (12, 14, 16.0),   # lunch
    (14, 17, 20.0),
    (17, 21, 10.0),   # evening rush, pandal crowds
    (21, 23, 25.0),
]
_HOP_NIGHT_SPEED = 30.0
_LONG_HOP_KM = 5.0
_LONG_HOP_BONUS = 5.0

# Speeds used for the reported total time.
_TRIP_SPEEDS: list[tuple[int, int, float]] = [
    (8, 11, 15.0),
    (17, 20, 12.0),
]
_TRIP_NIGHT_SPEED = 35.0      # 22:00 to 06:59
_TRIP_DAY_SPEED = 22.0


def hop_speed_kmh(hour: int, km: float) -> float:
    """Average speed assumed when comparing a *km*-long hop at *hour*."""
    speed = next((s for lo, hi, s in _HOP_SPEEDS if lo <= hour <= hi), _HOP_NIGHT_SPEED)
    if km > _LONG_HOP_KM:
        speed += _LONG_HOP_BONUS
    return speed


def trip_speed_kmh(hour: int) -> float:
    """Average speed assumed for the whole ordered trip starting at *hour*."""
    for lo, hi, speed in _TRIP_SPEEDS:
        if lo <= hour <= hi:
            return speed
    if hour >= 22 or hour <= 6:
        return _TRIP_NIGHT_SPEED
    return _TRIP_DAY_SPEED


class StopOrderOptimizer:
    def __init__(
        self,
        directions: Optional[DirectionsClient] = None,
        matrix_max_points: int = 10,
        visit_minutes: int = 25,
    ) -> None:
        self.directions = directions
        self.matrix_max_points = matrix_max_points
        self.visit_minutes = visit_minutes

    @classmethod
    def from_config(cls, directions: Optional[DirectionsClient] = None) -> "StopOrderOptimizer":
        return cls(
            directions=directions,
            matrix_max_points=config.STOP_ORDER_MATRIX_MAX_POINTS,
            visit_minutes=config.PANDAL_VISIT_MINUTES,
        )

    def order(
        self,
        pandals: Sequence[PointOfInterest],
        priority: str = SHORTEST_DISTANCE,
        departure_hour: Optional[int] = None,
        transport_mode: str = "car",
        ctx: Optional[RequestContext] = None,
    ) -> StopOrder:
        """Order *pandals* for visiting; the first one stays first."""
        hour = datetime.now().hour if departure_hour is None else departure_hour
        self._check(priority, hour)

        matrix = None
        if 2 < len(pandals) <= self.matrix_max_points and self.directions is not None:
            matrix = self.directions.distance_matrix(
                [p.location for p in pandals], mode=transport_mode, ctx=ctx
            )

        indices = self._greedy(pandals, priority, hour, matrix)
        ordered = [pandals[i] for i in indices]
        result = self._summarise(ordered, priority, hour)
        result.used_matrix = matrix is not None
        logger.info(
            "Ordered %d pandals by %s%s: %.1f km, %d min",
            len(ordered), priority, " (distance matrix)" if matrix else "",
            result.total_distance_km, result.estimated_time_minutes,
        )
        return result

    # ── Scoring ───────────────────────────────────────────────────────────────

    def hop_score(
        self,
        current: PointOfInterest,
        candidate: PointOfInterest,
        priority: str,
        hour: int,
    ) -> float:
        """Haversine-based score for travelling *current* → *candidate*."""
        km = distance_km(current.location, candidate.location)
        if priority == SHORTEST_TIME:
            return km / hop_speed_kmh(hour, km) * 60 + self.visit_minutes
        return km * _ROAD_ALLOWANCE

    def _matrix_score(
        self, matrix: DistanceMatrix, i: int, j: int, priority: str
    ) -> Optional[float]:
        cell = matrix.element(i, j)
        if not cell.ok:
            return None
        if priority == SHORTEST_TIME:
            return cell.duration_seconds / 60 + self.visit_minutes
        return cell.distance_meters / 1000

    def _greedy(
        self,
        pandals: Sequence[PointOfInterest],
        priority: str,
        hour: int,
        matrix: Optional[DistanceMatrix],
    ) -> list[int]:
        if len(pandals) <= 2:
            return list(range(len(pandals)))

        route = [0]
        remaining = list(range(1, len(pandals)))
        while remaining:
            current = route[-1]
            best, best_score = remaining[0], math.inf
            for i in remaining:
                score = self._matrix_score(matrix, current, i, priority) if matrix else None
                if score is None:
                    score = self.hop_score(pandals[current], pandals[i], priority, hour)
                if score < best_score:
                    best, best_score = i, score
            route.append(best)
            remaining.remove(best)
        return route

    # ── Output ────────────────────────────────────────────────────────────────

    def _summarise(
        self, ordered: list[PointOfInterest], priority: str, hour: int
    ) -> StopOrder:
        hops = [distance_km(a.location, b.location) for a, b in zip(ordered, ordered[1:])]
        total_km = sum(hops)
        minutes = total_km / trip_speed_kmh(hour) * 60 + len(ordered) * self.visit_minutes

        stops = [
            OrderedStop(
                id=p.id,
                name=p.name,
                location=p.location,
                step=n + 1,
                distance_to_next_km=round(hops[n], 1) if n < len(hops) else None,
            )
            for n, p in enumerate(ordered)
        ]
        return StopOrder(
            stops=stops,
            priority=priority,
            departure_hour=hour,
            total_distance_km=round(total_km, 1),
            estimated_time_minutes=int(math.floor(minutes + 0.5)),
        )

    @staticmethod
    def _check(priority: str, hour: int) -> None:
        errors: list[FieldError] = []
        if priority not in PRIORITIES:
            errors.append(FieldError("priority", f"{priority!r} is not one of {', '.join(PRIORITIES)}"))
        if not isinstance(hour, int) or not 0 <= hour <= 23:
            errors.append(FieldError("departure_hour", f"{hour!r} is not an hour between 0 and 23"))
        if errors:
            raise ValidationError(errors)
