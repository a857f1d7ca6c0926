"""
modules/planning/food_stop_selector.py
----------------------------------------
Food stops for an itinerary.  Two strategies, both bounded:

  Per-stop (curated catalogue available):
    For every visited pandal, fetch catalogue food places within ~500 m,
    keep those whose price range suits the budget tier, rank by rating
    (highest first) and keep the best one.  Results are merged in pandal
    order and de-duplicated by id.

  Along-route (no catalogue; provider Places search):
    Sample up to 3 evenly spaced points on the roadmap, search nearby
    restaurants at each, keep the first 3 candidates per sample point with a
    generic timing hint.  De-duplicated by place id.

Lookups run on a bounded thread pool.  ``Executor.map`` yields results in
submission order, so the merge never depends on completion order and
identical inputs give identical output.  Store errors propagate.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

import config
from db.stores import PandalStore
from errors import PlanCancelled
from modules.tool_usage.directions_client import DirectionsClient
from modules.tool_usage.request_context import RequestContext
from modules.validation import filter_valid, place_to_dict, validate_place_record
from schemas.route import FoodPlace, FoodStop, GeoPoint, PointOfInterest, RoadmapStep

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Budget tier → acceptable catalogue price ranges
BUDGET_PRICE_RANGES: dict[str, tuple[str, ...]] = {
    "low":    ("low",),
    "medium": ("low", "moderate"),
    "high":   ("low", "moderate", "expensive"),
}

ROUTE_SAMPLE_TIMING = "After 2-3 pandals"
_PLACES_KEYWORD = "restaurant food"


def compatible_price_ranges(budget_tier: str | None) -> tuple[str, ...]:
    key = budget_tier.strip().lower() if isinstance(budget_tier, str) else "medium"
    return BUDGET_PRICE_RANGES.get(key, BUDGET_PRICE_RANGES["medium"])


def sample_points(steps: Sequence[RoadmapStep], max_points: int) -> list[GeoPoint]:
    """
    Up to *max_points* evenly spaced points along the roadmap.

    The roadmap is cut into ``max_points + 1`` equal runs of steps; each
    sample is the start of a cut step (the end of the step before it).
    Fewer than two steps yields no samples.
    """
    if len(steps) < 2 or max_points <= 0:
        return []
    interval = max(1, len(steps) // (max_points + 1))
    return [steps[i - 1].end_location for i in range(interval, len(steps), interval)][:max_points]


def _dedupe(stops: list[FoodStop]) -> list[FoodStop]:
    seen: set[str] = set()
    unique: list[FoodStop] = []
    for stop in stops:
        if stop.id not in seen:
            seen.add(stop.id)
            unique.append(stop)
    return unique


class FoodStopSelector:
    """
    Args:
        food_store:  catalogue collaborator; enables the per-stop strategy.
        directions:  provider client; used for along-route sampling when no
                     catalogue is configured.
    """

    def __init__(
        self,
        food_store: Optional[PandalStore] = None,
        directions: Optional[DirectionsClient] = None,
        radius_km: float = 0.5,
        max_workers: int = 4,
        sample_count: int = 3,
        options_per_sample: int = 3,
    ) -> None:
        self.food_store = food_store
        self.directions = directions
        self.radius_km = radius_km
        self.max_workers = max(1, max_workers)
        self.sample_count = sample_count
        self.options_per_sample = options_per_sample

    @classmethod
    def from_config(
        cls,
        food_store: Optional[PandalStore] = None,
        directions: Optional[DirectionsClient] = None,
    ) -> "FoodStopSelector":
        return cls(
            food_store=food_store,
            directions=directions,
            radius_km=config.FOOD_SEARCH_RADIUS_KM,
            max_workers=config.FOOD_LOOKUP_WORKERS,
            sample_count=config.FOOD_MIDPOINT_SAMPLES,
            options_per_sample=config.FOOD_OPTIONS_PER_SAMPLE,
        )

    # ── Public ────────────────────────────────────────────────────────────────

    def select(
        self,
        pandals: Sequence[PointOfInterest],
        roadmap: Sequence[RoadmapStep],
        budget_tier: str | None,
        cuisine: Sequence[str] = (),
        ctx: Optional[RequestContext] = None,
    ) -> list[FoodStop]:
        if self.food_store is not None:
            return self.per_stop(pandals, budget_tier, ctx)
        if self.directions is not None:
            return self.along_route(roadmap, cuisine, ctx)
        return []

    def per_stop(
        self,
        pandals: Sequence[PointOfInterest],
        budget_tier: str | None,
        ctx: Optional[RequestContext] = None,
    ) -> list[FoodStop]:
        allowed = compatible_price_ranges(budget_tier)

        def best_near(pandal: PointOfInterest) -> list[FoodStop]:
            _check_cancelled(ctx)
            nearby = self.food_store.food_places_near(pandal.location, self.radius_km)
            candidates = [
                f for f in filter_valid(nearby, validate_place_record, to_dict=place_to_dict)
                if f.is_active and f.price_range in allowed
            ]
            ranked = sorted(candidates, key=lambda f: f.rating, reverse=True)
            return [_catalogue_stop(f) for f in ranked[:1]]

        picks = self._fan_out(best_near, pandals)
        return _dedupe([stop for group in picks for stop in group])

    def along_route(
        self,
        roadmap: Sequence[RoadmapStep],
        cuisine: Sequence[str] = (),
        ctx: Optional[RequestContext] = None,
    ) -> list[FoodStop]:
        points = sample_points(roadmap, self.sample_count)
        keyword = " ".join([*cuisine, _PLACES_KEYWORD])
        radius_m = int(round(self.radius_km * 1000))

        def options_near(point: GeoPoint) -> list[FoodStop]:
            places = self.directions.search_nearby_places(point, keyword, radius_m, ctx=ctx)
            return [
                FoodStop(
                    id=p.place_id,
                    name=p.name,
                    location=p.location,
                    rating=p.rating,
                    source="places",
                    timing=ROUTE_SAMPLE_TIMING,
                )
                for p in places[: self.options_per_sample]
            ]

        picks = self._fan_out(options_near, points)
        return _dedupe([stop for group in picks for stop in group])

    # ── Internals ─────────────────────────────────────────────────────────────

    def _fan_out(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        """Run *fn* over *items* on a bounded pool; results in input order."""
        if not items:
            return []
        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="food-lookup") as pool:
            return list(pool.map(fn, items))


def _check_cancelled(ctx: Optional[RequestContext]) -> None:
    if ctx is not None and ctx.cancelled:
        raise PlanCancelled("food stop lookup cancelled by caller")


def _catalogue_stop(place: FoodPlace) -> FoodStop:
    return FoodStop(
        id=place.id,
        name=place.name,
        location=place.location,
        rating=place.rating,
        price_range=place.price_range,
        source="catalogue",
    )
