"""
modules/planning/cost_estimator.py
------------------------------------
Deterministic trip cost estimate for one itinerary.

  transport = walking          → 0
              car              → ⌈km × 8⌉
              public-transport → ⌈min(50, km × 2)⌉   (per-km fare, hard cap)
  food      = per-stop cost for the budget tier × number of food stops
              low → 80 · medium → 150 · high → 300 · anything else → medium
  total     = transport + food

All amounts are whole units of one implicit currency, rounded up.
"""

from __future__ import annotations

import math

from schemas.route import EstimatedCost

# ── Rates ─────────────────────────────────────────────────────────────────────
_CAR_RATE_PER_KM     = 8      # fuel
_TRANSIT_RATE_PER_KM = 2
_TRANSIT_FARE_CAP    = 50

FOOD_COST_PER_STOP: dict[str, int] = {
    "low":    80,
    "medium": 150,
    "high":   300,
}
_DEFAULT_TIER = "medium"


def _ceil(amount: float) -> int:
    # round first so 80.00000000001 from float noise is not charged as 81
    return int(math.ceil(round(amount, 6)))


def transport_cost(distance_meters: float, mode: str) -> int:
    km = distance_meters / 1000.0
    if mode == "car":
        return _ceil(km * _CAR_RATE_PER_KM)
    if mode == "public-transport":
        return _ceil(min(_TRANSIT_FARE_CAP, km * _TRANSIT_RATE_PER_KM))
    return 0


def food_cost(budget_tier: str | None) -> int:
    """Per-stop food cost; unknown or missing tiers cost the same as medium."""
    key = budget_tier.strip().lower() if isinstance(budget_tier, str) else _DEFAULT_TIER
    return FOOD_COST_PER_STOP.get(key, FOOD_COST_PER_STOP[_DEFAULT_TIER])


class CostEstimator:
    def estimate(
        self,
        distance_meters: float,
        mode: str,
        budget_tier: str | None,
        stop_count: int,
    ) -> EstimatedCost:
        return EstimatedCost(
            transport=transport_cost(distance_meters, mode),
            food=food_cost(budget_tier) * max(0, stop_count),
        )
