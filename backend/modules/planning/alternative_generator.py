"""
modules/planning/alternative_generator.py
-------------------------------------------
Up to two heuristic alternates for a planned itinerary.

  1. Quick tour     — only when more than 3 pandals; the 3 best rated.
  2. Budget walking — only when the request is not already walking; the
                      first min(4, n) pandals in request order.

Alternates are placeholders: their time and distance are fixed estimates and
the provider is never called for them.  Generation is best-effort; any
failure is logged and whatever was built so far is returned.
"""

from __future__ import annotations

import logging
from typing import Sequence

from schemas.route import AlternateRoute, PointOfInterest

logger = logging.getLogger(__name__)

QUICK_TOUR_REASON     = "Quick tour with top-rated pandals"
BUDGET_WALKING_REASON = "Budget-friendly walking route"

_QUICK_TOUR_SIZE      = 3
_QUICK_TOUR_MINUTES   = 90
_QUICK_TOUR_KM        = 5.0
_BUDGET_WALK_SIZE     = 4
_BUDGET_WALK_MINUTES  = 120
_BUDGET_WALK_KM       = 3.0


class AlternateRouteGenerator:
    def generate(
        self, pandals: Sequence[PointOfInterest], transport_mode: str
    ) -> list[AlternateRoute]:
        alternates: list[AlternateRoute] = []
        try:
            if len(pandals) > _QUICK_TOUR_SIZE:
                # sorted() leaves the caller's order intact for the budget route
                top = sorted(pandals, key=lambda p: p.rating or 0.0, reverse=True)
                alternates.append(AlternateRoute(
                    pandal_ids=[p.id for p in top[:_QUICK_TOUR_SIZE]],
                    estimated_time_minutes=_QUICK_TOUR_MINUTES,
                    total_distance_km=_QUICK_TOUR_KM,
                    reason=QUICK_TOUR_REASON,
                ))

            if transport_mode != "walking":
                alternates.append(AlternateRoute(
                    pandal_ids=[p.id for p in pandals[:_BUDGET_WALK_SIZE]],
                    estimated_time_minutes=_BUDGET_WALK_MINUTES,
                    total_distance_km=_BUDGET_WALK_KM,
                    reason=BUDGET_WALKING_REASON,
                ))
        except Exception:
            logger.exception("Alternate route generation failed; returning %d alternates", len(alternates))
        return alternates
