"""
modules/planning/route_scoring.py
-----------------------------------
Heuristic quality figures attached to an itinerary.

  optimization_score = clamp(75 − 3 · legs, 50, 95)

The score reflects route complexity only (number of provider legs); pandal
rating and crowd level are deliberately not part of it.  A fallback route
always has one leg and therefore scores 72.

Difficulty buckets:
  walking : Hard if > 8 km or > 6 stops, Medium if > 4 km or > 4 stops
  others  : Hard if > 10 stops,          Medium if > 6 stops
"""

from __future__ import annotations

_BASE_SCORE      = 75
_PENALTY_PER_LEG = 3
_MIN_SCORE       = 50
_MAX_SCORE       = 95

_BASE_TIPS = [
    "Start early to avoid crowds",
    "Keep phone charged for navigation",
    "Carry cash for food and transport",
]


class RouteScorer:
    def score(self, leg_count: int) -> int:
        raw = _BASE_SCORE - _PENALTY_PER_LEG * max(0, leg_count)
        return max(_MIN_SCORE, min(_MAX_SCORE, raw))

    def difficulty(self, total_distance_km: float, stop_count: int, transport_mode: str) -> str:
        if transport_mode == "walking":
            if total_distance_km > 8 or stop_count > 6:
                return "Hard"
            if total_distance_km > 4 or stop_count > 4:
                return "Medium"
            return "Easy"
        if stop_count > 10:
            return "Hard"
        if stop_count > 6:
            return "Medium"
        return "Easy"

    def tips(self, difficulty: str, include_food_stops: bool) -> list[str]:
        tips = list(_BASE_TIPS)
        if difficulty == "Hard":
            tips.append("Consider splitting into multiple days")
            tips.append("Take frequent breaks")
        if include_food_stops:
            tips.append("Try local Bengali cuisine at food stops")
        return tips
