"""
schemas/route.py
----------------
Dataclass definitions for the route planning engine.

Input records (read-only, supplied by the catalogue store):
  PointOfInterest — a pandal
  FoodPlace       — a curated eatery

Provider shapes (produced by DirectionsClient):
  RouteGeometry / RouteLeg / RoadmapStep, PlaceCandidate, GeocodeResult,
  DistanceMatrix / MatrixElement

Output (built fresh per request, never shared):
  OptimizedRoute with its FoodStop / AlternateRoute / EstimatedCost parts;
  StopOrder / OrderedStop for local visit ordering.

Distances are metres on the wire and kilometres on the itinerary; durations
are seconds on the wire and minutes on the itinerary.  Money is a plain
number in one implicit currency.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


# ── Geography ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GeoPoint:
    """Latitude / longitude in degrees."""
    latitude: float
    longitude: float

    def as_param(self) -> str:
        """``"lat,lng"`` — the provider's coordinate format."""
        return f"{self.latitude},{self.longitude}"

    @classmethod
    def from_provider(cls, loc: dict) -> "GeoPoint":
        """Build from a provider ``{"lat": .., "lng": ..}`` object."""
        return cls(latitude=float(loc["lat"]), longitude=float(loc["lng"]))


# ── Catalogue records ─────────────────────────────────────────────────────────

@dataclass
class PointOfInterest:
    id: str
    name: str
    location: GeoPoint
    rating: float = 0.0
    crowd_level: str = "medium"          # low | medium | high
    opening_time: str = ""               # "HH:MM"
    closing_time: str = ""
    is_active: bool = True


@dataclass
class FoodPlace:
    id: str
    name: str
    location: GeoPoint
    rating: float = 0.0
    price_range: str = "low"             # low | moderate | expensive
    is_active: bool = True


# ── Provider results ──────────────────────────────────────────────────────────

@dataclass
class RoadmapStep:
    """One turn-by-turn instruction; HTML already stripped."""
    instruction: str
    distance_meters: int
    time_minutes: int
    end_location: GeoPoint


@dataclass
class RouteLeg:
    distance_meters: int
    duration_seconds: int
    steps: list[RoadmapStep] = field(default_factory=list)


@dataclass
class RouteGeometry:
    """
    Normalised directions result.

    ``used_fallback`` is True when the provider failed and the geometry is
    the local Haversine approximation; ``error`` then holds the provider's
    failure text.  Fallback geometry always has exactly one leg with one step.
    """
    distance_meters: int
    duration_seconds: int
    legs: list[RouteLeg] = field(default_factory=list)
    waypoint_order: list[int] = field(default_factory=list)
    used_fallback: bool = False
    error: Optional[str] = None
    note: str = ""

    @property
    def steps(self) -> list[RoadmapStep]:
        """All leg steps flattened in travel order."""
        return [step for leg in self.legs for step in leg.steps]


@dataclass
class PlaceCandidate:
    place_id: str
    name: str
    location: GeoPoint
    rating: Optional[float] = None
    types: list[str] = field(default_factory=list)
    vicinity: str = ""


@dataclass(frozen=True)
class MatrixElement:
    """One origin→destination cell; ``ok`` is False when the provider had no route."""
    ok: bool
    distance_meters: int = 0
    duration_seconds: int = 0             # duration_in_traffic when the provider gives it


@dataclass
class DistanceMatrix:
    """Square matrix over one point list: ``rows[i][j]`` is point i → point j."""
    rows: list[list[MatrixElement]] = field(default_factory=list)

    def element(self, origin: int, destination: int) -> MatrixElement:
        return self.rows[origin][destination]


@dataclass
class GeocodeResult:
    location: Optional[GeoPoint] = None
    formatted_address: str = ""
    place_id: str = ""
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.location is not None and self.error is None


# ── Itinerary output ──────────────────────────────────────────────────────────

@dataclass
class FoodStop:
    """
    A suggested food place.

    source: "catalogue" (per-pandal curated lookup) | "places" (provider search
    around a roadmap sample point).
    """
    id: str
    name: str
    location: GeoPoint
    rating: Optional[float] = None
    price_range: str = ""
    source: str = "catalogue"
    timing: str = ""


@dataclass
class AlternateRoute:
    """Heuristic placeholder; the figures are estimates, not provider-verified."""
    pandal_ids: list[str]
    estimated_time_minutes: int
    total_distance_km: float
    reason: str


@dataclass
class EstimatedCost:
    transport: int = 0
    food: int = 0

    @property
    def total(self) -> int:
        return self.transport + self.food


@dataclass
class OptimizedRoute:
    """
    Top-level output of the engine.

    total_distance_km, estimated_time_minutes, roadmap and optimization_score
    are written only by RouteAssembler.apply_geometry().
    """
    start_point: GeoPoint
    end_point: GeoPoint
    transport_mode: str
    pandals_covered: list[str] = field(default_factory=list)
    food_stops: list[FoodStop] = field(default_factory=list)
    roadmap: list[RoadmapStep] = field(default_factory=list)
    total_distance_km: float = 0.0
    estimated_time_minutes: int = 0
    optimization_score: int = 0
    estimated_cost: EstimatedCost = field(default_factory=EstimatedCost)
    alternate_routes: list[AlternateRoute] = field(default_factory=list)
    difficulty: str = ""
    tips: list[str] = field(default_factory=list)
    used_fallback: bool = False
    provider_error: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict; ``estimated_cost`` gains its derived ``total``."""
        out = asdict(self)
        out["estimated_cost"]["total"] = self.estimated_cost.total
        return out


# ── Stop ordering output ──────────────────────────────────────────────────────

@dataclass
class OrderedStop:
    """
    One pandal in a locally ordered visit list.

    ``distance_to_next_km`` is the straight-line hop to the following stop,
    rounded to 0.1 km; None on the last stop.
    """
    id: str
    name: str
    location: GeoPoint
    step: int
    distance_to_next_km: Optional[float] = None


@dataclass
class StopOrder:
    """Result of StopOrderOptimizer.order(); figures are Haversine estimates."""
    stops: list[OrderedStop]
    priority: str
    departure_hour: int
    total_distance_km: float = 0.0
    estimated_time_minutes: int = 0
    used_matrix: bool = False

    @property
    def stop_ids(self) -> list[str]:
        return [s.id for s in self.stops]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
