"""
modules/tool_usage/directions_client.py
-----------------------------------------
Google Maps Platform adapter: Directions, Distance Matrix, Geocoding and
Places Nearby Search.

Sole responsibility: talk to the provider over HTTP and return normalised
schemas.route objects.  No itinerary rules live here.

Failure policy (one policy for every caller):
  - get_directions() never raises for provider trouble.  Non-OK status,
    network error, timeout, malformed payload or a missing API key all
    produce a Haversine fallback geometry with ``used_fallback=True`` and the
    provider's error text in ``error``.  Waypoints are NOT part of the
    fallback: it is a single straight start→end step.
  - geocode_address() reports failures in GeocodeResult.error.
  - search_nearby_places() returns [] on failure.
  - distance_matrix() returns None on failure (callers estimate locally).
  - PlanCancelled (caller aborted via RequestContext) always propagates.

The client is constructed explicitly and passed to its consumers; the
credential is read once, in from_config().
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional, Sequence

import requests

import config
from errors import PlanCancelled, ProviderError
from modules.tool_usage.distance_tool import distance_km, fallback_minutes
from modules.tool_usage.instruction_text import strip_html
from modules.tool_usage.request_context import RequestContext
from schemas.route import (
    DistanceMatrix,
    GeocodeResult,
    GeoPoint,
    PlaceCandidate,
    MatrixElement,
    RoadmapStep,
    RouteGeometry,
    RouteLeg,
)

logger = logging.getLogger(__name__)

# Engine transport mode → Directions API travel mode
_PROVIDER_MODES: dict[str, str] = {
    "walking":          "walking",
    "car":              "driving",
    "public-transport": "transit",
}

FALLBACK_NOTE = "This is a fallback route. Google Maps API was unavailable."


# ---------------------------------------------------------------------------
# Response parsing (pure)
# ---------------------------------------------------------------------------

def _parse_step(step: dict) -> RoadmapStep:
    return RoadmapStep(
        instruction=strip_html(step.get("html_instructions", "")),
        distance_meters=int(step["distance"]["value"]),
        time_minutes=math.ceil(step["duration"]["value"] / 60),
        end_location=GeoPoint.from_provider(step["end_location"]),
    )


def parse_directions_response(data: dict) -> RouteGeometry:
    """
    Convert a ``status == "OK"`` Directions payload into a RouteGeometry.

    Only ``routes[0]`` is used.  Leg totals come from each leg's own
    ``distance.value`` / ``duration.value``; the route totals are their sums.
    """
    route = data["routes"][0]
    legs = [
        RouteLeg(
            distance_meters=int(leg["distance"]["value"]),
            duration_seconds=int(leg["duration"]["value"]),
            steps=[_parse_step(s) for s in leg.get("steps", [])],
        )
        for leg in route["legs"]
    ]
    return RouteGeometry(
        distance_meters=sum(leg.distance_meters for leg in legs),
        duration_seconds=sum(leg.duration_seconds for leg in legs),
        legs=legs,
        waypoint_order=list(route.get("waypoint_order", [])),
    )


def _parse_element(cell: dict) -> MatrixElement:
    if cell.get("status") != "OK":
        return MatrixElement(ok=False)
    duration = cell.get("duration_in_traffic") or cell["duration"]
    return MatrixElement(
        ok=True,
        distance_meters=int(cell["distance"]["value"]),
        duration_seconds=int(duration["value"]),
    )


def parse_distance_matrix(data: dict, size: int) -> DistanceMatrix:
    """
    Convert a ``status == "OK"`` Distance Matrix payload for *size* points
    (same list as origins and destinations) into a DistanceMatrix.

    Raises ValueError unless the payload is exactly size x size.
    """
    rows = data["rows"]
    if len(rows) != size or any(len(r["elements"]) != size for r in rows):
        raise ValueError(f"expected a {size}x{size} matrix")
    return DistanceMatrix(rows=[[_parse_element(c) for c in r["elements"]] for r in rows])


def _parse_place(place: dict) -> PlaceCandidate:
    return PlaceCandidate(
        place_id=place["place_id"],
        name=place.get("name", ""),
        location=GeoPoint.from_provider(place["geometry"]["location"]),
        rating=place.get("rating"),
        types=list(place.get("types", [])),
        vicinity=place.get("vicinity", ""),
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class DirectionsClient:
    """
    Thin HTTP client over the Google Maps web services.

    Args:
        api_key:          provider credential; empty → every call fails fast.
        base_url:         e.g. ``https://maps.googleapis.com/maps/api``.
        timeout_s:        per-call HTTP timeout (capped by the RequestContext).
        session:          anything with a requests-compatible ``get()``.
        fallback_minutes_per_km: pace for the fallback duration estimate.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api",
        timeout_s: float = 10.0,
        session: Optional[Any] = None,
        fallback_minutes_per_km: float = 12.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.fallback_minutes_per_km = fallback_minutes_per_km
        self._session = session if session is not None else requests.Session()

        if not self.api_key:
            logger.warning(
                "Google Maps API key not set; directions will use the Haversine fallback"
            )

    @classmethod
    def from_config(cls, session: Optional[Any] = None) -> "DirectionsClient":
        return cls(
            api_key=config.GOOGLE_MAPS_API_KEY,
            base_url=config.GOOGLE_MAPS_BASE_URL,
            timeout_s=config.PROVIDER_TIMEOUT_S,
            session=session,
            fallback_minutes_per_km=config.FALLBACK_MINUTES_PER_KM,
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def get_directions(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        waypoints: Sequence[GeoPoint] = (),
        mode: str = "walking",
        ctx: Optional[RequestContext] = None,
    ) -> RouteGeometry:
        """
        Directions from *origin* to *destination* through *waypoints*.

        With waypoints, the provider is asked to reorder them
        (``optimize:true``); the engine never reorders stops itself.
        """
        params: dict[str, Any] = {
            "origin":      origin.as_param(),
            "destination": destination.as_param(),
            "mode":        _PROVIDER_MODES.get(mode, mode),
        }
        if waypoints:
            params["waypoints"] = "optimize:true|" + "|".join(w.as_param() for w in waypoints)

        try:
            data = self._get("directions/json", params, ctx, "directions")
            status = data.get("status")
            if status != "OK":
                raise ProviderError(f"Directions API error: {status}", status=status)
            try:
                return parse_directions_response(data)
            except (KeyError, IndexError, TypeError, ValueError) as exc:
                raise ProviderError(f"Malformed directions response: {exc!r}") from exc
        except ProviderError as exc:
            logger.warning("Directions failed (%s); using Haversine fallback", exc)
            return self.fallback_route(origin, destination, error=str(exc))

    def geocode_address(
        self, address: str, ctx: Optional[RequestContext] = None
    ) -> GeocodeResult:
        try:
            data = self._get("geocode/json", {"address": address}, ctx, "geocoding")
            status = data.get("status")
            results = data.get("results") or []
            if status != "OK" or not results:
                raise ProviderError(f"Geocoding failed: {status}", status=status)
            first = results[0]
            return GeocodeResult(
                location=GeoPoint.from_provider(first["geometry"]["location"]),
                formatted_address=first.get("formatted_address", ""),
                place_id=first.get("place_id", ""),
            )
        except ProviderError as exc:
            logger.warning("Geocoding %r failed: %s", address, exc)
            return GeocodeResult(error=str(exc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Geocoding %r returned a malformed payload: %r", address, exc)
            return GeocodeResult(error=f"Malformed geocoding response: {exc!r}")

    def search_nearby_places(
        self,
        location: GeoPoint,
        keyword: str = "",
        radius_m: int = 1000,
        ctx: Optional[RequestContext] = None,
    ) -> list[PlaceCandidate]:
        params = {
            "location": location.as_param(),
            "radius":   radius_m,
            "keyword":  keyword,
        }
        try:
            data = self._get("place/nearbysearch/json", params, ctx, "places")
            status = data.get("status")
            if status == "ZERO_RESULTS":
                return []
            if status != "OK":
                raise ProviderError(f"Places API error: {status}", status=status)
            return [_parse_place(p) for p in data.get("results", [])]
        except ProviderError as exc:
            logger.warning("Places search near %s failed: %s", location.as_param(), exc)
            return []
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Places search returned a malformed payload: %r", exc)
            return []

    def distance_matrix(
        self,
        points: Sequence[GeoPoint],
        mode: str = "car",
        ctx: Optional[RequestContext] = None,
    ) -> Optional[DistanceMatrix]:
        """
        Every-to-every travel distance and duration over *points*.

        Driving requests ask for live traffic (``departure_time=now``) and the
        cells then carry ``duration_in_traffic``.  Any provider trouble,
        including a wrongly sized payload, returns None.
        """
        coords = "|".join(p.as_param() for p in points)
        provider_mode = _PROVIDER_MODES.get(mode, mode)
        params: dict[str, Any] = {
            "origins":      coords,
            "destinations": coords,
            "mode":         provider_mode,
        }
        if provider_mode == "driving":
            params["departure_time"] = "now"
            params["traffic_model"] = "optimistic"

        try:
            data = self._get("distancematrix/json", params, ctx, "distance matrix")
            status = data.get("status")
            if status != "OK":
                raise ProviderError(f"Distance Matrix API error: {status}", status=status)
            return parse_distance_matrix(data, len(points))
        except ProviderError as exc:
            logger.warning("Distance matrix for %d points failed: %s", len(points), exc)
            return None
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Distance matrix returned a malformed payload: %r", exc)
            return None

    def fallback_route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        error: Optional[str] = None,
    ) -> RouteGeometry:
        """
        Straight-line start→end approximation.

        Distance is the Haversine great-circle distance; duration uses the
        walking pace for every transport mode.  Intermediate waypoints are
        ignored, so the result is always one leg with one step.
        """
        km = distance_km(origin, destination)
        minutes = fallback_minutes(km, self.fallback_minutes_per_km)
        meters = int(round(km * 1000))
        step = RoadmapStep(
            instruction=f"Walk from start to destination (approximately {km:.1f} km)",
            distance_meters=meters,
            time_minutes=minutes,
            end_location=destination,
        )
        return RouteGeometry(
            distance_meters=meters,
            duration_seconds=minutes * 60,
            legs=[RouteLeg(distance_meters=meters, duration_seconds=minutes * 60, steps=[step])],
            used_fallback=True,
            error=error,
            note=FALLBACK_NOTE,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _get(
        self,
        path: str,
        params: dict[str, Any],
        ctx: Optional[RequestContext],
        operation: str,
    ) -> dict:
        """GET ``{base_url}/{path}``; every failure surfaces as ProviderError."""
        if ctx is not None:
            ctx.check(operation)
        if not self.api_key:
            raise ProviderError("Google Maps API key not configured", status="REQUEST_DENIED")

        timeout = ctx.timeout_for(self.timeout_s) if ctx is not None else self.timeout_s
        url = f"{self.base_url}/{path}"
        try:
            response = self._session.get(
                url, params={**params, "key": self.api_key}, timeout=timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as exc:
            raise ProviderError(f"{operation} request timed out: {exc}", status="TIMEOUT") from exc
        except requests.RequestException as exc:
            raise ProviderError(f"{operation} request failed: {exc}", status="NETWORK_ERROR") from exc
        except ValueError as exc:
            raise ProviderError(f"{operation} returned invalid JSON: {exc}") from exc

        if ctx is not None and ctx.cancelled:
            raise PlanCancelled(f"{operation} cancelled by caller")
        if not isinstance(data, dict):
            raise ProviderError(f"{operation} returned an unexpected payload")
        return data
