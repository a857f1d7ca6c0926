"""
modules/validation/record_validator.py
----------------------------------------
Data-quality guards applied to catalogue records before they are used as
waypoints or food stops.

  Pandal / food place:
    ✓ Non-null coordinates
    ✓ Latitude in [-90, 90]
    ✓ Longitude in [-180, 180]
    ✓ Coordinates are not both exactly 0.0 (likely missing)
    ✓ Non-empty name
    ✓ Rating in [0, 5] if present

Usage:
    from modules.validation import validate_place_record, filter_valid

    clean = filter_valid(pandals, validate_place_record, to_dict=place_to_dict)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from errors import FieldError

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Every failed check, in check order.
        record: The input record (for logging purposes).
    """
    valid: bool
    errors: list[FieldError] = field(default_factory=list)
    record: Any = field(default=None, repr=False)

    def __bool__(self) -> bool:
        return self.valid


# ── Coordinate checks (shared with the request validator) ─────────────────────

def check_coordinates(
    prefix: str, lat: Any, lon: Any, errors: list[FieldError], allow_origin: bool = True
) -> None:
    """Append coordinate failures for *prefix* (e.g. "start_point") to *errors*."""
    if lat is None or lon is None:
        errors.append(FieldError(prefix, f"latitude/longitude are required (got lat={lat!r}, lon={lon!r})"))
        return
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        errors.append(FieldError(prefix, f"latitude/longitude must be numeric (got lat={lat!r}, lon={lon!r})"))
        return

    if not (-90.0 <= lat <= 90.0):
        errors.append(FieldError(f"{prefix}.latitude", f"{lat} is outside valid range [-90, 90]"))
    if not (-180.0 <= lon <= 180.0):
        errors.append(FieldError(f"{prefix}.longitude", f"{lon} is outside valid range [-180, 180]"))
    if not allow_origin and lat == 0.0 and lon == 0.0:
        errors.append(FieldError(prefix, "0.0, 0.0 is a missing/default location"))


# ── Catalogue record validation ───────────────────────────────────────────────

def validate_place_record(record: dict[str, Any]) -> ValidationResult:
    """
    Validate a pandal or food-place record.

    Expects the flat shape produced by place_to_dict():
    ``{"id", "name", "latitude", "longitude", "rating"}``.
    """
    errors: list[FieldError] = []

    check_coordinates("location", record.get("latitude"), record.get("longitude"),
                      errors, allow_origin=False)

    name = record.get("name", "")
    if not name or not str(name).strip():
        errors.append(FieldError("name", "must not be empty"))

    rating = record.get("rating")
    if rating is not None:
        try:
            r = float(rating)
            if not (0.0 <= r <= 5.0):
                errors.append(FieldError("rating", f"{r} is outside valid range [0, 5]"))
        except (TypeError, ValueError):
            errors.append(FieldError("rating", f"{rating!r} must be numeric"))

    return ValidationResult(valid=len(errors) == 0, errors=errors, record=record)


def place_to_dict(place: Any) -> dict[str, Any]:
    """Flatten a PointOfInterest / FoodPlace for validate_place_record()."""
    loc = getattr(place, "location", None)
    return {
        "id":        getattr(place, "id", None),
        "name":      getattr(place, "name", ""),
        "latitude":  getattr(loc, "latitude", None),
        "longitude": getattr(loc, "longitude", None),
        "rating":    getattr(place, "rating", None),
    }


# ── Batch filter helper ────────────────────────────────────────────────────────

def filter_valid(
    items: list[T],
    validator: Callable[[dict], ValidationResult],
    to_dict: Callable[[T], dict] | None = None,
) -> list[T]:
    """
    Apply a validator to every item in a list, return only the valid ones.

    Rejections are logged at WARNING with the failing checks; order of the
    surviving items is preserved.
    """
    valid_items: list[T] = []
    rejected = 0

    for item in items:
        record_dict = to_dict(item) if to_dict is not None else item
        result = validator(record_dict)
        if result.valid:
            valid_items.append(item)
        else:
            rejected += 1
            logger.warning(
                "Rejected record %r: %s",
                record_dict.get("name") or record_dict.get("id"),
                "; ".join(str(e) for e in result.errors),
            )

    if rejected:
        logger.warning("%d/%d records rejected; %d passed", rejected, len(items), len(valid_items))

    return valid_items
