"""
modules/validation/route_validator.py
---------------------------------------
Well-formedness checks for a RouteRequest.  Runs before any store or
provider call and never short-circuits: every failing field is reported.

Checks, in order:
  1. start_point coordinates present and in range
  2. end_point coordinates present and in range
  3. transport_mode ∈ {walking, car, public-transport}
  4. selected_pandal_ids non-empty
  5. len(selected_pandal_ids) ≤ 8 when walking, ≤ 15 otherwise
"""

from __future__ import annotations

import config
from errors import FieldError, ValidationError
from modules.validation.record_validator import ValidationResult, check_coordinates
from schemas.request import RouteRequest, TransportMode

_MODES = [m.value for m in TransportMode]


class RouteRequestValidator:
    def __init__(self, max_walking: int = 8, max_other: int = 15) -> None:
        self.max_walking = max_walking
        self.max_other = max_other

    @classmethod
    def from_config(cls) -> "RouteRequestValidator":
        return cls(max_walking=config.MAX_PANDALS_WALKING, max_other=config.MAX_PANDALS_OTHER)

    def max_pandals(self, transport_mode: str) -> int:
        return self.max_walking if transport_mode == TransportMode.walking.value else self.max_other

    def validate(self, request: RouteRequest) -> ValidationResult:
        errors: list[FieldError] = []

        for name in ("start_point", "end_point"):
            point = getattr(request, name)
            if point is None:
                errors.append(FieldError(name, "is required"))
            else:
                check_coordinates(name, point.latitude, point.longitude, errors)

        if request.transport_mode not in _MODES:
            errors.append(FieldError(
                "transport_mode",
                f"{request.transport_mode!r} is not one of {', '.join(_MODES)}",
            ))

        ids = request.selected_pandal_ids
        if not ids:
            errors.append(FieldError("selected_pandal_ids", "at least one pandal must be selected"))
        else:
            cap = self.max_pandals(request.transport_mode)
            if len(ids) > cap:
                errors.append(FieldError(
                    "selected_pandal_ids",
                    f"too many pandals selected ({len(ids)}); maximum {cap} for {request.transport_mode}",
                ))

        return ValidationResult(valid=not errors, errors=errors, record=request)

    def ensure_valid(self, request: RouteRequest) -> None:
        """Raise ValidationError listing every failed field."""
        result = self.validate(request)
        if not result.valid:
            raise ValidationError(result.errors)
