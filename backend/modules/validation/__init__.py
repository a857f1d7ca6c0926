"""
modules/validation package — request and catalogue-record guards.
"""
from modules.validation.record_validator import (
    ValidationResult,
    check_coordinates,
    validate_place_record,
    place_to_dict,
    filter_valid,
)
from modules.validation.route_validator import RouteRequestValidator

__all__ = [
    "ValidationResult",
    "check_coordinates",
    "validate_place_record",
    "place_to_dict",
    "filter_valid",
    "RouteRequestValidator",
]
