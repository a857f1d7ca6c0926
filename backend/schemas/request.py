"""
schemas/request.py
------------------
Pydantic models for the engine's inbound request.

Keys are accepted in snake_case or camelCase (``selected_pandal_ids`` /
``selectedPandalIds``).  Types are deliberately permissive: coordinate
ranges, transport mode and pandal caps are checked by the route validator so
that every failing field is reported together.  Preferences never fail the
request; malformed values are coerced to their defaults.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from errors import FieldError, ValidationError
from schemas.route import GeoPoint


class TransportMode(str, Enum):
    walking = "walking"
    car = "car"
    public_transport = "public-transport"


class BudgetTier(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PointInput(_CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None

    def to_geo(self) -> GeoPoint:
        return GeoPoint(latitude=float(self.latitude), longitude=float(self.longitude))


class Preferences(_CamelModel):
    budget: str = Field("medium", description="low | medium | high; anything else → medium")
    cuisine: list[str] = Field(default_factory=list)

    @field_validator("budget", mode="before")
    @classmethod
    def _coerce_budget(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip().lower()
        return BudgetTier.medium.value

    @field_validator("cuisine", mode="before")
    @classmethod
    def _coerce_cuisine(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [v] if v.strip() else []
        if isinstance(v, (list, tuple)):
            return [str(c) for c in v if isinstance(c, str) and c.strip()]
        return []


class RouteRequest(_CamelModel):
    start_point: Optional[PointInput] = None
    end_point: Optional[PointInput] = None
    selected_pandal_ids: list[str] = Field(default_factory=list)
    transport_mode: str = TransportMode.walking.value
    preferences: Preferences = Field(default_factory=Preferences)
    include_food_stops: bool = True

    @field_validator("preferences", mode="before")
    @classmethod
    def _coerce_preferences(cls, v: Any) -> Any:
        if isinstance(v, (dict, Preferences)):
            return v
        return {}

    @field_validator("selected_pandal_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return [str(i) for i in v]
        return v


def parse_route_request(payload: dict[str, Any]) -> RouteRequest:
    """
    Build a RouteRequest from a raw dict.

    Pydantic type failures are re-raised as the engine's ValidationError so
    callers only ever handle one error type.
    """
    try:
        return RouteRequest.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            FieldError(
                field=".".join(str(p) for p in err["loc"]) or "request",
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        raise ValidationError(errors) from exc
