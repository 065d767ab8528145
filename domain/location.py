"""Domain: stock location value object."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import ValidationError


class LocationType(str, Enum):
    WAREHOUSE = "WAREHOUSE"
    STORE = "STORE"
    OTHER = "OTHER"


@dataclass(frozen=True, slots=True)
class Location:
    """
    Physical place where stock is held.

    The code is the identity of a location: two locations with the same code
    are the same place regardless of display name.
    """

    name: str = field(compare=False)
    code: str
    type: LocationType = field(default=LocationType.OTHER, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Location name cannot be empty")
        if not isinstance(self.code, str) or not self.code.strip():
            raise ValidationError("Location code cannot be empty")
        try:
            location_type = LocationType(self.type)
        except ValueError as exc:
            raise ValidationError(f"Unknown location type: {self.type!r}") from exc
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "code", self.code.strip().upper())
        object.__setattr__(self, "type", location_type)
