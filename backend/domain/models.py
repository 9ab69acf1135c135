"""
Core domain models for the community location directory.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid


CUSTOM_LOCATION_TYPE = "Custom Location"


class InteractionMode(str, Enum):
    """What the next map click or list click means."""
    IDLE = "idle"
    PICKING = "picking"
    REVIEWING = "reviewing"  # an entry is selected and focused on the map


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 point."""
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")

    def label(self, precision: int = 6) -> str:
        return f"{self.lat:.{precision}f}, {self.lng:.{precision}f}"

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Coordinates"]:
        """
        Build coordinates from a ``{"lat": .., "lng": ..}`` mapping.

        Returns None when the mapping is missing, malformed or out of range,
        since model output cannot always ground a precise point.
        """
        if not isinstance(data, dict):
            return None
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("lon", data.get("longitude")))
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        try:
            return cls(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class Place:
    """
    A resolved location.

    ``coordinates`` and ``map_link_uri`` are genuinely optional: the grounding
    service cannot always tie its answer to a precise point or a map link.
    """
    formatted_address: str
    summary: str
    place_type: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    map_link_uri: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formatted_address": self.formatted_address,
            "summary": self.summary,
            "place_type": self.place_type,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "map_link_uri": self.map_link_uri,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Place":
        """
        Decode the structured payload returned by the grounding service.

        Accepts both the camelCase keys the model is asked for and the
        snake_case keys used by ``to_dict``. Raises ValueError when the
        payload has no usable address.
        """
        address = data.get("formattedAddress", data.get("formatted_address"))
        if not isinstance(address, str) or not address.strip():
            raise ValueError("Payload has no formattedAddress")
        summary = data.get("summary")
        place_type = data.get("placeType", data.get("place_type"))
        link = (
            data.get("mapLinkUri")
            or data.get("googleMapsUri")
            or data.get("map_link_uri")
        )
        return cls(
            formatted_address=address.strip(),
            summary=summary if isinstance(summary, str) else "",
            place_type=place_type if isinstance(place_type, str) else None,
            coordinates=Coordinates.from_dict(data.get("coordinates")),
            map_link_uri=link if isinstance(link, str) else None,
        )


@dataclass(frozen=True)
class Entry:
    """A directory member: a name plus the place they added."""
    id: str
    name: str
    location: Place
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    @classmethod
    def create(cls, name: str, location: Place) -> "Entry":
        name = name.strip()
        if not name:
            raise ValueError("Entry name must not be empty")
        return cls(id=cls.generate_id(), name=name, location=location)


@dataclass
class SelectionState:
    """Ephemeral interaction state; never persisted."""
    selected_entry_id: Optional[str] = None
    is_picking: bool = False
    picked_coordinates: Optional[Coordinates] = None
