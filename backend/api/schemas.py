"""
Request/response models shared by the API routes.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from domain.models import Coordinates, Entry, Place


class CoordinatesModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class PlaceResponse(BaseModel):
    formatted_address: str
    summary: str
    place_type: Optional[str] = None
    coordinates: Optional[CoordinatesModel] = None
    map_link_uri: Optional[str] = None


class EntryResponse(BaseModel):
    id: str
    name: str
    location: PlaceResponse
    joined_at: datetime


class AddressQuery(BaseModel):
    query: str = Field(..., min_length=1)


class FormUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None


class SubmitRequest(BaseModel):
    # Either field may be omitted to submit what the form already holds.
    name: Optional[str] = None
    address: Optional[str] = None


class GeolocationReport(BaseModel):
    coordinates: Optional[CoordinatesModel] = None
    error: Optional[str] = None


class LayerUpdate(BaseModel):
    base_layer: str


class ZoomRequest(BaseModel):
    direction: str = Field(..., pattern="^(in|out)$")


def place_to_response(place: Place) -> PlaceResponse:
    coords = place.coordinates
    return PlaceResponse(
        formatted_address=place.formatted_address,
        summary=place.summary,
        place_type=place.place_type,
        coordinates=CoordinatesModel(lat=coords.lat, lng=coords.lng) if coords else None,
        map_link_uri=place.map_link_uri,
    )


def entry_to_response(entry: Entry) -> EntryResponse:
    """Convert domain Entry to API response."""
    return EntryResponse(
        id=entry.id,
        name=entry.name,
        location=place_to_response(entry.location),
        joined_at=entry.joined_at,
    )
