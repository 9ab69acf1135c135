"""
Resolve free-text addresses and raw coordinates into Place records.

Both directions go through the grounding client with their own prompt:
address lookups must verify the place exists, coordinate lookups must name
the nearest feature. Unparseable replies degrade to a "Custom Location"
place; only a failed call raises.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from typing import Any, Optional, Protocol

from domain.errors import ResolutionError
from domain.models import CUSTOM_LOCATION_TYPE, Coordinates, Place
from services.grounding_client import GroundingResponse

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

ADDRESS_PROMPT = """Locate the address or place: "{query}".

1. Verify this location exists using Google Maps.
2. Provide a JSON response with the following fields:
   - "formattedAddress": The official, complete address found on Maps.
   - "coordinates": {{ "lat": number, "lng": number }} - The precise latitude and longitude.
   - "summary": A 2-3 sentence engaging description of what this place is.
   - "placeType": A short string describing the type of place (e.g., "Restaurant", "Corporate Office").

Return ONLY the JSON object. Do not include markdown formatting."""

COORDINATES_PROMPT = """Identify the location at Latitude: {lat}, Longitude: {lng}.

1. Determine the nearest address or landmark.
2. Provide a JSON response with:
   - "formattedAddress": The nearest readable address.
   - "coordinates": {{ "lat": {lat}, "lng": {lng} }}
   - "summary": A brief description of this area or landmark.
   - "placeType": The type of location (e.g. "Park", "Street", "Building").

Return ONLY the JSON object. Do not include markdown formatting."""


class ContentGenerator(Protocol):
    def generate_content(self, prompt: str) -> GroundingResponse: ...


def strip_code_fences(text: str) -> str:
    """Remove markdown ``` / ```json fences around a payload."""
    return _FENCE_RE.sub("", text).strip()


def parse_place(text: str) -> Optional[Place]:
    """
    Decode a structured place payload.

    Returns None when the text is not a JSON object with a usable address;
    the caller decides what the fallback looks like.
    """
    try:
        data: Any = json.loads(strip_code_fences(text))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return Place.from_payload(data)
    except ValueError:
        return None


def fallback_place(
    text: str, default_address: str, coordinates: Optional[Coordinates] = None
) -> Place:
    return Place(
        formatted_address=default_address,
        summary=text,
        place_type=CUSTOM_LOCATION_TYPE,
        coordinates=coordinates,
    )


class PlaceResolver:
    def __init__(self, client: ContentGenerator):
        self.client = client

    def resolve_by_address(self, query: str) -> Place:
        """
        Resolve an address, landmark or business name.

        Raises ValueError for a blank query and ResolutionError when the
        service call fails.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Address query must not be empty")

        response = self._generate(ADDRESS_PROMPT.format(query=query))
        place = parse_place(response.text)
        if place is None:
            logger.warning("Could not decode place payload for %r; using fallback", query)
            place = fallback_place(response.text, query)
        return self._attach_map_link(place, response)

    def resolve_by_coordinates(self, coords: Coordinates) -> Place:
        """
        Identify the nearest address or landmark to ``coords``.

        The result always carries the input coordinates, whatever the model
        echoes back.
        """
        response = self._generate(COORDINATES_PROMPT.format(lat=coords.lat, lng=coords.lng))
        default_address = coords.label(6)
        place = parse_place(response.text)
        if place is None:
            logger.warning(
                "Could not decode place payload for %s; using fallback", default_address
            )
            place = fallback_place(response.text, default_address, coordinates=coords)
        else:
            place = replace(place, coordinates=coords)
        return self._attach_map_link(place, response)

    def _generate(self, prompt: str) -> GroundingResponse:
        response = self.client.generate_content(prompt)
        if not response.text or not response.text.strip():
            raise ResolutionError("No response from grounding service")
        return response

    def _attach_map_link(self, place: Place, response: GroundingResponse) -> Place:
        uri = response.map_uri()
        if uri:
            return replace(place, map_link_uri=uri)
        return place


__all__ = [
    "PlaceResolver",
    "ResolutionError",
    "fallback_place",
    "parse_place",
    "strip_code_fences",
]
