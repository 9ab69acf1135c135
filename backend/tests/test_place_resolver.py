import pytest

from conftest import EIFFEL_PAYLOAD
from domain.errors import ResolutionError
from domain.models import Coordinates
from services.grounding_client import GroundingResponse
from services.place_resolver import strip_code_fences


class TestResolveByAddress:
    def test_well_formed_payload(self, resolver, fake_client):
        fake_client.queue(EIFFEL_PAYLOAD)
        place = resolver.resolve_by_address("Eiffel Tower")

        assert place.formatted_address == "Champ de Mars, 5 Av. Anatole France, 75007 Paris, France"
        assert place.summary == "A wrought-iron lattice tower in Paris."
        assert place.place_type == "Monument"
        assert place.coordinates == Coordinates(48.8584, 2.2945)
        assert place.map_link_uri is None
        assert '"Eiffel Tower"' in fake_client.prompts[0]

    def test_fenced_payload(self, resolver, fake_client):
        fake_client.queue("```json\n" + EIFFEL_PAYLOAD + "\n```")
        place = resolver.resolve_by_address("Eiffel Tower")
        assert place.place_type == "Monument"

    def test_unparseable_text_falls_back(self, resolver, fake_client):
        fake_client.queue("Sorry, I found a bakery near there.")
        place = resolver.resolve_by_address("Corner bakery")

        assert place.formatted_address == "Corner bakery"
        assert place.summary == "Sorry, I found a bakery near there."
        assert place.place_type == "Custom Location"
        assert place.coordinates is None
        assert place.map_link_uri is None

    def test_json_without_address_falls_back(self, resolver, fake_client):
        fake_client.queue('["not", "an", "object"]')
        place = resolver.resolve_by_address("Somewhere")
        assert place.place_type == "Custom Location"

    def test_grounding_link_overrides_payload(self, resolver, fake_client):
        payload = EIFFEL_PAYLOAD[:-1] + ', "googleMapsUri": "https://old"}'
        fake_client.queue(
            GroundingResponse(
                text=payload,
                grounding_chunks=[{"maps": {"uri": "https://maps.google.com/?cid=42"}}],
            )
        )
        place = resolver.resolve_by_address("Eiffel Tower")
        assert place.map_link_uri == "https://maps.google.com/?cid=42"

    def test_service_failure_raises(self, resolver, fake_client):
        fake_client.queue(ResolutionError("quota"))
        with pytest.raises(ResolutionError):
            resolver.resolve_by_address("Eiffel Tower")

    def test_blank_text_raises(self, resolver, fake_client):
        fake_client.queue("   ")
        with pytest.raises(ResolutionError):
            resolver.resolve_by_address("Eiffel Tower")

    def test_blank_query_rejected(self, resolver, fake_client):
        with pytest.raises(ValueError):
            resolver.resolve_by_address("  ")
        assert fake_client.prompts == []


class TestResolveByCoordinates:
    def test_echoes_input_coordinates(self, resolver, fake_client):
        fake_client.queue(
            '{"formattedAddress": "Rue X", "summary": "A street.", "placeType": "Street", '
            '"coordinates": {"lat": 1.0, "lng": 1.0}}'
        )
        coords = Coordinates(10.123456, 20.654321)
        place = resolver.resolve_by_coordinates(coords)

        assert place.coordinates == coords
        assert place.formatted_address == "Rue X"
        assert "Latitude: 10.123456" in fake_client.prompts[0]

    def test_fallback_uses_coordinate_label(self, resolver, fake_client):
        fake_client.queue("no idea")
        coords = Coordinates(10, 20)
        place = resolver.resolve_by_coordinates(coords)

        assert place.formatted_address == "10.000000, 20.000000"
        assert place.place_type == "Custom Location"
        assert place.summary == "no idea"
        assert place.coordinates == coords

    def test_service_failure_raises(self, resolver, fake_client):
        fake_client.queue(ResolutionError("down"))
        with pytest.raises(ResolutionError):
            resolver.resolve_by_coordinates(Coordinates(10, 20))


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences("```\n{}```") == "{}"
    assert strip_code_fences("{}") == "{}"
