import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from services.grounding_client import GroundingResponse  # noqa: E402


class FakeGroundingClient:
    """Hands out queued replies (or raises queued errors) in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def queue(self, reply):
        self.replies.append(reply)

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, GroundingResponse):
            return reply
        return GroundingResponse(text=reply)


EIFFEL_PAYLOAD = (
    '{"formattedAddress": "Champ de Mars, 5 Av. Anatole France, 75007 Paris, France", '
    '"coordinates": {"lat": 48.8584, "lng": 2.2945}, '
    '"summary": "A wrought-iron lattice tower in Paris.", '
    '"placeType": "Monument"}'
)


@pytest.fixture()
def fake_client():
    return FakeGroundingClient()


@pytest.fixture()
def resolver(fake_client):
    from services.place_resolver import PlaceResolver

    return PlaceResolver(fake_client)
