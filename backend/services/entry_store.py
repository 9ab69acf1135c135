"""
In-memory directory of community entries.

State lives only for the lifetime of the process; newest entries come first.
"""
import threading
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from domain.models import Coordinates, Entry, Place


class EntryStore:
    """Ordered, append-to-front collection of entries."""

    def __init__(self, seed: Optional[Iterable[Entry]] = None):
        self._lock = threading.Lock()
        self._entries: List[Entry] = []
        self._ids: set[str] = set()
        for entry in seed or []:
            self._append_seed(entry)

    def _append_seed(self, entry: Entry) -> None:
        # Seed order is already display order.
        if entry.id in self._ids:
            raise ValueError(f"Duplicate entry id: {entry.id}")
        self._entries.append(entry)
        self._ids.add(entry.id)

    def add(self, entry: Entry) -> Entry:
        with self._lock:
            if entry.id in self._ids:
                raise ValueError(f"Duplicate entry id: {entry.id}")
            self._entries.insert(0, entry)
            self._ids.add(entry.id)
        return entry

    def all(self) -> Tuple[Entry, ...]:
        with self._lock:
            return tuple(self._entries)

    def get(self, entry_id: str) -> Optional[Entry]:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
        return None

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._ids

    def __len__(self) -> int:
        return len(self._entries)


def demo_entries() -> List[Entry]:
    """The two sample members shown on a fresh directory."""
    now = datetime.now(timezone.utc)
    return [
        Entry(
            id="1",
            name="Sarah Chen",
            location=Place(
                formatted_address="Golden Gate Bridge, San Francisco, CA",
                summary=(
                    "The Golden Gate Bridge is a suspension bridge spanning the Golden Gate, "
                    "the one-mile-wide strait connecting San Francisco Bay and the Pacific Ocean."
                ),
                place_type="Landmark",
                coordinates=Coordinates(lat=37.8199, lng=-122.4783),
                map_link_uri="https://maps.google.com/?q=Golden+Gate+Bridge",
            ),
            joined_at=now,
        ),
        Entry(
            id="2",
            name="Marcus Johnson",
            location=Place(
                formatted_address="Champ de Mars, 5 Av. Anatole France, 75007 Paris, France",
                summary=(
                    "The Eiffel Tower is a wrought-iron lattice tower on the Champ de Mars in "
                    "Paris, France. It is named after the engineer Gustave Eiffel."
                ),
                place_type="Monument",
                coordinates=Coordinates(lat=48.8584, lng=2.2945),
                map_link_uri="https://maps.google.com/?q=Eiffel+Tower",
            ),
            joined_at=now,
        ),
    ]
