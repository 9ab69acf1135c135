"""
Top-level owner of the directory state.

The store, the selection controller and the map view are only mutated
through this class; every mutation ends with a reconcile pass so the map
always mirrors the entries and the selection.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from domain.errors import GeolocationError
from domain.models import Coordinates, Entry, Place
from services.entry_store import EntryStore, demo_entries
from services.grounding_client import GroundingClient
from services.map_reconciler import ReconcilePlan, reconcile
from services.map_view import MapView
from services.place_resolver import PlaceResolver
from services.selection import SelectionController
from settings import settings

logger = logging.getLogger(__name__)


class DirectoryController:
    def __init__(
        self,
        resolver: PlaceResolver,
        store: Optional[EntryStore] = None,
        map_view: Optional[MapView] = None,
    ):
        self.resolver = resolver
        self.store = store if store is not None else EntryStore()
        self.selection = SelectionController(resolver)
        self.map_view = map_view or MapView()
        self._lock = threading.RLock()
        self.sync_map()

    @classmethod
    def from_settings(cls) -> "DirectoryController":
        resolver = PlaceResolver(GroundingClient.from_settings())
        seed = demo_entries() if settings.DIRECTORY_SEED_DEMO else []
        return cls(resolver, store=EntryStore(seed))

    # -- Reads -------------------------------------------------------------

    def entries(self) -> Sequence[Entry]:
        return self.store.all()

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        return self.store.get(entry_id)

    # -- Map ---------------------------------------------------------------

    def sync_map(self) -> ReconcilePlan:
        with self._lock:
            state = self.selection.state
            plan = reconcile(
                self.map_view.live_states(),
                self.store.all(),
                selected_id=state.selected_entry_id,
                picked=state.picked_coordinates,
                live_candidate=self.map_view.live_candidate,
                focused=self.map_view.focused,
            )
            self.map_view.apply(plan)
            return plan

    # -- Entries & selection -----------------------------------------------

    def add_entry(self, entry: Entry) -> Entry:
        """Prepend an entry and make it the current selection."""
        with self._lock:
            self.store.add(entry)
            self.selection.focus(entry.id)
            self.sync_map()
        logger.info("Added entry %s (%s)", entry.id, entry.location.formatted_address)
        return entry

    def select_entry(self, entry_id: str) -> Optional[str]:
        if entry_id not in self.store:
            raise KeyError(entry_id)
        with self._lock:
            selected = self.selection.select_entry(entry_id)
            self.sync_map()
            return selected

    # -- Picking -----------------------------------------------------------

    def start_picking(self) -> None:
        with self._lock:
            self.selection.start_picking()
            self.sync_map()

    def cancel_picking(self) -> None:
        with self._lock:
            self.selection.cancel_picking()
            self.sync_map()

    def map_click(self, coords: Coordinates) -> Optional[Place]:
        forwarded = self.map_view.handle_click(coords, self.selection.state.is_picking)
        if forwarded is None:
            return None
        place = self.selection.resolve_pick(forwarded)
        self.sync_map()
        return place

    async def map_click_async(self, coords: Coordinates) -> Optional[Place]:
        forwarded = self.map_view.handle_click(coords, self.selection.state.is_picking)
        if forwarded is None:
            return None
        token = self.selection.pick(forwarded)
        if token is None:
            return None
        # The candidate pin shows up as soon as the click lands.
        self.sync_map()
        place = await self.selection.finish_pick_async(token, forwarded)
        self.sync_map()
        return place

    def geolocate(
        self, coords: Optional[Coordinates] = None, error: Optional[GeolocationError] = None
    ) -> Optional[Coordinates]:
        located = self.selection.handle_geolocation(coords, error)
        with self._lock:
            if located is not None:
                self.map_view.recenter(located)
            self.sync_map()
        return located

    # -- Form --------------------------------------------------------------

    def submit(self) -> Optional[Entry]:
        entry = self.selection.submit()
        if entry is None:
            self.sync_map()
            return None
        return self.add_entry(entry)

    async def submit_async(self) -> Optional[Entry]:
        entry = await self.selection.submit_async()
        if entry is None:
            self.sync_map()
            return None
        return self.add_entry(entry)

    # -- Direct resolution -------------------------------------------------

    def resolve_address(self, query: str) -> Place:
        return self.resolver.resolve_by_address(query)

    def resolve_coordinates(self, coords: Coordinates) -> Place:
        return self.resolver.resolve_by_coordinates(coords)

    def snapshot(self) -> dict:
        state = self.selection.state
        form = self.selection.form
        return {
            "mode": self.selection.mode.value,
            "selected_entry_id": state.selected_entry_id,
            "is_picking": state.is_picking,
            "picked_coordinates": state.picked_coordinates.to_dict() if state.picked_coordinates else None,
            "cursor": self.map_view.cursor(state.is_picking),
            "notice": self.selection.notice,
            "form": {
                "name": form.name,
                "address": form.address,
                "is_open": form.is_open,
                "is_loading": form.is_loading,
                "error": form.error,
                "resolved_place": form.cached_place.to_dict() if form.cached_place else None,
            },
        }
