"""
Selection and "pick on map" coordination.

Picking mode captures map clicks as candidate coordinates and reverse
resolves each one. Clicks can be repeated to refine the pick; every click
gets a fresh request token and only the response for the latest token is
applied, so a slow earlier lookup never overwrites a newer one.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from domain.errors import GeolocationError, ResolutionError
from domain.models import Coordinates, Entry, InteractionMode, Place, SelectionState
from services.place_resolver import PlaceResolver

logger = logging.getLogger(__name__)

PICK_FAILED_MESSAGE = "Failed to identify location details."
SUBMIT_FAILED_MESSAGE = "We couldn't verify this location. Please try a more specific address."


@dataclass
class FormState:
    """The "join the map" form as the user sees it."""
    name: str = ""
    address: str = ""
    cached_place: Optional[Place] = None
    is_open: bool = False
    is_loading: bool = False
    submitting: bool = False
    error: Optional[str] = None

    def reset(self) -> None:
        self.name = ""
        self.address = ""
        self.cached_place = None
        self.is_open = False
        self.is_loading = False
        self.submitting = False
        self.error = None


def placeholder_for(coords: Coordinates) -> str:
    """Address field text shown while a picked point is being resolved."""
    return f"{coords.lat:.4f}, {coords.lng:.4f}..."


class SelectionController:
    def __init__(self, resolver: PlaceResolver):
        self.resolver = resolver
        self.state = SelectionState()
        self.form = FormState()
        self.notice: Optional[str] = None
        self._pick_token = 0
        self._lock = threading.RLock()

    @property
    def mode(self) -> InteractionMode:
        if self.state.is_picking:
            return InteractionMode.PICKING
        if self.state.selected_entry_id is not None:
            return InteractionMode.REVIEWING
        return InteractionMode.IDLE

    @property
    def latest_pick_token(self) -> int:
        return self._pick_token

    @property
    def busy(self) -> bool:
        """True while a submit or a pick lookup is in flight."""
        return self.form.submitting or self.form.is_loading

    # -- Selection ---------------------------------------------------------

    def select_entry(self, entry_id: str) -> Optional[str]:
        """Toggle selection of ``entry_id``; selecting always leaves picking mode."""
        with self._lock:
            if self.state.selected_entry_id == entry_id:
                self.state.selected_entry_id = None
            else:
                self.state.selected_entry_id = entry_id
            self.state.is_picking = False
            return self.state.selected_entry_id

    def focus(self, entry_id: str) -> None:
        with self._lock:
            self.state.selected_entry_id = entry_id

    # -- Picking -----------------------------------------------------------

    def start_picking(self) -> None:
        with self._lock:
            self.state.is_picking = True
            self.form.is_open = True

    def cancel_picking(self) -> None:
        with self._lock:
            self.state.is_picking = False
            self.state.picked_coordinates = None
            # retire any lookup still in flight
            self._pick_token += 1
            self.form.is_loading = False

    def close_form(self) -> None:
        with self._lock:
            self.form.is_open = False
            self.cancel_picking()

    def pick(self, coords: Coordinates) -> Optional[int]:
        """
        Capture a candidate point and issue a request token for it.

        Returns None when picking mode is off; the click is then ordinary
        map navigation.
        """
        with self._lock:
            if not self.state.is_picking:
                return None
            self._pick_token += 1
            self.state.picked_coordinates = coords
            self.form.is_open = True
            self.form.address = placeholder_for(coords)
            self.form.is_loading = True
            self.form.error = None
            return self._pick_token

    def complete_pick(self, token: int, place: Place) -> bool:
        with self._lock:
            if token != self._pick_token:
                logger.debug("Dropping stale pick response (token %d, latest %d)", token, self._pick_token)
                return False
            self.form.cached_place = place
            self.form.address = place.formatted_address
            self.form.is_loading = False
            return True

    def fail_pick(self, token: int, error: Exception) -> bool:
        with self._lock:
            if token != self._pick_token:
                logger.debug("Dropping stale pick failure (token %d, latest %d)", token, self._pick_token)
                return False
            logger.warning("Coordinate resolution failed: %s", error)
            self.form.error = PICK_FAILED_MESSAGE
            self.form.is_loading = False
            return True

    def resolve_pick(self, coords: Coordinates) -> Optional[Place]:
        """Run the whole pick pipeline; returns the place if it was applied."""
        token = self.pick(coords)
        if token is None:
            return None
        return self.finish_pick(token, coords)

    def finish_pick(self, token: int, coords: Coordinates) -> Optional[Place]:
        try:
            place = self.resolver.resolve_by_coordinates(coords)
        except ResolutionError as exc:
            self.fail_pick(token, exc)
            return None
        except Exception as exc:
            self.fail_pick(token, exc)
            raise
        return place if self.complete_pick(token, place) else None

    async def resolve_pick_async(self, coords: Coordinates) -> Optional[Place]:
        token = self.pick(coords)
        if token is None:
            return None
        return await self.finish_pick_async(token, coords)

    async def finish_pick_async(self, token: int, coords: Coordinates) -> Optional[Place]:
        try:
            place = await asyncio.to_thread(self.resolver.resolve_by_coordinates, coords)
        except ResolutionError as exc:
            self.fail_pick(token, exc)
            return None
        except Exception as exc:
            self.fail_pick(token, exc)
            raise
        return place if self.complete_pick(token, place) else None

    # -- Form --------------------------------------------------------------

    def open_form(self) -> None:
        with self._lock:
            self.form.is_open = True

    def set_name(self, name: str) -> None:
        with self._lock:
            self.form.name = name

    def set_address(self, address: str) -> None:
        with self._lock:
            self.form.address = address

    def submit(self) -> Optional[Entry]:
        """
        Turn the form into a new entry.

        The cached place is reused when the address field still shows its
        formatted address; otherwise the field text is resolved afresh.
        Returns None when there is nothing to submit, a submit or a pick
        lookup is already in flight, or resolution failed (the form keeps
        its contents and an error message).
        """
        with self._lock:
            name = self.form.name.strip()
            raw_address = self.form.address
            address = raw_address.strip()
            if self.busy or not name or not address:
                return None
            cached = self.form.cached_place
            self.form.submitting = True
            self.form.is_loading = True
            self.form.error = None

        try:
            if cached is not None and cached.formatted_address == raw_address:
                place = cached
            else:
                place = self.resolver.resolve_by_address(address)
        except ResolutionError as exc:
            logger.warning("Address resolution failed for %r: %s", address, exc)
            with self._lock:
                self.form.error = SUBMIT_FAILED_MESSAGE
            return None
        finally:
            with self._lock:
                self.form.submitting = False
                self.form.is_loading = False

        entry = Entry.create(name, place)
        with self._lock:
            self.form.reset()
            self.cancel_picking()
        return entry

    async def submit_async(self) -> Optional[Entry]:
        return await asyncio.to_thread(self.submit)

    # -- Geolocation -------------------------------------------------------

    def handle_geolocation(
        self,
        coords: Optional[Coordinates] = None,
        error: Optional[Exception] = None,
    ) -> Optional[Coordinates]:
        """
        Feed a one-shot device position into the directory.

        On success returns the point to recenter on and, while picking,
        runs it through the same pipeline as a map click. On failure a
        dismissible notice is recorded and picking mode is left alone.
        """
        if error is not None or coords is None:
            err = error if isinstance(error, GeolocationError) else GeolocationError()
            logger.info("Geolocation unavailable: %s", err)
            with self._lock:
                self.notice = str(err)
            return None
        if self.state.is_picking:
            self.resolve_pick(coords)
        return coords

    def dismiss_notice(self) -> None:
        with self._lock:
            self.notice = None
