"""
Marker reconciliation for the directory map.

``reconcile`` is a pure diff between the markers currently on the map and
the markers the entries call for. It never touches a map; a MapView applies
the resulting plan in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple

from domain.models import Coordinates, Entry

SELECTED_COLOR = "#4285F4"
DEFAULT_COLOR = "#EA4335"
CANDIDATE_COLOR = "#EA4335"
SELECTED_Z_INDEX = 1000
DEFAULT_Z_INDEX = 1
CANDIDATE_Z_INDEX = 500
FOCUS_ZOOM = 17
FLY_DURATION_SEC = 1.2
CANDIDATE_MARKER_ID = "candidate"


class MarkerOpKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class MarkerStyle:
    color: str
    scale: float
    z_index: int
    kind: str = "entry"  # "entry" or "candidate"
    selected: bool = False


SELECTED_STYLE = MarkerStyle(
    color=SELECTED_COLOR, scale=1.25, z_index=SELECTED_Z_INDEX, selected=True
)
DEFAULT_STYLE = MarkerStyle(color=DEFAULT_COLOR, scale=1.0, z_index=DEFAULT_Z_INDEX)
CANDIDATE_STYLE = MarkerStyle(
    color=CANDIDATE_COLOR, scale=1.0, z_index=CANDIDATE_Z_INDEX, kind="candidate"
)


@dataclass(frozen=True)
class MarkerState:
    position: Coordinates
    style: MarkerStyle


@dataclass(frozen=True)
class MarkerOp:
    kind: MarkerOpKind
    marker_id: str
    state: Optional[MarkerState] = None  # None for REMOVE


@dataclass(frozen=True)
class CameraMove:
    center: Coordinates
    zoom: int = FOCUS_ZOOM
    animation: str = "fly"  # "fly" for focus transitions, "set_view" for picks
    duration: float = FLY_DURATION_SEC


# (entry id, position) of the pinned selected entry the camera last focused.
Focus = Tuple[str, Coordinates]


@dataclass
class ReconcilePlan:
    ops: List[MarkerOp] = field(default_factory=list)
    candidate: Optional[MarkerOp] = None
    camera: Optional[CameraMove] = None
    focus: Optional[Focus] = None

    def count(self, kind: MarkerOpKind) -> int:
        n = sum(1 for op in self.ops if op.kind == kind)
        if self.candidate is not None and self.candidate.kind == kind:
            n += 1
        return n

    @property
    def is_noop(self) -> bool:
        """True when no marker needs to change (camera moves aside)."""
        return not self.ops and self.candidate is None


def style_for(entry_id: str, selected_id: Optional[str]) -> MarkerStyle:
    return SELECTED_STYLE if entry_id == selected_id else DEFAULT_STYLE


def reconcile(
    live: Mapping[str, MarkerState],
    entries: Sequence[Entry],
    selected_id: Optional[str] = None,
    picked: Optional[Coordinates] = None,
    live_candidate: Optional[Coordinates] = None,
    focused: Optional[Focus] = None,
) -> ReconcilePlan:
    """
    Diff live markers against the entries that should be pinned.

    Entries without coordinates are listed elsewhere but never pinned.
    A marker whose id survives is updated in place, never recreated.
    The camera only flies to the selected entry when the selection or its
    position differs from ``focused``, so user pans and zooms survive
    unrelated passes.
    """
    plan = ReconcilePlan()
    wanted = {e.id for e in entries if e.location.coordinates is not None}

    for marker_id in live:
        if marker_id not in wanted:
            plan.ops.append(MarkerOp(MarkerOpKind.REMOVE, marker_id))

    selected_entry: Optional[Entry] = None
    for entry in entries:
        coords = entry.location.coordinates
        if coords is None:
            continue
        if entry.id == selected_id:
            selected_entry = entry
        desired = MarkerState(position=coords, style=style_for(entry.id, selected_id))
        current = live.get(entry.id)
        if current is None:
            plan.ops.append(MarkerOp(MarkerOpKind.CREATE, entry.id, desired))
        elif current != desired:
            plan.ops.append(MarkerOp(MarkerOpKind.UPDATE, entry.id, desired))

    plan.candidate = _reconcile_candidate(picked, live_candidate)
    if selected_entry is not None:
        plan.focus = (selected_entry.id, selected_entry.location.coordinates)

    if plan.candidate is not None and plan.candidate.kind != MarkerOpKind.REMOVE:
        plan.camera = CameraMove(center=picked, animation="set_view", duration=0.0)
    elif plan.focus is not None and plan.focus != focused:
        plan.camera = CameraMove(center=selected_entry.location.coordinates)
    return plan


def _reconcile_candidate(
    picked: Optional[Coordinates], live_candidate: Optional[Coordinates]
) -> Optional[MarkerOp]:
    if picked is None:
        if live_candidate is None:
            return None
        return MarkerOp(MarkerOpKind.REMOVE, CANDIDATE_MARKER_ID)
    state = MarkerState(position=picked, style=CANDIDATE_STYLE)
    if live_candidate is None:
        return MarkerOp(MarkerOpKind.CREATE, CANDIDATE_MARKER_ID, state)
    if live_candidate != picked:
        return MarkerOp(MarkerOpKind.UPDATE, CANDIDATE_MARKER_ID, state)
    return None

