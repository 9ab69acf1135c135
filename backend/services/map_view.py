"""
Live marker layer of the directory map.

MapView is the thin adapter between reconcile plans and an actual map: it
keeps the marker objects, the candidate pin, the camera and the base layer,
mutates them in place, and can render the current view to a PNG with Pillow.
"""
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, List, Optional

from PIL import Image, ImageDraw

from domain.models import Coordinates
from services import map_tiles
from services.map_reconciler import (
    CameraMove,
    Focus,
    MarkerOp,
    MarkerOpKind,
    MarkerState,
    MarkerStyle,
    ReconcilePlan,
)

logger = logging.getLogger(__name__)

DEFAULT_CENTER = Coordinates(lat=20.0, lng=0.0)
DEFAULT_ZOOM = 2
MIN_ZOOM = 1
MAX_ZOOM = 20
PIN_RADIUS = 12
BACKGROUND_COLOR = "#e5e3df"


@dataclass
class Marker:
    """A pin on the map. Identity persists across updates."""
    marker_id: str
    position: Coordinates
    style: MarkerStyle

    def set_position(self, position: Coordinates) -> None:
        self.position = position

    def set_style(self, style: MarkerStyle) -> None:
        self.style = style

    @property
    def state(self) -> MarkerState:
        return MarkerState(position=self.position, style=self.style)

    def to_dict(self) -> dict:
        return {
            "id": self.marker_id,
            "lat": self.position.lat,
            "lng": self.position.lng,
            "color": self.style.color,
            "scale": self.style.scale,
            "z_index": self.style.z_index,
            "kind": self.style.kind,
            "selected": self.style.selected,
        }


class MapView:
    def __init__(self, base_layer: str = map_tiles.DEFAULT_BASE_LAYER):
        self.markers: Dict[str, Marker] = {}
        self.candidate: Optional[Marker] = None
        self.center = DEFAULT_CENTER
        self.zoom = DEFAULT_ZOOM
        self.base_layer = base_layer
        self.last_camera: Optional[CameraMove] = None
        self.focused: Optional[Focus] = None
        self.op_counts = {kind: 0 for kind in MarkerOpKind}

    # -- Reconciliation ----------------------------------------------------

    def live_states(self) -> Dict[str, MarkerState]:
        return {mid: m.state for mid, m in self.markers.items()}

    @property
    def live_candidate(self) -> Optional[Coordinates]:
        return self.candidate.position if self.candidate else None

    def apply(self, plan: ReconcilePlan) -> None:
        for op in plan.ops:
            self._apply_marker_op(op)
        if plan.candidate is not None:
            self._apply_candidate_op(plan.candidate)
        if plan.camera is not None:
            self.move_camera(plan.camera)
        self.focused = plan.focus

    def _apply_marker_op(self, op: MarkerOp) -> None:
        self.op_counts[op.kind] += 1
        if op.kind == MarkerOpKind.REMOVE:
            self.markers.pop(op.marker_id, None)
            return
        existing = self.markers.get(op.marker_id)
        if existing is None:
            self.markers[op.marker_id] = Marker(op.marker_id, op.state.position, op.state.style)
        else:
            existing.set_position(op.state.position)
            existing.set_style(op.state.style)

    def _apply_candidate_op(self, op: MarkerOp) -> None:
        self.op_counts[op.kind] += 1
        if op.kind == MarkerOpKind.REMOVE:
            self.candidate = None
        elif self.candidate is None:
            self.candidate = Marker(op.marker_id, op.state.position, op.state.style)
        else:
            self.candidate.set_position(op.state.position)

    # -- Camera & controls -------------------------------------------------

    def move_camera(self, move: CameraMove) -> None:
        if move.center == self.center and move.zoom == self.zoom:
            return
        self.center = move.center
        self.zoom = self._clamp_zoom(move.zoom)
        self.last_camera = move
        logger.debug(
            "Camera %s to %s z=%d", move.animation, move.center.label(4), self.zoom
        )

    def recenter(self, coords: Coordinates, zoom: int = 17) -> None:
        self.move_camera(CameraMove(center=coords, zoom=zoom, duration=1.0))

    def zoom_in(self) -> int:
        self.zoom = self._clamp_zoom(self.zoom + 1)
        return self.zoom

    def zoom_out(self) -> int:
        self.zoom = self._clamp_zoom(self.zoom - 1)
        return self.zoom

    def set_base_layer(self, name: str) -> None:
        if name not in map_tiles.BASE_LAYERS:
            raise ValueError(f"Unknown base layer: {name}")
        self.base_layer = name

    @staticmethod
    def _clamp_zoom(zoom: int) -> int:
        return max(MIN_ZOOM, min(MAX_ZOOM, int(zoom)))

    # -- Clicks ------------------------------------------------------------

    @staticmethod
    def handle_click(coords: Coordinates, is_picking: bool) -> Optional[Coordinates]:
        """Forward a click to the picking pipeline only while picking."""
        return coords if is_picking else None

    @staticmethod
    def cursor(is_picking: bool) -> str:
        return "crosshair" if is_picking else "grab"

    # -- Output ------------------------------------------------------------

    def stacked_markers(self) -> List[Marker]:
        """Markers in draw order, lowest z-index first."""
        ordered = sorted(self.markers.values(), key=lambda m: m.style.z_index)
        if self.candidate is not None:
            ordered.append(self.candidate)
            ordered.sort(key=lambda m: m.style.z_index)
        return ordered

    def to_dict(self) -> dict:
        return {
            "center": self.center.to_dict(),
            "zoom": self.zoom,
            "base_layer": self.base_layer,
            "markers": [m.to_dict() for m in self.stacked_markers() if m is not self.candidate],
            "candidate": self.candidate.to_dict() if self.candidate else None,
        }

    def render_png(self, width: int = 800, height: int = 600) -> bytes:
        """Render the current view, tiles first when enabled, then pins."""
        img = Image.new("RGB", (width, height), color=BACKGROUND_COLOR)
        cx, cy = map_tiles.latlng_to_tile_xy(self.center.lat, self.center.lng, self.zoom)
        map_tiles.draw_tile_background(img, self.base_layer, cx, cy, self.zoom)

        draw = ImageDraw.Draw(img)
        for marker in self.stacked_markers():
            mx, my = map_tiles.latlng_to_tile_xy(
                marker.position.lat, marker.position.lng, self.zoom
            )
            px = (mx - cx) * map_tiles.TILE_SIZE + width / 2.0
            py = (my - cy) * map_tiles.TILE_SIZE + height / 2.0
            if -PIN_RADIUS * 2 <= px <= width + PIN_RADIUS * 2 and -PIN_RADIUS * 2 <= py <= height + PIN_RADIUS * 2:
                _draw_pin(draw, (px, py), marker.style)

        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


def _draw_pin(draw: ImageDraw.ImageDraw, tip: tuple, style: MarkerStyle) -> None:
    """Teardrop pin whose tip sits on the coordinate."""
    r = PIN_RADIUS * style.scale
    x, y = tip
    head_cy = y - r * 2
    draw.polygon([(x, y), (x - r * 0.8, head_cy + r * 0.5), (x + r * 0.8, head_cy + r * 0.5)], fill=style.color)
    draw.ellipse((x - r, head_cy - r, x + r, head_cy + r), fill=style.color, outline="white", width=2)
    inner = r * 0.35
    draw.ellipse((x - inner, head_cy - inner, x + inner, head_cy + inner), fill="white")
