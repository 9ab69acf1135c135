"""
Base-layer tiles for the directory map.

Tiles are fetched over HTTP with rate limiting and kept in a SQLite cache,
so repeated snapshots of the same view do not hit the tile server again.
Tile fetching is off unless MAP_TILES_ENABLED is set.
"""
import logging
import math
import os
import sqlite3
import threading
import time
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import requests
from PIL import Image

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]
TILE_SIZE = 256

# Switchable base layers: road map, satellite with labels, terrain.
BASE_LAYERS = {
    "map": "https://mt1.google.com/vt/lyrs=m&x={x}&y={y}&z={z}",
    "satellite": "https://mt1.google.com/vt/lyrs=y&x={x}&y={y}&z={z}",
    "terrain": "https://mt1.google.com/vt/lyrs=p&x={x}&y={y}&z={z}",
}
DEFAULT_BASE_LAYER = "map"

MAP_TILES_ENABLED = os.getenv("MAP_TILES_ENABLED", "0") in ("1", "true", "TRUE")
MAP_TILE_USER_AGENT = os.getenv("MAP_TILE_USER_AGENT", "geomark-directory/0.1 (tile-fetch)")
MAP_TILE_TIMEOUT = float(os.getenv("MAP_TILE_TIMEOUT", "3"))
MAP_TILE_MIN_INTERVAL_SEC = float(os.getenv("MAP_TILE_MIN_INTERVAL_SEC", "0.2"))
MAP_TILE_HEADERS = {"User-Agent": MAP_TILE_USER_AGENT}
_TILE_SESSION = requests.Session()
_TILE_LOCK = threading.Lock()
_LAST_TILE_TS = 0.0
MAP_TILE_CACHE_PATH = Path(
    os.getenv("MAP_TILE_CACHE_PATH", str(BASE_DIR / "tile_cache.sqlite"))
)
MAP_TILE_CACHE_TTL_SECONDS = int(os.getenv("MAP_TILE_CACHE_TTL_SECONDS", str(30 * 24 * 3600)))
_CACHE_DB_LOCK = threading.Lock()
_CACHE_DB: Optional[sqlite3.Connection] = None


def latlng_to_tile_xy(lat: float, lng: float, zoom: int) -> Tuple[float, float]:
    """Convert lat/lng to fractional Web Mercator tile coords."""
    lat = max(min(lat, 85.05112878), -85.05112878)
    lat_rad = math.radians(lat)
    n = 2.0 ** zoom
    x = (lng + 180.0) / 360.0 * n
    y = (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n
    return x, y


def _get_tile_db() -> sqlite3.Connection:
    """Lazily open the tile cache DB and ensure schema exists."""
    global _CACHE_DB
    with _CACHE_DB_LOCK:
        if _CACHE_DB is None:
            MAP_TILE_CACHE_PATH.parent.mkdir(parents=True, exist_ok=True)
            _CACHE_DB = sqlite3.connect(str(MAP_TILE_CACHE_PATH), check_same_thread=False)
            _CACHE_DB.execute(
                """
                CREATE TABLE IF NOT EXISTS tiles (
                    layer TEXT,
                    z INTEGER,
                    x INTEGER,
                    y INTEGER,
                    fetched_at INTEGER,
                    data BLOB,
                    PRIMARY KEY (layer, z, x, y)
                )
                """
            )
            _CACHE_DB.commit()
        return _CACHE_DB


def _get_tile_from_cache(layer: str, z: int, x: int, y: int) -> Optional[bytes]:
    """Fetch tile bytes from SQLite cache if present and not expired."""
    try:
        db = _get_tile_db()
        row = db.execute(
            "SELECT fetched_at, data FROM tiles WHERE layer=? AND z=? AND x=? AND y=?",
            (layer, z, x, y),
        ).fetchone()
    except sqlite3.Error as exc:
        logger.warning("[MAP] Tile cache read failed for %s %d/%d/%d: %s", layer, z, x, y, exc)
        return None
    if not row:
        return None
    fetched_at, data = row
    if MAP_TILE_CACHE_TTL_SECONDS > 0 and time.time() - (fetched_at or 0) > MAP_TILE_CACHE_TTL_SECONDS:
        return None
    return data


def _store_tile_in_cache(layer: str, z: int, x: int, y: int, data: bytes) -> None:
    try:
        db = _get_tile_db()
        db.execute(
            "INSERT OR REPLACE INTO tiles (layer, z, x, y, fetched_at, data) VALUES (?, ?, ?, ?, ?, ?)",
            (layer, z, x, y, int(time.time()), data),
        )
        db.commit()
    except sqlite3.Error as exc:
        logger.warning("[MAP] Tile cache write failed for %s %d/%d/%d: %s", layer, z, x, y, exc)


def _fetch_tile_http(layer: str, z: int, x: int, y: int) -> Optional[Image.Image]:
    """
    Fetch a single tile via HTTP with rate limiting.
    Returns a PIL Image or None on error.
    """
    global _LAST_TILE_TS

    template = BASE_LAYERS.get(layer)
    if not MAP_TILES_ENABLED or not template:
        return None
    url = template.format(z=z, x=x, y=y)

    with _TILE_LOCK:
        elapsed = time.time() - _LAST_TILE_TS
        if elapsed < MAP_TILE_MIN_INTERVAL_SEC:
            time.sleep(MAP_TILE_MIN_INTERVAL_SEC - elapsed)
        _LAST_TILE_TS = time.time()
        try:
            resp = _TILE_SESSION.get(url, headers=MAP_TILE_HEADERS, timeout=MAP_TILE_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("[MAP] Tile fetch failed for %s: %s", url, exc)
            return None

    try:
        return Image.open(BytesIO(resp.content)).convert("RGB")
    except OSError as exc:
        logger.warning("[MAP] Tile decode failed for %s: %s", url, exc)
        return None


@lru_cache(maxsize=512)
def fetch_tile(layer: str, z: int, x: int, y: int) -> Optional[Image.Image]:
    """Cached tile fetch; wraps the throttled HTTP helper."""
    cached_bytes = _get_tile_from_cache(layer, z, x, y)
    if cached_bytes:
        try:
            return Image.open(BytesIO(cached_bytes)).convert("RGB")
        except OSError as exc:
            logger.warning("[MAP] Tile cache decode failed for %s %d/%d/%d: %s", layer, z, x, y, exc)

    img = _fetch_tile_http(layer, z, x, y)
    if img is not None:
        buf = BytesIO()
        img.save(buf, format="PNG")
        _store_tile_in_cache(layer, z, x, y, buf.getvalue())
    return img


def draw_tile_background(
    img: Image.Image, layer: str, center_x: float, center_y: float, zoom: int
) -> bool:
    """
    Paste the tiles covering ``img`` around a fractional tile center.
    Returns True if any tile was drawn.
    """
    if not MAP_TILES_ENABLED:
        return False
    half_w = img.width / 2.0 / TILE_SIZE
    half_h = img.height / 2.0 / TILE_SIZE
    n = 2 ** zoom
    x_min = int(math.floor(center_x - half_w))
    x_max = int(math.floor(center_x + half_w))
    y_min = max(0, int(math.floor(center_y - half_h)))
    y_max = min(n - 1, int(math.floor(center_y + half_h)))

    any_tile = False
    for ty in range(y_min, y_max + 1):
        for tx in range(x_min, x_max + 1):
            tile = fetch_tile(layer, zoom, tx % n, ty)
            if tile is None:
                continue
            any_tile = True
            px = int(round((tx - center_x) * TILE_SIZE + img.width / 2.0))
            py = int(round((ty - center_y) * TILE_SIZE + img.height / 2.0))
            img.paste(tile.resize((TILE_SIZE, TILE_SIZE)), (px, py))
    return any_tile
