import io
from unittest.mock import MagicMock

from PIL import Image

from services import map_tiles


def _mock_tile_response(color="blue"):
    img = Image.new("RGB", (8, 8), color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    resp = MagicMock()
    resp.content = buf.getvalue()
    resp.raise_for_status.return_value = None
    return resp


def _fresh_cache(monkeypatch, tmp_path):
    monkeypatch.setattr(map_tiles, "MAP_TILE_CACHE_PATH", tmp_path / "tiles.sqlite")
    monkeypatch.setattr(map_tiles, "_CACHE_DB", None, raising=False)
    monkeypatch.setattr(map_tiles, "MAP_TILE_MIN_INTERVAL_SEC", 0.0)
    map_tiles.fetch_tile.cache_clear()


def test_fetch_tile_uses_layer_template_and_cache(monkeypatch, tmp_path):
    _fresh_cache(monkeypatch, tmp_path)
    monkeypatch.setattr(map_tiles, "MAP_TILES_ENABLED", True)

    urls = []

    def fake_get(url, headers=None, timeout=None):
        urls.append(url)
        return _mock_tile_response()

    monkeypatch.setattr(map_tiles._TILE_SESSION, "get", fake_get)

    tile1 = map_tiles.fetch_tile("satellite", 1, 0, 1)
    tile2 = map_tiles.fetch_tile("satellite", 1, 0, 1)

    assert tile1 is not None and tile2 is not None
    assert urls == ["https://mt1.google.com/vt/lyrs=y&x=0&y=1&z=1"]
    assert (tmp_path / "tiles.sqlite").exists()


def test_sqlite_cache_survives_memory_cache_clear(monkeypatch, tmp_path):
    _fresh_cache(monkeypatch, tmp_path)
    monkeypatch.setattr(map_tiles, "MAP_TILES_ENABLED", True)
    calls = {"count": 0}

    def fake_http(layer, z, x, y):
        calls["count"] += 1
        return Image.new("RGB", (8, 8), color="red")

    monkeypatch.setattr(map_tiles, "_fetch_tile_http", fake_http)

    assert map_tiles.fetch_tile("map", 3, 1, 2) is not None
    map_tiles.fetch_tile.cache_clear()
    assert map_tiles.fetch_tile("map", 3, 1, 2) is not None
    assert calls["count"] == 1


def test_disabled_tiles_draw_nothing(monkeypatch):
    monkeypatch.setattr(map_tiles, "MAP_TILES_ENABLED", False)
    img = Image.new("RGB", (64, 64), color="white")
    assert map_tiles.draw_tile_background(img, "map", 0.5, 0.5, 1) is False


def test_latlng_to_tile_xy_center():
    x, y = map_tiles.latlng_to_tile_xy(0.0, 0.0, 1)
    assert x == 1.0
    assert abs(y - 1.0) < 1e-9
