"""
Map API routes: clicks, marker layer, base layer, zoom and snapshots.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.database import get_directory
from api.schemas import CoordinatesModel, LayerUpdate, ZoomRequest, place_to_response
from services.directory import DirectoryController

router = APIRouter()


@router.post("/click")
async def map_click(payload: CoordinatesModel, directory: DirectoryController = Depends(get_directory)):
    """
    A click on the map. Only captured while picking; otherwise it is
    ordinary navigation and nothing happens.
    """
    if not directory.selection.state.is_picking:
        return {"captured": False, "place": None}
    place = await directory.map_click_async(payload.to_domain())
    return {
        "captured": True,
        "place": place_to_response(place) if place else None,
        "error": directory.selection.form.error,
    }


@router.get("/markers")
async def get_markers(directory: DirectoryController = Depends(get_directory)):
    return directory.map_view.to_dict()


@router.put("/layer")
async def set_layer(payload: LayerUpdate, directory: DirectoryController = Depends(get_directory)):
    try:
        directory.map_view.set_base_layer(payload.base_layer)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return directory.map_view.to_dict()


@router.post("/zoom")
async def zoom(payload: ZoomRequest, directory: DirectoryController = Depends(get_directory)):
    if payload.direction == "in":
        directory.map_view.zoom_in()
    else:
        directory.map_view.zoom_out()
    return directory.map_view.to_dict()


@router.get("/snapshot.png")
def map_snapshot(
    width: int = Query(800, ge=64, le=2048),
    height: int = Query(600, ge=64, le=2048),
    directory: DirectoryController = Depends(get_directory),
):
    """Static PNG of the current view."""
    png = directory.map_view.render_png(width=width, height=height)
    return Response(content=png, media_type="image/png")
