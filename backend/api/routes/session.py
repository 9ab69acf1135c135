"""
Form, picking-mode and geolocation API routes.
"""
from fastapi import APIRouter, Depends

from api.database import get_directory
from api.schemas import FormUpdate, GeolocationReport
from domain.errors import GeolocationError
from services.directory import DirectoryController

router = APIRouter()


@router.get("/session")
async def get_session_state(directory: DirectoryController = Depends(get_directory)):
    """Current mode, selection, form contents and notice."""
    return directory.snapshot()


@router.put("/form")
async def update_form(payload: FormUpdate, directory: DirectoryController = Depends(get_directory)):
    directory.selection.open_form()
    if payload.name is not None:
        directory.selection.set_name(payload.name)
    if payload.address is not None:
        directory.selection.set_address(payload.address)
    return directory.snapshot()


@router.delete("/form")
async def close_form(directory: DirectoryController = Depends(get_directory)):
    directory.selection.close_form()
    directory.sync_map()
    return directory.snapshot()


@router.post("/picking/start")
async def start_picking(directory: DirectoryController = Depends(get_directory)):
    directory.start_picking()
    return directory.snapshot()


@router.post("/picking/cancel")
async def cancel_picking(directory: DirectoryController = Depends(get_directory)):
    directory.cancel_picking()
    return directory.snapshot()


@router.post("/geolocation")
def report_geolocation(payload: GeolocationReport, directory: DirectoryController = Depends(get_directory)):
    """Device position from the browser, or the error it reported."""
    if payload.coordinates is None:
        directory.geolocate(error=GeolocationError())
    else:
        directory.geolocate(coords=payload.coordinates.to_domain())
    return directory.snapshot()


@router.delete("/notice")
async def dismiss_notice(directory: DirectoryController = Depends(get_directory)):
    directory.selection.dismiss_notice()
    return directory.snapshot()
