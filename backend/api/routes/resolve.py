"""
Direct place resolution API routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.database import get_directory
from api.schemas import AddressQuery, CoordinatesModel, PlaceResponse, place_to_response
from domain.errors import ResolutionError
from services.directory import DirectoryController

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/address", response_model=PlaceResponse)
def resolve_address(payload: AddressQuery, directory: DirectoryController = Depends(get_directory)):
    try:
        place = directory.resolve_address(payload.query)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ResolutionError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return place_to_response(place)


@router.post("/coordinates", response_model=PlaceResponse)
def resolve_coordinates(payload: CoordinatesModel, directory: DirectoryController = Depends(get_directory)):
    try:
        place = directory.resolve_coordinates(payload.to_domain())
    except ResolutionError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return place_to_response(place)
