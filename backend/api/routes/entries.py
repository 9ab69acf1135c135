"""
Directory entries API routes.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from api.database import get_directory
from api.schemas import EntryResponse, SubmitRequest, entry_to_response
from services.directory import DirectoryController

router = APIRouter()
logger = logging.getLogger(__name__)


def _matches(entry, needle: str) -> bool:
    place = entry.location
    haystack = [entry.name, place.formatted_address, place.place_type or ""]
    return any(needle in field.lower() for field in haystack)


@router.get("", response_model=List[EntryResponse])
async def list_entries(q: Optional[str] = None, directory: DirectoryController = Depends(get_directory)):
    """List entries newest first, optionally filtered by name, address or category."""
    entries = directory.entries()
    if q and q.strip():
        needle = q.strip().lower()
        entries = [e for e in entries if _matches(e, needle)]
    return [entry_to_response(e) for e in entries]


@router.post("", response_model=EntryResponse, status_code=201)
async def submit_entry(payload: SubmitRequest, directory: DirectoryController = Depends(get_directory)):
    """Submit the join form; reuses a picked place when the address was not edited."""
    if payload.name is not None:
        directory.selection.set_name(payload.name)
    if payload.address is not None:
        directory.selection.set_address(payload.address)

    entry = await directory.submit_async()
    if entry is None:
        form = directory.selection.form
        if not form.name.strip() or not form.address.strip():
            raise HTTPException(status_code=400, detail="Name and address are required")
        if directory.selection.busy:
            raise HTTPException(status_code=409, detail="A submission or location lookup is already in progress")
        raise HTTPException(status_code=502, detail=form.error or "Location could not be verified")
    return entry_to_response(entry)


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: str, directory: DirectoryController = Depends(get_directory)):
    entry = directory.get_entry(entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry_to_response(entry)


@router.post("/{entry_id}/select")
async def select_entry(entry_id: str, directory: DirectoryController = Depends(get_directory)):
    """Toggle selection; selecting the focused entry again clears it."""
    try:
        selected = directory.select_entry(entry_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"selected_entry_id": selected}
