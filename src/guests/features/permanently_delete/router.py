from fastapi import APIRouter, Depends, HTTPException, Response

from src.guests.dependencies import get_guest_engine
from src.guests.dtos import GuestNotFoundError, RemoteWriteError
from src.guests.engine import GuestEngine
from src.guests.urls import GUEST_URL

router = APIRouter()


@router.delete(GUEST_URL, status_code=204)
async def permanently_delete_guest(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> Response:
    """
    Delete a unit and all of its rows. This cannot be undone.
    """
    try:
        await engine.permanently_delete(unit_id)
    except GuestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RemoteWriteError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(status_code=204)
