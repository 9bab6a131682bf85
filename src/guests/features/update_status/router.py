from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from src.guests.dependencies import get_guest_engine
from src.guests.dtos import GuestDTO, GuestNotFoundError, GuestStatus, RemoteWriteError
from src.guests.engine import GuestEngine
from src.guests.schemas import GuestResponse
from src.guests.urls import (
    CONFIRM_GUEST_URL,
    GUEST_STATUS_URL,
    RESTORE_GUEST_URL,
    REVERT_GUEST_URL,
    SOFT_DELETE_GUEST_URL,
)

router = APIRouter()


class GuestStatusSubmit(BaseModel):
    status: GuestStatus


async def _run_mutation(mutation: Callable[[], Awaitable[GuestDTO]]) -> GuestResponse:
    """Map engine errors to HTTP errors. The cache is rolled back already."""
    try:
        guest = await mutation()
    except GuestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RemoteWriteError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return GuestResponse.from_dto(guest)


@router.post(CONFIRM_GUEST_URL, response_model=GuestResponse)
async def confirm_guest(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    return await _run_mutation(lambda: engine.confirm_guest(unit_id))


@router.post(REVERT_GUEST_URL, response_model=GuestResponse)
async def revert_to_pending(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    return await _run_mutation(lambda: engine.revert_to_pending(unit_id))


@router.post(SOFT_DELETE_GUEST_URL, response_model=GuestResponse)
async def soft_delete_guest(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    """
    Move a unit to the trash. It can be restored until permanently deleted.
    """
    return await _run_mutation(lambda: engine.soft_delete(unit_id))


@router.post(RESTORE_GUEST_URL, response_model=GuestResponse)
async def restore_guest(
    unit_id: str,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    """
    Bring a unit back from the trash. Restored units are always pending.
    """
    return await _run_mutation(lambda: engine.restore(unit_id))


@router.put(GUEST_STATUS_URL, response_model=GuestResponse)
async def update_guest_status(
    unit_id: str,
    data: GuestStatusSubmit,
    engine: GuestEngine = Depends(get_guest_engine),
) -> GuestResponse:
    return await _run_mutation(lambda: engine.update_guest_status(unit_id, data.status))
