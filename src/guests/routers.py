from fastapi import APIRouter

from .features.add_guest.router import router as add_guest_router
from .features.get_guests.router import router as get_guests_router
from .features.permanently_delete.router import router as permanently_delete_router
from .features.update_guest.router import router as update_guest_router
from .features.update_status.router import router as update_status_router

router = APIRouter()

router.include_router(get_guests_router)
router.include_router(add_guest_router)
router.include_router(update_guest_router)
router.include_router(update_status_router)
router.include_router(permanently_delete_router)
