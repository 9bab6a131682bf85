from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str
    version: str = "0.1.0"
    guests_loaded: bool = False
    realtime: bool = False


@router.get("/", response_model=HealthCheckResponse)
async def health_check(request: Request) -> HealthCheckResponse:
    """
    Health check endpoint to verify the API is running.
    Reports whether the guest list has loaded and realtime updates are on.
    """
    engine = getattr(request.app.state, "guest_engine", None)
    if engine is None:
        return HealthCheckResponse(status="healthy")

    reconciler = engine.reconciler
    return HealthCheckResponse(
        status="healthy",
        guests_loaded=engine.store.loaded,
        realtime=reconciler is not None and reconciler.subscribed,
    )
