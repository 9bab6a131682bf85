from fastapi import HTTPException, Request

from src.guests.engine import GuestEngine


def get_guest_engine(request: Request) -> GuestEngine:
    """Dependency returning the engine built by the application lifespan."""
    engine = getattr(request.app.state, "guest_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Guest list is not available")
    return engine
