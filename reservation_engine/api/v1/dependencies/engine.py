# reservation_engine/api/v1/dependencies/engine.py
from fastapi import Request

from reservation_engine.services.engine import ReservationEngine


async def get_engine(request: Request) -> ReservationEngine:
    """Engine built at startup and kept on the application state."""
    return request.app.state.engine
