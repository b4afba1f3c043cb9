# reservation_engine/api/v1/router.py
from fastapi import APIRouter

from reservation_engine.api.v1.endpoints import bookings, tables

api_router = APIRouter()

api_router.include_router(bookings.router)
api_router.include_router(tables.router)
