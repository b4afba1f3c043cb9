# reservation_engine/api/v1/endpoints/bookings.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from reservation_engine.api.v1.dependencies.auth import get_current_principal
from reservation_engine.api.v1.dependencies.engine import get_engine
from reservation_engine.api.v1.errors import to_http_exception
from reservation_engine.domain.entities import Principal
from reservation_engine.domain.enums import ReservationStatus
from reservation_engine.exceptions.reservation_exceptions import ReservationException
from reservation_engine.exceptions.table_exceptions import TableException
from reservation_engine.schemas.reservation import (
    AvailabilityRequestSchema,
    AvailabilityResponseSchema,
    CancelAllResponseSchema,
    CancelAllSchema,
    ReservationCreateSchema,
    ReservationEditSchema,
    ReservationListItemSchema,
    ReservationResponseSchema,
    UserSummarySchema,
)
from reservation_engine.schemas.table import TableResponseSchema, TableSummarySchema
from reservation_engine.services.engine import ReservationEngine
from reservation_engine.services.reservation_lifecycle import ReservationRequest

router = APIRouter(prefix="/bookings", tags=["bookings"])

DOMAIN_ERRORS = (ReservationException, TableException)


@router.post("/reserve", response_model=ReservationResponseSchema, status_code=status.HTTP_201_CREATED)
async def reserve_table(
        booking_data: ReservationCreateSchema,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> ReservationResponseSchema:
    """Book a table for the current user."""
    try:
        reservation = await engine.lifecycle.create(
            ReservationRequest(**booking_data.model_dump()),
            principal
        )
        return ReservationResponseSchema.from_entity(reservation)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.put("/edit", response_model=ReservationResponseSchema)
async def edit_booking(
        booking_data: ReservationEditSchema,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> ReservationResponseSchema:
    """Edit booking details or status."""
    changes = booking_data.model_dump(exclude_unset=True, exclude={"booking_id"})
    try:
        reservation = await engine.lifecycle.edit(booking_data.booking_id, changes, principal)
        return ReservationResponseSchema.from_entity(reservation)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.delete("/cancel-all", response_model=CancelAllResponseSchema)
async def cancel_all_bookings(
        cancel_data: CancelAllSchema,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> CancelAllResponseSchema:
    """Cancel every pending or confirmed booking on a date."""
    try:
        count = await engine.lifecycle.cancel_all_for_date(cancel_data.date, principal)
        return CancelAllResponseSchema(
            message=f"All bookings for {cancel_data.date.isoformat()} have been cancelled",
            count=count
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.get("/all", response_model=List[ReservationListItemSchema])
async def get_all_bookings(
        booking_status: Optional[ReservationStatus] = Query(None, alias="status"),
        booking_date: Optional[date] = Query(None, alias="date"),
        table_id: Optional[str] = None,
        user_id: Optional[str] = None,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> List[ReservationListItemSchema]:
    """List bookings with table and user details, staff only."""
    try:
        reservations = await engine.lifecycle.list_reservations(
            principal,
            status=booking_status,
            booking_date=booking_date,
            table_id=table_id,
            user_id=user_id
        )
        tables = await engine.tables.get_many(r.table_id for r in reservations)
        users = await engine.users.get_summaries(r.user_id for r in reservations)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)

    items = []
    for reservation in reservations:
        table = tables.get(reservation.table_id)
        user = users.get(reservation.user_id)
        items.append(ReservationListItemSchema.from_entity(
            reservation,
            table=TableSummarySchema.from_entity(table) if table else None,
            user=UserSummarySchema.from_entity(user) if user else None
        ))
    return items


@router.get("/my-bookings", response_model=List[ReservationResponseSchema])
async def get_my_bookings(
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> List[ReservationResponseSchema]:
    """Current user's bookings ordered by date and time."""
    reservations = await engine.lifecycle.list_for_user(principal)
    return [ReservationResponseSchema.from_entity(r) for r in reservations]


@router.post("/check-availability", response_model=AvailabilityResponseSchema)
async def check_availability(
        request_data: AvailabilityRequestSchema,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> AvailabilityResponseSchema:
    """Tables free at a date and time for an optional party size."""
    try:
        result = await engine.search.search(
            request_data.date,
            request_data.time,
            request_data.guest_count
        )
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)

    return AvailabilityResponseSchema(
        available=result.available,
        available_tables=[TableResponseSchema.from_entity(t) for t in result.tables]
    )


@router.get("/{booking_id}", response_model=ReservationResponseSchema)
async def get_booking(
        booking_id: str,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> ReservationResponseSchema:
    try:
        reservation = await engine.lifecycle.get(booking_id, principal)
        return ReservationResponseSchema.from_entity(reservation)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.delete("/{booking_id}", response_model=ReservationResponseSchema)
async def cancel_booking(
        booking_id: str,
        principal: Principal = Depends(get_current_principal),
        engine: ReservationEngine = Depends(get_engine)
) -> ReservationResponseSchema:
    """Cancel a booking (admin only). The record is kept with status cancelled."""
    try:
        reservation = await engine.lifecycle.cancel(booking_id, principal)
        return ReservationResponseSchema.from_entity(reservation)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)