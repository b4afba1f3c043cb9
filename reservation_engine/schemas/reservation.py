# reservation_engine/schemas/reservation.py
import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from reservation_engine.domain.entities import Reservation, StatusEntry, UserSummary
from reservation_engine.domain.enums import BookingSource, Occasion, ReservationStatus
from reservation_engine.domain.slots import normalize_time, to_calendar_date
from reservation_engine.schemas.table import TableResponseSchema, TableSummarySchema


def _calendar_date(v):
    if v is None:
        return v
    if not isinstance(v, (str, dt.date)):
        raise ValueError("Date must be an ISO 8601 date or datetime string")
    return to_calendar_date(v)


def _wall_time(v):
    if v is None:
        return v
    if not isinstance(v, str):
        raise ValueError("Time must be a HH:MM string")
    return normalize_time(v)


class ReservationCreateSchema(BaseModel):
    """Schema for booking a table."""

    table_id: str = Field(..., min_length=1)
    date: dt.date
    time: str
    guest_count: int = Field(..., gt=0)
    special_requests: str = Field("", max_length=500)
    occasion: Optional[Occasion] = None
    duration: int = Field(90, ge=30)  # Minutes
    source: BookingSource = BookingSource.WEBSITE
    contact_phone: Optional[str] = Field(None, max_length=20)
    contact_email: Optional[EmailStr] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v):
        return _calendar_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        return _wall_time(v)


class ReservationEditSchema(BaseModel):
    """Schema for editing a booking. Only booking_id is required."""

    booking_id: str = Field(..., min_length=1)
    table_id: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None
    time: Optional[str] = None
    guest_count: Optional[int] = Field(None, gt=0)
    status: Optional[ReservationStatus] = None
    special_requests: Optional[str] = Field(None, max_length=500)
    occasion: Optional[Occasion] = None
    duration: Optional[int] = Field(None, ge=30)
    contact_phone: Optional[str] = Field(None, max_length=20)
    contact_email: Optional[EmailStr] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v):
        return _calendar_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        return _wall_time(v)


class CancelAllSchema(BaseModel):
    date: dt.date

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v):
        return _calendar_date(v)


class AvailabilityRequestSchema(BaseModel):
    date: dt.date
    time: str
    guest_count: Optional[int] = Field(None, gt=0)

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v):
        return _calendar_date(v)

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, v):
        return _wall_time(v)


class StatusEntrySchema(BaseModel):
    status: str
    timestamp: str
    actor_role: Optional[str] = None
    note: str = ""

    @classmethod
    def from_entity(cls, entry: StatusEntry) -> 'StatusEntrySchema':
        return cls(
            status=entry.status.value,
            timestamp=entry.timestamp.isoformat(),
            actor_role=entry.actor_role.value if entry.actor_role else None,
            note=entry.note
        )


class ReservationResponseSchema(BaseModel):
    """Schema for reservation responses."""

    id: str
    table_id: str
    user_id: str
    date: str
    time: str
    guest_count: int
    status: str
    status_history: List[StatusEntrySchema]
    special_requests: str
    occasion: Optional[str] = None
    duration: int
    source: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    notes: Optional[str] = None
    confirmation_code: str
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_entity(cls, reservation: Reservation, **extra) -> 'ReservationResponseSchema':
        """
        Create response schema from a reservation record.

        Args:
            reservation: Reservation record
            **extra: Additional fields of subclasses

        Returns:
            Response schema instance
        """
        return cls(
            id=reservation.id,
            table_id=reservation.table_id,
            user_id=reservation.user_id,
            date=reservation.date.isoformat(),
            time=reservation.time,
            guest_count=reservation.guest_count,
            status=reservation.status.value,
            status_history=[StatusEntrySchema.from_entity(e) for e in reservation.status_history],
            special_requests=reservation.special_requests,
            occasion=reservation.occasion.value if reservation.occasion else None,
            duration=reservation.duration,
            source=reservation.source.value,
            contact_phone=reservation.contact_phone,
            contact_email=reservation.contact_email,
            notes=reservation.notes,
            confirmation_code=reservation.confirmation_code,
            created_at=reservation.created_at.isoformat(),
            updated_at=reservation.updated_at.isoformat(),
            **extra
        )


class UserSummarySchema(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_entity(cls, user: UserSummary) -> 'UserSummarySchema':
        return cls(id=user.id, name=user.name, email=user.email)


class ReservationListItemSchema(ReservationResponseSchema):
    """Staff listing row with table and user details joined in."""

    table: Optional[TableSummarySchema] = None
    user: Optional[UserSummarySchema] = None


class CancelAllResponseSchema(BaseModel):
    message: str
    count: int


class AvailabilityResponseSchema(BaseModel):
    available: bool
    available_tables: List[TableResponseSchema]
