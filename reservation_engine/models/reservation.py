# reservation_engine/models/reservation.py
import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reservation_engine.core.database import Base, enum_column
from reservation_engine.domain.enums import (
    BookingSource,
    IN_USE_STATUSES,
    Occasion,
    ReservationStatus,
    UserRole,
)

_IN_USE_SQL = ", ".join(sorted(f"'{status.value}'" for status in IN_USE_STATUSES))
ACTIVE_SLOT_PREDICATE = text(f"status IN ({_IN_USE_SQL})")


class Reservation(Base):
    """
    Table reservation for one party at one date and time.
    """
    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    table_id: Mapped[str] = mapped_column(
        ForeignKey("tables.id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(enum_column(ReservationStatus), nullable=False)
    special_requests: Mapped[str] = mapped_column(Text, default="")
    occasion: Mapped[Optional[Occasion]] = mapped_column(enum_column(Occasion))
    duration: Mapped[int] = mapped_column(Integer, default=90)  # Minutes
    source: Mapped[BookingSource] = mapped_column(enum_column(BookingSource), nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20))
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    confirmation_code: Mapped[str] = mapped_column(String(6), unique=True, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status_history: Mapped[List["ReservationStatusHistory"]] = relationship(
        back_populates="reservation",
        order_by="ReservationStatusHistory.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        # At most one live reservation per table, date and time.
        Index(
            "uq_reservations_active_slot",
            "table_id",
            "date",
            "time",
            unique=True,
            postgresql_where=ACTIVE_SLOT_PREDICATE,
            sqlite_where=ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_reservations_table_date_time", "table_id", "date", "time"),
        Index("ix_reservations_user_id", "user_id"),
        Index("ix_reservations_date_status", "date", "status"),
    )

    def __str__(self) -> str:
        return f"Reservation {self.id} - table {self.table_id} at {self.date} {self.time}"


class ReservationStatusHistory(Base):
    """
    Append-only status change log of a reservation.
    """
    __tablename__ = "reservation_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reservation_id: Mapped[str] = mapped_column(
        ForeignKey("reservations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(enum_column(ReservationStatus), nullable=False)
    actor_role: Mapped[Optional[UserRole]] = mapped_column(enum_column(UserRole))
    note: Mapped[str] = mapped_column(Text, default="")
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    reservation: Mapped["Reservation"] = relationship(back_populates="status_history")

    __table_args__ = (
        UniqueConstraint("reservation_id", "position", name="uq_status_history_position"),
    )
