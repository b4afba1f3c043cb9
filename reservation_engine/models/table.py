# reservation_engine/models/table.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reservation_engine.core.database import Base, enum_column
from reservation_engine.domain.enums import TableSection, TableShape, TableStatus


class Table(Base):
    """
    Table model representing a physical restaurant table.
    """
    __tablename__ = "tables"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    table_number: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)  # Number of seats
    section: Mapped[TableSection] = mapped_column(enum_column(TableSection), nullable=False)
    shape: Mapped[TableShape] = mapped_column(enum_column(TableShape), nullable=False)
    features: Mapped[List[str]] = mapped_column(JSON, default=list)
    status: Mapped[TableStatus] = mapped_column(enum_column(TableStatus), index=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    current_occupancy: Mapped[int] = mapped_column(Integer, default=0)
    occupied_since: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    reserved_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    current_order_id: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __str__(self) -> str:
        return f"Table {self.table_number}, {self.section} (Capacity: {self.capacity})"
