# reservation_engine/schemas/table.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from reservation_engine.domain.entities import Table
from reservation_engine.domain.enums import (
    TableFeature,
    TableSection,
    TableShape,
    TableStatus,
)


class TableCreateSchema(BaseModel):
    """Schema for registering a table."""

    table_number: int = Field(..., gt=0)
    capacity: int = Field(..., gt=0)
    section: TableSection = TableSection.INDOOR
    shape: TableShape = TableShape.RECTANGULAR
    features: List[TableFeature] = Field(default_factory=list)
    notes: str = Field("", max_length=1000)


class TableUpdateSchema(BaseModel):
    """Schema for updating a table. The table number is immutable."""

    capacity: Optional[int] = Field(None, gt=0)
    section: Optional[TableSection] = None
    shape: Optional[TableShape] = None
    features: Optional[List[TableFeature]] = None
    notes: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class TableStatusUpdateSchema(BaseModel):
    status: TableStatus
    occupancy: Optional[int] = Field(None, gt=0)
    reserved_until: Optional[datetime] = None


class TableResponseSchema(BaseModel):
    """Schema for table responses."""

    id: str
    table_number: int
    capacity: int
    section: str
    shape: str
    features: List[str]
    status: str
    is_active: bool
    notes: str
    current_occupancy: int
    occupied_since: Optional[str] = None
    reserved_until: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}

    @field_validator('features', mode='before')
    @classmethod
    def sort_features(cls, v):
        return sorted(v or [])

    @classmethod
    def from_entity(cls, table: Table) -> 'TableResponseSchema':
        """
        Create response schema from a table record.

        Args:
            table: Table record

        Returns:
            TableResponseSchema instance
        """
        return cls(
            id=table.id,
            table_number=table.table_number,
            capacity=table.capacity,
            section=table.section.value,
            shape=table.shape.value,
            features=list(table.features),
            status=table.status.value,
            is_active=table.is_active,
            notes=table.notes,
            current_occupancy=table.current_occupancy,
            occupied_since=table.occupied_since.isoformat() if table.occupied_since else None,
            reserved_until=table.reserved_until.isoformat() if table.reserved_until else None,
            created_at=table.created_at.isoformat(),
            updated_at=table.updated_at.isoformat()
        )


class TableSummarySchema(BaseModel):
    """Table details joined into staff booking listings."""

    id: str
    table_number: int
    capacity: int
    section: str

    @classmethod
    def from_entity(cls, table: Table) -> 'TableSummarySchema':
        return cls(
            id=table.id,
            table_number=table.table_number,
            capacity=table.capacity,
            section=table.section.value
        )
