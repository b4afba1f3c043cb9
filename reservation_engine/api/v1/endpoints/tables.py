# reservation_engine/api/v1/endpoints/tables.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from reservation_engine.api.v1.dependencies.auth import require_staff
from reservation_engine.api.v1.dependencies.engine import get_engine
from reservation_engine.api.v1.errors import to_http_exception
from reservation_engine.domain.entities import Principal
from reservation_engine.domain.enums import TableFeature, TableSection, TableStatus
from reservation_engine.exceptions.reservation_exceptions import ReservationException
from reservation_engine.exceptions.table_exceptions import TableException
from reservation_engine.schemas.table import (
    TableCreateSchema,
    TableResponseSchema,
    TableStatusUpdateSchema,
    TableUpdateSchema,
)
from reservation_engine.services.engine import ReservationEngine

router = APIRouter(prefix="/tables", tags=["tables"])

DOMAIN_ERRORS = (ReservationException, TableException)


@router.get("/available", response_model=List[TableResponseSchema])
async def get_available_tables(
        capacity: Optional[int] = Query(None, gt=0),
        section: Optional[TableSection] = None,
        features: Optional[List[TableFeature]] = Query(None),
        engine: ReservationEngine = Depends(get_engine)
) -> List[TableResponseSchema]:
    """Tables free to seat guests right now. Cached for a short time."""
    feature_values = [f.value for f in features] if features else None
    key = engine.cache.make_key(capacity, section.value if section else None, feature_values)

    cached = await engine.cache.get(key)
    if cached is not None:
        return [TableResponseSchema(**item) for item in cached]

    tables = await engine.registry.find_available_tables(
        min_capacity=capacity,
        section=section,
        features=feature_values
    )
    response = [TableResponseSchema.from_entity(t) for t in tables]
    await engine.cache.set(key, [item.model_dump() for item in response])
    return response


@router.get("", response_model=List[TableResponseSchema])
async def get_tables(
        section: Optional[TableSection] = None,
        table_status: Optional[TableStatus] = Query(None, alias="status"),
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> List[TableResponseSchema]:
    """List all tables ordered by number."""
    tables = await engine.registry.list_tables(section=section, status=table_status)
    return [TableResponseSchema.from_entity(t) for t in tables]


@router.post("", response_model=TableResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_table(
        table_data: TableCreateSchema,
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> TableResponseSchema:
    """Register a new table."""
    try:
        table = await engine.registry.create_table(
            table_number=table_data.table_number,
            capacity=table_data.capacity,
            section=table_data.section,
            notes=table_data.notes,
            shape=table_data.shape,
            features=[f.value for f in table_data.features]
        )
        return TableResponseSchema.from_entity(table)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.get("/{table_id}", response_model=TableResponseSchema)
async def get_table(
        table_id: str,
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> TableResponseSchema:
    try:
        table = await engine.registry.get_table(table_id)
        return TableResponseSchema.from_entity(table)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.put("/{table_id}", response_model=TableResponseSchema)
async def update_table(
        table_id: str,
        table_data: TableUpdateSchema,
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> TableResponseSchema:
    """Update a table."""
    changes = table_data.model_dump(exclude_unset=True)
    if changes.get("features") is not None:
        changes["features"] = [f.value for f in table_data.features]
    try:
        table = await engine.registry.update_table(table_id, changes)
        return TableResponseSchema.from_entity(table)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.patch("/{table_id}/status", response_model=TableResponseSchema)
async def update_table_status(
        table_id: str,
        status_data: TableStatusUpdateSchema,
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> TableResponseSchema:
    """Change the operational status of a table."""
    try:
        table = await engine.registry.set_status(
            table_id,
            status_data.status,
            occupancy=status_data.occupancy,
            reserved_until=status_data.reserved_until
        )
        return TableResponseSchema.from_entity(table)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(
        table_id: str,
        _: Principal = Depends(require_staff),
        engine: ReservationEngine = Depends(get_engine)
) -> None:
    """Delete a table that has no active reservation or open order."""
    try:
        await engine.registry.delete_table(table_id)
    except DOMAIN_ERRORS as e:
        raise to_http_exception(e)
