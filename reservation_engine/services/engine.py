# reservation_engine/services/engine.py
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservation_engine.core.cache import TableListingCache
from reservation_engine.core.config import Settings
from reservation_engine.domain.entities import UserSummary
from reservation_engine.services.availability import AvailabilitySearch
from reservation_engine.services.conflict_checker import ConflictChecker
from reservation_engine.services.reservation_lifecycle import ReservationLifecycleManager
from reservation_engine.services.table_registry import TableRegistry
from reservation_engine.stores.base import ReservationStore, TableStore, UserDirectory
from reservation_engine.stores.memory import (
    InMemoryReservationStore,
    InMemoryTableStore,
    InMemoryUserDirectory,
)
from reservation_engine.stores.sql_store import (
    SqlReservationStore,
    SqlTableStore,
    SqlUserDirectory,
)


@dataclass
class ReservationEngine:
    """The reservation components wired over one set of stores."""
    tables: TableStore
    reservations: ReservationStore
    users: UserDirectory
    registry: TableRegistry
    checker: ConflictChecker
    search: AvailabilitySearch
    lifecycle: ReservationLifecycleManager
    cache: TableListingCache


def assemble_engine(
        tables: TableStore,
        reservations: ReservationStore,
        users: UserDirectory,
        cache: Optional[TableListingCache] = None,
        revalidate_edits: bool = False
) -> ReservationEngine:
    cache = cache or TableListingCache(None)
    registry = TableRegistry(tables, reservations, cache)
    checker = ConflictChecker(tables, reservations)
    return ReservationEngine(
        tables=tables,
        reservations=reservations,
        users=users,
        registry=registry,
        checker=checker,
        search=AvailabilitySearch(registry, reservations),
        lifecycle=ReservationLifecycleManager(reservations, registry, checker, revalidate_edits),
        cache=cache,
    )


def build_memory_engine(
        timeout: float = 5.0,
        latency: float = 0.0,
        revalidate_edits: bool = False,
        cache: Optional[TableListingCache] = None,
        users: Optional[Iterable[UserSummary]] = None
) -> ReservationEngine:
    return assemble_engine(
        InMemoryTableStore(timeout=timeout, latency=latency),
        InMemoryReservationStore(timeout=timeout, latency=latency),
        InMemoryUserDirectory(users),
        cache=cache,
        revalidate_edits=revalidate_edits,
    )


def build_database_engine(
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 5.0,
        revalidate_edits: bool = False,
        cache: Optional[TableListingCache] = None
) -> ReservationEngine:
    return assemble_engine(
        SqlTableStore(session_factory, timeout=timeout),
        SqlReservationStore(session_factory, timeout=timeout),
        SqlUserDirectory(session_factory, timeout=timeout),
        cache=cache,
        revalidate_edits=revalidate_edits,
    )


def build_engine(
        settings: Settings,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        cache: Optional[TableListingCache] = None
) -> ReservationEngine:
    """Build the engine for the configured STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        return build_memory_engine(
            timeout=settings.STORE_TIMEOUT_SECONDS,
            revalidate_edits=settings.EDIT_REVALIDATION,
            cache=cache,
        )
    if session_factory is None:
        raise ValueError("A session factory is required for the database store backend")
    return build_database_engine(
        session_factory,
        timeout=settings.STORE_TIMEOUT_SECONDS,
        revalidate_edits=settings.EDIT_REVALIDATION,
        cache=cache,
    )
