"""
iCanGrow API — Record Service Base
====================================

What:  The shape every entity service shares: filtered + paginated listing,
       get-or-404, existence check, whitelisted create/update, delete, and
       lifecycle status transitions.
Why:   Twenty-odd entities differ only in which columns they filter, search
       and let callers write. Declaring those as class attributes keeps each
       concrete service down to its domain helpers.
How:   Subclasses set `model`, `resource` and the column maps below; methods
       take the request session as their first argument and never commit
       (the session dependency owns the transaction).

Listing contract:
    filters  equality on mapped columns; None, "" and "all" are ignored
    q        case-insensitive substring, OR-combined across search_columns
    date_from / date_to  inclusive bounds on date_column
    result   PageResult(records, total, page, limit) → totalPages = ceil(total/limit)

Error translation (store_errors):
    ICanGrowError     → propagates unchanged
    IntegrityError    → ConflictError (409)
    SQLAlchemyError   → DatabaseError (500) "Failed to <action>"
"""

import logging
import math
import secrets
import uuid
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

from sqlalchemy import DateTime, Select, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.database import Base
from icangrow.exceptions import ConflictError, DatabaseError, ICanGrowError, NotFoundError
from icangrow.lifecycle import TransitionTable
from icangrow.models.mixins import utcnow

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

IGNORED_FILTER_VALUES = (None, "", "all")


class PageResult(Generic[ModelT]):
    """One page of rows plus the numbers the client needs to page further."""

    def __init__(self, records: List[ModelT], total: int, page: int, limit: int):
        self.records = records
        self.total = total
        self.page = page
        self.limit = limit

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def __repr__(self) -> str:
        return f"<PageResult(page={self.page}/{self.total_pages}, records={len(self.records)}, total={self.total})>"


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """
    Translate store failures raised inside the block into API errors.

    Usage:
        with store_errors("fetch batches"):
            result = await db.execute(query)
    """
    try:
        yield
    except ICanGrowError:
        raise
    except IntegrityError as e:
        logger.warning("Integrity error while trying to %s: %s", action, e.orig)
        raise ConflictError(f"Failed to {action}: conflicting record") from e
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, type(e).__name__, exc_info=True)
        raise DatabaseError(f"Failed to {action}") from e


def reference_number(prefix: str, on: Optional[date] = None) -> str:
    """Human-facing reference such as EBR-20240115-3F9A1C."""
    day = on or utcnow().date()
    return f"{prefix}-{day:%Y%m%d}-{secrets.token_hex(3).upper()}"


def day_bounds(value: date, end: bool = False) -> datetime:
    """Start of `value` (or of the following day when end=True), in UTC."""
    if end:
        value = value + timedelta(days=1)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class RecordService(Generic[ModelT]):
    """
    Generic CRUD for one ORM model.

    Class attributes:
        model            ORM class
        resource         display name used in "<resource> not found"
        plural           used in error actions ("Failed to fetch <plural>")
        creatable        fields create() copies from the payload
        updatable        fields update() copies from the payload
        filters          query-filter name → column attribute (equality)
        search_columns   columns matched by `q`
        date_column      column bounded by date_from / date_to
        order_by         (column, descending) pairs
        creator_field    column stamped with the actor on create
        transitions      TransitionTable guarding `status` changes
    """

    model: ClassVar[Type[Base]]
    resource: ClassVar[str] = "Record"
    plural: ClassVar[str] = "records"

    creatable: ClassVar[FrozenSet[str]] = frozenset()
    updatable: ClassVar[FrozenSet[str]] = frozenset()
    filters: ClassVar[Mapping[str, str]] = {}
    search_columns: ClassVar[Sequence[str]] = ()
    date_column: ClassVar[Optional[str]] = None
    order_by: ClassVar[Sequence[Tuple[str, bool]]] = (("created_at", True),)
    creator_field: ClassVar[Optional[str]] = "created_by"
    transitions: ClassVar[Optional[TransitionTable]] = None

    # ── Query building ────────────────────────────────────────────────────

    def base_query(self) -> Select:
        return select(self.model)

    def apply_filters(self, query: Select, filters: Mapping[str, Any]) -> Select:
        for name, column_name in self.filters.items():
            value = filters.get(name)
            if value in IGNORED_FILTER_VALUES:
                continue
            query = query.where(getattr(self.model, column_name) == value)

        q = filters.get("q")
        if q and self.search_columns:
            query = query.where(
                or_(
                    *(
                        getattr(self.model, column_name).icontains(q, autoescape=True)
                        for column_name in self.search_columns
                    )
                )
            )

        if self.date_column:
            column = getattr(self.model, self.date_column)
            on_timestamp = isinstance(column.type, DateTime)
            date_from = filters.get("date_from")
            date_to = filters.get("date_to")
            if date_from is not None:
                query = query.where(column >= (day_bounds(date_from) if on_timestamp else date_from))
            if date_to is not None:
                if on_timestamp:
                    query = query.where(column < day_bounds(date_to, end=True))
                else:
                    query = query.where(column <= date_to)

        return self.extra_filters(query, filters)

    def extra_filters(self, query: Select, filters: Mapping[str, Any]) -> Select:
        """Hook for filters that are not a plain equality (substring room names, ...)."""
        return query

    def apply_order(self, query: Select) -> Select:
        clauses = []
        for column_name, descending in self.order_by:
            column = getattr(self.model, column_name)
            clauses.append(column.desc() if descending else column.asc())
        clauses.append(self.model.id.asc())
        return query.order_by(*clauses)

    async def paginate(self, db: AsyncSession, query: Select, page: int, limit: int) -> PageResult:
        """COUNT over the filtered query, then one OFFSET/LIMIT page of it."""
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(count_query)).scalar_one()
        rows = await db.execute(query.offset((page - 1) * limit).limit(limit))
        return PageResult(list(rows.scalars().all()), total, page, limit)

    # ── Operations ────────────────────────────────────────────────────────

    async def list(
        self,
        db: AsyncSession,
        filters: Optional[Mapping[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
    ) -> PageResult:
        query = self.apply_order(self.apply_filters(self.base_query(), filters or {}))
        with store_errors(f"fetch {self.plural}"):
            return await self.paginate(db, query, page, limit)

    async def get(self, db: AsyncSession, record_id: uuid.UUID, for_update: bool = False) -> ModelT:
        """
        Raises:
            NotFoundError: "<resource> not found"
        """
        query = (
            self.base_query()
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        with store_errors(f"fetch {self.resource.lower()}"):
            record = (await db.execute(query)).scalar_one_or_none()
        if record is None:
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        return record

    async def exists(self, db: AsyncSession, record_id: Optional[uuid.UUID]) -> bool:
        if record_id is None:
            return False
        with store_errors(f"check {self.resource.lower()}"):
            result = await db.execute(select(self.model.id).where(self.model.id == record_id))
        return result.scalar_one_or_none() is not None

    def defaults(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Hook applied to whitelisted create values before insert."""
        return values

    async def create(
        self,
        db: AsyncSession,
        data: Mapping[str, Any],
        actor_id: Optional[uuid.UUID] = None,
    ) -> ModelT:
        values = self.defaults({k: v for k, v in data.items() if k in self.creatable})
        if self.creator_field and actor_id is not None:
            values[self.creator_field] = actor_id
        record = self.model(**values)
        with store_errors(f"create {self.resource.lower()}"):
            db.add(record)
            await db.flush()
        logger.info("%s created: %s", self.resource, record.id)
        return await self.get(db, record.id)

    async def update(self, db: AsyncSession, record_id: uuid.UUID, data: Mapping[str, Any]) -> ModelT:
        record = await self.get(db, record_id)
        changes = {k: v for k, v in data.items() if k in self.updatable}
        if "status" in changes and changes["status"] != getattr(record, "status", None):
            self.check_transition(record, changes["status"])
        for field, value in changes.items():
            setattr(record, field, value)
        with store_errors(f"update {self.resource.lower()}"):
            await db.flush()
        logger.info("%s updated: %s (%s)", self.resource, record_id, ", ".join(sorted(changes)) or "no changes")
        return await self.get(db, record_id)

    async def delete(self, db: AsyncSession, record_id: uuid.UUID) -> None:
        record = await self.get(db, record_id)
        with store_errors(f"delete {self.resource.lower()}"):
            await db.delete(record)
            await db.flush()
        logger.info("%s deleted: %s", self.resource, record_id)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def check_transition(self, record: ModelT, target: Any) -> None:
        if self.transitions is not None:
            self.transitions.check(record.status, target)

    def transition(self, record: ModelT, target: Any) -> None:
        """Guarded status assignment; the caller flushes."""
        self.check_transition(record, target)
        record.status = getattr(target, "value", target)
