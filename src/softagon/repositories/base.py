"""Generic async repository over a single ORM model.

Every repository wraps an AsyncSession supplied by the caller. Writes are
flushed (so constraint violations surface immediately as
sqlalchemy.exc.IntegrityError) but never committed: transaction boundaries
belong to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from sqlalchemy import delete, func, inspect, select

from softagon.db.models.base import Base

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

DEFAULT_PAGE_SIZE = 100


class RecordNotFoundError(Exception):
    """Raised when a record does not exist."""

    def __init__(self, model_name: str, record_id: Any) -> None:
        self.model_name = model_name
        self.record_id = record_id
        super().__init__(f"{model_name} {record_id} not found")


class ImmutableRecordError(Exception):
    """Raised when modifying a record that may only be inserted."""

    def __init__(self, model_name: str, record_id: Any, operation: str) -> None:
        self.model_name = model_name
        self.record_id = record_id
        self.operation = operation
        super().__init__(f"Cannot {operation} {model_name} {record_id}: records are immutable")


class Repository(Generic[ModelT]):
    """Create/read/update/delete for one model.

    Subclasses set `model`; ad-hoc repositories for simple tables can pass
    it to the constructor instead:

        topics = Repository(session, HelpTopic)
        topic = await topics.create(name="Printers", department_id=dept_id)

    A subclass that sets `guards_model` owns its model: append-only and
    encrypted tables enforce their rules there, so a plain
    Repository(session, Model) for them raises TypeError.
    """

    model: ClassVar[type[Base]]
    guards_model: ClassVar[bool] = False

    _guarded: ClassVar[dict[type[Base], type[Repository[Any]]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("guards_model") and "model" in cls.__dict__:
            Repository._guarded[cls.model] = cls

    def __init__(self, session: AsyncSession, model: type[ModelT] | None = None) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session for database operations.
            model: Model class, when not fixed by the subclass.
        """
        self._session = session
        if model is not None:
            owner = Repository._guarded.get(model)
            if owner is not None and not isinstance(self, owner):
                msg = f"{model.__name__} records must be written through {owner.__name__}"
                raise TypeError(msg)
            self.model = model
        if getattr(self, "model", None) is None:
            msg = f"{type(self).__name__} has no model"
            raise TypeError(msg)

    @property
    def model_name(self) -> str:
        return self.model.__name__

    @property
    def pk_name(self) -> str:
        """Attribute name of the primary key (e.g. `user_id`)."""
        return inspect(self.model).primary_key[0].key

    def _check_attributes(self, names: Any) -> None:
        known = set(inspect(self.model).attrs.keys())
        unknown = sorted(set(names) - known)
        if unknown:
            msg = f"Unknown {self.model_name} attribute(s): {', '.join(unknown)}"
            raise ValueError(msg)

    def _criteria(self, filters: dict[str, Any]) -> list[Any]:
        self._check_attributes(filters)
        return [getattr(self.model, name) == value for name, value in filters.items()]

    def _default_order(self) -> Any:
        if "created_at" in inspect(self.model).columns:
            return getattr(self.model, "created_at")
        return getattr(self.model, self.pk_name)

    async def _save(self, record: ModelT) -> ModelT:
        """Flush pending changes and reload server-generated values."""
        await self._session.flush()
        await self._session.refresh(record)
        return record

    async def create(self, **values: Any) -> ModelT:
        """Insert a new record.

        Raises:
            ValueError: If a value names an unknown attribute.
            sqlalchemy.exc.IntegrityError: On constraint violations.
        """
        self._check_attributes(values)
        record = self.model(**values)
        self._session.add(record)
        await self._save(record)

        logger.info(
            "Created %s",
            self.model_name,
            extra={"model": self.model_name, "record_id": str(getattr(record, self.pk_name))},
        )
        return record

    async def get(self, record_id: Any) -> ModelT | None:
        """Get a record by primary key, or None."""
        return await self._session.get(self.model, record_id)

    async def get_or_raise(self, record_id: Any) -> ModelT:
        """Get a record by primary key.

        Raises:
            RecordNotFoundError: If no such record exists.
        """
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.model_name, record_id)
        return record

    async def list(
        self,
        *,
        limit: int | None = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        **filters: Any,
    ) -> Sequence[ModelT]:
        """List records matching equality filters, oldest first."""
        query = (
            select(self.model)
            .where(*self._criteria(filters))
            .order_by(self._default_order())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self._session.execute(query)
        return result.scalars().all()

    async def count(self, **filters: Any) -> int:
        """Count records matching equality filters."""
        query = select(func.count()).select_from(self.model).where(*self._criteria(filters))
        result = await self._session.execute(query)
        return result.scalar_one()

    async def update(self, record_id: Any, **values: Any) -> ModelT:
        """Set attributes on an existing record.

        Raises:
            RecordNotFoundError: If no such record exists.
            ValueError: If a value names an unknown attribute or the primary key.
        """
        self._check_attributes(values)
        if self.pk_name in values:
            msg = f"{self.model_name} primary key cannot be updated"
            raise ValueError(msg)

        record = await self.get_or_raise(record_id)
        for name, value in values.items():
            setattr(record, name, value)
        await self._save(record)

        logger.info(
            "Updated %s",
            self.model_name,
            extra={
                "model": self.model_name,
                "record_id": str(record_id),
                "fields": sorted(values),
            },
        )
        return record

    def _dependent_tables(self) -> set[Table]:
        """Tables whose rows a delete of this model changes through ON DELETE rules."""
        root = inspect(self.model).local_table
        cascaded = {root}
        dependents: set[Table] = set()
        pending = [root]
        while pending:
            parent = pending.pop()
            for table in root.metadata.tables.values():
                for fk in table.foreign_keys:
                    if fk.column.table is not parent:
                        continue
                    rule = (fk.ondelete or "").upper()
                    if rule == "CASCADE" and table not in cascaded:
                        cascaded.add(table)
                        dependents.add(table)
                        pending.append(table)
                    elif rule == "SET NULL":
                        dependents.add(table)
        return dependents

    def _evict_deleted(self, record_id: Any) -> None:
        """Drop the deleted row and its ON DELETE dependents from the session."""
        dependents = self._dependent_tables()
        for instance in list(self._session.identity_map.values()):
            state = inspect(instance)
            # Identity keys avoid loading expired attributes
            if isinstance(instance, self.model) and state.identity == (record_id,):
                self._session.expunge(instance)
            elif state.mapper.local_table in dependents:
                self._session.expunge(instance)

    async def delete(self, record_id: Any) -> bool:
        """Delete a record by primary key.

        Issued as a DELETE statement so database-side ON DELETE rules
        (CASCADE, SET NULL, RESTRICT) decide what happens to dependents.
        The deleted record and any loaded rows of dependent tables are
        expunged from the session; the next get() reloads them from the
        database. Instances the caller still holds are detached and stale.

        Returns:
            True if a row was deleted, False if none matched.

        Raises:
            sqlalchemy.exc.IntegrityError: If a RESTRICT reference blocks the delete.
        """
        stmt = delete(self.model).where(getattr(self.model, self.pk_name) == record_id)
        result = await self._session.execute(stmt)
        deleted = result.rowcount > 0

        if deleted:
            self._evict_deleted(record_id)
            logger.info(
                "Deleted %s",
                self.model_name,
                extra={"model": self.model_name, "record_id": str(record_id)},
            )
        return deleted
