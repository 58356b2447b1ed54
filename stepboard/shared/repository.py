"""
Base repository with common data access operations.

Provides generic database operations for all feature repositories.
Uses SQLAlchemy async session for non-blocking database access.

Writes are targeted UPDATE statements on the named columns only, so
concurrent writers touching other columns of the same row don't clobber
each other. Rows keyed by a unique column are upserted with a single
INSERT ... ON CONFLICT DO UPDATE, so two writers creating the same row
at once both succeed.

Usage:
    class ParticipantRepository(BaseRepository[Participant]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, Participant)

        async def get_by_email(self, email: str) -> Participant | None:
            return await self.get_by(email=email)
"""

from typing import Any, Iterable, TypeVar, Generic, Type
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository for database operations.

    All methods are async for use with AsyncSession. Nothing here commits;
    the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        """
        Initialize repository.

        Args:
            db: Async database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    async def get_by_id(self, id: str | int) -> T | None:
        """Get entity by primary key ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by(self, **kwargs) -> T | None:
        """
        Get single entity by arbitrary field values.

        Args:
            **kwargs: Field name-value pairs to filter by

        Returns:
            First matching entity or None
        """
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_many_by_ids(self, ids: Iterable[str]) -> list[T]:
        """Get all entities whose primary key is in ids."""
        ids = list(ids)
        if not ids:
            return []
        result = await self.db.execute(
            select(self.model).where(self.model.id.in_(ids))
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> T:
        """
        Create new entity.

        Args:
            **kwargs: Field values for new entity

        Returns:
            Created entity with generated ID
        """
        entity = self.model(**kwargs)
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update_fields(self, where: dict, **values) -> int:
        """
        Set only the given columns on rows matching where.

        Args:
            where: Field name-value pairs identifying the rows
            **values: Columns to set

        Returns:
            Number of rows matched
        """
        stmt = update(self.model)
        for key, value in where.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        result = await self.db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def upsert_fields(
        self,
        conflict_key: str,
        insert_values: dict[str, Any],
        update_values: dict[str, Any]
    ) -> None:
        """
        Insert a row, or update the existing row with the same unique key.

        Args:
            conflict_key: Unique column identifying the row
            insert_values: Column values for a new row (must include conflict_key)
            update_values: Columns to set when the row already exists; may be
                SQL expressions on the existing row (e.g. Model.count + 1)
        """
        dialect_name = self.db.get_bind().dialect.name
        stmt = build_upsert_statement(
            self.model, dialect_name, conflict_key, insert_values, update_values
        )
        if stmt is not None:
            await self.db.execute(stmt)
            return

        # dialects without ON CONFLICT support
        key_value = insert_values[conflict_key]
        updated = await self.update_fields({conflict_key: key_value}, **update_values)
        if not updated:
            await self.create(**insert_values)


_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_upsert_statement(
    model: Type[T],
    dialect_name: str,
    conflict_key: str,
    insert_values: dict[str, Any],
    update_values: dict[str, Any]
):
    """INSERT ... ON CONFLICT (conflict_key) DO UPDATE, or None if unsupported."""
    insert = _INSERT_BY_DIALECT.get(dialect_name)
    if insert is None:
        return None
    return (
        insert(model)
        .values(**insert_values)
        .on_conflict_do_update(index_elements=[conflict_key], set_=update_values)
    )
