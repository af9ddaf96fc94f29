from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession


async def dialect_upsert(
    session: AsyncSession,
    table: Any,
    values: dict[str, Any],
    index_elements: list[str],
    update_columns: list[str],
) -> Any:
    """Single-statement ``INSERT ... ON CONFLICT DO UPDATE`` for PostgreSQL or SQLite.

    Only ``update_columns`` are overwritten when the row already exists, so
    concurrent writers of other columns are never clobbered.
    """
    bind = session.get_bind()
    dialect_name = getattr(getattr(bind, "dialect", None), "name", "")

    stmt: Any
    if "postgresql" in str(dialect_name):
        from sqlalchemy.dialects.postgresql import insert as _pg_insert

        stmt = _pg_insert(table).values(**values)
    else:
        from sqlalchemy.dialects.sqlite import insert as _sqlite_insert

        stmt = _sqlite_insert(table).values(**values)

    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={col: getattr(stmt.excluded, col) for col in update_columns},
    )
    return await session.execute(stmt)
