# commission_engine/crud/bulk.py
from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


async def insert_or_skip(
    db: AsyncSession,
    table: Table,
    rows: list[dict[str, Any]],
    conflict_columns: list[str],
) -> int:
    """
    INSERT ... ON CONFLICT (conflict_columns) DO NOTHING in one statement.
    Returns how many rows were actually inserted; rows hitting the unique
    constraint are skipped, not raised.
    """
    if not rows:
        return 0

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise RuntimeError(f"insert_or_skip not supported for dialect {dialect!r}")

    values = [{"id": uuid.uuid4(), **row} for row in rows]
    stmt = insert(table).values(values).on_conflict_do_nothing(index_elements=conflict_columns)
    result = await db.execute(stmt)
    return int(result.rowcount or 0)
