"""Tombstone helpers shared by repositories.

Rows are never removed; ``deleted_at`` is stamped instead and every read path
filters with :func:`live_clause`. Table and column names must come from
constants, never from request input.
"""

from __future__ import annotations

from typing import Any


def live_clause(alias: str | None = None) -> str:
    column = f"{alias}.deleted_at" if alias else "deleted_at"
    return f"{column} IS NULL"


def _affected(status: str) -> int:
    # asyncpg returns command tags like "UPDATE 3"
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


async def soft_delete(conn: Any, table: str, id_col: str, row_id: Any) -> bool:
    """Stamp deleted_at on a live row; return True only if this call deleted it."""
    q = f"UPDATE {table} SET deleted_at = NOW(), updated_at = NOW() WHERE {id_col} = $1 AND deleted_at IS NULL"
    return _affected(await conn.execute(q, row_id)) > 0


async def cascade_soft_delete(conn: Any, table: str, parent_col: str, parent_id: Any) -> int:
    """Tombstone every child of ``parent_id``; rows already deleted keep their original stamp."""
    q = (
        f"UPDATE {table} SET deleted_at = COALESCE(deleted_at, NOW()), updated_at = NOW() "
        f"WHERE {parent_col} = $1"
    )
    return _affected(await conn.execute(q, parent_id))
