from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Connection


def table_exists(conn: Connection, table_name: str) -> bool:
    inspector = inspect(conn)
    return table_name in inspector.get_table_names()


def index_exists(conn: Connection, table_name: str, index_name: str) -> bool:
    inspector = inspect(conn)
    return any(idx.get("name") == index_name for idx in inspector.get_indexes(table_name))


__all__ = ["index_exists", "table_exists"]
