"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the exporter and importer talk to.
All methods are ``async def``; rows travel as plain dicts keyed by column
name, never as ORM objects.

Usage:
    from jewelvault_sync.adapters.base import DatabaseClient

    async def count_items(client: DatabaseClient) -> int:
        rows = await client.select("items", ["itemId"])
        return len(rows)
"""

from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy import MetaData


class DatabaseClient(Protocol):
    """Datastore interface used by backup and restore.

    All methods are async -- callers must ``await`` every operation.
    """

    async def select(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: ``"*"`` or a sequence of column names.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.select(
                "categories",
                ["catId", "catName"],
                filters={"userId": "U1", "storeId": "S1"},
                order_by="catId",
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert one row and return it.

        Raises:
            Exception: If duplicate key or constraint violation.
        """
        ...

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        """Delete rows matching all filters."""
        ...

    async def apply_batch(
        self,
        table: str,
        deletes: Sequence[dict[str, Any]],
        inserts: Sequence[dict],
    ) -> None:
        """Apply deletes then inserts to one table in a single transaction.

        Either every statement commits or none does.

        Args:
            table: Table name.
            deletes: Filter dicts; each deletes the rows it matches.
            inserts: Rows to insert after the deletes.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations)."""
        ...

    async def create_tables(self, metadata: MetaData) -> None:
        """Create every table in ``metadata`` that does not exist yet."""
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
