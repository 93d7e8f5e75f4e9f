"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and ``AsyncSqlAdapter``, its
SQLAlchemy implementation for PostgreSQL and SQLite.

Usage:
    from jewelvault_sync.adapters import DatabaseClient, AsyncSqlAdapter
"""

from jewelvault_sync.adapters.base import DatabaseClient
from jewelvault_sync.adapters.sql import AsyncSqlAdapter

__all__ = [
    "DatabaseClient",
    "AsyncSqlAdapter",
]
