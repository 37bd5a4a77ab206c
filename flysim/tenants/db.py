"""One SQLite database per tenant, opened on demand and cached."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from pathlib import Path

log = logging.getLogger(__name__)

_MIGRATIONS = (
    """
    CREATE TABLE IF NOT EXISTS items (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tenant_info (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        item_count INTEGER DEFAULT 0
    )
    """,
)


def _run_migrations(conn: sqlite3.Connection) -> None:
    log.debug("Running migrations")
    with conn:
        for statement in _MIGRATIONS:
            conn.execute(statement)
        conn.execute(
            "INSERT OR IGNORE INTO tenant_info (id, name) VALUES (1, ?)",
            ("Default Tenant",),
        )


def list_all_tenants(db_path: str | os.PathLike[str]) -> list[str]:
    """Name every tenant that has a ``.db`` file in ``db_path``."""
    tenants = []
    with os.scandir(db_path) as entries:
        for entry in entries:
            name = entry.name
            if name.endswith(".db"):
                while name.endswith(".db"):
                    name = name[: -len(".db")]
                tenants.append(name)
    return tenants


class TenantDatabases:
    """A cache of open connections, one per tenant, under a common directory."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)
        self._connections: dict[str, sqlite3.Connection] = {}
        self._lock = threading.Lock()

    def get(self, tenant: str) -> sqlite3.Connection:
        """Return the tenant's connection, creating and migrating its database if needed."""
        with self._lock:
            conn = self._connections.get(tenant)
            if conn is not None:
                log.debug("Using existing connection for tenant: %s", tenant)
                return conn

            log.info("Creating new database for tenant: %s", tenant)
            db_file = Path(f"{self.root}/{tenant}.db")
            if not db_file.exists():
                db_file.write_bytes(b"")

            conn = sqlite3.connect(db_file, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            try:
                _run_migrations(conn)
            except sqlite3.Error:
                conn.close()
                raise
            self._connections[tenant] = conn
            return conn

    def list_tenants(self) -> list[str]:
        """Name every tenant with a database file under the root."""
        return list_all_tenants(self.root)

    def close(self) -> None:
        """Close every cached connection."""
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()

    def __enter__(self) -> "TenantDatabases":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def init_db_directory(path: str | os.PathLike[str]) -> TenantDatabases:
    """Create the database directory and return an empty tenant cache over it."""
    os.makedirs(path, exist_ok=True)
    return TenantDatabases(path)