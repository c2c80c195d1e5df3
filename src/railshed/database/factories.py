"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from railshed.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "RAILSHED_DB_PATH"


def default_database_path() -> Path:
    """Return ~/.railshed/railshed.db, creating the directory if needed."""
    db_dir = Path.home() / ".railshed"
    db_dir.mkdir(exist_ok=True)
    return db_dir / "railshed.db"


def create_sqlite_database(database_path: Optional[str] = None, auto_migrate: bool = True) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks RAILSHED_DB_PATH
            environment variable, then defaults to ~/.railshed/railshed.db
        auto_migrate: Apply pending schema migrations before returning

    Returns:
        SQLAlchemyDatabase instance configured for SQLite

    Raises:
        MigrationFailedError: If auto_migrate is set and a migration fails
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get(DB_PATH_ENV)

    if database_path is None:
        database_path = str(default_database_path())

    database_url = f"sqlite:///{database_path}"
    db = SQLAlchemyDatabase(database_url)
    if auto_migrate:
        db.initialize_schema()
    return db
