"""Database layer for railshed application."""

from railshed.database.base import Database
from railshed.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
