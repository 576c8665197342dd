"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter / MySQLAdapter: concrete backends, chosen from the URL
- UrlRecord: the urls table
- UrlStore: the persistent store used by the rest of the service

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register it in shortener.db.adapters
4. No other code changes needed!
"""

from shortener.db.adapters import MySQLAdapter, SQLiteAdapter, get_database_adapter
from shortener.db.interface import DatabaseAdapter
from shortener.db.models import UrlRecord
from shortener.db.store import UrlStore

__all__ = [
    "DatabaseAdapter",
    "MySQLAdapter",
    "SQLiteAdapter",
    "UrlRecord",
    "UrlStore",
    "get_database_adapter",
]
