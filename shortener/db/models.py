"""
Database Models for URL Shortener Service

This module defines the SQLModel database schema for:
- UrlRecord: Stores the mapping between short codes and original URLs

Design Decisions:
- Internal auto-incrementing id as primary key; short_code is the public identity
- Unique index on short_code: the storage-level guarantee that two workers
  racing on the same candidate code cannot both succeed
- clicks denormalized on the row and updated with an atomic UPDATE
- created_at set once at insert and never updated
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, text
from sqlmodel import Column, Field, SQLModel

SHORT_CODE_COLUMN_LENGTH = 10
ORIGINAL_URL_COLUMN_LENGTH = 2048


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlRecord(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - id: Auto-incrementing internal primary key
    - short_code: Unique fixed-length base62 code (the redirect path segment)
    - original_url: The long URL that was shortened
    - created_at: Timestamp when URL was shortened (immutable)
    - clicks: Redirect counter, only ever incremented

    Indexes:
    - short_code: Unique index for fast lookups and collision rejection
    """
    __tablename__ = "urls"

    # SQLite only auto-increments INTEGER PRIMARY KEY columns
    id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            BigInteger().with_variant(Integer, "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
    )
    original_url: str = Field(
        sa_column=Column(String(ORIGINAL_URL_COLUMN_LENGTH), nullable=False)
    )
    short_code: str = Field(
        sa_column=Column(
            String(SHORT_CODE_COLUMN_LENGTH), nullable=False, unique=True, index=True
        )
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    clicks: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0, server_default=text("0")),
    )

    @property
    def created_at_utc(self) -> datetime:
        """created_at as an aware UTC datetime (SQLite returns naive values)."""
        if self.created_at.tzinfo is None:
            return self.created_at.replace(tzinfo=timezone.utc)
        return self.created_at
