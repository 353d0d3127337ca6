"""
Shared SQLAlchemy base and helpers.
"""
import uuid  # noqa: F401 - for default factories elsewhere
from datetime import datetime, date, UTC

from sqlalchemy import Numeric
from sqlalchemy.orm import declarative_base

# Import SQLite compilation shims for PostgreSQL-only types when running tests
# under SQLite.
from .. import sqlite_compiler_shims  # noqa: F401


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


def today_utc() -> date:
    """Return the current UTC calendar date."""
    return now_utc().date()


def Money():
    """Monetary amount column type (returned as float)."""
    return Numeric(14, 2, asdecimal=False)


def Quantity():
    """Stock / quantity column type (returned as float)."""
    return Numeric(14, 3, asdecimal=False)


Base = declarative_base()
