"""Async SQLite facade with schema helpers for lightweight scripts."""

import sqlite3

MIN_SQLITE_VERSION = (3, 25, 0)

if sqlite3.sqlite_version_info < MIN_SQLITE_VERSION:  # pragma: no cover - env guard
    raise RuntimeError("SchemaDB requires SQLite >= 3.25.0")

from .database import Database, require_init
from .errors import SchemaDBError, TableExistsError, InvalidIdentifierError
from .types import (
    DataType,
    ForeignKeyAction,
    References,
    ColumnOptions,
    RunResult,
    TableEntry,
    ColumnInfo,
)

__all__ = [
    "Database",
    "require_init",
    "SchemaDBError",
    "TableExistsError",
    "InvalidIdentifierError",
    "DataType",
    "ForeignKeyAction",
    "References",
    "ColumnOptions",
    "RunResult",
    "TableEntry",
    "ColumnInfo",
]
__version__ = "0.1.0"
