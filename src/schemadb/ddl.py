"""
SQL text generation for the schema helpers of :class:`schemadb.Database`.

Everything here is pure: functions take names and column descriptors and
return statements, nothing touches a connection. Identifiers are always
passed through :func:`quote_identifier`; values never are, they only appear
as ``DEFAULT`` literals.

Example:
    create_table_sql("users", {
        "id": {"type": "INTEGER", "primary_key": True, "auto_increment": True},
        "name": {"type": "TEXT", "allow_null": False, "default": "anon"},
    })
    # CREATE TABLE "users" ("id" INTEGER NOT NULL,
    #     "name" TEXT NOT NULL DEFAULT "anon", PRIMARY KEY("id" AUTOINCREMENT));
"""

import math
import logging
from typing import Any, List, Mapping, Optional, Tuple, Union

from .errors import InvalidIdentifierError
from .types import ColumnOptions, ForeignKeyAction, TableDefinition

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Return ``name`` as a double-quoted SQLite identifier."""
    if not isinstance(name, str):
        raise InvalidIdentifierError(f"Identifier must be a string, got {type(name).__name__}")
    if not name:
        raise InvalidIdentifierError("Identifier must not be empty")
    if "\x00" in name:
        raise InvalidIdentifierError(f"Identifier contains NUL character: {name!r}")
    return '"' + name.replace('"', '""') + '"'


def default_literal(value: Any) -> str:
    """Render ``value`` for a ``DEFAULT`` clause.

    Numbers are emitted as-is, strings in double quotes.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Default value must be a finite number, got {value!r}")
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    if isinstance(value, (bytes, bytearray)):
        return f"X'{bytes(value).hex()}'"
    raise TypeError(f"Unsupported default value type: {type(value).__name__}")


def column_definition(name: str, options: Union[ColumnOptions, Mapping[str, Any]]) -> str:
    opts = ColumnOptions.coerce(options)
    sql = f"{quote_identifier(name)} {opts.type.value}"
    if opts.allow_null is False or opts.primary_key:
        sql += " NOT NULL"
    if opts.unique:
        sql += " UNIQUE"
    if opts.default is not None:
        sql += f" DEFAULT {default_literal(opts.default)}"
    ref = opts.references
    if ref is not None:
        on_update = ref.on_update or ForeignKeyAction.CASCADE
        on_delete = ref.on_delete or ForeignKeyAction.CASCADE
        sql += (
            f" REFERENCES {quote_identifier(ref.table)}({quote_identifier(ref.key)})"
            f" ON UPDATE {on_update.value} ON DELETE {on_delete.value}"
        )
    return sql


def primary_key_clause(definition: Mapping[str, ColumnOptions]) -> Optional[str]:
    """
    Build the table-level ``PRIMARY KEY`` constraint, or ``None`` when no
    column is marked as primary key.

    SQLite only accepts AUTOINCREMENT on a single-column key, so a composite
    key ignores the flag on its members.
    """
    keys: List[Tuple[str, bool]] = [
        (name, opts.auto_increment) for name, opts in definition.items() if opts.primary_key
    ]
    if not keys:
        return None
    if len(keys) == 1:
        name, auto_inc = keys[0]
        return f"PRIMARY KEY({quote_identifier(name)}{' AUTOINCREMENT' if auto_inc else ''})"
    dropped = [name for name, auto_inc in keys if auto_inc]
    if dropped:
        logger.warning(
            "AUTOINCREMENT ignored for columns %s: composite primary key", ", ".join(dropped)
        )
    return f"PRIMARY KEY({','.join(quote_identifier(name) for name, _ in keys)})"


def create_table_sql(table: str, definition: TableDefinition) -> str:
    if not definition:
        raise ValueError(f"Table {table} must have at least one column")
    columns = {name: ColumnOptions.coerce(opts) for name, opts in definition.items()}
    parts = [column_definition(name, opts) for name, opts in columns.items()]
    pk = primary_key_clause(columns)
    if pk is not None:
        parts.append(pk)
    return f"CREATE TABLE {quote_identifier(table)} ({', '.join(parts)});"


def rename_table_sql(table: str, new_table: str) -> str:
    return f"ALTER TABLE {quote_identifier(table)} RENAME TO {quote_identifier(new_table)};"


def rename_column_sql(table: str, column: str, new_column: str) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table)} "
        f"RENAME COLUMN {quote_identifier(column)} TO {quote_identifier(new_column)};"
    )


def add_column_sql(table: str, column: str, options: Union[ColumnOptions, Mapping[str, Any]]) -> str:
    return f"ALTER TABLE {quote_identifier(table)} ADD {column_definition(column, options)};"


def drop_column_sql(table: str, column: str) -> str:
    return f"ALTER TABLE {quote_identifier(table)} DROP {quote_identifier(column)};"


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE {quote_identifier(table)};"


def table_info_sql(table: str) -> str:
    return f"PRAGMA table_info({quote_identifier(table)});"
