class SchemaDBError(Exception):
    """Base class for errors raised by SchemaDB itself.

    Errors reported by SQLite are not wrapped: they reach the caller as the
    original ``sqlite3.Error`` subclasses.
    """


class TableExistsError(SchemaDBError):
    """Raised by ``create_table`` when the table is already present."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table {table} already exists")
        self.table = table


class InvalidIdentifierError(SchemaDBError, ValueError):
    """Raised when a table or column name cannot be quoted safely."""
