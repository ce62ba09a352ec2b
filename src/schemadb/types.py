import enum
import sqlite3
import dataclasses
from typing import Any, Mapping, Optional, Sequence, Union


class DataType(str, enum.Enum):
    """SQLite column types accepted by the schema helpers."""

    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"
    NUMERIC = "NUMERIC"


class ForeignKeyAction(str, enum.Enum):
    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    CASCADE = "CASCADE"


DataValue = Union[str, int, float, bytes, bool, None]
Params = Union[Sequence[DataValue], Mapping[str, DataValue], None]


@dataclasses.dataclass(frozen=True)
class RunResult:
    """Outcome of a single mutating statement."""

    last_id: int
    changes: int


@dataclasses.dataclass
class References:
    table: str
    key: str
    on_update: Optional[ForeignKeyAction] = None
    on_delete: Optional[ForeignKeyAction] = None

    def __post_init__(self) -> None:
        if self.on_update is not None:
            self.on_update = ForeignKeyAction(self.on_update)
        if self.on_delete is not None:
            self.on_delete = ForeignKeyAction(self.on_delete)

    @classmethod
    def coerce(cls, value: Union["References", Mapping[str, Any]]) -> "References":
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"references must be References or a mapping, got {type(value).__name__}")
        return cls(**value)


@dataclasses.dataclass
class ColumnOptions:
    """
    Describes one column for ``create_table`` / ``add_column``.

    ``allow_null`` is tri-state: ``None`` leaves nullability to SQLite,
    ``False`` adds ``NOT NULL``. Primary key columns are always ``NOT NULL``.

    Example:
        ColumnOptions(DataType.INTEGER, primary_key=True, auto_increment=True)
    """

    type: DataType
    primary_key: bool = False
    auto_increment: bool = False
    references: Optional[References] = None
    allow_null: Optional[bool] = None
    unique: bool = False
    default: Union[int, float, str, bytes, None] = None

    def __post_init__(self) -> None:
        self.type = DataType(self.type)
        if self.references is not None:
            self.references = References.coerce(self.references)

    @classmethod
    def coerce(cls, value: Union["ColumnOptions", Mapping[str, Any]]) -> "ColumnOptions":
        """Accept either a ``ColumnOptions`` or a plain dict with the same keys."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"column options must be ColumnOptions or a mapping, got {type(value).__name__}")
        return cls(**value)


TableDefinition = Mapping[str, Union[ColumnOptions, Mapping[str, Any]]]


@dataclasses.dataclass(frozen=True)
class TableEntry:
    """One row of ``PRAGMA table_list``."""

    schema: str
    name: str
    type: str
    ncol: int
    wr: int
    strict: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TableEntry":
        return cls(**{f.name: row[f.name] for f in dataclasses.fields(cls)})


@dataclasses.dataclass(frozen=True)
class ColumnInfo:
    """One row of ``PRAGMA table_info``."""

    cid: int
    name: str
    type: str
    notnull: int
    dflt_value: Optional[str]
    pk: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ColumnInfo":
        return cls(**{f.name: row[f.name] for f in dataclasses.fields(cls)})

