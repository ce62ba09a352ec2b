import sqlite3
import asyncio
import inspect
import logging
import aiosqlite
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Type, TypeVar, AsyncGenerator, Union

from . import ddl
from .errors import TableExistsError
from .types import (
    ColumnInfo,
    ColumnOptions,
    Params,
    RunResult,
    TableDefinition,
    TableEntry,
)

# Type for self-returning class methods
T = TypeVar('T', bound='Database')

RowCallback = Callable[[sqlite3.Row], Union[None, Awaitable[None]]]

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger("schemadb.trace")

TABLE_LIST_MIN_VERSION = (3, 37, 0)

# Emulates PRAGMA table_list for SQLite builds that predate it.
_TABLE_LIST_FALLBACK_SQL = (
    "SELECT 'main' AS schema, m.name AS name, m.type AS type, "
    "(SELECT COUNT(*) FROM pragma_table_info(m.name)) AS ncol, "
    "0 AS wr, 0 AS strict "
    "FROM sqlite_master AS m WHERE m.type IN ('table', 'view') "
    "UNION ALL "
    "SELECT 'main', 'sqlite_schema', 'table', 5, 0, 0"
)


def require_init(method: Callable) -> Callable:
    """
    Decorator to ensure the database is open before method execution.

    Raises:
        RuntimeError: if `init()` was not called, or `close()` already was.
    """
    def check(self) -> None:
        if not getattr(self, 'initialized', False) or self.conn is None:
            raise RuntimeError(f"database {self.db_path!r} is not open, call init() first")

    if inspect.isasyncgenfunction(method):
        async def async_gen_wrapper(self, *args, **kwargs):
            check(self)
            async for item in method(self, *args, **kwargs):
                yield item
        async_gen_wrapper.__name__ = method.__name__
        async_gen_wrapper.__doc__ = method.__doc__
        return async_gen_wrapper

    async def async_wrapper(self, *args, **kwargs):
        check(self)
        return await method(self, *args, **kwargs)
    async_wrapper.__name__ = method.__name__
    async_wrapper.__doc__ = method.__doc__
    return async_wrapper


class Database:
    """
    Async SQLite facade: statement passthroughs plus schema helpers.

    All calls go through a single aiosqlite connection, so they reach SQLite
    in the order they were awaited. No locking or transaction handling is
    added on top; every ``execute`` commits immediately.

    Usage:
        db = await Database.open("app.db")
        try:
            await db.create_table("t", {"id": {"type": "INTEGER", "primary_key": True}})
        finally:
            await db.close()

    or:
        async with Database("app.db") as db:
            rows = await db.fetch_all("SELECT * FROM t")
    """

    def __init__(self, db_path: str, *, verbose: bool = False, foreign_keys: bool = False) -> None:
        self.db_path = db_path
        self.verbose = verbose
        self.foreign_keys = foreign_keys
        self.conn: Optional[aiosqlite.Connection] = None
        self.initialized: bool = False

    @classmethod
    async def open(cls: Type[T], db_path: str, **config: Any) -> T:
        """
        Factory to create and initialize the database instance.

        Raises the engine error (e.g. ``sqlite3.OperationalError``) when the
        file cannot be opened.
        """
        instance: T = cls(db_path, **config)
        await instance.init()
        return instance

    async def init(self) -> None:
        """
        Open the connection and apply per-instance configuration.
        """
        if self.initialized:
            return
        conn = await aiosqlite.connect(self.db_path)
        try:
            conn.row_factory = sqlite3.Row
            if self.verbose:
                await conn.set_trace_callback(self._trace)
            if self.foreign_keys:
                sql = "PRAGMA foreign_keys = ON"
                logger.debug("Executing SQL: %s", sql)
                await conn.execute(sql)
        except BaseException:
            await conn.close()
            raise
        self.conn = conn
        self.initialized = True
        logger.info("Opened database %s", self.db_path)

    async def __aenter__(self: T) -> T:
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.initialized:
            await self.close()

    @staticmethod
    def _trace(statement: str) -> None:
        trace_logger.debug("%s", statement)

    @require_init
    async def execute(self, sql: str, params: Params = None) -> RunResult:
        """
        Execute a statement that returns no rows and commit.

        Example:
            res = await db.execute("INSERT INTO t(name) VALUES (?)", ["x"])
            print(res.last_id, res.changes)
        """
        ps = params if params is not None else ()
        logger.debug("Executing SQL: %s; params: %s", sql, ps)
        cur = await self.conn.execute(sql, ps)
        try:
            result = RunResult(last_id=cur.lastrowid or 0, changes=max(cur.rowcount, 0))
        finally:
            await cur.close()
        await self.conn.commit()
        return result

    @require_init
    async def fetch_one(self, sql: str, params: Params = None) -> Optional[sqlite3.Row]:
        """
        Fetch the first row of a query. Returns sqlite3.Row or None.

        Example:
            row = await db.fetch_one("SELECT name FROM t WHERE id = ?", [1])
            if row:
                print(row["name"])
        """
        ps = params if params is not None else ()
        logger.debug("Executing SQL: %s; params: %s", sql, ps)
        async with self.conn.execute(sql, ps) as cur:
            return await cur.fetchone()

    @require_init
    async def fetch_all(self, sql: str, params: Params = None) -> List[sqlite3.Row]:
        """
        Fetch all rows of a query, in result order.

        Example:
            rows = await db.fetch_all("SELECT name FROM t ORDER BY id")
        """
        ps = params if params is not None else ()
        logger.debug("Executing SQL: %s; params: %s", sql, ps)
        async with self.conn.execute(sql, ps) as cur:
            return list(await cur.fetchall())

    @require_init
    async def iter_rows(self, sql: str, params: Params = None) -> AsyncGenerator[sqlite3.Row, None]:
        """
        Async generator fetching rows one by one.

        Example:
            async for row in db.iter_rows("SELECT name FROM t"):
                print(row["name"])
        """
        ps = params if params is not None else ()
        logger.debug("Executing SQL: %s; params: %s", sql, ps)
        async with self.conn.execute(sql, ps) as cur:
            async for row in cur:
                yield row

    async def for_each_row(self, sql: str, params: Params, on_row: RowCallback) -> None:
        """
        Call ``on_row`` for every row of the query, in order, and return once
        the last row was handled. ``on_row`` may be a coroutine function.
        """
        async for row in self.iter_rows(sql, params):
            result = on_row(row)
            if asyncio.iscoroutine(result):
                await result

    async def rename_table(self, table: str, new_table: str) -> None:
        await self.execute(ddl.rename_table_sql(table, new_table))

    async def rename_column(self, table: str, column: str, new_column: str) -> None:
        await self.execute(ddl.rename_column_sql(table, column, new_column))

    async def add_column(self, table: str, column: str, options: Union[ColumnOptions, Mapping[str, Any]]) -> None:
        await self.execute(ddl.add_column_sql(table, column, options))

    async def drop_column(self, table: str, column: str) -> None:
        await self.execute(ddl.drop_column_sql(table, column))

    async def drop_table(self, table: str) -> None:
        await self.execute(ddl.drop_table_sql(table))

    async def list_tables(self) -> List[TableEntry]:
        """Tables and views in every attached schema, as reported by SQLite."""
        if sqlite3.sqlite_version_info >= TABLE_LIST_MIN_VERSION:
            rows = await self.fetch_all("PRAGMA table_list;")
        else:
            rows = await self.fetch_all(_TABLE_LIST_FALLBACK_SQL)
        return [TableEntry.from_row(row) for row in rows]

    async def table_info(self, table: str) -> List[ColumnInfo]:
        rows = await self.fetch_all(ddl.table_info_sql(table))
        return [ColumnInfo.from_row(row) for row in rows]

    async def table_exists(self, table: str) -> bool:
        return any(entry.name == table for entry in await self.list_tables())

    async def create_table(self, table: str, definition: TableDefinition) -> None:
        """
        Create ``table`` from a mapping of column name to column options.

        Raises:
            TableExistsError: if a table with that name is already present.

        Example:
            await db.create_table("users", {
                "id": ColumnOptions(DataType.INTEGER, primary_key=True, auto_increment=True),
                "email": {"type": "TEXT", "unique": True, "allow_null": False},
            })
        """
        if await self.table_exists(table):
            raise TableExistsError(table)
        sql = ddl.create_table_sql(table, definition)
        await self.execute(sql)

    @require_init
    async def close(self) -> None:
        """
        Close the database connection.
        """
        if self.conn:
            await self.conn.close()
        self.conn = None
        self.initialized = False
        logger.info("Closed database %s", self.db_path)
