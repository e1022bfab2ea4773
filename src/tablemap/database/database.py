"""
Database handle: lazy connection plus single-row CRUD for ModelObject instances.

A handle is configured once at bootstrap (credentials injection) without
connecting, then used anywhere in the application:

    Database.get().inject_dsn("mysql+aiomysql://db.local/shop", "shop", secret)
    ...
    product = Product().assign(Product.NAME, "lamp")
    await Database.get().insert(product)

The connection itself is not attempted until the first statement is executed.

Every CRUD method builds literal SQL text from the model state and sends it
through SQLAlchemy's asyncio engine with `exec_driver_sql` (no ORM session, no
bound parameters). Values are rendered with the dialect's own literal quoting and
identifiers with the dialect's identifier quoting.

Outside of `transaction()` each statement is committed as soon as it succeeds.
Driver errors are translated by `sql_error_handler` into DuplicateKeyError or
SQLError, both carrying the SQL text that failed.
"""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Mapping

from sqlalchemy import String, literal
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..core.logging.filters import reset_connection_name, set_connection_name
from ..dialects import get_dialect, supports_for_update, supports_returning
from ..exceptions.base import (
    ConfigurationError,
    MoreThanOneObjectError,
    ObjectNotFoundError,
    RepositoryError,
    SQLError,
)
from ..exceptions.mapper import sql_error_handler
from ..models.model_object import ModelObject

logger = logging.getLogger(__name__)

_SORT_DIRECTIONS = {"asc", "desc"}


class Database:
    """
    A named, lazily connected database handle.

    Use `Database.get(name)` to share one handle per connection name across the
    application, or instantiate directly for a private handle.
    """

    _connections: dict[str, "Database"] = {}

    def __init__(self, connection_name: str = ""):
        self.connection_name = connection_name
        self._url: URL | None = None
        self._engine_options: dict[str, Any] = {}
        self._engine: AsyncEngine | None = None
        self._connection: AsyncConnection | None = None
        self._explicit_transaction = False

    @classmethod
    def get(cls, connection_name: str = "") -> "Database":
        if connection_name not in cls._connections:
            cls._connections[connection_name] = cls(connection_name)
        return cls._connections[connection_name]

    # =================================================================================================================
    # Credentials injection
    # =================================================================================================================

    def inject_dsn(self, dsn: str, username: str | None = None, password: str | None = None,
                   engine_options: Mapping[str, Any] | None = None) -> "Database":
        """
        Store the DSN (an SQLAlchemy URL) and credentials. No connection is attempted.

        Args:
            dsn: e.g. "sqlite+aiosqlite:///app.db", "postgresql+asyncpg://host/db"
            username, password: override the ones embedded in the URL, if given.
            engine_options: extra keyword arguments for create_async_engine().
        """
        url = make_url(dsn)
        if username is not None:
            url = url.set(username=username)
        if password is not None:
            url = url.set(password=password)

        self._url = url
        self._engine_options = dict(engine_options or {})
        logger.debug(
            "database.inject_dsn",
            extra={"connection": self.connection_name, "dsn": url.render_as_string(hide_password=True)},
        )
        return self

    def inject_settings(self, settings) -> "Database":
        """
        Configure the handle from a Settings object (DATABASE_DSN, DATABASE_USERNAME,
        DATABASE_PASSWORD, SQLALCHEMY_ECHO).
        """
        if not settings.DATABASE_DSN:
            raise ConfigurationError("Missing DATABASE_DSN setting.")
        return self.inject_dsn(
            settings.DATABASE_DSN,
            settings.DATABASE_USERNAME,
            settings.DATABASE_PASSWORD,
            {"echo": settings.SQLALCHEMY_ECHO},
        )

    def inject_engine(self, engine: AsyncEngine) -> "Database":
        """Use an engine built elsewhere (tests, shared application engine)."""
        self._engine = engine
        return self

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            if self._url is None:
                raise ConfigurationError(f"No DSN injected for connection '{self.connection_name}'.")
            # create_async_engine() does not connect
            self._engine = create_async_engine(self._url, **self._engine_options)
        return self._engine

    async def connection(self) -> AsyncConnection:
        """
        Returns the handle's connection, opening it on first use.
        """
        if self._connection is None or self._connection.closed:
            self._connection = await self.engine.connect()
            logger.info("database.connected", extra={"connection": self.connection_name,
                                                      "dialect": self.get_driver_name()})
        return self._connection

    async def terminate(self) -> None:
        """
        Close the connection and dispose of the engine. The handle keeps its
        credentials and reconnects on next use.
        """
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
        if self._engine is not None and self._url is not None:
            await self._engine.dispose()
            self._engine = None
        logger.debug("database.terminated", extra={"connection": self.connection_name})

    # =================================================================================================================
    # Transactions
    # =================================================================================================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """
        Group statements into one transaction: commit on success, roll back on error.

            async with db.transaction():
                await db.load_for_update(account)
                account.assign(Account.BALANCE, 10)
                await db.update(account)

        Nested calls join the outer transaction.
        """
        if self._explicit_transaction:
            yield self
            return

        async with sql_error_handler("begin", self.get_driver_name()):
            conn = await self.connection()

        self._explicit_transaction = True
        try:
            async with sql_error_handler("commit", self.get_driver_name()):
                try:
                    async with conn.begin():
                        yield self
                except DBAPIError:
                    await self._rollback_quietly(conn, None)
                    raise
        finally:
            self._explicit_transaction = False

    # =================================================================================================================
    # SQL text helpers
    # =================================================================================================================

    def get_driver_name(self) -> str:
        return self.engine.dialect.name

    def quote_identifier(self, name: str) -> str:
        preparer = self.engine.dialect.identifier_preparer
        for char in {"`", preparer.initial_quote, preparer.final_quote}:
            name = name.replace(char, "")
        return preparer.quote_identifier(name)

    def quote(self, value: Any) -> str:
        """
        Render `value` as a quoted string literal using the dialect's escaping rules.
        """
        compiled = literal(str(value), String()).compile(
            dialect=self.engine.dialect, compile_kwargs={"literal_binds": True}
        )
        return str(compiled)

    def render_value(self, value: Any) -> str:
        """
        None -> null, booleans -> 1/0, numbers -> bare literals, binary -> hex
        literal, anything else quoted.
        """
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.binary_literal(value)
        return self.quote(value)

    def binary_literal(self, value: bytes | bytearray | memoryview) -> str:
        hex_digits = bytes(value).hex()
        if self.get_driver_name() == "postgresql":
            return f"'\\x{hex_digits}'::bytea"
        return f"X'{hex_digits}'"

    def _where_clause(self, criteria: Mapping[str, Any], table: str | None = None) -> str:
        prefix = f"{self.quote_identifier(table)}." if table else ""
        conditions = []
        for key, value in criteria.items():
            target = f"{prefix}{self.quote_identifier(key)}"
            if value is None:
                conditions.append(f"{target} is null")
            else:
                conditions.append(f"{target} = {self.render_value(value)}")
        return " and ".join(conditions)

    @staticmethod
    def _require_key(obj: ModelObject, criteria: Mapping[str, Any]) -> None:
        if not criteria:
            raise RepositoryError(
                f"{type(obj).__name__} maps no primary key; cannot target a single row.",
                error_code="invalid_input",
            )

    @staticmethod
    def select_clause(fields_map: Mapping[str, Any], table_prefix: str | None = None,
                      alias_prefix: str | None = None) -> str:
        """
        Returns the comma-separated list of the model's columns, for the select
        clause of a hand-written query.

        Args:
            fields_map: usually `Model.map_fields()`.
            table_prefix: qualify every column (`p.name`).
            alias_prefix: alias every column (`... as p_name`), to be stripped again
                by `ModelObject.wrap(row, prefix="p_")`.
        """
        fields = []
        for initial_name in fields_map:
            field = initial_name
            if not initial_name.startswith("`") and table_prefix is None:
                field = f"`{initial_name}`"
            if table_prefix is not None:
                field = f"{table_prefix}.{field}"
            if alias_prefix is not None:
                field = f"{field} as {alias_prefix}{initial_name}"
            fields.append(field)
        return ",".join(fields)

    # =================================================================================================================
    # Execution
    # =================================================================================================================

    async def execute(self, query: str, model_name: str | None = None):
        """
        Run a literal statement and return its buffered CursorResult.
        """
        return await self._run(query, model_name)

    async def fetch_all(self, query: str, model_name: str | None = None) -> list[Mapping[str, Any]]:
        return await self._run(query, model_name, lambda result: list(result.mappings().all()))

    async def _run(self, query: str, model_name: str | None = None,
                   consume: Callable[[Any], Any] | None = None) -> Any:
        """
        Execute `query`, hand the result to `consume` while the statement's
        transaction is still open, then commit unless inside transaction().
        """
        token = set_connection_name(self.connection_name)
        try:
            logger.debug("database.execute", extra={"model": model_name, "query": query})
            async with sql_error_handler(query, self.get_driver_name(), model_name):
                # connecting may fail too; it is reported like the statement itself
                conn = await self.connection()
                try:
                    result = await conn.exec_driver_sql(query, execution_options={"no_parameters": True})
                    outcome = consume(result) if consume else result
                    # deferred constraints are checked here
                    if not self._explicit_transaction:
                        await conn.commit()
                except Exception:
                    if not self._explicit_transaction:
                        await self._rollback_quietly(conn, model_name)
                    raise

            return outcome
        finally:
            reset_connection_name(token)

    async def _rollback_quietly(self, conn: AsyncConnection, model_name: str | None) -> None:
        try:
            await conn.rollback()
            # a failed COMMIT leaves the driver's transaction open; conn.rollback() only forgets it
            await conn.run_sync(lambda sync_conn: sync_conn.dialect.do_rollback(sync_conn.connection))
        except Exception:
            logger.exception("Failed to rollback after statement error", extra={"model": model_name})

    # =================================================================================================================
    # Insert
    # =================================================================================================================

    async def insert(self, obj: ModelObject) -> Any:
        """
        Inserts the row represented by `obj`. Every column is listed, not only the
        dirty ones; a None auto-increment column is left to the database.

        On success the object becomes clean and its auto-increment column receives
        the new id, which is also returned.

        Raises:
            DuplicateKeyError: the row already exists; `obj` is left unmodified.
            SQLError: any other driver error.
        """
        start = time.perf_counter()
        table = obj.table()
        auto_increment = obj.map_auto_increment()
        model_name = type(obj).__name__

        insert_fields = []
        insert_values = []
        for field in obj.record():
            value = obj.column(field)
            if value is None and field == auto_increment:
                continue
            insert_fields.append(self.quote_identifier(field))
            insert_values.append(self.render_value(value))

        if insert_fields:
            query = (
                f"insert into {self.quote_identifier(table)} ( {', '.join(insert_fields)} ) "
                f"values ( {', '.join(insert_values)} )"
            )
        else:
            query = f"insert into {self.quote_identifier(table)} default values"

        returning = auto_increment is not None and supports_returning(self.get_driver_name())
        if returning:
            query += f" returning {self.quote_identifier(auto_increment)}"

        insert_id = await self._run(
            query, model_name,
            (lambda result: result.scalar()) if returning else (lambda result: result.lastrowid),
        )
        obj.clean(insert_id)

        logger.info(
            "database.insert.success",
            extra={
                "model": model_name,
                "table": table,
                "id": insert_id,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return insert_id

    # =================================================================================================================
    # Load
    # =================================================================================================================

    async def load(self, obj: ModelObject) -> bool:
        """
        Fills `obj` with the row matching its primary key.

        Raises:
            ObjectNotFoundError: no row matches.
            MoreThanOneObjectError: the key is not unique in the table.
        """
        return await self._load_with_options(obj)

    async def load_first(self, obj: ModelObject, sorting: Mapping[str, str] | None = None) -> bool:
        """
        Like load(), but takes the first matching row, in `sorting` order
        ({field: "asc" | "desc"}) when given.

        Raises:
            ObjectNotFoundError: no row matches.
        """
        return await self._load_with_options(obj, load_first=True, sorting=sorting)

    async def load_for_update(self, obj: ModelObject) -> bool:
        """
        Like load(), and asks the database to lock the row for an update in the
        same transaction (ignored by dialects without row locks, such as SQLite).
        """
        return await self._load_with_options(obj, for_update=True)

    async def _load_with_options(self, obj: ModelObject, load_first: bool = False,
                                 sorting: Mapping[str, str] | None = None, for_update: bool = False) -> bool:
        obj.clean()
        table = obj.table()
        quoted_table = self.quote_identifier(table)
        model_name = type(obj).__name__

        select_list = ", ".join(f"{quoted_table}.{self.quote_identifier(field)}" for field in obj.map_fields())

        criteria = obj.get_initial_pk()
        self._require_key(obj, criteria)
        query = f"select {select_list} from {quoted_table} where {self._where_clause(criteria, table)}"

        if load_first and sorting:
            order_pieces = []
            for field, direction in sorting.items():
                direction = direction.lower()
                if direction not in _SORT_DIRECTIONS:
                    raise ValueError(f"Invalid sort direction for '{field}': {direction!r}")
                order_pieces.append(f"{self.quote_identifier(field)} {direction}")
            query += f" order by {', '.join(order_pieces)}"

        query += " limit 2"

        if for_update and supports_for_update(self.get_driver_name()):
            query += " for update"

        rows = await self._run(query, model_name, lambda result: list(result.mappings().all()))

        if not rows:
            logger.info("database.load.not_found", extra={"model": model_name, "table": table})
            raise ObjectNotFoundError(query, model_name, criteria)
        if not load_first and len(rows) > 1:
            logger.warning("database.load.more_than_one", extra={"model": model_name, "table": table})
            raise MoreThanOneObjectError(query)

        obj.wrap(rows[0])
        logger.debug("database.load.success", extra={"model": model_name, "table": table})
        return True

    # =================================================================================================================
    # Update
    # =================================================================================================================

    async def update(self, obj: ModelObject, criteria: Mapping[str, Any] | None = None) -> bool:
        """
        Writes the dirty columns of `obj`.

        The row is targeted by the primary-key snapshot (the key values as of the
        last clean()), or by `criteria` ({column: value}) when given.

        Returns:
            True if exactly one row was modified (the object is then clean), False
            otherwise, including when nothing was dirty (no query is sent).

        Raises:
            DuplicateKeyError: the new values collide with another row's unique key.
        """
        dirty_fields = obj.get_dirty_fields()
        model_name = type(obj).__name__

        if not dirty_fields:
            logger.debug("database.update.nothing_dirty", extra={"model": model_name})
            return False

        set_list = ", ".join(
            f"{self.quote_identifier(field)} = {self.render_value(obj.column(field))}" for field in dirty_fields
        )

        where_keys = criteria if criteria else obj.get_initial_pk()
        self._require_key(obj, where_keys)

        query = (
            f"update {self.quote_identifier(obj.table())} set {set_list} "
            f"where {self._where_clause(where_keys)}"
        )

        affected_rows = await self._run(query, model_name, lambda result: result.rowcount)

        if affected_rows == 1:
            obj.clean()
            logger.info("database.update.success", extra={"model": model_name, "fields": dirty_fields})
            return True

        logger.warning("database.update.rowcount", extra={"model": model_name, "affected_rows": affected_rows})
        return False

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, obj: ModelObject) -> bool:
        """
        Deletes the row matching the object's current primary key.

        Returns:
            True if a row was deleted, False if none matched.
        """
        obj.clean()
        table = obj.table()
        model_name = type(obj).__name__

        criteria = obj.get_initial_pk()
        self._require_key(obj, criteria)

        query = f"delete from {self.quote_identifier(table)} where {self._where_clause(criteria, table)}"

        row_count = await self._run(query, model_name, lambda result: result.rowcount)

        if row_count:
            logger.info("database.delete.success", extra={"model": model_name, "table": table})
            return True

        logger.info("database.delete.not_found", extra={"model": model_name, "table": table})
        return False

    # =================================================================================================================
    # Structure
    # =================================================================================================================

    def get_structure_manager(self):
        """
        Returns the StructureManager for this handle's dialect.
        """
        driver = self.get_driver_name()
        dialect = get_dialect(driver)
        manager_cls = getattr(dialect, "STRUCTURE_MANAGER", None)
        if manager_cls is None:
            raise SQLError("", f"No structure manager for dialect '{driver}'.")
        return manager_cls(self)
