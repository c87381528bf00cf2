"""
Postgres data-access facade for the managed database.

Provides select/insert/update/delete/upsert with simple filter predicates,
stored-function calls (vector similarity search) and table introspection.
Every call opens its own connection with a connect timeout and a statement
timeout; identifiers are always quoted with psycopg2.sql and values are always
bound parameters.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import parse_dsn
from psycopg2.extras import Json, RealDictCursor

from .. import constants

logger = logging.getLogger(__name__)

ROW_NOT_FOUND = "ROW_NOT_FOUND"
MULTIPLE_ROWS = "MULTIPLE_ROWS"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_OPERATORS = ("eq", "ilike", "is_null")
_LIKE_SPECIAL = re.compile(r"([\\%_])")


class BackendError(Exception):
    """Database operation failed. `code` carries the SQLSTATE or a local code."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class RecordNotFoundError(BackendError):
    """A single-row query matched no rows."""

    def __init__(self, message: str = "Row not found"):
        super().__init__(message, code=ROW_NOT_FOUND)


@dataclass(frozen=True)
class Filter:
    """Column predicate: eq (=), ilike (case-insensitive LIKE) or is_null."""

    column: str
    value: Any = None
    op: str = "eq"


def is_valid_identifier(name: str) -> bool:
    return bool(name) and bool(_IDENTIFIER_RE.match(name))


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so `text` matches literally inside an ILIKE pattern."""
    return _LIKE_SPECIAL.sub(r"\\\1", text)


def _dsn_has_password(dsn: str) -> bool:
    try:
        return bool(parse_dsn(dsn).get("password"))
    except psycopg2.ProgrammingError:
        return False


def _identifier(name: str) -> sql.Identifier:
    if not is_valid_identifier(name):
        raise BackendError(f"Invalid identifier: {name!r}", code="INVALID_IDENTIFIER")
    return sql.Identifier(name)


def _adapt(value: Any) -> Any:
    """Wrap dicts/lists so psycopg2 sends them as JSON."""
    if isinstance(value, (dict, list)):
        return Json(value)
    return value


def _predicate(flt: Filter) -> Tuple[sql.Composable, List[Any]]:
    if flt.op not in _OPERATORS:
        raise BackendError(f"Unsupported filter operator: {flt.op}", code="INVALID_FILTER")
    column = _identifier(flt.column)
    if flt.op == "is_null":
        return sql.SQL("{} IS NULL").format(column), []
    if flt.op == "ilike":
        return sql.SQL("{} ILIKE %s ESCAPE '\\'").format(column), [flt.value]
    return sql.SQL("{} = %s").format(column), [_adapt(flt.value)]


def build_where(
    filters: Optional[Sequence[Filter]] = None,
    any_of: Optional[Sequence[Filter]] = None,
) -> Tuple[sql.Composable, List[Any]]:
    """
    Build a WHERE clause: `filters` are AND'ed, `any_of` is one OR'ed group.

    Returns:
        (clause, params); clause is empty SQL when there is nothing to filter
    """
    parts: List[sql.Composable] = []
    params: List[Any] = []

    for flt in filters or []:
        clause, values = _predicate(flt)
        parts.append(clause)
        params.extend(values)

    if any_of:
        or_parts = []
        for flt in any_of:
            clause, values = _predicate(flt)
            or_parts.append(clause)
            params.extend(values)
        parts.append(sql.SQL("({})").format(sql.SQL(" OR ").join(or_parts)))

    if not parts:
        return sql.SQL(""), params
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params


def _column_list(columns: Optional[Iterable[str]]) -> sql.Composable:
    columns = list(columns or [])
    if not columns or columns == ["*"]:
        return sql.SQL("*")
    return sql.SQL(", ").join(_identifier(c) for c in columns)


class PostgresBackend:
    """
    Generic data-access facade over the managed Postgres database.

    Usage:
        backend = PostgresBackend(database_url, service_key)
        rows = backend.select("leads", filters=[Filter("telefone", "5511...")])
        lead = backend.upsert("leads", {"telefone": "5511...", "nome": "Ana"}, "telefone")
    """

    def __init__(
        self,
        database_url: str,
        service_key: Optional[str] = None,
        connect_timeout: int = constants.DB_CONNECT_TIMEOUT_SECONDS,
        statement_timeout_ms: int = int(constants.DEFAULT_UPSTREAM_TIMEOUT_SECONDS * 1000),
    ):
        self.database_url = database_url
        self.service_key = service_key
        self.connect_timeout = connect_timeout
        self.statement_timeout_ms = statement_timeout_ms

    def _get_db_connection(self):
        """Open a new connection returning rows as dictionaries."""
        kwargs: Dict[str, Any] = {
            "connect_timeout": self.connect_timeout,
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
            "cursor_factory": RealDictCursor,
        }
        if self.service_key and not _dsn_has_password(self.database_url):
            kwargs["password"] = self.service_key
        return psycopg2.connect(self.database_url, **kwargs)

    def _execute(
        self,
        query: sql.Composable,
        params: Sequence[Any] = (),
        fetch: bool = True,
        write: bool = False,
    ) -> List[Dict[str, Any]]:
        try:
            conn = self._get_db_connection()
        except psycopg2.Error as e:
            raise BackendError(f"Database connection failed: {e}", code=e.pgcode) from e

        try:
            with conn.cursor() as cur:
                cur.execute(query, list(params))
                rows = [dict(row) for row in cur.fetchall()] if fetch else []
            if write:
                conn.commit()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            message = e.pgerror.strip() if e.pgerror else str(e)
            raise BackendError(message, code=e.pgcode) from e
        finally:
            conn.close()

    # ----- reads -----

    def select(
        self,
        table: str,
        columns: Optional[Iterable[str]] = None,
        filters: Optional[Sequence[Filter]] = None,
        any_of: Optional[Sequence[Filter]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Select rows from `table` matching all `filters` and any of `any_of`."""
        where, params = build_where(filters, any_of)
        query = sql.SQL("SELECT {} FROM {}").format(_column_list(columns), _identifier(table))
        query = query + where
        if order_by:
            query = query + sql.SQL(" ORDER BY {}").format(_identifier(order_by))
        if limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(int(limit))
        return self._execute(query, params)

    def select_one(
        self,
        table: str,
        filters: Sequence[Filter],
        columns: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """
        Select exactly one row.

        Raises:
            RecordNotFoundError: If no row matches
            BackendError: If more than one row matches (code MULTIPLE_ROWS)
        """
        rows = self.select(table, columns=columns, filters=filters, limit=2)
        if not rows:
            raise RecordNotFoundError(f"No row in {table} matches the filter")
        if len(rows) > 1:
            raise BackendError(f"More than one row in {table} matches the filter", MULTIPLE_ROWS)
        return rows[0]

    def call_function(self, name: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Call a set-returning function with named arguments."""
        arguments = sql.SQL(", ").join(
            sql.SQL("{} => %s").format(_identifier(key)) for key in params
        )
        query = sql.SQL("SELECT * FROM {}({})").format(_identifier(name), arguments)
        return self._execute(query, [_adapt(v) for v in params.values()])

    def list_tables(self, schema: str = "public") -> List[str]:
        """List base tables of `schema`, sorted by name."""
        rows = self._execute(
            sql.SQL(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = %s AND table_type = 'BASE TABLE' "
                "ORDER BY table_name"
            ),
            [schema],
        )
        return [row["table_name"] for row in rows]

    def ping(self, table: str) -> None:
        """Run a trivial query against `table`; raises BackendError on failure."""
        self.select(table, columns=[constants.ROW_ID_COLUMN], limit=1)

    def server_version(self) -> str:
        rows = self._execute(sql.SQL("SELECT version() AS version"))
        return rows[0]["version"]

    def has_extension(self, name: str) -> bool:
        rows = self._execute(
            sql.SQL(
                "SELECT EXISTS (SELECT 1 FROM pg_extension WHERE extname = %s) AS installed"
            ),
            [name],
        )
        return bool(rows[0]["installed"])

    # ----- writes -----

    def insert(self, table: str, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Insert one row and return it."""
        if not data:
            raise BackendError("Insert requires at least one column", code="EMPTY_DATA")
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            _identifier(table),
            sql.SQL(", ").join(_identifier(c) for c in data),
            sql.SQL(", ").join(sql.Placeholder() for _ in data),
        )
        return self._execute(query, [_adapt(v) for v in data.values()], write=True)

    def update(
        self, table: str, data: Dict[str, Any], filters: Sequence[Filter]
    ) -> List[Dict[str, Any]]:
        """Update rows matching `filters`; returns the updated rows."""
        if not data:
            raise BackendError("Update requires at least one column", code="EMPTY_DATA")
        if not filters:
            raise BackendError("Update without a filter is not allowed", code="MISSING_FILTER")
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(_identifier(c)) for c in data
        )
        where, where_params = build_where(filters)
        query = (
            sql.SQL("UPDATE {} SET {}").format(_identifier(table), assignments)
            + where
            + sql.SQL(" RETURNING *")
        )
        params = [_adapt(v) for v in data.values()] + where_params
        return self._execute(query, params, write=True)

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        """Delete rows matching `filters`; returns the deleted rows."""
        if not filters:
            raise BackendError("Delete without a filter is not allowed", code="MISSING_FILTER")
        where, params = build_where(filters)
        query = sql.SQL("DELETE FROM {}").format(_identifier(table)) + where
        query = query + sql.SQL(" RETURNING *")
        return self._execute(query, params, write=True)

    def upsert(self, table: str, data: Dict[str, Any], on_conflict: str) -> Dict[str, Any]:
        """
        Insert or update one row keyed on `on_conflict`.

        Only the columns present in `data` are overwritten on conflict, so
        successive upserts merge over the stored row.
        """
        if on_conflict not in data:
            raise BackendError(
                f"Upsert data must contain the conflict column '{on_conflict}'",
                code="MISSING_KEY",
            )
        update_columns = [c for c in data if c != on_conflict]
        if update_columns:
            conflict_action = sql.SQL("DO UPDATE SET {}").format(
                sql.SQL(", ").join(
                    sql.SQL("{0} = EXCLUDED.{0}").format(_identifier(c)) for c in update_columns
                )
            )
        else:
            conflict_action = sql.SQL("DO NOTHING")

        query = sql.SQL(
            "INSERT INTO {} ({}) VALUES ({}) ON CONFLICT ({}) {} RETURNING *"
        ).format(
            _identifier(table),
            sql.SQL(", ").join(_identifier(c) for c in data),
            sql.SQL(", ").join(sql.Placeholder() for _ in data),
            _identifier(on_conflict),
            conflict_action,
        )
        rows = self._execute(query, [_adapt(v) for v in data.values()], write=True)
        if rows:
            return rows[0]
        # DO NOTHING returns no row when the key already exists
        return self.select_one(table, [Filter(on_conflict, data[on_conflict])])
