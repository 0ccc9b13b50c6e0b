import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings


app_settings: Settings = get_settings()
logger = logging.getLogger(__name__)

_SQLITE_BUSY_TIMEOUT_SECONDS = 30
_SQLITE_BUSY_TIMEOUT_MS = _SQLITE_BUSY_TIMEOUT_SECONDS * 1000


def _is_sqlite_memory(url) -> bool:
    if url.database in (None, "", ":memory:"):
        return True
    return url.query.get("mode") == "memory"


def _install_sqlite_hooks(engine: Engine, *, memory: bool) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        if not memory:
            # BEGIN is issued by the "begin" hook below, not by pysqlite.
            dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
            if not memory:
                try:
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
                except sqlite3.DatabaseError:
                    pass
        finally:
            cursor.close()

    if memory:
        # A single shared connection; there is nobody to serialize against.
        return

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        # Every transaction holds the write lock from its first statement;
        # this stands in for SELECT ... FOR UPDATE, which SQLite ignores.
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    memory = _is_sqlite_memory(url)
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    if memory:
        engine_kwargs.update(poolclass=StaticPool)
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT_SECONDS},
        **engine_kwargs,
    )
    _install_sqlite_hooks(engine, memory=memory)
    return engine


engine = build_engine(app_settings.DATABASE_URL)
is_sqlite = engine.dialect.name == "sqlite"


# Columns added to the schema after the first release. Older SQLite files get
# them on startup with the same defaults the ORM uses.
_SQLITE_COLUMN_DEFAULTS = {
    "products": {
        "cost_price": "REAL NOT NULL DEFAULT 0",
    },
    "product_variants": {
        "cost_price": "REAL NOT NULL DEFAULT 0",
    },
    "damaged_products": {
        "action_taken": "TEXT",
    },
    "customer_products": {
        "purchase_date": "DATE",
    },
    "notifications": {
        "actor": "VARCHAR(255)",
    },
}

_SQLITE_POST_ADD_UPDATES = {
    ("customer_products", "purchase_date"): (
        "UPDATE customer_products SET purchase_date = ("
        "SELECT DATE(c.purchase_date) FROM customers c "
        "WHERE c.id = customer_products.customer_id) "
        "WHERE purchase_date IS NULL"
    ),
}


def _escape_sqlite_identifier(value: str) -> str:
    return value.replace('"', '""')


def _get_sqlite_columns(conn, table_name: str):
    escaped_table = _escape_sqlite_identifier(table_name)
    # noinspection SqlNoDataSourceInspection
    result = conn.exec_driver_sql(
        f'PRAGMA table_info("{escaped_table}")'
    ).mappings()
    return {row["name"] for row in result}


def ensure_sqlite_schema(bind=None):
    if bind is None:
        if not is_sqlite:
            return
        bind = engine
    elif bind.dialect.name != "sqlite":
        return

    with bind.connect() as conn:
        added_columns = []
        with conn.begin():
            for table_name, columns in _SQLITE_COLUMN_DEFAULTS.items():
                existing = _get_sqlite_columns(conn, table_name)
                if not existing:
                    continue
                for column_name, ddl in columns.items():
                    if column_name in existing:
                        continue
                    escaped_table = _escape_sqlite_identifier(table_name)
                    escaped_column = _escape_sqlite_identifier(column_name)
                    # noinspection SqlNoDataSourceInspection
                    conn.exec_driver_sql(
                        f'ALTER TABLE "{escaped_table}" ADD COLUMN "{escaped_column}" {ddl}'
                    )
                    added_columns.append((table_name, column_name))
            for table_name, column_name in added_columns:
                update_stmt = _SQLITE_POST_ADD_UPDATES.get(
                    (table_name, column_name)
                )
                if update_stmt:
                    # noinspection SqlNoDataSourceInspection
                    conn.exec_driver_sql(update_stmt)

    for table_name, column_name in added_columns:
        logger.info("Added legacy column %s.%s", table_name, column_name)
