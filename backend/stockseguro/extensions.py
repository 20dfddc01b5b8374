# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    # In-memory databases answer "memory" to the WAL request.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute("PRAGMA synchronous = NORMAL")
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def configure_sqlite(engine) -> None:
    """
    Apply connection pragmas for the embedded SQLite store.

    WAL lets history reads proceed while a sale commits; foreign_keys makes
    the Sale/StockMovement back-references real constraints.
    """
    if engine.dialect.name != "sqlite":
        return
    if not event.contains(engine, "connect", _set_sqlite_pragmas):
        event.listen(engine, "connect", _set_sqlite_pragmas)
