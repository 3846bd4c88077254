import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from portal.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    # Concurrent slot commits wait for the write lock instead of failing.
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SCHEMA_SQL = """\
-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    email         TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    first_name    TEXT NOT NULL,
    last_name     TEXT NOT NULL,
    role          TEXT NOT NULL DEFAULT 'CANDIDATE'
                  CHECK(role IN ('CANDIDATE','REVIEWER')),
    locale        TEXT NOT NULL DEFAULT 'fr',
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- APPLICATIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS applications (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id               INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    first_name            TEXT,
    last_name             TEXT,
    date_of_birth         TEXT,
    city                  TEXT,
    region                TEXT,
    phone_number          TEXT,
    guardian_full_name    TEXT,
    guardian_phone_number TEXT,
    high_school           TEXT,
    school_level          TEXT,
    mathematics_average   TEXT,
    general_average       TEXT,
    has_competed          INTEGER NOT NULL DEFAULT 0,
    competitions          TEXT,
    motivations           TEXT,
    created_at            TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at            TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE TABLE IF NOT EXISTS application_status (
    application_id INTEGER PRIMARY KEY REFERENCES applications(id) ON DELETE CASCADE,
    status         TEXT NOT NULL DEFAULT 'DRAFT'
                   CHECK(status IN ('DRAFT','PENDING','UPDATED','NOTIFIED','VALID','NOT_VALID')),
    report_status  TEXT NOT NULL DEFAULT 'PENDING'
                   CHECK(report_status IN ('PENDING','VALID','NOT_VALID')),
    updated_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_status_status ON application_status(status);

-- ============================================================
-- STORED OBJECTS (one current key per application slot)
-- ============================================================
CREATE TABLE IF NOT EXISTS stored_objects (
    application_id INTEGER NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
    slot           TEXT NOT NULL
                   CHECK(slot IN ('school_certificate','grades','report')),
    object_key     TEXT NOT NULL,
    committed_at   TEXT NOT NULL,
    PRIMARY KEY (application_id, slot)
);

CREATE INDEX IF NOT EXISTS idx_stored_objects_key ON stored_objects(object_key);

-- ============================================================
-- PORTAL SETTINGS
-- ============================================================
CREATE TABLE IF NOT EXISTS portal_settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

INSERT OR IGNORE INTO portal_settings (key, value) VALUES ('applications_open', 'true');
"""


MIGRATIONS = [
    # v0.2: reviewers can be notified per candidate locale
    "ALTER TABLE users ADD COLUMN locale TEXT NOT NULL DEFAULT 'fr'",
    # v0.3: orphan reconciliation looks objects up by key
    "CREATE INDEX IF NOT EXISTS idx_stored_objects_key ON stored_objects(object_key)",
]


def _apply_migrations(conn: sqlite3.Connection):
    # ALTER TABLE fails once the column exists; that means it is applied.
    for migration in MIGRATIONS:
        try:
            conn.execute(migration)
            conn.commit()
        except sqlite3.OperationalError:
            pass


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    _apply_migrations(conn)
    conn.close()


def migrate(db_path: Path | None = None) -> str:
    """Bring an existing database up to date; returns ``PRAGMA integrity_check``."""
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    try:
        _apply_migrations(conn)
        row = conn.execute("PRAGMA integrity_check").fetchone()
    finally:
        conn.close()
    return row[0] if row else "no result"
