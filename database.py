"""
SQLite database layer for the academic platform.

Uses raw sqlite3 with WAL mode and parameterized queries. Each collection is
a table keyed by a generated string id. Cross-collection references are plain
TEXT columns without SQL foreign keys: existence is checked by the
application before writes, and deletes never cascade.

A schema_version table handles migrations.
"""

from __future__ import annotations

import fcntl
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from flask import current_app, g

SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Users (credential store)
CREATE TABLE IF NOT EXISTS users (
    _id TEXT PRIMARY KEY,
    userName TEXT NOT NULL DEFAULT '',
    firstName TEXT NOT NULL DEFAULT '',
    lastName TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'student',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS subjects (
    _id TEXT PRIMARY KEY,
    subjectTitle TEXT NOT NULL,
    targetGrade REAL,
    room TEXT,
    uid TEXT,
    t_uid TEXT,
    semester_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_subjects_uid ON subjects(uid);

CREATE TABLE IF NOT EXISTS grades (
    _id TEXT PRIMARY KEY,
    grade REAL NOT NULL,
    outOf REAL NOT NULL,
    s_id TEXT,
    a_id TEXT,
    uid TEXT,
    notes TEXT,
    date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_grades_uid ON grades(uid);

CREATE TABLE IF NOT EXISTS assignments (
    _id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    s_id TEXT,
    uid TEXT,
    g_id TEXT,
    due_date TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_assignments_uid ON assignments(uid);

CREATE TABLE IF NOT EXISTS semesters (
    _id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    startDate TEXT NOT NULL,
    endDate TEXT NOT NULL,
    uid TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS teachers (
    _id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    phone TEXT NOT NULL,
    school_email TEXT NOT NULL UNIQUE,
    uid TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS timetable (
    _id TEXT PRIMARY KEY,
    subject_id TEXT NOT NULL,
    day_of_week TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    room TEXT NOT NULL DEFAULT '',
    t_uid TEXT,
    note TEXT NOT NULL DEFAULT '',
    uid TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_timetable_uid ON timetable(uid);

CREATE TABLE IF NOT EXISTS notifications (
    _id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    uid TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'info',
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notifications_uid ON notifications(uid);

CREATE TABLE IF NOT EXISTS user_settings (
    _id TEXT PRIMARY KEY,
    userId TEXT NOT NULL UNIQUE,
    theme TEXT NOT NULL DEFAULT 'light',
    notifications TEXT NOT NULL DEFAULT '{}',
    language TEXT NOT NULL DEFAULT 'en',
    privacy TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    _id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    description TEXT,
    date TEXT NOT NULL,
    user_id TEXT NOT NULL,
    related_id TEXT,
    relatedModel TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Security audit trail
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT,
    action TEXT NOT NULL,
    detail TEXT NOT NULL DEFAULT '',
    ip_address TEXT NOT NULL DEFAULT '',
    user_agent TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
"""

# (version, sql) pairs applied in order on top of SCHEMA
MIGRATIONS: list[tuple[int, str]] = [
    (2, """
CREATE INDEX IF NOT EXISTS idx_semesters_uid ON semesters(uid);
CREATE INDEX IF NOT EXISTS idx_teachers_uid ON teachers(uid);
CREATE INDEX IF NOT EXISTS idx_events_user ON events(user_id);
"""),
    (3, """
CREATE INDEX IF NOT EXISTS idx_audit_user ON audit_log(user_id, created_at);
"""),
]


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_url() -> str:
    settings = current_app.extensions.get("settings")
    if settings is not None:
        return settings.database
    return current_app.config.get("DATABASE", str(Path(__file__).parent / "academic.db"))


def _sqlite_path(db_url: str) -> str:
    """Accept either a bare path or a sqlite:/// connection string."""
    if db_url.startswith("sqlite:///"):
        return db_url[len("sqlite:///"):]
    return db_url


def get_db() -> sqlite3.Connection:
    """Return a DB connection from Flask g, creating if needed."""
    if "db" not in g:
        g.db = sqlite3.connect(_sqlite_path(_database_url()))
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA journal_mode=WAL")
    return g.db


def close_db(e=None) -> None:
    """Teardown handler — close DB connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db() -> None:
    """Execute schema DDL to create all tables."""
    db = get_db()
    db.executescript(SCHEMA)
    row = db.execute("SELECT 1 FROM schema_version WHERE version = 1").fetchone()
    if not row:
        db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (1, ?)",
            (utcnow(),),
        )
    db.commit()


def run_migrations() -> None:
    """Apply any unapplied versioned migrations.

    Uses file-based locking to prevent race conditions when multiple
    Gunicorn workers start simultaneously.
    """
    lock_file = None
    db_path = _sqlite_path(_database_url())
    if db_path != ":memory:":
        lock_path = Path(db_path).with_suffix(".migration.lock")
        try:
            lock_file = open(lock_path, "w")
            fcntl.flock(lock_file, fcntl.LOCK_EX)
        except OSError:
            lock_file = None

    try:
        db = get_db()
        applied = {
            row["version"]
            for row in db.execute("SELECT version FROM schema_version").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version not in applied:
                try:
                    db.executescript(sql)
                except sqlite3.OperationalError as e:
                    err_msg = str(e).lower()
                    if "duplicate column" not in err_msg and "already exists" not in err_msg:
                        raise
                db.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (version, utcnow()),
                )
                db.commit()
    finally:
        if lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_UN)
            lock_file.close()


def init_app(app) -> None:
    """Register teardown and auto-init on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_db():
        if not getattr(app, "_db_initialized", False):
            init_db()
            run_migrations()
            app._db_initialized = True
