from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime

import psycopg2
from flask import current_app
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)

_ready_targets: set[str] = set()

POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS habits (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS week_data (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    week_key TEXT NOT NULL,
    daily_tasks TEXT NOT NULL DEFAULT '{}',
    weekly_goals TEXT NOT NULL DEFAULT '[]',
    habit_completions TEXT NOT NULL DEFAULT '{}',
    future_tasks TEXT NOT NULL DEFAULT '[]',
    week_locked INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, week_key)
);

CREATE TABLE IF NOT EXISTS notes (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id),
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS financial_data (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id),
    month TEXT NOT NULL,
    credit_card_bill REAL NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, month)
);

CREATE TABLE IF NOT EXISTS password_resets (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id),
    token TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    used INTEGER NOT NULL DEFAULT 0
);
"""

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS habits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS week_data (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    week_key TEXT NOT NULL,
    daily_tasks TEXT NOT NULL DEFAULT '{}',
    weekly_goals TEXT NOT NULL DEFAULT '[]',
    habit_completions TEXT NOT NULL DEFAULT '{}',
    future_tasks TEXT NOT NULL DEFAULT '[]',
    week_locked INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, week_key),
    FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users (id)
);

CREATE TABLE IF NOT EXISTS financial_data (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    month TEXT NOT NULL,
    credit_card_bill REAL NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, month),
    FOREIGN KEY (user_id) REFERENCES users (id)
);

CREATE TABLE IF NOT EXISTS password_resets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    token TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    used INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (user_id) REFERENCES users (id)
);
"""


class DBConn:
    def __init__(self, conn, backend: str):
        self.conn = conn
        self.backend = backend

    def execute(self, query: str, params: tuple | list = ()):
        if self.backend == "postgres":
            sql = query.replace("?", "%s")
            cur = self.conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(sql, params)
            return cur
        return self.conn.execute(query, params)

    def insert(self, query: str, params: tuple | list = ()) -> int:
        """Run an INSERT and return the new row id on either backend."""
        if self.backend == "postgres":
            row = self.execute(query.rstrip().rstrip(";") + " RETURNING id", params).fetchone()
            return row["id"]
        return self.conn.execute(query, params).lastrowid

    def executescript(self, script: str) -> None:
        if self.backend == "postgres":
            statements = [s.strip() for s in script.split(";") if s.strip()]
            for statement in statements:
                self.execute(statement)
        else:
            self.conn.executescript(script)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.conn.commit()
        else:
            self.conn.rollback()
        self.conn.close()


def backend() -> str:
    return "postgres" if current_app.config.get("DATABASE_URL") else "sqlite"


def get_conn() -> DBConn:
    if backend() == "postgres":
        conn = psycopg2.connect(current_app.config["DATABASE_URL"])
        return DBConn(conn, "postgres")
    conn = sqlite3.connect(current_app.config["DATABASE_PATH"])
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return DBConn(conn, "sqlite")


def now_str() -> str:
    return datetime.now().isoformat(timespec="seconds")


def init_db() -> None:
    with get_conn() as conn:
        if conn.backend == "postgres":
            conn.executescript(POSTGRES_SCHEMA)
        else:
            conn.executescript(SQLITE_SCHEMA)


def table_exists(conn: DBConn, table: str) -> bool:
    if conn.backend == "postgres":
        row = conn.execute(
            "SELECT to_regclass(?) as name",
            (table,),
        ).fetchone()
        return row is not None and row["name"] is not None
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()
    return row is not None


def column_exists(conn: DBConn, table: str, column: str) -> bool:
    if conn.backend == "postgres":
        rows = conn.execute(
            """
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = ? AND column_name = ?
            """,
            (table, column),
        ).fetchall()
        return len(rows) > 0
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(row["name"] == column for row in rows)


def migrate_db() -> None:
    """Bring tables created by older releases up to the current columns."""
    with get_conn() as conn:
        if table_exists(conn, "week_data") and not column_exists(
            conn, "week_data", "future_tasks"
        ):
            logger.info("Adding future_tasks column to week_data")
            conn.execute(
                "ALTER TABLE week_data ADD COLUMN future_tasks TEXT NOT NULL DEFAULT '[]'"
            )

        if table_exists(conn, "notes") and not column_exists(conn, "notes", "updated_at"):
            logger.info("Adding updated_at column to notes")
            conn.execute("ALTER TABLE notes ADD COLUMN updated_at TEXT NOT NULL DEFAULT ''")
            conn.execute("UPDATE notes SET updated_at = created_at WHERE updated_at = ''")

        if table_exists(conn, "users") and not column_exists(conn, "users", "updated_at"):
            logger.info("Adding updated_at column to users")
            conn.execute("ALTER TABLE users ADD COLUMN updated_at TEXT NOT NULL DEFAULT ''")
            conn.execute("UPDATE users SET updated_at = created_at WHERE updated_at = ''")


def ensure_db() -> None:
    target = current_app.config.get("DATABASE_URL") or current_app.config["DATABASE_PATH"]
    if target not in _ready_targets:
        migrate_db()
        init_db()
        _ready_targets.add(target)


def reset_ready_state() -> None:
    _ready_targets.clear()


def _load_json(value, default):
    if not value:
        return default
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        logger.warning("Discarding undecodable JSON column value")
        return default
    if not isinstance(decoded, type(default)):
        return default
    return decoded


# -------------------- users --------------------


def create_user(email: str, password_hash: str, name: str) -> dict:
    now = now_str()
    with get_conn() as conn:
        user_id = conn.insert(
            """
            INSERT INTO users (email, password_hash, name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (email, password_hash, name, now, now),
        )
    return {"id": user_id, "email": email, "name": name}


def get_user_by_email(email: str) -> dict | None:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT id, email, password_hash, name FROM users WHERE email = ?",
            (email,),
        ).fetchone()
    return dict(row) if row is not None else None


def set_password(user_id: int, password_hash: str) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
            (password_hash, now_str(), user_id),
        )


# -------------------- habits --------------------


def get_user_habits(user_id: int) -> list[dict]:
    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT id, name FROM habits
            WHERE user_id = ? AND is_active = 1
            ORDER BY created_at, id
            """,
            (user_id,),
        ).fetchall()
    return [dict(row) for row in rows]


def create_habit(user_id: int, name: str) -> dict:
    sanitized_name = name.strip()[:100]
    with get_conn() as conn:
        habit_id = conn.insert(
            "INSERT INTO habits (user_id, name, created_at, is_active) VALUES (?, ?, ?, 1)",
            (user_id, sanitized_name, now_str()),
        )
    logger.debug("Created habit %s for user %s", habit_id, user_id)
    return {"id": habit_id, "name": sanitized_name}


def delete_habit(user_id: int, habit_id: int) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE habits SET is_active = 0 WHERE id = ? AND user_id = ?",
            (habit_id, user_id),
        )


# -------------------- weeks --------------------


def _decode_week_row(row) -> dict:
    return {
        "dailyTasks": _load_json(row["daily_tasks"], {}),
        "weeklyGoals": _load_json(row["weekly_goals"], []),
        "habitCompletions": _load_json(row["habit_completions"], {}),
        "futureTasks": _load_json(row["future_tasks"], []),
        "weekLocked": bool(row["week_locked"]),
    }


def get_week_data(user_id: int, week_key: str) -> dict | None:
    with get_conn() as conn:
        row = conn.execute(
            """
            SELECT daily_tasks, weekly_goals, habit_completions, future_tasks, week_locked
            FROM week_data
            WHERE user_id = ? AND week_key = ?
            """,
            (user_id, week_key),
        ).fetchone()
    if row is None:
        return None
    return _decode_week_row(row)


def save_week_data(
    user_id: int,
    week_key: str,
    daily_tasks: dict,
    weekly_goals: list,
    habit_completions: dict,
    future_tasks: list,
    week_locked: bool,
) -> dict:
    now = now_str()
    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO week_data (
                user_id, week_key, daily_tasks, weekly_goals, habit_completions,
                future_tasks, week_locked, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, week_key) DO UPDATE SET
                daily_tasks = excluded.daily_tasks,
                weekly_goals = excluded.weekly_goals,
                habit_completions = excluded.habit_completions,
                future_tasks = excluded.future_tasks,
                week_locked = excluded.week_locked,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                week_key,
                json.dumps(daily_tasks),
                json.dumps(weekly_goals),
                json.dumps(habit_completions),
                json.dumps(future_tasks),
                1 if week_locked else 0,
                now,
                now,
            ),
        )
    return {
        "dailyTasks": daily_tasks,
        "weeklyGoals": weekly_goals,
        "habitCompletions": habit_completions,
        "futureTasks": future_tasks,
        "weekLocked": bool(week_locked),
    }


def get_all_weeks_data(user_id: int) -> dict[str, dict]:
    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT week_key, daily_tasks, weekly_goals, habit_completions,
                future_tasks, week_locked
            FROM week_data
            WHERE user_id = ?
            ORDER BY week_key
            """,
            (user_id,),
        ).fetchall()
    return {row["week_key"]: _decode_week_row(row) for row in rows}


# -------------------- notes --------------------

NOTE_COLUMNS = "id, title, content, created_at as \"createdAt\", updated_at as \"updatedAt\""


def list_notes(user_id: int) -> list[dict]:
    with get_conn() as conn:
        rows = conn.execute(
            f"""
            SELECT {NOTE_COLUMNS} FROM notes
            WHERE user_id = ?
            ORDER BY updated_at DESC, id DESC
            """,
            (user_id,),
        ).fetchall()
    return [dict(row) for row in rows]


def get_note(user_id: int, note_id: int) -> dict | None:
    with get_conn() as conn:
        row = conn.execute(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = ? AND user_id = ?",
            (note_id, user_id),
        ).fetchone()
    return dict(row) if row is not None else None


def create_note(user_id: int, title: str, content: str) -> dict:
    now = now_str()
    with get_conn() as conn:
        note_id = conn.insert(
            """
            INSERT INTO notes (user_id, title, content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, title, content, now, now),
        )
    return get_note(user_id, note_id)


def update_note(user_id: int, note_id: int, title: str, content: str) -> dict | None:
    with get_conn() as conn:
        cur = conn.execute(
            """
            UPDATE notes SET title = ?, content = ?, updated_at = ?
            WHERE id = ? AND user_id = ?
            """,
            (title, content, now_str(), note_id, user_id),
        )
        updated = cur.rowcount
    if not updated:
        return None
    return get_note(user_id, note_id)


def delete_note(user_id: int, note_id: int) -> bool:
    with get_conn() as conn:
        cur = conn.execute(
            "DELETE FROM notes WHERE id = ? AND user_id = ?",
            (note_id, user_id),
        )
        deleted = cur.rowcount
    return deleted > 0


# -------------------- finance --------------------

FINANCE_COLUMNS = "id, month, credit_card_bill as \"creditCardBill\", notes"


def list_finances(user_id: int) -> list[dict]:
    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT {FINANCE_COLUMNS} FROM financial_data WHERE user_id = ? ORDER BY month DESC",
            (user_id,),
        ).fetchall()
    return [dict(row) for row in rows]


def upsert_finance(user_id: int, month: str, credit_card_bill: float, notes: str | None) -> dict:
    now = now_str()
    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO financial_data (user_id, month, credit_card_bill, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, month) DO UPDATE SET
                credit_card_bill = excluded.credit_card_bill,
                notes = excluded.notes,
                updated_at = excluded.updated_at
            """,
            (user_id, month, credit_card_bill, notes, now, now),
        )
        row = conn.execute(
            f"SELECT {FINANCE_COLUMNS} FROM financial_data WHERE user_id = ? AND month = ?",
            (user_id, month),
        ).fetchone()
    return dict(row)


# -------------------- password resets --------------------


def create_password_reset(user_id: int, token: str, expires_at: str) -> None:
    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO password_resets (user_id, token, created_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, token, now_str(), expires_at),
        )


def get_valid_password_reset(token: str) -> dict | None:
    with get_conn() as conn:
        row = conn.execute(
            """
            SELECT * FROM password_resets
            WHERE token = ? AND used = 0 AND expires_at >= ?
            """,
            (token, now_str()),
        ).fetchone()
    return dict(row) if row is not None else None


def mark_password_reset_used(reset_id: int) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE password_resets SET used = 1 WHERE id = ?",
            (reset_id,),
        )
