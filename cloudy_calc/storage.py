"""SQLite persistence for calculator sessions.

Each row holds the JSON session state produced by ``Interpreter.to_dict``.
"""

import json
import logging
import sqlite3
import uuid
from typing import Any, Dict, Optional

from cloudy_calc import config

logger = logging.getLogger(__name__)


def get_db():
    """Connects to the configured database."""
    db = sqlite3.connect(config.DATABASE)
    db.row_factory = sqlite3.Row  # Access columns by name
    return db


def init_db():
    """Creates the sessions table if it does not exist yet."""
    logger.info(f"Initializing database: {config.DATABASE}")
    db = None
    try:
        db = get_db()
        cursor = db.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        db.commit()
    except sqlite3.Error as e:
        logger.error(f"Database initialization error: {e}")
        raise  # Startup cannot continue without the table
    finally:
        if db:
            db.close()


def load_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Loads the saved state of a session, or None if it does not exist."""
    db = None
    try:
        db = get_db()
        cursor = db.cursor()
        cursor.execute("SELECT state FROM sessions WHERE session_id = ?", (session_id,))
        row = cursor.fetchone()
        if row:
            return json.loads(row["state"])
        return None
    except sqlite3.Error as e:
        logger.error(f"Failed to load session {session_id}: {e}")
        return None
    except json.JSONDecodeError as e:
        # A corrupted row restores as an empty session
        logger.error(f"Failed to parse state for session {session_id}: {e}")
        return {}
    finally:
        if db:
            db.close()


def save_session(session_id: str, state: Dict[str, Any]) -> bool:
    """Saves or updates the state of a session."""
    db = None
    try:
        db = get_db()
        cursor = db.cursor()
        cursor.execute(
            """
            INSERT OR REPLACE INTO sessions (session_id, state, last_updated)
            VALUES (?, ?, CURRENT_TIMESTAMP)
        """,
            (session_id, json.dumps(state)),
        )
        db.commit()
        logger.debug(f"Session {session_id} saved.")
        return True
    except sqlite3.Error as e:
        logger.error(f"Failed to save session {session_id}: {e}")
        return False
    finally:
        if db:
            db.close()


def delete_session_db(session_id: str) -> bool:
    """Deletes a session. Returns True if a row was removed."""
    db = None
    try:
        db = get_db()
        cursor = db.cursor()
        cursor.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
        deleted = cursor.rowcount > 0
        db.commit()
        logger.info(f"Session {session_id} deleted: {deleted}")
        return deleted
    except sqlite3.Error as e:
        logger.error(f"Failed to delete session {session_id}: {e}")
        return False
    finally:
        if db:
            db.close()


def create_session_db(initial_state: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Creates a new session row and returns its ID."""
    session_id = str(uuid.uuid4())
    db = None
    try:
        db = get_db()
        cursor = db.cursor()
        cursor.execute(
            "INSERT INTO sessions (session_id, state) VALUES (?, ?)",
            (session_id, json.dumps(initial_state or {})),
        )
        db.commit()
        logger.info(f"New session created: {session_id}")
        return session_id
    except sqlite3.Error as e:
        logger.error(f"Failed to create session: {e}")
        return None
    finally:
        if db:
            db.close()
