"""Strategy repository — SQLite CRUD for the strategies table."""

import json
import sqlite3
from typing import Optional

from autotrader.repos.db import get_connection, utc_now
from autotrader.strategy.models import Strategy


def _row_to_strategy(row: sqlite3.Row) -> Strategy:
    return Strategy(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        description=row["description"],
        type=row["type"],
        config=json.loads(row["config"]),
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class StrategyRepo:
    """Data access layer for saved strategies.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def insert(
        self,
        user_id: str,
        name: str,
        strategy_type: str,
        config: dict,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        """Insert a strategy and return its ``id``."""
        now = utc_now()
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO strategies
                    (user_id, name, description, type, config,
                     is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id, name, description, strategy_type.upper(),
                    json.dumps(config), int(is_active), now, now,
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def set_active(self, strategy_id: int, is_active: bool) -> bool:
        """Pause or resume a strategy. Returns ``False`` if it does not exist."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                "UPDATE strategies SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(is_active), utc_now(), strategy_id),
            )
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, strategy_id: int) -> Optional[Strategy]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM strategies WHERE id = ?", (strategy_id,)
            ).fetchone()
            return _row_to_strategy(row) if row else None
        finally:
            conn.close()

    def list_active(self, user_id: str) -> list[Strategy]:
        """Active strategies for *user_id*, oldest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                """
                SELECT * FROM strategies
                WHERE user_id = ? AND is_active = 1
                ORDER BY id ASC
                """,
                (user_id,),
            ).fetchall()
            return [_row_to_strategy(r) for r in rows]
        finally:
            conn.close()

    def list_for_user(self, user_id: str) -> list[Strategy]:
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM strategies WHERE user_id = ? ORDER BY id ASC",
                (user_id,),
            ).fetchall()
            return [_row_to_strategy(r) for r in rows]
        finally:
            conn.close()

    def users_with_active(self) -> list[str]:
        """Owners that have at least one active strategy."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                """
                SELECT DISTINCT user_id FROM strategies
                WHERE is_active = 1
                ORDER BY user_id
                """
            ).fetchall()
            return [r["user_id"] for r in rows]
        finally:
            conn.close()
