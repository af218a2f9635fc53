"""Trade repository — SQLite CRUD for the trades table.

``record_trade`` writes the trade and, for single-shot strategies, clears
the strategy's active flag in the same transaction.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from autotrader.repos.db import get_connection, to_timestamp, utc_now
from autotrader.strategy.models import Trade

logger = logging.getLogger("autotrader.repos")


class TradeRepo:
    """Data access layer for trade records.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def record_trade(
        self,
        trade: Trade,
        deactivate_strategy_id: Optional[int] = None,
    ) -> int:
        """Insert *trade* and optionally deactivate a strategy, atomically.

        Either both rows change or neither does.  Returns the trade ``id``.
        """
        created_at = (
            to_timestamp(trade.created_at) if trade.created_at else utc_now()
        )
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO trades
                    (user_id, strategy_id, signature, type, direction,
                     input_token, output_token, input_amount, output_amount,
                     price_usd, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    trade.user_id, trade.strategy_id, trade.signature,
                    trade.type, trade.direction, trade.input_token,
                    trade.output_token, trade.input_amount, trade.output_amount,
                    trade.price_usd, trade.status, created_at,
                ),
            )
            trade_id = cur.lastrowid

            if deactivate_strategy_id is not None:
                updated = conn.execute(
                    """
                    UPDATE strategies SET is_active = 0, updated_at = ?
                    WHERE id = ? AND is_active = 1
                    """,
                    (utc_now(), deactivate_strategy_id),
                )
                if updated.rowcount == 0:
                    # Still record the trade: the swap has already landed.
                    logger.warning(
                        "Strategy %s was not active when trade %s was recorded",
                        deactivate_strategy_id, trade.signature,
                    )

            conn.commit()
            return trade_id
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def bought_tokens_since(self, user_id: str, since: datetime) -> set[str]:
        """Output tokens of CONFIRMED trades by *user_id* after *since*."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                """
                SELECT DISTINCT output_token FROM trades
                WHERE user_id = ? AND status = 'CONFIRMED' AND created_at > ?
                """,
                (user_id, to_timestamp(since)),
            ).fetchall()
            return {r["output_token"] for r in rows}
        finally:
            conn.close()

    def count_since(
        self,
        user_id: str,
        since: datetime,
        strategy_id: Optional[int] = None,
    ) -> int:
        """Count CONFIRMED trades by *user_id* at or after *since*."""
        sql = (
            "SELECT COUNT(*) FROM trades "
            "WHERE user_id = ? AND status = 'CONFIRMED' AND created_at >= ?"
        )
        params: list = [user_id, to_timestamp(since)]
        if strategy_id is not None:
            sql += " AND strategy_id = ?"
            params.append(strategy_id)
        conn = get_connection(self._db_path)
        try:
            return conn.execute(sql, params).fetchone()[0]
        finally:
            conn.close()

    def list_for_strategy(self, strategy_id: int) -> list[dict]:
        """Trades created by *strategy_id*, newest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM trades WHERE strategy_id = ? ORDER BY id DESC",
                (strategy_id,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    def list_for_user(self, user_id: str, limit: int = 20) -> dict:
        """Recent trades for *user_id*.

        Returns:
            ``{"trades": [...], "total": int}``
        """
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM trades WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
            total = conn.execute(
                "SELECT COUNT(*) FROM trades WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            return {"trades": [dict(r) for r in rows], "total": total}
        finally:
            conn.close()
