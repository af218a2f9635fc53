"""Wallet repository — owner to encrypted signing key."""

from typing import Optional

from autotrader.repos.db import get_connection, utc_now


class WalletRepo:
    """Data access layer for custodial wallets.

    Only the encrypted key is stored; decryption happens at execution time.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert(self, user_id: str, public_key: str, encrypted_private_key: str) -> None:
        """Store (or replace) the wallet for *user_id*."""
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO wallets
                    (user_id, public_key, encrypted_private_key, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, public_key, encrypted_private_key, utc_now()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_encrypted_key(self, user_id: str) -> Optional[str]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT encrypted_private_key FROM wallets WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            return row["encrypted_private_key"] if row else None
        finally:
            conn.close()

    def get_public_key(self, user_id: str) -> Optional[str]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT public_key FROM wallets WHERE user_id = ?", (user_id,)
            ).fetchone()
            return row["public_key"] if row else None
        finally:
            conn.close()
