"""Wallet key handling: at-rest decryption and transaction signing.

Private keys are stored as base64(iv[16] | auth_tag[16] | ciphertext) under
AES-256-GCM, with the plaintext being the base58 secret key.
"""

import base64
import logging
import os

import base58
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from autotrader.errors import WalletError

logger = logging.getLogger("autotrader.chain")

IV_LENGTH = 16
AUTH_TAG_LENGTH = 16


def _key_bytes(key_hex: str) -> bytes:
    try:
        key = bytes.fromhex(key_hex)
    except ValueError as exc:
        raise WalletError("Encryption key is not valid hex") from exc
    if len(key) != 32:
        raise WalletError("Encryption key must be 32 bytes (64 hex chars)")
    return key


def encrypt_private_key(secret: str, key_hex: str) -> str:
    """Encrypt a base58 secret key for storage."""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_key_bytes(key_hex)).encrypt(iv, secret.encode("utf-8"), None)
    # AESGCM appends the tag; storage layout puts it before the ciphertext.
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt_private_key(encrypted: str, key_hex: str) -> str:
    """Return the plaintext base58 secret key.

    Raises ``WalletError`` if the blob is malformed or fails authentication.
    """
    try:
        combined = base64.b64decode(encrypted)
    except ValueError as exc:
        raise WalletError(f"Stored key is not valid base64: {exc}") from exc
    if len(combined) <= IV_LENGTH + AUTH_TAG_LENGTH:
        raise WalletError("Stored key is truncated")

    iv = combined[:IV_LENGTH]
    tag = combined[IV_LENGTH:IV_LENGTH + AUTH_TAG_LENGTH]
    ciphertext = combined[IV_LENGTH + AUTH_TAG_LENGTH:]
    try:
        plaintext = AESGCM(_key_bytes(key_hex)).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as exc:
        raise WalletError("Stored key failed authentication") from exc
    return plaintext.decode("utf-8")


def load_keypair(encrypted: str, key_hex: str) -> Keypair:
    """Decrypt a stored key and build a signing keypair from it."""
    secret = decrypt_private_key(encrypted, key_hex)
    try:
        return Keypair.from_bytes(base58.b58decode(secret))
    except ValueError as exc:
        raise WalletError(f"Stored key is not a valid keypair: {exc}") from exc


def sign_transaction(tx_bytes: bytes, keypair: Keypair) -> bytes:
    """Sign a serialized versioned transaction as its fee payer."""
    unsigned = VersionedTransaction.from_bytes(tx_bytes)
    signed = VersionedTransaction(unsigned.message, [keypair])
    return bytes(signed)
