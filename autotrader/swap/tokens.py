"""Token metadata — well-known mints, decimals, and unit conversion."""

import math

NATIVE_MINT = "So11111111111111111111111111111111111111112"
DEFAULT_DECIMALS = 9

TOKEN_MINTS: dict[str, str] = {
    "SOL": NATIVE_MINT,
    "WSOL": NATIVE_MINT,
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
    "PYTH": "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "MANGO": "MangoCzJ36AjZyKwVj3VnYU4GTonjfVEnJmvvWaxLac",
    "SAMO": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
    "RENDER": "rndrizKT3MK1iimdxRdWabcF7Zg7AR5T4nud4EkHBof",
    "JITO": "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",
}

KNOWN_DECIMALS: dict[str, int] = {
    TOKEN_MINTS["SOL"]: 9,
    TOKEN_MINTS["USDC"]: 6,
    TOKEN_MINTS["USDT"]: 6,
    TOKEN_MINTS["BONK"]: 5,
    TOKEN_MINTS["JUP"]: 6,
    TOKEN_MINTS["RAY"]: 6,
    TOKEN_MINTS["WIF"]: 6,
    TOKEN_MINTS["PYTH"]: 6,
    TOKEN_MINTS["ORCA"]: 6,
    TOKEN_MINTS["MANGO"]: 6,
    TOKEN_MINTS["SAMO"]: 9,
    TOKEN_MINTS["RENDER"]: 8,
    TOKEN_MINTS["JITO"]: 9,
}


def resolve_mint(token: str) -> str:
    """Map a known symbol (any case) to its mint; pass addresses through."""
    return TOKEN_MINTS.get(token.upper(), token)


def known_decimals(mint: str) -> int | None:
    return KNOWN_DECIMALS.get(mint)


def to_smallest_unit(amount: float, decimals: int) -> int:
    """Convert a UI amount to integer base units, rounding down."""
    return math.floor(amount * 10 ** decimals)


def from_smallest_unit(amount: int | str, decimals: int) -> float:
    return int(amount) / 10 ** decimals
