"""Solana address helpers."""

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

# Native/wrapped SOL and major stablecoins never show up in trending lists
EXCLUDED_TRENDING_MINTS = frozenset({WSOL_MINT, USDC_MINT, USDT_MINT})


def is_valid_mint(address: str) -> bool:
    """True if ``address`` is a base58-encoded 32-byte public key."""
    if not address or not isinstance(address, str):
        return False
    if not 32 <= len(address) <= 44:
        return False
    try:
        Pubkey.from_string(address)
    except ValueError:
        return False
    return True
