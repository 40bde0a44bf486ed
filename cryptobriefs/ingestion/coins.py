"""Coin symbol detection from headlines (keyword matching)."""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple


COIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "BTC": ("BTC", "Bitcoin"),
    "ETH": ("ETH", "Ethereum"),
    "SOL": ("SOL", "Solana"),
    "BNB": ("BNB",),
    "XRP": ("XRP", "Ripple"),
    "DOGE": ("DOGE", "Dogecoin"),
    "ADA": ("ADA", "Cardano"),
    "MATIC": ("MATIC", "Polygon"),
    "LINK": ("LINK", "Chainlink"),
}


def detect_coins(title: Optional[str]) -> FrozenSet[str]:
    """Return every symbol with at least one alias found in the title.

    Plain substring match on the uppercased title, so short aliases also hit
    inside longer words ("SOL" in "SOLD").
    """
    upper = (title or "").upper()
    if not upper:
        return frozenset()
    return frozenset(
        symbol
        for symbol, aliases in COIN_KEYWORDS.items()
        if any(alias.upper() in upper for alias in aliases)
    )
