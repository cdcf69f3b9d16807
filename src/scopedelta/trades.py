"""
Trade categories for estimating line-item codes.

Codes follow the ``PREFIX+MODIFIER`` convention (``RFG+IWS`` is ice & water
shield under roofing); the prefix alone decides the trade.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

OTHER_TRADE = "Other"

# Keep tuple structure to preserve order for report display
TRADE_PREFIXES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Roofing", ("RFG",)),
    ("Gutters", ("GUTR",)),
    ("Paint", ("PNT",)),
    ("Windows", ("WDSCR", "WDTRIM", "WDCAS")),
    ("Siding", ("SDG", "FASCIA", "SOFFIT", "STUCCO")),
    ("Drywall", ("DWL",)),
)

PREFIX_TRADE_MAP: Dict[str, str] = {
    prefix: trade for trade, prefixes in TRADE_PREFIXES for prefix in prefixes
}


def trade_names() -> List[str]:
    """Return known trades in display order, followed by the catch-all."""

    return [trade for trade, _ in TRADE_PREFIXES] + [OTHER_TRADE]


def normalize_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    candidate = str(value).strip().upper()
    return candidate or None


def trade_for_code(code: Optional[str]) -> Optional[str]:
    """
    Map an estimating code onto its trade.

    Accepts ``"RFG"``, ``"rfg+iws"`` or ``" GUTR+DS "``. Returns ``None`` when
    the code is empty or the prefix is not recognised.
    """

    normalized = normalize_code(code)
    if not normalized:
        return None
    prefix = normalized.split("+", 1)[0].strip()
    return PREFIX_TRADE_MAP.get(prefix)
