from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

MISSING = "MISSING"
UNDERPAID = "UNDERPAID"
QTY_MISMATCH = "QTY_MISMATCH"
SCOPE_MISMATCH = "SCOPE_MISMATCH"  # reserved; compute_delta never emits it

VARIANCE_KINDS: Tuple[str, ...] = (MISSING, UNDERPAID, QTY_MISMATCH, SCOPE_MISMATCH)

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"

SEVERITY_LEVELS: Tuple[str, ...] = (SEVERITY_LOW, SEVERITY_MEDIUM, SEVERITY_HIGH)


@dataclass(frozen=True)
class ScopeLineItem:
    """A single priced work item from one party's estimate."""

    description: str
    quantity: float
    unit_price: float
    total: float
    code: Optional[str] = None
    unit: Optional[str] = None


@dataclass(frozen=True)
class Variance:
    """Discrepancy between the adjuster and contractor scopes for one item."""

    kind: str
    description: str
    delta_total: float
    severity: str
    contractor: Optional[ScopeLineItem] = None
    adjuster: Optional[ScopeLineItem] = None


@dataclass(frozen=True)
class DeltaStatistics:
    total_variances: int = 0
    total_delta: float = 0.0
    high_severity: int = 0
    medium_severity: int = 0
    low_severity: int = 0
    missing_items: int = 0
    underpaid_items: int = 0
    qty_mismatches: int = 0


@dataclass(frozen=True)
class SupplementTotal:
    """Amount a contractor would request from the carrier, with sales tax."""

    subtotal: float
    tax: float
    total: float
    tax_rate: float
