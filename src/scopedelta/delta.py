"""Rule-based comparison of an adjuster scope against a contractor scope.

Everything here is pure: no I/O, no randomness, no shared state. Inputs are
assumed to be validated already (see :mod:`scopedelta.scope_io`).
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Sequence

from .models import (
    MISSING,
    QTY_MISMATCH,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    UNDERPAID,
    DeltaStatistics,
    ScopeLineItem,
    SupplementTotal,
    Variance,
)

HIGH_SEVERITY_THRESHOLD = 2000.0
MEDIUM_SEVERITY_THRESHOLD = 500.0

# Default sales tax applied to supplement requests (Arizona).
DEFAULT_TAX_RATE = 0.089

_WHITESPACE = re.compile(r"\s+")


def normalize_description(description: str) -> str:
    """Return the matching key for ``description``.

    Lower-cases, collapses internal whitespace runs to a single space and
    trims the ends. ``"Shingles -  30YR "`` becomes ``"shingles - 30yr"``.
    """

    return _WHITESPACE.sub(" ", description.lower()).strip()


def classify_severity(delta_total: float) -> str:
    magnitude = abs(delta_total)
    if magnitude > HIGH_SEVERITY_THRESHOLD:
        return SEVERITY_HIGH
    if magnitude > MEDIUM_SEVERITY_THRESHOLD:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def index_scope(items: Iterable[ScopeLineItem]) -> Dict[str, ScopeLineItem]:
    """Key ``items`` by normalized description.

    A later item with the same key replaces the earlier one but the key keeps
    its original position in the mapping.
    """

    indexed: Dict[str, ScopeLineItem] = {}
    for item in items:
        indexed[normalize_description(item.description)] = item
    return indexed


def _variance(
    kind: str,
    contractor: ScopeLineItem,
    delta_total: float,
    adjuster: ScopeLineItem | None = None,
) -> Variance:
    return Variance(
        kind=kind,
        description=contractor.description,
        delta_total=delta_total,
        severity=classify_severity(delta_total),
        contractor=contractor,
        adjuster=adjuster,
    )


def compute_delta(
    adjuster_scope: Sequence[ScopeLineItem],
    contractor_scope: Sequence[ScopeLineItem],
) -> List[Variance]:
    """
    Detect variances between an adjuster scope and a contractor scope.

    Every contractor item is looked up by normalized description:

    - no adjuster match -> ``MISSING`` with the full contractor total as delta
    - quantities differ -> ``QTY_MISMATCH``
    - adjuster unit price lower -> ``UNDERPAID``

    The last two checks are independent, so one matched pair can yield both
    (quantity first). Items only the adjuster priced produce nothing.

    Returns
    -------
    list of Variance
        Sorted by ``delta_total`` descending; ties keep detection order.
    """

    adjuster_index = index_scope(adjuster_scope)
    contractor_index = index_scope(contractor_scope)

    variances: List[Variance] = []
    for key, contractor in contractor_index.items():
        adjuster = adjuster_index.get(key)
        if adjuster is None:
            variances.append(_variance(MISSING, contractor, contractor.total))
            continue

        delta_total = contractor.total - adjuster.total
        if adjuster.quantity != contractor.quantity:
            variances.append(_variance(QTY_MISMATCH, contractor, delta_total, adjuster))
        if adjuster.unit_price < contractor.unit_price:
            variances.append(_variance(UNDERPAID, contractor, delta_total, adjuster))

    # sorted() is stable with reverse=True, so equal deltas keep detection order
    return sorted(variances, key=lambda v: v.delta_total, reverse=True)


def compute_statistics(variances: Sequence[Variance]) -> DeltaStatistics:
    """Aggregate counts and the signed delta sum over exactly ``variances``."""

    severity_counts = {SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 0, SEVERITY_LOW: 0}
    kind_counts = {MISSING: 0, UNDERPAID: 0, QTY_MISMATCH: 0}
    total_delta = 0.0
    for variance in variances:
        total_delta += variance.delta_total
        if variance.severity in severity_counts:
            severity_counts[variance.severity] += 1
        if variance.kind in kind_counts:
            kind_counts[variance.kind] += 1

    return DeltaStatistics(
        total_variances=len(variances),
        total_delta=total_delta,
        high_severity=severity_counts[SEVERITY_HIGH],
        medium_severity=severity_counts[SEVERITY_MEDIUM],
        low_severity=severity_counts[SEVERITY_LOW],
        missing_items=kind_counts[MISSING],
        underpaid_items=kind_counts[UNDERPAID],
        qty_mismatches=kind_counts[QTY_MISMATCH],
    )


def supplement_total(
    variances: Sequence[Variance],
    tax_rate: float = DEFAULT_TAX_RATE,
) -> SupplementTotal:
    """
    Total the amount owed to the contractor across ``variances``.

    Only positive deltas count, and each normalized description is counted
    once: a ``QTY_MISMATCH``/``UNDERPAID`` pair describes the same gap.
    """

    seen: set[str] = set()
    subtotal = 0.0
    for variance in variances:
        key = normalize_description(variance.description)
        if key in seen:
            continue
        seen.add(key)
        if variance.delta_total > 0:
            subtotal += variance.delta_total

    subtotal = round(subtotal, 2)
    tax = round(subtotal * tax_rate, 2)
    return SupplementTotal(
        subtotal=subtotal,
        tax=tax,
        total=round(subtotal + tax, 2),
        tax_rate=tax_rate,
    )


__all__ = [
    "DEFAULT_TAX_RATE",
    "HIGH_SEVERITY_THRESHOLD",
    "MEDIUM_SEVERITY_THRESHOLD",
    "classify_severity",
    "compute_delta",
    "compute_statistics",
    "index_scope",
    "normalize_description",
    "supplement_total",
]
