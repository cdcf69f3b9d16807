"""Rule-based delta detection between adjuster and contractor scopes."""

from .delta import classify_severity, compute_delta, compute_statistics, normalize_description, supplement_total
from .models import DeltaStatistics, ScopeLineItem, SupplementTotal, Variance
from .scope_io import ScopeInputError, load_scope, scope_from_records

__all__ = [
    "DeltaStatistics",
    "ScopeInputError",
    "ScopeLineItem",
    "SupplementTotal",
    "Variance",
    "classify_severity",
    "compute_delta",
    "compute_statistics",
    "load_scope",
    "normalize_description",
    "scope_from_records",
    "supplement_total",
]
