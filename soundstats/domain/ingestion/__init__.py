"""Ingestion rules shared by the live and bulk reconcilers."""

from .imports import (
    TRACK_URI_PREFIX,
    covered_span,
    distinct_in_order,
    is_before_floor,
    legacy_played_at,
    track_id_from_uri,
)
from .matching import best_candidate, match_score
from .reconciliation import (
    Finalization,
    LedgerAction,
    ReconciliationPlan,
    ReconciliationRules,
    decide_reconciliation,
    finalize_previous,
)

__all__ = [
    "TRACK_URI_PREFIX",
    "Finalization",
    "LedgerAction",
    "ReconciliationPlan",
    "ReconciliationRules",
    "best_candidate",
    "covered_span",
    "decide_reconciliation",
    "distinct_in_order",
    "finalize_previous",
    "is_before_floor",
    "legacy_played_at",
    "match_score",
    "track_id_from_uri",
]
