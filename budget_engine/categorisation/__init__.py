"""
Categorisation Module for the Budget Engine.

Orchestrates transaction categorization through:
- Preprocessing (payee normalization, transfer and zero-amount exclusion)
- Pattern matching (ordered rules, LCS payee similarity)
- Provider-category fallback
- Fuzzy payee resolution and user overrides
"""

from .preprocess import (
    normalize_payee,
    is_internal_transfer,
    apply_exclusions,
)
from .decisions import (
    ConfidenceReason,
    Decision,
    RuleMatch,
    FallbackMatch,
    FuzzyMatch,
    OverrideMatch,
    Unclassified,
    UNCLASSIFIED,
)
from .pattern_matching import (
    match_rule,
    sequence_ratio,
    find_best_match,
)
from .engine import TransactionCategorizer, apply_payee_overrides

__all__ = [
    # Main categorizer
    "TransactionCategorizer",
    "apply_payee_overrides",
    # Preprocessing utilities
    "normalize_payee",
    "is_internal_transfer",
    "apply_exclusions",
    # Decisions
    "ConfidenceReason",
    "Decision",
    "RuleMatch",
    "FallbackMatch",
    "FuzzyMatch",
    "OverrideMatch",
    "Unclassified",
    "UNCLASSIFIED",
    # Pattern matching utilities
    "match_rule",
    "sequence_ratio",
    "find_best_match",
]
