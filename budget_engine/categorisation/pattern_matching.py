"""
Pattern Matching for Transaction Categorization.

Provides ordered rule matching and the payee similarity measure used by
fuzzy payee resolution.
"""

from typing import Iterable, Optional, Sequence, Tuple

from rapidfuzz.distance import LCSseq

from ..config.rules_loader import Rule


def match_rule(payee_normalized: str, rules: Iterable[Rule]) -> Optional[Rule]:
    """
    Return the first rule whose pattern matches the payee key.

    Rules are evaluated in the order given; evaluation stops at the first match.

    Example:
        >>> rule = match_rule("netflix com", get_default_category_rules())
        >>> rule.category
        'Streaming'
    """
    for rule in rules:
        if rule.matches(payee_normalized):
            return rule
    return None


def sequence_ratio(a: str, b: str) -> float:
    """
    Longest-common-subsequence similarity: ``2 * L / (len(a) + len(b))``.

    Identical strings score 1.0 (including two empty strings); otherwise an
    empty side scores 0.0.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    lcs = LCSseq.similarity(a, b)
    return 2.0 * lcs / (len(a) + len(b))


def find_best_match(key: str, known_keys: Sequence[str]) -> Tuple[Optional[str], float]:
    """
    Find the known key most similar to ``key``.

    Ties keep the earliest known key.

    Returns:
        Tuple of (best_key, score); best_key is None when nothing scores above 0
    """
    best_key = None
    best_score = 0.0

    for known in known_keys:
        score = sequence_ratio(key, known)
        if score > best_score:
            best_score = score
            best_key = known

    return best_key, best_score
