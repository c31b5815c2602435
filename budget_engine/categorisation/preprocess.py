"""
Preprocessing utilities for transaction categorization.
Handles payee normalization and internal transfer / zero-amount exclusion.
"""

import logging
import re
from dataclasses import replace
from typing import Iterable, List, Optional

from ..config.rules_loader import ExclusionRules

logger = logging.getLogger(__name__)

# Anything outside the payee key alphabet becomes a separator
_NON_KEY_CHARS = re.compile(r"[^a-z0-9+& ]+")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_payee(name: Optional[str]) -> str:
    """
    Normalize a payee name into its matching key.

    Args:
        name: Raw payee name

    Returns:
        Lower-case key containing only ``a-z0-9+&`` and single spaces

    Example:
        >>> normalize_payee("  NETFLIX.COM  ")
        'netflix com'
    """
    if not name:
        return ""
    key = _NON_KEY_CHARS.sub(" ", name.strip().lower())
    return _WHITESPACE_RUN.sub(" ", key).strip()


def is_internal_transfer(txn_type: str, name: str, exclusion_rules: ExclusionRules) -> bool:
    """
    Check if a transaction moves money between the user's own accounts.

    Args:
        txn_type: Provider transaction type
        name: Raw payee name (matched lower-cased)
        exclusion_rules: Transfer types and name patterns

    Returns:
        True if the type is a transfer type or the name contains a transfer pattern
    """
    if txn_type in exclusion_rules.internal_transfer_types:
        return True
    lowered = (name or "").lower()
    for pattern in exclusion_rules.internal_transfer_name_patterns:
        if pattern in lowered:
            return True
    return False


def apply_exclusions(transactions: Iterable, exclusion_rules: ExclusionRules) -> List:
    """
    Drop zero-amount rows (when configured) and flag internal transfers and spend.

    Args:
        transactions: Transaction records
        exclusion_rules: Exclusion configuration

    Returns:
        New list of records with ``is_internal_transfer`` and ``is_spend`` set
    """
    results = []
    dropped = 0

    for txn in transactions:
        if exclusion_rules.exclude_zero_amount and txn.amount == 0:
            dropped += 1
            continue

        internal = is_internal_transfer(txn.type, txn.name, exclusion_rules)
        results.append(replace(
            txn,
            is_internal_transfer=internal,
            is_spend=txn.amount < 0 and not internal,
        ))

    if dropped:
        logger.debug("Dropped %d zero-amount transactions", dropped)

    return results
