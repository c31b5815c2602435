"""
Transaction Categorizer for the Budget Engine.
Categorizes bank transactions into budget categories in two passes:
ordered rules with a provider-category fallback, then fuzzy payee resolution.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config.pipeline_config import FALLBACK_CATEGORY_MAP, PIPELINE_CONFIG
from ..config.rules_loader import CategoryGroup, CategoryRules
from ..ingest.transaction import Transaction
from .decisions import UNCLASSIFIED, Decision, FallbackMatch, FuzzyMatch, OverrideMatch, RuleMatch
from .pattern_matching import find_best_match, match_rule
from .preprocess import normalize_payee

logger = logging.getLogger(__name__)


class TransactionCategorizer:
    """Categorizes transaction batches for budgeting."""

    def __init__(
        self,
        category_rules: CategoryRules,
        fallback_map: Optional[Mapping[str, Tuple]] = None,
        fuzzy_workers: int = 1,
    ):
        """Initialize the categorizer.

        Args:
            category_rules: Ordered rule set; the first matching rule wins
            fallback_map: Provider category -> (category, group, is_bill, confidence);
                defaults to FALLBACK_CATEGORY_MAP
            fuzzy_workers: Threads used for the fuzzy pass (1 = sequential)
        """
        if fuzzy_workers < 1:
            raise ValueError(f"fuzzy_workers must be at least 1, got {fuzzy_workers}")

        self.category_rules = category_rules
        self.fallback_map = FALLBACK_CATEGORY_MAP if fallback_map is None else fallback_map
        self.fuzzy_workers = fuzzy_workers

        bands = PIPELINE_CONFIG["confidence_bands"]
        fuzzy = PIPELINE_CONFIG["fuzzy"]
        self.known_payee_min = bands["known_payee_min"]
        self.fuzzy_candidate_max = bands["fuzzy_candidate_max"]
        self.min_similarity = fuzzy["min_similarity"]
        self.confidence_floor = fuzzy["confidence_floor"]
        self.confidence_ceiling = fuzzy["confidence_ceiling"]

    def categorize_transaction(self, payee_normalized: str, provider_category: str) -> Decision:
        """
        Categorize a single transaction (pass 1).

        Args:
            payee_normalized: Normalized payee key
            provider_category: Category label supplied by the bank

        Returns:
            RuleMatch, FallbackMatch or UNCLASSIFIED
        """
        rule = match_rule(payee_normalized, self.category_rules)
        if rule is not None:
            return RuleMatch(rule)

        entry = self.fallback_map.get(provider_category)
        if entry is not None:
            category, group, is_bill, confidence = entry
            return FallbackMatch(
                provider_category=provider_category,
                category=category,
                group=CategoryGroup(group),
                is_bill=is_bill,
                confidence=confidence,
            )

        return UNCLASSIFIED

    def categorize_transactions(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """Run pass 1 over a batch, returning new records."""
        results = [
            replace(txn, decision=self.categorize_transaction(txn.payee_normalized, txn.provider_category))
            for txn in transactions
        ]

        unmapped = sum(1 for txn in results if txn.decision is UNCLASSIFIED)
        logger.info(
            "Categorized %d transactions (%d unmapped)", len(results), unmapped
        )
        return results

    def resolve_fuzzy_payees(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """
        Propagate categories from trusted payees to similar low-confidence payees (pass 2).

        Payees with confidence >= 0.90 seed the known set (first row per key).
        Rows below 0.70 with a non-empty key adopt the most similar known
        payee's category when similarity reaches 0.88; their confidence is
        clamped into [0.70, 0.85]. Rows in between are left as they are.

        Args:
            transactions: Records that have been through pass 1

        Returns:
            New list of records
        """
        known: Dict[str, Decision] = {}
        for txn in transactions:
            key = txn.payee_normalized
            if key and key not in known and txn.confidence_score >= self.known_payee_min:
                known[key] = txn.decision

        candidate_indices = [
            i for i, txn in enumerate(transactions)
            if txn.payee_normalized and txn.confidence_score < self.fuzzy_candidate_max
        ]

        results = list(transactions)
        if not known or not candidate_indices:
            return results

        # Unique candidate keys, first-seen order
        candidate_keys = list(dict.fromkeys(transactions[i].payee_normalized for i in candidate_indices))
        best_matches = dict(zip(candidate_keys, self._search_known(candidate_keys, tuple(known))))

        adopted = 0
        for i in candidate_indices:
            txn = results[i]
            best_key, score = best_matches[txn.payee_normalized]
            if best_key is None or score < self.min_similarity:
                continue

            seed = known[best_key]
            results[i] = replace(txn, decision=FuzzyMatch(
                known_key=best_key,
                score=score,
                category=seed.category,
                group=seed.group,
                is_bill=seed.is_bill,
                confidence=min(self.confidence_ceiling, max(self.confidence_floor, score)),
            ))
            adopted += 1
            logger.debug(
                "Fuzzy match '%s' -> '%s' (score %.3f, category %s)",
                txn.payee_normalized, best_key, score, seed.category
            )

        logger.info(
            "Fuzzy resolution: %d known payees, %d candidates, %d adopted",
            len(known), len(candidate_indices), adopted
        )
        return results

    def _search_known(
        self, candidate_keys: List[str], known_keys: Tuple[str, ...]
    ) -> List[Tuple[Optional[str], float]]:
        search = partial(find_best_match, known_keys=known_keys)
        if self.fuzzy_workers == 1 or len(candidate_keys) == 1:
            return [search(key) for key in candidate_keys]

        # known_keys is an immutable snapshot shared by all workers
        with ThreadPoolExecutor(max_workers=self.fuzzy_workers) as pool:
            return list(pool.map(search, candidate_keys))

    def categorize_batch(self, transactions: Sequence[Transaction]) -> List[Transaction]:
        """Run both categorization passes over a batch."""
        return self.resolve_fuzzy_payees(self.categorize_transactions(transactions))


def apply_payee_overrides(
    transactions: Sequence[Transaction],
    payee_overrides: Optional[Mapping[str, str]],
) -> List[Transaction]:
    """
    Apply user category overrides keyed by payee.

    Override keys are normalized before the join. An override replaces the
    category and fixes confidence to 1.0; group and bill flag are kept.

    Args:
        transactions: Categorized records
        payee_overrides: Payee key -> category

    Returns:
        New list of records

    Raises:
        ValueError: If an override category is not a non-empty string
    """
    if not payee_overrides:
        return list(transactions)

    overrides = {}
    for payee, category in payee_overrides.items():
        if not isinstance(category, str) or not category.strip():
            raise ValueError(f"Override for payee '{payee}' must be a non-empty category")
        key = normalize_payee(payee)
        if key:
            overrides[key] = category.strip()

    results = []
    applied = 0
    for txn in transactions:
        category = overrides.get(txn.payee_normalized)
        if category is None:
            results.append(txn)
            continue
        results.append(replace(txn, decision=OverrideMatch(
            category=category,
            group=txn.category_group,
            is_bill=txn.is_bill_rule,
        )))
        applied += 1

    logger.info("Applied %d payee overrides to %d transactions", len(overrides), applied)
    return results
