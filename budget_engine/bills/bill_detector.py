"""
Recurring Bill Detection Module for the Budget Engine.

Detects recurring bills from transaction history: which payees are bill
candidates, whether each is active in the latest month, how much should be
reserved for it and on which day of the month it usually leaves the account.
Status is recomputed from scratch for every batch.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from ..categorisation.preprocess import normalize_payee
from ..config.pipeline_config import DIRECT_DEBIT_TYPES, PIPELINE_CONFIG
from ..ingest.transaction import BillStatus, Transaction

logger = logging.getLogger(__name__)


class BillAction(Enum):
    """User action on a detected bill."""
    CONFIRM = "confirm"
    REJECT = "reject"
    EDIT = "edit"


@dataclass(frozen=True)
class BillOverride:
    """A user's decision about one payee's bill, with optional custom values."""
    payee_normalized: str
    action: BillAction
    custom_day: Optional[int] = None
    custom_amount: Optional[float] = None
    custom_category: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.action in (BillAction.CONFIRM, BillAction.EDIT)

    @property
    def is_rejected(self) -> bool:
        return self.action is BillAction.REJECT

    @classmethod
    def from_dict(cls, raw: Mapping) -> "BillOverride":
        """
        Build an override from a request payload.

        Args:
            raw: Mapping with payee_normalized, action and optional
                custom_day / custom_amount / custom_category

        Returns:
            Validated BillOverride with a normalized payee key

        Raises:
            ValueError: If the payee or action is missing or a custom value is invalid
        """
        if not isinstance(raw, Mapping):
            raise ValueError("Bill override must be an object")

        payee = normalize_payee(raw.get("payee_normalized") or raw.get("payee"))
        if not payee:
            raise ValueError("Bill override requires payee_normalized")

        try:
            action = BillAction(raw.get("action"))
        except ValueError:
            raise ValueError(
                f"Invalid action {raw.get('action')!r} for '{payee}'. Use: confirm, reject, or edit"
            ) from None

        custom_day = raw.get("custom_day")
        if custom_day is not None:
            if isinstance(custom_day, bool) or not isinstance(custom_day, int) or not 1 <= custom_day <= 31:
                raise ValueError(f"custom_day for '{payee}' must be an integer between 1 and 31")

        custom_amount = raw.get("custom_amount")
        if custom_amount is not None:
            if isinstance(custom_amount, bool) or not isinstance(custom_amount, (int, float)):
                raise ValueError(f"custom_amount for '{payee}' must be a non-negative number")
            if not math.isfinite(custom_amount) or custom_amount < 0:
                raise ValueError(f"custom_amount for '{payee}' must be a non-negative number")
            custom_amount = float(custom_amount)

        custom_category = raw.get("custom_category") or None
        if custom_category is not None and not isinstance(custom_category, str):
            raise ValueError(f"custom_category for '{payee}' must be a string")

        return cls(
            payee_normalized=payee,
            action=action,
            custom_day=custom_day,
            custom_amount=custom_amount,
            custom_category=custom_category,
        )


def build_bill_overrides(raw_overrides: Optional[Iterable]) -> Dict[str, BillOverride]:
    """
    Index bill overrides by payee key. Later entries for the same payee win.

    Accepts BillOverride objects or raw mappings, as a list or keyed by payee.
    """
    if isinstance(raw_overrides, Mapping):
        raw_overrides = raw_overrides.values()

    overrides: Dict[str, BillOverride] = {}
    for raw in raw_overrides or []:
        override = raw if isinstance(raw, BillOverride) else BillOverride.from_dict(raw)
        overrides[override.payee_normalized] = override
    return overrides


@dataclass(frozen=True)
class PayeeStats:
    """Spend history of one payee within a batch."""
    months_seen: FrozenSet[str]
    tx_count: int

    def is_recurring_like(self, min_months: int, min_transactions: int) -> bool:
        return len(self.months_seen) >= min_months and self.tx_count >= min_transactions


_NO_HISTORY = PayeeStats(months_seen=frozenset(), tx_count=0)


def resolve_bill_status(
    is_candidate: bool,
    present_in_latest: bool,
    seen_before: bool,
    override: Optional[BillOverride] = None,
) -> BillStatus:
    """
    Decide a transaction's bill status.

    Args:
        is_candidate: Row is a bill candidate
        present_in_latest: Payee has a candidate spend row in the latest month
        seen_before: Payee has a candidate spend row in an earlier month
        override: User decision for the payee, if any

    Returns:
        BillStatus; a rejection always wins, a confirmation only promotes
        candidates whose payee has earlier candidate spend
    """
    if override is not None and override.is_rejected:
        return BillStatus.REJECTED
    if not is_candidate:
        return BillStatus.NOT_BILL
    if present_in_latest:
        return BillStatus.ACTIVE
    if seen_before:
        if override is not None and override.is_confirmed:
            return BillStatus.ACTIVE
        return BillStatus.INACTIVE_CANDIDATE
    return BillStatus.NOT_BILL


def median_day(days: Sequence[int]) -> Optional[int]:
    """Median day of month; an even count averages the middle pair, halves rounding up."""
    if not days:
        return None
    ordered = sorted(days)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid] + 1) // 2
    return ordered[mid]


def latest_month(transactions: Iterable[Transaction]) -> Optional[str]:
    """Most recent month key among the given records."""
    return max((txn.month_key for txn in transactions), default=None)


class BillDetector:
    """Assigns bill candidacy, lifecycle status, required amount and typical day."""

    def __init__(
        self,
        direct_debit_types: Optional[Iterable[str]] = None,
        min_months: Optional[int] = None,
        min_transactions: Optional[int] = None,
    ):
        recurrence = PIPELINE_CONFIG["recurrence"]
        self.direct_debit_types = frozenset(
            DIRECT_DEBIT_TYPES if direct_debit_types is None else direct_debit_types
        )
        self.min_months = recurrence["min_months"] if min_months is None else min_months
        self.min_transactions = (
            recurrence["min_transactions"] if min_transactions is None else min_transactions
        )

    def build_payee_stats(self, spend: Iterable[Transaction]) -> Dict[str, PayeeStats]:
        months = defaultdict(set)
        counts = defaultdict(int)
        for txn in spend:
            months[txn.payee_normalized].add(txn.month_key)
            counts[txn.payee_normalized] += 1
        return {
            payee: PayeeStats(months_seen=frozenset(months[payee]), tx_count=counts[payee])
            for payee in counts
        }

    def is_bill_candidate(self, txn: Transaction, stats: PayeeStats) -> bool:
        if txn.is_bill_rule:
            return True
        return (
            txn.type in self.direct_debit_types
            and stats.is_recurring_like(self.min_months, self.min_transactions)
        )

    def apply_bill_status(
        self,
        transactions: Sequence[Transaction],
        bill_overrides: Optional[Mapping[str, BillOverride]] = None,
    ) -> List[Transaction]:
        """
        Compute bill fields for a whole batch.

        Args:
            transactions: Categorized records with exclusion flags set
            bill_overrides: Payee key -> BillOverride

        Returns:
            New list of records with is_bill_candidate, bill_status,
            required_amount_exact and typical_day populated
        """
        spend = [txn for txn in transactions if txn.is_spend]
        if not spend:
            logger.info("No spend transactions; no bills detected")
            return [
                replace(
                    txn,
                    is_bill_candidate=False,
                    bill_status=BillStatus.NOT_BILL,
                    required_amount_exact=0.0,
                    typical_day=None,
                )
                for txn in transactions
            ]

        overrides = bill_overrides or {}
        latest = latest_month(spend)
        payee_stats = self.build_payee_stats(spend)

        candidate_flags = [
            self.is_bill_candidate(txn, payee_stats.get(txn.payee_normalized, _NO_HISTORY))
            for txn in transactions
        ]

        present_latest = set()
        seen_before = set()
        for txn, is_candidate in zip(transactions, candidate_flags):
            if not (is_candidate and txn.is_spend):
                continue
            if txn.month_key == latest:
                present_latest.add(txn.payee_normalized)
            else:
                seen_before.add(txn.payee_normalized)

        statuses = [
            resolve_bill_status(
                is_candidate=is_candidate,
                present_in_latest=txn.payee_normalized in present_latest,
                seen_before=txn.payee_normalized in seen_before,
                override=overrides.get(txn.payee_normalized),
            )
            for txn, is_candidate in zip(transactions, candidate_flags)
        ]

        # Monthly totals and days of active spend, per payee
        monthly_totals: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        active_days: Dict[str, List[int]] = defaultdict(list)
        for txn, status in zip(transactions, statuses):
            if status is BillStatus.ACTIVE and txn.is_spend:
                monthly_totals[txn.payee_normalized][txn.month_key] += txn.amount_abs
                active_days[txn.payee_normalized].append(txn.day)

        required_amounts = {}
        for payee, totals in monthly_totals.items():
            if latest in totals:
                required_amounts[payee] = totals[latest]
            else:
                required_amounts[payee] = sum(totals.values()) / len(totals)

        typical_days = {payee: median_day(days) for payee, days in active_days.items()}

        results = []
        for txn, is_candidate, status in zip(transactions, candidate_flags, statuses):
            active = status is BillStatus.ACTIVE
            results.append(replace(
                txn,
                is_bill_candidate=is_candidate,
                bill_status=status,
                required_amount_exact=required_amounts.get(txn.payee_normalized, 0.0) if active else 0.0,
                typical_day=typical_days.get(txn.payee_normalized) if active else None,
            ))

        logger.info(
            "Bill detection: latest month %s, %d candidate rows, %d active payees",
            latest, sum(candidate_flags), len(monthly_totals)
        )
        return results
