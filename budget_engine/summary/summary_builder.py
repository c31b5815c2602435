"""
Budget Summary Builder.
Aggregates processed transactions into a per-bill summary and a per-category
variable spending summary.

All arithmetic runs on unrounded floats; money is rounded only in ``to_dict``.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..bills.bill_detector import BillOverride, latest_month, median_day
from ..config.pipeline_config import PIPELINE_CONFIG
from ..ingest.transaction import BillStatus, Transaction
from ..money import round_money

logger = logging.getLogger(__name__)


class Timeframe(Enum):
    """Window applied to the variable spending summary."""
    THIS_MONTH = "this_month"
    LAST_3 = "last_3"
    ALL = "all"

    @classmethod
    def parse(cls, value: Union[str, "Timeframe", None]) -> "Timeframe":
        """Accept a Timeframe or its string value; None means ALL."""
        if value is None:
            return cls.ALL
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown timeframe {value!r} (expected one of: {allowed})") from None


def _drilldown_row(txn: Transaction) -> Dict:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "name": txn.name,
        "amount": round_money(txn.amount_abs),
        "month_key": txn.month_key,
        "type": txn.type,
        "category": txn.category_final,
        "account_label": txn.account_label,
    }


def _newest_first(transactions: Iterable[Transaction]) -> List[Transaction]:
    return sorted(transactions, key=lambda t: t.date, reverse=True)


@dataclass
class BillSummary:
    """One active bill, grouped by payee."""
    payee: str
    payee_normalized: str
    category: str
    typical_day: int
    required_exact: float
    avg_monthly: float
    min_monthly: float
    max_monthly: float
    tx_count: int
    bill_status: str = BillStatus.ACTIVE.value
    confirmation: str = "needs_confirmation"
    monthly_breakdown: List[Tuple[str, float]] = field(default_factory=list)  # newest month first
    transactions: List[Transaction] = field(default_factory=list)  # newest first

    def to_dict(self) -> Dict:
        return {
            "payee": self.payee,
            "payee_normalized": self.payee_normalized,
            "category": self.category,
            "typical_day": self.typical_day,
            "required_exact": round_money(self.required_exact),
            "avg_monthly": round_money(self.avg_monthly),
            "min_monthly": round_money(self.min_monthly),
            "max_monthly": round_money(self.max_monthly),
            "tx_count": self.tx_count,
            "bill_status": self.bill_status,
            "confirmation": self.confirmation,
            "monthly_breakdown": [
                {"month": month, "total": round_money(total)}
                for month, total in self.monthly_breakdown
            ],
            "transactions": [_drilldown_row(txn) for txn in self.transactions],
        }


@dataclass
class VariableCategorySummary:
    """Variable spending for one category."""
    category: str
    avg_monthly: float = 0.0
    avg_weekly: float = 0.0
    tx_count: int = 0
    this_month_actual: float = 0.0
    target: float = 0.0  # user-adjustable weekly target
    transactions: List[Transaction] = field(default_factory=list)  # newest first

    def to_dict(self) -> Dict:
        return {
            "category": self.category,
            "avg_monthly": round_money(self.avg_monthly),
            "avg_weekly": round_money(self.avg_weekly),
            "tx_count": self.tx_count,
            "this_month_actual": round_money(self.this_month_actual),
            "target": round_money(self.target),
            "transactions": [_drilldown_row(txn) for txn in self.transactions],
        }


def build_bills_summary(
    transactions: Sequence[Transaction],
    bill_overrides: Optional[Mapping[str, BillOverride]] = None,
) -> List[BillSummary]:
    """
    Group active bill spend by payee.

    Args:
        transactions: Records after bill detection
        bill_overrides: Payee key -> BillOverride; custom category, day and
            amount replace the computed values

    Returns:
        Bills sorted by typical day ascending, then required amount descending
    """
    spend = [t for t in transactions if t.is_spend and t.bill_status is BillStatus.ACTIVE]
    if not spend:
        return []

    overrides = bill_overrides or {}
    # Newest month of any spend row, not only active bill rows
    latest = latest_month(t for t in transactions if t.is_spend)

    payee_groups: Dict[str, List[Transaction]] = defaultdict(list)
    for txn in spend:
        payee_groups[txn.payee_normalized].append(txn)

    results = []
    for payee_norm, txs in payee_groups.items():
        monthly_totals: Dict[str, float] = defaultdict(float)
        for txn in txs:
            monthly_totals[txn.month_key] += txn.amount_abs

        month_amounts = list(monthly_totals.values())
        avg = sum(month_amounts) / len(month_amounts)
        latest_amount = monthly_totals.get(latest, avg)

        payee_name = Counter(t.name for t in txs).most_common(1)[0][0]
        category = Counter(t.category_final for t in txs).most_common(1)[0][0]
        typical_day = median_day([t.day for t in txs])

        override = overrides.get(payee_norm)
        confirmation = "needs_confirmation"
        if override is not None:
            if override.is_confirmed:
                confirmation = "confirmed"
            if override.custom_category:
                category = override.custom_category
            if override.custom_day is not None:
                typical_day = override.custom_day
            if override.custom_amount is not None:
                latest_amount = override.custom_amount

        results.append(BillSummary(
            payee=payee_name,
            payee_normalized=payee_norm,
            category=category,
            typical_day=typical_day,
            required_exact=latest_amount,
            avg_monthly=avg,
            min_monthly=min(month_amounts),
            max_monthly=max(month_amounts),
            tx_count=len(txs),
            confirmation=confirmation,
            monthly_breakdown=sorted(monthly_totals.items(), reverse=True),
            transactions=_newest_first(txs),
        ))

    results.sort(key=lambda b: (b.typical_day, -b.required_exact))
    return results


def total_monthly(bills: Iterable[BillSummary]) -> float:
    """Sum of required amounts across bills (unrounded)."""
    return sum(bill.required_exact for bill in bills)


def filter_variable_spend(
    transactions: Iterable[Transaction],
    timeframe: Union[str, Timeframe, None] = Timeframe.ALL,
) -> List[Transaction]:
    """
    Select variable spend rows within a timeframe.

    Variable spend is spend that is not an active bill and not an internal transfer.
    """
    tf = Timeframe.parse(timeframe)
    base = [
        t for t in transactions
        if t.is_spend and t.bill_status is not BillStatus.ACTIVE and not t.is_internal_transfer
    ]
    if not base:
        return []

    months = sorted({t.month_key for t in base})
    if tf is Timeframe.THIS_MONTH:
        keep = {months[-1]}
    elif tf is Timeframe.LAST_3:
        keep = set(months[-PIPELINE_CONFIG["timeframes"]["last_n_months"]:])
    else:
        return base
    return [t for t in base if t.month_key in keep]


def build_variable_summary(
    transactions: Sequence[Transaction],
    timeframe: Union[str, Timeframe, None] = Timeframe.ALL,
) -> List[VariableCategorySummary]:
    """
    Summarize variable spending per category.

    Args:
        transactions: Records after bill detection
        timeframe: "this_month", "last_3" or "all"

    Returns:
        Categories sorted by average monthly spend, highest first

    Raises:
        ValueError: If the timeframe is unknown
    """
    base = filter_variable_spend(transactions, timeframe)
    if not base:
        return []

    latest = max(t.month_key for t in base)
    month_count = max(1, len({t.month_key for t in base}))

    first_date = min(t.date for t in base)
    last_date = max(t.date for t in base)
    day_span = (last_date - first_date).days + 1
    week_count = max(1.0, day_span / PIPELINE_CONFIG["timeframes"]["days_per_week"])

    groups: Dict[str, List[Transaction]] = defaultdict(list)
    for txn in base:
        groups[txn.category_final].append(txn)

    results = []
    for category, txs in groups.items():
        total_spend = sum(t.amount_abs for t in txs)
        avg_weekly = total_spend / week_count
        results.append(VariableCategorySummary(
            category=category,
            avg_monthly=total_spend / month_count,
            avg_weekly=avg_weekly,
            tx_count=len(txs),
            this_month_actual=sum(t.amount_abs for t in txs if t.month_key == latest),
            target=avg_weekly,
            transactions=_newest_first(txs),
        ))

    results.sort(key=lambda c: c.avg_monthly, reverse=True)
    logger.debug("Variable summary: %d categories over %d months", len(results), month_count)
    return results


def weekly_budget(categories: Iterable[VariableCategorySummary]) -> float:
    """Sum of weekly targets across categories (unrounded)."""
    return sum(c.target for c in categories)


def transactions_by_category(
    transactions: Sequence[Transaction],
    category: str,
    timeframe: Union[str, Timeframe, None] = Timeframe.ALL,
) -> List[Transaction]:
    """Variable spend rows of one category within a timeframe, newest first."""
    return _newest_first(
        t for t in filter_variable_spend(transactions, timeframe) if t.category_final == category
    )
