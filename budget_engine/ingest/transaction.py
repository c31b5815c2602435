"""
Transaction record for the Budget Engine.

Records are immutable: every pipeline stage returns new records built with
``dataclasses.replace`` instead of mutating the batch it was given.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional

from ..categorisation.decisions import UNCLASSIFIED, ConfidenceReason, Decision
from ..categorisation.preprocess import normalize_payee
from ..config.rules_loader import CategoryGroup
from ..money import round_money


class Direction(Enum):
    OUTFLOW = "outflow"
    INFLOW = "inflow"


class BillStatus(Enum):
    """Bill lifecycle state, recomputed on every batch."""
    NOT_BILL = "not_bill"
    INACTIVE_CANDIDATE = "inactive_candidate"
    ACTIVE = "active"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Transaction:
    """A single bank transaction and everything the pipeline derives for it."""
    id: str
    date: date
    month_key: str
    day: int
    name: str
    payee_normalized: str
    type: str
    amount: float
    amount_abs: float
    direction: Direction
    provider_category: str = ""
    notes: str = ""
    account_label: str = ""
    source_file: str = ""

    # Derived by the pipeline
    decision: Decision = UNCLASSIFIED
    is_internal_transfer: bool = False
    is_spend: bool = False
    is_bill_candidate: bool = False
    bill_status: BillStatus = BillStatus.NOT_BILL
    required_amount_exact: float = 0.0
    typical_day: Optional[int] = None

    @classmethod
    def create(
        cls,
        id: str,
        date: date,
        name: str,
        amount: float,
        type: str = "",
        provider_category: str = "",
        notes: str = "",
        account_label: str = "",
        source_file: str = "",
    ) -> "Transaction":
        """
        Build a record from raw row values, deriving the month key, day,
        normalized payee, absolute amount and direction.
        """
        amount = float(amount or 0.0)
        return cls(
            id=id,
            date=date,
            month_key=f"{date.year:04d}-{date.month:02d}",
            day=date.day,
            name=name or "",
            payee_normalized=normalize_payee(name),
            type=type or "",
            amount=amount,
            amount_abs=abs(amount),
            direction=Direction.OUTFLOW if amount < 0 else Direction.INFLOW,
            provider_category=provider_category or "",
            notes=notes or "",
            account_label=account_label,
            source_file=source_file,
        )

    @property
    def category_final(self) -> str:
        return self.decision.category

    @property
    def category_group(self) -> CategoryGroup:
        return self.decision.group

    @property
    def is_bill_rule(self) -> bool:
        return self.decision.is_bill

    @property
    def confidence_score(self) -> float:
        return self.decision.confidence

    @property
    def confidence_reason(self) -> ConfidenceReason:
        return self.decision.reason

    @property
    def rule_id_applied(self) -> str:
        return self.decision.rule_id

    def to_dict(self) -> Dict:
        """JSON-ready representation; money is rounded here and nowhere earlier."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "month_key": self.month_key,
            "day": self.day,
            "name": self.name,
            "payee_normalized": self.payee_normalized,
            "type": self.type,
            "amount": round_money(self.amount),
            "amount_abs": round_money(self.amount_abs),
            "direction": self.direction.value,
            "provider_category": self.provider_category,
            "notes": self.notes,
            "account_label": self.account_label,
            "source_file": self.source_file,
            "category_final": self.category_final,
            "category_group": self.category_group.value,
            "is_bill_rule": self.is_bill_rule,
            "confidence_score": self.confidence_score,
            "confidence_reason": self.confidence_reason.value,
            "rule_id_applied": self.rule_id_applied,
            "is_internal_transfer": self.is_internal_transfer,
            "is_spend": self.is_spend,
            "is_bill_candidate": self.is_bill_candidate,
            "bill_status": self.bill_status.value,
            "required_amount_exact": round_money(self.required_amount_exact),
            "typical_day": self.typical_day,
        }
