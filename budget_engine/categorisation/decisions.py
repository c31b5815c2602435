"""
Categorization decisions.

Every transaction carries exactly one decision describing where its category
came from. Downstream code branches on the decision type instead of parsing
reason strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from ..config.pipeline_config import NEEDS_REVIEW_CATEGORY, PIPELINE_CONFIG
from ..config.rules_loader import CategoryGroup, Rule


class ConfidenceReason(Enum):
    """Provenance of a transaction's category."""
    RULE = "rule"
    MONZO_FALLBACK = "monzo_fallback"
    FUZZY_PAYEE = "fuzzy_payee"
    USER_OVERRIDE = "user_override"
    NONE = "none"


@dataclass(frozen=True)
class RuleMatch:
    """Category taken from the first matching rule."""
    rule: Rule

    reason: ClassVar[ConfidenceReason] = ConfidenceReason.RULE

    @property
    def category(self) -> str:
        return self.rule.category

    @property
    def group(self) -> CategoryGroup:
        return self.rule.group

    @property
    def is_bill(self) -> bool:
        return self.rule.is_bill

    @property
    def confidence(self) -> float:
        return self.rule.confidence

    @property
    def rule_id(self) -> str:
        return self.rule.id


@dataclass(frozen=True)
class FallbackMatch:
    """Category taken from the provider-category fallback table."""
    provider_category: str
    category: str
    group: CategoryGroup
    is_bill: bool
    confidence: float

    reason: ClassVar[ConfidenceReason] = ConfidenceReason.MONZO_FALLBACK

    @property
    def rule_id(self) -> str:
        return PIPELINE_CONFIG["rule_ids"]["fallback"]


@dataclass(frozen=True)
class FuzzyMatch:
    """Category propagated from a similar, trusted payee."""
    known_key: str
    score: float
    category: str
    group: CategoryGroup
    is_bill: bool
    confidence: float

    reason: ClassVar[ConfidenceReason] = ConfidenceReason.FUZZY_PAYEE

    @property
    def rule_id(self) -> str:
        return f"{PIPELINE_CONFIG['fuzzy']['rule_id_prefix']}{self.known_key}"


@dataclass(frozen=True)
class OverrideMatch:
    """User-supplied category; keeps the group and bill flag it replaced."""
    category: str
    group: CategoryGroup
    is_bill: bool

    confidence: ClassVar[float] = 1.0
    reason: ClassVar[ConfidenceReason] = ConfidenceReason.USER_OVERRIDE

    @property
    def rule_id(self) -> str:
        return PIPELINE_CONFIG["rule_ids"]["override"]


@dataclass(frozen=True)
class Unclassified:
    """No rule or fallback entry applied."""
    category: ClassVar[str] = NEEDS_REVIEW_CATEGORY
    group: ClassVar[CategoryGroup] = CategoryGroup.VARIABLE
    is_bill: ClassVar[bool] = False
    confidence: ClassVar[float] = 0.0
    reason: ClassVar[ConfidenceReason] = ConfidenceReason.NONE
    rule_id: ClassVar[str] = ""


UNCLASSIFIED = Unclassified()

Decision = Union[RuleMatch, FallbackMatch, FuzzyMatch, OverrideMatch, Unclassified]
