"""
Budget Pipeline.

Runs a transaction batch through every stage in order:
exclusion -> categorization -> fuzzy resolution -> payee overrides ->
bill detection. Each stage consumes the complete output of the previous one
and returns new records; summaries are built on demand from the result.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .bills.bill_detector import BillDetector, BillOverride, build_bill_overrides
from .categorisation.engine import TransactionCategorizer, apply_payee_overrides
from .categorisation.preprocess import apply_exclusions
from .config.pipeline_config import FALLBACK_CATEGORY_MAP
from .config.rules_loader import (
    CategoryRules,
    ExclusionRules,
    get_default_category_rules,
    get_default_exclusion_rules,
    resolve_rules,
)
from .exceptions import ConfigurationError, NoValidRowsError
from .ingest.monzo_csv import load_monzo_csv_contents
from .ingest.transaction import Transaction
from .summary.summary_builder import (
    BillSummary,
    Timeframe,
    VariableCategorySummary,
    build_bills_summary,
    build_variable_summary,
    total_monthly,
    weekly_budget,
)
from .money import round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable inputs shared by every run of a pipeline."""
    category_rules: CategoryRules = field(default_factory=get_default_category_rules)
    exclusion_rules: ExclusionRules = field(default_factory=get_default_exclusion_rules)
    fallback_map: Mapping[str, Tuple] = field(default_factory=lambda: FALLBACK_CATEGORY_MAP)
    fuzzy_workers: int = 1

    @classmethod
    def from_paths(
        cls,
        category_rules_path: Optional[Union[str, Path]] = None,
        exclusion_rules_path: Optional[Union[str, Path]] = None,
        fuzzy_workers: int = 1,
    ) -> "PipelineConfig":
        """Build a config from JSON rule files; missing paths use the built-in rules."""
        category_rules, exclusion_rules = resolve_rules(category_rules_path, exclusion_rules_path)
        return cls(
            category_rules=category_rules,
            exclusion_rules=exclusion_rules,
            fuzzy_workers=fuzzy_workers,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """
        Build a config from environment variables.

        BUDGET_CATEGORY_RULES and BUDGET_EXCLUSION_RULES are optional JSON
        paths; BUDGET_FUZZY_WORKERS is the fuzzy-pass thread count.

        Raises:
            ConfigurationError: If a rules file is unusable or the worker count is invalid
        """
        env = os.environ if environ is None else environ

        raw_workers = env.get("BUDGET_FUZZY_WORKERS", "1")
        try:
            fuzzy_workers = int(raw_workers)
        except ValueError:
            raise ConfigurationError(f"BUDGET_FUZZY_WORKERS must be an integer, got {raw_workers!r}") from None
        if fuzzy_workers < 1:
            raise ConfigurationError(f"BUDGET_FUZZY_WORKERS must be at least 1, got {fuzzy_workers}")

        return cls.from_paths(
            category_rules_path=env.get("BUDGET_CATEGORY_RULES") or None,
            exclusion_rules_path=env.get("BUDGET_EXCLUSION_RULES") or None,
            fuzzy_workers=fuzzy_workers,
        )


@dataclass
class ImportStats:
    """Statistics for one pipeline run."""
    raw_count: int = 0
    spend_count: int = 0
    latest_month: str = ""
    source_files: List[str] = field(default_factory=list)
    transactions_stored: int = 0

    def to_dict(self) -> Dict:
        return {
            "raw_count": self.raw_count,
            "spend_count": self.spend_count,
            "latest_month": self.latest_month,
            "source_files": list(self.source_files),
            "transactions_stored": self.transactions_stored,
        }


@dataclass(frozen=True)
class PipelineResult:
    """Processed batch plus the bill overrides it was computed with."""
    transactions: Tuple[Transaction, ...]
    stats: ImportStats
    bill_overrides: Mapping[str, BillOverride] = field(default_factory=dict)

    def bills_summary(self) -> List[BillSummary]:
        return build_bills_summary(self.transactions, self.bill_overrides)

    def variable_summary(
        self, timeframe: Union[str, Timeframe, None] = Timeframe.ALL
    ) -> List[VariableCategorySummary]:
        return build_variable_summary(self.transactions, timeframe)

    def with_payee_overrides(self, payee_overrides: Mapping[str, str]) -> "PipelineResult":
        """
        Re-apply category overrides without re-running rule or fuzzy matching.

        Overrides keep each row's group and bill flag, so bill state carries over.
        """
        return PipelineResult(
            transactions=tuple(apply_payee_overrides(self.transactions, payee_overrides)),
            stats=self.stats,
            bill_overrides=self.bill_overrides,
        )

    def to_dict(self, timeframe: Union[str, Timeframe, None] = Timeframe.ALL) -> Dict:
        """JSON-ready view of the batch and both summaries."""
        tf = Timeframe.parse(timeframe)
        bills = self.bills_summary()
        categories = self.variable_summary(tf)
        return {
            "stats": self.stats.to_dict(),
            "transactions": [txn.to_dict() for txn in self.transactions],
            "bills": {
                "bills": [bill.to_dict() for bill in bills],
                "total_monthly": round_money(total_monthly(bills)),
            },
            "variable": {
                "timeframe": tf.value,
                "categories": [category.to_dict() for category in categories],
                "weekly_budget": round_money(weekly_budget(categories)),
            },
        }


class BudgetPipeline:
    """Runs transaction batches through the budget pipeline."""

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Rule sets and settings; defaults to the built-in rules
        """
        self.config = config or PipelineConfig()
        self.categorizer = TransactionCategorizer(
            category_rules=self.config.category_rules,
            fallback_map=self.config.fallback_map,
            fuzzy_workers=self.config.fuzzy_workers,
        )
        self.bill_detector = BillDetector()

    def run(
        self,
        transactions: Iterable[Transaction],
        payee_overrides: Optional[Mapping[str, str]] = None,
        bill_overrides: Optional[Union[Iterable, Mapping[str, BillOverride]]] = None,
    ) -> PipelineResult:
        """
        Process a batch.

        Args:
            transactions: Parsed transaction records
            payee_overrides: Payee key -> category
            bill_overrides: BillOverride objects or raw override mappings

        Returns:
            PipelineResult with every derived field populated

        Raises:
            NoValidRowsError: If the batch is empty
            ValueError: If an override is invalid
        """
        batch = list(transactions)
        if not batch:
            raise NoValidRowsError("No transactions to process")

        overrides = build_bill_overrides(bill_overrides)
        logger.info("Starting pipeline run over %d transactions", len(batch))

        rows = apply_exclusions(batch, self.config.exclusion_rules)
        rows = self.categorizer.categorize_batch(rows)
        rows = apply_payee_overrides(rows, payee_overrides)
        rows = self.bill_detector.apply_bill_status(rows, overrides)

        stats = ImportStats(
            raw_count=len(batch),
            spend_count=sum(1 for txn in rows if txn.is_spend),
            latest_month=max((txn.month_key for txn in rows), default=""),
            source_files=list(dict.fromkeys(txn.source_file for txn in batch if txn.source_file)),
            transactions_stored=len(rows),
        )
        logger.info(
            "Pipeline complete: %d rows in, %d stored, %d spend, latest month %s",
            stats.raw_count, stats.transactions_stored, stats.spend_count, stats.latest_month or "-"
        )
        return PipelineResult(transactions=tuple(rows), stats=stats, bill_overrides=overrides)

    def run_csv(
        self,
        sources: Sequence[Tuple[str, Union[str, bytes]]],
        payee_overrides: Optional[Mapping[str, str]] = None,
        bill_overrides: Optional[Union[Iterable, Mapping[str, BillOverride]]] = None,
    ) -> PipelineResult:
        """Parse Monzo CSV exports ((file_name, content) pairs) and process them."""
        return self.run(load_monzo_csv_contents(sources), payee_overrides, bill_overrides)
