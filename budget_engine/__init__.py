"""
Budget Engine.

Categorizes bank transactions, detects recurring bills and summarizes
variable spending for budgeting.

Usage:
    from budget_engine import run_budget_pipeline

    with open("monzo.csv", "rb") as f:
        result = run_budget_pipeline([("monzo.csv", f.read())], timeframe="last_3")
    print(result["bills"]["total_monthly"])
"""

from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import BudgetEngineError, ConfigurationError, NoValidRowsError
from .config import (
    PIPELINE_CONFIG,
    NEEDS_REVIEW_CATEGORY,
    CategoryGroup,
    Rule,
    CategoryRules,
    ExclusionRules,
    load_category_rules,
    load_exclusion_rules,
    get_default_category_rules,
    get_default_exclusion_rules,
)
# categorisation must load before ingest; Transaction depends on its decisions
from .categorisation import (
    TransactionCategorizer,
    ConfidenceReason,
    RuleMatch,
    FallbackMatch,
    FuzzyMatch,
    OverrideMatch,
    Unclassified,
    normalize_payee,
    sequence_ratio,
)
from .ingest import Transaction, BillStatus, Direction, load_monzo_csv_contents, load_monzo_csv_files
from .bills import BillDetector, BillAction, BillOverride, resolve_bill_status
from .summary import (
    Timeframe,
    BillSummary,
    VariableCategorySummary,
    build_bills_summary,
    build_variable_summary,
    round_money,
)
from .pipeline import BudgetPipeline, PipelineConfig, PipelineResult, ImportStats


def run_budget_pipeline(
    sources: Sequence[Tuple[str, Union[str, bytes]]],
    payee_overrides: Optional[Mapping[str, str]] = None,
    bill_overrides: Optional[Iterable] = None,
    timeframe: str = "all",
    config: Optional[PipelineConfig] = None,
) -> Dict:
    """
    Process Monzo CSV exports and return a JSON-ready result.

    Args:
        sources: (file_name, content) pairs; the first is the personal account
        payee_overrides: Payee key -> category
        bill_overrides: Bill override mappings (payee_normalized, action, custom values)
        timeframe: Variable summary window: "this_month", "last_3" or "all"
        config: Pipeline configuration; defaults to the built-in rules

    Returns:
        Dictionary with stats, transactions, bills and variable sections

    Raises:
        NoValidRowsError: If the sources hold no usable rows
        ValueError: If the timeframe or an override is invalid
    """
    tf = Timeframe.parse(timeframe)
    pipeline = BudgetPipeline(config)
    result = pipeline.run_csv(sources, payee_overrides, bill_overrides)
    return result.to_dict(tf)


__all__ = [
    "run_budget_pipeline",
    # Errors
    "BudgetEngineError",
    "ConfigurationError",
    "NoValidRowsError",
    # Configuration
    "PIPELINE_CONFIG",
    "NEEDS_REVIEW_CATEGORY",
    "CategoryGroup",
    "Rule",
    "CategoryRules",
    "ExclusionRules",
    "load_category_rules",
    "load_exclusion_rules",
    "get_default_category_rules",
    "get_default_exclusion_rules",
    # Categorisation
    "TransactionCategorizer",
    "ConfidenceReason",
    "RuleMatch",
    "FallbackMatch",
    "FuzzyMatch",
    "OverrideMatch",
    "Unclassified",
    "normalize_payee",
    "sequence_ratio",
    # Records and ingest
    "Transaction",
    "BillStatus",
    "Direction",
    "load_monzo_csv_contents",
    "load_monzo_csv_files",
    # Bills
    "BillDetector",
    "BillAction",
    "BillOverride",
    "resolve_bill_status",
    # Summaries
    "Timeframe",
    "BillSummary",
    "VariableCategorySummary",
    "build_bills_summary",
    "build_variable_summary",
    "round_money",
    # Pipeline
    "BudgetPipeline",
    "PipelineConfig",
    "PipelineResult",
    "ImportStats",
]

__version__ = "1.0.0"
