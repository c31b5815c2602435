"""
Summary Module for the Budget Engine.

Builds the bill summary and the variable spending summary from processed
transactions.
"""

from .summary_builder import (
    Timeframe,
    BillSummary,
    VariableCategorySummary,
    build_bills_summary,
    build_variable_summary,
    filter_variable_spend,
    transactions_by_category,
    total_monthly,
    weekly_budget,
)
from ..money import round_money

__all__ = [
    "Timeframe",
    "BillSummary",
    "VariableCategorySummary",
    "build_bills_summary",
    "build_variable_summary",
    "filter_variable_spend",
    "transactions_by_category",
    "total_monthly",
    "weekly_budget",
    "round_money",
]
