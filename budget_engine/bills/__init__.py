"""
Bill Detection Module for the Budget Engine.

Identifies recurring bills and their lifecycle status from transaction history.
"""

from .bill_detector import (
    BillDetector,
    BillAction,
    BillOverride,
    PayeeStats,
    build_bill_overrides,
    resolve_bill_status,
    median_day,
    latest_month,
)

__all__ = [
    "BillDetector",
    "BillAction",
    "BillOverride",
    "PayeeStats",
    "build_bill_overrides",
    "resolve_bill_status",
    "median_day",
    "latest_month",
]
