"""
Ingest Module for the Budget Engine.

Transaction records and the Monzo CSV export loader.
"""

from .transaction import Transaction, BillStatus, Direction
from .monzo_csv import (
    parse_monzo_csv,
    parse_monzo_date,
    parse_amount,
    load_monzo_csv_contents,
    load_monzo_csv_files,
)

__all__ = [
    "Transaction",
    "BillStatus",
    "Direction",
    "parse_monzo_csv",
    "parse_monzo_date",
    "parse_amount",
    "load_monzo_csv_contents",
    "load_monzo_csv_files",
]
