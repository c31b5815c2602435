"""
Monzo CSV export loader.

Turns one or more Monzo CSV exports into a batch of Transaction records.
The first source is labelled as the personal account and every later source
as the joint account.
"""

import csv
import hashlib
import io
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..config.pipeline_config import PIPELINE_CONFIG
from ..exceptions import NoValidRowsError
from .transaction import Transaction

logger = logging.getLogger(__name__)

MONZO_DATE_FORMAT = "%d/%m/%Y"
NOTES_COLUMNS = ("Notes and #tags", "Notes")


def parse_monzo_date(value: Optional[str]) -> Optional[date]:
    """Parse a DD/MM/YYYY date; returns None when the value is not a valid date."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), MONZO_DATE_FORMAT).date()
    except ValueError:
        return None


def parse_amount(value: Optional[str]) -> float:
    """Parse a signed amount; missing or garbled values become 0.0."""
    if value is None:
        return 0.0
    try:
        amount = float(str(value).replace(",", "").strip())
    except ValueError:
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def generate_transaction_id(file_name: str, row_number: int, raw: Dict) -> str:
    """Deterministic id for rows exported without a Transaction ID."""
    fingerprint = "|".join([
        file_name,
        str(row_number),
        raw.get("Date") or "",
        raw.get("Time") or "",
        raw.get("Name") or "",
        raw.get("Amount") or "",
    ])
    return "gen_" + hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:16]


def account_label_for(index: int) -> str:
    personal, joint = PIPELINE_CONFIG["account_labels"]
    return personal if index == 0 else joint


def parse_monzo_csv(
    content: Union[str, bytes],
    file_name: str,
    account_label: str,
) -> List[Transaction]:
    """
    Parse a single Monzo CSV export.

    Rows with a missing or invalid date are skipped.

    Args:
        content: CSV text or raw bytes (UTF-8, optional BOM)
        file_name: Source file name recorded on every row
        account_label: Account label recorded on every row

    Returns:
        List of Transaction records in file order
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    elif content.startswith("\ufeff"):
        content = content[1:]

    reader = csv.DictReader(io.StringIO(content))
    transactions = []
    skipped = 0

    for row_number, raw in enumerate(reader, start=1):
        txn_date = parse_monzo_date(raw.get("Date"))
        if txn_date is None:
            skipped += 1
            logger.debug("Skipping row %d of %s: bad date %r", row_number, file_name, raw.get("Date"))
            continue

        notes = ""
        for column in NOTES_COLUMNS:
            if raw.get(column):
                notes = raw[column]
                break

        transactions.append(Transaction.create(
            id=raw.get("Transaction ID") or generate_transaction_id(file_name, row_number, raw),
            date=txn_date,
            name=raw.get("Name") or "",
            amount=parse_amount(raw.get("Amount")),
            type=raw.get("Type") or "",
            provider_category=raw.get("Category") or "",
            notes=notes,
            account_label=account_label,
            source_file=file_name,
        ))

    logger.info(
        "Parsed %d rows from %s (%s), skipped %d", len(transactions), file_name, account_label, skipped
    )
    return transactions


def load_monzo_csv_contents(sources: Sequence[Tuple[str, Union[str, bytes]]]) -> List[Transaction]:
    """
    Parse in-memory Monzo CSV exports.

    Args:
        sources: (file_name, content) pairs; the first is the personal account

    Returns:
        Combined batch in source order

    Raises:
        NoValidRowsError: If no sources are given or none has a usable row
    """
    if not sources:
        raise NoValidRowsError("No CSV files provided")

    transactions: List[Transaction] = []
    for index, (file_name, content) in enumerate(sources):
        transactions.extend(parse_monzo_csv(content, file_name, account_label_for(index)))

    if not transactions:
        raise NoValidRowsError("No transactions with a valid date found in the CSV files")

    return transactions


def load_monzo_csv_files(paths: Iterable[Union[str, Path]]) -> List[Transaction]:
    """
    Read Monzo CSV exports from disk. Paths that do not exist are skipped.

    Raises:
        NoValidRowsError: If none of the paths exists or none has a usable row
    """
    sources = []
    for path in paths:
        csv_path = Path(path)
        if not csv_path.is_file():
            logger.warning("Skipping missing CSV file: %s", csv_path)
            continue
        sources.append((csv_path.name, csv_path.read_bytes()))

    if not sources:
        raise NoValidRowsError("None of the CSV files could be found")

    return load_monzo_csv_contents(sources)
