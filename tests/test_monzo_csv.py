"""
Tests for the Monzo CSV export loader.
"""

import os
import tempfile
import unittest
from datetime import date

from budget_engine.exceptions import NoValidRowsError
from budget_engine.ingest.monzo_csv import (
    generate_transaction_id,
    load_monzo_csv_contents,
    load_monzo_csv_files,
    parse_amount,
    parse_monzo_csv,
    parse_monzo_date,
)
from budget_engine.ingest.transaction import Direction

HEADER = "Transaction ID,Date,Time,Type,Name,Category,Amount,Notes and #tags\n"

PERSONAL = HEADER + (
    "tx_1,15/01/2024,08:00:00,Direct Debit,NETFLIX.COM,Entertainment,-9.99,\n"
    "tx_2,2024-01-17,10:00:00,Card payment,Tesco,Groceries,-5.00,\n"
    "tx_3,31/02/2024,10:00:00,Card payment,Tesco,Groceries,-5.00,\n"
    ",20/01/2024,12:00:00,Faster payment,Employer Ltd,Income,\"1,250.00\",January salary\n"
    "tx_5,21/01/2024,12:00:00,Card payment,Corner Shop,Groceries,,\n"
)

JOINT = HEADER + "j_1,02/02/2024,09:00:00,Card payment,Sainsburys,Groceries,-42.10,\n"


class TestFieldParsing(unittest.TestCase):
    """Test cases for date and amount parsing."""

    def test_dates(self):
        self.assertEqual(parse_monzo_date("15/01/2024"), date(2024, 1, 15))
        self.assertIsNone(parse_monzo_date("2024-01-17"))
        self.assertIsNone(parse_monzo_date("31/02/2024"))
        self.assertIsNone(parse_monzo_date(""))
        self.assertIsNone(parse_monzo_date(None))

    def test_amounts(self):
        self.assertEqual(parse_amount("-9.99"), -9.99)
        self.assertEqual(parse_amount("1,250.00"), 1250.0)
        self.assertEqual(parse_amount(""), 0.0)
        self.assertEqual(parse_amount("abc"), 0.0)
        self.assertEqual(parse_amount("nan"), 0.0)
        self.assertEqual(parse_amount(None), 0.0)


class TestParseMonzoCsv(unittest.TestCase):
    """Test cases for parsing a single export."""

    def setUp(self):
        self.rows = parse_monzo_csv(PERSONAL, "personal.csv", "Personal")
        self.by_name = {t.name: t for t in self.rows}

    def test_bad_dates_are_skipped(self):
        self.assertEqual(len(self.rows), 3)
        self.assertNotIn("Tesco", self.by_name)

    def test_fields(self):
        netflix = self.by_name["NETFLIX.COM"]
        self.assertEqual(netflix.id, "tx_1")
        self.assertEqual(netflix.date, date(2024, 1, 15))
        self.assertEqual(netflix.month_key, "2024-01")
        self.assertEqual(netflix.day, 15)
        self.assertEqual(netflix.type, "Direct Debit")
        self.assertEqual(netflix.provider_category, "Entertainment")
        self.assertEqual(netflix.payee_normalized, "netflix com")
        self.assertEqual(netflix.amount, -9.99)
        self.assertEqual(netflix.amount_abs, 9.99)
        self.assertEqual(netflix.direction, Direction.OUTFLOW)
        self.assertEqual(netflix.account_label, "Personal")
        self.assertEqual(netflix.source_file, "personal.csv")

    def test_inflow_with_notes(self):
        salary = self.by_name["Employer Ltd"]
        self.assertEqual(salary.amount, 1250.0)
        self.assertEqual(salary.direction, Direction.INFLOW)
        self.assertEqual(salary.notes, "January salary")

    def test_generated_ids_are_deterministic(self):
        salary = self.by_name["Employer Ltd"]
        self.assertTrue(salary.id.startswith("gen_"))
        again = parse_monzo_csv(PERSONAL, "personal.csv", "Personal")
        self.assertEqual([t.id for t in again], [t.id for t in self.rows])

        other_file = {t.name: t for t in parse_monzo_csv(PERSONAL, "other.csv", "Personal")}
        self.assertNotEqual(other_file["Employer Ltd"].id, salary.id)

    def test_generated_id_format(self):
        row = {"Date": "01/01/2024", "Name": "Shop", "Amount": "-1.00"}
        generated = generate_transaction_id("a.csv", 1, row)
        self.assertEqual(len(generated), len("gen_") + 16)
        self.assertEqual(generated, generate_transaction_id("a.csv", 1, dict(row)))

    def test_missing_amount_is_zero(self):
        self.assertEqual(self.by_name["Corner Shop"].amount, 0.0)

    def test_bytes_with_bom(self):
        rows = parse_monzo_csv(("\ufeff" + JOINT).encode("utf-8"), "joint.csv", "Joint")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].id, "j_1")

    def test_text_with_bom(self):
        rows = parse_monzo_csv("\ufeff" + JOINT, "joint.csv", "Joint")
        self.assertEqual(rows[0].id, "j_1")

    def test_plain_notes_column(self):
        content = "Transaction ID,Date,Name,Amount,Notes\nn1,01/03/2024,Shop,-1.00,bits\n"
        rows = parse_monzo_csv(content, "old.csv", "Personal")
        self.assertEqual(rows[0].notes, "bits")


class TestLoadMonzoCsv(unittest.TestCase):
    """Test cases for multi-file loading."""

    def test_second_source_is_joint(self):
        rows = load_monzo_csv_contents([("personal.csv", PERSONAL), ("joint.csv", JOINT)])
        self.assertEqual(len(rows), 4)
        self.assertEqual({t.account_label for t in rows if t.source_file == "personal.csv"}, {"Personal"})
        self.assertEqual([t.account_label for t in rows if t.source_file == "joint.csv"], ["Joint"])

    def test_no_sources(self):
        with self.assertRaises(NoValidRowsError):
            load_monzo_csv_contents([])

    def test_no_valid_rows(self):
        content = HEADER + "tx_2,2024-01-17,10:00:00,Card payment,Tesco,Groceries,-5.00,\n"
        with self.assertRaises(NoValidRowsError):
            load_monzo_csv_contents([("bad.csv", content)])

    def test_files_on_disk(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "personal.csv")
            with open(path, "w", encoding="utf-8") as f:
                f.write(PERSONAL)

            rows = load_monzo_csv_files([path, os.path.join(tmp, "missing.csv")])
            self.assertEqual(len(rows), 3)
            self.assertEqual(rows[0].source_file, "personal.csv")

            with self.assertRaises(NoValidRowsError):
                load_monzo_csv_files([os.path.join(tmp, "missing.csv")])


if __name__ == "__main__":
    unittest.main()
