"""
Tests for category rule and exclusion rule loading.
"""

import json
import os
import tempfile
import unittest

from budget_engine.config.rules_loader import (
    CategoryGroup,
    CategoryRules,
    ExclusionRules,
    get_default_category_rules,
    get_default_exclusion_rules,
    load_category_rules,
    load_exclusion_rules,
)
from budget_engine.exceptions import BudgetEngineError, ConfigurationError


NETFLIX_RULE = {
    "id": "netflix",
    "pattern": "netflix",
    "category": "Streaming",
    "group": "required_bill",
    "is_bill": True,
    "confidence": 0.95,
}


class TestCategoryRulesLoader(unittest.TestCase):
    """Test cases for loading rule files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, payload):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as f:
            if isinstance(payload, str):
                f.write(payload)
            else:
                json.dump(payload, f)
        return path

    def test_loads_rules_object(self):
        rules = load_category_rules(self.write("rules.json", {"rules": [NETFLIX_RULE]}))
        self.assertEqual(len(rules), 1)
        rule = rules.rules[0]
        self.assertEqual(rule.id, "netflix")
        self.assertEqual(rule.group, CategoryGroup.REQUIRED_BILL)
        self.assertTrue(rule.is_bill)
        self.assertTrue(rule.matches("netflix com"))

    def test_loads_bare_list_and_keeps_order(self):
        second = dict(NETFLIX_RULE, id="zz_first_in_file", pattern="spotify")
        third = dict(NETFLIX_RULE, id="aa_last_in_file", pattern="disney")
        rules = load_category_rules(self.write("list.json", [second, NETFLIX_RULE, third]))
        self.assertEqual([r.id for r in rules], ["zz_first_in_file", "netflix", "aa_last_in_file"])

    def test_pattern_is_case_insensitive(self):
        rules = load_category_rules(self.write("rules.json", [dict(NETFLIX_RULE, pattern="NETFLIX")]))
        self.assertTrue(rules.rules[0].matches("netflix com"))

    def test_result_is_cached_per_path(self):
        path = self.write("rules.json", {"rules": [NETFLIX_RULE]})
        self.assertIs(load_category_rules(path), load_category_rules(path))

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(os.path.join(self.tmp.name, "nope.json"))

    def test_invalid_json(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", "{not json"))

    def test_missing_rules_key(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", {"rule": []}))

    def test_invalid_regex(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_category_rules(self.write("bad.json", [dict(NETFLIX_RULE, pattern="(netflix")]))
        self.assertIn("netflix", str(ctx.exception))

    def test_unknown_group(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", [dict(NETFLIX_RULE, group="fixed")]))

    def test_confidence_out_of_range(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", [dict(NETFLIX_RULE, confidence=1.5)]))

    def test_bill_flag_must_be_boolean(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", [dict(NETFLIX_RULE, is_bill="yes")]))

    def test_duplicate_rule_ids(self):
        with self.assertRaises(ConfigurationError):
            load_category_rules(self.write("bad.json", [NETFLIX_RULE, NETFLIX_RULE]))

    def test_configuration_error_is_engine_error(self):
        self.assertTrue(issubclass(ConfigurationError, BudgetEngineError))


class TestExclusionRulesLoader(unittest.TestCase):
    """Test cases for loading exclusion files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, payload):
        path = os.path.join(self.tmp.name, "exclusions.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        return path

    def test_loads_and_lowercases_patterns(self):
        rules = load_exclusion_rules(self.write({
            "internal_transfer_types": ["Pot transfer"],
            "internal_transfer_name_patterns": ["Savings POT"],
            "exclude_zero_amount": False,
        }))
        self.assertEqual(rules.internal_transfer_types, frozenset({"Pot transfer"}))
        self.assertEqual(rules.internal_transfer_name_patterns, ("savings pot",))
        self.assertFalse(rules.exclude_zero_amount)

    def test_zero_amount_exclusion_defaults_on(self):
        rules = ExclusionRules.from_dict({})
        self.assertTrue(rules.exclude_zero_amount)

    def test_wrong_types(self):
        with self.assertRaises(ConfigurationError):
            ExclusionRules.from_dict({"internal_transfer_types": "Pot transfer"})
        with self.assertRaises(ConfigurationError):
            ExclusionRules.from_dict({"exclude_zero_amount": "yes"})
        with self.assertRaises(ConfigurationError):
            ExclusionRules.from_dict(["not", "an", "object"])

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_exclusion_rules(os.path.join(self.tmp.name, "missing.json"))


class TestDefaultRules(unittest.TestCase):
    """Test cases for the built-in rule tables."""

    def test_defaults_are_built_once(self):
        self.assertIs(get_default_category_rules(), get_default_category_rules())
        self.assertIs(get_default_exclusion_rules(), get_default_exclusion_rules())

    def test_default_rules_are_valid(self):
        rules = get_default_category_rules()
        self.assertIsInstance(rules, CategoryRules)
        self.assertGreater(len(rules), 0)
        for rule in rules:
            self.assertGreaterEqual(rule.confidence, 0.0)
            self.assertLessEqual(rule.confidence, 1.0)

    def test_default_exclusions(self):
        rules = get_default_exclusion_rules()
        self.assertIn("Pot transfer", rules.internal_transfer_types)
        self.assertTrue(rules.exclude_zero_amount)


if __name__ == "__main__":
    unittest.main()
