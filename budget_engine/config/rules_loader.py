"""
Category rule and exclusion rule loading.

Rules are read either from the built-in pattern tables or from JSON files and
turned into immutable objects. Loaders are memoised so each rule set is built
once per process; the results are read-only and can be shared between
concurrent pipeline runs.

Example rules file:
    {
        "rules": [
            {"id": "netflix", "pattern": "netflix", "category": "Streaming",
             "group": "required_bill", "is_bill": true, "confidence": 0.95}
        ]
    }

Example exclusion file:
    {
        "internal_transfer_types": ["Pot transfer"],
        "internal_transfer_name_patterns": ["savings pot"],
        "exclude_zero_amount": true
    }
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Pattern, Tuple, Union

from ..exceptions import ConfigurationError
from ..patterns.default_rules import DEFAULT_CATEGORY_RULES, DEFAULT_EXCLUSION_RULES


class CategoryGroup(Enum):
    """Budget group a category belongs to."""
    REQUIRED_BILL = "required_bill"
    VARIABLE = "variable"


def _parse_group(value: Any, rule_id: str) -> CategoryGroup:
    if isinstance(value, CategoryGroup):
        return value
    try:
        return CategoryGroup(value)
    except ValueError:
        allowed = ", ".join(g.value for g in CategoryGroup)
        raise ConfigurationError(
            f"Rule '{rule_id}': unknown group {value!r} (expected one of: {allowed})"
        ) from None


@dataclass(frozen=True)
class Rule:
    """A single ordered categorization rule."""
    id: str
    pattern: str
    category: str
    group: CategoryGroup
    is_bill: bool
    confidence: float
    regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            compiled = re.compile(self.pattern, re.IGNORECASE)
        except re.error as e:
            raise ConfigurationError(
                f"Rule '{self.id}': invalid pattern {self.pattern!r}: {e}"
            ) from e
        object.__setattr__(self, "regex", compiled)

    def matches(self, payee_normalized: str) -> bool:
        """Check whether this rule's pattern matches a normalized payee."""
        return self.regex.search(payee_normalized) is not None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Rule":
        """
        Build a rule from its JSON representation.

        Args:
            raw: Mapping with id, pattern, category, group, is_bill, confidence

        Returns:
            Validated Rule

        Raises:
            ConfigurationError: If a field is missing or has the wrong type
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Rule entries must be objects, got {type(raw).__name__}")

        rule_id = raw.get("id")
        if not isinstance(rule_id, str) or not rule_id:
            raise ConfigurationError(f"Rule is missing a string 'id': {dict(raw)!r}")

        for key in ("pattern", "category"):
            value = raw.get(key)
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"Rule '{rule_id}': '{key}' must be a non-empty string")

        is_bill = raw.get("is_bill", raw.get("isBill"))
        if not isinstance(is_bill, bool):
            raise ConfigurationError(f"Rule '{rule_id}': 'is_bill' must be true or false")

        confidence = raw.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ConfigurationError(f"Rule '{rule_id}': 'confidence' must be a number")
        if not 0.0 <= confidence <= 1.0:
            raise ConfigurationError(
                f"Rule '{rule_id}': confidence {confidence} outside [0, 1]"
            )

        return cls(
            id=rule_id,
            pattern=raw["pattern"],
            category=raw["category"],
            group=_parse_group(raw.get("group"), rule_id),
            is_bill=is_bill,
            confidence=float(confidence),
        )


@dataclass(frozen=True)
class CategoryRules:
    """Ordered, immutable rule set. Order is preserved exactly as supplied."""
    rules: Tuple[Rule, ...] = ()

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @classmethod
    def from_dicts(cls, raw_rules: Iterable[Mapping[str, Any]]) -> "CategoryRules":
        """Build a rule set from raw rule mappings, keeping their order."""
        rules = []
        seen_ids = set()
        for raw in raw_rules:
            rule = Rule.from_dict(raw)
            if rule.id in seen_ids:
                raise ConfigurationError(f"Duplicate rule id '{rule.id}'")
            seen_ids.add(rule.id)
            rules.append(rule)
        return cls(rules=tuple(rules))


@dataclass(frozen=True)
class ExclusionRules:
    """Internal-transfer and zero-amount exclusion settings."""
    internal_transfer_types: FrozenSet[str] = frozenset()
    internal_transfer_name_patterns: Tuple[str, ...] = ()
    exclude_zero_amount: bool = True

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ExclusionRules":
        """
        Build exclusion settings from their JSON representation.

        Missing lists default to empty and ``exclude_zero_amount`` defaults
        to True; present values must have the right types.
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"Exclusion configuration must be an object, got {type(raw).__name__}"
            )

        types = _string_list(raw.get("internal_transfer_types", []), "internal_transfer_types")
        patterns = _string_list(
            raw.get("internal_transfer_name_patterns", []), "internal_transfer_name_patterns"
        )

        exclude_zero = raw.get("exclude_zero_amount", True)
        if not isinstance(exclude_zero, bool):
            raise ConfigurationError("'exclude_zero_amount' must be true or false")

        return cls(
            internal_transfer_types=frozenset(types),
            internal_transfer_name_patterns=tuple(p.lower() for p in patterns if p),
            exclude_zero_amount=exclude_zero,
        )


def _string_list(value: Any, key: str) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return tuple(value)


def _read_json(path: Union[str, Path], what: str) -> Any:
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"{what} file not found: {path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{what} file is not valid JSON: {path}: {e}") from e


@lru_cache(maxsize=None)
def load_category_rules(path: Union[str, Path]) -> CategoryRules:
    """
    Load an ordered rule set from a JSON file.

    Args:
        path: Path to a JSON file holding ``{"rules": [...]}`` or a bare list

    Returns:
        Immutable CategoryRules, cached per path for the process lifetime

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    data = _read_json(path, "Category rules")

    if isinstance(data, Mapping):
        if "rules" not in data:
            raise ConfigurationError(f"Category rules file has no 'rules' list: {path}")
        data = data["rules"]

    if not isinstance(data, list):
        raise ConfigurationError(f"Category rules must be a list: {path}")

    return CategoryRules.from_dicts(data)


@lru_cache(maxsize=None)
def load_exclusion_rules(path: Union[str, Path]) -> ExclusionRules:
    """
    Load exclusion settings from a JSON file.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    return ExclusionRules.from_dict(_read_json(path, "Exclusion rules"))


@lru_cache(maxsize=None)
def get_default_category_rules() -> CategoryRules:
    """Return the built-in rule set, built once per process."""
    return CategoryRules.from_dicts(DEFAULT_CATEGORY_RULES)


@lru_cache(maxsize=None)
def get_default_exclusion_rules() -> ExclusionRules:
    """Return the built-in exclusion settings, built once per process."""
    return ExclusionRules.from_dict(DEFAULT_EXCLUSION_RULES)


def resolve_rules(
    category_rules_path: Optional[Union[str, Path]] = None,
    exclusion_rules_path: Optional[Union[str, Path]] = None,
) -> Tuple[CategoryRules, ExclusionRules]:
    """Load rule sets from the given paths, falling back to the built-in tables."""
    category_rules = (
        load_category_rules(category_rules_path)
        if category_rules_path else get_default_category_rules()
    )
    exclusion_rules = (
        load_exclusion_rules(exclusion_rules_path)
        if exclusion_rules_path else get_default_exclusion_rules()
    )
    return category_rules, exclusion_rules
