"""
Configuration module for the Budget Engine.

Holds the pipeline thresholds, the provider fallback table and the
category/exclusion rule loaders.
"""

from .pipeline_config import (
    PIPELINE_CONFIG,
    NEEDS_REVIEW_CATEGORY,
    DIRECT_DEBIT_TYPES,
    FALLBACK_CATEGORY_MAP,
)
from .rules_loader import (
    CategoryGroup,
    Rule,
    CategoryRules,
    ExclusionRules,
    load_category_rules,
    load_exclusion_rules,
    get_default_category_rules,
    get_default_exclusion_rules,
    resolve_rules,
)

__all__ = [
    "PIPELINE_CONFIG",
    "NEEDS_REVIEW_CATEGORY",
    "DIRECT_DEBIT_TYPES",
    "FALLBACK_CATEGORY_MAP",
    "CategoryGroup",
    "Rule",
    "CategoryRules",
    "ExclusionRules",
    "load_category_rules",
    "load_exclusion_rules",
    "get_default_category_rules",
    "get_default_exclusion_rules",
    "resolve_rules",
]
