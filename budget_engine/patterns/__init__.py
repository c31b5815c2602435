"""
Built-in pattern tables for the Budget Engine.
"""

from .default_rules import DEFAULT_CATEGORY_RULES, DEFAULT_EXCLUSION_RULES

__all__ = [
    "DEFAULT_CATEGORY_RULES",
    "DEFAULT_EXCLUSION_RULES",
]
