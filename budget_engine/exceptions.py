"""
Exception hierarchy for the Budget Engine.
"""


class BudgetEngineError(Exception):
    """Base class for all Budget Engine errors."""
    pass


class ConfigurationError(BudgetEngineError):
    """Raised when rule or exclusion configuration is missing or malformed."""
    pass


class NoValidRowsError(BudgetEngineError):
    """Raised when an import yields no usable transaction rows."""
    pass
