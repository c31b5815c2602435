"""
Pipeline configuration for the Budget Engine.
Contains confidence bands, recurrence thresholds and the provider fallback table.
"""

# Category assigned when neither a rule nor the fallback table matches
NEEDS_REVIEW_CATEGORY = "Unmapped - Needs Review"

# Pipeline Configuration
PIPELINE_CONFIG = {
    # Confidence bands used by the fuzzy payee resolver
    "confidence_bands": {
        # Pass-1 results at or above this seed fuzzy propagation
        "known_payee_min": 0.90,
        # Pass-1 results below this are fuzzy candidates; [0.70, 0.90) are left alone
        "fuzzy_candidate_max": 0.70,
    },

    # Fuzzy payee resolution
    "fuzzy": {
        "min_similarity": 0.88,
        "confidence_floor": 0.70,
        "confidence_ceiling": 0.85,
        "rule_id_prefix": "fuzzy:",
    },

    # Recurrence signal for bill candidacy
    "recurrence": {
        "min_months": 2,
        "min_transactions": 2,
    },

    # Variable spending timeframes
    "timeframes": {
        "last_n_months": 3,
        "days_per_week": 7,
    },

    # Rule ids written for non-rule decisions
    "rule_ids": {
        "fallback": "fallback",
        "override": "payee_override",
    },

    # Account labels by file position (first file, every later file)
    "account_labels": ("Personal", "Joint"),
}

# Provider transaction types that indicate a recurring debit when the payee recurs
DIRECT_DEBIT_TYPES = frozenset({
    "Direct Debit",
    "Faster payment",
    "Bacs (Direct Credit)",
})

# Provider (Monzo) category -> (category, group, is_bill, confidence)
# NOTE: confidences are deliberately not uniform; all sit below the fuzzy
# candidate boundary of 0.70 so fallback rows stay eligible for fuzzy resolution.
FALLBACK_CATEGORY_MAP = {
    "Groceries": ("Groceries (non-Spar)", "variable", False, 0.55),
    "Entertainment": ("Entertainment & Activities", "variable", False, 0.55),
    "Transport": ("Transport", "variable", False, 0.55),
    "Shopping": ("Shopping (general)", "variable", False, 0.55),
    "Finances": ("Debt Repayments / Finance Plans", "required_bill", True, 0.5),
    "General": ("Other - General", "variable", False, 0.45),
}
