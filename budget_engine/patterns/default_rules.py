"""
Built-in categorization rules for the Budget Engine.
Patterns target UK payees as they appear in Monzo CSV exports.

Patterns are regular expressions tested case-insensitively against the
normalized payee key (lower-case, only ``a-z0-9+&`` and single spaces), so
``NETFLIX.COM`` is matched as ``netflix com``.

Rule order is significant: the first matching rule wins.
"""

# Ordered category rules
DEFAULT_CATEGORY_RULES = [
    # Housing
    {
        "id": "housing_rent",
        "pattern": r"\b(rent|letting|lettings|landlord)\b",
        "category": "Rent",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "housing_mortgage",
        "pattern": r"\bmortgage\b|\bnationwide bs\b|\bhalifax mortgage\b",
        "category": "Mortgage",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "council_tax",
        "pattern": r"\bcouncil\b|\bcouncil tax\b",
        "category": "Council Tax",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },

    # Utilities
    {
        "id": "utilities_energy",
        "pattern": r"\b(octopus energy|british gas|edf|eon|e on|ovo|so energy|scottish power)\b",
        "category": "Energy",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "utilities_water",
        "pattern": r"\b(thames water|anglian water|severn trent|united utilities|yorkshire water)\b",
        "category": "Water",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "broadband",
        "pattern": r"\b(virgin media|bt group|bt broadband|sky digital|sky uk|plusnet|hyperoptic|talktalk)\b",
        "category": "Broadband & TV",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.93,
    },
    {
        "id": "mobile_phone",
        "pattern": r"\b(ee limited|ee ltd|vodafone|o2|three|giffgaff|smarty|id mobile)\b",
        "category": "Mobile Phone",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.92,
    },
    {
        "id": "tv_licence",
        "pattern": r"\btv licen[cs]e\b",
        "category": "TV Licence",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },

    # Insurance
    {
        "id": "insurance",
        "pattern": r"\b(insurance|aviva|admiral|direct line|lv|vitality|axa|churchill)\b",
        "category": "Insurance",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.92,
    },

    # Subscriptions
    {
        "id": "streaming_video",
        "pattern": r"\b(netflix|disney plus|disney|now tv|amazon prime|prime video|apple tv)\b",
        "category": "Streaming",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "streaming_music",
        "pattern": r"\b(spotify|apple music|youtube premium|audible)\b",
        "category": "Streaming",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.95,
    },
    {
        "id": "gym",
        "pattern": r"\b(puregym|pure gym|the gym group|david lloyd|nuffield health|better leisure)\b",
        "category": "Gym & Fitness",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.92,
    },

    # Finance plans
    {
        "id": "finance_plans",
        "pattern": r"\b(klarna|clearpay|paypal credit|barclaycard|amex|american express|zopa)\b",
        "category": "Debt Repayments / Finance Plans",
        "group": "required_bill",
        "is_bill": True,
        "confidence": 0.90,
    },

    # Groceries (Spar is tracked separately from the weekly shop)
    {
        "id": "groceries_spar",
        "pattern": r"\bspar\b",
        "category": "Groceries (Spar)",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.95,
    },
    {
        "id": "groceries_supermarket",
        "pattern": r"\b(tesco|sainsbury|sainsburys|asda|aldi|lidl|morrisons|waitrose|co op|coop|iceland|ocado|m&s food)\b",
        "category": "Groceries (non-Spar)",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.95,
    },

    # Eating out
    {
        "id": "takeaway",
        "pattern": r"\b(deliveroo|just eat|uber eats)\b",
        "category": "Takeaways",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.93,
    },
    {
        "id": "eating_out",
        "pattern": r"\b(mcdonalds|pret|greggs|costa|starbucks|nandos|wagamama|caffe nero|pizza express)\b",
        "category": "Eating Out",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.92,
    },

    # Transport
    {
        "id": "transport_public",
        "pattern": r"\b(tfl|transport for london|trainline|lner|avanti|gwr|northern rail|national rail|stagecoach)\b",
        "category": "Transport",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.93,
    },
    {
        "id": "transport_fuel",
        "pattern": r"\b(shell|bp|esso|texaco|jet petrol)\b",
        "category": "Fuel",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.90,
    },
    {
        "id": "transport_taxi",
        "pattern": r"\b(uber|bolt|addison lee)\b",
        "category": "Transport",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.88,
    },

    # Shopping
    {
        "id": "shopping_online",
        "pattern": r"\b(amazon|amzn|ebay|argos|asos|john lewis)\b",
        "category": "Shopping (general)",
        "group": "variable",
        "is_bill": False,
        "confidence": 0.85,
    },
]

# Internal transfer exclusions
DEFAULT_EXCLUSION_RULES = {
    # Monzo transaction types that move money between the user's own accounts
    "internal_transfer_types": [
        "Pot transfer",
    ],
    # Lower-cased substrings matched against the raw payee name
    "internal_transfer_name_patterns": [
        "pot transfer",
        "savings pot",
        "from savings",
        "to savings",
        "joint account",
        "own account",
        "monzo flex",
    ],
    "exclude_zero_amount": True,
}
