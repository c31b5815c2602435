"""
Money helpers.

Amounts are carried as floats through every computation and only rounded when
they leave the engine.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


def round_money(value: Optional[float]) -> float:
    """
    Round an amount to 2 decimal places, halves away from zero.

    Uses the shortest decimal representation of the float, so 2.675 rounds
    to 2.68 and -0.125 to -0.13.
    """
    if value is None:
        return 0.0
    q = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(q)
