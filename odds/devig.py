"""
Moneyline conversion and vig removal.

- American odds → implied probability
- Multi-way de-vig (futures, outrights)
- Two-way de-vig (head-to-head)
"""
import math
from typing import Dict, Optional, Tuple, Union

Price = Union[int, float, str, None]


def _parse_price(price: Price) -> Optional[float]:
    if price is None or isinstance(price, bool):
        return None
    if isinstance(price, str):
        text = price.strip().lstrip("+").strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    elif isinstance(price, (int, float)):
        value = float(price)
    else:
        return None
    return value if math.isfinite(value) else None


def price_to_probability(price: Price) -> Optional[float]:
    """Convert American odds to implied probability.

    Accepts ints, floats and numeric strings ("+800", "-150").
    Returns None for missing or unparsable prices instead of raising.

    Examples:
        -150 → 0.600
        +150 → 0.400
    """
    value = _parse_price(price)
    if value is None:
        return None
    if value < 0:
        return abs(value) / (abs(value) + 100)
    return 100 / (value + 100)


def devigorize(raw: Dict[str, float]) -> Dict[str, float]:
    """Remove vig from a multi-way market.

    Non-positive entries are dropped. A market whose positive entries sum
    to zero yields an empty map rather than a guessed distribution.
    """
    positive = {k: v for k, v in raw.items() if v is not None and v > 0}
    total = sum(positive.values())
    if total <= 0:
        return {}
    return {k: v / total for k, v in positive.items()}


def two_way_no_vig(p_a: float, p_b: float) -> Tuple[float, float]:
    """Basic vig removal for a head-to-head market.

    A zero-sum pair is passed through unchanged.
    """
    total = p_a + p_b
    if total == 0:
        return p_a, p_b
    return p_a / total, p_b / total
