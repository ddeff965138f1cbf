"""
ladder/tiers.py - Pyramid tier geometry.

Tier t holds positions T(t-1)+1 .. T(t), where T(t) = t(t+1)/2 is the t-th
triangular number:

    tier 1:  1
    tier 2:  2  3
    tier 3:  4  5  6
    tier 4:  7  8  9 10
"""

from .errors import InvalidArgumentError


def tier_of(position: int) -> int:
    """Smallest tier whose triangular number reaches ``position``."""
    if position < 1:
        raise InvalidArgumentError(f"Position must be at least 1, got {position}")
    tier = 1
    reach = 1
    while reach < position:
        tier += 1
        reach += tier
    return tier


def max_position_in_tier(tier: int) -> int:
    """Last (worst) position in ``tier``."""
    if tier < 1:
        raise InvalidArgumentError(f"Tier must be at least 1, got {tier}")
    return tier * (tier + 1) // 2


def tier_bounds(tier: int) -> tuple[int, int]:
    """(first, last) positions covered by ``tier``."""
    last = max_position_in_tier(tier)
    return last - tier + 1, last
