"""
Deterministic per-aircraft check intervals.

Heavy checks (C, D) get an interval drawn from a range so that a fleet
doesn't come due all at once. The draw must never change for an aircraft:
refreshes and reconnects can't be allowed to move a due date. Instead of a
seeded RNG we hash the aircraft id with the same 32-bit rolling hash the
dashboard frontend uses, so every implementation agrees on the result.
"""

import logging
from typing import Optional, Union

from hangar.maintenance.tiers import CheckTierConfig, RuleSet

logger = logging.getLogger(__name__)

_UINT32 = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def rolling_hash(value: str) -> int:
    """
    Java/JavaScript-style string hash: hash = hash * 31 + code_unit.

    Iterates UTF-16 code units (what JavaScript's charCodeAt returns),
    wraps to a signed 32-bit integer after every step and returns the
    absolute value.
    """
    encoded = value.encode('utf-16-le')
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + code_unit) & _UINT32

    if h & _INT32_SIGN:
        h -= 1 << 32
    return abs(h)


def interval_for(aircraft_id: str, check_type: str, rule_set: RuleSet) -> int:
    """
    Default interval for an aircraft's check tier (days or flight hours).

    Maps the hash of aircraft_id + check_type into the tier's inclusive
    default range. Tiers with a fixed validity window return it as-is.
    """
    tier = rule_set.tier(check_type)
    if tier.default_interval_range is None:
        return tier.validity_window

    low, high = tier.default_interval_range
    if low == high:
        return low

    return low + rolling_hash(f'{aircraft_id}{check_type}') % (high - low + 1)


def resolve_interval(
    aircraft_id: str,
    tier: CheckTierConfig,
    rule_set: RuleSet,
    override: Optional[Union[int, float]] = None,
) -> Union[int, float]:
    """
    Effective interval for a check.

    Precedence:
    1. The tier's fixed validity window (daily check)
    2. A positive per-aircraft override from the fleet record
    3. The hashed default from interval_for()
    """
    if tier.validity_window is not None:
        return tier.validity_window

    if override is not None:
        if override > 0:
            return override
        logger.debug(f'Ignoring non-positive {tier.id} interval override {override} for {aircraft_id}')

    return interval_for(aircraft_id, tier.id, rule_set)
