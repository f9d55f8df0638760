"""
Airworthiness check tier tables.

A rule set is an ordered table of check tiers, highest weight first. The
order is the precedence used for cascading coverage: an open window on a
tier covers every tier that comes after it in the table.

Two rule sets exist in the simulation:

    five-tier   D > C > weekly > A > daily   (A check tracked in flight hours)
    four-tier   D > C > B > A > daily        (all tiers calendar based)

Intervals are in days for calendar tiers and flight hours for hour tiers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

HOURS_PER_DAY = 24


class CheckBasis(str, Enum):
    """How a tier's validity is measured."""
    CALENDAR = 'calendar'
    HOURS = 'hours'


@dataclass(frozen=True)
class CheckTierConfig:
    """
    Static configuration of a single check tier.

    Fields:
        id: Tier identifier used on the wire ('daily', 'A', 'C', ...)
        basis: Calendar days or flight hours
        validity_window: Fixed interval that ignores per-aircraft overrides
        default_interval_range: Inclusive (min, max) mapped per aircraft;
            a zero-width range is a fixed default
        warning_threshold: Hours before expiry (calendar) or flight hours
            remaining (hours basis) that turn a check into a warning
        duration_minutes: How long the check keeps the aircraft in the hangar
        date_field / hours_field / override_field: Keys in the external
            aircraft maintenance record
    """
    id: str
    basis: CheckBasis
    label: str
    description: str
    warning_threshold: float
    duration_minutes: int
    date_field: str
    validity_window: Optional[int] = None
    default_interval_range: Optional[Tuple[int, int]] = None
    hours_field: Optional[str] = None
    override_field: Optional[str] = None

    def __post_init__(self):
        if self.validity_window is None and self.default_interval_range is None:
            raise ValueError(f'Tier {self.id} needs a validity window or an interval range')
        if self.default_interval_range is not None:
            low, high = self.default_interval_range
            if low > high:
                raise ValueError(f'Tier {self.id} has an inverted interval range {low}-{high}')
        if self.basis is CheckBasis.HOURS and not self.hours_field:
            raise ValueError(f'Hour-based tier {self.id} needs an hours_field')

    @property
    def is_fixed(self) -> bool:
        """True when every aircraft gets the same interval."""
        if self.validity_window is not None:
            return True
        low, high = self.default_interval_range
        return low == high

    @property
    def unit(self) -> str:
        return 'FH' if self.basis is CheckBasis.HOURS else 'days'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'label': self.label,
            'description': self.description,
            'basis': self.basis.value,
            'unit': self.unit,
            'fixed': self.is_fixed,
            'validity_window': self.validity_window,
            'default_interval_range': list(self.default_interval_range) if self.default_interval_range else None,
            'warning_threshold': self.warning_threshold,
            'duration_minutes': self.duration_minutes,
        }


@dataclass(frozen=True)
class RuleSet:
    """Named tier table in precedence order (highest weight first)."""
    name: str
    tiers: Tuple[CheckTierConfig, ...]

    def __post_init__(self):
        ids = [tier.id for tier in self.tiers]
        if len(set(ids)) != len(ids):
            raise ValueError(f'Rule set {self.name} has duplicate tier ids: {ids}')

    @property
    def tier_ids(self) -> List[str]:
        return [tier.id for tier in self.tiers]

    def has_tier(self, tier_id: str) -> bool:
        return tier_id in self.tier_ids

    def tier(self, tier_id: str) -> CheckTierConfig:
        """Look up a tier; raises KeyError for unknown ids."""
        for tier in self.tiers:
            if tier.id == tier_id:
                return tier
        raise KeyError(f'Unknown check tier {tier_id!r} for rule set {self.name}')

    def rank(self, tier_id: str) -> int:
        """Precedence rank, 0 for the heaviest tier."""
        return self.tier_ids.index(self.tier(tier_id).id)

    def covering_tiers(self, tier_id: str) -> List[CheckTierConfig]:
        """Tiers whose open windows cover tier_id, heaviest first, tier_id last."""
        return list(self.tiers[:self.rank(tier_id) + 1])

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'precedence': self.tier_ids,
            'tiers': [tier.to_dict() for tier in self.tiers],
        }


DAILY = CheckTierConfig(
    id='daily',
    basis=CheckBasis.CALENDAR,
    label='Daily Check',
    description='Pre-flight inspection performed daily',
    validity_window=2,  # two calendar days, until midnight UTC
    warning_threshold=24,
    duration_minutes=60,
    date_field='lastDailyCheckDate',
)

WEEKLY = CheckTierConfig(
    id='weekly',
    basis=CheckBasis.CALENDAR,
    label='Weekly Check',
    description='Walk-around and systems inspection performed weekly',
    default_interval_range=(7, 7),
    warning_threshold=24,
    duration_minutes=120,
    date_field='lastWeeklyCheckDate',
    override_field='weeklyCheckIntervalDays',
)

C_CHECK = CheckTierConfig(
    id='C',
    basis=CheckBasis.CALENDAR,
    label='C Check',
    description='Extensive structural inspection',
    default_interval_range=(548, 730),  # 18-24 months
    warning_threshold=7 * HOURS_PER_DAY,
    duration_minutes=14 * HOURS_PER_DAY * 60,
    date_field='lastCCheckDate',
    override_field='cCheckIntervalDays',
)

D_CHECK = CheckTierConfig(
    id='D',
    basis=CheckBasis.CALENDAR,
    label='D Check',
    description='Heavy maintenance overhaul',
    default_interval_range=(2190, 3650),  # 6-10 years
    warning_threshold=14 * HOURS_PER_DAY,
    duration_minutes=60 * HOURS_PER_DAY * 60,
    date_field='lastDCheckDate',
    override_field='dCheckIntervalDays',
)

FIVE_TIER = RuleSet(
    name='five-tier',
    tiers=(
        D_CHECK,
        C_CHECK,
        WEEKLY,
        CheckTierConfig(
            id='A',
            basis=CheckBasis.HOURS,
            label='A Check',
            description='Light maintenance check, due by flight hours',
            default_interval_range=(800, 1000),
            warning_threshold=50,
            duration_minutes=180,
            date_field='lastACheckDate',
            hours_field='lastACheckHours',
            override_field='aCheckIntervalHours',
        ),
        DAILY,
    ),
)

FOUR_TIER = RuleSet(
    name='four-tier',
    tiers=(
        D_CHECK,
        C_CHECK,
        CheckTierConfig(
            id='B',
            basis=CheckBasis.CALENDAR,
            label='B Check',
            description='Detailed inspection of components',
            default_interval_range=(210, 210),  # ~7 months
            warning_threshold=24,
            duration_minutes=360,
            date_field='lastBCheckDate',
            override_field='bCheckIntervalDays',
        ),
        CheckTierConfig(
            id='A',
            basis=CheckBasis.CALENDAR,
            label='A Check',
            description='Light maintenance check',
            default_interval_range=(42, 42),
            warning_threshold=24,
            duration_minutes=180,
            date_field='lastACheckDate',
            override_field='aCheckIntervalDays',
        ),
        DAILY,
    ),
)

RULE_SETS: Dict[str, RuleSet] = {
    FIVE_TIER.name: FIVE_TIER,
    FOUR_TIER.name: FOUR_TIER,
}


def get_rule_set(name: str) -> RuleSet:
    """Look up a rule set by name ('five-tier' or 'four-tier')."""
    try:
        return RULE_SETS[name.strip().lower()]
    except KeyError:
        raise KeyError(
            f'Unknown maintenance rule set {name!r}; expected one of {sorted(RULE_SETS)}'
        ) from None
