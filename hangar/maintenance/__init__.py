"""
Maintenance check lifecycle.

Tier tables, deterministic interval assignment, cascading maintenance
window resolution and per-aircraft check status evaluation.
"""

from hangar.maintenance.errors import MalformedRecordError
from hangar.maintenance.tiers import (
    CheckBasis,
    CheckTierConfig,
    RuleSet,
    FIVE_TIER,
    FOUR_TIER,
    RULE_SETS,
    get_rule_set,
)
from hangar.maintenance.intervals import interval_for, resolve_interval, rolling_hash
from hangar.maintenance.windows import Coverage, MaintenanceWindow, WindowResolver
from hangar.maintenance.status import (
    AircraftMaintenanceRecord,
    AircraftStatus,
    CheckState,
    CheckStatus,
    CheckStatusEvaluator,
    worst_status,
)

__all__ = [
    'MalformedRecordError',
    'CheckBasis',
    'CheckTierConfig',
    'RuleSet',
    'FIVE_TIER',
    'FOUR_TIER',
    'RULE_SETS',
    'get_rule_set',
    'interval_for',
    'resolve_interval',
    'rolling_hash',
    'Coverage',
    'MaintenanceWindow',
    'WindowResolver',
    'AircraftMaintenanceRecord',
    'AircraftStatus',
    'CheckState',
    'CheckStatus',
    'CheckStatusEvaluator',
    'worst_status',
]
