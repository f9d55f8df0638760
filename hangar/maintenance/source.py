"""
Fleet data source - reads aircraft records and maintenance windows.

The fleet-management and scheduler services own this data. The source
hands back plain wire-format dicts so the evaluator and resolver never
depend on the ORM.
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hangar.models import FleetAircraft, query_windows
from hangar.models.base import SessionLocal

logger = logging.getLogger(__name__)


class FleetDataSource:
    """SQLAlchemy-backed reader for the fleet tables."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        world_id: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.world_id = world_id

    def load_records(self) -> List[dict]:
        """All aircraft maintenance records, ordered by registration."""
        stmt = select(FleetAircraft).order_by(FleetAircraft.registration)
        if self.world_id:
            stmt = stmt.where(FleetAircraft.world_id == self.world_id)

        with self.session_factory() as session:
            aircraft = list(session.scalars(stmt))

        logger.debug(f'Loaded {len(aircraft)} aircraft records')
        return [ac.to_record() for ac in aircraft]

    def load_record(self, aircraft_id: str) -> Optional[dict]:
        """One aircraft record, or None if the id is unknown."""
        with self.session_factory() as session:
            aircraft = session.get(FleetAircraft, aircraft_id)
        return aircraft.to_record() if aircraft else None

    def load_windows(
        self,
        start_date: date,
        end_date: date,
        aircraft_id: Optional[str] = None,
    ) -> List[dict]:
        """Maintenance window records that may overlap the date range."""
        with self.session_factory() as session:
            windows = query_windows(session, start_date, end_date, aircraft_id)

        logger.debug(f'Loaded {len(windows)} maintenance windows for {start_date}..{end_date}')
        return [w.to_record() for w in windows]
