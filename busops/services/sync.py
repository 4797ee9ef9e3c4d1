"""Daily synchronization of bookings and maintenance to the external calendar.

``SyncJob.run`` never raises: failures are logged and reported in the
returned ``SyncResult`` so a broken run can neither crash the process nor
keep the scheduler from firing the next one.
"""

import asyncio
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from busops.core.config import Settings
from busops.core.errors import SyncJobError
from busops.core.logging import get_logger
from busops.services.calendar import CalendarPublisher
from busops.services.notion import NotionGateway
from busops.services.records import booking_from_page, maintenance_from_page

logger = get_logger(__name__)


class SyncState(str, Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


@dataclass
class SyncResult:
    state: SyncState
    success: bool
    bookings: int = 0
    maintenance: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


class SyncJob:
    """Reads bookings and maintenance upstream and pushes them to the calendar."""

    def __init__(self, settings: Settings, gateway: NotionGateway, publisher: CalendarPublisher,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.settings = settings
        self.gateway = gateway
        self.publisher = publisher
        self._clock = clock
        self.last_result: Optional[SyncResult] = None

    @property
    def state(self) -> SyncState:
        return SyncState.ENABLED if self.settings.daily_sync else SyncState.DISABLED

    async def run(self) -> SyncResult:
        """Run one sync pass and return its outcome."""
        result = SyncResult(state=self.state, success=True, started_at=self._clock())

        if result.state is SyncState.DISABLED:
            logger.info("Daily sync disabled")
            result.finished_at = self._clock()
            self.last_result = result
            return result

        logger.info("Starting daily sync")
        try:
            result.bookings, result.maintenance = await self._sync()
        except Exception as e:
            error = e if isinstance(e, SyncJobError) else SyncJobError(f"{type(e).__name__}: {e}")
            result.success = False
            result.error = error.message
            logger.error("Daily sync failed", error=error.message, exc_info=True)
        else:
            logger.info("Daily sync completed", bookings=result.bookings,
                        maintenance=result.maintenance)

        result.finished_at = self._clock()
        self.last_result = result
        return result

    async def _sync(self) -> tuple:
        bookings_db = self.settings.notion_bookings_db_id
        maintenance_db = self.settings.notion_maintenance_db_id
        if not bookings_db or not maintenance_db:
            raise SyncJobError("Bookings and maintenance database ids must be configured")

        bookings_response, maintenance_response = await asyncio.gather(
            self.gateway.query_database(bookings_db),
            self.gateway.query_database(maintenance_db),
        )

        bookings = 0
        for page in bookings_response.body.get("results", []):
            booking = booking_from_page(page)
            if booking.start_date:
                await self.publisher.publish_booking(booking)
                bookings += 1

        maintenance = 0
        for page in maintenance_response.body.get("results", []):
            record = maintenance_from_page(page)
            if record.start_date:
                await self.publisher.publish_maintenance(record)
                maintenance += 1

        return bookings, maintenance

    async def publish_created_page(self, database_id: Optional[str], page: Dict[str, Any]) -> None:
        """Push a freshly created page to the calendar when sync is enabled.

        Errors are logged; the page has already been created upstream.
        """
        if self.state is SyncState.DISABLED or not database_id:
            return

        try:
            if database_id == self.settings.notion_bookings_db_id:
                await self.publisher.publish_booking(booking_from_page(page))
            elif database_id == self.settings.notion_maintenance_db_id:
                await self.publisher.publish_maintenance(maintenance_from_page(page))
        except Exception as e:
            logger.error("Calendar push for created page failed",
                         page_id=page.get("id"), error=str(e))
