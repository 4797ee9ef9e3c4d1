"""External calendar integration.

Booking and maintenance records are pushed here by the sync job. Calendar
publishing is switched off in this revision (the dashboard reads the
workspace calendar directly), so the default publisher only logs.
"""

from abc import ABC, abstractmethod

from busops.core.logging import get_logger
from busops.services.records import BookingRecord, MaintenanceRecord

logger = get_logger(__name__)


class CalendarPublisher(ABC):
    """Destination for normalized booking and maintenance records."""

    @abstractmethod
    async def publish_booking(self, booking: BookingRecord) -> None:
        ...

    @abstractmethod
    async def publish_maintenance(self, maintenance: MaintenanceRecord) -> None:
        ...


class NullCalendarPublisher(CalendarPublisher):
    """Accepts records and drops them."""

    async def publish_booking(self, booking: BookingRecord) -> None:
        logger.debug("Calendar publishing disabled, skipping booking",
                     booking=booking.to_dict())

    async def publish_maintenance(self, maintenance: MaintenanceRecord) -> None:
        logger.debug("Calendar publishing disabled, skipping maintenance",
                     maintenance=maintenance.to_dict())
