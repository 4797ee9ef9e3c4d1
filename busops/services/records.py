"""Normalization of workspace pages into calendar-ready records.

Notion pages carry typed property objects (``title``, ``rich_text``,
``date``, ``number`` ...). The sync job only needs a handful of fields per
page; these helpers pull them out with the same defaults the dashboard uses.
Bookings written by older forms use ``Contact``/``Company/Org/Person``/
``Amount``, newer ones ``Customer``/``Itinerary``/``Total``; both are read.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


def _prop(page: Dict[str, Any], name: str) -> Dict[str, Any]:
    return (page.get("properties") or {}).get(name) or {}


def _first_text(items: Any) -> Optional[str]:
    if items and isinstance(items, list):
        text = items[0].get("text") or {}
        return text.get("content") or items[0].get("plain_text")
    return None


def title_text(page: Dict[str, Any], name: str) -> Optional[str]:
    return _first_text(_prop(page, name).get("title"))


def rich_text(page: Dict[str, Any], name: str) -> Optional[str]:
    return _first_text(_prop(page, name).get("rich_text"))


def number(page: Dict[str, Any], name: str) -> Optional[float]:
    return _prop(page, name).get("number")


def date_range(page: Dict[str, Any], name: str) -> tuple:
    """(start, end) ISO dates; end falls back to start."""
    date = _prop(page, name).get("date") or {}
    start = date.get("start")
    return start, date.get("end") or start


def first_relation(page: Dict[str, Any], name: str) -> Optional[str]:
    relation = _prop(page, name).get("relation") or []
    return relation[0].get("id") if relation else None


def multi_select_names(page: Dict[str, Any], name: str) -> str:
    options = _prop(page, name).get("multi_select") or []
    return ", ".join(option.get("name", "") for option in options)


@dataclass
class BookingRecord:
    id: str
    customer_name: str
    destination: str
    start_date: Optional[str]
    end_date: Optional[str]
    amount: float
    customer_phone: str
    vehicle_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MaintenanceRecord:
    id: str
    vehicle_id: str
    service_type: str
    details: str
    cost: float
    start_date: Optional[str]
    end_date: Optional[str]
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def booking_from_page(page: Dict[str, Any]) -> BookingRecord:
    start, end = date_range(page, "Dates")
    phone = _prop(page, "Phone").get("phone_number")
    return BookingRecord(
        id=page.get("id", ""),
        customer_name=title_text(page, "Contact") or title_text(page, "Customer") or "Unknown",
        destination=(rich_text(page, "Company/Org/Person")
                     or rich_text(page, "Itinerary") or "Unknown"),
        start_date=start,
        end_date=end,
        amount=number(page, "Amount") or number(page, "Total") or 0,
        customer_phone=phone or "",
        vehicle_id=first_relation(page, "Vehicle"),
    )


def maintenance_from_page(page: Dict[str, Any]) -> MaintenanceRecord:
    start, end = date_range(page, "Service Dates")
    if start is None:
        start, end = date_range(page, "Service Date")
    return MaintenanceRecord(
        id=page.get("id", ""),
        vehicle_id=first_relation(page, "Vehicle") or "Unknown",
        service_type=multi_select_names(page, "Service Type") or "Service",
        details=rich_text(page, "Details") or "General Checkup",
        cost=number(page, "Cost") or 0,
        start_date=start,
        end_date=end,
        notes=rich_text(page, "Notes") or title_text(page, "Name") or "",
    )
