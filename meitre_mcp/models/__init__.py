from meitre_mcp.models.credentials import Credentials
from meitre_mcp.models.enums import ReservationMode, ReservationStatus, ServiceType
from meitre_mcp.models.reservation import (
    AreaRef,
    BookingConfirmation,
    MenuRef,
    Reservation,
    ReservationSummary,
)
from meitre_mcp.models.restaurant import (
    Area,
    CalendarDay,
    Menu,
    NamedRef,
    Restaurant,
    RestaurantOptions,
    Timeslot,
)

__all__ = [
    "Area",
    "AreaRef",
    "BookingConfirmation",
    "CalendarDay",
    "Credentials",
    "Menu",
    "MenuRef",
    "NamedRef",
    "Reservation",
    "ReservationMode",
    "ReservationStatus",
    "ReservationSummary",
    "Restaurant",
    "RestaurantOptions",
    "ServiceType",
    "Timeslot",
]
