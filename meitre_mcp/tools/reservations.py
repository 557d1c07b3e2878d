"""Reservation tools: search, book, reschedule, cancel."""

import logging
from typing import Any

from pydantic import Field, field_validator

from meitre_mcp.models.enums import ReservationMode, ReservationStatus
from meitre_mcp.models.reservation import (
    AreaRef,
    BookingConfirmation,
    MenuRef,
    Reservation,
    ReservationSummary,
)
from meitre_mcp.tools.date_utils import parse_date
from meitre_mcp.tools.registry import RestaurantParams, ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

# Fields Meitre's admin booking form always sends; guests never set these.
BOOKING_DEFAULTS: dict[str, Any] = {
    "allergies": "",
    "defaultLang": "es",
    "howManyKids": 0,
    "howManyVeggie": 0,
    "kids": False,
    "partySizeType": "normal",
    "paymentProcessor": "stripe",
    "pets": False,
    "publicOrHold": "public",
    "reservationMode": "main",
    "restrictions": False,
    "type": "traditional",
    "veggie": False,
}

RESCHEDULE_OPTION = 1

_AREA_HELP = "If the user doesn't specify an area, pick the first one from fetch_options."
_MENU_HELP = "Use only if the user specifies a menu."


class SearchReservationsParams(RestaurantParams):
    phone: str = Field(description="Phone number to search for")


class BookReservationParams(RestaurantParams):
    party_size: int
    date: str = Field(description="Date in YYYY-MM-DD format")
    time: str = Field(description="Time in HH:MM format")
    area_id: int = Field(description=_AREA_HELP)
    menu_id: int | None = Field(default=None, description=_MENU_HELP)
    name: str = Field(description="Guest name")
    phone: str = Field(description="Guest phone number")
    email: str | None = Field(default=None, description="Guest email")

    @field_validator("date")
    @classmethod
    def _normalise_date(cls, value: str) -> str:
        return parse_date(value)


class RescheduleReservationParams(BookReservationParams):
    reservation_id: int = Field(description="ID of the reservation to reschedule")
    date: str = Field(description="New date in YYYY-MM-DD format")
    time: str = Field(description="New time in HH:MM format")


class CancelReservationParams(RestaurantParams):
    reservation_id: int = Field(description="ID of the reservation to cancel")


def _format_time(res_time: str) -> str:
    """``"2026-02-14 20:30:00"`` → ``"20:30"``; other shapes pass through."""
    parts = res_time.split(" ")
    if len(parts) > 1:
        return parts[1][:5]
    return res_time


def summarise(reservation: Reservation) -> ReservationSummary:
    return ReservationSummary(
        id=reservation.id,
        date=reservation.res_date.split("T")[0],
        time=_format_time(reservation.res_time),
        name=reservation.guest_name,
        phone=reservation.guest_phone,
        email=reservation.guest_email,
        party_size=reservation.party_size,
        area=AreaRef(id=reservation.area_id, name=reservation.area),
        menu=MenuRef(id=reservation.menu_id, name=reservation.menu),
    )


def build_booking_payload(
    params: BookReservationParams, mode: ReservationMode,
) -> dict[str, Any]:
    """Merge guest-supplied fields with the fixed booking defaults."""
    payload: dict[str, Any] = {
        "partySize": params.party_size,
        "date": params.date,
        "time": params.time,
        "area": params.area_id,
        "name": params.name,
        "phone": params.phone,
        "email": params.email or "",
        "mode": mode.value,
        **BOOKING_DEFAULTS,
    }
    if params.menu_id:
        payload["menu"] = params.menu_id
    if isinstance(params, RescheduleReservationParams):
        payload["rescheduleOption"] = RESCHEDULE_OPTION
        payload["reservationToRescheduleId"] = params.reservation_id
    return payload


def register_reservation_tools(registry: ToolRegistry) -> None:
    """Register reservation management tools on the registry."""

    @registry.tool(
        description=(
            "Search for reservations by phone number. Returns only booked (active) "
            "reservations."
        ),
        parameters=SearchReservationsParams,
    )
    async def search_reservations(
        ctx: ToolContext, params: SearchReservationsParams,
    ) -> list[ReservationSummary]:
        reservations = await ctx.api.search_reservations(params.phone)
        return [
            summarise(r) for r in reservations if r.status == ReservationStatus.BOOKED
        ]

    @registry.tool(description="Book a new reservation", parameters=BookReservationParams)
    async def book_reservation(
        ctx: ToolContext, params: BookReservationParams,
    ) -> BookingConfirmation:
        payload = build_booking_payload(params, ReservationMode.NEW)
        reservation = await ctx.api.create_reservation(payload)
        logger.info("Booked reservation %s", reservation.id)
        return BookingConfirmation.from_reservation(reservation)

    @registry.tool(
        description="Reschedule an existing reservation to a new date and time",
        parameters=RescheduleReservationParams,
    )
    async def reschedule_reservation(
        ctx: ToolContext, params: RescheduleReservationParams,
    ) -> BookingConfirmation:
        payload = build_booking_payload(params, ReservationMode.RESCHEDULE)
        reservation = await ctx.api.create_reservation(payload)
        logger.info(
            "Rescheduled reservation %s as %s", params.reservation_id, reservation.id,
        )
        return BookingConfirmation.from_reservation(reservation)

    @registry.tool(
        description="Cancel an existing reservation", parameters=CancelReservationParams,
    )
    async def cancel_reservation(
        ctx: ToolContext, params: CancelReservationParams,
    ) -> BookingConfirmation:
        reservation = await ctx.api.cancel_reservation(params.reservation_id)
        logger.info("Cancelled reservation %s", reservation.id)
        return BookingConfirmation.from_reservation(reservation)
