"""Availability tools: bookable dates and timeslots."""

import logging
from datetime import datetime

from pydantic import Field, field_validator

from meitre_mcp.models.enums import ServiceType
from meitre_mcp.models.restaurant import CalendarDay, Timeslot
from meitre_mcp.tools.date_utils import availability_window, parse_date, parse_timestamp, utcnow
from meitre_mcp.tools.registry import RestaurantParams, ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


class FetchDatesParams(RestaurantParams):
    party_size: int
    service_type: ServiceType
    area_id: int | None = None
    menu_id: int | None = None
    start_date: str | None = Field(
        default=None,
        description="Start date in YYYY-MM-DD format. Defaults to today.",
    )

    @field_validator("start_date")
    @classmethod
    def _normalise_start_date(cls, value: str | None) -> str | None:
        return parse_date(value) if value else None


class FetchTimeslotsParams(RestaurantParams):
    party_size: int
    date: str = Field(description="Date in YYYY-MM-DD format")
    service_type: ServiceType
    area_id: int | None = None
    menu_id: int | None = None

    @field_validator("date")
    @classmethod
    def _normalise_date(cls, value: str) -> str:
        return parse_date(value)


def filter_calendar(
    calendar: list[CalendarDay], start: datetime, end: datetime,
) -> list[str]:
    """Return available calendar dates inside ``[start, end]`` as YYYY-MM-DD."""
    dates: list[str] = []
    for day in calendar:
        if not day.is_available:
            continue
        ts = parse_timestamp(day.date)
        if ts is not None and start <= ts <= end:
            dates.append(day.date.split("T")[0])
    return dates


def register_availability_tools(registry: ToolRegistry) -> None:
    """Register availability lookup tools on the registry."""

    @registry.tool(
        description=(
            "Fetch available dates for a reservation for the next 15 days from today "
            "(or a custom start date). Filter by areaId and/or menuId when specifically asked."
        ),
        parameters=FetchDatesParams,
    )
    async def fetch_dates(ctx: ToolContext, params: FetchDatesParams) -> list[str]:
        calendar = await ctx.api.get_calendar(
            party_size=params.party_size,
            service_type=params.service_type,
            area_id=params.area_id,
            menu_id=params.menu_id,
        )
        start, end = availability_window(params.start_date, now=utcnow())
        return filter_calendar(calendar, start, end)

    @registry.tool(
        description=(
            "Fetch available timeslots for a specific date. Filter by areaId and/or menuId "
            "when specifically asked. Each timeslot specifies which areas and menus are "
            "available."
        ),
        parameters=FetchTimeslotsParams,
    )
    async def fetch_timeslots(ctx: ToolContext, params: FetchTimeslotsParams) -> list[Timeslot]:
        return await ctx.api.get_timeslots(
            party_size=params.party_size,
            date=params.date,
            service_type=params.service_type,
            area_id=params.area_id,
            menu_id=params.menu_id,
        )
