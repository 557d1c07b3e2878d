"""Tools for discovering the account's restaurants and their booking options."""

import asyncio
import logging

from meitre_mcp.models.base import CamelModel
from meitre_mcp.models.restaurant import Restaurant, RestaurantOptions
from meitre_mcp.tools.registry import RestaurantParams, ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


class ListRestaurantsParams(CamelModel):
    pass


def register_restaurant_tools(registry: ToolRegistry) -> None:
    """Register restaurant discovery tools on the registry."""

    @registry.tool(
        description=(
            "List restaurants accessible to this account. Use this to find the "
            "restaurant identifier if needed."
        ),
        parameters=ListRestaurantsParams,
    )
    async def list_restaurants(
        ctx: ToolContext, params: ListRestaurantsParams,
    ) -> list[Restaurant]:
        return await ctx.api.list_restaurants()

    @registry.tool(
        description="Fetch available areas, service types and menus for the restaurant",
        parameters=RestaurantParams,
    )
    async def fetch_options(ctx: ToolContext, params: RestaurantParams) -> RestaurantOptions:
        """Areas, service types and menus are independent lookups, fetched together.

        The first failing lookup cancels the others and is raised as-is.
        """
        try:
            async with asyncio.TaskGroup() as tg:
                areas = tg.create_task(ctx.api.get_areas())
                service_types = tg.create_task(ctx.api.get_service_types())
                menus = tg.create_task(ctx.api.get_menus())
        except ExceptionGroup as group:
            logger.info("fetch_options failed with %d error(s)", len(group.exceptions))
            raise group.exceptions[0] from None
        return RestaurantOptions(
            areas=areas.result(),
            service_types=service_types.result(),
            menus=menus.result(),
        )
