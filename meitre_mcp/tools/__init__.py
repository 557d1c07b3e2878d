from meitre_mcp.tools.registry import Tool, ToolArgumentError, ToolContext, ToolRegistry


def build_registry() -> ToolRegistry:
    """Create the registry holding every tool this server exposes."""
    from meitre_mcp.tools.availability import register_availability_tools
    from meitre_mcp.tools.reservations import register_reservation_tools
    from meitre_mcp.tools.restaurants import register_restaurant_tools

    registry = ToolRegistry()
    register_restaurant_tools(registry)
    register_availability_tools(registry)
    register_reservation_tools(registry)
    return registry


__all__ = ["Tool", "ToolArgumentError", "ToolContext", "ToolRegistry", "build_registry"]
