"""Tests for the tool registry and argument validation."""

from unittest.mock import MagicMock

import pytest

from meitre_mcp.tools import Tool, ToolArgumentError, ToolContext, ToolRegistry, build_registry
from meitre_mcp.tools.registry import RestaurantParams

EXPECTED_TOOLS = {
    "list_restaurants",
    "fetch_options",
    "fetch_dates",
    "fetch_timeslots",
    "search_reservations",
    "book_reservation",
    "reschedule_reservation",
    "cancel_reservation",
}


class EchoParams(RestaurantParams):
    party_size: int


class TestToolRegistry:
    def test_decorator_registers_under_function_name(self):
        registry = ToolRegistry()

        @registry.tool(description="Echo", parameters=EchoParams)
        async def echo(ctx, params):
            return params.party_size

        assert registry.get("echo").description == "Echo"
        assert len(registry) == 1

    def test_explicit_name(self):
        registry = ToolRegistry()

        @registry.tool(description="Echo", parameters=EchoParams, name="say")
        async def echo(ctx, params):
            return None

        assert registry.get("say") is not None
        assert registry.get("echo") is None

    def test_duplicate_name_rejected(self):
        registry = ToolRegistry()
        tool = Tool(name="t", description="", parameters=EchoParams, execute=MagicMock())
        registry.add(tool)
        with pytest.raises(ValueError, match="already registered"):
            registry.add(tool)

    @pytest.mark.parametrize("name", [None, 42, ["fetch_dates"]])
    def test_non_string_lookup_misses(self, name):
        assert build_registry().get(name) is None

    def test_tools_mapping_is_read_only(self):
        registry = build_registry()
        with pytest.raises(TypeError):
            registry.tools["x"] = None  # type: ignore[index]

    async def test_executes_with_context(self):
        registry = ToolRegistry()

        @registry.tool(description="Echo", parameters=EchoParams)
        async def echo(ctx, params):
            return ctx.has_header_restaurant, params.party_size

        tool = registry.get("echo")
        ctx = ToolContext(api=MagicMock(), has_header_restaurant=True)
        assert await tool.execute(ctx, tool.validate({"partySize": 3})) == (True, 3)


class TestBuildRegistry:
    def test_registers_every_tool(self):
        assert set(build_registry().tools) == EXPECTED_TOOLS

    def test_iteration_order_is_registration_order(self):
        names = [tool.name for tool in build_registry()]
        assert names[0] == "list_restaurants"
        assert names[-1] == "cancel_reservation"

    def test_every_tool_has_description(self):
        for tool in build_registry():
            assert tool.description

    def test_restaurant_scoped_tools_accept_restaurant(self):
        for tool in build_registry():
            if tool.name == "list_restaurants":
                continue
            assert "restaurant" in tool.input_schema()["properties"], tool.name


class TestInputSchema:
    def test_uses_camel_case_names(self):
        schema = build_registry().get("book_reservation").input_schema()

        assert schema["type"] == "object"
        assert "partySize" in schema["properties"]
        assert "party_size" not in schema["properties"]
        assert set(schema["required"]) == {"partySize", "date", "time", "areaId", "name", "phone"}

    def test_service_type_enum(self):
        schema = build_registry().get("fetch_dates").input_schema()
        assert "serviceType" in schema["required"]
        rendered = str(schema)
        assert "lunch" in rendered
        assert "dinner" in rendered


class TestValidate:
    def test_accepts_snake_case_too(self):
        tool = Tool(name="echo", description="", parameters=EchoParams, execute=MagicMock())
        assert tool.validate({"party_size": 2}).party_size == 2

    def test_error_details(self):
        tool = Tool(name="echo", description="", parameters=EchoParams, execute=MagicMock())

        with pytest.raises(ToolArgumentError) as exc_info:
            tool.validate({"partySize": "many"})

        error = exc_info.value
        assert error.tool_name == "echo"
        assert error.errors == [{
            "field": "partySize",
            "message": error.errors[0]["message"],
            "type": "int_parsing",
        }]
        assert str(error).startswith("Invalid arguments for echo: partySize:")

    def test_non_object_arguments(self):
        tool = Tool(name="echo", description="", parameters=EchoParams, execute=MagicMock())

        with pytest.raises(ToolArgumentError, match=r"\(arguments\)"):
            tool.validate(["not", "an", "object"])
