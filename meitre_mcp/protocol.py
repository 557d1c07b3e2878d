"""MCP method dispatch over single JSON-RPC 2.0 request/response exchanges.

Only three methods exist: ``initialize``, ``tools/list`` and ``tools/call``.
Every failure inside dispatch is turned into a JSON-RPC error object, so
``handle_mcp_request`` never raises.
"""

import json
import logging
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator
from pydantic_core import to_jsonable_python

from meitre_mcp import __version__
from meitre_mcp.tools.registry import ToolArgumentError, ToolContext, ToolRegistry

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "meitre-mcp"


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    METHOD_NOT_FOUND = -32601
    INTERNAL_ERROR = -32603
    MISSING_CREDENTIALS = -32001


RequestId = str | int | float | None


class JsonRpcRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _reject_bool_id(cls, value: object) -> object:
        # JSON true/false are not valid ids and must not be coerced to 1/0.
        if isinstance(value, bool):
            raise ValueError("id must be a string, a number or null")
        return value


class EnvelopeError(ValueError):
    """The request body is not a JSON-RPC request object."""

    def __init__(self, request_id: RequestId = None) -> None:
        super().__init__("Parse error")
        self.request_id = request_id


def parse_request(payload: object) -> JsonRpcRequest:
    """Validate a decoded body as a JSON-RPC request.

    Raises:
        EnvelopeError: Carrying the request id when one can be recovered.
    """
    try:
        return JsonRpcRequest.model_validate(payload)
    except ValidationError as exc:
        request_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(request_id, str | int | float) or isinstance(request_id, bool):
            request_id = None
        raise EnvelopeError(request_id) from exc


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(
    request_id: RequestId,
    code: ErrorCode,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def _initialize_result() -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
        "capabilities": {"tools": {}},
    }


def _list_tools_result(registry: ToolRegistry) -> dict[str, Any]:
    return {
        "tools": [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.input_schema(),
            }
            for tool in registry
        ]
    }


def render_tool_result(result: Any) -> dict[str, Any]:
    """Wrap a tool's return value as MCP text + structured content.

    Sequences are placed under ``items`` so ``structuredContent`` is
    always an object.
    """
    payload = to_jsonable_python(result, by_alias=True)
    structured = {"items": payload} if isinstance(payload, list) else payload
    return {
        "content": [
            {"type": "text", "text": json.dumps(payload, indent=2, ensure_ascii=False)},
        ],
        "structuredContent": structured,
    }


async def _call_tool(
    request: JsonRpcRequest, context: ToolContext, registry: ToolRegistry,
) -> dict[str, Any]:
    params = request.params or {}
    name = params.get("name")
    tool = registry.get(name)
    if tool is None:
        return error_response(request.id, ErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}")

    arguments = params.get("arguments")
    if arguments is None:
        arguments = {}

    # A tool-level restaurant only applies when the header didn't pin one.
    restaurant = arguments.get("restaurant") if isinstance(arguments, dict) else None
    if not context.has_header_restaurant and isinstance(restaurant, str) and restaurant:
        context.api.set_restaurant(restaurant)

    validated = tool.validate(arguments)
    logger.info("Calling tool %s", tool.name)
    result = await tool.execute(context, validated)
    return success_response(request.id, render_tool_result(result))


async def handle_mcp_request(
    request: JsonRpcRequest, context: ToolContext, registry: ToolRegistry,
) -> dict[str, Any]:
    """Dispatch one JSON-RPC request and return the response envelope."""
    try:
        if request.method == "initialize":
            return success_response(request.id, _initialize_result())

        if request.method == "tools/list":
            return success_response(request.id, _list_tools_result(registry))

        if request.method == "tools/call":
            return await _call_tool(request, context, registry)

        return error_response(
            request.id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {request.method}",
        )
    except ToolArgumentError as exc:
        logger.info("Rejected arguments for %s: %s", exc.tool_name, exc)
        return error_response(
            request.id, ErrorCode.INTERNAL_ERROR, str(exc), {"errors": exc.errors},
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("MCP request %s failed", request.method)
        return error_response(request.id, ErrorCode.INTERNAL_ERROR, str(exc) or "Unknown error")
