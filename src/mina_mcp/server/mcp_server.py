"""
MCP Server Implementation

Dispatches JSON-RPC 2.0 requests of the Model Context Protocol:
- Initialize/capabilities handshake
- Cursor-based pagination of tools/list
- tools/call routed through the tool registry
- logging/setLevel adjusting the server's log level
- initialized and cancelled notifications

Transport-agnostic: the stdio transport feeds parsed messages into
``handle_request`` and ``handle_notification``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from mina_mcp.blockberry import BlockberryClient
from mina_mcp.common.config import Config
from mina_mcp.common.logging import get_logger, log_startup_message, set_log_level

from .jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    MCP_PROTOCOL_VERSION,
    MCP_TOOL_EXECUTION_ERROR,
    METHOD_NOT_FOUND,
    JSONRPCErrorResponse,
    JSONRPCHandler,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MCPCapabilities,
    MCPClientCapabilities,
    MCPImplementation,
    MCPInitializeParams,
    MCPInitializeResult,
    MCPMethods,
    MCPSetLevelParams,
    MCPToolDescriptor,
    MCPToolsCallParams,
    MCPToolsCallResult,
    MCPToolsListParams,
    MCPToolsListResult,
    negotiate_protocol_version,
)
from .tool_registry import ToolRegistry

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50

SERVER_INSTRUCTIONS = (
    "This MCP server looks up zkApp transactions on the Mina network through the "
    "Blockberry explorer. Use 'get-transaction' for the full report of one transaction "
    "and 'get-recent-transactions' to list recent transactions, optionally for one account."
)

RPCResult = Union[JSONRPCResponse, JSONRPCErrorResponse]


class MinaMCPServer:
    """
    MCP server exposing the Mina zkApp transaction tools.

    Configuration is passed in explicitly; nothing is read from globals.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the server and register its tools.

        Args:
            config: Application configuration
            transport: Optional httpx transport for the explorer client
        """
        self.config = config
        self.client = BlockberryClient(config.blockberry, transport=transport)
        self.tool_registry = ToolRegistry()

        self.capabilities = MCPCapabilities(
            tools={"listChanged": False},
            logging={},
        )
        self.server_info = MCPImplementation(
            name=config.server.name, version=config.server.version
        )

        self._register_tools()

        log_startup_message(
            "mcp_server_initialized",
            protocol_version=MCP_PROTOCOL_VERSION,
            tools=list(self.tool_registry.tools.keys()),
            api_key_configured=config.blockberry.is_configured,
        )

    def _register_tools(self) -> None:
        """Register the transaction tools."""
        from .tools import GetTransactionTool, RecentTransactionsTool

        for handler in (GetTransactionTool(self.client), RecentTransactionsTool(self.client)):
            self.tool_registry.register_tool_handler(handler)

    async def handle_request(self, request: JSONRPCRequest) -> Optional[RPCResult]:
        """Handle a JSON-RPC request."""
        try:
            logger.debug(event="jsonrpc_request", method=request.method, id=request.id)

            if request.method == MCPMethods.INITIALIZE:
                return await self._handle_initialize(request)
            elif request.method == MCPMethods.PING:
                return await self._handle_ping(request)
            elif request.method == MCPMethods.TOOLS_LIST:
                return await self._handle_tools_list(request)
            elif request.method == MCPMethods.TOOLS_CALL:
                return await self._handle_tools_call(request)
            elif request.method == MCPMethods.LOGGING_SET_LEVEL:
                return await self._handle_set_level(request)
            else:
                return JSONRPCHandler.create_error_response(
                    request.id, METHOD_NOT_FOUND, f"Method '{request.method}' not found"
                )

        except Exception as e:
            logger.error(event="request_handler_error", method=request.method, error=str(e))
            return JSONRPCHandler.create_error_response(
                request.id, INTERNAL_ERROR, f"Internal error: {str(e)}"
            )

    async def handle_notification(self, notification: JSONRPCNotification) -> None:
        """Handle a JSON-RPC notification."""
        try:
            logger.debug(event="jsonrpc_notification", method=notification.method)

            if notification.method == MCPMethods.INITIALIZED:
                logger.info(event="client_ready", message="Client has completed initialization")
            elif notification.method == MCPMethods.CANCEL:
                request_id = (notification.params or {}).get("requestId")
                logger.info(event="request_cancelled", request_id=request_id)
            else:
                logger.warning(event="unknown_notification", method=notification.method)

        except Exception as e:
            logger.error(
                event="notification_handler_error", method=notification.method, error=str(e)
            )

    def _read_initialize_params(self, params: Dict[str, Any]) -> MCPInitializeParams:
        try:
            return MCPInitializeParams.model_validate(params)
        except ValidationError:
            # Some clients omit clientInfo or capabilities; only the version matters here
            return MCPInitializeParams(
                protocolVersion=params.get("protocolVersion") or MCP_PROTOCOL_VERSION,
                capabilities=MCPClientCapabilities.model_validate(params.get("capabilities") or {}),
                clientInfo=MCPImplementation.model_validate(
                    params.get("clientInfo") or {"name": "unknown", "version": "unknown"}
                ),
            )

    async def _handle_initialize(self, request: JSONRPCRequest) -> RPCResult:
        """Negotiate the protocol version and advertise capabilities."""
        if not request.params:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Initialize requires params"
            )

        try:
            params = self._read_initialize_params(request.params)
        except ValidationError as e:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, f"Invalid initialize params: {str(e)}"
            )

        protocol_version = negotiate_protocol_version(params.protocolVersion)
        if protocol_version != params.protocolVersion:
            logger.warning(
                event="protocol_version_mismatch",
                client_version=params.protocolVersion,
                server_version=protocol_version,
            )

        result = MCPInitializeResult(
            protocolVersion=protocol_version,
            capabilities=self.capabilities,
            serverInfo=self.server_info,
            instructions=SERVER_INSTRUCTIONS,
        )

        logger.info(
            event="client_initialized",
            client_info=params.clientInfo.model_dump(),
            protocol_version=protocol_version,
        )

        return JSONRPCHandler.create_response(request.id, result.model_dump(exclude_none=True))

    async def _handle_ping(self, request: JSONRPCRequest) -> JSONRPCResponse:
        return JSONRPCHandler.create_response(
            request.id,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "server": self.server_info.model_dump(),
            },
        )

    async def _handle_tools_list(self, request: JSONRPCRequest) -> RPCResult:
        """List tools, DEFAULT_PAGE_SIZE at a time; the cursor is a start offset."""
        try:
            params = MCPToolsListParams.model_validate(request.params or {})
            start = int(params.cursor) if params.cursor else 0
        except (ValidationError, ValueError):
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Invalid cursor format"
            )

        tools = self.tool_registry.list_tools()
        end = start + DEFAULT_PAGE_SIZE
        page = [
            MCPToolDescriptor(
                name=tool.name, description=tool.description, inputSchema=tool.input_schema()
            )
            for tool in tools[start:end]
        ]

        result = MCPToolsListResult(
            tools=page, nextCursor=str(end) if end < len(tools) else None
        )

        logger.info(
            event="tools_listed",
            total_tools=len(tools),
            returned_tools=len(page),
            cursor=params.cursor,
        )

        return JSONRPCHandler.create_response(request.id, result.model_dump(exclude_none=True))

    async def _handle_tools_call(self, request: JSONRPCRequest) -> RPCResult:
        """
        Run a tool through the registry.

        Argument validation failures and unknown tools come back as a result
        with ``isError`` set; only a registry crash is a protocol error.
        """
        if not request.params:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Tool call requires params"
            )

        try:
            params = MCPToolsCallParams.model_validate(request.params)
        except ValidationError as e:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, f"Invalid tool call params: {str(e)}"
            )

        try:
            execution = await self.tool_registry.execute_tool(
                tool_name=params.name, arguments=params.arguments or {}
            )
        except Exception as e:
            logger.error(event="tool_call_error", tool_name=params.name, error=str(e))
            return JSONRPCHandler.create_error_response(
                request.id, MCP_TOOL_EXECUTION_ERROR, f"Tool execution error: {str(e)}"
            )

        if execution.success:
            result = MCPToolsCallResult.text(execution.result.get("message", ""))
        else:
            logger.warning(
                event="tool_execution_failed", tool_name=params.name, error=execution.error
            )
            result = MCPToolsCallResult.text(
                execution.error or "Tool execution failed", is_error=True
            )

        return JSONRPCHandler.create_response(request.id, result.model_dump())

    async def _handle_set_level(self, request: JSONRPCRequest) -> RPCResult:
        try:
            params = MCPSetLevelParams.model_validate(request.params or {})
            set_log_level(params.level)
        except ValueError as e:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, f"Invalid log level: {str(e)}"
            )

        logger.info(event="log_level_changed", level=params.level)
        return JSONRPCHandler.create_response(request.id, {})

    def health_check(self) -> Dict[str, Any]:
        """Summarize the server state for diagnostics."""
        return {
            "status": "healthy",
            "protocol_version": MCP_PROTOCOL_VERSION,
            "tools_count": len(self.tool_registry.tools),
            "api_key_configured": self.config.blockberry.is_configured,
            "base_url": self.config.blockberry.base_url,
        }
