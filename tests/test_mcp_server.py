"""
Tests for the MCP protocol layer

Covers JSON-RPC envelopes, the capabilities handshake, tools/list
pagination, tools/call results and the newline-delimited stdio transport.
"""

import io
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest

from mina_mcp.server.jsonrpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    MCP_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    JSONRPCErrorResponse,
    JSONRPCHandler,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MCPClientCapabilities,
    MCPImplementation,
    MCPInitializeParams,
    MCPMethods,
)
from mina_mcp.server.mcp_server import MinaMCPServer
from mina_mcp.server.tool_registry import ToolExecution
from mina_mcp.server.transports import StdioTransport


@pytest.fixture
def mcp_server(test_config, json_transport, single_transaction):
    """Server whose explorer answers every request with one transaction."""
    return MinaMCPServer(test_config, transport=json_transport(single_transaction))


class TestJSONRPCProtocol:
    """JSON-RPC 2.0 envelope handling."""

    def test_create_request(self):
        request = JSONRPCHandler.create_request(
            id="test-123", method="tools/list", params={"cursor": "0"}
        )

        assert request.jsonrpc == "2.0"
        assert request.id == "test-123"
        assert request.params == {"cursor": "0"}

    def test_create_error_response(self):
        error_response = JSONRPCHandler.create_error_response(
            id=7, code=INVALID_PARAMS, message="Invalid params"
        )

        assert error_response.id == 7
        assert error_response.error.code == -32602
        assert error_response.error.message == "Invalid params"

    def test_parse_request_and_notification(self):
        request = JSONRPCHandler.parse_message(
            {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        )
        notification = JSONRPCHandler.parse_message(
            {"jsonrpc": "2.0", "method": MCPMethods.INITIALIZED}
        )

        assert isinstance(request, JSONRPCRequest)
        assert isinstance(notification, JSONRPCNotification)

    def test_parse_rejects_non_objects(self):
        with pytest.raises(ValueError):
            JSONRPCHandler.parse_message(["not", "an", "object"])

    def test_batch_validation(self):
        batch = JSONRPCHandler.validate_batch(
            [
                {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                {"jsonrpc": "2.0", "method": MCPMethods.INITIALIZED},
            ]
        )
        assert [type(message) for message in batch] == [JSONRPCRequest, JSONRPCNotification]

        with pytest.raises(ValueError):
            JSONRPCHandler.validate_batch([{"jsonrpc": "2.0", "id": 1, "result": {}}])


class TestCapabilitiesHandshake:
    """Initialize negotiation."""

    @pytest.mark.asyncio
    async def test_initialize_request(self, mcp_server):
        params = MCPInitializeParams(
            protocolVersion=MCP_PROTOCOL_VERSION,
            capabilities=MCPClientCapabilities(),
            clientInfo=MCPImplementation(name="TestClient", version="1.0.0"),
        )
        request = JSONRPCHandler.create_request(
            id="init-1", method=MCPMethods.INITIALIZE, params=params.model_dump()
        )

        response = await mcp_server.handle_request(request)

        assert isinstance(response, JSONRPCResponse)
        result = response.result
        assert result["protocolVersion"] == MCP_PROTOCOL_VERSION
        assert result["serverInfo"] == {"name": "mina-blockchain", "version": "1.0.0"}
        assert result["capabilities"]["tools"] == {"listChanged": False}
        assert "instructions" in result

    @pytest.mark.asyncio
    async def test_older_supported_version_is_echoed(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id=1,
            method=MCPMethods.INITIALIZE,
            params={"protocolVersion": "2024-11-05", "capabilities": {}},
        )

        response = await mcp_server.handle_request(request)

        assert response.result["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_unknown_version_gets_server_version(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id=1,
            method=MCPMethods.INITIALIZE,
            params={
                "protocolVersion": "1999-01-01",
                "capabilities": {},
                "clientInfo": {"name": "old", "version": "0"},
            },
        )

        response = await mcp_server.handle_request(request)

        assert response.result["protocolVersion"] == MCP_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_initialize_requires_params(self, mcp_server):
        request = JSONRPCHandler.create_request(id=1, method=MCPMethods.INITIALIZE)

        response = await mcp_server.handle_request(request)

        assert isinstance(response, JSONRPCErrorResponse)
        assert response.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_notifications_are_accepted(self, mcp_server):
        await mcp_server.handle_notification(
            JSONRPCHandler.create_notification(method=MCPMethods.INITIALIZED)
        )
        await mcp_server.handle_notification(
            JSONRPCHandler.create_notification(
                method=MCPMethods.CANCEL, params={"requestId": 3}
            )
        )
        await mcp_server.handle_notification(
            JSONRPCHandler.create_notification(method="notifications/unknown")
        )

    @pytest.mark.asyncio
    async def test_ping(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(id=2, method=MCPMethods.PING)
        )

        assert response.result["server"]["name"] == "mina-blockchain"
        assert "timestamp" in response.result


class TestLoggingSetLevel:
    """logging/setLevel adjusts the server's own log level."""

    @pytest.fixture(autouse=True)
    def restore_root_level(self):
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    @pytest.mark.asyncio
    async def test_capability_is_advertised(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id=1, method=MCPMethods.INITIALIZE, params={"protocolVersion": MCP_PROTOCOL_VERSION}
        )

        response = await mcp_server.handle_request(request)

        assert response.result["capabilities"]["logging"] == {}

    @pytest.mark.asyncio
    async def test_set_level(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(
                id=3, method=MCPMethods.LOGGING_SET_LEVEL, params={"level": "error"}
            )
        )

        assert isinstance(response, JSONRPCResponse)
        assert response.result == {}
        assert logging.getLogger().level == logging.ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"level": "verbose"}, {}, None])
    async def test_invalid_level(self, mcp_server, params):
        root_level = logging.getLogger().level
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(id=4, method=MCPMethods.LOGGING_SET_LEVEL, params=params)
        )

        assert isinstance(response, JSONRPCErrorResponse)
        assert response.error.code == INVALID_PARAMS
        assert logging.getLogger().level == root_level


class TestToolsList:
    """tools/list advertises both tools with their schemas."""

    @pytest.mark.asyncio
    async def test_lists_both_tools(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(id=1, method=MCPMethods.TOOLS_LIST)
        )

        tools = {tool["name"]: tool for tool in response.result["tools"]}
        assert set(tools) == {"get-transaction", "get-recent-transactions"}
        assert "nextCursor" not in response.result

        size_schema = tools["get-recent-transactions"]["inputSchema"]["properties"]["size"]
        assert size_schema["minimum"] == 1
        assert size_schema["maximum"] == 50
        assert tools["get-transaction"]["inputSchema"]["required"] == ["hash"]

    @pytest.mark.asyncio
    async def test_cursor_past_end(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(
                id=1, method=MCPMethods.TOOLS_LIST, params={"cursor": "50"}
            )
        )

        assert response.result["tools"] == []

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(
                id=1, method=MCPMethods.TOOLS_LIST, params={"cursor": "abc"}
            )
        )

        assert isinstance(response, JSONRPCErrorResponse)
        assert response.error.code == INVALID_PARAMS


class TestToolsCall:
    """tools/call returns text content or an error result."""

    @pytest.mark.asyncio
    async def test_get_transaction(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id="call-1",
            method=MCPMethods.TOOLS_CALL,
            params={"name": "get-transaction", "arguments": {"hash": "5Jabc"}},
        )

        response = await mcp_server.handle_request(request)

        assert isinstance(response, JSONRPCResponse)
        result = response.result
        assert result["isError"] is False
        assert result["content"][0]["type"] == "text"
        assert result["content"][0]["text"].startswith("zkApp Transaction Details:")

    @pytest.mark.asyncio
    async def test_validation_failure_is_error_result(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id="call-2",
            method=MCPMethods.TOOLS_CALL,
            params={"name": "get-recent-transactions", "arguments": {"size": 51}},
        )

        response = await mcp_server.handle_request(request)

        assert isinstance(response, JSONRPCResponse)
        assert response.result["isError"] is True
        assert "must be <= 50" in response.result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, mcp_server):
        request = JSONRPCHandler.create_request(
            id="call-3",
            method=MCPMethods.TOOLS_CALL,
            params={"name": "get-block", "arguments": {}},
        )

        response = await mcp_server.handle_request(request)

        assert response.result["isError"] is True
        assert "Tool 'get-block' not found" in response.result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_registry_failure(self, mcp_server):
        with patch.object(mcp_server.tool_registry, "execute_tool", new_callable=AsyncMock) as mock:
            mock.return_value = ToolExecution(success=False, error="Tool execution failed")

            response = await mcp_server.handle_request(
                JSONRPCHandler.create_request(
                    id="call-4",
                    method=MCPMethods.TOOLS_CALL,
                    params={"name": "get-transaction", "arguments": {"hash": "x"}},
                )
            )

        assert response.result["isError"] is True
        assert response.result["content"][0]["text"] == "Tool execution failed"

    @pytest.mark.asyncio
    async def test_missing_params(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(id="call-5", method=MCPMethods.TOOLS_CALL)
        )

        assert isinstance(response, JSONRPCErrorResponse)
        assert response.error.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_invalid_method(self, mcp_server):
        response = await mcp_server.handle_request(
            JSONRPCHandler.create_request(id="x", method="resources/list", params={})
        )

        assert isinstance(response, JSONRPCErrorResponse)
        assert response.error.code == METHOD_NOT_FOUND


class TestStdioTransport:
    """Newline-delimited framing over stdin/stdout."""

    @staticmethod
    def read_messages(stdout: io.StringIO):
        return [json.loads(line) for line in stdout.getvalue().splitlines()]

    @pytest.mark.asyncio
    async def test_parse_error(self, mcp_server):
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=io.StringIO(), stdout=stdout)

        await transport.handle_message("{not json")

        (message,) = self.read_messages(stdout)
        assert message["id"] is None
        assert message["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_invalid_request(self, mcp_server):
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=io.StringIO(), stdout=stdout)

        await transport.handle_message('"just a string"')

        (message,) = self.read_messages(stdout)
        assert message["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_request_response_round_trip(self, mcp_server):
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=io.StringIO(), stdout=stdout)

        await transport.handle_message('{"jsonrpc":"2.0","id":5,"method":"ping"}')

        (message,) = self.read_messages(stdout)
        assert message["id"] == 5
        assert message["result"]["server"]["name"] == "mina-blockchain"
        assert stdout.getvalue().endswith("\n")
        assert stdout.getvalue().count("\n") == 1

    @pytest.mark.asyncio
    async def test_notification_writes_nothing(self, mcp_server):
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=io.StringIO(), stdout=stdout)

        await transport.handle_message(
            '{"jsonrpc":"2.0","method":"notifications/initialized"}'
        )

        assert stdout.getvalue() == ""

    @pytest.mark.asyncio
    async def test_batch(self, mcp_server):
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=io.StringIO(), stdout=stdout)

        await transport.handle_message(
            json.dumps(
                [
                    {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                    {"jsonrpc": "2.0", "method": "notifications/initialized"},
                    {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                ]
            )
        )

        (responses,) = self.read_messages(stdout)
        assert [response["id"] for response in responses] == [1, 2]

    @pytest.mark.asyncio
    async def test_run_until_eof(self, mcp_server):
        requests = [
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": "test", "version": "1"},
                },
            },
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {"name": "get-transaction", "arguments": {"hash": "5Jabc"}},
            },
        ]
        stdin = io.StringIO("\n".join(json.dumps(r) for r in requests) + "\n\n")
        stdout = io.StringIO()
        transport = StdioTransport(mcp_server, stdin=stdin, stdout=stdout)

        await transport.run()

        messages = self.read_messages(stdout)
        assert [message["id"] for message in messages] == [1, 2]
        assert "Transaction Hash: 5JuYk" in messages[1]["result"]["content"][0]["text"]
        assert transport.running is False
