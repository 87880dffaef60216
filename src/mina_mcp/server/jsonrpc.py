"""
JSON-RPC 2.0 messages and the subset of MCP types this server speaks.

Only the lifecycle (initialize, ping, notifications) and the tools surface
are modelled; the server offers no resources, prompts or sampling, and
every tool answers with text content.

References:
- https://www.jsonrpc.org/specification
- https://modelcontextprotocol.io/specification/2025-06-18
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

JSONRPC_VERSION = "2.0"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Implementation-defined server error: a tool raised instead of returning
MCP_TOOL_EXECUTION_ERROR = -32002

MCP_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")

RequestId = Union[str, int]


def negotiate_protocol_version(requested: Optional[str]) -> str:
    """Echo the client's version when supported, otherwise offer ours."""
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return MCP_PROTOCOL_VERSION


class JSONRPCError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCRequest(BaseModel):
    """A call that expects exactly one response with the same id."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCNotification(BaseModel):
    """A one-way message; never answered."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCResponse(BaseModel):
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId
    result: Any


class JSONRPCErrorResponse(BaseModel):
    # id is null when the request could not be read far enough to know it
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[RequestId]
    error: JSONRPCError


IncomingMessage = Union[JSONRPCRequest, JSONRPCNotification]
JSONRPCMessage = Union[JSONRPCRequest, JSONRPCNotification, JSONRPCResponse, JSONRPCErrorResponse]


class MCPMethods:
    """Method names this server dispatches."""

    INITIALIZE = "initialize"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    LOGGING_SET_LEVEL = "logging/setLevel"

    INITIALIZED = "notifications/initialized"
    CANCEL = "notifications/cancelled"


class MCPImplementation(BaseModel):
    """Name and version of a client or server."""

    name: str
    version: str


class MCPCapabilities(BaseModel):
    """Capabilities advertised by this server."""

    experimental: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


class MCPClientCapabilities(BaseModel):
    """Capabilities a client may advertise; accepted but not acted on."""

    experimental: Optional[Dict[str, Any]] = None
    roots: Optional[Dict[str, Any]] = None
    sampling: Optional[Dict[str, Any]] = None
    elicitation: Optional[Dict[str, Any]] = None


class MCPInitializeParams(BaseModel):
    protocolVersion: str
    capabilities: MCPClientCapabilities
    clientInfo: MCPImplementation


class MCPInitializeResult(BaseModel):
    protocolVersion: str
    capabilities: MCPCapabilities
    serverInfo: MCPImplementation
    instructions: Optional[str] = None


class MCPSetLevelParams(BaseModel):
    level: str


class MCPToolDescriptor(BaseModel):
    """One entry of a tools/list result."""

    name: str
    description: str
    inputSchema: Dict[str, Any]


class MCPToolsListParams(BaseModel):
    cursor: Optional[str] = None


class MCPToolsListResult(BaseModel):
    tools: List[MCPToolDescriptor]
    nextCursor: Optional[str] = None


class MCPToolsCallParams(BaseModel):
    name: str
    arguments: Optional[Dict[str, Any]] = None


class MCPTextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class MCPToolsCallResult(BaseModel):
    """tools/call result; tool failures are reported here, not as protocol errors."""

    content: List[MCPTextContent] = Field(default_factory=list)
    isError: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "MCPToolsCallResult":
        return cls(content=[MCPTextContent(text=text)], isError=is_error)


class JSONRPCHandler:
    """Builders and parsers for JSON-RPC envelopes."""

    @staticmethod
    def create_request(
        id: RequestId, method: str, params: Optional[Dict[str, Any]] = None
    ) -> JSONRPCRequest:
        return JSONRPCRequest(id=id, method=method, params=params)

    @staticmethod
    def create_notification(
        method: str, params: Optional[Dict[str, Any]] = None
    ) -> JSONRPCNotification:
        return JSONRPCNotification(method=method, params=params)

    @staticmethod
    def create_response(id: RequestId, result: Any) -> JSONRPCResponse:
        return JSONRPCResponse(id=id, result=result)

    @staticmethod
    def create_error_response(
        id: Optional[RequestId], code: int, message: str, data: Optional[Any] = None
    ) -> JSONRPCErrorResponse:
        error = JSONRPCError(code=code, message=message, data=data)
        return JSONRPCErrorResponse(id=id, error=error)

    @staticmethod
    def parse_message(data: Any) -> JSONRPCMessage:
        """
        Classify a decoded JSON object as a JSON-RPC message.

        Raises:
            ValueError: if the object is not a valid JSON-RPC message
                (pydantic's ValidationError is a ValueError)
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid JSON-RPC message: expected an object, got {type(data).__name__}"
            )

        if "method" in data:
            if "id" in data:
                return JSONRPCRequest.model_validate(data)
            return JSONRPCNotification.model_validate(data)

        if "id" in data and "result" in data:
            return JSONRPCResponse.model_validate(data)
        if "id" in data and "error" in data:
            return JSONRPCErrorResponse.model_validate(data)

        raise ValueError(f"Invalid JSON-RPC message: {data}")

    @staticmethod
    def is_batch(data: Any) -> bool:
        return isinstance(data, list)

    @staticmethod
    def validate_batch(data: List[Any]) -> List[IncomingMessage]:
        """Parse a batch; only requests and notifications may appear in it."""
        batch: List[IncomingMessage] = []
        for item in data:
            message = JSONRPCHandler.parse_message(item)
            if not isinstance(message, (JSONRPCRequest, JSONRPCNotification)):
                raise ValueError(f"Invalid message in batch: {item}")
            batch.append(message)
        return batch
