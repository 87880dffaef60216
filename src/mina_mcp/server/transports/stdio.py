"""
Standard I/O Transport for MCP

MCP clients spawn the server as a subprocess and exchange newline-delimited
JSON-RPC messages over stdin/stdout. Stdout carries protocol messages only;
diagnostics go to stderr.

Reference: https://modelcontextprotocol.io/specification/2025-06-18/basic/transports
"""

import asyncio
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, TextIO

from mina_mcp.common.logging import get_logger

from ..jsonrpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    JSONRPCHandler,
    JSONRPCNotification,
    JSONRPCRequest,
)
from ..mcp_server import MinaMCPServer

logger = get_logger(__name__)


class StdioTransport:
    """
    Standard I/O transport for MCP communication.

    Reads one JSON-RPC message (or batch) per line and writes one response
    per line.
    """

    def __init__(
        self,
        mcp_server: MinaMCPServer,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        """Initialize stdio transport."""
        self.mcp_server = mcp_server
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stdio")
        self.running = False

    async def run(self) -> None:
        """Serve messages until EOF on stdin."""
        self.running = True
        logger.info(event="stdio_transport_started", message="MCP stdio transport started")

        loop = asyncio.get_running_loop()

        try:
            while self.running:
                line = await loop.run_in_executor(self.executor, self.stdin.readline)

                if not line:
                    logger.info(event="stdio_eof", message="Received EOF, shutting down")
                    break

                line = line.strip()
                if not line:
                    continue

                await self.handle_message(line)
        finally:
            self.running = False
            self.executor.shutdown(wait=False)
            logger.info(event="stdio_transport_stopped")

    async def handle_message(self, message: str) -> None:
        """Handle one raw line from stdin."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            error_response = JSONRPCHandler.create_error_response(
                None, PARSE_ERROR, f"Parse error: {str(e)}"
            )
            await self._write_stdout(error_response.model_dump())
            return

        try:
            if JSONRPCHandler.is_batch(data):
                responses = await self._handle_batch(data)
                if responses:
                    await self._write_stdout(responses)
                return

            response = await self._dispatch(data)
            if response is not None:
                await self._write_stdout(response)

        except ValueError as e:
            error_response = JSONRPCHandler.create_error_response(
                None, INVALID_REQUEST, f"Invalid request: {str(e)}"
            )
            await self._write_stdout(error_response.model_dump())

        except Exception as e:
            logger.error(event="message_handle_error", error=str(e))
            error_response = JSONRPCHandler.create_error_response(
                None, INTERNAL_ERROR, f"Internal error: {str(e)}"
            )
            await self._write_stdout(error_response.model_dump())

    async def _dispatch(self, data: Any) -> Optional[Dict[str, Any]]:
        rpc_message = JSONRPCHandler.parse_message(data)

        if isinstance(rpc_message, JSONRPCRequest):
            response = await self.mcp_server.handle_request(rpc_message)
            return response.model_dump() if response else None

        if isinstance(rpc_message, JSONRPCNotification):
            await self.mcp_server.handle_notification(rpc_message)
            return None

        # Responses from the client are not expected by this server
        logger.warning(event="unexpected_message_type", message_type=type(rpc_message).__name__)
        return None

    async def _handle_batch(self, data: List[Any]) -> List[Dict[str, Any]]:
        batch = JSONRPCHandler.validate_batch(data)
        responses = []

        for message in batch:
            if isinstance(message, JSONRPCRequest):
                response = await self.mcp_server.handle_request(message)
                if response:
                    responses.append(response.model_dump())
            else:
                await self.mcp_server.handle_notification(message)

        return responses

    async def _write_stdout(self, data: Any) -> None:
        """Write one JSON-RPC message to stdout."""
        message = json.dumps(data, separators=(",", ":"))

        def write() -> None:
            self.stdout.write(message + "\n")
            self.stdout.flush()

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self.executor, write)
