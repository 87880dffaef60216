"""
Get zkApp Transaction Tool for MCP

Looks up a single zkApp transaction by hash on the Blockberry explorer and
returns the verbose text report.

Standard MCP Tool: get-transaction
- Requires a configured Blockberry API key
- Reports a missing transaction as plain text, never as a protocol error
"""

from typing import Any, Dict

from mina_mcp.blockberry import BlockberryClient, format_transaction
from mina_mcp.common.logging import get_logger

from ..tool_registry import Tool, ToolHandler, ToolParameter, ToolParameterType

logger = get_logger(__name__)

TOOL_NAME = "get-transaction"

API_KEY_MISSING_MESSAGE = (
    "Error: Blockberry API key not configured. "
    "Please set the BLOCKBERRY_API_KEY environment variable."
)


class GetTransactionTool(ToolHandler):
    """MCP tool returning the details of one zkApp transaction."""

    def __init__(self, client: BlockberryClient):
        """Initialize the tool with the explorer client."""
        self.client = client

    def get_tool_definition(self) -> Tool:
        """Get the standard MCP tool definition."""
        return Tool(
            name=TOOL_NAME,
            description="Get details of a specific zkApp transaction on the Mina network by its hash",
            parameters=[
                ToolParameter(
                    name="hash",
                    type=ToolParameterType.STRING,
                    description="Transaction hash of the zkApp transaction",
                    required=True,
                ),
            ],
        )

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch and format one transaction.

        Args:
            arguments: Tool arguments containing 'hash'

        Returns:
            Result dict whose 'message' is the text shown to the caller
        """
        tx_hash = arguments["hash"]

        if not self.client.config.is_configured:
            logger.warning(event="get_transaction_unconfigured", tx_hash=tx_hash)
            return {"status": "error", "message": API_KEY_MISSING_MESSAGE, "tool": TOOL_NAME}

        try:
            transaction = await self.client.fetch_transaction_by_hash(tx_hash)

            if not transaction:
                return {
                    "status": "not_found",
                    "message": f"No transaction found with hash {tx_hash}.",
                    "tool": TOOL_NAME,
                }

            formatted = format_transaction(transaction, verbose=True)

            logger.info(event="get_transaction_completed", tx_hash=tx_hash)

            return {
                "status": "success",
                "message": f"zkApp Transaction Details:\n\n{formatted}",
                "tool": TOOL_NAME,
            }

        except Exception as e:
            logger.error(event="get_transaction_tool_error", tx_hash=tx_hash, error=str(e))

            return {
                "status": "error",
                "message": f"Error fetching zkApp transaction: {str(e)}",
                "tool": TOOL_NAME,
            }
