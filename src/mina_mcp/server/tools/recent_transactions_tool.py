"""
Recent zkApp Transactions Tool for MCP

Lists one page of recent zkApp transactions, optionally filtered by
account, as concise summaries.

Standard MCP Tool: get-recent-transactions
- page >= 0, 1 <= size <= 50 and orderBy in {ASC, DESC} are enforced by the
  registry before the handler runs
"""

from typing import Any, Dict

from mina_mcp.blockberry import BlockberryClient, format_transaction
from mina_mcp.common.logging import get_logger

from ..tool_registry import Tool, ToolHandler, ToolParameter, ToolParameterType
from .get_transaction_tool import API_KEY_MISSING_MESSAGE

logger = get_logger(__name__)

TOOL_NAME = "get-recent-transactions"

DEFAULT_PAGE = 0
DEFAULT_SIZE = 20
MAX_SIZE = 50
DEFAULT_ORDER_BY = "DESC"
DEFAULT_SORT_BY = "AGE"


def _argument(arguments: Dict[str, Any], name: str, default: Any) -> Any:
    # Explicit nulls fall back to the default as well
    value = arguments.get(name)
    return default if value is None else value


class RecentTransactionsTool(ToolHandler):
    """MCP tool listing recent zkApp transactions."""

    def __init__(self, client: BlockberryClient):
        """Initialize the tool with the explorer client."""
        self.client = client

    def get_tool_definition(self) -> Tool:
        """Get the standard MCP tool definition."""
        return Tool(
            name=TOOL_NAME,
            description="Get recent zkApp transactions on the Mina network",
            parameters=[
                ToolParameter(
                    name="page",
                    type=ToolParameterType.INTEGER,
                    description="Page number (starts at 0)",
                    default=DEFAULT_PAGE,
                    minimum=0,
                ),
                ToolParameter(
                    name="size",
                    type=ToolParameterType.INTEGER,
                    description=f"Number of transactions per page (max: {MAX_SIZE})",
                    default=DEFAULT_SIZE,
                    minimum=1,
                    maximum=MAX_SIZE,
                ),
                ToolParameter(
                    name="accountId",
                    type=ToolParameterType.STRING,
                    description="Filter by account ID (optional)",
                ),
                ToolParameter(
                    name="orderBy",
                    type=ToolParameterType.STRING,
                    description="Sorting direction (ASC or DESC)",
                    default=DEFAULT_ORDER_BY,
                    enum=["ASC", "DESC"],
                ),
                ToolParameter(
                    name="sortBy",
                    type=ToolParameterType.STRING,
                    description="Sorting parameter (default: AGE)",
                    default=DEFAULT_SORT_BY,
                ),
            ],
        )

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch one page of transactions and summarize each of them.

        Args:
            arguments: Tool arguments; omitted values take their defaults

        Returns:
            Result dict whose 'message' is the text shown to the caller
        """
        page = _argument(arguments, "page", DEFAULT_PAGE)
        size = _argument(arguments, "size", DEFAULT_SIZE)
        account_id = arguments.get("accountId")
        order_by = _argument(arguments, "orderBy", DEFAULT_ORDER_BY)
        sort_by = _argument(arguments, "sortBy", DEFAULT_SORT_BY)

        if not self.client.config.is_configured:
            logger.warning(event="recent_transactions_unconfigured")
            return {"status": "error", "message": API_KEY_MISSING_MESSAGE, "tool": TOOL_NAME}

        try:
            transactions = await self.client.fetch_recent_transactions(
                page=page,
                size=size,
                order_by=order_by,
                sort_by=sort_by,
                account_id=account_id,
            )

            if not transactions:
                message = (
                    f"No zkApp transactions found for account {account_id}."
                    if account_id
                    else "No recent zkApp transactions found."
                )
                return {"status": "not_found", "message": message, "tool": TOOL_NAME}

            summaries = [format_transaction(tx, verbose=False) for tx in transactions]
            scope = f" for {account_id}" if account_id else ""

            logger.info(
                event="recent_transactions_completed",
                page=page,
                size=size,
                results=len(transactions),
                account=account_id,
            )

            return {
                "status": "success",
                "message": (
                    f"Recent zkApp Transactions{scope}:\n"
                    f"Page {page + 1}, {len(transactions)} results\n\n" + "\n\n".join(summaries)
                ),
                "tool": TOOL_NAME,
            }

        except Exception as e:
            logger.error(event="recent_transactions_tool_error", error=str(e))

            return {
                "status": "error",
                "message": f"Error fetching zkApp transactions: {str(e)}",
                "tool": TOOL_NAME,
            }
