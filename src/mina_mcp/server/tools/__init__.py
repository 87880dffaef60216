"""
MCP Tools Package

Mina zkApp transaction tools backed by the Blockberry explorer.
"""

from .get_transaction_tool import GetTransactionTool
from .recent_transactions_tool import RecentTransactionsTool

__all__ = [
    "GetTransactionTool",
    "RecentTransactionsTool",
]
