"""
Blockberry explorer integration.

HTTP client for the zkApp transaction endpoints plus the layout-tolerant
models and text formatter for the returned records.
"""

from .client import BlockberryClient
from .formatter import format_transaction
from .models import TransactionShape, detect_shape, parse_transaction

__all__ = [
    "BlockberryClient",
    "format_transaction",
    "TransactionShape",
    "detect_shape",
    "parse_transaction",
]
