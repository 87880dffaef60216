"""
Blockberry explorer client for zkApp transactions.

Each call issues exactly one GET request. Transport failures, non-2xx
statuses and undecodable bodies are logged and turned into ``None`` so the
tool layer can answer with a user-facing message instead of crashing.
"""

from typing import Any, Dict, List, Optional

import httpx

from mina_mcp.common.config import BlockberryConfig
from mina_mcp.common.logging import TimedLogger, get_logger

logger = get_logger(__name__)


class BlockberryClient:
    """Async client for the Blockberry zkApp transaction endpoints."""

    def __init__(
        self,
        config: BlockberryConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Blockberry settings (API key, base URL, timeout)
            transport: Optional httpx transport, used to fake the upstream in tests
        """
        self.config = config
        self.transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
            "x-api-key": self.config.api_key,
        }

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.config.request_timeout
        ) as client:
            response = await client.get(self._url(path), params=params, headers=self.headers)
            response.raise_for_status()
            return response.json()

    async def fetch_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one zkApp transaction.

        Returns:
            The raw transaction record, or None on any failure
        """
        try:
            with TimedLogger(logger, "blockberry_transaction_fetched", tx_hash=tx_hash):
                data = await self._get(f"txs/{tx_hash}")
        except httpx.HTTPStatusError as e:
            logger.error(
                event="blockberry_transaction_fetch_failed",
                tx_hash=tx_hash,
                status_code=e.response.status_code,
                error=str(e),
                response=e.response.text[:500],
            )
            return None
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.error(event="blockberry_transaction_fetch_failed", tx_hash=tx_hash, error=str(e))
            return None

        if not isinstance(data, dict) or not data:
            logger.warning(
                event="blockberry_transaction_unexpected_payload",
                tx_hash=tx_hash,
                payload_type=type(data).__name__,
            )
            return None

        return data

    async def fetch_recent_transactions(
        self,
        page: int = 0,
        size: int = 20,
        order_by: str = "DESC",
        sort_by: str = "AGE",
        account_id: Optional[str] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Fetch one page of recent zkApp transactions.

        Bounds on page, size and order_by are enforced by the tool schema.

        Returns:
            Raw transaction records of the page, or None on any failure
        """
        params: Dict[str, Any] = {
            "page": page,
            "size": size,
            "orderBy": order_by,
            "sortBy": sort_by,
        }
        if account_id:
            params["account"] = account_id

        try:
            with TimedLogger(
                logger, "blockberry_transactions_fetched", page=page, size=size, account=account_id
            ):
                data = await self._get("txs", params=params)
        except httpx.HTTPStatusError as e:
            logger.error(
                event="blockberry_transactions_fetch_failed",
                status_code=e.response.status_code,
                error=str(e),
                response=e.response.text[:500],
            )
            return None
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.error(event="blockberry_transactions_fetch_failed", error=str(e))
            return None

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            records = data.get("data")
            if isinstance(records, list):
                return records
            return []

        logger.warning(
            event="blockberry_transactions_unexpected_payload",
            payload_type=type(data).__name__,
        )
        return None
