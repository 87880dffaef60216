"""
Shared fixtures: upstream payloads in each known layout and helpers to fake
the Blockberry API with httpx.MockTransport.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from mina_mcp.common.config import BlockberryConfig, Config

TEST_BASE_URL = "https://blockberry.test/mina-mainnet/v1/zkapps"
TEST_API_KEY = "test-key"


@pytest.fixture
def single_transaction() -> Dict[str, Any]:
    """Layout returned by the transaction-by-hash endpoint."""
    return {
        "txHash": "5JuYk2e4NjmXHrRZxrTZsKJhcySYYmu88bMikY1S9SV6HUTaSP9S",
        "blockHeight": 356789,
        "txStatus": "Applied",
        "timestamp": 1704067200000,
        "fee": 0.1,
        "feeUsd": 0.05,
        "nonce": 12,
        "memo": "E4YM2vTHhWEg66xpj52JErHUBU4pZ1yageL4TVDDpTTSsv8mK6YaH",
        "feePayerAddress": "B62qpayer",
        "feePayerName": "Payer Wallet",
        "updatedAccounts": [
            {
                "accountAddress": "B62qzkapp",
                "accountName": "Token Contract",
                "isZkappAccount": True,
                "balanceChange": -1.5,
                "balanceChangeUsd": -0.75,
                "tokenId": "wSHV2S4qX9jFsLjQo8r1BsMLH2ZRKsZx6EJd1sbozGPieEC4Jf",
                "callData": "0",
                "callDepth": 0,
                "update": {"appState": ["1", None, "", "42"]},
            },
            {
                "accountAddress": "B62qreceiver",
                "isZkappAccount": False,
                "balanceChange": 1.5,
            },
        ],
    }


@pytest.fixture
def list_item_transaction() -> Dict[str, Any]:
    """Layout of one item of the listing endpoint."""
    return {
        "hash": "5Jlist",
        "age": 45,
        "status": "Applied",
        "fee": 0.01,
        "nonce": 3,
        "memo": "",
        "proverAddress": "B62qprover",
        "proverName": "Prover Co",
        "isAccountHijack": False,
        "updatesCount": 2,
        "updatedAccounts": [
            {"accountAddress": "B62qa", "accountName": "Alpha", "isZkappAccount": True},
            {"accountAddress": "B62qb", "isZkappAccount": False},
        ],
    }


@pytest.fixture
def legacy_transaction() -> Dict[str, Any]:
    """Older layout carrying the raw zkApp command."""
    return {
        "status": "applied",
        "dateTime": "2024-01-01T00:00:00Z",
        "fee": 0.2,
        "zkappCommand": {
            "feePayer": {"body": {"publicKey": "B62qlegacypayer", "fee": "200000000", "nonce": 7}},
            "accountUpdates": [
                {"body": {"publicKey": "B62qlegacy1", "update": {"appState": ["5", None]}}},
                {"body": {"publicKey": "B62qlegacy2"}},
            ],
        },
    }


@pytest.fixture
def test_config() -> Config:
    """Configuration pointing at the fake explorer."""
    return Config(blockberry=BlockberryConfig(api_key=TEST_API_KEY, base_url=TEST_BASE_URL))


@pytest.fixture
def unconfigured_config() -> Config:
    """Configuration without an API key."""
    return Config(blockberry=BlockberryConfig(api_key="", base_url=TEST_BASE_URL))


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


@pytest.fixture
def json_transport() -> Callable[..., RecordingTransport]:
    """Build a transport answering every request with the given JSON and status."""

    def build(payload: Any, status_code: int = 200) -> RecordingTransport:
        return RecordingTransport(
            lambda request: httpx.Response(
                status_code,
                content=json.dumps(payload).encode(),
                headers={"Content-Type": "application/json"},
            )
        )

    return build


@pytest.fixture
def failing_transport() -> RecordingTransport:
    """Transport that fails every request at the network level."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return RecordingTransport(handler)
