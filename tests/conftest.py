"""
Pytest fixtures for the SecureNotes SDK tests.
"""
import pytest
from unittest.mock import MagicMock
from web3 import Web3
from web3.providers import BaseProvider
from web3.providers.rpc import HTTPProvider

from securenotes_sdk._rate_limited_log import reset_rate_limits
from securenotes_sdk.wallet import LocalWallet
from tests.test_helpers import (
    FakeChain, make_context, ALICE_KEY, BOB_KEY, CAROL_KEY, TEST_CONTRACT
)


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    Works for all tests because it is autouse.
    """
    def _dummy(self, method, params=None, _=None):
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x7a69"}  # 31337
        if method in {"eth_gasPrice"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}  # 1 gwei
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def alice_wallet():
    return LocalWallet(ALICE_KEY)


@pytest.fixture
def bob_wallet():
    return LocalWallet(BOB_KEY)


@pytest.fixture
def carol_wallet():
    return LocalWallet(CAROL_KEY)


@pytest.fixture
def chain(alice_wallet):
    """Fresh contract state; Alice deployed it"""
    return FakeChain(owner=alice_wallet.address)


@pytest.fixture
def alice_ctx(chain, alice_wallet):
    return make_context(chain, alice_wallet)


@pytest.fixture
def bob_ctx(chain, bob_wallet):
    return make_context(chain, bob_wallet)


@pytest.fixture
def mock_w3():
    """
    Mock Web3 instance modelling the calls the ledger adapter makes.
    """
    provider = MagicMock(spec=BaseProvider)
    eth = MagicMock()
    eth.chain_id = 31337
    eth.gas_price = 1000000000  # 1 gwei
    eth.get_transaction_count = MagicMock(return_value=7)
    eth.send_raw_transaction = MagicMock(return_value=bytes.fromhex("aa" * 32))

    def wait_for_receipt(tx_hash, **kwargs):
        return {
            "transactionHash": tx_hash,
            "blockNumber": 12345,
            "blockHash": bytes.fromhex("abcdef1234567890" * 4),
            "status": 1,
            "gasUsed": 85000,
            "from": "0x1234567890123456789012345678901234567890",
            "to": TEST_CONTRACT,
            "logs": []
        }

    eth.wait_for_transaction_receipt = MagicMock(side_effect=wait_for_receipt)
    provider.eth = eth

    mock = MagicMock(spec=Web3)
    mock.eth = eth
    return mock
