"""
Helpers shared by the SecureNotes SDK tests.
"""
from typing import Optional

from securenotes_sdk.session import SessionContext
from securenotes_sdk.wallet import LocalWallet

from .fake_ledger import FakeChain, FakeLedger, FakePendingTransaction, TEST_CONTRACT

# Test constants used throughout tests
TEST_RPC_URL = "https://rpc.example.com"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
ALICE_KEY = "0x" + "11" * 32
BOB_KEY = "0x" + "22" * 32
CAROL_KEY = "0x" + "33" * 32


def make_context(chain: FakeChain, wallet: LocalWallet) -> SessionContext:
    """Open a session for ``wallet`` on the fake chain"""
    return SessionContext(
        wallet,
        wallet.address,
        FakeLedger(chain, wallet.address),
        signer=wallet.get_signer()
    )


def register_key(chain: FakeChain, wallet: LocalWallet, key: Optional[str] = None) -> str:
    """Put ``wallet``'s encryption key on the chain without a transaction"""
    key = key or wallet.get_encryption_public_key(wallet.address)
    chain.keys[wallet.address.lower()] = key
    return key


__all__ = [
    "FakeChain",
    "FakeLedger",
    "FakePendingTransaction",
    "TEST_CONTRACT",
    "TEST_RPC_URL",
    "TEST_PRIV_KEY",
    "ALICE_KEY",
    "BOB_KEY",
    "CAROL_KEY",
    "make_context",
    "register_key",
]
