"""
Signer backed by a private key held in process.
"""
from typing import Any, Dict

from eth_account import Account
from eth_account.signers.local import LocalAccount


class LocalSigner:
    """Signs transactions with an ``eth_account`` local account"""

    def __init__(self, private_key: str):
        """
        Args:
            private_key: Hex private key, with or without 0x prefix

        Raises:
            ValueError: If the key is not a valid secp256k1 private key
        """
        self.account: LocalAccount = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def key(self) -> bytes:
        return bytes(self.account.key)

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        return self.account.sign_transaction(transaction_dict)
