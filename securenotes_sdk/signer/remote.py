"""
Signer that delegates to a wallet over JSON-RPC.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from hexbytes import HexBytes
from web3 import Web3


@dataclass
class RemoteSignedTransaction:
    """Signed transaction returned by ``eth_signTransaction``"""
    raw_transaction: HexBytes


class RemoteSigner:
    """
    Signs through ``eth_signTransaction`` on a wallet endpoint.

    Args:
        request: Callable performing a JSON-RPC call, ``request(method, params)``
        address: Account the wallet signs for
    """

    def __init__(self, request: Callable[[str, List[Any]], Any], address: str):
        self._request = request
        self.address = address

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> RemoteSignedTransaction:
        tx = {"from": self.address}
        for key, value in transaction_dict.items():
            if isinstance(value, bool):
                tx[key] = value
            elif isinstance(value, (int, bytes)):
                tx[key] = Web3.to_hex(value)
            else:
                tx[key] = value

        result = self._request("eth_signTransaction", [tx])
        # geth/Clef answer {"raw": ..., "tx": ...}, other bridges the raw hex alone
        raw = result.get("raw") if isinstance(result, dict) else result
        if not raw:
            raise ValueError(f"Wallet returned no signed transaction: {result!r}")
        return RemoteSignedTransaction(raw_transaction=HexBytes(raw))
