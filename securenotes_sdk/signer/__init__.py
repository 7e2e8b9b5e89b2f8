"""
Transaction signers for the SecureNotes SDK.
"""
from typing import Any, Dict, Protocol

from .local import LocalSigner
from .remote import RemoteSigner, RemoteSignedTransaction


class Signer(Protocol):
    """Protocol for transaction signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object exposing ``raw_transaction``"""
        ...


__all__ = ["Signer", "LocalSigner", "RemoteSigner", "RemoteSignedTransaction"]
