"""
SecureNotes contract adapter.

Wraps the on-chain ``SecureNotes`` contract: view calls return SDK models,
state-changing calls are signed locally and return a ``PendingTransaction``
that confirms or fails when waited on.
"""
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Protocol, TYPE_CHECKING

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.types import TxReceipt as Web3TxReceipt

from .exceptions import LedgerUnavailable, TransactionFailed
from .models import IconListing, IconType, Note, ReceivedGift, TxReceipt
from .signer import Signer

if TYPE_CHECKING:
    from .config import ClientConfig


class PendingTransaction(Protocol):
    """Handle to a submitted transaction"""
    tx_hash: str

    def wait(self) -> TxReceipt:
        """Block until confirmed; raise TransactionFailed if it reverts or times out"""
        ...


class Ledger(Protocol):
    """The contract surface used by the SDK components"""

    def icon_count(self) -> int: ...

    def get_icon(self, icon_id: int) -> IconListing: ...

    def get_received_icons(self, address: str) -> List[ReceivedGift]: ...

    def note_count(self) -> int: ...

    def get_note(self, note_id: int) -> Note: ...

    def encryption_key(self, address: str) -> str: ...

    def add_icon(self, icon_type: IconType, price: int) -> PendingTransaction: ...

    def buy_and_send_icon(self, icon_id: int, recipient: str, value: int) -> PendingTransaction: ...

    def send_encrypted_note(self, recipient: str, payload: str) -> PendingTransaction: ...

    def read_encrypted_note(self, note_id: int) -> PendingTransaction: ...

    def delete_note(self, note_id: int) -> PendingTransaction: ...

    def register_public_key(self, key: str) -> PendingTransaction: ...


class Web3PendingTransaction:
    """Pending transaction on a web3 node"""

    def __init__(
        self,
        w3: Web3,
        tx_hash: Any,
        action: str,
        timeout: int = 120,
        poll_latency: float = 0.1,
        logger: Optional[logging.Logger] = None
    ):
        self.w3 = w3
        self._raw_hash = tx_hash
        self.tx_hash = Web3.to_hex(tx_hash) if isinstance(tx_hash, bytes) else str(tx_hash)
        self.action = action
        self.timeout = timeout
        self.poll_latency = poll_latency
        self.logger = logger or logging.getLogger(__name__)

    def wait(self) -> TxReceipt:
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                self._raw_hash,
                timeout=self.timeout,
                poll_latency=self.poll_latency
            )
        except TimeExhausted as e:
            self.logger.error(f"{self.action} not confirmed within {self.timeout}s: {self.tx_hash}")
            raise TransactionFailed(f"{self.action} was not confirmed: {e}", tx_hash=self.tx_hash)
        except Exception as e:
            self.logger.error(f"Waiting for {self.action} receipt failed: {e}")
            raise TransactionFailed(f"{self.action} receipt unavailable: {e}", tx_hash=self.tx_hash)

        converted = convert_receipt(receipt)
        if converted.status != 1:
            self.logger.warning(f"{self.action} reverted in block {converted.block_number}: {self.tx_hash}")
            raise TransactionFailed(f"{self.action} reverted", tx_hash=self.tx_hash)

        self.logger.info(f"{self.action} confirmed in block {converted.block_number}: {self.tx_hash}")
        return converted


def convert_receipt(web3_receipt: Web3TxReceipt) -> TxReceipt:
    """
    Convert a Web3 receipt to our TxReceipt model

    Args:
        web3_receipt: The Web3 transaction receipt

    Returns:
        Our TxReceipt model
    """
    receipt_dict = dict(web3_receipt)

    # Convert bytes to hex strings
    for key, value in list(receipt_dict.items()):
        if isinstance(value, bytes):
            receipt_dict[key] = Web3.to_hex(value)

    receipt_dict["logs"] = [dict(log) for log in receipt_dict.get("logs") or []]
    return TxReceipt.model_validate(receipt_dict)


class SecureNotesLedger:
    """
    Client for the SecureNotes contract.

    To use this client, you'll need:
    - An Ethereum RPC endpoint
    - The deployed contract address
    - A signer (for state-changing calls)
    """

    SECURE_NOTES_ABI = [
        {
            "inputs": [],
            "name": "iconCount",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "uint256", "name": "_iconId", "type": "uint256"}],
            "name": "getIcon",
            "outputs": [
                {"internalType": "enum SecureNotes.IconType", "name": "iconType", "type": "uint8"},
                {"internalType": "uint256", "name": "price", "type": "uint256"},
                {"internalType": "bool", "name": "available", "type": "bool"}
            ],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "enum SecureNotes.IconType", "name": "_iconType", "type": "uint8"},
                {"internalType": "uint256", "name": "_price", "type": "uint256"}
            ],
            "name": "addIcon",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "uint256", "name": "_iconId", "type": "uint256"},
                {"internalType": "address", "name": "_recipient", "type": "address"}
            ],
            "name": "buyAndSendIcon",
            "outputs": [],
            "stateMutability": "payable",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "getMyReceivedIcons",
            "outputs": [
                {
                    "components": [
                        {"internalType": "uint256", "name": "iconId", "type": "uint256"},
                        {"internalType": "address", "name": "sender", "type": "address"}
                    ],
                    "internalType": "struct SecureNotes.ReceivedIcon[]",
                    "name": "",
                    "type": "tuple[]"
                }
            ],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "noteCount",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "uint256", "name": "_noteId", "type": "uint256"}],
            "name": "getNote",
            "outputs": [
                {"internalType": "address", "name": "sender", "type": "address"},
                {"internalType": "address", "name": "recipient", "type": "address"},
                {"internalType": "string", "name": "encryptedContent", "type": "string"},
                {"internalType": "bool", "name": "isRead", "type": "bool"},
                {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
                {"internalType": "bool", "name": "isDeleted", "type": "bool"}
            ],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "address", "name": "_recipient", "type": "address"},
                {"internalType": "string", "name": "_encryptedContent", "type": "string"}
            ],
            "name": "sendEncryptedNote",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "uint256", "name": "_noteId", "type": "uint256"}],
            "name": "readEncryptedNote",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "uint256", "name": "_noteId", "type": "uint256"}],
            "name": "deleteNote",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "address", "name": "", "type": "address"}],
            "name": "encryptionKeys",
            "outputs": [{"internalType": "string", "name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "string", "name": "_publicKey", "type": "string"}],
            "name": "registerPublicKey",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        }
    ]

    DEFAULT_GAS = 300000

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        signer: Optional[Signer] = None,
        chain_id: Optional[int] = None,
        tx_timeout: int = 120,
        poll_latency: float = 0.1,
        gas_limit: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the ledger client

        Args:
            rpc_url: Ethereum RPC endpoint URL
            contract_address: SecureNotes contract address
            signer: Signer for state-changing calls (read-only without one)
            chain_id: Expected chain id; transactions are refused on another chain
            tx_timeout: Seconds to wait for a receipt
            poll_latency: Seconds between receipt polls
            gas_limit: Fallback gas limit when estimation fails
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If the URL doesn't use https (unless localhost) or the address is invalid
        """
        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.hostname or ""
        is_local = host in ("localhost", "127.0.0.1")
        if parsed.scheme != "https" and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")
        if not Web3.is_address(contract_address):
            raise ValueError(f"Invalid contract address: {contract_address}")

        self.rpc_url = rpc_url
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.signer = signer
        self.chain_id = chain_id
        self.tx_timeout = tx_timeout
        self.poll_latency = poll_latency
        self.gas_limit = gas_limit or self.DEFAULT_GAS
        self.logger = logger or logging.getLogger(__name__)
        self._chain_checked = False

        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=self.contract_address,
            abi=self.SECURE_NOTES_ABI
        )

    @classmethod
    def from_config(
        cls,
        config: "ClientConfig",
        signer: Optional[Signer] = None,
        logger: Optional[logging.Logger] = None
    ) -> "SecureNotesLedger":
        return cls(
            rpc_url=config.rpc_url,
            contract_address=config.contract_address,
            signer=signer,
            chain_id=config.chain_id,
            tx_timeout=config.tx_timeout,
            poll_latency=config.poll_latency,
            gas_limit=config.gas_limit,
            logger=logger
        )

    @property
    def address(self) -> str:
        """
        Get the signing account address

        Raises:
            ValueError: If no signer is available
        """
        if self.signer:
            return self.signer.address
        raise ValueError("No signer available")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _call(self, name: str, *args: Any, from_address: Optional[str] = None) -> Any:
        try:
            fn = getattr(self.contract.functions, name)(*args)
            if from_address:
                return fn.call({"from": from_address})
            return fn.call()
        except Exception as e:
            self.logger.error(f"Ledger read {name} failed: {e}")
            raise LedgerUnavailable(f"Ledger read {name} failed", reason=str(e))

    def icon_count(self) -> int:
        return int(self._call("iconCount"))

    def get_icon(self, icon_id: int) -> IconListing:
        icon_type, price, available = self._call("getIcon", icon_id)
        try:
            return IconListing(
                id=icon_id,
                icon_type=IconType(int(icon_type)),
                price=int(price),
                available=bool(available)
            )
        except ValueError as e:
            raise LedgerUnavailable(f"Icon {icon_id} has unexpected data", reason=str(e))

    def get_received_icons(self, address: str) -> List[ReceivedGift]:
        items = self._call("getMyReceivedIcons", from_address=address)
        return [ReceivedGift(icon_id=int(icon_id), sender=sender) for icon_id, sender in items]

    def note_count(self) -> int:
        return int(self._call("noteCount"))

    def get_note(self, note_id: int) -> Note:
        sender, recipient, content, is_read, timestamp, is_deleted = self._call("getNote", note_id)
        return Note(
            id=note_id,
            sender=sender,
            recipient=recipient,
            payload=content,
            is_read=bool(is_read),
            is_deleted=bool(is_deleted),
            timestamp=int(timestamp)
        )

    def encryption_key(self, address: str) -> str:
        return self._call("encryptionKeys", Web3.to_checksum_address(address)) or ""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _ensure_chain(self) -> None:
        if self.chain_id is None or self._chain_checked:
            return
        try:
            actual = self.w3.eth.chain_id
        except Exception as e:
            raise TransactionFailed(f"Could not read chain id: {e}")
        if actual != self.chain_id:
            raise TransactionFailed(f"Connected to chain {actual}, expected {self.chain_id}")
        self._chain_checked = True

    def _transact(self, name: str, *args: Any, value: int = 0) -> Web3PendingTransaction:
        if not self.signer:
            raise TransactionFailed(f"{name}: no signer available")
        self._ensure_chain()

        from_address = self.signer.address
        try:
            fn = getattr(self.contract.functions, name)(*args)
            nonce = self.w3.eth.get_transaction_count(from_address)
            gas_price = self.w3.eth.gas_price
        except Exception as e:
            self.logger.error(f"Failed to prepare {name}: {e}")
            raise TransactionFailed(f"Failed to prepare {name}: {e}")

        try:
            gas = fn.estimate_gas({"from": from_address, "value": value})
            # Add 10% buffer to gas estimate
            gas = int(gas * 1.1)
            self.logger.debug(f"Estimated gas for {name}: {gas}")
        except ContractLogicError as e:
            self.logger.warning(f"{name} would revert: {e}")
            raise TransactionFailed(f"{name} reverted: {e}")
        except Exception as e:
            gas = self.gas_limit
            self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")

        try:
            tx = fn.build_transaction({
                "from": from_address,
                "nonce": nonce,
                "gas": gas,
                "gasPrice": gas_price,
                "value": value,
            })
        except Exception as e:
            raise TransactionFailed(f"Failed to build {name}: {e}")

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise TransactionFailed(f"Failed to sign transaction: {e}")

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to send {name}: {e}")
            raise TransactionFailed(f"Failed to send transaction: {e}")

        pending = Web3PendingTransaction(
            self.w3,
            tx_hash,
            name,
            timeout=self.tx_timeout,
            poll_latency=self.poll_latency,
            logger=self.logger
        )
        self.logger.info(f"Transaction sent ({name}): {pending.tx_hash}")
        return pending

    def add_icon(self, icon_type: IconType, price: int) -> Web3PendingTransaction:
        return self._transact("addIcon", int(icon_type), int(price))

    def buy_and_send_icon(self, icon_id: int, recipient: str, value: int) -> Web3PendingTransaction:
        return self._transact(
            "buyAndSendIcon", icon_id, Web3.to_checksum_address(recipient), value=int(value)
        )

    def send_encrypted_note(self, recipient: str, payload: str) -> Web3PendingTransaction:
        return self._transact("sendEncryptedNote", Web3.to_checksum_address(recipient), payload)

    def read_encrypted_note(self, note_id: int) -> Web3PendingTransaction:
        return self._transact("readEncryptedNote", note_id)

    def delete_note(self, note_id: int) -> Web3PendingTransaction:
        return self._transact("deleteNote", note_id)

    def register_public_key(self, key: str) -> Web3PendingTransaction:
        return self._transact("registerPublicKey", key)


__all__ = [
    "Ledger",
    "PendingTransaction",
    "SecureNotesLedger",
    "Web3PendingTransaction",
    "convert_receipt",
]
