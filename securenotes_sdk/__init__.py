"""
SecureNotes SDK - gift icons and end-to-end encrypted notes on an EVM ledger.
"""
from .version import __version__
from .client import SecureNotesClient, Dashboard
from .config import ClientConfig, NetworkConfig, load_contract_address
from .envelope import EncryptedEnvelope
from .exceptions import (
    SecureNotesError, ValidationError, InvalidAddress, EmptyMessage, InvalidKeyMaterial,
    MalformedEnvelope, RecipientNotRegistered, CollaboratorError, DecryptionDenied,
    RegistrationRejected, RegistrationFailed, SendFailed, ReadTransactionFailed,
    DeleteFailed, PurchaseFailed, LedgerUnavailable, TransactionFailed,
    WalletRequestRejected, SessionClosed
)
from .icons import IconLedgerCache
from .key_registry import KeyRegistry, PendingRegistration, RegistrationStatus
from .ledger import SecureNotesLedger
from .messaging import ComposerState, MessagingSession
from .models import (
    TxReceipt, PublicKeyRecord, Note, NoteSnapshot, NoteState, TransitionResult,
    IconType, IconListing, ReceivedGift, GiftView
)
from .note_store import NoteStore
from .session import SessionContext
from .signer import Signer, LocalSigner, RemoteSigner
from .wallet import Wallet, LocalWallet, RpcWallet

__all__ = [
    "__version__",
    "SecureNotesClient",
    "Dashboard",
    "ClientConfig",
    "NetworkConfig",
    "load_contract_address",
    "EncryptedEnvelope",
    "SecureNotesError",
    "ValidationError",
    "InvalidAddress",
    "EmptyMessage",
    "InvalidKeyMaterial",
    "MalformedEnvelope",
    "RecipientNotRegistered",
    "CollaboratorError",
    "DecryptionDenied",
    "RegistrationRejected",
    "RegistrationFailed",
    "SendFailed",
    "ReadTransactionFailed",
    "DeleteFailed",
    "PurchaseFailed",
    "LedgerUnavailable",
    "TransactionFailed",
    "WalletRequestRejected",
    "SessionClosed",
    "IconLedgerCache",
    "KeyRegistry",
    "PendingRegistration",
    "RegistrationStatus",
    "SecureNotesLedger",
    "ComposerState",
    "MessagingSession",
    "TxReceipt",
    "PublicKeyRecord",
    "Note",
    "NoteSnapshot",
    "NoteState",
    "TransitionResult",
    "IconType",
    "IconListing",
    "ReceivedGift",
    "GiftView",
    "NoteStore",
    "SessionContext",
    "Signer",
    "LocalSigner",
    "RemoteSigner",
    "Wallet",
    "LocalWallet",
    "RpcWallet",
]
