"""
Exceptions for the SecureNotes SDK.
"""
from typing import Optional


class SecureNotesError(Exception):
    """Base exception for all SecureNotes SDK errors."""
    pass


class ValidationError(SecureNotesError, ValueError):
    """Input rejected locally, before any ledger or wallet call."""
    pass


class InvalidAddress(ValidationError):
    """Raised when an address is not a well-formed EVM address."""

    def __init__(self, address: object):
        self.address = address
        super().__init__(f"Invalid address: {address!r}")


class EmptyMessage(ValidationError):
    """Raised when a note has no content."""
    pass


class InvalidKeyMaterial(ValidationError):
    """Raised when a public key is not a 32-byte X25519 key."""
    pass


class MalformedEnvelope(ValidationError):
    """Raised when an encrypted note payload is structurally invalid."""
    pass


class RecipientNotRegistered(SecureNotesError):
    """Raised when the recipient has not registered an encryption key."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(
            f"Recipient {address} has not enabled secure notes (no public key registered)"
        )


class CollaboratorError(SecureNotesError):
    """
    Failure reported by the ledger or the wallet.

    The collaborator's own reason is kept on ``reason``.
    """

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DecryptionDenied(CollaboratorError):
    """Raised when the wallet declines or fails to decrypt a note."""
    pass


class RegistrationRejected(CollaboratorError):
    """Raised when the wallet refuses to export its encryption public key."""
    pass


class RegistrationFailed(CollaboratorError):
    """Raised when the key registration transaction fails."""
    pass


class SendFailed(CollaboratorError):
    """Raised when the send-note transaction fails."""
    pass


class ReadTransactionFailed(CollaboratorError):
    """
    Raised when the mark-read transaction fails.

    When the note was already decrypted the plaintext is attached so the
    caller can still show it once.
    """

    def __init__(self, message: str, reason: Optional[str] = None, note_id: Optional[int] = None):
        self.note_id = note_id
        self.plaintext: Optional[str] = None
        super().__init__(message, reason)


class DeleteFailed(CollaboratorError):
    """Raised when the delete-note transaction fails."""
    pass


class PurchaseFailed(CollaboratorError):
    """Raised when an icon purchase cannot be completed."""
    pass


class LedgerUnavailable(CollaboratorError):
    """Raised when a read query against the ledger fails."""
    pass


class TransactionFailed(SecureNotesError):
    """Raised by the ledger adapter when a transaction cannot be submitted or reverts."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class WalletRequestRejected(SecureNotesError):
    """Raised by a wallet when the user or the provider rejects a request."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class SessionClosed(SecureNotesError):
    """Raised when a component is used after its session was invalidated."""
    pass
