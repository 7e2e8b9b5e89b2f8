"""
Encrypted messaging session.

Sending encrypts a note to the recipient's registered key and records it on
the ledger. Reading has the wallet decrypt the note and only then flags it
read on the ledger, so a note is never marked read unless it was opened.
Read notes are not shown again: plaintext is returned once and never cached.
"""
import logging
from enum import Enum
from typing import Optional, Union

from . import envelope
from .exceptions import (
    EmptyMessage, RecipientNotRegistered, ReadTransactionFailed, SendFailed, TransactionFailed
)
from .key_registry import KeyRegistry
from .models import NoteSnapshot, PublicKeyRecord, TransitionResult, TxReceipt
from .note_store import NoteStore
from .session import SessionContext, validate_address, short_address


class ComposerState(str, Enum):
    """Which action the compose form performs for the current user"""
    UNREGISTERED = "unregistered"
    READY = "ready"


class MessagingSession:
    """
    Send and read encrypted notes for the connected account.

    Example usage:
        ```python
        messaging = MessagingSession(context)
        if messaging.composer_state() is ComposerState.UNREGISTERED:
            messaging.enable_secure_notes()
        messaging.send_note("0xRecipient...", "Happy Birthday!")

        for note in messaging.inbox().newest_first():
            text = messaging.read_note(note.id)
        ```
    """

    def __init__(
        self,
        context: SessionContext,
        key_registry: Optional[KeyRegistry] = None,
        note_store: Optional[NoteStore] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.context = context
        self.logger = logger or logging.getLogger(__name__)
        self.key_registry = key_registry or KeyRegistry(context, logger=self.logger)
        self.note_store = note_store or NoteStore(context, logger=self.logger)

    # ------------------------------------------------------------------
    # Registration / composer
    # ------------------------------------------------------------------

    def composer_state(self) -> ComposerState:
        """
        Raises:
            LedgerUnavailable: If the registration state cannot be read
        """
        if self.key_registry.is_registered(self.context.address):
            return ComposerState.READY
        return ComposerState.UNREGISTERED

    def enable_secure_notes(self) -> PublicKeyRecord:
        """
        Register the connected account's encryption key.

        Keys are not rotated: when a key is already registered the existing
        record is returned and no transaction is sent.

        Raises:
            RegistrationRejected: If the wallet refuses to export the key
            RegistrationFailed: If the transaction fails
        """
        address = self.context.address
        existing = self.key_registry.get_record(address)
        if existing.is_registered:
            self.logger.info(f"Secure notes already enabled for {short_address(address)}")
            return existing

        pending = self.key_registry.register(address)
        pending.wait()
        self.logger.info(f"Secure notes enabled for {short_address(address)}")
        return pending.record

    def submit(self, recipient: str, plaintext: str) -> Union[PublicKeyRecord, TxReceipt]:
        """
        Run the compose form's action for the current state.

        Unregistered users register their key (the inputs are kept for the
        next submit); registered users send the note.
        """
        state = self.composer_state()
        if state is ComposerState.UNREGISTERED:
            return self.enable_secure_notes()
        return self.send_note(recipient, plaintext)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_note(self, recipient: str, plaintext: str) -> TxReceipt:
        """
        Encrypt a note for ``recipient`` and record it on the ledger.

        Args:
            recipient: Recipient address
            plaintext: Note content

        Returns:
            Receipt of the confirmed transaction

        Raises:
            InvalidAddress: If the recipient address is malformed
            EmptyMessage: If the note is empty
            RecipientNotRegistered: If the recipient has no registered key
            InvalidKeyMaterial: If the registered key is malformed
            LedgerUnavailable: If the key lookup fails
            SendFailed: If the transaction fails
        """
        recipient = validate_address(recipient)
        if not plaintext:
            raise EmptyMessage("Note content must not be empty")
        self.context.require_active()

        key = self.key_registry.get_registered_key(recipient)
        if not key:
            raise RecipientNotRegistered(recipient)

        sealed = envelope.encode(plaintext, key)
        payload = envelope.serialize(sealed)
        self.logger.debug(
            f"Sending note to {short_address(recipient)}: "
            f"[REDACTED - {len(plaintext)} chars, {len(payload)} payload chars]"
        )

        try:
            receipt = self.context.ledger.send_encrypted_note(recipient, payload).wait()
        except TransactionFailed as e:
            self.logger.error(f"Sending note to {short_address(recipient)} failed: {e}")
            raise SendFailed("Failed to send note", reason=str(e))

        self.logger.info(f"Note sent to {short_address(recipient)}: {receipt.tx_hash}")
        return receipt

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def inbox(self) -> NoteSnapshot:
        """Refresh and return the connected user's notes, oldest first"""
        return self.note_store.refresh(self.context.address)

    def read_note(self, note_id: int) -> Optional[str]:
        """
        Decrypt a note and flag it read.

        Returns:
            The plaintext, or None when the note was already read or deleted

        Raises:
            LedgerUnavailable: If the note cannot be fetched
            MalformedEnvelope: If the payload is not a valid envelope
            DecryptionDenied: If the wallet declines or fails to decrypt
            ReadTransactionFailed: If flagging the note read fails; the
                decrypted text is attached as ``plaintext``
        """
        address = self.context.address
        note = self.note_store.fetch(note_id)
        if note.is_deleted or note.is_read:
            self.logger.debug(f"Note {note_id} is {note.state.value}; content stays hidden")
            return None

        sealed = envelope.parse(note.payload)
        plaintext = envelope.decode(sealed, self.context.wallet, address)

        try:
            self.note_store.mark_read(note_id)
        except ReadTransactionFailed as e:
            e.plaintext = plaintext
            raise
        return plaintext

    def confirm_read(self, note_id: int) -> TransitionResult:
        """Retry flagging a note read without decrypting it again"""
        self.context.require_active()
        return self.note_store.mark_read(note_id)

    def delete_note(self, note_id: int, confirm: bool = False) -> TransitionResult:
        """
        Delete a note. Deletion cannot be undone.

        Args:
            note_id: Note to delete
            confirm: Must be True; set it only after the user confirmed

        Raises:
            ValueError: If ``confirm`` is not True
            DeleteFailed: If the transaction fails
        """
        if confirm is not True:
            raise ValueError("Deleting a note requires explicit confirmation")
        self.context.require_active()
        return self.note_store.mark_deleted(note_id)
