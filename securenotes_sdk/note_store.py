"""
Note store.

Keeps the client's copy of the notes addressed to the connected user and
drives their lifecycle on the ledger::

    Sent -> Read -> Deleted
    Sent ---------> Deleted

Flags only move forward and ``Deleted`` is terminal. The cached copy is
changed only after the ledger confirms a transition.
"""
import logging
from typing import Dict, Optional

from .exceptions import DeleteFailed, ReadTransactionFailed, TransactionFailed
from .models import Note, NoteSnapshot, NoteState, TransitionResult
from .session import SessionContext, validate_address, short_address


class NoteStore:
    """Ledger-backed view of a user's received notes"""

    def __init__(self, context: SessionContext, logger: Optional[logging.Logger] = None):
        self.context = context
        self.logger = logger or logging.getLogger(__name__)
        self._notes: Dict[int, Note] = {}
        self._owner: Optional[str] = None

    def refresh(self, local_address: str) -> NoteSnapshot:
        """
        Reload every note addressed to ``local_address``.

        Scans the whole note sequence, so cost grows with the total number
        of notes on the ledger.

        Returns:
            Non-deleted notes for the address, oldest first

        Raises:
            InvalidAddress: If the address is malformed
            LedgerUnavailable: If the ledger cannot be read
        """
        local_address = validate_address(local_address)
        ledger = self.context.ledger

        count = ledger.note_count()
        notes: Dict[int, Note] = {}
        for note_id in range(count):
            note = ledger.get_note(note_id)
            if note.is_addressed_to(local_address):
                # deleted notes stay cached so a repeated delete is a no-op
                notes[note_id] = note

        self._notes = notes
        self._owner = local_address
        snapshot = self.snapshot()
        self.logger.debug(
            f"Loaded {len(snapshot)} of {count} notes for {short_address(local_address)}"
        )
        return snapshot

    def snapshot(self) -> NoteSnapshot:
        """Current cached notes without touching the ledger"""
        visible = [note for _, note in sorted(self._notes.items()) if not note.is_deleted]
        return NoteSnapshot(owner=self._owner or "", notes=visible)

    def get(self, note_id: int) -> Optional[Note]:
        return self._notes.get(note_id)

    def fetch(self, note_id: int) -> Note:
        """
        Read one note from the ledger.

        The cached copy is replaced when the note belongs to the store's
        owner, since the ledger value is confirmed state.

        Raises:
            LedgerUnavailable: If the ledger cannot be read
        """
        note = self.context.ledger.get_note(note_id)
        if self._owner and note.is_addressed_to(self._owner):
            self._notes[note_id] = note
        return note

    def mark_read(self, note_id: int) -> TransitionResult:
        """
        Flag a note as read on the ledger.

        Returns:
            CONFIRMED once the ledger confirmed, UNCHANGED if the cached note
            is already read or deleted

        Raises:
            ReadTransactionFailed: If the transaction fails; the cache is unchanged
        """
        cached = self._notes.get(note_id)
        if cached is not None and cached.state is not NoteState.SENT:
            self.logger.debug(f"Note {note_id} is {cached.state.value}; not marking read")
            return TransitionResult.UNCHANGED

        try:
            self.context.ledger.read_encrypted_note(note_id).wait()
        except TransactionFailed as e:
            self.logger.warning(f"Marking note {note_id} read failed: {e}")
            raise ReadTransactionFailed(
                f"Could not mark note {note_id} as read", reason=str(e), note_id=note_id
            )

        cached = self._notes.get(note_id)
        if cached is not None:
            self._notes[note_id] = cached.model_copy(update={"is_read": True})
        self.logger.info(f"Note {note_id} marked read")
        return TransitionResult.CONFIRMED

    def mark_deleted(self, note_id: int) -> TransitionResult:
        """
        Flag a note as deleted on the ledger. Irreversible.

        Returns:
            CONFIRMED once the ledger confirmed, UNCHANGED if the cached note
            is already deleted

        Raises:
            DeleteFailed: If the transaction fails; the cache is unchanged
        """
        cached = self._notes.get(note_id)
        if cached is not None and cached.is_deleted:
            return TransitionResult.UNCHANGED

        try:
            self.context.ledger.delete_note(note_id).wait()
        except TransactionFailed as e:
            self.logger.warning(f"Deleting note {note_id} failed: {e}")
            raise DeleteFailed(f"Could not delete note {note_id}", reason=str(e))

        cached = self._notes.get(note_id)
        if cached is not None:
            self._notes[note_id] = cached.model_copy(update={"is_deleted": True})
        self.logger.info(f"Note {note_id} deleted")
        return TransitionResult.CONFIRMED
