"""
Tests for sending and reading encrypted notes.
"""
import pytest

from securenotes_sdk import envelope
from securenotes_sdk.exceptions import (
    DecryptionDenied, DeleteFailed, EmptyMessage, InvalidAddress, MalformedEnvelope,
    ReadTransactionFailed, RecipientNotRegistered, SendFailed, SessionClosed
)
from securenotes_sdk.messaging import ComposerState, MessagingSession
from securenotes_sdk.models import NoteState, PublicKeyRecord, TransitionResult, TxReceipt
from securenotes_sdk.wallet import LocalWallet
from tests.test_helpers import BOB_KEY, make_context, register_key


@pytest.fixture
def alice(alice_ctx):
    return MessagingSession(alice_ctx)


@pytest.fixture
def bob(bob_ctx):
    return MessagingSession(bob_ctx)


@pytest.fixture
def bob_registered(chain, bob_wallet):
    return register_key(chain, bob_wallet)


class TestHappyBirthday:
    """Alice sends Bob a note, Bob reads it once"""

    def test_full_exchange(self, chain, alice, bob, bob_wallet, alice_wallet):
        # Bob enables secure notes from the compose form
        assert bob.composer_state() is ComposerState.UNREGISTERED
        record = bob.enable_secure_notes()
        assert record.is_registered
        assert bob.composer_state() is ComposerState.READY

        receipt = alice.send_note(bob_wallet.address, "Happy Birthday!")
        assert isinstance(receipt, TxReceipt)
        assert receipt.status == 1

        # the ledger only ever sees ciphertext
        stored = chain.notes[0]
        assert "Happy Birthday" not in stored["payload"]
        assert envelope.parse(stored["payload"]).version == envelope.SCHEME
        assert stored["sender"] == alice_wallet.address

        inbox = bob.inbox()
        assert [n.id for n in inbox.notes] == [0]
        assert inbox.notes[0].state is NoteState.SENT

        assert bob.read_note(0) == "Happy Birthday!"
        assert chain.notes[0]["is_read"]

        # second read shows nothing
        assert bob.read_note(0) is None
        assert len(chain.writes("readEncryptedNote")) == 1

        assert bob.delete_note(0, confirm=True) is TransitionResult.CONFIRMED
        assert bob.inbox().notes == []
        assert bob.read_note(0) is None


class TestSendNote:

    def test_recipient_not_registered(self, chain, alice, bob_wallet):
        with pytest.raises(RecipientNotRegistered) as exc_info:
            alice.send_note(bob_wallet.address, "hello")

        assert exc_info.value.address == bob_wallet.address
        assert chain.writes() == []

    def test_invalid_recipient(self, chain, alice):
        with pytest.raises(InvalidAddress):
            alice.send_note("0xnot-an-address", "hello")
        assert chain.reads == []

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_message(self, chain, alice, bob_wallet, bob_registered, text):
        with pytest.raises(EmptyMessage):
            alice.send_note(bob_wallet.address, text)
        assert chain.writes() == []

    def test_transaction_fails(self, chain, alice, bob_wallet, bob_registered):
        chain.fail_next("sendEncryptedNote", "out of gas")

        with pytest.raises(SendFailed) as exc_info:
            alice.send_note(bob_wallet.address, "hello")

        assert "out of gas" in exc_info.value.reason
        assert chain.notes == []

    def test_submission_fails(self, chain, alice, bob_wallet, bob_registered):
        chain.reject_next("sendEncryptedNote", "nonce too low")

        with pytest.raises(SendFailed, match="nonce too low"):
            alice.send_note(bob_wallet.address, "hello")

    def test_each_send_uses_a_fresh_envelope(self, chain, alice, bob_wallet, bob_registered):
        alice.send_note(bob_wallet.address, "same words")
        alice.send_note(bob_wallet.address, "same words")

        first, second = (envelope.parse(n["payload"]) for n in chain.notes)
        assert first.nonce != second.nonce
        assert first.ephem_public_key != second.ephem_public_key

    def test_lowercase_recipient(self, chain, alice, bob_wallet, bob_registered):
        alice.send_note(bob_wallet.address.lower(), "hi")

        assert chain.notes[0]["recipient"] == bob_wallet.address

    def test_closed_session(self, alice_ctx, alice, bob_wallet, bob_registered):
        alice_ctx.disconnect()

        with pytest.raises(SessionClosed):
            alice.send_note(bob_wallet.address, "hello")


class TestReadNote:

    def _send(self, alice, bob_wallet, text="secret"):
        alice.send_note(bob_wallet.address, text)

    def test_wallet_declines(self, chain, alice, bob_wallet, bob_registered):
        self._send(alice, bob_wallet)
        declining = LocalWallet(BOB_KEY, approve=lambda method, address: method != "eth_decrypt")
        bob = MessagingSession(make_context(chain, declining))

        with pytest.raises(DecryptionDenied) as exc_info:
            bob.read_note(0)

        assert "User denied" in exc_info.value.reason
        assert not chain.notes[0]["is_read"]
        assert chain.writes("readEncryptedNote") == []

    def test_malformed_payload(self, chain, bob, alice_wallet, bob_wallet):
        chain.notes.append({
            "sender": alice_wallet.address, "recipient": bob_wallet.address,
            "payload": "Happy Birthday (plaintext)", "is_read": False,
            "is_deleted": False, "timestamp": 1,
        })

        with pytest.raises(MalformedEnvelope):
            bob.read_note(0)
        assert not chain.notes[0]["is_read"]

    def test_mark_read_fails_after_decryption(self, chain, alice, bob, bob_wallet, bob_registered):
        self._send(alice, bob_wallet, "Congratulations!")
        bob.inbox()
        chain.fail_next("readEncryptedNote", "out of gas")

        with pytest.raises(ReadTransactionFailed) as exc_info:
            bob.read_note(0)

        assert exc_info.value.plaintext == "Congratulations!"
        assert exc_info.value.note_id == 0
        assert not chain.notes[0]["is_read"]
        assert bob.note_store.get(0).state is NoteState.SENT

        assert bob.confirm_read(0) is TransitionResult.CONFIRMED
        assert chain.notes[0]["is_read"]
        assert bob.confirm_read(0) is TransitionResult.UNCHANGED

    def test_note_read_elsewhere_is_hidden(self, chain, alice, bob, bob_wallet, bob_registered):
        self._send(alice, bob_wallet)
        bob.inbox()
        chain.notes[0]["is_read"] = True

        assert bob.read_note(0) is None
        assert bob.note_store.get(0).is_read
        assert chain.writes("readEncryptedNote") == []

    def test_note_for_someone_else(self, chain, alice, alice_ctx, bob_wallet, bob_registered):
        self._send(alice, bob_wallet)

        with pytest.raises(DecryptionDenied):
            alice.read_note(0)
        assert not chain.notes[0]["is_read"]


class TestDeleteNote:

    def test_requires_confirmation(self, chain, alice, bob, bob_wallet, bob_registered):
        alice.send_note(bob_wallet.address, "hi")

        with pytest.raises(ValueError, match="confirmation"):
            bob.delete_note(0)
        with pytest.raises(ValueError):
            bob.delete_note(0, confirm="yes")
        assert chain.writes("deleteNote") == []

    def test_unread_note_can_be_deleted(self, chain, alice, bob, bob_wallet, bob_registered):
        alice.send_note(bob_wallet.address, "hi")
        bob.inbox()

        assert bob.delete_note(0, confirm=True) is TransitionResult.CONFIRMED
        assert not chain.notes[0]["is_read"]
        assert bob.delete_note(0, confirm=True) is TransitionResult.UNCHANGED

    def test_delete_fails(self, chain, alice, bob, bob_wallet, bob_registered):
        alice.send_note(bob_wallet.address, "hi")
        bob.inbox()
        chain.fail_next("deleteNote")

        with pytest.raises(DeleteFailed):
            bob.delete_note(0, confirm=True)
        assert [n.id for n in bob.note_store.snapshot().notes] == [0]


class TestComposer:

    def test_submit_registers_first(self, chain, alice, bob, bob_wallet, alice_wallet):
        register_key(chain, bob_wallet)

        result = alice.submit(bob_wallet.address, "Happy Birthday!")

        assert isinstance(result, PublicKeyRecord)
        assert chain.writes("sendEncryptedNote") == []
        assert alice.composer_state() is ComposerState.READY

        receipt = alice.submit(bob_wallet.address, "Happy Birthday!")
        assert isinstance(receipt, TxReceipt)
        assert len(chain.notes) == 1

    def test_enable_is_idempotent(self, chain, bob):
        first = bob.enable_secure_notes()
        second = bob.enable_secure_notes()

        assert first == second
        assert len(chain.writes("registerPublicKey")) == 1

    def test_existing_key_is_not_rotated(self, chain, bob, bob_wallet):
        register_key(chain, bob_wallet, key="b2xkIGtleSBvbGQga2V5IG9sZCBrZXkgb2xkIGtleSE=")

        record = bob.enable_secure_notes()

        assert record.key_material == "b2xkIGtleSBvbGQga2V5IG9sZCBrZXkgb2xkIGtleSE="
        assert chain.writes() == []
