"""
Tests for the envelope module.
"""
import base64
import json

import nacl.public
import pytest
from nacl.exceptions import CryptoError
from unittest.mock import MagicMock

from securenotes_sdk.envelope import (
    EncryptedEnvelope, SCHEME, NONCE_SIZE, encode, serialize, parse, decode,
    decode_key_material, open_envelope
)
from securenotes_sdk.exceptions import (
    InvalidKeyMaterial, MalformedEnvelope, DecryptionDenied, WalletRequestRejected
)


@pytest.fixture
def recipient_key():
    return nacl.public.PrivateKey.generate()


@pytest.fixture
def recipient_pub_b64(recipient_key):
    return base64.b64encode(bytes(recipient_key.public_key)).decode("ascii")


def _hex_json(obj) -> str:
    return "0x" + json.dumps(obj).encode("utf-8").hex()


def _valid_transport_dict():
    return {
        "version": SCHEME,
        "nonce": base64.b64encode(b"\x01" * NONCE_SIZE).decode(),
        "ephemPublicKey": base64.b64encode(b"\x02" * 32).decode(),
        "ciphertext": base64.b64encode(b"\x03" * 40).decode(),
    }


class TestEncode:
    """Test encrypting notes."""

    def test_round_trip_with_recipient_key(self, recipient_key, recipient_pub_b64):
        env = encode("Happy Birthday!", recipient_pub_b64)
        assert env.version == SCHEME
        assert len(env.nonce) == NONCE_SIZE
        assert open_envelope(env, recipient_key) == b"Happy Birthday!"

    def test_accepts_raw_key_bytes(self, recipient_key):
        env = encode(b"raw bytes", bytes(recipient_key.public_key))
        assert open_envelope(env, recipient_key) == b"raw bytes"

    def test_unicode_plaintext(self, recipient_key, recipient_pub_b64):
        env = encode("Joyeux anniversaire 🎂", recipient_pub_b64)
        assert open_envelope(env, recipient_key).decode("utf-8") == "Joyeux anniversaire 🎂"

    def test_fresh_nonce_and_ephemeral_key(self, recipient_pub_b64):
        first = encode("same text", recipient_pub_b64)
        second = encode("same text", recipient_pub_b64)
        assert first.nonce != second.nonce
        assert first.ephem_public_key != second.ephem_public_key
        assert first.ciphertext != second.ciphertext

    def test_other_key_cannot_open(self, recipient_pub_b64):
        env = encode("secret", recipient_pub_b64)
        with pytest.raises(CryptoError):
            open_envelope(env, nacl.public.PrivateKey.generate())

    @pytest.mark.parametrize("bad_key", [
        "",
        "not base64!!",
        base64.b64encode(b"short").decode(),
        b"\x00" * 31,
        12345,
    ])
    def test_invalid_key_material(self, bad_key):
        with pytest.raises(InvalidKeyMaterial):
            encode("hello", bad_key)


class TestDecodeKeyMaterial:

    def test_strips_whitespace(self, recipient_pub_b64):
        assert len(decode_key_material(f" {recipient_pub_b64}\n")) == 32

    def test_rejects_33_bytes(self):
        with pytest.raises(InvalidKeyMaterial, match="32 bytes"):
            decode_key_material(base64.b64encode(b"\x01" * 33).decode())


class TestSerialize:
    """Test the transport encoding."""

    def test_layout(self, recipient_pub_b64):
        env = encode("hi", recipient_pub_b64)
        transport = serialize(env)
        assert transport.startswith("0x")

        data = json.loads(bytes.fromhex(transport[2:]).decode("utf-8"))
        assert list(data) == ["version", "nonce", "ephemPublicKey", "ciphertext"]
        assert data["version"] == "x25519-xsalsa20-poly1305"
        assert base64.b64decode(data["nonce"]) == env.nonce
        assert base64.b64decode(data["ephemPublicKey"]) == env.ephem_public_key
        assert base64.b64decode(data["ciphertext"]) == env.ciphertext

    def test_compact_json(self, recipient_pub_b64):
        transport = serialize(encode("hi", recipient_pub_b64))
        text = bytes.fromhex(transport[2:]).decode("utf-8")
        assert " " not in text

    def test_deterministic(self, recipient_pub_b64):
        env = encode("hi", recipient_pub_b64)
        assert serialize(env) == serialize(env)

    def test_parse_round_trip(self, recipient_pub_b64):
        env = encode("hi", recipient_pub_b64)
        assert parse(serialize(env)) == env


class TestParse:
    """Test rejection of malformed payloads."""

    def test_valid(self):
        env = parse(_hex_json(_valid_transport_dict()))
        assert env.nonce == b"\x01" * NONCE_SIZE
        assert env.ciphertext == b"\x03" * 40

    @pytest.mark.parametrize("payload", [
        "",
        "Happy Birthday!",
        "7b7d",  # no 0x prefix
        "0xzz",
        "0xabc",  # odd length
        "0x" + b"\xff\xfe".hex(),  # not UTF-8
        "0x" + b"not json".hex(),
        "0x" + b"[1, 2]".hex(),
        "0x7b 7d",  # embedded whitespace
        "0x7b7d\n",
        "0x 7b7d",
    ])
    def test_rejects_non_envelopes(self, payload):
        with pytest.raises(MalformedEnvelope):
            parse(payload)

    def test_rejects_spaced_hex_of_valid_envelope(self):
        body = _hex_json(_valid_transport_dict())[2:]
        spaced = "0x" + " ".join(body[i:i + 2] for i in range(0, len(body), 2))

        with pytest.raises(MalformedEnvelope, match="not a hex string"):
            parse(spaced)

    def test_rejects_non_string(self):
        with pytest.raises(MalformedEnvelope):
            parse(None)

    @pytest.mark.parametrize("missing", ["version", "nonce", "ephemPublicKey", "ciphertext"])
    def test_rejects_missing_key(self, missing):
        data = _valid_transport_dict()
        del data[missing]
        with pytest.raises(MalformedEnvelope, match=missing):
            parse(_hex_json(data))

    def test_rejects_extra_key(self):
        data = _valid_transport_dict()
        data["sender"] = "0xabc"
        with pytest.raises(MalformedEnvelope, match="unexpected"):
            parse(_hex_json(data))

    @pytest.mark.parametrize("size", [0, 12, 23, 25, 32])
    def test_rejects_wrong_nonce_length(self, size):
        data = _valid_transport_dict()
        data["nonce"] = base64.b64encode(b"\x01" * size).decode()
        with pytest.raises(MalformedEnvelope):
            parse(_hex_json(data))

    def test_rejects_empty_ciphertext(self):
        data = _valid_transport_dict()
        data["ciphertext"] = ""
        with pytest.raises(MalformedEnvelope):
            parse(_hex_json(data))

    def test_rejects_empty_ephemeral_key(self):
        data = _valid_transport_dict()
        data["ephemPublicKey"] = ""
        with pytest.raises(MalformedEnvelope):
            parse(_hex_json(data))

    def test_rejects_invalid_base64(self):
        data = _valid_transport_dict()
        data["ciphertext"] = "@@@@"
        with pytest.raises(MalformedEnvelope, match="ciphertext"):
            parse(_hex_json(data))

    def test_rejects_non_string_field(self):
        data = _valid_transport_dict()
        data["nonce"] = 42
        with pytest.raises(MalformedEnvelope):
            parse(_hex_json(data))

    def test_rejects_unknown_version(self):
        data = _valid_transport_dict()
        data["version"] = "x25519-chacha20-poly1305"
        with pytest.raises(MalformedEnvelope):
            parse(_hex_json(data))


class TestDecode:
    """Test handing envelopes to the wallet."""

    def test_delegates_to_wallet(self, recipient_pub_b64):
        env = encode("hi", recipient_pub_b64)
        wallet = MagicMock()
        wallet.decrypt.return_value = "hi"

        assert decode(env, wallet, "0xabc") == "hi"
        wallet.decrypt.assert_called_once_with(serialize(env), "0xabc")

    def test_wallet_rejection(self, recipient_pub_b64):
        wallet = MagicMock()
        wallet.decrypt.side_effect = WalletRequestRejected("User denied eth_decrypt", code=4001)

        with pytest.raises(DecryptionDenied) as exc_info:
            decode(encode("hi", recipient_pub_b64), wallet, "0x1234567890")
        assert "User denied" in exc_info.value.reason

    def test_wallet_error(self, recipient_pub_b64):
        wallet = MagicMock()
        wallet.decrypt.side_effect = RuntimeError("wallet crashed")

        with pytest.raises(DecryptionDenied, match="wallet crashed"):
            decode(encode("hi", recipient_pub_b64), wallet, "0x1234567890")

    def test_rejects_non_envelope(self):
        wallet = MagicMock()
        with pytest.raises(MalformedEnvelope):
            decode("0x7b7d", wallet, "0xabc")
        wallet.decrypt.assert_not_called()


class TestEncryptedEnvelopeModel:

    def test_frozen(self):
        env = EncryptedEnvelope(nonce=b"\x01" * NONCE_SIZE, ephem_public_key=b"\x02" * 32,
                                ciphertext=b"\x03")
        with pytest.raises(Exception):
            env.nonce = b"\x00" * NONCE_SIZE

    def test_alias_population(self):
        env = EncryptedEnvelope(nonce=b"\x01" * NONCE_SIZE, ephemPublicKey=b"\x02" * 32,
                                ciphertext=b"\x03")
        assert env.ephem_public_key == b"\x02" * 32
