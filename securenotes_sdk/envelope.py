"""
Encrypted note envelopes.

Notes are encrypted off-chain with the ``x25519-xsalsa20-poly1305`` scheme
understood by MetaMask's ``eth_decrypt``: a fresh ephemeral X25519 key pair
and a fresh 24-byte nonce per message, sealed with a NaCl ``Box`` against the
recipient's registered public key.

On the ledger the envelope travels as a ``0x``-prefixed hex string of the
compact JSON object ``{"version", "nonce", "ephemPublicKey", "ciphertext"}``
with base64 values.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, Union, TYPE_CHECKING

import nacl.public
import nacl.utils
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    InvalidKeyMaterial, MalformedEnvelope, DecryptionDenied, WalletRequestRejected
)

if TYPE_CHECKING:
    from .wallet import Wallet

logger = logging.getLogger(__name__)

SCHEME = "x25519-xsalsa20-poly1305"
NONCE_SIZE = nacl.public.Box.NONCE_SIZE
PUBLIC_KEY_SIZE = nacl.public.PublicKey.SIZE
TRANSPORT_KEYS = ("version", "nonce", "ephemPublicKey", "ciphertext")
_HEX_BODY = re.compile(r"(?:[0-9a-fA-F]{2})+")


class EncryptedEnvelope(BaseModel):
    """A sealed note plus what the recipient needs to open it"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = SCHEME
    nonce: bytes
    ephem_public_key: bytes = Field(..., alias="ephemPublicKey")
    ciphertext: bytes

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if v != SCHEME:
            raise ValueError(f"unsupported envelope version: {v}")
        return v

    @field_validator("nonce")
    @classmethod
    def validate_nonce(cls, v: bytes) -> bytes:
        if len(v) != NONCE_SIZE:
            raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(v)}")
        return v

    @field_validator("ephem_public_key", "ciphertext")
    @classmethod
    def validate_not_empty(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("must not be empty")
        return v

    def to_transport_dict(self) -> Dict[str, str]:
        return {
            "version": self.version,
            "nonce": _b64(self.nonce),
            "ephemPublicKey": _b64(self.ephem_public_key),
            "ciphertext": _b64(self.ciphertext),
        }


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _strict_b64decode(value: Any, field: str) -> bytes:
    if not isinstance(value, str):
        raise MalformedEnvelope(f"'{field}' must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEnvelope(f"'{field}' is not valid base64: {e}")


def decode_key_material(key: Union[str, bytes]) -> bytes:
    """
    Validate an X25519 public key.

    Args:
        key: Raw 32 key bytes or the base64 text a wallet exports

    Returns:
        The raw key bytes

    Raises:
        InvalidKeyMaterial: If the key is not base64 or not 32 bytes long
    """
    if isinstance(key, str):
        try:
            raw = base64.b64decode(key.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidKeyMaterial(f"Public key is not valid base64: {e}")
    elif isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        raise InvalidKeyMaterial(f"Public key must be str or bytes, got {type(key).__name__}")

    if len(raw) != PUBLIC_KEY_SIZE:
        raise InvalidKeyMaterial(
            f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )
    return raw


def encode(plaintext: Union[str, bytes], recipient_public_key: Union[str, bytes]) -> EncryptedEnvelope:
    """
    Encrypt a note for a recipient.

    A new ephemeral key pair and nonce are drawn on every call; nothing is
    cached or derived.

    Args:
        plaintext: Note content (str is UTF-8 encoded)
        recipient_public_key: Recipient's registered key, raw or base64

    Returns:
        EncryptedEnvelope for the recipient

    Raises:
        InvalidKeyMaterial: If the recipient key is malformed
    """
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    recipient = nacl.public.PublicKey(decode_key_material(recipient_public_key))
    ephemeral = nacl.public.PrivateKey.generate()
    nonce = nacl.utils.random(NONCE_SIZE)

    sealed = nacl.public.Box(ephemeral, recipient).encrypt(plaintext, nonce)

    return EncryptedEnvelope(
        version=SCHEME,
        nonce=nonce,
        ephem_public_key=bytes(ephemeral.public_key),
        ciphertext=sealed.ciphertext,
    )


def serialize(envelope: EncryptedEnvelope) -> str:
    """Encode an envelope as the ``0x`` hex transport string stored on the ledger"""
    text = json.dumps(envelope.to_transport_dict(), separators=(",", ":"))
    return "0x" + text.encode("utf-8").hex()


def parse(transport: str) -> EncryptedEnvelope:
    """
    Parse a transport string back into an envelope.

    Raises:
        MalformedEnvelope: On any structural deviation
    """
    if not isinstance(transport, str) or not transport.startswith("0x"):
        raise MalformedEnvelope("Payload must be a 0x-prefixed hex string")

    body = transport[2:]
    if not _HEX_BODY.fullmatch(body):
        raise MalformedEnvelope("Payload is not a hex string")
    try:
        text = bytes.fromhex(body).decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedEnvelope(f"Payload is not UTF-8: {e}")

    try:
        data = json.loads(text)
    except ValueError as e:
        raise MalformedEnvelope(f"Payload is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise MalformedEnvelope(f"Payload must be a JSON object, got {type(data).__name__}")

    missing = [key for key in TRANSPORT_KEYS if key not in data]
    if missing:
        raise MalformedEnvelope(f"Envelope missing required fields: {', '.join(missing)}")
    extra = sorted(set(data) - set(TRANSPORT_KEYS))
    if extra:
        raise MalformedEnvelope(f"Envelope has unexpected fields: {', '.join(extra)}")

    if not isinstance(data["version"], str):
        raise MalformedEnvelope("'version' must be a string")

    try:
        return EncryptedEnvelope(
            version=data["version"],
            nonce=_strict_b64decode(data["nonce"], "nonce"),
            ephem_public_key=_strict_b64decode(data["ephemPublicKey"], "ephemPublicKey"),
            ciphertext=_strict_b64decode(data["ciphertext"], "ciphertext"),
        )
    except PydanticValidationError as e:
        raise MalformedEnvelope(f"Invalid envelope: {e}")


def decode(envelope: EncryptedEnvelope, wallet: "Wallet", address: str) -> str:
    """
    Have the wallet decrypt an envelope addressed to ``address``.

    The private key never leaves the wallet; this only checks the envelope
    and keeps malformed payloads apart from wallet refusals.

    Raises:
        MalformedEnvelope: If ``envelope`` is not a valid envelope
        DecryptionDenied: If the wallet declines or fails
    """
    if not isinstance(envelope, EncryptedEnvelope):
        raise MalformedEnvelope(f"Expected EncryptedEnvelope, got {type(envelope).__name__}")

    payload = serialize(envelope)
    try:
        return wallet.decrypt(payload, address)
    except WalletRequestRejected as e:
        logger.info(f"Wallet declined decryption for {address[:6]}…: {e}")
        raise DecryptionDenied("Decryption denied", reason=str(e))
    except Exception as e:
        logger.error(f"Wallet decryption failed: {e}")
        raise DecryptionDenied("Decryption failed", reason=str(e))


def open_envelope(envelope: EncryptedEnvelope, private_key: nacl.public.PrivateKey) -> bytes:
    """
    Decrypt an envelope with the recipient's X25519 private key.

    Used by wallets that hold the key locally.

    Raises:
        nacl.exceptions.CryptoError: If authentication fails
    """
    box = nacl.public.Box(private_key, nacl.public.PublicKey(envelope.ephem_public_key))
    return box.decrypt(envelope.ciphertext, envelope.nonce)


__all__ = [
    "SCHEME",
    "NONCE_SIZE",
    "PUBLIC_KEY_SIZE",
    "EncryptedEnvelope",
    "decode_key_material",
    "encode",
    "serialize",
    "parse",
    "decode",
    "open_envelope",
]
