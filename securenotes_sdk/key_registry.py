"""
Encryption key registry.

Reads and writes the X25519 public keys users register on the ledger so that
others can encrypt notes to them.
"""
import logging
import threading
from enum import Enum
from typing import Optional

from cachetools import TTLCache

from .envelope import decode_key_material
from .exceptions import (
    RegistrationFailed, RegistrationRejected, TransactionFailed, WalletRequestRejected
)
from .ledger import PendingTransaction
from .models import PublicKeyRecord
from .session import SessionContext, validate_address, short_address


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"


class PendingRegistration:
    """Key registration waiting for ledger confirmation"""

    def __init__(
        self,
        registry: "KeyRegistry",
        owner: str,
        key_material: str,
        transaction: PendingTransaction
    ):
        self._registry = registry
        self.owner = owner
        self.key_material = key_material
        self.transaction = transaction
        self.record: Optional[PublicKeyRecord] = None

    @property
    def tx_hash(self) -> str:
        return self.transaction.tx_hash

    def wait(self) -> RegistrationStatus:
        """
        Wait for the registration to confirm.

        Raises:
            RegistrationFailed: If the transaction reverts or is not confirmed
        """
        try:
            self.transaction.wait()
        except TransactionFailed as e:
            raise RegistrationFailed("Key registration failed", reason=str(e))
        self.record = PublicKeyRecord(owner=self.owner, key_material=self.key_material)
        self._registry._remember(self.owner, self.key_material)
        return RegistrationStatus.REGISTERED


class KeyRegistry:
    """
    Client for the ledger's ``encryptionKeys`` registry.

    Registered keys cannot change, so confirmed keys are kept in a TTL
    cache. Missing keys are always looked up again.
    """

    def __init__(
        self,
        context: SessionContext,
        cache_ttl: int = 3600,
        cache_size: int = 256,
        logger: Optional[logging.Logger] = None
    ):
        self.context = context
        self.logger = logger or logging.getLogger(__name__)
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)
        self._cache_lock = threading.RLock()

    def _remember(self, address: str, key_material: str) -> None:
        with self._cache_lock:
            self._cache[address.lower()] = key_material

    def get_registered_key(self, address: str) -> Optional[str]:
        """
        Look up the key registered for ``address``.

        Returns:
            Base64 key material, or None if nothing is registered

        Raises:
            InvalidAddress: If the address is malformed
            LedgerUnavailable: If the ledger cannot be read
        """
        address = validate_address(address)
        self.context.require_active()

        with self._cache_lock:
            cached = self._cache.get(address.lower())
        if cached:
            return cached

        key = self.context.ledger.encryption_key(address)
        if not key:
            self.logger.debug(f"No encryption key registered for {short_address(address)}")
            return None

        self._remember(address, key)
        return key

    def get_record(self, address: str) -> PublicKeyRecord:
        address = validate_address(address)
        return PublicKeyRecord(owner=address, key_material=self.get_registered_key(address))

    def is_registered(self, address: str) -> bool:
        return bool(self.get_registered_key(address))

    def register(self, local_address: str) -> PendingRegistration:
        """
        Export the wallet's encryption key and register it on the ledger.

        Does not check for an existing registration; callers use
        ``is_registered`` first.

        Raises:
            RegistrationRejected: If the wallet refuses to export the key
            InvalidKeyMaterial: If the wallet returns a malformed key
            RegistrationFailed: If the transaction cannot be submitted
        """
        local_address = validate_address(local_address)
        self.context.require_active()

        try:
            key = self.context.wallet.get_encryption_public_key(local_address)
        except WalletRequestRejected as e:
            self.logger.info(f"Key export rejected for {short_address(local_address)}: {e}")
            raise RegistrationRejected("Wallet did not provide an encryption key", reason=str(e))

        decode_key_material(key)

        try:
            transaction = self.context.ledger.register_public_key(key)
        except TransactionFailed as e:
            raise RegistrationFailed("Key registration failed", reason=str(e))

        self.logger.info(f"Registering encryption key for {short_address(local_address)}")
        return PendingRegistration(self, local_address, key, transaction)
