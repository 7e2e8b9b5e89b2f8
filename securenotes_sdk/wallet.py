"""
Wallet collaborators.

A wallet owns the user's keys. The SDK only asks it for accounts, a
transaction signer, the account's X25519 encryption public key
(``eth_getEncryptionPublicKey``) and decryption of note payloads
(``eth_decrypt``).
"""
import base64
import itertools
import logging
import urllib.parse
from typing import Any, Callable, List, Optional, Protocol

import nacl.public
from nacl.exceptions import CryptoError
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .envelope import parse, open_envelope
from .exceptions import MalformedEnvelope, WalletRequestRejected
from .signer import Signer, LocalSigner, RemoteSigner

# EIP-1193 provider error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ApprovalCallback = Callable[[str, str], bool]


class Wallet(Protocol):
    """Protocol for wallet collaborators"""

    def request_accounts(self) -> List[str]:
        ...

    def get_signer(self) -> Signer:
        ...

    def get_encryption_public_key(self, address: str) -> str:
        """Return the base64 X25519 public key of ``address``"""
        ...

    def decrypt(self, payload: str, address: str) -> str:
        """Decrypt a hex transport payload addressed to ``address``"""
        ...


class LocalWallet:
    """
    Wallet holding a private key in process.

    The encryption key pair is derived the way MetaMask derives it: the
    account's secp256k1 secret is used directly as the X25519 secret key.
    An optional ``approve(method, address)`` callback stands in for the user's
    consent prompt; returning False rejects the request.
    """

    def __init__(
        self,
        private_key: str,
        approve: Optional[ApprovalCallback] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.signer = LocalSigner(private_key)
        self._encryption_key = nacl.public.PrivateKey(self.signer.key)
        self.approve = approve
        self.logger = logger or logging.getLogger(__name__)

    @property
    def address(self) -> str:
        return self.signer.address

    def _check(self, method: str, address: str) -> None:
        if not isinstance(address, str) or address.lower() != self.address.lower():
            raise WalletRequestRejected(
                f"{method}: account {address} is not managed by this wallet",
                code=UNAUTHORIZED
            )
        if self.approve is not None and not self.approve(method, address):
            self.logger.info(f"User rejected {method}")
            raise WalletRequestRejected(f"User denied {method}", code=USER_REJECTED)

    def request_accounts(self) -> List[str]:
        self._check("eth_requestAccounts", self.address)
        return [self.address]

    def get_signer(self) -> Signer:
        return self.signer

    def get_encryption_public_key(self, address: str) -> str:
        self._check("eth_getEncryptionPublicKey", address)
        return base64.b64encode(bytes(self._encryption_key.public_key)).decode("ascii")

    def decrypt(self, payload: str, address: str) -> str:
        self._check("eth_decrypt", address)
        try:
            envelope = parse(payload)
        except MalformedEnvelope as e:
            raise WalletRequestRejected(f"eth_decrypt: {e}", code=INVALID_PARAMS)
        try:
            plaintext = open_envelope(envelope, self._encryption_key)
        except CryptoError as e:
            raise WalletRequestRejected(f"eth_decrypt: decryption failed ({e})", code=INTERNAL_ERROR)
        return plaintext.decode("utf-8")


class RpcWallet:
    """
    Wallet reached over JSON-RPC, e.g. a signer daemon or a browser bridge.

    Requests are retried on server errors with exponential backoff.
    """

    def __init__(
        self,
        url: str,
        retry_count: int = 3,
        timeout: int = 30,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            url: Wallet JSON-RPC endpoint (https unless localhost)
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            logger: Optional logger instance

        Raises:
            ValueError: If the URL does not use https and is not local
        """
        parsed = urllib.parse.urlparse(url)
        host = parsed.hostname or ""
        if parsed.scheme != "https" and host not in ("localhost", "127.0.0.1"):
            raise ValueError(f"url must use https:// for security (got: {parsed.scheme}://)")

        self.url = url
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._ids = itertools.count(1)
        self._signer: Optional[RemoteSigner] = None

        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["POST"],
            raise_on_status=False,
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

    def request(self, method: str, params: List[Any]) -> Any:
        """
        Perform one JSON-RPC call.

        Raises:
            WalletRequestRejected: If the wallet returns an error or cannot be reached
        """
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        self.logger.debug(f"Wallet request {method}")
        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(f"Wallet request {method} failed: {e}")
            raise WalletRequestRejected(f"{method}: wallet unreachable ({e})")

        try:
            data = response.json()
        except ValueError as e:
            raise WalletRequestRejected(f"{method}: invalid JSON from wallet ({e})")
        if not isinstance(data, dict):
            raise WalletRequestRejected(f"{method}: unexpected response {data!r}")

        if "error" in data and data["error"]:
            error = data["error"]
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise WalletRequestRejected(f"{method}: {message}", code=code)
        return data.get("result")

    def request_accounts(self) -> List[str]:
        accounts = self.request("eth_requestAccounts", [])
        if not accounts:
            raise WalletRequestRejected("eth_requestAccounts: no accounts available")
        return list(accounts)

    def get_signer(self) -> Signer:
        if self._signer is None:
            address = self.request_accounts()[0]
            self._signer = RemoteSigner(self.request, address)
        return self._signer

    def get_encryption_public_key(self, address: str) -> str:
        key = self.request("eth_getEncryptionPublicKey", [address])
        if not isinstance(key, str):
            raise WalletRequestRejected(f"eth_getEncryptionPublicKey: unexpected result {key!r}")
        return key

    def decrypt(self, payload: str, address: str) -> str:
        plaintext = self.request("eth_decrypt", [payload, address])
        if not isinstance(plaintext, str):
            raise WalletRequestRejected(f"eth_decrypt: unexpected result {plaintext!r}")
        return plaintext
