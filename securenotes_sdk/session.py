"""
Session context.

A ``SessionContext`` ties together the connected account, its signer, the
wallet and the ledger client. It is created on connect and invalidated on
disconnect or when the wallet switches accounts; an invalidated context is
never reused, callers connect again.
"""
import logging
from typing import Iterable, Optional, TYPE_CHECKING

from web3 import Web3

from .exceptions import InvalidAddress, SessionClosed, WalletRequestRejected
from .ledger import Ledger, SecureNotesLedger
from .signer import Signer

if TYPE_CHECKING:
    from .config import ClientConfig
    from .wallet import Wallet

logger = logging.getLogger(__name__)


def validate_address(address: object) -> str:
    """
    Check an EVM address and return its checksum form.

    Raises:
        InvalidAddress: If the address is malformed
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddress(address)
    return Web3.to_checksum_address(address)


def short_address(address: str) -> str:
    """``0x1234...abcd`` form used in log lines"""
    if len(address) < 42:
        return address
    return f"{address[:6]}...{address[38:]}"


class SessionContext:
    """Connected wallet account plus the ledger it talks to"""

    def __init__(
        self,
        wallet: "Wallet",
        address: str,
        ledger: Ledger,
        signer: Optional[Signer] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.wallet = wallet
        self._address = validate_address(address)
        self._ledger = ledger
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self._active = True

    @classmethod
    def connect(
        cls,
        wallet: "Wallet",
        config: "ClientConfig",
        logger: Optional[logging.Logger] = None
    ) -> "SessionContext":
        """
        Ask the wallet for an account and open a session on it.

        Raises:
            WalletRequestRejected: If the wallet refuses access
        """
        log = logger or logging.getLogger(__name__)
        accounts = wallet.request_accounts()
        if not accounts:
            raise WalletRequestRejected("Wallet returned no accounts")
        address = accounts[0]
        signer = wallet.get_signer()
        ledger = SecureNotesLedger.from_config(config, signer=signer, logger=log)
        log.info(f"Connected {short_address(address)} to {config.contract_address}")
        return cls(wallet, address, ledger, signer=signer, logger=log)

    @property
    def active(self) -> bool:
        return self._active

    def require_active(self) -> None:
        if not self._active:
            raise SessionClosed("Session is closed; connect the wallet again")

    @property
    def address(self) -> str:
        self.require_active()
        return self._address

    @property
    def ledger(self) -> Ledger:
        self.require_active()
        return self._ledger

    def disconnect(self) -> None:
        if self._active:
            self.logger.info(f"Disconnected {short_address(self._address)}")
        self._active = False

    def handle_accounts_changed(self, accounts: Iterable[str]) -> None:
        """
        React to the wallet's ``accountsChanged`` event.

        Any change, including reselecting the same account first, closes the
        session; the user reconnects explicitly.
        """
        accounts = list(accounts)
        self.logger.info(f"Wallet accounts changed: {[short_address(a) for a in accounts]}")
        self.disconnect()
