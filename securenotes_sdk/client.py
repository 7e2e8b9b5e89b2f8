"""
SecureNotesClient - main entry point of the SDK.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, TYPE_CHECKING

from ._rate_limited_log import rate_limited_log
from .exceptions import LedgerUnavailable
from .icons import IconLedgerCache
from .key_registry import KeyRegistry
from .messaging import ComposerState, MessagingSession
from .models import GiftView, IconListing, NoteSnapshot
from .note_store import NoteStore
from .session import SessionContext

if TYPE_CHECKING:
    from .config import ClientConfig
    from .wallet import Wallet

T = TypeVar("T")


@dataclass
class Dashboard:
    """
    Everything shown after connecting.

    Each view loads on its own; a failed view keeps its error and the
    others are still filled in.
    """
    catalog: Optional[Dict[int, IconListing]] = None
    gifts: Optional[List[GiftView]] = None
    inbox: Optional[NoteSnapshot] = None
    composer_state: Optional[ComposerState] = None
    errors: Dict[str, LedgerUnavailable] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class SecureNotesClient:
    """
    Client for the SecureNotes gift and encrypted note contract.

    This client handles:
    1. Browsing and buying gift icons
    2. Registering an encryption key
    3. Sending, reading and deleting encrypted notes

    Example usage:
        ```python
        wallet = LocalWallet(os.environ["PRIVATE_KEY"])
        client = SecureNotesClient.connect(wallet, ClientConfig.from_env())
        dashboard = client.load_dashboard()
        ```
    """

    def __init__(self, context: SessionContext, logger: Optional[logging.Logger] = None):
        self.context = context
        self.logger = logger or logging.getLogger(__name__)
        self.keys = KeyRegistry(context, logger=self.logger)
        self.notes = NoteStore(context, logger=self.logger)
        self.icons = IconLedgerCache(context, logger=self.logger)
        self.messaging = MessagingSession(
            context, key_registry=self.keys, note_store=self.notes, logger=self.logger
        )

    @classmethod
    def connect(
        cls,
        wallet: "Wallet",
        config: "ClientConfig",
        logger: Optional[logging.Logger] = None
    ) -> "SecureNotesClient":
        """
        Connect a wallet and build the client around the new session.

        Raises:
            WalletRequestRejected: If the wallet refuses access
        """
        return cls(SessionContext.connect(wallet, config, logger=logger), logger=logger)

    @property
    def address(self) -> str:
        return self.context.address

    def disconnect(self) -> None:
        self.context.disconnect()

    def handle_accounts_changed(self, accounts: Iterable[str]) -> None:
        self.context.handle_accounts_changed(accounts)

    def _load_view(self, name: str, dashboard: Dashboard, loader: Callable[[], T]) -> Optional[T]:
        try:
            return loader()
        except LedgerUnavailable as e:
            dashboard.errors[name] = e
            rate_limited_log(f"Could not load {name}: {e}", logger_instance=self.logger)
            return None

    def load_dashboard(self) -> Dashboard:
        """Load catalog, received gifts, inbox and composer state"""
        address = self.context.address
        dashboard = Dashboard()
        dashboard.catalog = self._load_view("catalog", dashboard, self.icons.refresh_catalog)
        dashboard.gifts = self._load_view(
            "gifts", dashboard, lambda: self.icons.refresh_received(address)
        )
        dashboard.inbox = self._load_view(
            "inbox", dashboard, lambda: self.notes.refresh(address)
        )
        dashboard.composer_state = self._load_view(
            "composer", dashboard, self.messaging.composer_state
        )
        return dashboard
