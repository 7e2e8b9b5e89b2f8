"""
Gift icon catalog and purchases.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from .exceptions import PurchaseFailed, TransactionFailed
from .models import GiftView, IconListing, IconType, TxReceipt
from .session import SessionContext, validate_address, short_address

# Shop contents seeded on a fresh deployment
DEFAULT_CATALOG: Tuple[Tuple[IconType, int], ...] = (
    (IconType.HAPPY_BIRTHDAY, Web3.to_wei(2, "ether")),
    (IconType.CONGRATULATIONS, Web3.to_wei(5, "ether")),
    (IconType.MERRY_CHRISTMAS, Web3.to_wei(2, "ether")),
    (IconType.GRADUATION, Web3.to_wei(1, "ether")),
)


class IconLedgerCache:
    """
    Cached view of the icon shop and of the gifts the user received.

    The catalog cache is rebuilt from scratch on every refresh.
    """

    def __init__(self, context: SessionContext, logger: Optional[logging.Logger] = None):
        self.context = context
        self.logger = logger or logging.getLogger(__name__)
        self._catalog: Dict[int, IconListing] = {}

    @property
    def catalog(self) -> Dict[int, IconListing]:
        return dict(self._catalog)

    def listing(self, listing_id: int) -> Optional[IconListing]:
        return self._catalog.get(listing_id)

    def refresh_catalog(self) -> Dict[int, IconListing]:
        """
        Load every available listing.

        Raises:
            LedgerUnavailable: If the ledger cannot be read; the previous
                catalog is discarded
        """
        self._catalog = {}
        ledger = self.context.ledger

        catalog: Dict[int, IconListing] = {}
        for icon_id in range(ledger.icon_count()):
            listing = ledger.get_icon(icon_id)
            if listing.available:
                catalog[icon_id] = listing

        self._catalog = catalog
        self.logger.debug(f"Loaded {len(catalog)} available icons")
        return self.catalog

    def refresh_received(self, local_address: str) -> List[GiftView]:
        """
        Load the gifts sent to ``local_address``, each with its listing.

        Raises:
            InvalidAddress: If the address is malformed
            LedgerUnavailable: If the ledger cannot be read
        """
        local_address = validate_address(local_address)
        ledger = self.context.ledger

        views = []
        for gift in ledger.get_received_icons(local_address):
            listing = ledger.get_icon(gift.icon_id)
            views.append(GiftView(gift=gift, listing=listing))
        self.logger.debug(f"{short_address(local_address)} has received {len(views)} gifts")
        return views

    def purchase(
        self,
        listing_id: int,
        recipient_address: str,
        payment: Optional[int] = None
    ) -> TxReceipt:
        """
        Buy an icon and send it to ``recipient_address``.

        Args:
            listing_id: Catalog id of the icon
            recipient_address: Who receives the gift
            payment: Amount in wei to attach; defaults to the cached price

        Returns:
            Receipt of the confirmed purchase

        Raises:
            InvalidAddress: If the recipient address is malformed
            PurchaseFailed: If the listing is not in the catalog or the
                transaction fails
        """
        recipient_address = validate_address(recipient_address)
        self.context.require_active()

        listing = self._catalog.get(listing_id)
        if listing is None:
            raise PurchaseFailed(f"Icon {listing_id} is not in the loaded catalog")
        value = listing.price if payment is None else payment

        try:
            receipt = self.context.ledger.buy_and_send_icon(
                listing_id, recipient_address, value
            ).wait()
        except TransactionFailed as e:
            self.logger.error(f"Purchase of icon {listing_id} failed: {e}")
            raise PurchaseFailed(f"Purchase of icon {listing_id} failed", reason=str(e))

        self.logger.info(
            f"Sent {listing.display_name} to {short_address(recipient_address)}: {receipt.tx_hash}"
        )
        return receipt

    def add_icon(self, icon_type: IconType, price: int) -> TxReceipt:
        """
        List a new icon. Only the contract owner may do this.

        Raises:
            TransactionFailed: If the transaction fails
        """
        self.context.require_active()
        receipt = self.context.ledger.add_icon(IconType(icon_type), price).wait()
        self.logger.info(f"Added icon {IconType(icon_type).asset_name} at {price} wei")
        return receipt

    def seed_catalog(
        self,
        listings: Sequence[Tuple[IconType, int]] = DEFAULT_CATALOG
    ) -> int:
        """
        Add ``listings`` to an empty shop.

        Returns:
            Number of icons added; 0 if the shop already had icons

        Raises:
            LedgerUnavailable: If the icon count cannot be read
            TransactionFailed: If adding an icon fails
        """
        if self.context.ledger.icon_count() > 0:
            self.logger.info("Icons already seeded. Skipping.")
            return 0

        for icon_type, price in listings:
            self.add_icon(icon_type, price)
        return len(listings)
