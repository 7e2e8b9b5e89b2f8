"""
Data models for the SecureNotes SDK.
"""
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, ConfigDict, Field


class IconType(IntEnum):
    """Icon kinds, matching the contract's enum order"""
    HAPPY_BIRTHDAY = 0
    CONGRATULATIONS = 1
    MERRY_CHRISTMAS = 2
    GRADUATION = 3

    @property
    def asset_name(self) -> str:
        """Name used by the contract and image assets, e.g. ``HappyBirthday``"""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def display_name(self) -> str:
        return " ".join(part.capitalize() for part in self.name.split("_"))


class NoteState(str, Enum):
    """Lifecycle state of a note as seen by the client."""
    SENT = "sent"
    READ = "read"
    DELETED = "deleted"


class TransitionResult(str, Enum):
    """Outcome of a note lifecycle transition."""
    CONFIRMED = "confirmed"
    UNCHANGED = "unchanged"


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]] = Field(default_factory=list)


class PublicKeyRecord(BaseModel):
    """Encryption key registered on the ledger for an address"""
    model_config = ConfigDict(frozen=True)

    owner: str
    key_material: Optional[str] = None

    @property
    def is_registered(self) -> bool:
        return bool(self.key_material)


class Note(BaseModel):
    """
    Mirror of a ledger note.

    ``payload`` is the transport string produced by
    :func:`securenotes_sdk.envelope.serialize`. ``is_read`` and ``is_deleted``
    only ever move from False to True.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    sender: str
    recipient: str
    payload: str
    is_read: bool = False
    is_deleted: bool = False
    timestamp: int = 0

    @property
    def state(self) -> NoteState:
        if self.is_deleted:
            return NoteState.DELETED
        if self.is_read:
            return NoteState.READ
        return NoteState.SENT

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def is_addressed_to(self, address: str) -> bool:
        return self.recipient.lower() == address.lower()


class NoteSnapshot(BaseModel):
    """Notes addressed to ``owner``, oldest first"""
    model_config = ConfigDict(frozen=True)

    owner: str
    notes: List[Note] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.notes)

    def newest_first(self) -> List[Note]:
        return list(reversed(self.notes))

    @property
    def unread_count(self) -> int:
        return sum(1 for note in self.notes if not note.is_read)


class IconListing(BaseModel):
    """Catalog entry for a gift icon"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    icon_type: IconType
    price: int = Field(..., ge=0)
    available: bool = True

    @property
    def display_name(self) -> str:
        return self.icon_type.display_name


class ReceivedGift(BaseModel):
    """A gift icon received by the current user"""
    model_config = ConfigDict(frozen=True)

    icon_id: int = Field(..., ge=0)
    sender: str


class GiftView(BaseModel):
    """A received gift resolved to its catalog listing"""
    model_config = ConfigDict(frozen=True)

    gift: ReceivedGift
    listing: IconListing

    @property
    def display_name(self) -> str:
        return self.listing.display_name
