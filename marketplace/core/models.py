"""
Marketplace records: users, collections, items, auctions, bids and transactions.

Records are frozen dataclasses. The store replaces a record wholesale on
every change, so a reader always holds a consistent snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union


class _Unset:
    """Marker for an optional argument that was not passed at all."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class ItemStatus(str, Enum):
    """Listing status of an item."""

    MINTED = "minted"
    LISTED = "listed"
    AUCTIONING = "auctioning"
    SOLD = "sold"


# ---- Item state variants ----
# Each variant carries only the fields valid in that state, so a listed
# item without a price cannot be built.


@dataclass(frozen=True)
class Minted:
    """Owned, not offered for sale."""

    status: ClassVar[ItemStatus] = ItemStatus.MINTED


@dataclass(frozen=True)
class Listed:
    """Offered for direct purchase at a fixed price."""

    price: float
    status: ClassVar[ItemStatus] = ItemStatus.LISTED


@dataclass(frozen=True)
class Auctioning:
    """Bound to an open auction."""

    auction_id: int
    # Fixed price the item had before the auction, restored if nobody bids
    list_price: Optional[float] = None
    status: ClassVar[ItemStatus] = ItemStatus.AUCTIONING


@dataclass(frozen=True)
class Sold:
    """Transferred by a completed transaction. Terminal."""

    transaction_id: int
    status: ClassVar[ItemStatus] = ItemStatus.SOLD


ItemState = Union[Minted, Listed, Auctioning, Sold]


@dataclass(frozen=True)
class User:
    """Marketplace participant. Only identity matters to the core."""

    id: int
    username: str
    display_name: str
    created_at: datetime


@dataclass(frozen=True)
class Collection:
    """Named group of items created by one user."""

    id: int
    name: str
    creator_id: int
    created_at: datetime
    description: Optional[str] = None
    banner_url: Optional[str] = None


@dataclass(frozen=True)
class Item:
    """A listable digital asset."""

    id: int
    name: str
    image_url: str
    creator_id: int
    owner_id: int
    state: ItemState
    created_at: datetime
    description: Optional[str] = None
    currency: str = "ETH"
    collection_id: Optional[int] = None
    properties: Dict[str, str] = field(default_factory=dict)
    token_id: Optional[str] = None

    @property
    def status(self) -> ItemStatus:
        return self.state.status

    @property
    def price(self) -> Optional[float]:
        """Fixed sale price, only set while listed."""
        if isinstance(self.state, Listed):
            return self.state.price
        return None

    @property
    def auction_id(self) -> Optional[int]:
        if isinstance(self.state, Auctioning):
            return self.state.auction_id
        return None

    def __repr__(self) -> str:
        return (
            f"Item(id={self.id}, name='{self.name}', owner={self.owner_id}, "
            f"status={self.status.value}, price={self.price})"
        )


@dataclass(frozen=True)
class Auction:
    """A time-boxed sale of one item."""

    id: int
    item_id: int
    seller_id: int
    starting_price: float
    current_price: float
    end_time: datetime
    created_at: datetime
    currency: str = "ETH"

    # Settlement bookkeeping, written once
    settled_at: Optional[datetime] = None
    winning_bid_id: Optional[int] = None
    transaction_id: Optional[int] = None

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def __repr__(self) -> str:
        return (
            f"Auction(id={self.id}, item={self.item_id}, "
            f"current_price={self.current_price}, ends={self.end_time.isoformat()}, "
            f"settled={self.is_settled})"
        )


@dataclass(frozen=True)
class Bid:
    """An admitted bid. Never mutated."""

    id: int
    auction_id: int
    bidder_id: int
    amount: float
    created_at: datetime
    currency: str = "ETH"


@dataclass(frozen=True)
class Transaction:
    """A completed ownership transfer. Never mutated."""

    id: int
    item_id: int
    seller_id: int
    buyer_id: int
    price: float
    created_at: datetime
    currency: str = "ETH"
    tx_hash: Optional[str] = None
    # Set when the transfer settled an auction
    auction_id: Optional[int] = None
