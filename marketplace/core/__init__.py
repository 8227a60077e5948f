"""
Core domain layer for the marketplace.

Exposes records, the error taxonomy and the three components that
protect the auction and ownership invariants.
"""

from marketplace.core.bidding import BidAdmissionController
from marketplace.core.events import EventLog, EventType, MarketEvent
from marketplace.core.exceptions import (
    AuctionClosedError,
    BidTooLowError,
    InvalidItemStateError,
    MarketplaceError,
    NotForSaleError,
    NotFoundError,
    PermissionDeniedError,
    SelfBidError,
    SelfPurchaseError,
    StaleBidError,
    ValidationError,
)
from marketplace.core.lifecycle import AuctionLifecycleManager, SettlementResult
from marketplace.core.models import (
    Auction,
    Auctioning,
    Bid,
    Collection,
    Item,
    ItemState,
    ItemStatus,
    Listed,
    Minted,
    Sold,
    Transaction,
    UNSET,
    User,
)
from marketplace.core.transfer import OwnershipTransferEngine

__all__ = [
    "AuctionLifecycleManager",
    "BidAdmissionController",
    "OwnershipTransferEngine",
    "SettlementResult",
    "EventLog",
    "EventType",
    "MarketEvent",
    "Auction",
    "Auctioning",
    "Bid",
    "Collection",
    "Item",
    "ItemState",
    "ItemStatus",
    "Listed",
    "Minted",
    "Sold",
    "Transaction",
    "UNSET",
    "User",
    "MarketplaceError",
    "NotFoundError",
    "InvalidItemStateError",
    "AuctionClosedError",
    "SelfBidError",
    "BidTooLowError",
    "StaleBidError",
    "NotForSaleError",
    "SelfPurchaseError",
    "PermissionDeniedError",
    "ValidationError",
]
