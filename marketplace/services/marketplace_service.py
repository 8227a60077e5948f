"""
MarketplaceService wires the core components to one entity store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from marketplace.core import (
    Auction,
    AuctionLifecycleManager,
    Bid,
    BidAdmissionController,
    Collection,
    EventLog,
    EventType,
    Item,
    ItemStatus,
    MarketEvent,
    OwnershipTransferEngine,
    SettlementResult,
    Transaction,
    UNSET,
    User,
    ValidationError,
)
from marketplace.core.clock import Clock, utcnow
from marketplace.data import EntityStore
from marketplace.settings import MarketplaceSettings, get_settings

logger = logging.getLogger(__name__)


class MarketplaceService:
    """Use-case service for users, items, auctions and purchases."""

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        settings: Optional[MarketplaceSettings] = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.store = store or EntityStore(clock=clock)
        self.event_log = EventLog(clock=clock)

        self.transfers = OwnershipTransferEngine(self.store, self.event_log, clock=clock)
        self.lifecycle = AuctionLifecycleManager(
            self.store,
            self.transfers,
            self.event_log,
            clock=clock,
            default_currency=self.settings.default_currency,
        )
        self.bids = BidAdmissionController(self.store, self.lifecycle, self.event_log)

    # ---- Users ----

    def register_user(self, username: str, display_name: Optional[str] = None) -> User:
        user = self.store.create_user(username, display_name)
        self.event_log.log(EventType.USER_REGISTERED, actor_id=user.id, username=user.username)
        return user

    def get_user(self, user_id: int) -> User:
        return self.store.get_user(user_id)

    # ---- Collections ----

    def create_collection(
        self,
        *,
        creator_id: int,
        name: str,
        description: Optional[str] = None,
        banner_url: Optional[str] = None,
    ) -> Collection:
        self.store.get_user(creator_id)
        if not name or not name.strip():
            raise ValidationError("Collection name is required")
        collection = self.store.create_collection(
            name=name.strip(),
            creator_id=creator_id,
            description=description,
            banner_url=banner_url,
        )
        logger.info(f"Created collection {collection.id} '{collection.name}' for user {creator_id}")
        self.event_log.log(
            EventType.COLLECTION_CREATED,
            actor_id=creator_id,
            collection_id=collection.id,
            name=collection.name,
        )
        return collection

    def get_collection(self, collection_id: int) -> Collection:
        return self.store.get_collection(collection_id)

    def list_collections(self) -> List[Collection]:
        return self.store.list_collections()

    def collections_created_by(self, user_id: int) -> List[Collection]:
        self.store.get_user(user_id)
        return self.store.list_collections(creator_id=user_id)

    def collection_items(self, collection_id: int) -> List[Item]:
        self.store.get_collection(collection_id)
        return self.store.list_items(collection_id=collection_id, limit=self.settings.max_page_size)

    # ---- Items ----

    def mint_item(
        self,
        *,
        creator_id: int,
        name: str,
        image_url: str,
        description: Optional[str] = None,
        collection_id: Optional[int] = None,
        properties: Optional[Dict[str, str]] = None,
        price: Optional[float] = None,
        currency: Optional[str] = None,
    ) -> Item:
        return self.lifecycle.mint_item(
            creator_id=creator_id,
            name=name,
            image_url=image_url,
            description=description,
            collection_id=collection_id,
            properties=properties,
            price=price,
            currency=currency,
        )

    def update_item(
        self,
        item_id: int,
        editor_id: int,
        *,
        name: str = UNSET,
        description: Optional[str] = UNSET,
        image_url: str = UNSET,
        properties: Optional[Dict[str, str]] = UNSET,
    ) -> Item:
        return self.lifecycle.update_item_details(
            item_id,
            editor_id,
            name=name,
            description=description,
            image_url=image_url,
            properties=properties,
        )

    def list_item(self, item_id: int, seller_id: int, price: float) -> Item:
        return self.lifecycle.list_item(item_id, seller_id, price)

    def delist_item(self, item_id: int, seller_id: int) -> Item:
        return self.lifecycle.delist_item(item_id, seller_id)

    def get_item(self, item_id: int) -> Item:
        return self.store.get_item(item_id)

    def list_items(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        status: Optional[ItemStatus] = None,
        owner_id: Optional[int] = None,
        creator_id: Optional[int] = None,
        collection_id: Optional[int] = None,
    ) -> List[Item]:
        limit = max(0, min(limit, self.settings.max_page_size))
        return self.store.list_items(
            limit=limit,
            offset=max(0, offset),
            status=status,
            owner_id=owner_id,
            creator_id=creator_id,
            collection_id=collection_id,
        )

    def items_owned_by(self, user_id: int) -> List[Item]:
        self.store.get_user(user_id)
        return self.store.list_items(owner_id=user_id, limit=self.settings.max_page_size)

    def items_created_by(self, user_id: int) -> List[Item]:
        self.store.get_user(user_id)
        return self.store.list_items(creator_id=user_id, limit=self.settings.max_page_size)

    # ---- Auctions & bids ----

    def open_auction(
        self,
        item_id: int,
        starting_price: float,
        end_time: datetime,
        seller_id: Optional[int] = None,
    ) -> Auction:
        return self.lifecycle.open_auction(item_id, starting_price, end_time, seller_id=seller_id)

    def place_bid(self, auction_id: int, bidder_id: int, amount: float) -> Bid:
        return self.bids.place_bid(auction_id, bidder_id, amount)

    def settle_auction(self, auction_id: int) -> SettlementResult:
        return self.lifecycle.settle(auction_id)

    def settle_expired(self) -> List[SettlementResult]:
        results = self.lifecycle.settle_expired()
        if results:
            logger.info(f"Settled {len(results)} expired auction(s)")
        return results

    def get_auction(self, auction_id: int) -> Auction:
        return self.store.get_auction(auction_id)

    def auction_for_item(self, item_id: int) -> Optional[Auction]:
        self.store.get_item(item_id)
        return self.store.auction_for_item(item_id)

    def list_auctions(self, open_only: bool = False) -> List[Auction]:
        if open_only:
            return self.lifecycle.open_auctions()
        return self.store.list_auctions()

    def is_open(self, auction: Auction) -> bool:
        return self.lifecycle.is_open(auction)

    def auction_bids(self, auction_id: int) -> List[Bid]:
        """Bids of an auction, most recent first."""
        return self.bids.bids_for(auction_id)

    # ---- Purchases & transactions ----

    def direct_purchase(self, item_id: int, buyer_id: int, tx_hash: Optional[str] = None) -> Transaction:
        return self.transfers.direct_purchase(item_id, buyer_id, tx_hash=tx_hash)

    def get_transaction(self, transaction_id: int) -> Transaction:
        return self.store.get_transaction(transaction_id)

    def transactions_for_user(self, user_id: int) -> List[Transaction]:
        self.store.get_user(user_id)
        return self.store.transactions_for_user(user_id)

    # ---- Activity ----

    def recent_activity(self, limit: int = 50) -> List[MarketEvent]:
        return self.event_log.get_recent_events(max(0, min(limit, self.settings.max_page_size)))
