"""
In-memory entity store.

Single authoritative holder of users, items, auctions, bids and
transactions. Components receive a store instance instead of reaching
for module globals, so every test can build an isolated one.

Locking:
- ``atomic()`` is a store-wide re-entrant scope. Every read and write
  takes it, so several writes made inside one ``atomic()`` block are
  never observed half-applied.
- ``locked(kind, id)`` serializes check-then-act sequences on a single
  entity (one auction, one item). Different entities never contend.
"""

from __future__ import annotations

import itertools
import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple, TypeVar

from marketplace.core.clock import Clock, utcnow
from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.core.models import (
    Auction,
    Bid,
    Collection,
    Item,
    ItemState,
    ItemStatus,
    Transaction,
    UNSET,
    User,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityStore:
    """
    Tables of records keyed by auto-incrementing ids.

    Records are immutable; updates swap in a new record built with
    ``dataclasses.replace``.
    """

    def __init__(self, clock: Clock = utcnow):
        """
        Args:
            clock: Source of creation timestamps
        """
        self._clock = clock
        self._lock = threading.RLock()
        # Entries vanish once no caller holds the lock
        self._entity_locks: "weakref.WeakValueDictionary[Tuple[str, int], threading.RLock]" = (
            weakref.WeakValueDictionary()
        )
        self._entity_locks_guard = threading.Lock()

        self._users: Dict[int, User] = {}
        self._collections: Dict[int, Collection] = {}
        self._items: Dict[int, Item] = {}
        self._auctions: Dict[int, Auction] = {}
        self._bids: Dict[int, Bid] = {}
        self._transactions: Dict[int, Transaction] = {}

        self._user_ids = itertools.count(1)
        self._collection_ids = itertools.count(1)
        self._item_ids = itertools.count(1)
        self._auction_ids = itertools.count(1)
        self._bid_ids = itertools.count(1)
        self._transaction_ids = itertools.count(1)

    # ---- Locking ----

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Hold the store-wide lock for a group of reads and writes."""
        with self._lock:
            yield

    def lock_for(self, kind: str, entity_id: int) -> threading.RLock:
        """Return the lock guarding one entity, creating it on first use.

        Locks are held weakly and dropped once no caller references them.
        """
        key = (kind, entity_id)
        with self._entity_locks_guard:
            lock = self._entity_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._entity_locks[key] = lock
            return lock

    @contextmanager
    def locked(self, kind: str, entity_id: int) -> Iterator[None]:
        """Serialize check-then-act sequences on a single entity."""
        with self.lock_for(kind, entity_id):
            yield

    @staticmethod
    def _require(table: Dict[int, T], entity_id: int, label: str) -> T:
        record = table.get(entity_id)
        if record is None:
            raise NotFoundError(f"{label} {entity_id} not found")
        return record

    # ---- User Operations ----

    def create_user(self, username: str, display_name: Optional[str] = None) -> User:
        """
        Register a user.

        Raises:
            ValidationError: If the username is already taken
        """
        with self._lock:
            if any(u.username == username for u in self._users.values()):
                raise ValidationError(f"Username '{username}' is already taken")
            user = User(
                id=next(self._user_ids),
                username=username,
                display_name=display_name or username,
                created_at=self._clock(),
            )
            self._users[user.id] = user
        logger.debug(f"Created user {user.id} ({username})")
        return user

    def get_user(self, user_id: int) -> User:
        with self._lock:
            return self._require(self._users, user_id, "User")

    def list_users(self) -> List[User]:
        with self._lock:
            return sorted(self._users.values(), key=lambda u: u.id)

    # ---- Collection Operations ----

    def create_collection(
        self,
        *,
        name: str,
        creator_id: int,
        description: Optional[str] = None,
        banner_url: Optional[str] = None,
    ) -> Collection:
        with self._lock:
            collection = Collection(
                id=next(self._collection_ids),
                name=name,
                creator_id=creator_id,
                created_at=self._clock(),
                description=description,
                banner_url=banner_url,
            )
            self._collections[collection.id] = collection
        logger.debug(f"Created collection {collection.id} ({name})")
        return collection

    def get_collection(self, collection_id: int) -> Collection:
        with self._lock:
            return self._require(self._collections, collection_id, "Collection")

    def list_collections(self, creator_id: Optional[int] = None) -> List[Collection]:
        """All collections in id order, optionally only those of one creator."""
        with self._lock:
            collections = sorted(self._collections.values(), key=lambda c: c.id)
        if creator_id is not None:
            collections = [c for c in collections if c.creator_id == creator_id]
        return collections

    # ---- Item Operations ----

    def create_item(
        self,
        *,
        name: str,
        image_url: str,
        creator_id: int,
        owner_id: int,
        state: ItemState,
        description: Optional[str] = None,
        currency: str = "ETH",
        collection_id: Optional[int] = None,
        properties: Optional[Dict[str, str]] = None,
        token_id: Optional[str] = None,
    ) -> Item:
        """Store a new item with the next id and the current timestamp."""
        with self._lock:
            item = Item(
                id=next(self._item_ids),
                name=name,
                image_url=image_url,
                creator_id=creator_id,
                owner_id=owner_id,
                state=state,
                created_at=self._clock(),
                description=description,
                currency=currency,
                collection_id=collection_id,
                properties=dict(properties or {}),
                token_id=token_id,
            )
            self._items[item.id] = item
        return item

    def get_item(self, item_id: int) -> Item:
        with self._lock:
            return self._require(self._items, item_id, "Item")

    def list_items(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        owner_id: Optional[int] = None,
        creator_id: Optional[int] = None,
        collection_id: Optional[int] = None,
        status: Optional[ItemStatus] = None,
    ) -> List[Item]:
        """
        List items, newest first.

        Args:
            limit: Maximum number of items to return
            offset: Pagination offset
            owner_id: Only items currently owned by this user
            creator_id: Only items minted by this user
            collection_id: Only items in this collection
            status: Only items in this status
        """
        with self._lock:
            items = list(self._items.values())

        if owner_id is not None:
            items = [i for i in items if i.owner_id == owner_id]
        if creator_id is not None:
            items = [i for i in items if i.creator_id == creator_id]
        if collection_id is not None:
            items = [i for i in items if i.collection_id == collection_id]
        if status is not None:
            items = [i for i in items if i.status == status]

        items.sort(key=lambda i: (i.created_at, i.id), reverse=True)
        return items[offset:offset + limit]

    def update_item_details(
        self,
        item_id: int,
        *,
        name: str = UNSET,
        description: Optional[str] = UNSET,
        image_url: str = UNSET,
        properties: Optional[Dict[str, str]] = UNSET,
    ) -> Item:
        """
        Update descriptive fields.

        Fields left as ``UNSET`` keep their value. ``description=None``
        clears the description; ``properties=None`` empties the properties.
        """
        changes = {
            key: value
            for key, value in (
                ("name", name),
                ("description", description),
                ("image_url", image_url),
                ("properties", properties),
            )
            if value is not UNSET
        }
        if "properties" in changes:
            changes["properties"] = dict(changes["properties"] or {})
        with self._lock:
            item = self._require(self._items, item_id, "Item")
            updated = replace(item, **changes)
            self._items[item_id] = updated
        return updated

    def set_item_state(self, item_id: int, state: ItemState) -> Item:
        """Replace an item's listing state."""
        with self._lock:
            item = self._require(self._items, item_id, "Item")
            updated = replace(item, state=state)
            self._items[item_id] = updated
        return updated

    def transfer_item(self, item_id: int, owner_id: int, state: ItemState) -> Item:
        """Change an item's owner together with its state."""
        with self._lock:
            item = self._require(self._items, item_id, "Item")
            updated = replace(item, owner_id=owner_id, state=state)
            self._items[item_id] = updated
        return updated

    # ---- Auction Operations ----

    def create_auction(
        self,
        *,
        item_id: int,
        seller_id: int,
        starting_price: float,
        end_time: datetime,
        currency: str = "ETH",
    ) -> Auction:
        """Store a new auction whose current price starts at the starting price."""
        with self._lock:
            auction = Auction(
                id=next(self._auction_ids),
                item_id=item_id,
                seller_id=seller_id,
                starting_price=starting_price,
                current_price=starting_price,
                end_time=end_time,
                created_at=self._clock(),
                currency=currency,
            )
            self._auctions[auction.id] = auction
        return auction

    def get_auction(self, auction_id: int) -> Auction:
        with self._lock:
            return self._require(self._auctions, auction_id, "Auction")

    def list_auctions(self) -> List[Auction]:
        with self._lock:
            return sorted(self._auctions.values(), key=lambda a: a.id)

    def auction_for_item(self, item_id: int) -> Optional[Auction]:
        """Most recent auction of an item, if it ever had one."""
        with self._lock:
            auctions = [a for a in self._auctions.values() if a.item_id == item_id]
        return max(auctions, key=lambda a: a.id) if auctions else None

    def set_auction_price(self, auction_id: int, current_price: float) -> Auction:
        with self._lock:
            auction = self._require(self._auctions, auction_id, "Auction")
            updated = replace(auction, current_price=current_price)
            self._auctions[auction_id] = updated
        return updated

    def mark_auction_settled(
        self,
        auction_id: int,
        *,
        settled_at: datetime,
        winning_bid_id: Optional[int] = None,
        transaction_id: Optional[int] = None,
    ) -> Auction:
        with self._lock:
            auction = self._require(self._auctions, auction_id, "Auction")
            updated = replace(
                auction,
                settled_at=settled_at,
                winning_bid_id=winning_bid_id,
                transaction_id=transaction_id,
            )
            self._auctions[auction_id] = updated
        return updated

    # ---- Bid Operations ----

    def create_bid(
        self,
        *,
        auction_id: int,
        bidder_id: int,
        amount: float,
        currency: str = "ETH",
    ) -> Bid:
        with self._lock:
            bid = Bid(
                id=next(self._bid_ids),
                auction_id=auction_id,
                bidder_id=bidder_id,
                amount=amount,
                created_at=self._clock(),
                currency=currency,
            )
            self._bids[bid.id] = bid
        return bid

    def get_bid(self, bid_id: int) -> Bid:
        with self._lock:
            return self._require(self._bids, bid_id, "Bid")

    def bids_for_auction(self, auction_id: int) -> List[Bid]:
        """Bids of one auction in acceptance order."""
        with self._lock:
            bids = [b for b in self._bids.values() if b.auction_id == auction_id]
        return sorted(bids, key=lambda b: b.id)

    # ---- Transaction Operations ----

    def create_transaction(
        self,
        *,
        item_id: int,
        seller_id: int,
        buyer_id: int,
        price: float,
        currency: str = "ETH",
        tx_hash: Optional[str] = None,
        auction_id: Optional[int] = None,
    ) -> Transaction:
        with self._lock:
            tx = Transaction(
                id=next(self._transaction_ids),
                item_id=item_id,
                seller_id=seller_id,
                buyer_id=buyer_id,
                price=price,
                created_at=self._clock(),
                currency=currency,
                tx_hash=tx_hash,
                auction_id=auction_id,
            )
            self._transactions[tx.id] = tx
        return tx

    def get_transaction(self, transaction_id: int) -> Transaction:
        with self._lock:
            return self._require(self._transactions, transaction_id, "Transaction")

    def transactions_for_user(self, user_id: int) -> List[Transaction]:
        """Transactions where the user was buyer or seller, newest first."""
        with self._lock:
            txs = [
                t for t in self._transactions.values()
                if t.buyer_id == user_id or t.seller_id == user_id
            ]
        return sorted(txs, key=lambda t: t.id, reverse=True)

    def transactions_for_item(self, item_id: int) -> List[Transaction]:
        with self._lock:
            txs = [t for t in self._transactions.values() if t.item_id == item_id]
        return sorted(txs, key=lambda t: t.id)
