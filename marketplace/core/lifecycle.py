"""
Item and auction lifecycle.

Owns the item state machine (minted -> listed/auctioning -> sold), the
meaning of "auction is open" and the rule for raising an auction's
current price. Lock order is always auction, then item, then the
store-wide scope.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional

from marketplace.core.clock import Clock, as_utc, utcnow
from marketplace.core.events import EventLog, EventType
from marketplace.core.exceptions import (
    InvalidItemStateError,
    PermissionDeniedError,
    StaleBidError,
    ValidationError,
)
from marketplace.core.models import (
    Auction,
    Auctioning,
    Item,
    Listed,
    Minted,
    Sold,
    Transaction,
    UNSET,
)
from marketplace.core.transfer import OwnershipTransferEngine

if TYPE_CHECKING:
    from marketplace.data.store import EntityStore

logger = logging.getLogger(__name__)


def finite_amount(value: float, label: str = "Amount") -> float:
    """Coerce a numeric amount to a finite float or raise ``ValidationError``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{label} must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{label} is out of range") from None
    if not math.isfinite(amount):
        raise ValidationError(f"{label} must be a finite number")
    return amount


def _require_price(value: float, label: str = "Price") -> float:
    amount = finite_amount(value, label)
    if amount <= 0:
        raise ValidationError(f"{label} must be a positive number")
    return amount


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settling one auction."""

    auction: Auction
    item: Item
    transaction: Optional[Transaction] = None

    @property
    def sold(self) -> bool:
        return self.transaction is not None


class AuctionLifecycleManager:
    """
    Manages item listings and the lifetime of auctions.

    Opening an auction, advancing its price and settling it are the only
    writes to auction rows; item state changes other than ownership
    transfers also go through here.
    """

    def __init__(
        self,
        store: EntityStore,
        transfers: OwnershipTransferEngine,
        event_log: EventLog,
        clock: Clock = utcnow,
        default_currency: str = "ETH",
    ):
        self.store = store
        self.transfers = transfers
        self.event_log = event_log
        self._clock = clock
        self.default_currency = default_currency

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
        token_id: Optional[str] = None,
    ) -> Item:
        """Create an item owned by its creator, optionally listed straight away."""
        self.store.get_user(creator_id)
        if not name or not name.strip():
            raise ValidationError("Item name is required")
        if collection_id is not None:
            self.store.get_collection(collection_id)
        state = Listed(_require_price(price)) if price is not None else Minted()

        item = self.store.create_item(
            name=name.strip(),
            image_url=image_url,
            creator_id=creator_id,
            owner_id=creator_id,
            state=state,
            description=description,
            currency=currency or self.default_currency,
            collection_id=collection_id,
            properties=properties,
            token_id=token_id,
        )
        logger.info(f"Minted item {item.id} '{item.name}' for user {creator_id}")
        self.event_log.log(EventType.ITEM_MINTED, actor_id=creator_id, item_id=item.id, name=item.name)
        return item

    def update_item_details(
        self,
        item_id: int,
        editor_id: int,
        *,
        name: str = UNSET,
        description: Optional[str] = UNSET,
        image_url: str = UNSET,
        properties: Optional[Dict[str, str]] = UNSET,
    ) -> Item:
        """
        Edit descriptive fields. Owner only, not after the item is sold.

        Omitted fields are left alone. The description can be cleared with
        ``None``; name and image cannot.
        """
        with self.store.locked("item", item_id):
            item = self._owned_item(item_id, editor_id)
            if isinstance(item.state, Sold):
                raise InvalidItemStateError(f"Item {item_id} has been sold")
            if name is not UNSET and (name is None or not name.strip()):
                raise ValidationError("Item name cannot be empty")
            if image_url is not UNSET and not image_url:
                raise ValidationError("Item image cannot be empty")
            updated = self.store.update_item_details(
                item_id,
                name=name.strip() if name is not UNSET else UNSET,
                description=description,
                image_url=image_url,
                properties=properties,
            )
        self.event_log.log(EventType.ITEM_UPDATED, actor_id=editor_id, item_id=item_id)
        return updated

    def list_item(self, item_id: int, seller_id: int, price: float) -> Item:
        """Offer an item for direct purchase, or change its asking price."""
        price = _require_price(price)
        with self.store.locked("item", item_id):
            item = self._owned_item(item_id, seller_id)
            if not isinstance(item.state, (Minted, Listed)):
                raise InvalidItemStateError(
                    f"Item {item_id} cannot be listed while {item.status.value}"
                )
            updated = self.store.set_item_state(item_id, Listed(price))

        logger.info(f"Item {item_id} listed at {price} {item.currency}")
        self.event_log.log(EventType.ITEM_LISTED, actor_id=seller_id, item_id=item_id, price=price)
        return updated

    def delist_item(self, item_id: int, seller_id: int) -> Item:
        """Withdraw a fixed-price listing."""
        with self.store.locked("item", item_id):
            item = self._owned_item(item_id, seller_id)
            if not isinstance(item.state, Listed):
                raise InvalidItemStateError(f"Item {item_id} is not listed")
            updated = self.store.set_item_state(item_id, Minted())

        self.event_log.log(EventType.ITEM_DELISTED, actor_id=seller_id, item_id=item_id)
        return updated

    def _owned_item(self, item_id: int, user_id: int) -> Item:
        item = self.store.get_item(item_id)
        if item.owner_id != user_id:
            raise PermissionDeniedError("You can only manage your own items")
        return item

    # ---- Auctions ----

    def open_auction(
        self,
        item_id: int,
        starting_price: float,
        end_time: datetime,
        seller_id: Optional[int] = None,
    ) -> Auction:
        """
        Put an item up for auction.

        Creating the auction and switching the item to ``auctioning``
        happen in one atomic step.

        Args:
            item_id: Item to auction
            starting_price: Opening price; the first bid must exceed it
            end_time: Absolute deadline
            seller_id: Acting user; when given it must be the owner

        Raises:
            NotFoundError: Unknown item
            PermissionDeniedError: ``seller_id`` is not the owner
            ValidationError: Non-positive price or deadline not in the future
            InvalidItemStateError: Item is sold or already auctioning
        """
        starting_price = _require_price(starting_price, "Starting price")
        end_time = as_utc(end_time)

        with self.store.locked("item", item_id):
            item = self.store.get_item(item_id)
            if seller_id is not None and item.owner_id != seller_id:
                raise PermissionDeniedError("You can only auction your own items")
            if isinstance(item.state, (Sold, Auctioning)):
                raise InvalidItemStateError(
                    f"Item {item_id} cannot be auctioned while {item.status.value}"
                )
            if end_time <= self._clock():
                raise ValidationError("Auction end time must be in the future")

            with self.store.atomic():
                auction = self.store.create_auction(
                    item_id=item.id,
                    seller_id=item.owner_id,
                    starting_price=starting_price,
                    end_time=end_time,
                    currency=item.currency,
                )
                self.store.set_item_state(item.id, Auctioning(auction.id, list_price=item.price))

        logger.info(
            f"Opened auction {auction.id} for item {item.id} at {starting_price} "
            f"{auction.currency}, ends {end_time.isoformat()}"
        )
        self.event_log.log(
            EventType.AUCTION_OPENED,
            actor_id=item.owner_id,
            auction_id=auction.id,
            item_id=item.id,
            starting_price=starting_price,
            end_time=end_time.isoformat(),
        )
        return auction

    def is_open(self, auction: Auction) -> bool:
        """True while the deadline has not passed."""
        return self._clock() < auction.end_time

    def advance_price(self, auction_id: int, new_amount: float) -> Auction:
        """
        Raise the auction's current price.

        Only the bid admission path calls this, while holding the
        auction's lock, so the price never moves without a bid.

        Raises:
            StaleBidError: ``new_amount`` does not exceed the current price
        """
        auction = self.store.get_auction(auction_id)
        if new_amount <= auction.current_price:
            raise StaleBidError(
                f"Amount {new_amount} does not exceed current price {auction.current_price}"
            )
        return self.store.set_auction_price(auction_id, new_amount)

    def settle(self, auction_id: int) -> SettlementResult:
        """
        Finalize a closed auction.

        The highest bidder receives the item at their bid. Without bids the
        item goes back to its previous fixed-price listing, or to
        ``minted`` if it had none.

        Raises:
            NotFoundError: Unknown auction
            InvalidItemStateError: Auction still open or already settled
        """
        with self.store.locked("auction", auction_id):
            auction = self.store.get_auction(auction_id)
            if auction.is_settled:
                raise InvalidItemStateError(f"Auction {auction_id} is already settled")
            if self.is_open(auction):
                raise InvalidItemStateError(f"Auction {auction_id} is still open")

            bids = self.store.bids_for_auction(auction_id)
            winner = max(bids, key=lambda b: b.amount) if bids else None
            now = self._clock()

            with self.store.locked("item", auction.item_id), self.store.atomic():
                if winner is not None:
                    tx = self.transfers.settle_auction(auction_id, winner.bidder_id, winner.amount)
                    auction = self.store.mark_auction_settled(
                        auction_id,
                        settled_at=now,
                        winning_bid_id=winner.id,
                        transaction_id=tx.id,
                    )
                else:
                    tx = None
                    item = self.store.get_item(auction.item_id)
                    if isinstance(item.state, Auctioning) and item.state.auction_id == auction_id:
                        restored = Listed(item.state.list_price) if item.state.list_price is not None else Minted()
                        self.store.set_item_state(item.id, restored)
                    auction = self.store.mark_auction_settled(auction_id, settled_at=now)
                item = self.store.get_item(auction.item_id)

        if tx is not None:
            self.event_log.log(
                EventType.AUCTION_SETTLED,
                actor_id=tx.buyer_id,
                auction_id=auction_id,
                item_id=item.id,
                price=tx.price,
                transaction_id=tx.id,
            )
        else:
            logger.info(f"Auction {auction_id} ended without bids; item {item.id} is {item.status.value}")
            self.event_log.log(
                EventType.AUCTION_EXPIRED,
                auction_id=auction_id,
                item_id=item.id,
                status=item.status.value,
            )
        return SettlementResult(auction=auction, item=item, transaction=tx)

    def open_auctions(self) -> List[Auction]:
        return [a for a in self.store.list_auctions() if self.is_open(a)]

    def settle_expired(self) -> List[SettlementResult]:
        """Settle every auction past its deadline that has not been settled yet."""
        results = []
        for auction in self.store.list_auctions():
            if auction.is_settled or self.is_open(auction):
                continue
            try:
                results.append(self.settle(auction.id))
            except InvalidItemStateError:
                # Settled concurrently by another caller
                logger.debug(f"Auction {auction.id} skipped; already settled")
        return results
