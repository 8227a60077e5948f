"""
Ownership transfers.

The only place that changes an item's owner or creates a transaction.
Both writes of a transfer happen inside one ``EntityStore.atomic()``
block, so nobody sees a new owner without its transaction or the other
way round.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from marketplace.core.clock import Clock, utcnow
from marketplace.core.events import EventLog, EventType
from marketplace.core.exceptions import (
    InvalidItemStateError,
    NotForSaleError,
    SelfPurchaseError,
)
from marketplace.core.models import Auctioning, Listed, Sold, Transaction

if TYPE_CHECKING:
    from marketplace.data.store import EntityStore

logger = logging.getLogger(__name__)


class OwnershipTransferEngine:
    """Executes direct purchases and auction settlements."""

    def __init__(self, store: EntityStore, event_log: EventLog, clock: Clock = utcnow):
        self.store = store
        self.event_log = event_log
        self._clock = clock

    def direct_purchase(self, item_id: int, buyer_id: int, tx_hash: Optional[str] = None) -> Transaction:
        """
        Buy a listed item at its fixed price.

        Args:
            item_id: Item to buy
            buyer_id: Purchasing user
            tx_hash: External payment reference; generated when omitted

        Returns:
            The recorded transaction

        Raises:
            NotFoundError: Unknown item or buyer
            NotForSaleError: Item is not listed at a fixed price
            SelfPurchaseError: Buyer already owns the item
        """
        self.store.get_item(item_id)
        self.store.get_user(buyer_id)

        with self.store.locked("item", item_id):
            item = self.store.get_item(item_id)
            if not isinstance(item.state, Listed):
                raise NotForSaleError(f"Item {item_id} is not for sale")
            if buyer_id == item.owner_id:
                raise SelfPurchaseError("You cannot buy your own item")

            with self.store.atomic():
                tx = self.store.create_transaction(
                    item_id=item.id,
                    seller_id=item.owner_id,
                    buyer_id=buyer_id,
                    price=item.state.price,
                    currency=item.currency,
                    tx_hash=tx_hash or self._generate_tx_hash(),
                )
                self.store.transfer_item(item.id, owner_id=buyer_id, state=Sold(tx.id))

        logger.info(
            f"Item {item.id} sold to user {buyer_id} for {tx.price} {tx.currency} (tx {tx.id})"
        )
        self.event_log.log(
            EventType.PURCHASE,
            actor_id=buyer_id,
            item_id=item.id,
            seller_id=tx.seller_id,
            price=tx.price,
            transaction_id=tx.id,
        )
        return tx

    def settle_auction(self, auction_id: int, winning_bidder_id: int, final_price: float) -> Transaction:
        """
        Transfer an auctioned item to the winning bidder.

        Callers hold the auction's lock; the item lock is taken here,
        always after the auction lock.

        Raises:
            NotFoundError: Unknown auction
            InvalidItemStateError: Item is no longer bound to this auction
            SelfPurchaseError: Winner already owns the item
        """
        auction = self.store.get_auction(auction_id)

        with self.store.locked("item", auction.item_id):
            item = self.store.get_item(auction.item_id)
            if not (isinstance(item.state, Auctioning) and item.state.auction_id == auction_id):
                raise InvalidItemStateError(
                    f"Item {item.id} is not being auctioned by auction {auction_id}"
                )
            if winning_bidder_id == item.owner_id:
                raise SelfPurchaseError("The owner cannot win their own auction")

            with self.store.atomic():
                tx = self.store.create_transaction(
                    item_id=item.id,
                    seller_id=item.owner_id,
                    buyer_id=winning_bidder_id,
                    price=final_price,
                    currency=auction.currency,
                    tx_hash=self._generate_tx_hash(),
                    auction_id=auction_id,
                )
                self.store.transfer_item(item.id, owner_id=winning_bidder_id, state=Sold(tx.id))

        logger.info(
            f"Auction {auction_id} settled: item {item.id} to user {winning_bidder_id} "
            f"for {final_price} {auction.currency} (tx {tx.id})"
        )
        return tx

    def _generate_tx_hash(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        return f"tx-{millis}-{uuid.uuid4().hex[:12]}"
