"""
Bid admission.

Every bid attempt passes through ``BidAdmissionController.place_bid``.
Bids on one auction are serialized by that auction's lock; the price
advance and the new bid record are committed together.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from marketplace.core.events import EventLog, EventType
from marketplace.core.exceptions import AuctionClosedError, BidTooLowError, SelfBidError
from marketplace.core.lifecycle import AuctionLifecycleManager, finite_amount
from marketplace.core.models import Bid

if TYPE_CHECKING:
    from marketplace.data.store import EntityStore

logger = logging.getLogger(__name__)


class BidAdmissionController:
    """Validates and records bids against auctions."""

    def __init__(self, store: EntityStore, lifecycle: AuctionLifecycleManager, event_log: EventLog):
        self.store = store
        self.lifecycle = lifecycle
        self.event_log = event_log

    def place_bid(self, auction_id: int, bidder_id: int, amount: float) -> Bid:
        """
        Admit a bid.

        Checks run in this order: auction exists, auction open, bidder
        exists, amount is a finite number, bidder is not the owner, amount
        strictly above the current price. Ties are rejected, and once the
        deadline passes every bid fails with ``AuctionClosedError``.

        Returns:
            The stored bid

        Raises:
            NotFoundError: Unknown auction or bidder
            AuctionClosedError: Deadline has passed
            SelfBidError: Bidder owns the item
            BidTooLowError: Amount does not exceed the current price
            ValidationError: Amount is not a finite number
        """
        self.store.get_auction(auction_id)

        with self.store.locked("auction", auction_id):
            auction = self.store.get_auction(auction_id)
            if not self.lifecycle.is_open(auction):
                logger.debug(f"Rejected bid on auction {auction_id}: closed")
                raise AuctionClosedError("This auction has ended")

            self.store.get_user(bidder_id)
            amount = finite_amount(amount, "Bid amount")

            item = self.store.get_item(auction.item_id)
            if bidder_id == item.owner_id:
                raise SelfBidError("You cannot bid on your own item")

            if amount <= auction.current_price:
                logger.debug(
                    f"Rejected bid {amount} on auction {auction_id}: current price {auction.current_price}"
                )
                raise BidTooLowError(
                    f"Bid must be higher than the current price of {auction.current_price}"
                )

            with self.store.atomic():
                self.lifecycle.advance_price(auction_id, amount)
                bid = self.store.create_bid(
                    auction_id=auction_id,
                    bidder_id=bidder_id,
                    amount=amount,
                    currency=auction.currency,
                )

        logger.info(f"Accepted bid {bid.id}: {bid.amount} {bid.currency} on auction {auction_id} by user {bidder_id}")
        self.event_log.log(
            EventType.BID_PLACED,
            actor_id=bidder_id,
            auction_id=auction_id,
            item_id=auction.item_id,
            amount=bid.amount,
            bid_id=bid.id,
        )
        return bid

    def bids_for(self, auction_id: int) -> List[Bid]:
        """Bids of an auction, most recent (and highest) first."""
        self.store.get_auction(auction_id)
        return list(reversed(self.store.bids_for_auction(auction_id)))

    def highest_bid(self, auction_id: int) -> Optional[Bid]:
        bids = self.store.bids_for_auction(auction_id)
        return bids[-1] if bids else None
