"""
Tests for bid admission.
"""

import threading
from datetime import timedelta

import pytest

from marketplace.core import (
    AuctionClosedError,
    BidTooLowError,
    EventType,
    ItemStatus,
    NotFoundError,
    SelfBidError,
    ValidationError,
)


def test_full_auction_walkthrough(service, clock, users, minted_item):
    """Bid up an auction, close it and hand the item to the top bidder."""
    seller, bidder2, bidder3 = users
    auction = service.open_auction(minted_item.id, 1.0, clock.now + timedelta(hours=1))

    service.place_bid(auction.id, bidder2.id, 1.2)
    assert service.get_auction(auction.id).current_price == 1.2

    with pytest.raises(BidTooLowError):
        service.place_bid(auction.id, bidder3.id, 1.1)
    assert service.get_auction(auction.id).current_price == 1.2

    service.place_bid(auction.id, bidder3.id, 1.5)
    assert service.get_auction(auction.id).current_price == 1.5

    clock.advance(hours=2)
    result = service.settle_auction(auction.id)

    item = service.get_item(minted_item.id)
    assert item.owner_id == bidder3.id
    assert item.status == ItemStatus.SOLD
    transactions = service.store.transactions_for_item(minted_item.id)
    assert len(transactions) == 1
    assert transactions[0].price == 1.5
    assert transactions[0].seller_id == seller.id
    assert result.transaction == transactions[0]


def test_first_bid_must_exceed_starting_price(service, auction, users):
    with pytest.raises(BidTooLowError):
        service.place_bid(auction.id, users[1].id, 1.0)


def test_tie_with_current_price_rejected(service, auction, users):
    service.place_bid(auction.id, users[1].id, 1.5)
    with pytest.raises(BidTooLowError):
        service.place_bid(auction.id, users[2].id, 1.5)

    assert len(service.auction_bids(auction.id)) == 1


def test_owner_cannot_bid(service, auction, users):
    with pytest.raises(SelfBidError):
        service.place_bid(auction.id, users[0].id, 5.0)
    assert service.get_auction(auction.id).current_price == 1.0


def test_bid_after_deadline_rejected(service, clock, auction, users):
    clock.advance(hours=1)
    with pytest.raises(AuctionClosedError):
        service.place_bid(auction.id, users[1].id, 5.0)

    assert service.auction_bids(auction.id) == []
    assert service.get_auction(auction.id).current_price == 1.0


def test_closed_checked_before_amount(service, clock, auction, users):
    clock.advance(days=1)
    with pytest.raises(AuctionClosedError):
        service.place_bid(auction.id, users[1].id, 0.1)


@pytest.mark.parametrize(
    "bidder_id, amount",
    [(404, 5.0), (2, float("nan")), (2, 10**400), (404, "junk")],
)
def test_closed_auction_rejects_every_bid(service, clock, auction, users, bidder_id, amount):
    clock.advance(hours=2)
    with pytest.raises(AuctionClosedError):
        service.place_bid(auction.id, bidder_id, amount)


def test_unknown_auction(service, users):
    with pytest.raises(NotFoundError):
        service.place_bid(404, users[1].id, 5.0)


def test_unknown_bidder(service, auction):
    with pytest.raises(NotFoundError):
        service.place_bid(auction.id, 404, 5.0)


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), "2.0", None, 10**400, -(10**400)])
def test_non_numeric_amount_rejected(service, auction, users, amount):
    with pytest.raises(ValidationError):
        service.place_bid(auction.id, users[1].id, amount)


def test_bid_records_details(service, auction, users):
    bid = service.place_bid(auction.id, users[1].id, 2)

    assert bid.amount == 2.0
    assert isinstance(bid.amount, float)
    assert bid.auction_id == auction.id
    assert bid.bidder_id == users[1].id
    assert bid.currency == auction.currency


def test_bids_listed_most_recent_first(service, auction, users):
    service.place_bid(auction.id, users[1].id, 1.2)
    service.place_bid(auction.id, users[2].id, 1.5)
    service.place_bid(auction.id, users[1].id, 1.8)

    assert [b.amount for b in service.auction_bids(auction.id)] == [1.8, 1.5, 1.2]
    assert service.bids.highest_bid(auction.id).amount == 1.8


def test_bid_logged_as_activity(service, auction, users):
    service.place_bid(auction.id, users[1].id, 1.2)

    event = service.recent_activity(1)[0]
    assert event.event_type == EventType.BID_PLACED
    assert event.actor_id == users[1].id
    assert event.details["amount"] == 1.2


def test_concurrent_bids_keep_price_monotonic(service, auction, users):
    """Racing bidders never lower the price and every accepted bid beat its predecessor."""
    amounts = [1.0 + step * 0.05 for step in range(1, 41)]
    start = threading.Barrier(len(amounts))
    errors = []

    def bid(index, amount):
        bidder = users[1 + index % 2]
        start.wait()
        try:
            service.place_bid(auction.id, bidder.id, amount)
        except BidTooLowError:
            pass
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=bid, args=(i, a)) for i, a in enumerate(amounts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    accepted = list(reversed(service.auction_bids(auction.id)))
    assert accepted
    assert all(a.amount < b.amount for a, b in zip(accepted, accepted[1:]))
    assert service.get_auction(auction.id).current_price == accepted[-1].amount
    assert accepted[-1].amount == max(amounts)
