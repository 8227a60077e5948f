"""
Tests for item listings and the auction lifecycle.
"""

from datetime import timedelta

import pytest

from marketplace.core import (
    Auctioning,
    EventType,
    InvalidItemStateError,
    ItemStatus,
    NotFoundError,
    PermissionDeniedError,
    StaleBidError,
    ValidationError,
)


class TestItems:
    """Minting, listing and editing."""

    def test_mint_without_price_is_minted(self, minted_item, users):
        assert minted_item.status == ItemStatus.MINTED
        assert minted_item.price is None
        assert minted_item.owner_id == minted_item.creator_id == users[0].id
        assert minted_item.currency == "ETH"

    def test_mint_with_price_is_listed(self, listed_item):
        assert listed_item.status == ItemStatus.LISTED
        assert listed_item.price == 2.0

    def test_mint_requires_known_creator(self, service):
        with pytest.raises(NotFoundError):
            service.mint_item(creator_id=99, name="Ghost", image_url="x")

    @pytest.mark.parametrize("price", [0, -2.5, float("nan"), 10**400])
    def test_mint_rejects_bad_price(self, service, users, price):
        with pytest.raises(ValidationError):
            service.mint_item(creator_id=users[0].id, name="Free", image_url="x", price=price)
        assert service.list_items() == []

    def test_mint_into_unknown_collection(self, service, users):
        with pytest.raises(NotFoundError):
            service.mint_item(creator_id=users[0].id, name="Stray", image_url="x", collection_id=987654)
        assert service.list_items() == []

    def test_mint_into_collection(self, service, users):
        collection = service.create_collection(creator_id=users[0].id, name="Abstract Futures")
        item = service.mint_item(
            creator_id=users[0].id, name="Nebula", image_url="x", collection_id=collection.id
        )
        assert item.collection_id == collection.id

    def test_list_rejects_huge_price(self, service, minted_item, users):
        with pytest.raises(ValidationError):
            service.list_item(minted_item.id, users[0].id, 10**400)
        assert service.get_item(minted_item.id).status == ItemStatus.MINTED

    def test_list_and_delist(self, service, minted_item, users):
        listed = service.list_item(minted_item.id, users[0].id, 3.5)
        assert listed.status == ItemStatus.LISTED
        assert listed.price == 3.5

        repriced = service.list_item(minted_item.id, users[0].id, 4.0)
        assert repriced.price == 4.0

        delisted = service.delist_item(minted_item.id, users[0].id)
        assert delisted.status == ItemStatus.MINTED
        assert delisted.price is None

    def test_only_owner_can_list(self, service, minted_item, users):
        with pytest.raises(PermissionDeniedError):
            service.list_item(minted_item.id, users[1].id, 3.5)

    def test_delist_requires_listing(self, service, minted_item, users):
        with pytest.raises(InvalidItemStateError):
            service.delist_item(minted_item.id, users[0].id)

    def test_cannot_list_while_auctioning(self, service, auction, users):
        with pytest.raises(InvalidItemStateError):
            service.list_item(auction.item_id, users[0].id, 5.0)

    def test_update_details_owner_only(self, service, minted_item, users):
        updated = service.update_item(minted_item.id, users[0].id, name="Valley II", properties={"size": "XL"})
        assert updated.name == "Valley II"
        assert updated.properties == {"size": "XL"}

        with pytest.raises(PermissionDeniedError):
            service.update_item(minted_item.id, users[1].id, name="Stolen")

    def test_update_leaves_omitted_fields(self, service, users):
        item = service.mint_item(
            creator_id=users[0].id, name="Valley", image_url="x", description="Calm", properties={"a": "b"}
        )
        updated = service.update_item(item.id, users[0].id, image_url="y")

        assert updated.image_url == "y"
        assert updated.description == "Calm"
        assert updated.properties == {"a": "b"}

    def test_update_clears_description_and_properties(self, service, users):
        item = service.mint_item(
            creator_id=users[0].id, name="Valley", image_url="x", description="Calm", properties={"a": "b"}
        )
        updated = service.update_item(item.id, users[0].id, description=None, properties=None)

        assert updated.description is None
        assert updated.properties == {}
        assert updated.name == "Valley"

    @pytest.mark.parametrize("changes", [{"name": None}, {"name": "  "}, {"image_url": None}, {"image_url": ""}])
    def test_update_cannot_clear_name_or_image(self, service, minted_item, users, changes):
        with pytest.raises(ValidationError):
            service.update_item(minted_item.id, users[0].id, **changes)
        assert service.get_item(minted_item.id).name == minted_item.name

    def test_update_rejected_after_sale(self, service, listed_item, users):
        service.direct_purchase(listed_item.id, users[1].id)
        with pytest.raises(InvalidItemStateError):
            service.update_item(listed_item.id, users[1].id, name="Mine now")


class TestOpenAuction:
    """Opening auctions."""

    def test_open_auction_binds_item(self, service, auction, minted_item, users):
        item = service.get_item(minted_item.id)

        assert auction.current_price == auction.starting_price == 1.0
        assert auction.seller_id == users[0].id
        assert item.status == ItemStatus.AUCTIONING
        assert item.state == Auctioning(auction.id, list_price=None)
        assert item.auction_id == auction.id

    def test_open_auction_remembers_list_price(self, service, clock, listed_item):
        service.open_auction(listed_item.id, 1.0, clock.now + timedelta(hours=1))
        item = service.get_item(listed_item.id)
        assert item.price is None
        assert item.state.list_price == 2.0

    def test_cannot_open_twice(self, service, clock, auction):
        with pytest.raises(InvalidItemStateError):
            service.open_auction(auction.item_id, 2.0, clock.now + timedelta(hours=2))
        assert len(service.list_auctions()) == 1

    def test_cannot_auction_sold_item(self, service, clock, listed_item, users):
        service.direct_purchase(listed_item.id, users[1].id)
        with pytest.raises(InvalidItemStateError):
            service.open_auction(listed_item.id, 1.0, clock.now + timedelta(hours=1), seller_id=users[1].id)

    def test_unknown_item(self, service, clock):
        with pytest.raises(NotFoundError):
            service.open_auction(42, 1.0, clock.now + timedelta(hours=1))

    def test_seller_must_be_owner(self, service, clock, minted_item, users):
        with pytest.raises(PermissionDeniedError):
            service.open_auction(minted_item.id, 1.0, clock.now + timedelta(hours=1), seller_id=users[1].id)
        assert service.get_item(minted_item.id).status == ItemStatus.MINTED

    @pytest.mark.parametrize("price", [0, -1.0, float("nan"), float("inf"), 10**400, "1.0"])
    def test_rejects_bad_starting_price(self, service, clock, minted_item, price):
        with pytest.raises(ValidationError):
            service.open_auction(minted_item.id, price, clock.now + timedelta(hours=1))

    def test_rejects_end_time_in_past(self, service, clock, minted_item):
        with pytest.raises(ValidationError):
            service.open_auction(minted_item.id, 1.0, clock.now)
        assert service.get_item(minted_item.id).status == ItemStatus.MINTED
        assert service.list_auctions() == []

    def test_naive_end_time_treated_as_utc(self, service, clock, minted_item):
        naive_end = (clock.now + timedelta(hours=1)).replace(tzinfo=None)
        auction = service.open_auction(minted_item.id, 1.0, naive_end)
        assert auction.end_time == clock.now + timedelta(hours=1)

    def test_logs_activity(self, service, auction):
        types = [e.event_type for e in service.event_log.get_events()]
        assert EventType.AUCTION_OPENED in types


class TestIsOpenAndPrice:
    """Open/closed boundary and price advancement."""

    def test_open_until_end_time(self, service, clock, auction):
        assert service.is_open(auction)

        clock.advance(minutes=59, seconds=59)
        assert service.is_open(auction)

        clock.advance(seconds=1)
        assert not service.is_open(auction)

    def test_advance_price(self, service, auction):
        updated = service.lifecycle.advance_price(auction.id, 1.5)
        assert updated.current_price == 1.5

    @pytest.mark.parametrize("amount", [1.0, 0.5])
    def test_advance_price_rejects_stale(self, service, auction, amount):
        with pytest.raises(StaleBidError):
            service.lifecycle.advance_price(auction.id, amount)
        assert service.get_auction(auction.id).current_price == 1.0


class TestSettle:
    """Settling closed auctions."""

    def test_cannot_settle_open_auction(self, service, auction):
        with pytest.raises(InvalidItemStateError):
            service.settle_auction(auction.id)

    def test_unknown_auction(self, service):
        with pytest.raises(NotFoundError):
            service.settle_auction(7)

    def test_settle_transfers_to_highest_bidder(self, service, clock, auction, users):
        service.place_bid(auction.id, users[1].id, 1.2)
        winning = service.place_bid(auction.id, users[2].id, 1.5)
        clock.advance(hours=1)

        result = service.settle_auction(auction.id)

        assert result.sold
        assert result.transaction.buyer_id == users[2].id
        assert result.transaction.seller_id == users[0].id
        assert result.transaction.price == 1.5
        assert result.transaction.auction_id == auction.id
        assert result.item.owner_id == users[2].id
        assert result.item.status == ItemStatus.SOLD
        assert result.auction.winning_bid_id == winning.id
        assert result.auction.transaction_id == result.transaction.id
        assert result.auction.settled_at == clock.now

    def test_settle_without_bids_reverts_to_minted(self, service, clock, auction, users):
        clock.advance(hours=2)
        result = service.settle_auction(auction.id)

        assert not result.sold
        assert result.item.status == ItemStatus.MINTED
        assert result.item.owner_id == users[0].id
        assert service.store.transactions_for_item(auction.item_id) == []

    def test_settle_without_bids_restores_listing(self, service, clock, listed_item):
        auction = service.open_auction(listed_item.id, 1.0, clock.now + timedelta(hours=1))
        clock.advance(hours=1)

        result = service.settle_auction(auction.id)

        assert result.item.status == ItemStatus.LISTED
        assert result.item.price == 2.0

    def test_settle_only_once(self, service, clock, auction, users):
        service.place_bid(auction.id, users[1].id, 1.2)
        clock.advance(hours=1)
        service.settle_auction(auction.id)

        with pytest.raises(InvalidItemStateError):
            service.settle_auction(auction.id)
        assert len(service.store.transactions_for_item(auction.item_id)) == 1

    def test_item_can_be_auctioned_again_after_no_sale(self, service, clock, auction, users):
        clock.advance(hours=1)
        service.settle_auction(auction.id)

        again = service.open_auction(auction.item_id, 0.5, clock.now + timedelta(hours=1), seller_id=users[0].id)
        assert service.auction_for_item(auction.item_id).id == again.id

    def test_settle_expired_skips_open_and_settled(self, service, clock, users):
        short = service.mint_item(creator_id=users[0].id, name="Short", image_url="x")
        long = service.mint_item(creator_id=users[0].id, name="Long", image_url="x")
        a_short = service.open_auction(short.id, 1.0, clock.now + timedelta(minutes=10))
        a_long = service.open_auction(long.id, 1.0, clock.now + timedelta(days=1))
        service.place_bid(a_short.id, users[1].id, 2.0)

        clock.advance(minutes=10)
        results = service.settle_expired()

        assert [r.auction.id for r in results] == [a_short.id]
        assert service.settle_expired() == []
        assert service.get_auction(a_long.id).settled_at is None
        assert [a.id for a in service.list_auctions(open_only=True)] == [a_long.id]
