"""
Tests for demo data seeding.
"""

from marketplace.core import ItemStatus
from marketplace.data.seed import DEMO_COLLECTIONS, DEMO_ITEMS, DEMO_USERS, seed_demo_data


def test_seed_populates_empty_store(service):
    assert seed_demo_data(service) is True

    assert len(service.store.list_users()) == len(DEMO_USERS)
    assert len(service.list_collections()) == len(DEMO_COLLECTIONS)
    items = service.list_items()
    assert len(items) == len(DEMO_ITEMS)

    auctions = service.list_auctions(open_only=True)
    assert len(auctions) == 1
    auction = auctions[0]
    assert auction.current_price == 1.8
    assert len(service.auction_bids(auction.id)) == 3
    assert service.get_item(auction.item_id).status == ItemStatus.AUCTIONING


def test_seed_listed_items_are_buyable(service):
    seed_demo_data(service)

    listed = service.list_items(status=ItemStatus.LISTED)
    assert {i.name for i in listed} == {"Nebula Dreamer", "Cyber Samurai", "Punk #3457"}


def test_seed_items_belong_to_collections(service):
    seed_demo_data(service)

    first, punks, landscapes = service.list_collections()
    assert [i.name for i in service.collection_items(punks.id)] == ["Punk #3457"]
    assert [i.name for i in service.collection_items(landscapes.id)] == ["Ethereal Valley"]
    assert len(service.collection_items(first.id)) == 3


def test_seed_skips_when_users_exist(service, users):
    assert seed_demo_data(service) is False
    assert service.list_items() == []
