"""Shared test fixtures for the marketplace tests."""

from datetime import datetime, timedelta, timezone

import pytest

from marketplace.services import MarketplaceService
from marketplace.settings import MarketplaceSettings


class FakeClock:
    """Manually driven clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings isolated from the environment, worker disabled."""
    return MarketplaceSettings(_env_file=None, settlement_enabled=False)


@pytest.fixture
def service(clock, settings):
    """Fresh marketplace with its own store."""
    return MarketplaceService(settings=settings, clock=clock)


@pytest.fixture
def store(service):
    return service.store


@pytest.fixture
def users(service):
    """Three users with ids 1, 2 and 3."""
    return [
        service.register_user("alice", "Alice"),
        service.register_user("bob", "Bob"),
        service.register_user("carol", "Carol"),
    ]


@pytest.fixture
def listed_item(service, users):
    """Item owned by user 1, listed at 2.0."""
    return service.mint_item(
        creator_id=users[0].id,
        name="Nebula Dreamer",
        image_url="https://example.com/nebula.png",
        price=2.0,
    )


@pytest.fixture
def minted_item(service, users):
    """Unlisted item owned by user 1."""
    return service.mint_item(
        creator_id=users[0].id,
        name="Ethereal Valley",
        image_url="https://example.com/valley.png",
    )


@pytest.fixture
def auction(service, clock, minted_item):
    """Auction on the minted item: starting price 1.0, ends in one hour."""
    return service.open_auction(
        minted_item.id,
        starting_price=1.0,
        end_time=clock.now + timedelta(hours=1),
    )
