"""
Demo data for local runs.

Everything goes through the service so the seeded state obeys the same
rules as live traffic.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.services import MarketplaceService

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("john_creator", "John Artist"),
    ("alice_collector", "Alice Collector"),
    ("bob_trader", "Bob Trader"),
]

# (creator index, name, description, banner)
DEMO_COLLECTIONS = [
    (
        0,
        "Abstract Futures",
        "A collection of abstract digital art representing the future",
        "https://images.unsplash.com/photo-1550859492-d5da9d8e45f3",
    ),
    (
        2,
        "Crypto Punks",
        "Unique pixel art characters with proof of ownership",
        "https://images.unsplash.com/photo-1620641788421-7a1c342ea42e",
    ),
    (
        0,
        "Digital Landscapes",
        "Beautiful digital landscapes from imaginary worlds",
        "https://images.unsplash.com/photo-1604871000636-074fa5117945",
    ),
]

# (owner index, name, description, image, price, collection index, properties)
DEMO_ITEMS = [
    (
        0,
        "Nebula Dreamer",
        "A cosmic journey through digital space",
        "https://images.unsplash.com/photo-1604871000636-074fa5117945",
        1.5,
        0,
        {"rarity": "Rare", "size": "Large", "medium": "Digital", "colors": "Blue, Purple"},
    ),
    (
        0,
        "Cyber Samurai",
        "Futuristic warrior in a neon-lit digital world",
        "https://images.unsplash.com/photo-1614729375290-b2a429db7cdf",
        2.2,
        0,
        {"rarity": "Epic", "size": "Medium", "medium": "Digital", "colors": "Red, Blue, Neon"},
    ),
    (
        2,
        "Punk #3457",
        "One of a kind pixel art character",
        "https://images.unsplash.com/photo-1578321911954-6efb9e68ed6e",
        3.5,
        1,
        {"rarity": "Legendary", "traits": "Mohawk, Glasses, Gold Chain", "generation": "Gen 1"},
    ),
    (
        0,
        "Ethereal Valley",
        "A peaceful valley in a digital dreamscape",
        "https://images.unsplash.com/photo-1618172193763-c511deb635ca",
        None,
        2,
        {"rarity": "Uncommon", "size": "Large", "medium": "Digital Painting"},
    ),
    (
        1,
        "Quantum Fragments",
        "Abstract visualization of quantum particles",
        "https://images.unsplash.com/photo-1605721911519-3dfeb3be25e7",
        None,
        0,
        {"rarity": "Rare", "size": "Medium", "medium": "3D Render", "colors": "Multiple"},
    ),
]

AUCTION_DURATION = timedelta(days=7)


def seed_demo_data(service: "MarketplaceService") -> bool:
    """
    Populate an empty marketplace with demo users, collections, items and one running auction.

    Returns:
        True if data was added, False if the store already had users
    """
    if service.store.list_users():
        logger.info("Marketplace already seeded, skipping")
        return False

    users = [service.register_user(username, display) for username, display in DEMO_USERS]
    collections = [
        service.create_collection(
            creator_id=users[creator_idx].id,
            name=name,
            description=description,
            banner_url=banner,
        )
        for creator_idx, name, description, banner in DEMO_COLLECTIONS
    ]

    items = []
    for owner_idx, name, description, image, price, collection_idx, properties in DEMO_ITEMS:
        items.append(
            service.mint_item(
                creator_id=users[owner_idx].id,
                name=name,
                description=description,
                image_url=image,
                price=price,
                collection_id=collections[collection_idx].id,
                properties=properties,
            )
        )

    auctioned = items[-1]
    auction = service.open_auction(
        auctioned.id,
        starting_price=1.0,
        end_time=service.clock() + AUCTION_DURATION,
        seller_id=auctioned.owner_id,
    )
    for bidder_idx, amount in ((0, 1.2), (2, 1.5), (0, 1.8)):
        service.place_bid(auction.id, users[bidder_idx].id, amount)

    logger.info(
        f"Seeded {len(users)} users, {len(collections)} collections, {len(items)} items "
        f"and auction {auction.id}"
    )
    return True
