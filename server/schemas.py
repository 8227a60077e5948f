from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from marketplace.core import Auction, Bid, Collection, Item, MarketEvent, Transaction, User
from marketplace.core.clock import as_utc


class CamelModel(BaseModel):
    """Accepts and emits camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Requests ----


class CreateUserRequest(CamelModel):
    username: str = Field(min_length=1, max_length=64)
    display_name: Optional[str] = Field(default=None, max_length=128)


class CreateCollectionRequest(CamelModel):
    creator_id: int
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    banner_url: Optional[str] = None


class MintItemRequest(CamelModel):
    creator_id: int
    name: str = Field(min_length=1, max_length=200)
    image_url: str = Field(min_length=1)
    description: Optional[str] = None
    collection_id: Optional[int] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)


class UpdateItemRequest(CamelModel):
    editor_id: int
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    properties: Optional[Dict[str, str]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent; an explicit null clears."""
        return self.model_dump(exclude_unset=True, exclude={"editor_id"})


class ListItemRequest(CamelModel):
    seller_id: int
    price: float = Field(gt=0)


class DelistItemRequest(CamelModel):
    seller_id: int


class OpenAuctionRequest(CamelModel):
    item_id: int
    starting_price: float = Field(gt=0)
    end_time: datetime
    seller_id: Optional[int] = None

    @field_validator("end_time")
    @classmethod
    def normalize_end_time(cls, value: datetime) -> datetime:
        return as_utc(value)


class PlaceBidRequest(CamelModel):
    auction_id: int
    bidder_id: int
    amount: float


class PurchaseRequest(CamelModel):
    item_id: int
    buyer_id: int
    tx_hash: Optional[str] = Field(default=None, max_length=128)


# ---- Responses ----


class ErrorResponse(CamelModel):
    error: str
    message: str


class UserDTO(CamelModel):
    id: int
    username: str
    display_name: str
    created_at: datetime

    @classmethod
    def from_record(cls, user: User) -> "UserDTO":
        return cls(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            created_at=user.created_at,
        )


class CollectionDTO(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    banner_url: Optional[str] = None
    creator_id: int
    item_count: int = 0
    floor_price: Optional[float] = None
    created_at: datetime

    @classmethod
    def from_record(cls, collection: Collection, items: List[Item]) -> "CollectionDTO":
        prices = [i.price for i in items if i.price is not None]
        return cls(
            id=collection.id,
            name=collection.name,
            description=collection.description,
            banner_url=collection.banner_url,
            creator_id=collection.creator_id,
            item_count=len(items),
            floor_price=min(prices) if prices else None,
            created_at=collection.created_at,
        )


class ItemDTO(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: str
    creator_id: int
    owner_id: int
    status: str
    price: Optional[float] = None
    currency: str
    auction_id: Optional[int] = None
    collection_id: Optional[int] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    token_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_record(cls, item: Item) -> "ItemDTO":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            image_url=item.image_url,
            creator_id=item.creator_id,
            owner_id=item.owner_id,
            status=item.status.value,
            price=item.price,
            currency=item.currency,
            auction_id=item.auction_id,
            collection_id=item.collection_id,
            properties=dict(item.properties),
            token_id=item.token_id,
            created_at=item.created_at,
        )


class AuctionDTO(CamelModel):
    id: int
    item_id: int
    seller_id: int
    starting_price: float
    current_price: float
    currency: str
    end_time: datetime
    created_at: datetime
    is_open: bool
    settled_at: Optional[datetime] = None
    winning_bid_id: Optional[int] = None
    transaction_id: Optional[int] = None

    @classmethod
    def from_record(cls, auction: Auction, is_open: bool) -> "AuctionDTO":
        return cls(
            id=auction.id,
            item_id=auction.item_id,
            seller_id=auction.seller_id,
            starting_price=auction.starting_price,
            current_price=auction.current_price,
            currency=auction.currency,
            end_time=auction.end_time,
            created_at=auction.created_at,
            is_open=is_open,
            settled_at=auction.settled_at,
            winning_bid_id=auction.winning_bid_id,
            transaction_id=auction.transaction_id,
        )


class BidDTO(CamelModel):
    id: int
    auction_id: int
    bidder_id: int
    amount: float
    currency: str
    created_at: datetime

    @classmethod
    def from_record(cls, bid: Bid) -> "BidDTO":
        return cls(
            id=bid.id,
            auction_id=bid.auction_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            currency=bid.currency,
            created_at=bid.created_at,
        )


class TransactionDTO(CamelModel):
    id: int
    item_id: int
    seller_id: int
    buyer_id: int
    price: float
    currency: str
    tx_hash: Optional[str] = None
    auction_id: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_record(cls, tx: Transaction) -> "TransactionDTO":
        return cls(
            id=tx.id,
            item_id=tx.item_id,
            seller_id=tx.seller_id,
            buyer_id=tx.buyer_id,
            price=tx.price,
            currency=tx.currency,
            tx_hash=tx.tx_hash,
            auction_id=tx.auction_id,
            created_at=tx.created_at,
        )


class SettlementResponse(CamelModel):
    auction: AuctionDTO
    item: ItemDTO
    transaction: Optional[TransactionDTO] = None


class ActivityEventDTO(CamelModel):
    sequence: int
    event_type: str
    timestamp: datetime
    actor_id: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, event: MarketEvent) -> "ActivityEventDTO":
        return cls(
            sequence=event.sequence,
            event_type=event.event_type.value,
            timestamp=event.timestamp,
            actor_id=event.actor_id,
            details=dict(event.details),
        )


class ActivityResponse(CamelModel):
    events: List[ActivityEventDTO]
    total_events: int
