from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request

from marketplace.core import ItemStatus, NotFoundError
from marketplace.data.seed import seed_demo_data
from marketplace.services import MarketplaceService
from marketplace.settings import MarketplaceSettings, get_server_settings, get_settings

from .errors import register_error_handlers
from .schemas import (
    ActivityEventDTO,
    ActivityResponse,
    AuctionDTO,
    BidDTO,
    CollectionDTO,
    CreateCollectionRequest,
    CreateUserRequest,
    DelistItemRequest,
    ItemDTO,
    ListItemRequest,
    MintItemRequest,
    OpenAuctionRequest,
    PlaceBidRequest,
    PurchaseRequest,
    SettlementResponse,
    TransactionDTO,
    UpdateItemRequest,
    UserDTO,
)
from .settlement import SettlementWorker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    settings: MarketplaceSettings = app.state.settings
    service: MarketplaceService = app.state.service

    logging.basicConfig(level=settings.log_level)
    logger.info("Starting marketplace server")

    if settings.seed_demo_data:
        seed_demo_data(service)

    worker: Optional[SettlementWorker] = None
    if settings.settlement_enabled:
        worker = SettlementWorker(service, settings.settlement_interval_seconds)
        await worker.start()
    app.state.settlement_worker = worker

    yield

    logger.info("Shutting down marketplace server")
    if worker is not None:
        await worker.stop()


# ---- Dependencies ----
def get_service(request: Request) -> MarketplaceService:
    return request.app.state.service


def _auction_dto(service: MarketplaceService, auction) -> AuctionDTO:
    return AuctionDTO.from_record(auction, is_open=service.is_open(auction))


def _collection_dto(service: MarketplaceService, collection) -> CollectionDTO:
    return CollectionDTO.from_record(collection, service.collection_items(collection.id))


def create_app(
    service: Optional[MarketplaceService] = None,
    settings: Optional[MarketplaceSettings] = None,
) -> FastAPI:
    """Build the API around one marketplace service (and its store)."""
    settings = settings or get_settings()
    app = FastAPI(title="Digital Collectibles Marketplace", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service or MarketplaceService(settings=settings)
    register_error_handlers(app)

    # ---- Users ----

    @app.post("/api/users", response_model=UserDTO, status_code=201)
    async def create_user(req: CreateUserRequest, service: MarketplaceService = Depends(get_service)):
        return UserDTO.from_record(service.register_user(req.username, req.display_name))

    @app.get("/api/users/{user_id}", response_model=UserDTO)
    async def get_user(user_id: int, service: MarketplaceService = Depends(get_service)):
        return UserDTO.from_record(service.get_user(user_id))

    @app.get("/api/users/{user_id}/owned", response_model=List[ItemDTO])
    async def owned_items(user_id: int, service: MarketplaceService = Depends(get_service)):
        return [ItemDTO.from_record(i) for i in service.items_owned_by(user_id)]

    @app.get("/api/users/{user_id}/created", response_model=List[ItemDTO])
    async def created_items(user_id: int, service: MarketplaceService = Depends(get_service)):
        return [ItemDTO.from_record(i) for i in service.items_created_by(user_id)]

    @app.get("/api/users/{user_id}/collections", response_model=List[CollectionDTO])
    async def user_collections(user_id: int, service: MarketplaceService = Depends(get_service)):
        return [_collection_dto(service, c) for c in service.collections_created_by(user_id)]

    @app.get("/api/users/{user_id}/transactions", response_model=List[TransactionDTO])
    async def user_transactions(user_id: int, service: MarketplaceService = Depends(get_service)):
        return [TransactionDTO.from_record(t) for t in service.transactions_for_user(user_id)]

    # ---- Collections ----

    @app.post("/api/collections", response_model=CollectionDTO, status_code=201)
    async def create_collection(req: CreateCollectionRequest, service: MarketplaceService = Depends(get_service)):
        collection = service.create_collection(
            creator_id=req.creator_id,
            name=req.name,
            description=req.description,
            banner_url=req.banner_url,
        )
        return _collection_dto(service, collection)

    @app.get("/api/collections", response_model=List[CollectionDTO])
    async def list_collections(service: MarketplaceService = Depends(get_service)):
        return [_collection_dto(service, c) for c in service.list_collections()]

    @app.get("/api/collections/{collection_id}", response_model=CollectionDTO)
    async def get_collection(collection_id: int, service: MarketplaceService = Depends(get_service)):
        return _collection_dto(service, service.get_collection(collection_id))

    @app.get("/api/collections/{collection_id}/items", response_model=List[ItemDTO])
    async def collection_items(collection_id: int, service: MarketplaceService = Depends(get_service)):
        return [ItemDTO.from_record(i) for i in service.collection_items(collection_id)]

    # ---- Items ----

    @app.post("/api/items", response_model=ItemDTO, status_code=201)
    async def mint_item(req: MintItemRequest, service: MarketplaceService = Depends(get_service)):
        item = service.mint_item(
            creator_id=req.creator_id,
            name=req.name,
            image_url=req.image_url,
            description=req.description,
            collection_id=req.collection_id,
            properties=req.properties,
            price=req.price,
            currency=req.currency,
        )
        return ItemDTO.from_record(item)

    @app.get("/api/items", response_model=List[ItemDTO])
    async def list_items(
        limit: int = Query(100, ge=1),
        offset: int = Query(0, ge=0),
        status: Optional[ItemStatus] = None,
        owner_id: Optional[int] = Query(None, alias="ownerId"),
        creator_id: Optional[int] = Query(None, alias="creatorId"),
        collection_id: Optional[int] = Query(None, alias="collectionId"),
        service: MarketplaceService = Depends(get_service),
    ):
        items = service.list_items(
            limit=limit,
            offset=offset,
            status=status,
            owner_id=owner_id,
            creator_id=creator_id,
            collection_id=collection_id,
        )
        return [ItemDTO.from_record(i) for i in items]

    @app.get("/api/items/{item_id}", response_model=ItemDTO)
    async def get_item(item_id: int, service: MarketplaceService = Depends(get_service)):
        return ItemDTO.from_record(service.get_item(item_id))

    @app.patch("/api/items/{item_id}", response_model=ItemDTO)
    async def update_item(item_id: int, req: UpdateItemRequest, service: MarketplaceService = Depends(get_service)):
        item = service.update_item(item_id, req.editor_id, **req.changes())
        return ItemDTO.from_record(item)

    @app.post("/api/items/{item_id}/list", response_model=ItemDTO)
    async def list_item(item_id: int, req: ListItemRequest, service: MarketplaceService = Depends(get_service)):
        return ItemDTO.from_record(service.list_item(item_id, req.seller_id, req.price))

    @app.post("/api/items/{item_id}/delist", response_model=ItemDTO)
    async def delist_item(item_id: int, req: DelistItemRequest, service: MarketplaceService = Depends(get_service)):
        return ItemDTO.from_record(service.delist_item(item_id, req.seller_id))

    @app.get("/api/items/{item_id}/auction", response_model=AuctionDTO)
    async def item_auction(item_id: int, service: MarketplaceService = Depends(get_service)):
        auction = service.auction_for_item(item_id)
        if auction is None:
            raise NotFoundError(f"Item {item_id} has never been auctioned")
        return _auction_dto(service, auction)

    # ---- Auctions & bids ----

    @app.post("/api/auctions", response_model=AuctionDTO, status_code=201)
    async def open_auction(req: OpenAuctionRequest, service: MarketplaceService = Depends(get_service)):
        auction = service.open_auction(
            req.item_id,
            req.starting_price,
            req.end_time,
            seller_id=req.seller_id,
        )
        return _auction_dto(service, auction)

    @app.get("/api/auctions", response_model=List[AuctionDTO])
    async def list_auctions(
        open_only: bool = Query(False, alias="openOnly"),
        service: MarketplaceService = Depends(get_service),
    ):
        return [_auction_dto(service, a) for a in service.list_auctions(open_only=open_only)]

    @app.get("/api/auctions/{auction_id}", response_model=AuctionDTO)
    async def get_auction(auction_id: int, service: MarketplaceService = Depends(get_service)):
        return _auction_dto(service, service.get_auction(auction_id))

    @app.get("/api/auctions/{auction_id}/bids", response_model=List[BidDTO])
    async def auction_bids(auction_id: int, service: MarketplaceService = Depends(get_service)):
        return [BidDTO.from_record(b) for b in service.auction_bids(auction_id)]

    @app.post("/api/auctions/{auction_id}/settle", response_model=SettlementResponse)
    async def settle_auction(auction_id: int, service: MarketplaceService = Depends(get_service)):
        result = service.settle_auction(auction_id)
        return SettlementResponse(
            auction=_auction_dto(service, result.auction),
            item=ItemDTO.from_record(result.item),
            transaction=TransactionDTO.from_record(result.transaction) if result.transaction else None,
        )

    @app.post("/api/bids", response_model=BidDTO, status_code=201)
    async def place_bid(req: PlaceBidRequest, service: MarketplaceService = Depends(get_service)):
        return BidDTO.from_record(service.place_bid(req.auction_id, req.bidder_id, req.amount))

    # ---- Purchases & transactions ----

    @app.post("/api/purchases", response_model=TransactionDTO, status_code=201)
    async def direct_purchase(req: PurchaseRequest, service: MarketplaceService = Depends(get_service)):
        tx = service.direct_purchase(req.item_id, req.buyer_id, tx_hash=req.tx_hash)
        return TransactionDTO.from_record(tx)

    @app.get("/api/transactions/{transaction_id}", response_model=TransactionDTO)
    async def get_transaction(transaction_id: int, service: MarketplaceService = Depends(get_service)):
        return TransactionDTO.from_record(service.get_transaction(transaction_id))

    # ---- Activity ----

    @app.get("/api/activity", response_model=ActivityResponse)
    async def recent_activity(
        limit: int = Query(50, ge=1),
        service: MarketplaceService = Depends(get_service),
    ):
        events = service.recent_activity(limit)
        return ActivityResponse(
            events=[ActivityEventDTO.from_record(e) for e in events],
            total_events=len(events),
        )

    @app.get("/")
    async def root():
        return {"message": "Marketplace API is running"}

    return app


app = create_app()


if __name__ == "__main__":
    # Convenience entrypoint for running directly: python -m server.app
    import uvicorn

    server_settings = get_server_settings()
    uvicorn.run("server.app:app", host=server_settings.host, port=server_settings.port, reload=server_settings.reload)
