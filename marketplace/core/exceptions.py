"""
Custom exception hierarchy for the marketplace core and API layer.

Every failure carries a stable ``kind`` tag so callers can tell
"bid too low" apart from "auction ended" without parsing messages.
"""


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    kind = "MarketplaceError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.kind)
        self.message = message or self.__class__.__doc__ or self.kind


class NotFoundError(MarketplaceError):
    """Referenced entity does not exist."""

    kind = "NotFound"


class InvalidItemStateError(MarketplaceError):
    """Operation is not permitted in the item's current state."""

    kind = "InvalidItemState"


class AuctionClosedError(MarketplaceError):
    """Auction has ended."""

    kind = "AuctionClosed"


class SelfBidError(MarketplaceError):
    """Owners cannot bid on their own item."""

    kind = "SelfBid"


class BidTooLowError(MarketplaceError):
    """Bid must be higher than the current price."""

    kind = "BidTooLow"


class StaleBidError(MarketplaceError):
    """Amount does not exceed the auction's current price."""

    kind = "StaleBid"


class NotForSaleError(MarketplaceError):
    """Item has no active fixed-price listing."""

    kind = "NotForSale"


class SelfPurchaseError(MarketplaceError):
    """Owners cannot buy their own item."""

    kind = "SelfPurchase"


class PermissionDeniedError(MarketplaceError):
    """Only the owner may perform this operation."""

    kind = "Forbidden"


class ValidationError(MarketplaceError):
    """Input validation failed."""

    kind = "InvalidInput"
