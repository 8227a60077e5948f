"""
Application services layer.

Provides use-case oriented services that glue the core components to a
shared entity store.
"""

from .marketplace_service import MarketplaceService

__all__ = ["MarketplaceService"]
