"""
Digital collectibles marketplace.

Items, fixed-price listings, time-boxed auctions and ownership transfers
kept in an in-memory entity store.
"""

__version__ = "0.1.0"
