from marketplace.data.store import EntityStore

__all__ = ["EntityStore"]
