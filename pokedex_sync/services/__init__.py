from .sync_engine import CatalogSyncEngine

__all__ = ["CatalogSyncEngine"]
