"""Domain layer for railshed application."""

_SERVICES = {
    "CatalogService": "railshed.domain.catalog",
    "CollectionService": "railshed.domain.collection",
    "SearchService": "railshed.domain.search",
    "WishlistService": "railshed.domain.wishlist",
    "MaintenanceService": "railshed.domain.maintenance",
    "BackupService": "railshed.domain.backup",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports the entities from this
# package, so they are resolved lazily
def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
