from toolhub.catalog.storage.backend_interface import CatalogBackend, Mutator
from toolhub.catalog.storage.keyed_lock import KeyedLock

__all__ = ["CatalogBackend", "Mutator", "KeyedLock"]
