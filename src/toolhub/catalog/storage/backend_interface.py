"""
Catalog Backend Interface
Abstract base class for the stores that can hold the app catalog.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from toolhub.catalog.filters import AppFilter
from toolhub.catalog.records import App

Mutator = Callable[[App], App]


class CatalogBackend(ABC):
    """Abstract base class for catalog storage backends."""

    name: str = "abstract"

    @abstractmethod
    def list_apps(self, app_filter: Optional[AppFilter] = None) -> List[App]:
        """
        Lists apps matching a filter.
        Args:
            app_filter: Constraints and sort order; None lists everything by name.
        Returns:
            The matching apps, ordered by app_filter.sort.
        Raises:
            StoreFailure: The underlying store could not be queried.
        """
        pass

    @abstractmethod
    def get_app(self, app_id: str) -> Optional[App]:
        """
        Point lookup.
        Returns:
            The app, or None when no app has this id.
        Raises:
            StoreFailure: The underlying store could not be queried.
        """
        pass

    @abstractmethod
    def create_app(self, app: App) -> App:
        """
        Inserts a new app. At most one of several concurrent creates with
        the same id succeeds.
        Returns:
            The stored app.
        Raises:
            DuplicateIdError: An app with this id already exists.
            StoreFailure: The write failed; nothing was stored.
        """
        pass

    @abstractmethod
    def atomic_update(self, app_id: str, mutator: Mutator) -> Optional[App]:
        """
        Reads the app, applies `mutator` and writes the result back as one
        unit with respect to other updates of the same id.
        Args:
            app_id: The app to update.
            mutator: Pure function from the current app to the new app. It
                may run more than once if the store retries the unit.
        Returns:
            The new app, or None when no app has this id.
        Raises:
            StoreFailure: The update failed and was not applied.
        """
        pass

    def ping(self) -> Dict[str, Any]:
        """Health probe for the backing store."""
        return {"ok": True, "backend": self.name}

    def close(self) -> None:
        """Releases clients/connections held by the backend."""
        return None
