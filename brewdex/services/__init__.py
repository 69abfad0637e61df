"""Stateful services backing the beer catalog.

* :class:`BeersStore` – catalog, selection, error, and preference state.
* :class:`RequestCache` – at-most-one in-flight fetch per resource key.
* :func:`merge_beers` – freshest-wins, name sorted catalog union.
* :class:`LikedBeersReconciler` – fetches liked beers missing from the catalog.
* :class:`ProfileSyncGateway` – pushes preferences to the user profile.
* :class:`StatePersistence` – rehydrates and mirrors persisted fields.
"""

from .beers_store import BeersStore
from .merge import merge_beers
from .persistence import StatePersistence
from .profile_sync import AuthProvider, ProfileSyncGateway
from .reconciler import LikedBeersReconciler
from .request_cache import FetchStatus, RequestCache

__all__ = [
    "AuthProvider",
    "BeersStore",
    "FetchStatus",
    "LikedBeersReconciler",
    "ProfileSyncGateway",
    "RequestCache",
    "StatePersistence",
    "merge_beers",
]
