"""Remote card store collaborators (HTTP document store and in-memory stand-in)."""
from .client import (
    EventStore,
    HttpEventStore,
    InMemoryEventStore,
    StoreError,
    StoreRejectedError,
    StoreUnavailableError,
)

__all__ = [
    "EventStore",
    "HttpEventStore",
    "InMemoryEventStore",
    "StoreError",
    "StoreRejectedError",
    "StoreUnavailableError",
]
