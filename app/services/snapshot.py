import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.schemas.ticket import TicketResponse
from app.schemas.offer import OfferResponse
from app.services.store import TicketStore, OfferStore

logger = logging.getLogger(__name__)

TICKETS = "tickets"
OFFERS = "offers"


@dataclass(frozen=True)
class MarketplaceSnapshot:
    tickets: tuple[TicketResponse, ...]
    offers: tuple[OfferResponse, ...]
    version: int

    def ticket(self, ticket_id: str) -> Optional[TicketResponse]:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None


class SnapshotCache:
    """
    In-memory copies of the ticket collection and of each user's offers.

    Entries are dropped by explicit ``invalidate`` calls made after a write
    has been committed, so the next read always sees that write. Shared by
    every request in the process; not coherent across worker processes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tickets: Optional[tuple[TicketResponse, ...]] = None
        self._offers: dict[str, tuple[OfferResponse, ...]] = {}
        self._listeners: list[Callable[[str, int], None]] = []
        self.version = 0

    def subscribe(self, listener: Callable[[str, int], None]) -> Callable[[], None]:
        """Register ``listener(collection, version)``; returns an unsubscribe handle."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self, collection: str, user_ids: Iterable[str] = ()):
        with self._lock:
            if collection == TICKETS:
                self._tickets = None
            elif collection == OFFERS:
                for user_id in user_ids:
                    self._offers.pop(user_id, None)
            else:
                raise ValueError(f"Unknown collection: {collection}")
            self.version += 1
            version = self.version
            listeners = list(self._listeners)

        logger.debug(f"Invalidated {collection} snapshot, version {version}")
        for listener in listeners:
            listener(collection, version)

    def clear(self, user_id: Optional[str] = None):
        """Forget one user's offers, or everything when no user is given."""
        with self._lock:
            if user_id is None:
                self._tickets = None
                self._offers.clear()
            else:
                self._offers.pop(user_id, None)

    def tickets(self, db: Session) -> tuple[TicketResponse, ...]:
        with self._lock:
            cached = self._tickets
            version = self.version
        if cached is not None:
            return cached

        loaded = tuple(TicketResponse.model_validate(t) for t in TicketStore.list(db))
        with self._lock:
            # A write committed during the load must not be masked by this copy
            if self.version == version:
                self._tickets = loaded
        return loaded

    def offers(self, db: Session, user_id: str) -> tuple[OfferResponse, ...]:
        with self._lock:
            cached = self._offers.get(user_id)
            version = self.version
        if cached is not None:
            return cached

        loaded = tuple(OfferResponse.model_validate(o) for o in OfferStore.list(db, user_id))
        with self._lock:
            if self.version == version:
                self._offers[user_id] = loaded
        return loaded

    def snapshot(self, db: Session, user_id: str) -> MarketplaceSnapshot:
        return MarketplaceSnapshot(
            tickets=self.tickets(db),
            offers=self.offers(db, user_id),
            version=self.version
        )


snapshot_cache = SnapshotCache()
