import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.ticket import Ticket, TicketStatus
from app.schemas.ticket import TicketCreate, TicketResponse
from app.services.errors import DuplicateSubmitError
from app.services.session import SessionContext
from app.services.snapshot import snapshot_cache, TICKETS
from app.services.store import TicketStore, generate_id, transaction

logger = logging.getLogger(__name__)

# Listing fields a repeated submit must carry unchanged
LISTING_FIELDS = (
    "event_name", "event_date", "venue", "section",
    "row_number", "seat_numbers", "listed_price", "description"
)


class ListingService:
    @staticmethod
    def create_listing(
        db: Session,
        context: SessionContext,
        data: TicketCreate,
        idempotency_key: Optional[str] = None
    ) -> Ticket:
        """
        List a ticket for sale as the session user.
        A repeated idempotency key returns the ticket created the first time,
        as long as the submitted fields are unchanged.
        """
        if idempotency_key:
            existing = TicketStore.find_by_idempotency_key(db, context.user_id, idempotency_key)
            if existing:
                if any(getattr(existing, f) != getattr(data, f) for f in LISTING_FIELDS):
                    raise DuplicateSubmitError("This form was already used for another listing")
                logger.info(f"Duplicate listing submit for key {idempotency_key}, returning {existing.id}")
                return existing

        with transaction(db, "List ticket"):
            ticket = TicketStore.create(db, {
                "id": generate_id("ticket"),
                "user_id": context.user_id,
                "event_name": data.event_name,
                "event_date": data.event_date,
                "venue": data.venue,
                "section": data.section,
                "row_number": data.row_number,
                "seat_numbers": data.seat_numbers,
                "quantity": 1,
                "listed_price": data.listed_price,
                "description": data.description,
                "status": TicketStatus.AVAILABLE,
                "idempotency_key": idempotency_key or None
            })

        snapshot_cache.invalidate(TICKETS)
        logger.info(f"User {context.user_id} listed ticket {ticket.id}")
        return ticket

    @staticmethod
    def filter_tickets(tickets: Iterable[TicketResponse], query: Optional[str]) -> list[TicketResponse]:
        """Case-insensitive substring match on event name or venue."""
        needle = (query or "").lower()
        return [
            t for t in tickets
            if needle in t.event_name.lower() or needle in t.venue.lower()
        ]

    @staticmethod
    def my_listings(tickets: Iterable[TicketResponse], user_id: str) -> list[TicketResponse]:
        return [t for t in tickets if t.user_id == user_id]

    @staticmethod
    def can_make_offer(ticket: TicketResponse, user_id: Optional[str]) -> bool:
        return ticket.status == TicketStatus.AVAILABLE and ticket.user_id != user_id
