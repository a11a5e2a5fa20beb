import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.offer import Offer, OfferStatus
from app.models.ticket import Ticket, TicketStatus
from app.schemas.offer import OfferResponse
from app.services.errors import (
    ConflictError, DuplicateSubmitError, NotFoundError, PermissionDeniedError, ValidationError
)
from app.services.session import SessionContext
from app.services.snapshot import snapshot_cache, TICKETS, OFFERS
from app.services.store import TicketStore, OfferStore, generate_id, transaction
from app.services.validation import validate_offer

logger = logging.getLogger(__name__)

# Ticket status that follows each offer resolution
RESOLUTION_TICKET_STATUS = {
    OfferStatus.APPROVED: TicketStatus.SOLD,
    OfferStatus.DENIED: TicketStatus.AVAILABLE,
}


class OfferService:
    @staticmethod
    def get_ticket_for_offer(db: Session, context: SessionContext, ticket_id: str) -> Ticket:
        """Load a ticket the session user is allowed to bid on."""
        ticket = TicketStore.get(db, ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found")
        if ticket.user_id == context.user_id:
            raise PermissionDeniedError("You cannot make an offer on your own listing")
        if ticket.status != TicketStatus.AVAILABLE:
            raise ConflictError("This ticket is no longer available")
        return ticket

    @staticmethod
    def create_offer(
        db: Session,
        context: SessionContext,
        ticket_id: str,
        amount: Optional[str],
        message: Optional[str] = None,
        idempotency_key: Optional[str] = None
    ) -> tuple[Offer, Ticket, bool]:
        """
        Make an offer on an available ticket and move the ticket to pending.
        Both writes commit together or not at all.

        Returns ``(offer, ticket, created)``. A repeated idempotency key for
        the same ticket returns the earlier offer with ``created`` False.
        """
        if idempotency_key:
            existing = OfferStore.find_by_idempotency_key(db, context.user_id, idempotency_key)
            if existing:
                if existing.ticket_id != ticket_id:
                    raise DuplicateSubmitError("This form was already used for another offer")
                logger.info(f"Duplicate offer submit for key {idempotency_key}, returning {existing.id}")
                return existing, existing.ticket, False

        ticket = OfferService.get_ticket_for_offer(db, context, ticket_id)
        data = validate_offer(ticket.id, ticket.listed_price, amount, message)

        with transaction(db, "Submit offer"):
            offer = OfferStore.create(db, {
                "id": generate_id("offer"),
                "ticket_id": ticket.id,
                "buyer_id": context.user_id,
                "seller_id": ticket.user_id,
                "offer_amount": data.offer_amount,
                "message": data.message,
                "status": OfferStatus.PENDING,
                "idempotency_key": idempotency_key or None
            })
            # Another buyer may have taken the ticket since it was loaded
            moved = TicketStore.update(
                db, ticket.id,
                {"status": TicketStatus.PENDING},
                expected_status=TicketStatus.AVAILABLE
            )
            if not moved:
                raise ConflictError("This ticket is no longer available")

        snapshot_cache.invalidate(TICKETS)
        snapshot_cache.invalidate(OFFERS, [offer.buyer_id, offer.seller_id])
        logger.info(f"User {context.user_id} offered {offer.offer_amount:.2f} on ticket {ticket.id}")
        return offer, ticket, True

    @staticmethod
    def resolve_offer(db: Session, context: SessionContext, offer_id: str, decision) -> Offer:
        """
        Approve or deny a pending offer as its seller.
        The ticket becomes sold on approval and available again on denial.
        """
        try:
            decision = OfferStatus(decision)
        except ValueError:
            raise ValidationError(f"Unknown offer decision: {decision}")
        if decision not in RESOLUTION_TICKET_STATUS:
            raise ValidationError(f"Unknown offer decision: {decision.value}")

        offer = OfferStore.get(db, offer_id)
        if not offer:
            raise NotFoundError("Offer not found")
        if offer.seller_id != context.user_id:
            raise PermissionDeniedError("Only the seller can respond to this offer")

        with transaction(db, "Update offer"):
            resolved = OfferStore.update(
                db, offer.id,
                {"status": decision},
                expected_status=OfferStatus.PENDING
            )
            if not resolved:
                raise ConflictError("This offer has already been resolved")
            TicketStore.update(db, offer.ticket_id, {"status": RESOLUTION_TICKET_STATUS[decision]})

        db.refresh(offer)
        snapshot_cache.invalidate(TICKETS)
        snapshot_cache.invalidate(OFFERS, [offer.buyer_id, offer.seller_id])
        logger.info(f"Seller {context.user_id} {decision.value} offer {offer.id}")
        return offer

    @staticmethod
    def received_offers(offers: Iterable[OfferResponse], user_id: str) -> list[OfferResponse]:
        return [o for o in offers if o.seller_id == user_id]

    @staticmethod
    def sent_offers(offers: Iterable[OfferResponse], user_id: str) -> list[OfferResponse]:
        return [o for o in offers if o.buyer_id == user_id]
