import secrets
import string
import time
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.ticket import Ticket
from app.models.offer import Offer
from app.services.errors import MarketplaceError, StoreError


_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Build an opaque record id such as ``ticket_1718000000000_k3j9x0a1b``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{millis}_{suffix}"


@contextmanager
def transaction(db: Session, operation: str):
    """
    Commit everything done inside the block as one unit.
    Any failure rolls the whole unit back; database errors surface as StoreError.
    """
    try:
        yield
        db.commit()
    except MarketplaceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"{operation} failed: {e}") from e


class TicketStore:
    """
    Ticket collection: list, create and update.
    Writes are flushed but not committed; the caller owns the transaction.
    """

    @staticmethod
    def list(db: Session) -> list[Ticket]:
        try:
            return db.query(Ticket).order_by(Ticket.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load tickets: {e}") from e

    @staticmethod
    def get(db: Session, ticket_id: str) -> Optional[Ticket]:
        try:
            return db.query(Ticket).filter(Ticket.id == ticket_id).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load ticket {ticket_id}: {e}") from e

    @staticmethod
    def find_by_idempotency_key(db: Session, user_id: str, key: str) -> Optional[Ticket]:
        try:
            return db.query(Ticket).filter(
                Ticket.user_id == user_id,
                Ticket.idempotency_key == key
            ).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not look up ticket by idempotency key: {e}") from e

    @staticmethod
    def create(db: Session, record: dict) -> Ticket:
        ticket = Ticket(**record)
        try:
            db.add(ticket)
            db.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not create ticket: {e}") from e
        return ticket

    @staticmethod
    def update(db: Session, ticket_id: str, fields: dict, expected_status=None) -> bool:
        """
        Apply ``fields`` to a ticket.
        With ``expected_status`` the update only applies while the stored
        status still matches. Returns whether a row was changed.
        """
        stmt = update(Ticket).where(Ticket.id == ticket_id)
        if expected_status is not None:
            stmt = stmt.where(Ticket.status == expected_status)
        try:
            result = db.execute(stmt.values(**fields).execution_options(synchronize_session="evaluate"))
        except SQLAlchemyError as e:
            raise StoreError(f"Could not update ticket {ticket_id}: {e}") from e
        return result.rowcount == 1


class OfferStore:
    """Offer collection, scoped to the offers a user made or received."""

    @staticmethod
    def list(db: Session, user_id: str) -> list[Offer]:
        try:
            return db.query(Offer).filter(
                or_(Offer.buyer_id == user_id, Offer.seller_id == user_id)
            ).order_by(Offer.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load offers: {e}") from e

    @staticmethod
    def get(db: Session, offer_id: str) -> Optional[Offer]:
        try:
            return db.query(Offer).filter(Offer.id == offer_id).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load offer {offer_id}: {e}") from e

    @staticmethod
    def find_by_idempotency_key(db: Session, buyer_id: str, key: str) -> Optional[Offer]:
        try:
            return db.query(Offer).filter(
                Offer.buyer_id == buyer_id,
                Offer.idempotency_key == key
            ).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not look up offer by idempotency key: {e}") from e

    @staticmethod
    def create(db: Session, record: dict) -> Offer:
        offer = Offer(**record)
        try:
            db.add(offer)
            db.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not create offer: {e}") from e
        return offer

    @staticmethod
    def update(db: Session, offer_id: str, fields: dict, expected_status=None) -> bool:
        stmt = update(Offer).where(Offer.id == offer_id)
        if expected_status is not None:
            stmt = stmt.where(Offer.status == expected_status)
        try:
            result = db.execute(stmt.values(**fields).execution_options(synchronize_session="evaluate"))
        except SQLAlchemyError as e:
            raise StoreError(f"Could not update offer {offer_id}: {e}") from e
        return result.rowcount == 1
