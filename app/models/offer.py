from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base
import enum


class OfferStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = (
        UniqueConstraint("buyer_id", "idempotency_key", name="uq_offers_buyer_idempotency_key"),
    )

    id = Column(String(64), primary_key=True, index=True)
    ticket_id = Column(String(64), ForeignKey("tickets.id"), nullable=False, index=True)
    buyer_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    # Copied from the ticket owner when the offer is made
    seller_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    offer_amount = Column(Float, nullable=False)
    message = Column(String(1000), nullable=True)
    status = Column(Enum(OfferStatus), nullable=False, default=OfferStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    idempotency_key = Column(String(64), nullable=True)

    ticket = relationship("Ticket", back_populates="offers")
    buyer = relationship("User", back_populates="offers_made", foreign_keys=[buyer_id])
    seller = relationship("User", back_populates="offers_received", foreign_keys=[seller_id])
