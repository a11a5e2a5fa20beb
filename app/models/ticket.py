from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base
import enum


class TicketStatus(str, enum.Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    SOLD = "sold"


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_tickets_user_idempotency_key"),
    )

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    event_name = Column(String(200), nullable=False)
    event_date = Column(Date, nullable=False)
    venue = Column(String(200), nullable=False)
    section = Column(String(50), nullable=True)
    row_number = Column(String(50), nullable=True)
    seat_numbers = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    listed_price = Column(Float, nullable=False)
    description = Column(String(2000), nullable=True)
    status = Column(Enum(TicketStatus), nullable=False, default=TicketStatus.AVAILABLE)
    # Listings sort newest first
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    idempotency_key = Column(String(64), nullable=True)

    owner = relationship("User", back_populates="tickets")
    offers = relationship("Offer", back_populates="ticket")
