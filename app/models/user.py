from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    tickets = relationship("Ticket", back_populates="owner")
    offers_made = relationship("Offer", back_populates="buyer", foreign_keys="Offer.buyer_id")
    offers_received = relationship("Offer", back_populates="seller", foreign_keys="Offer.seller_id")
