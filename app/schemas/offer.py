from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from app.models.offer import OfferStatus


class OfferCreate(BaseModel):
    """Validated offer input, produced by ``validate_offer``."""
    ticket_id: str
    offer_amount: float
    message: Optional[str] = None


class OfferResponse(BaseModel):
    id: str
    ticket_id: str
    buyer_id: str
    seller_id: str
    offer_amount: float
    message: Optional[str] = None
    status: OfferStatus
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True
