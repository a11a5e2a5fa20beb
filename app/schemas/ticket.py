from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional
from app.models.ticket import TicketStatus


class TicketCreate(BaseModel):
    """Validated listing input, produced by ``validate_listing``."""
    event_name: str
    event_date: date
    venue: str
    section: Optional[str] = None
    row_number: Optional[str] = None
    seat_numbers: Optional[str] = None
    listed_price: float
    description: Optional[str] = None


class TicketResponse(BaseModel):
    id: str
    user_id: str
    event_name: str
    event_date: date
    venue: str
    section: Optional[str] = None
    row_number: Optional[str] = None
    seat_numbers: Optional[str] = None
    quantity: int
    listed_price: float
    description: Optional[str] = None
    status: TicketStatus
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True
