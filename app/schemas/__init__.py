from app.schemas.user import UserCreate, UserLogin, UserResponse, TokenData
from app.schemas.ticket import TicketCreate, TicketResponse
from app.schemas.offer import OfferCreate, OfferResponse

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "TokenData",
    "TicketCreate", "TicketResponse",
    "OfferCreate", "OfferResponse"
]
