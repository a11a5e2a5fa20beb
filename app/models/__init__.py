from app.models.user import User
from app.models.ticket import Ticket, TicketStatus
from app.models.offer import Offer, OfferStatus

__all__ = ["User", "Ticket", "TicketStatus", "Offer", "OfferStatus"]
