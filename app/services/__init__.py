from app.services.auth import AuthService
from app.services.listing import ListingService
from app.services.offer import OfferService
from app.services.email import EmailService

__all__ = ["AuthService", "ListingService", "OfferService", "EmailService"]
