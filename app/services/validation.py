import math
import re
from datetime import date
from typing import Optional

from app.schemas.ticket import TicketCreate
from app.schemas.offer import OfferCreate
from app.services.errors import ValidationError

SUGGESTION_RATIOS = (0.8, 0.85, 0.9)

# Digits with an optional fraction and exponent
_AMOUNT_RE = re.compile(r"(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_amount(raw: Optional[str]) -> Optional[float]:
    """Parse a money string. Returns None unless it is a finite positive number."""
    raw = _clean(raw)
    if raw is None or not _AMOUNT_RE.fullmatch(raw):
        return None
    try:
        amount = float(raw)
    except ValueError:
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def validate_listing(
    event_name: Optional[str],
    event_date: Optional[str],
    venue: Optional[str],
    price: Optional[str],
    section: Optional[str] = None,
    row_number: Optional[str] = None,
    seat_numbers: Optional[str] = None,
    description: Optional[str] = None
) -> TicketCreate:
    event_name = _clean(event_name)
    event_date = _clean(event_date)
    venue = _clean(venue)
    if not event_name or not event_date or not venue or not _clean(price):
        raise ValidationError("Please fill in all required fields")

    listed_price = parse_amount(price)
    if listed_price is None:
        raise ValidationError("Please enter a valid price")

    try:
        parsed_date = date.fromisoformat(event_date)
    except ValueError:
        raise ValidationError("Please enter a valid event date")

    return TicketCreate(
        event_name=event_name,
        event_date=parsed_date,
        venue=venue,
        section=_clean(section),
        row_number=_clean(row_number),
        seat_numbers=_clean(seat_numbers),
        listed_price=listed_price,
        description=_clean(description)
    )


def validate_offer(ticket_id: str, listed_price: float, amount: Optional[str], message: Optional[str] = None) -> OfferCreate:
    offer_amount = parse_amount(amount)
    if offer_amount is None:
        raise ValidationError("Please enter a valid offer amount")
    if offer_amount >= listed_price:
        raise ValidationError("Offer must be less than the listed price")
    return OfferCreate(ticket_id=ticket_id, offer_amount=offer_amount, message=_clean(message))


def suggested_offers(listed_price: float) -> list[int]:
    """Quick offer amounts at 80%, 85% and 90% of the listed price, rounded half up."""
    return [int(math.floor(listed_price * ratio + 0.5)) for ratio in SUGGESTION_RATIOS]
