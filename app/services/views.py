import enum
from dataclasses import dataclass
from typing import Optional

from app.models.offer import OfferStatus
from app.schemas.offer import OfferResponse
from app.schemas.ticket import TicketResponse
from app.services.listing import ListingService
from app.services.offer import OfferService
from app.services.snapshot import MarketplaceSnapshot


class Tab(str, enum.Enum):
    BROWSE = "browse"
    MY_LISTINGS = "my-listings"
    MY_OFFERS = "my-offers"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Tab":
        try:
            return cls(value)
        except ValueError:
            return cls.BROWSE


@dataclass(frozen=True)
class TicketCard:
    ticket: TicketResponse
    is_owner: bool
    can_make_offer: bool


@dataclass(frozen=True)
class OfferCard:
    offer: OfferResponse
    ticket: Optional[TicketResponse]
    kind: str  # "received" or "sent"

    @property
    def can_resolve(self) -> bool:
        return self.kind == "received" and self.offer.status == OfferStatus.PENDING


def ticket_cards(tickets, user_id: str) -> list[TicketCard]:
    return [
        TicketCard(
            ticket=t,
            is_owner=t.user_id == user_id,
            can_make_offer=ListingService.can_make_offer(t, user_id)
        )
        for t in tickets
    ]


def compose_tab(snapshot: MarketplaceSnapshot, user_id: str, tab: Tab, query: str = "") -> dict:
    """Build the template context for one tab from a snapshot. Pure."""
    tickets_by_id = {t.id: t for t in snapshot.tickets}
    view = {"tab": tab.value, "query": query, "snapshot_version": snapshot.version}

    if tab == Tab.BROWSE:
        view["tickets"] = ticket_cards(ListingService.filter_tickets(snapshot.tickets, query), user_id)
    elif tab == Tab.MY_LISTINGS:
        view["tickets"] = ticket_cards(ListingService.my_listings(snapshot.tickets, user_id), user_id)
        view["offers"] = [
            OfferCard(offer=o, ticket=tickets_by_id.get(o.ticket_id), kind="received")
            for o in OfferService.received_offers(snapshot.offers, user_id)
        ]
    else:
        view["offers"] = [
            OfferCard(offer=o, ticket=tickets_by_id.get(o.ticket_id), kind="sent")
            for o in OfferService.sent_offers(snapshot.offers, user_id)
        ]

    return view
