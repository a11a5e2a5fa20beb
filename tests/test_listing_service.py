from datetime import date

import pytest

from conftest import context_for
from app.models.ticket import Ticket, TicketStatus
from app.services.errors import DuplicateSubmitError
from app.services.listing import ListingService
from app.services.snapshot import snapshot_cache
from app.services.validation import validate_listing


def list_ticket(db, user, event_name="Concert X", venue="Madison Square Garden", price="100", **kwargs):
    data = validate_listing(event_name, "2030-06-01", venue, price, **kwargs)
    return ListingService.create_listing(db, context_for(user), data)


def test_created_ticket_reloads_with_same_fields(db, seller):
    list_ticket(db, seller, section="101", row_number="A", seat_numbers="15", description="Great view")

    tickets = snapshot_cache.tickets(db)
    assert len(tickets) == 1
    ticket = tickets[0]
    assert ticket.id.startswith("ticket_")
    assert ticket.user_id == seller.id
    assert ticket.event_name == "Concert X"
    assert ticket.event_date == date(2030, 6, 1)
    assert ticket.venue == "Madison Square Garden"
    assert ticket.section == "101"
    assert ticket.row_number == "A"
    assert ticket.seat_numbers == "15"
    assert ticket.description == "Great view"
    assert ticket.listed_price == 100.0
    assert ticket.quantity == 1
    assert ticket.status == TicketStatus.AVAILABLE


def test_create_listing_invalidates_cached_tickets(db, seller):
    assert snapshot_cache.tickets(db) == ()
    list_ticket(db, seller)
    assert len(snapshot_cache.tickets(db)) == 1


def test_tickets_are_listed_newest_first(db, seller):
    list_ticket(db, seller, event_name="First")
    list_ticket(db, seller, event_name="Second")
    names = [t.event_name for t in snapshot_cache.tickets(db)]
    assert names == ["Second", "First"]


def test_repeated_idempotency_key_does_not_duplicate(db, seller):
    data = validate_listing("Concert X", "2030-06-01", "Arena", "100")
    first = ListingService.create_listing(db, context_for(seller), data, idempotency_key="key-1")
    second = ListingService.create_listing(db, context_for(seller), data, idempotency_key="key-1")
    assert first.id == second.id
    assert db.query(Ticket).count() == 1


def test_idempotency_key_reused_with_changed_fields_is_rejected(db, seller):
    data = validate_listing("Concert X", "2030-06-01", "Arena", "100")
    ListingService.create_listing(db, context_for(seller), data, idempotency_key="key-1")

    changed = validate_listing("Concert X", "2030-06-01", "Arena", "120")
    with pytest.raises(DuplicateSubmitError):
        ListingService.create_listing(db, context_for(seller), changed, idempotency_key="key-1")
    assert db.query(Ticket).count() == 1


def test_filter_matches_event_name_or_venue_case_insensitively(db, seller):
    list_ticket(db, seller, event_name="Concert X", venue="Madison Square Garden")
    list_ticket(db, seller, event_name="Jazz Night", venue="Blue Note")
    tickets = snapshot_cache.tickets(db)

    assert [t.venue for t in ListingService.filter_tickets(tickets, "garden")] == ["Madison Square Garden"]
    assert [t.event_name for t in ListingService.filter_tickets(tickets, "JAZZ")] == ["Jazz Night"]
    assert ListingService.filter_tickets(tickets, "zzz") == []
    assert len(ListingService.filter_tickets(tickets, "")) == 2


def test_derived_views_are_stable_for_same_snapshot(db, seller, buyer):
    list_ticket(db, seller, event_name="Mine")
    list_ticket(db, buyer, event_name="Theirs")
    tickets = snapshot_cache.tickets(db)

    first = ListingService.my_listings(tickets, seller.id)
    second = ListingService.my_listings(tickets, seller.id)
    assert first == second
    assert [t.event_name for t in first] == ["Mine"]


@pytest.mark.parametrize("status, owner, expected", [
    (TicketStatus.AVAILABLE, False, True),
    (TicketStatus.AVAILABLE, True, False),
    (TicketStatus.PENDING, False, False),
    (TicketStatus.SOLD, False, False),
])
def test_can_make_offer(db, seller, buyer, status, owner, expected):
    list_ticket(db, seller)
    ticket = snapshot_cache.tickets(db)[0].model_copy(update={"status": status})
    user_id = seller.id if owner else buyer.id
    assert ListingService.can_make_offer(ticket, user_id) is expected
