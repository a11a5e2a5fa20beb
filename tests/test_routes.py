from conftest import client_for, make_user, post_form
from app.models.offer import Offer, OfferStatus
from app.models.ticket import Ticket, TicketStatus
from app.services.email import EmailService

LISTING = {
    "event_name": "Concert X",
    "event_date": "2030-06-01",
    "venue": "Madison Square Garden",
    "section": "101",
    "row_number": "A",
    "seat_numbers": "5",
    "price": "100",
    "description": "Great seats"
}


def list_concert(client, db):
    response = post_form(client, "/listings/create", LISTING)
    assert response.status_code == 302
    return db.query(Ticket).filter(Ticket.event_name == "Concert X").one()


def current(db, model, record_id):
    db.expire_all()
    return db.query(model).filter(model.id == record_id).one()


def test_shell_renders_loading_placeholder_and_notice(anonymous_client):
    response = anonymous_client.get("/?tab=my-offers&notice=offer_submitted")
    assert response.status_code == 200
    assert 'hx-get="/views/main?tab=my-offers' in response.text
    assert "animate-pulse" in response.text
    assert "Offer submitted successfully!" in response.text


def test_anonymous_user_gets_welcome_view(anonymous_client):
    response = anonymous_client.get("/views/main")
    assert response.status_code == 200
    assert "Sign In to Continue" in response.text
    assert "Browse Tickets" not in response.text


def test_marketplace_requires_sign_in_for_partials_and_api(anonymous_client):
    assert anonymous_client.get("/views/tickets").status_code == 401
    assert anonymous_client.get("/api/tickets").status_code == 401
    assert anonymous_client.get("/api/offers").status_code == 401
    assert anonymous_client.get("/listings/new", follow_redirects=False).headers["location"] == "/auth/login"


def test_browse_shows_empty_state(buyer_client):
    response = buyer_client.get("/views/main")
    assert "No tickets found" in response.text
    assert "Be the first to list a ticket!" in response.text


def test_list_ticket_then_search(db, seller_client, buyer_client):
    response = post_form(seller_client, "/listings/create", LISTING)
    assert response.status_code == 302
    assert response.headers["location"] == "/?tab=my-listings&notice=ticket_listed"

    ticket = db.query(Ticket).one()
    assert ticket.status == TicketStatus.AVAILABLE
    assert ticket.row_number == "A"

    found = buyer_client.get("/views/tickets?q=garden")
    assert "Concert X" in found.text
    assert "Make Offer" in found.text

    missing = buyer_client.get("/views/tickets?q=zzz")
    assert "No tickets found" in missing.text
    assert "Try adjusting your search terms" in missing.text

    own = seller_client.get("/views/main?tab=my-listings")
    assert "Concert X" in own.text
    assert "This is your listing" in own.text


def test_invalid_listing_is_rejected_without_writes(db, seller_client):
    response = post_form(seller_client, "/listings/create", {**LISTING, "price": "abc"})
    assert response.status_code == 400
    assert "Please enter a valid price" in response.text
    assert 'value="Concert X"' in response.text

    response = post_form(seller_client, "/listings/create", {**LISTING, "venue": "   "})
    assert response.status_code == 400
    assert "Please fill in all required fields" in response.text
    assert db.query(Ticket).count() == 0


def test_duplicate_listing_submit_creates_one_ticket(db, seller_client):
    data = {**LISTING, "idempotency_key": "listing-key"}
    post_form(seller_client, "/listings/create", data)
    post_form(seller_client, "/listings/create", data)
    assert db.query(Ticket).count() == 1


def test_post_without_csrf_token_is_forbidden(db, seller_client):
    response = seller_client.post("/listings/create", data=LISTING, follow_redirects=False)
    assert response.status_code == 403
    assert db.query(Ticket).count() == 0


def test_offer_form_shows_suggestions(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)

    response = buyer_client.get(f"/offers/new?ticket_id={ticket.id}")
    assert response.status_code == 200
    for amount in ("$80", "$85", "$90"):
        assert amount in response.text

    assert seller_client.get(f"/offers/new?ticket_id={ticket.id}").status_code == 403
    assert buyer_client.get("/offers/new?ticket_id=ticket_missing").status_code == 404


def test_offer_at_listed_price_is_rejected(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)

    response = post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "100"})
    assert response.status_code == 400
    assert "Offer must be less than the listed price" in response.text
    assert db.query(Offer).count() == 0
    assert current(db, Ticket, ticket.id).status == TicketStatus.AVAILABLE


def test_full_offer_lifecycle(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)

    response = post_form(buyer_client, "/offers/create", {
        "ticket_id": ticket.id,
        "offer_amount": "80",
        "message": "interested"
    })
    assert response.status_code == 302
    assert response.headers["location"] == "/?tab=my-offers&notice=offer_submitted"

    offer = db.query(Offer).one()
    assert offer.status == OfferStatus.PENDING
    assert offer.message == "interested"
    assert current(db, Ticket, ticket.id).status == TicketStatus.PENDING

    sent = buyer_client.get("/views/main?tab=my-offers")
    assert "Concert X" in sent.text
    assert "Pending" in sent.text
    assert "/approve" not in sent.text

    received = seller_client.get("/views/main?tab=my-listings")
    assert "interested" in received.text
    assert f"/offers/{offer.id}/approve" in received.text

    response = post_form(seller_client, f"/offers/{offer.id}/approve")
    assert response.status_code == 302
    assert response.headers["location"] == "/?tab=my-listings&notice=offer_approved"
    assert current(db, Offer, offer.id).status == OfferStatus.APPROVED
    assert current(db, Ticket, ticket.id).status == TicketStatus.SOLD

    response = post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "90"})
    assert response.status_code == 302
    assert response.headers["location"] == "/?notice=ticket_unavailable"
    assert db.query(Offer).count() == 1

    response = post_form(seller_client, f"/offers/{offer.id}/deny")
    assert response.headers["location"] == "/?tab=my-listings&notice=offer_resolved"
    assert current(db, Offer, offer.id).status == OfferStatus.APPROVED


def test_deny_through_csrf_header(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)
    post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "80"})
    offer = db.query(Offer).one()

    response = seller_client.post(
        f"/offers/{offer.id}/deny",
        headers={"X-CSRF-Token": seller_client.cookies.get("csrf_token")},
        follow_redirects=False
    )
    assert response.headers["location"] == "/?tab=my-listings&notice=offer_denied"
    assert current(db, Ticket, ticket.id).status == TicketStatus.AVAILABLE


def test_buyer_cannot_resolve_offer(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)
    post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "80"})
    offer = db.query(Offer).one()

    response = post_form(buyer_client, f"/offers/{offer.id}/approve")
    assert response.status_code == 403
    assert current(db, Offer, offer.id).status == OfferStatus.PENDING


def test_api_endpoints(db, seller, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)
    post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "80"})

    session = seller_client.get("/api/session").json()
    assert session["state"] == "authenticated"
    assert session["user"]["id"] == seller.id

    tickets = buyer_client.get("/api/tickets", params={"q": "concert"}).json()
    assert [t["id"] for t in tickets] == [ticket.id]
    assert tickets[0]["status"] == "pending"
    assert buyer_client.get("/api/tickets", params={"q": "zzz"}).json() == []

    offers = seller_client.get("/api/offers").json()
    assert len(offers) == 1
    assert offers[0]["offer_amount"] == 80.0


def test_register_login_logout(db):
    client = client_for()
    assert client.get("/api/session").json()["state"] == "unauthenticated"

    response = post_form(client, "/auth/register", {"email": "dana@mail.com", "password": "short"})
    assert response.status_code == 400
    assert "Password must be at least 8 characters" in response.text

    response = post_form(client, "/auth/register", {
        "email": "Dana@Mail.com",
        "password": "password123",
        "display_name": "Dana"
    })
    assert response.status_code == 302
    assert client.get("/api/session").json()["user"]["email"] == "dana@mail.com"

    response = client.get("/auth/logout", follow_redirects=False)
    assert response.headers["location"] == "/?notice=signed_out"
    client.cookies.delete("access_token")
    assert client.get("/api/session").json()["is_authenticated"] is False

    response = post_form(client, "/auth/login", {"email": "dana@mail.com", "password": "wrong-password"})
    assert response.status_code == 400
    assert "Invalid email or password" in response.text

    response = post_form(client, "/auth/login", {"email": "dana@mail.com", "password": "password123"})
    assert response.status_code == 302
    assert client.get("/api/session").json()["is_authenticated"] is True


def test_register_rejects_existing_email(db, seller):
    client = client_for()
    response = post_form(client, "/auth/register", {"email": "alice@mail.com", "password": "password123"})
    assert response.status_code == 400
    assert "Email already registered" in response.text


def test_user_switch_sees_own_data(db, seller_client):
    list_concert(seller_client, db)
    other = make_user(db, "carol@mail.com")
    response = client_for(other).get("/views/main?tab=my-listings")
    assert "Concert X" not in response.text
    assert "No offers received yet" in response.text


def test_repeated_offer_submit_emails_seller_once(db, seller_client, buyer_client, monkeypatch):
    sent = []
    monkeypatch.setattr(EmailService, "send_offer_received", staticmethod(lambda *args: sent.append(args)))
    ticket = list_concert(seller_client, db)
    data = {"ticket_id": ticket.id, "offer_amount": "80", "idempotency_key": "same-key"}

    first = post_form(buyer_client, "/offers/create", data)
    second = post_form(buyer_client, "/offers/create", data)

    assert first.status_code == second.status_code == 302
    assert db.query(Offer).count() == 1
    assert len(sent) == 1
    assert sent[0][0] == "alice@mail.com"


def test_offer_key_reused_for_another_ticket_rerenders_form(db, seller_client, buyer_client):
    ticket = list_concert(seller_client, db)
    post_form(seller_client, "/listings/create", {**LISTING, "event_name": "Jazz Night"})
    other = db.query(Ticket).filter(Ticket.event_name == "Jazz Night").one()

    post_form(buyer_client, "/offers/create", {"ticket_id": ticket.id, "offer_amount": "80", "idempotency_key": "k"})
    response = post_form(buyer_client, "/offers/create", {"ticket_id": other.id, "offer_amount": "50", "idempotency_key": "k"})

    assert response.status_code == 409
    assert "This form was already used for another offer" in response.text
    assert db.query(Offer).count() == 1
    assert current(db, Ticket, other.id).status == TicketStatus.AVAILABLE
