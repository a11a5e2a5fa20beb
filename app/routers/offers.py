import logging
import secrets

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.rate_limit import limiter
from app.models.offer import OfferStatus
from app.services.auth import get_session_context
from app.services.email import EmailService
from app.services.errors import (
    ConflictError, DuplicateSubmitError, NotFoundError, PermissionDeniedError, StoreError, ValidationError
)
from app.services.offer import OfferService
from app.services.session import SessionContext
from app.services.store import TicketStore
from app.services.validation import suggested_offers
from app.templates_config import templates

router = APIRouter(prefix="/offers", tags=["offers"])
logger = logging.getLogger(__name__)


def _render_form(request: Request, ticket, form: dict, error: str = None, status_code: int = 200):
    return templates.TemplateResponse(
        request, "offers/create.html",
        {
            "ticket": ticket,
            "suggestions": suggested_offers(ticket.listed_price),
            "form": form,
            "error": error
        },
        status_code=status_code
    )


@router.get("/new", response_class=HTMLResponse)
async def make_offer_page(
    request: Request,
    ticket_id: str,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    try:
        ticket = OfferService.get_ticket_for_offer(db, context, ticket_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except ConflictError:
        return RedirectResponse(url="/?notice=ticket_unavailable", status_code=302)

    return _render_form(request, ticket, {"idempotency_key": secrets.token_urlsafe(16)})


@router.post("/create")
@limiter.limit("10/minute")
async def create_offer(
    request: Request,
    background_tasks: BackgroundTasks,
    ticket_id: str = Form(...),
    offer_amount: str = Form(""),
    message: str = Form(""),
    idempotency_key: str = Form(""),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    form = {
        "offer_amount": offer_amount,
        "message": message,
        "idempotency_key": idempotency_key or secrets.token_urlsafe(16)
    }

    try:
        offer, ticket, created = OfferService.create_offer(
            db, context, ticket_id, offer_amount,
            message=message,
            idempotency_key=idempotency_key or None
        )
    except ValidationError as e:
        ticket = TicketStore.get(db, ticket_id)
        return _render_form(request, ticket, form, e.message, status_code=400)
    except DuplicateSubmitError as e:
        ticket = TicketStore.get(db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Ticket not found")
        form["idempotency_key"] = secrets.token_urlsafe(16)
        return _render_form(request, ticket, form, e.message, status_code=409)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except ConflictError:
        return RedirectResponse(url="/?notice=ticket_unavailable", status_code=302)
    except StoreError as e:
        logger.error(f"Error submitting offer on ticket {ticket_id}: {e}")
        return RedirectResponse(url="/?notice=offer_submit_failed", status_code=302)

    if created:
        background_tasks.add_task(
            EmailService.send_offer_received,
            ticket.owner.email,
            ticket.event_name,
            ticket.listed_price,
            offer.offer_amount,
            offer.message
        )

    return RedirectResponse(url="/?tab=my-offers&notice=offer_submitted", status_code=302)


async def _resolve(
    offer_id: str,
    decision: OfferStatus,
    background_tasks: BackgroundTasks,
    context: SessionContext,
    db: Session
):
    try:
        offer = OfferService.resolve_offer(db, context, offer_id, decision)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except ConflictError:
        return RedirectResponse(url="/?tab=my-listings&notice=offer_resolved", status_code=302)
    except StoreError as e:
        logger.error(f"Error updating offer {offer_id}: {e}")
        return RedirectResponse(url="/?tab=my-listings&notice=offer_failed", status_code=302)

    background_tasks.add_task(
        EmailService.send_offer_resolved,
        offer.buyer.email,
        offer.ticket.event_name,
        offer.offer_amount,
        decision == OfferStatus.APPROVED
    )

    return RedirectResponse(url=f"/?tab=my-listings&notice=offer_{decision.value}", status_code=302)


@router.post("/{offer_id}/approve")
async def approve_offer(
    offer_id: str,
    background_tasks: BackgroundTasks,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    return await _resolve(offer_id, OfferStatus.APPROVED, background_tasks, context, db)


@router.post("/{offer_id}/deny")
async def deny_offer(
    offer_id: str,
    background_tasks: BackgroundTasks,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    return await _resolve(offer_id, OfferStatus.DENIED, background_tasks, context, db)
