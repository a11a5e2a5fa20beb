import logging
import secrets

from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.rate_limit import limiter
from app.services.auth import get_current_user, get_session_context
from app.services.errors import DuplicateSubmitError, StoreError, ValidationError
from app.services.listing import ListingService
from app.services.session import SessionContext
from app.services.validation import validate_listing
from app.models.user import User
from app.templates_config import templates

router = APIRouter(prefix="/listings", tags=["listings"])
logger = logging.getLogger(__name__)


def _render_form(request: Request, form: dict, error: str = None, status_code: int = 200):
    return templates.TemplateResponse(
        request, "listings/create.html",
        {"form": form, "error": error},
        status_code=status_code
    )


@router.get("/new", response_class=HTMLResponse)
async def create_listing_page(
    request: Request,
    user: User = Depends(get_current_user)
):
    if not user:
        return RedirectResponse(url="/auth/login", status_code=302)
    return _render_form(request, {"idempotency_key": secrets.token_urlsafe(16)})


@router.post("/create")
@limiter.limit("20/minute")
async def create_listing(
    request: Request,
    event_name: str = Form(""),
    event_date: str = Form(""),
    venue: str = Form(""),
    section: str = Form(""),
    row_number: str = Form(""),
    seat_numbers: str = Form(""),
    price: str = Form(""),
    description: str = Form(""),
    idempotency_key: str = Form(""),
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    form = {
        "event_name": event_name,
        "event_date": event_date,
        "venue": venue,
        "section": section,
        "row_number": row_number,
        "seat_numbers": seat_numbers,
        "price": price,
        "description": description,
        "idempotency_key": idempotency_key or secrets.token_urlsafe(16)
    }

    try:
        data = validate_listing(
            event_name, event_date, venue, price,
            section=section,
            row_number=row_number,
            seat_numbers=seat_numbers,
            description=description
        )
    except ValidationError as e:
        return _render_form(request, form, e.message, status_code=400)

    try:
        ListingService.create_listing(db, context, data, idempotency_key=idempotency_key or None)
    except DuplicateSubmitError as e:
        form["idempotency_key"] = secrets.token_urlsafe(16)
        return _render_form(request, form, e.message, status_code=409)
    except StoreError as e:
        logger.error(f"Error listing ticket: {e}")
        return _render_form(request, form, "Failed to list ticket. Please try again.", status_code=500)

    return RedirectResponse(url="/?tab=my-listings&notice=ticket_listed", status_code=302)
