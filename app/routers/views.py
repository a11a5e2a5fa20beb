import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.auth import get_session_observer
from app.services.errors import StoreError
from app.services.session import SessionObserver
from app.services.snapshot import MarketplaceSnapshot, snapshot_cache
from app.services.views import Tab, compose_tab, ticket_cards
from app.services.listing import ListingService
from app.templates_config import templates

router = APIRouter(prefix="/views", tags=["views"])
logger = logging.getLogger(__name__)


@router.get("/main", response_class=HTMLResponse)
async def main_view(
    request: Request,
    tab: str = "browse",
    q: str = "",
    observer: SessionObserver = Depends(get_session_observer),
    db: Session = Depends(get_db)
):
    """Gated page body swapped into the shell once the session is resolved."""
    if not observer.is_authenticated:
        return templates.TemplateResponse(request, "views/welcome.html", {})

    context = observer.context
    load_error = None
    try:
        snapshot = snapshot_cache.snapshot(db, context.user_id)
    except StoreError as e:
        logger.error(f"Error loading marketplace for user {context.user_id}: {e}")
        snapshot = MarketplaceSnapshot(tickets=(), offers=(), version=snapshot_cache.version)
        load_error = "Failed to load tickets. Please try again."

    view = compose_tab(snapshot, context.user_id, Tab.parse(tab), q)
    return templates.TemplateResponse(
        request, "views/marketplace.html",
        {"user": context.user, "load_error": load_error, **view}
    )


@router.get("/tickets", response_class=HTMLResponse)
async def ticket_results(
    request: Request,
    q: str = "",
    observer: SessionObserver = Depends(get_session_observer),
    db: Session = Depends(get_db)
):
    """Browse results only; re-requested on every keystroke in the search box."""
    if not observer.is_authenticated:
        return HTMLResponse(status_code=401, content="")

    user_id = observer.context.user_id
    try:
        tickets = ListingService.filter_tickets(snapshot_cache.tickets(db), q)
    except StoreError as e:
        logger.error(f"Error loading tickets for search: {e}")
        tickets = []
    return templates.TemplateResponse(
        request, "views/_ticket_results.html",
        {"tickets": ticket_cards(tickets, user_id), "query": q}
    )
