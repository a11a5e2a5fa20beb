from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.offer import OfferResponse
from app.schemas.ticket import TicketResponse
from app.services.auth import get_session_context, get_session_observer
from app.services.errors import StoreError
from app.services.listing import ListingService
from app.services.session import SessionContext, SessionObserver
from app.services.snapshot import snapshot_cache

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/session")
async def session_state(observer: SessionObserver = Depends(get_session_observer)):
    context = observer.context
    return {
        "state": observer.state.value,
        "is_authenticated": observer.is_authenticated,
        "user": context.user.model_dump() if context else None
    }


@router.get("/tickets", response_model=list[TicketResponse])
async def list_tickets(
    q: str = "",
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    try:
        return ListingService.filter_tickets(snapshot_cache.tickets(db), q)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/offers", response_model=list[OfferResponse])
async def list_offers(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    try:
        return list(snapshot_cache.offers(db, context.user_id))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=e.message)
