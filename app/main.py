import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.database import init_db
from app.config import get_settings
from app.middleware.rate_limit import limiter
from app.middleware.security import setup_security_middleware
from app.routers import (
    auth_router,
    listings_router,
    offers_router,
    views_router,
    api_router
)
from app.services.views import Tab
from app.templates_config import templates, lookup_notice

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    init_db()
    logger.info(f"{settings.app_name} started")
    yield
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(
    title=settings.app_name,
    description="A marketplace for listing event tickets and negotiating offers",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

setup_security_middleware(app, allowed_hosts=settings.allowed_hosts)

app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(offers_router)
app.include_router(views_router)
app.include_router(api_router)


@app.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    tab: str = "browse",
    q: str = "",
    notice: str = ""
):
    """Page shell: renders the loading placeholder, then HTMX swaps in the gated view."""
    return templates.TemplateResponse(
        request, "index.html",
        {
            "tab": Tab.parse(tab).value,
            "query": q,
            "notice": lookup_notice(notice)
        }
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return templates.TemplateResponse(
        request, "errors/404.html",
        {"detail": getattr(exc, "detail", None)},
        status_code=404
    )


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return templates.TemplateResponse(
        request, "errors/500.html",
        {},
        status_code=500
    )
