from app.routers.auth import router as auth_router
from app.routers.listings import router as listings_router
from app.routers.offers import router as offers_router
from app.routers.views import router as views_router
from app.routers.api import router as api_router

__all__ = [
    "auth_router",
    "listings_router",
    "offers_router",
    "views_router",
    "api_router"
]
