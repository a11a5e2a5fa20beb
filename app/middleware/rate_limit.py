from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

settings = get_settings()

# Shared by the app state and the per-route decorators
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
