from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
import logging
import secrets

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # Tailwind CDN, HTMX from unpkg, and the inline Tailwind config
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://cdn.tailwindcss.com https://unpkg.com; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' https: data:; "
            "font-src 'self' https:; "
            "connect-src 'self'; "
        )

        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    CSRF protection using double-submit cookie pattern.
    For state-changing requests (POST, PUT, DELETE), validates that
    the CSRF token in the form or the X-CSRF-Token header matches the cookie.
    """

    CSRF_COOKIE_NAME = "csrf_token"
    CSRF_FIELD_NAME = "csrf_token"
    CSRF_HEADER_NAME = "X-CSRF-Token"
    SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}
    EXEMPT_PATHS: set[str] = set()

    async def dispatch(self, request: Request, call_next):
        csrf_token = request.cookies.get(self.CSRF_COOKIE_NAME)
        if not csrf_token:
            csrf_token = secrets.token_urlsafe(32)

        # Templates render the token into forms
        request.state.csrf_token = csrf_token

        if request.method not in self.SAFE_METHODS and request.url.path not in self.EXEMPT_PATHS:
            submitted = request.headers.get(self.CSRF_HEADER_NAME)

            content_type = request.headers.get("content-type", "")
            if not submitted and (
                "application/x-www-form-urlencoded" in content_type
                or "multipart/form-data" in content_type
            ):
                # Cache the body first so the endpoint can parse the form again
                await request.body()
                form = await request.form()
                submitted = form.get(self.CSRF_FIELD_NAME)

            cookie_token = request.cookies.get(self.CSRF_COOKIE_NAME)
            if not submitted or not cookie_token or not secrets.compare_digest(str(submitted), cookie_token):
                logger.warning(f"CSRF validation failed for {request.method} {request.url.path}")
                return HTMLResponse(
                    content="<h1>403 Forbidden</h1><p>CSRF token validation failed.</p>",
                    status_code=403
                )

        response = await call_next(request)

        is_secure = (
            request.url.scheme == "https" or
            request.headers.get("x-forwarded-proto") == "https"
        )

        response.set_cookie(
            key=self.CSRF_COOKIE_NAME,
            value=csrf_token,
            httponly=False,  # HTMX reads it for the request header
            samesite="lax",
            secure=is_secure,
            max_age=3600
        )

        return response


def setup_security_middleware(app: FastAPI, allowed_hosts: list[str] = None):
    """Configure all security middleware for the application."""
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)

    # Prevents host header attacks
    if allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
