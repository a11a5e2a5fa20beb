from datetime import date, datetime
from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates
from markupsafe import Markup

from app.config import get_settings

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Shared templates instance
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Banner shown after a redirect, keyed by the ``notice`` query parameter
NOTICES = {
    "ticket_listed": ("success", "Ticket listed successfully!"),
    "offer_submitted": ("success", "Offer submitted successfully!"),
    "offer_approved": ("success", "Offer approved successfully!"),
    "offer_denied": ("success", "Offer denied successfully!"),
    "ticket_unavailable": ("error", "This ticket is no longer available."),
    "offer_resolved": ("error", "This offer has already been resolved."),
    "offer_failed": ("error", "Failed to update offer. Please try again."),
    "offer_submit_failed": ("error", "Failed to submit offer. Please try again."),
    "signed_out": ("success", "You have been signed out."),
}


def get_csrf_token(request: Request) -> str:
    """Get CSRF token from request state."""
    return getattr(request.state, "csrf_token", "")


def csrf_input(request: Request):
    """Return hidden input field with CSRF token."""
    token = getattr(request.state, "csrf_token", "")
    return Markup(f'<input type="hidden" name="csrf_token" value="{token}">')


def format_date(value) -> str:
    """Render dates like ``Sat, Mar 15, 2025``."""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%a, %b %d, %Y").replace(" 0", " ")


def money(value) -> str:
    return f"{float(value or 0):.2f}"


def lookup_notice(code: str):
    return NOTICES.get(code)


templates.env.globals["get_csrf_token"] = get_csrf_token
templates.env.globals["csrf_input"] = csrf_input
templates.env.globals["lookup_notice"] = lookup_notice
templates.env.globals["app_name"] = get_settings().app_name
templates.env.filters["format_date"] = format_date
templates.env.filters["money"] = money
