import logging

from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.rate_limit import limiter
from app.services.auth import (
    AuthService, get_current_user, set_auth_cookie, clear_auth_cookie
)
from app.services.snapshot import snapshot_cache
from app.schemas.user import UserCreate
from app.models.user import User
from app.templates_config import templates

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _signed_in_redirect(user: User, request: Request) -> RedirectResponse:
    access_token = AuthService.create_access_token(data={"sub": user.id})
    redirect = RedirectResponse(url="/", status_code=302)
    set_auth_cookie(redirect, access_token, request)
    return redirect


@router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, user: User = Depends(get_current_user)):
    if user:
        return RedirectResponse(url="/", status_code=302)
    return templates.TemplateResponse(request, "auth/register.html", {})


@router.post("/register")
@limiter.limit("5/minute")
async def register(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    display_name: str = Form(""),
    db: Session = Depends(get_db)
):
    form = {"email": email, "display_name": display_name}

    if AuthService.get_user_by_email(db, email):
        return templates.TemplateResponse(
            request, "auth/register.html",
            {"error": "Email already registered", "form": form},
            status_code=400
        )

    if len(password) < 8:
        return templates.TemplateResponse(
            request, "auth/register.html",
            {"error": "Password must be at least 8 characters", "form": form},
            status_code=400
        )

    try:
        user_data = UserCreate(email=email, display_name=display_name.strip() or None, password=password)
    except PydanticValidationError:
        return templates.TemplateResponse(
            request, "auth/register.html",
            {"error": "Please enter a valid email address", "form": form},
            status_code=400
        )

    try:
        user = AuthService.create_user(db, user_data)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Registration error: {e}")
        return templates.TemplateResponse(
            request, "auth/register.html",
            {"error": "An error occurred during registration. Please try again.", "form": form},
            status_code=500
        )

    return _signed_in_redirect(user, request)


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, user: User = Depends(get_current_user)):
    if user:
        return RedirectResponse(url="/", status_code=302)
    return templates.TemplateResponse(request, "auth/login.html", {})


@router.post("/login")
@limiter.limit("5/minute")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db)
):
    user = AuthService.authenticate_user(db, email, password)
    if not user:
        return templates.TemplateResponse(
            request, "auth/login.html",
            {"error": "Invalid email or password", "form": {"email": email}},
            status_code=400
        )

    logger.info(f"User {user.id} signed in")
    return _signed_in_redirect(user, request)


@router.get("/logout")
async def logout(user: User = Depends(get_current_user)):
    if user:
        snapshot_cache.clear(user.id)
        logger.info(f"User {user.id} signed out")
    redirect = RedirectResponse(url="/?notice=signed_out", status_code=302)
    clear_auth_cookie(redirect)
    return redirect
