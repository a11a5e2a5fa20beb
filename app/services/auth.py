from datetime import datetime, timedelta
from typing import Optional
import logging
import bcrypt
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from fastapi import Depends, HTTPException, status, Request, Response

from app.config import get_settings
from app.database import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse, TokenData
from app.services.session import AuthState, AuthStateStream, SessionContext, SessionObserver
from app.services.errors import StoreError
from app.services.snapshot import snapshot_cache
from app.services.store import generate_id

settings = get_settings()
logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "access_token"


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )

    @staticmethod
    def get_password_hash(password: str) -> str:
        return bcrypt.hashpw(
            password.encode('utf-8'),
            bcrypt.gensalt()
        ).decode('utf-8')

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
            user_id: str = payload.get("sub")
            if user_id is None:
                return None
            return TokenData(user_id=user_id)
        except JWTError:
            return None

    @staticmethod
    def create_user(db: Session, user_data: UserCreate) -> User:
        db_user = User(
            id=generate_id("user"),
            email=user_data.email.lower(),
            display_name=user_data.display_name or None,
            hashed_password=AuthService.get_password_hash(user_data.password)
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"Registered user {db_user.id}")
        return db_user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None
        if not AuthService.verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()


def get_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(AUTH_COOKIE_NAME)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> Optional[User]:
    token = get_token_from_cookie(request)
    if not token:
        return None

    token_data = AuthService.decode_token(token)
    if token_data is None or token_data.user_id is None:
        return None

    user = AuthService.get_user_by_id(db, token_data.user_id)
    return user


def get_current_user_required(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    user = get_current_user(request, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user


def get_session_context(user: User = Depends(get_current_user_required)) -> SessionContext:
    return SessionContext(user=UserResponse.model_validate(user))


def get_session_observer(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Resolve the request's auth state through a SessionObserver.
    Entering the authenticated state loads the user's snapshot.
    """
    def initial_load(context: SessionContext):
        try:
            snapshot_cache.snapshot(db, context.user_id)
        except StoreError as e:
            logger.error(f"Initial load failed for user {context.user_id}: {e}")

    stream = AuthStateStream()
    observer = SessionObserver(stream, on_authenticated=initial_load)
    stream.publish(AuthState(user=None, is_loading=True))

    user = get_current_user(request, db)
    stream.publish(AuthState(
        user=UserResponse.model_validate(user) if user else None,
        is_loading=False
    ))
    try:
        yield observer
    finally:
        observer.close()


def set_auth_cookie(response: Response, token: str, request: Request):
    # Detect if running over HTTPS (production)
    is_secure = (
        request.url.scheme == "https" or
        request.headers.get("x-forwarded-proto") == "https"
    )

    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=settings.access_token_expire_minutes * 60,
        samesite="lax",
        secure=is_secure
    )


def clear_auth_cookie(response: Response):
    response.delete_cookie(key=AUTH_COOKIE_NAME)
