"""
Dependency Injection
FastAPI dependencies for database, authentication and services.
"""

import logging
from typing import Generator, Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings
from .security import verify_token
from ..db.models import ROLE_ADMIN, User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Database engine and session factory
_engine = None
_SessionLocal = None


def get_db_engine():
    """Get database engine (singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.database_url.startswith("sqlite"):
            _engine = create_engine(
                settings.database_url, connect_args={"check_same_thread": False}
            )
        else:
            _engine = create_engine(
                settings.database_url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=True,  # Verify connections before using
            )
        logger.info("Database engine created")
    return _engine


def get_session_factory():
    """Get database session factory (singleton)."""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_db_engine()
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database session factory created")
    return _SessionLocal


def get_db(session_factory=Depends(get_session_factory)) -> Generator[Session, None, None]:
    """
    Get database session.

    Use as FastAPI dependency:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def resolve_token(
    credentials: Optional[HTTPAuthorizationCredentials], access_token: Optional[str]
) -> Optional[str]:
    """Bearer header wins over the cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return access_token or None


def user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    """
    Look up the user a token belongs to.

    Returns:
        The user (active or not), or None for a missing/invalid token
    """
    if not token:
        return None

    payload = verify_token(token)
    if not payload:
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    return db.query(User).filter(User.user_id == user_id).first()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    access_token: Optional[str] = Cookie(None),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the authenticated user from the Bearer header or `access_token` cookie.

    Raises:
        HTTPException: 401 if not authenticated, 403 if the account is disabled
    """
    token = resolve_token(credentials, access_token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = user_from_token(token, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    access_token: Optional[str] = Cookie(None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Get the authenticated user, or None for anonymous callers.

    Use for endpoints that work for both authenticated and anonymous users.
    """
    user = user_from_token(resolve_token(credentials, access_token), db)
    if user is None or not user.is_active:
        return None
    return user


def require_role(*roles: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/all")
        async def list_users(user: User = Depends(require_role("admin"))):
            ...
    """

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(roles)}",
            )
        return current_user

    return role_checker


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == ROLE_ADMIN


def authenticate_websocket(token: Optional[str], session_factory) -> Optional[int]:
    """
    Resolve a socket's token to an active user id.

    Sockets cannot use the request-scoped `get_db`, so a short-lived
    session is opened here.
    """
    if not token:
        return None

    db = session_factory()
    try:
        user = user_from_token(token, db)
        if user is None or not user.is_active:
            return None
        return user.user_id
    finally:
        db.close()
