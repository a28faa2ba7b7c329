import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Response, status
from fastapi.security import APIKeyCookie, HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

import config
import crud
from database import get_db
from models import User, Role, utcnow

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Non authentifié"
SESSION_EXPIRED = "Session expirée"
ACCESS_DENIED = "Accès refusé"


class Auth:
    pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
    cookie_scheme = APIKeyCookie(name=config.AUTH_COOKIE_NAME, auto_error=False)
    bearer_scheme = HTTPBearer(auto_error=False)
    session_ttl = timedelta(days=config.SESSION_TTL_DAYS)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def create_session(self, db: Session, user_id: str, now: Optional[datetime] = None) -> str:
        """
        Видає новий токен сесії: 32 випадкові байти у hex (64 символи),
        дійсний протягом ``session_ttl``.
        """
        now = now or utcnow()
        token = secrets.token_hex(32)
        crud.create_session(db, user_id, token, now + self.session_ttl)
        return token

    def resolve_session(self, db: Session, token: str, now: Optional[datetime] = None) -> Optional[User]:
        """
        Повертає власника токена або None, якщо токен невідомий чи прострочений.
        Прострочені сесії не видаляються. Помилки БД не перехоплюються.
        """
        session = crud.get_session_by_token(db, token)
        if session is None:
            return None
        now = now or utcnow()
        if session.expires_at < now:
            return None
        return crud.get_user_by_id(db, session.user_id)

    def revoke_session(self, db: Session, token: str) -> None:
        crud.delete_session(db, token)

    def authenticate(self, db: Session, token: Optional[str]) -> User:
        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)
        user = self.resolve_session(db, token)
        if user is None:
            logger.info("Rejected unknown or expired session token")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=SESSION_EXPIRED)
        return user

    def get_current_user(self, token: Optional[str] = Depends(cookie_scheme), db: Session = Depends(get_db)) -> User:
        return self.authenticate(db, token)

    def get_current_user_with_bearer(
        self,
        token: Optional[str] = Depends(cookie_scheme),
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        db: Session = Depends(get_db),
    ) -> User:
        """Як :meth:`get_current_user`, але приймає також заголовок ``Authorization: Bearer``."""
        if not token and credentials is not None:
            token = credentials.credentials
        return self.authenticate(db, token)

    def set_auth_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=config.AUTH_COOKIE_NAME,
            value=token,
            max_age=int(self.session_ttl.total_seconds()),
            httponly=True,
            secure=config.COOKIE_SECURE,
            samesite="lax",
        )

    def clear_auth_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=config.AUTH_COOKIE_NAME,
            httponly=True,
            secure=config.COOKIE_SECURE,
            samesite="lax",
        )

auth_service = Auth()

def role_required(*allowed_roles: Role):
    def wrapper(current_user: User = Depends(auth_service.get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)
        return current_user
    return wrapper
