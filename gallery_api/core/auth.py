from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from starlette.requests import cookie_parser

from gallery_api.core.config import get_settings
from gallery_api.core.security import SessionSigner
from gallery_api.db.session import get_db
from gallery_api.models import Session as UserSession
from gallery_api.models import User

SESSION_COOKIE = "session_token"

settings = get_settings()
session_signer = SessionSigner()


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    name: str
    session_id: str

    @classmethod
    def from_user(cls, user: User, session_id: str) -> "CurrentUser":
        return cls(id=user.id, email=user.email, name=user.name, session_id=session_id)


class SessionValidator(Protocol):
    def get_session(self, headers: Mapping[str, str]) -> CurrentUser | None: ...


def as_aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def extract_session_token(headers: Mapping[str, str]) -> str | None:
    authorization = headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    raw_cookie = headers.get("cookie")
    if not raw_cookie:
        return None
    return cookie_parser(raw_cookie).get(SESSION_COOKIE) or None


class DbSessionValidator:
    """Resolves signed session tokens against the ``sessions`` table.

    A token is honoured only while its session row exists and has not
    expired. Sessions older than ``session_update_age_seconds`` since their
    last refresh get their expiry pushed out again.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_session(self, headers: Mapping[str, str]) -> CurrentUser | None:
        token = extract_session_token(headers)
        if not token:
            return None
        unsigned = session_signer.unsign(token)
        if not unsigned:
            return None
        user_id, session_id = unsigned

        row = (
            self._db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(UserSession.id == session_id, UserSession.user_id == user_id)
            .first()
        )
        if not row:
            return None
        user_session, user = row

        now = datetime.now(UTC)
        if as_aware_utc(user_session.expires_at) <= now:
            self._db.delete(user_session)
            self._db.commit()
            return None

        if now - as_aware_utc(user_session.updated_at) >= timedelta(seconds=settings.session_update_age_seconds):
            user_session.expires_at = now + timedelta(seconds=settings.session_max_age_seconds)
            user_session.updated_at = now
            self._db.commit()

        return CurrentUser.from_user(user, user_session.id)


def create_session(db: Session, user_id: str) -> tuple[str, UserSession]:
    user_session = UserSession(
        user_id=user_id,
        expires_at=datetime.now(UTC) + timedelta(seconds=settings.session_max_age_seconds),
    )
    db.add(user_session)
    db.commit()
    db.refresh(user_session)
    return session_signer.sign(user_id, user_session.id), user_session


def revoke_session(db: Session, session_id: str) -> None:
    db.query(UserSession).filter(UserSession.id == session_id).delete()
    db.commit()


def get_session_validator(db: Session = Depends(get_db)) -> SessionValidator:
    return DbSessionValidator(db)


def get_current_user(
    request: Request,
    validator: SessionValidator = Depends(get_session_validator),
) -> CurrentUser | None:
    return validator.get_session(request.headers)
