import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from gallery_api.core.auth import (
    SESSION_COOKIE,
    CurrentUser,
    create_session,
    get_current_user,
    revoke_session,
)
from gallery_api.core.config import get_settings
from gallery_api.core.security import MagicLinkSigner, hash_password, verify_password
from gallery_api.db.session import get_db
from gallery_api.models import Session as UserSession
from gallery_api.models import User
from gallery_api.schemas.auth import (
    AuthResponse,
    MagicLinkRequest,
    MagicLinkRequestResponse,
    MagicLinkVerifyRequest,
    SessionInfo,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
)
from gallery_api.schemas.profile import ProfileResponse

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")
magic_signer = MagicLinkSigner()
settings = get_settings()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _start_session(db: Session, user: User, response: Response) -> AuthResponse:
    session_token, _ = create_session(db, user.id)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.session_max_age_seconds,
    )
    return AuthResponse(token=session_token, user=ProfileResponse.model_validate(user))


@router.post("/sign-up/email", response_model=AuthResponse)
def sign_up(payload: SignUpRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    email = _normalize_email(str(payload.email))
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=422, detail="User already exists")

    user = User(email=email, name=payload.name, password_hash=hash_password(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("Registered user %s", user.id)
    return _start_session(db, user, response)


@router.post("/sign-in/email", response_model=AuthResponse)
def sign_in(payload: SignInRequest, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    user = db.query(User).filter(User.email == _normalize_email(str(payload.email))).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _start_session(db, user, response)


@router.post("/sign-out")
def sign_out(
    response: Response,
    user: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if user:
        revoke_session(db, user.session_id)
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}


@router.get("/get-session", response_model=SessionResponse | None)
def get_session(
    user: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SessionResponse | None:
    if not user:
        return None
    user_session = db.get(UserSession, user.session_id)
    profile = db.get(User, user.id)
    if not user_session or not profile:
        return None
    return SessionResponse(
        session=SessionInfo(id=user_session.id, user_id=user_session.user_id, expires_at=user_session.expires_at),
        user=ProfileResponse.model_validate(profile),
    )


@router.post("/magic-link/request", response_model=MagicLinkRequestResponse)
def request_magic_link(payload: MagicLinkRequest) -> MagicLinkRequestResponse:
    token = magic_signer.sign_email(_normalize_email(str(payload.email)))
    # In production, send this token by email provider. Returned only for initial integration.
    return MagicLinkRequestResponse(ok=True, token_preview=token)


@router.post("/magic-link/verify", response_model=AuthResponse)
def verify_magic_link(
    payload: MagicLinkVerifyRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> AuthResponse:
    email = magic_signer.verify(payload.token)
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid magic link")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, name=email.split("@")[0][:100] or email[:100])
        db.add(user)
    user.email_verified = True
    db.commit()
    db.refresh(user)
    return _start_session(db, user, response)
