import base64
import secrets
from datetime import UTC, datetime, timedelta

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from itsdangerous import BadSignature, URLSafeTimedSerializer

from gallery_api.core.config import get_settings

settings = get_settings()

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_LENGTH = 64


def _scrypt(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=_SCRYPT_LENGTH, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = _scrypt(salt).derive(password.encode("utf-8"))
    return "scrypt${}${}".format(
        base64.urlsafe_b64encode(salt).decode("ascii"),
        base64.urlsafe_b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        scheme, salt_b64, digest_b64 = stored.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False
    salt = base64.urlsafe_b64decode(salt_b64.encode("ascii"))
    digest = base64.urlsafe_b64decode(digest_b64.encode("ascii"))
    try:
        _scrypt(salt).verify(password.encode("utf-8"), digest)
    except InvalidKey:
        return False
    return True


class SessionSigner:
    def __init__(self) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key=settings.session_secret)

    def sign(self, user_id: str, session_id: str) -> str:
        return self._serializer.dumps({"user_id": user_id, "session_id": session_id})

    def unsign(self, token: str, max_age_seconds: int | None = None) -> tuple[str, str] | None:
        if max_age_seconds is None:
            max_age_seconds = settings.session_max_age_seconds
        try:
            payload = self._serializer.loads(token, max_age=max_age_seconds)
        except BadSignature:
            return None
        if not isinstance(payload, dict):
            return None
        user_id = payload.get("user_id")
        session_id = payload.get("session_id")
        if not user_id or not session_id:
            return None
        return user_id, session_id


class MagicLinkSigner:
    def __init__(self) -> None:
        self._serializer = URLSafeTimedSerializer(
            secret_key=settings.session_secret, salt=settings.magic_link_signer_salt
        )

    def sign_email(self, email: str) -> str:
        return self._serializer.dumps({"email": email, "exp": self._default_exp()})

    def verify(self, token: str, max_age_seconds: int = 60 * 15) -> str | None:
        try:
            payload = self._serializer.loads(token, max_age=max_age_seconds)
        except BadSignature:
            return None
        return payload.get("email")

    @staticmethod
    def _default_exp() -> str:
        return (datetime.now(UTC) + timedelta(minutes=15)).isoformat()
