import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("CLOUDFLARE_ACCOUNT_ID", "test-account")
os.environ.setdefault("R2_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("R2_SECRET_ACCESS_KEY", "test-secret-key")

from gallery_api.db.base import Base
from gallery_api.db.session import get_db
from gallery_api.main import app
from gallery_api.services.storage_service import SignedMethod, get_object_signer


class RecordingSigner:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.error: Exception | None = None

    def presign(self, key, method, headers, expires_in):
        if self.error:
            raise self.error
        self.calls.append(
            {"key": key, "method": method, "headers": dict(headers), "expires_in": expires_in}
        )
        return f"https://signed.example/gallery/{key}?X-Amz-Expires={expires_in}&method={method.value}"

    def calls_for(self, method: SignedMethod) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture()
def client(db_session: Session, signer: RecordingSigner):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_signer] = lambda: signer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def sign_up(client):
    def _sign_up(email="ada@example.com", name="Ada", password="correct-horse"):
        response = client.post(
            "/api/auth/sign-up/email",
            json={"email": email, "password": password, "name": name},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _sign_up


@pytest.fixture()
def user(sign_up):
    return sign_up()["user"]
