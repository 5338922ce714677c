import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-with-enough-length-for-hs256')

from leave_api.auth.jwt_handler import ClaimSet, decode_access_token, create_access_token  # noqa: E402
from leave_api.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from leave_api.main import app  # noqa: E402
from leave_api.models.user import Role, User  # noqa: E402
from leave_api.services import auth_service  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, password: str = 'secret1', role: Role = Role.USER, name: str | None = None) -> User:
        return auth_service.register(db, email, password, name=name, role=role)

    return _make_user


@pytest.fixture
def identity_for():
    def _identity_for(user: User) -> ClaimSet:
        return decode_access_token(create_access_token(user.id, user.role))

    return _identity_for


@pytest.fixture
def auth_header():
    def _auth_header(user: User) -> dict[str, str]:
        return {'Authorization': f'Bearer {create_access_token(user.id, user.role)}'}

    return _auth_header
