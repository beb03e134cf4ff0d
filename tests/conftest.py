from datetime import date
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.cache import cache
from app.database import Base, build_engine, get_db
from app.main import app
from app.models import Service, TimeSlot, User, UserRole
from app.services.line_identity import LineIdentity, get_identity_resolver
from app.shared.errors import AuthenticationError

# 2030-01-07 is a Monday (dayOfWeek 1)
MONDAY = date(2030, 1, 7)
NEXT_MONDAY = date(2030, 1, 14)
TUESDAY = date(2030, 1, 8)


class FakeIdentityResolver:
    """Maps bearer tokens to LINE identities without calling LINE"""

    def __init__(self):
        self.tokens: dict[str, LineIdentity] = {}

    def register(
        self, token: str, subject_id: str, display_name: str = "Tester", picture_url: Optional[str] = None
    ) -> None:
        self.tokens[token] = LineIdentity(
            subject_id=subject_id, display_name=display_name, picture_url=picture_url
        )

    async def verify(self, token: Optional[str]) -> LineIdentity:
        if not token or not token.strip():
            raise AuthenticationError("Access token must not be empty")
        identity = self.tokens.get(token)
        if identity is None:
            raise AuthenticationError("Token expired or invalid")
        return identity


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def reset_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def no_line_push(monkeypatch):
    monkeypatch.setattr("app.services.notification_service.LINE_CHANNEL_ACCESS_TOKEN", None)


@pytest.fixture
def identities():
    return FakeIdentityResolver()


@pytest.fixture
def client(session_factory, identities):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_resolver] = lambda: identities
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_user(
    db, identities, token: str, line_id: str, role: UserRole = UserRole.CUSTOMER, phone="0912345678"
) -> User:
    user = User(line_id=line_id, name=f"user-{line_id}", phone=phone, role=role.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    identities.register(token, line_id, display_name=user.name)
    return user


def make_time_slot(db, day_of_week=1, start_time="09:00", capacity=1, is_active=True) -> TimeSlot:
    slot = TimeSlot(
        day_of_week=day_of_week, start_time=start_time, capacity=capacity, is_active=is_active
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def make_service(db, name="Basic maintenance", price=1500, duration=60, is_active=True) -> Service:
    service = Service(name=name, price=price, duration=duration, is_active=is_active)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def customer(db, identities):
    return make_user(db, identities, "customer-token", "U-customer")


@pytest.fixture
def other_customer(db, identities):
    return make_user(db, identities, "other-token", "U-other", phone="0987654321")


@pytest.fixture
def admin(db, identities):
    return make_user(db, identities, "admin-token", "U-admin", role=UserRole.ADMIN, phone="0911111111")
