import os

# Configure before the application modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("BOSS_INIT_SECRET", None)

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from tattoo_crm.database import Base, SessionLocal, engine  # noqa: E402
from tattoo_crm.domain.maintenance.service import disable_ephemeral  # noqa: E402
from tattoo_crm.main import app  # noqa: E402
from tattoo_crm.models import ROLE_ARTIST, ROLE_BOSS, ROLE_MEMBER, Artist, Branch, Member, User  # noqa: E402
from tattoo_crm.models_catalog import Service, ServiceVariant  # noqa: E402
from tattoo_crm.security_utils import create_token_pair  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    disable_ephemeral()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token_pair(user)['accessToken']}"}


@pytest.fixture
def seed():
    """Two branches, a boss, two artists, one member with stored value and a priced service"""
    session = SessionLocal()
    try:
        branch = Branch(name="Taipei Studio", is_active=True)
        other_branch = Branch(name="Taichung Studio", is_active=True)
        session.add_all([branch, other_branch])
        session.flush()

        boss = User(email="boss@example.com", hashed_password="-", name="Boss", role=ROLE_BOSS)
        artist = User(
            email="ink@example.com", hashed_password="-", name="Ink", role=ROLE_ARTIST, branch_id=branch.id
        )
        other_artist = User(
            email="needle@example.com", hashed_password="-", name="Needle", role=ROLE_ARTIST, branch_id=other_branch.id
        )
        customer = User(
            email="member@example.com", hashed_password="-", name="Customer", phone="0912345678", role=ROLE_MEMBER
        )
        session.add_all([boss, artist, other_artist, customer])
        session.flush()

        session.add_all(
            [
                Artist(user_id=artist.id, branch_id=branch.id, display_name="Ink"),
                Artist(user_id=other_artist.id, branch_id=other_branch.id, display_name="Needle"),
            ]
        )
        member = Member(user_id=customer.id, balance=1000, total_spent=0)
        session.add(member)

        service = Service(name="Small tattoo", price=3000, duration_min=60, is_active=True, has_variants=True)
        session.add(service)
        session.flush()
        session.add_all(
            [
                ServiceVariant(service_id=service.id, type="size", name="5cm", price_modifier=3000),
                ServiceVariant(service_id=service.id, type="color", name="黑白", price_modifier=0),
            ]
        )
        session.commit()

        return SimpleNamespace(
            branch_id=branch.id,
            other_branch_id=other_branch.id,
            boss_id=boss.id,
            artist_id=artist.id,
            other_artist_id=other_artist.id,
            customer_id=customer.id,
            member_id=member.id,
            service_id=service.id,
            boss_headers=auth_headers(boss),
            artist_headers=auth_headers(artist),
            other_artist_headers=auth_headers(other_artist),
            member_headers=auth_headers(customer),
        )
    finally:
        session.close()
