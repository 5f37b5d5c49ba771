import os
from typing import Callable, Generator

# Override settings for tests before importing aqva modules
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_mock"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_mock"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from aqva.api.auth import create_access_token, get_password_hash
from aqva.main import app
from aqva.models import Address, Admin, Order, Pack, Rider, User, Zone
from aqva.models.database import Base, get_db
from aqva.models.order import PAYMENT_PAID, PAYMENT_UNPAID, STATUS_PENDING

# Create test database engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

PASSWORD = "testpassword123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db_session = TestSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db: Session, email: str, full_name: str) -> User:
    user = User(
        email=email,
        full_name=full_name,
        phone="+27820000000",
        hashed_password=get_password_hash(PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _make_rider(db: Session, user: User, is_online: bool = True) -> Rider:
    rider = Rider(user_id=user.id, display_name=user.full_name, is_online=is_online)
    db.add(rider)
    db.commit()
    db.refresh(rider)
    return rider


def headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def test_user(db: Session) -> User:
    """The customer placing orders."""
    return _make_user(db, "test@example.com", "Test Customer")


@pytest.fixture
def test_user2(db: Session) -> User:
    return _make_user(db, "test2@example.com", "Second Customer")


@pytest.fixture
def rider_user(db: Session) -> User:
    return _make_user(db, "rider@example.com", "Rider One")


@pytest.fixture
def rider(db: Session, rider_user: User) -> Rider:
    return _make_rider(db, rider_user)


@pytest.fixture
def rider2_user(db: Session) -> User:
    return _make_user(db, "rider2@example.com", "Rider Two")


@pytest.fixture
def rider2(db: Session, rider2_user: User) -> Rider:
    return _make_rider(db, rider2_user)


@pytest.fixture
def admin_user(db: Session) -> User:
    user = _make_user(db, "admin@example.com", "Admin")
    db.add(Admin(user_id=user.id))
    db.commit()
    return user


@pytest.fixture
def test_zone(db: Session) -> Zone:
    zone = Zone(name="Sea Point", is_active=True)
    db.add(zone)
    db.commit()
    db.refresh(zone)
    return zone


@pytest.fixture
def test_pack(db: Session) -> Pack:
    pack = Pack(name="AQVA Pack 6 x 1.5L", units_per_pack=6, price_cents=7999, is_active=True)
    db.add(pack)
    db.commit()
    db.refresh(pack)
    return pack


@pytest.fixture
def test_address(db: Session, test_user: User) -> Address:
    address = Address(user_id=test_user.id, label="Home", line1="1 Beach Road", city="Cape Town", is_default=True)
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


@pytest.fixture
def make_order(db: Session, test_zone: Zone, test_pack: Pack) -> Callable[..., Order]:
    """Insert an order directly, bypassing the create rules."""

    def _make(
        user: User,
        status: str = STATUS_PENDING,
        paid: bool = True,
        rider: Rider | None = None,
        quantity: int = 1,
    ) -> Order:
        address = db.query(Address).filter(Address.user_id == user.id).first()
        if address is None:
            address = Address(user_id=user.id, line1="2 Main Road", is_default=True)
            db.add(address)
            db.flush()
        order = Order(
            user_id=user.id,
            address_id=address.id,
            zone_id=test_zone.id,
            pack_id=test_pack.id,
            quantity=quantity,
            total_cents=test_pack.price_cents * quantity,
            status=status,
            payment_status=PAYMENT_PAID if paid else PAYMENT_UNPAID,
            payment_method="card",
            rider_id=rider.id if rider else None,
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def paid_order(make_order, test_user: User, test_address: Address) -> Order:
    return make_order(test_user)


@pytest.fixture
def auth_token(client: TestClient, test_user: User) -> str:
    """Get auth token for test user."""
    response = client.post(
        "/api/auth/login",
        json={"email": "test@example.com", "password": PASSWORD},
    )
    assert response.status_code == 200
    return response.json()["accessToken"]


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Get auth headers with token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def rider_headers(rider: Rider, rider_user: User) -> dict[str, str]:
    return headers_for(rider_user)


@pytest.fixture
def rider2_headers(rider2: Rider, rider2_user: User) -> dict[str, str]:
    return headers_for(rider2_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture
def make_headers() -> Callable[[User], dict[str, str]]:
    return headers_for
