import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db, utcnow
from models.shop import Shop
from models.shopkeeper import Shopkeeper
from services import email as email_service
from services.mpesa import PushResult, get_gateway
from security.password import hash_password
from security.tokens import generate_api_key


class FakeGateway:
    """Stands in for MpesaGateway; records every push it is asked to send."""

    def __init__(self):
        self.token_calls = 0
        self.pushes = []
        self.token_error = None
        self.push_error = None

    def get_access_token(self) -> str:
        self.token_calls += 1
        if self.token_error:
            raise self.token_error
        return "test-token"

    def initiate_push(self, token, phone, amount, callback_url, reference, description=""):
        self.pushes.append(
            {
                "token": token,
                "phone": phone,
                "amount": amount,
                "callback_url": callback_url,
                "reference": reference,
            }
        )
        if self.push_error:
            raise self.push_error
        return PushResult(
            checkout_request_id=f"ws_CO_{len(self.pushes):04d}",
            merchant_request_id=f"mr-{len(self.pushes)}",
            description="Success. Request accepted for processing",
        )


@pytest.fixture()
def db_session_override():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(db_session_override):
    return db_session_override


@pytest.fixture(autouse=True)
def mock_email_send(monkeypatch):
    sent = []

    def _fake_send(to_email: str, subject: str, body: str) -> None:
        sent.append({"to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr(email_service, "send_email", _fake_send)
    return sent


@pytest.fixture()
def gateway(db_session_override):
    fake = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: fake
    return fake


@pytest.fixture()
def client(db_session_override, gateway):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_callback():
    """Build a Daraja STK callback body."""

    def _make(result_code: int = 0, amount: int = 65, receipt: str = "QKJ1ABC2DE", phone: str = "254712345678"):
        callback = {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": "ws_CO_0001",
            "ResultCode": result_code,
            "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
        }
        if result_code == 0:
            callback["CallbackMetadata"] = {
                "Item": [
                    {"Name": "Amount", "Value": amount},
                    {"Name": "MpesaReceiptNumber", "Value": receipt},
                    {"Name": "TransactionDate", "Value": 20251019101500},
                    {"Name": "PhoneNumber", "Value": int(phone)},
                ]
            }
        return {"Body": {"stkCallback": callback}}

    return _make


@pytest.fixture
def signed_up_keeper(db):
    """An unverified, unpaid shopkeeper."""
    keeper = Shopkeeper(
        keeper_code="SK25TEST1",
        first_name="Amina",
        last_name="Otieno",
        phone="254712345678",
        email="amina@example.com",
        password_hash=hash_password("secret123"),
        is_verified=False,
        is_active=False,
    )
    db.add(keeper)
    db.commit()
    db.refresh(keeper)
    return keeper


@pytest.fixture
def test_shop(db):
    shop = Shop(name="Mama Mboga Stores", phone="0712345678", address="Kawangware", api_key=generate_api_key())
    db.add(shop)
    db.commit()
    db.refresh(shop)
    return shop


def _active_keeper(db, shop, code, phone, role="owner", days=7):
    keeper = Shopkeeper(
        keeper_code=code,
        first_name="Keeper",
        last_name=code,
        phone=phone,
        password_hash=hash_password("secret123"),
        role=role,
        is_verified=True,
        is_active=True,
        plan_type="weekly",
        due_date=utcnow() + timedelta(days=days),
        shop_id=shop.id,
    )
    db.add(keeper)
    db.commit()
    db.refresh(keeper)
    return keeper


@pytest.fixture
def active_owner(db, test_shop):
    """A verified owner with a running weekly plan, linked to ``test_shop``."""
    return _active_keeper(db, test_shop, "SK25OWNR1", "254700000001")


@pytest.fixture
def api_headers(active_owner, test_shop):
    return {"X-Api-Key": test_shop.api_key}


@pytest.fixture
def other_tenant(db):
    """A second, unrelated shop with its own owner."""
    shop = Shop(name="Duka la Pili", api_key=generate_api_key())
    db.add(shop)
    db.commit()
    db.refresh(shop)
    owner = _active_keeper(db, shop, "SK25OTHR1", "254700000002")
    return shop, owner


@pytest.fixture
def add_keeper(db):
    def _add(shop, code, phone, role="owner", days=7):
        return _active_keeper(db, shop, code, phone, role=role, days=days)

    return _add

