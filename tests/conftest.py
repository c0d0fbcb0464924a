"""
Pytest configuration and shared fixtures
"""

import io
import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Settings are read once; configure them before the app is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-picx")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PAYOS_CLIENT_ID", "test-client")
os.environ.setdefault("PAYOS_API_KEY", "test-api-key")
os.environ.setdefault("PAYOS_CHECKSUM_KEY", "test-checksum-key")

from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from picx.api.dependencies import get_session_factory
from picx.api.errors import StorageFileNotFoundError
from picx.api.security import create_user_token, hash_password
from picx.api.services.email_service import EmailService, get_email_service
from picx.api.services.exhibition_service import get_exhibition_service
from picx.api.services.payos_client import PayOSClient, get_payos_client
from picx.api.services.storage_service import get_storage_service
from picx.api.services.wallet_service import credit, get_or_create_wallet
from picx.db.models import ArtistProfile, Base, Category, Product, User

TEST_PASSWORD = "Secret123"


class FakeStorage:
    """In-memory stand-in for the S3 storage service."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    def upload_file(self, data: bytes, key: str, content_type: str = None) -> str:
        self.objects[key] = data
        return key

    def get_file(self, key: str) -> bytes:
        if key not in self.objects:
            raise StorageFileNotFoundError(key)
        return self.objects[key]

    def delete_file(self, key: str) -> None:
        self.objects.pop(key, None)
        self.deleted.append(key)


class RecordingEmailService(EmailService):
    """Email service that records messages instead of talking SMTP."""

    def __init__(self) -> None:
        super().__init__(host="smtp.test", port=587, sender_address="noreply@picx.vn")
        self.sent: List[Dict[str, str]] = []
        self.fail = False

    def send_email(self, to: str, subject: str, html_body: str) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html_body})
        return True


class FakePayOSClient(PayOSClient):
    """Signs like the real client but never calls the PayOS API."""

    def __init__(self) -> None:
        super().__init__(
            client_id="test-client",
            api_key="test-api-key",
            checksum_key="test-checksum-key",
            base_url="https://api-merchant.payos.test",
        )
        self.links: List[Dict[str, Any]] = []

    def create_payment_link(self, order_code, amount, description, items, return_url, cancel_url):
        self.links.append(
            {"order_code": order_code, "amount": amount, "description": description, "items": items}
        )
        return {
            "checkoutUrl": f"https://pay.payos.test/web/{order_code}",
            "orderCode": order_code,
            "amount": amount,
        }


class FakeExhibitionService:
    def __init__(self) -> None:
        self.exhibitions = []

    def get_all_exhibitions(self):
        return list(self.exhibitions)


def make_image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 40, 90)) -> bytes:
    image = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def password_hash():
    """Hashing is slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Session for seeding and inspecting data directly."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def payos():
    return FakePayOSClient()


@pytest.fixture
def exhibitions():
    return FakeExhibitionService()


@pytest.fixture
def app(session_factory, storage, email_service, payos, exhibitions):
    from picx.api.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_payos_client] = lambda: payos
    app.dependency_overrides[get_exhibition_service] = lambda: exhibitions
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # One client per test keeps websocket sessions on the same event loop
    with TestClient(app) as client:
        yield client


def create_user(db, password_hash, name, email, role="buyer", **fields) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        is_active=fields.pop("is_active", True),
        email_verified=fields.pop("email_verified", True),
        **fields,
    )
    db.add(user)
    db.flush()
    if role == "artist":
        db.add(ArtistProfile(artist_id=user.user_id, specialization="Digital painting"))
    get_or_create_wallet(db, user.user_id)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


def fund_wallet(db, user: User, amount) -> None:
    wallet = get_or_create_wallet(db, user.user_id)
    credit(db, wallet, Decimal(str(amount)), "deposit", "Test funds")
    db.commit()


@pytest.fixture
def buyer(db, password_hash):
    return create_user(db, password_hash, "Bao Buyer", "buyer@picx.vn", role="buyer")


@pytest.fixture
def other_buyer(db, password_hash):
    return create_user(db, password_hash, "Chi Collector", "collector@picx.vn", role="buyer")


@pytest.fixture
def artist(db, password_hash):
    return create_user(db, password_hash, "An Artist", "artist@picx.vn", role="artist")


@pytest.fixture
def other_artist(db, password_hash):
    return create_user(db, password_hash, "Duc Painter", "painter@picx.vn", role="artist")


@pytest.fixture
def admin(db, password_hash):
    return create_user(db, password_hash, "Ha Admin", "admin@picx.vn", role="admin")


@pytest.fixture
def category(db):
    category = Category(name="Digital Art", description="Born-digital works", is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_product(db, storage, artist, category, title="Sunset", price="150.00", **fields) -> Product:
    image_key = fields.pop("image_key", f"{title.lower().replace(' ', '-')}.png")
    storage.objects[image_key] = make_image_bytes()
    product = Product(
        artist_id=artist.user_id,
        category_id=category.category_id if category else None,
        title=title,
        description=fields.pop("description", f"{title} artwork"),
        price=Decimal(price),
        image_key=image_key,
        is_available=fields.pop("is_available", True),
        tags=fields.pop("tags", "landscape,warm"),
        like_count=fields.pop("like_count", 0),
        **fields,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product(db, storage, artist, category):
    return create_product(db, storage, artist, category)
