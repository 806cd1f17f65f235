import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.security import create_access_token, get_password_hash
from app.db.session import get_session
from app.main import app
from app.models import AdminUser, Product, Seller, User, VerificationStatus
from app.services.storage import get_storage

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)
FILES_BASE_URL = "https://files.test"


class FakeStorage:
    """In-memory stand-in for the S3 bucket."""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self._ids = itertools.count(1)

    def upload_file(self, file_content, folder, file_name, content_type="image/jpeg"):
        key = f"{folder.strip('/')}/{next(self._ids)}-{file_name}"
        self.objects[key] = file_content
        return key

    def delete_file(self, s3_key):
        self.deleted.append(s3_key)
        self.objects.pop(s3_key, None)
        return True

    def get_public_url(self, s3_key):
        return f"{FILES_BASE_URL}/{s3_key}"

    def key_from_url(self, url):
        prefix = f"{FILES_BASE_URL}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="storage")
def storage_fixture():
    return FakeStorage()


@pytest.fixture(name="client")
def client_fixture(session, storage):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_storage] = lambda: storage
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session):
    counter = itertools.count(1)

    def make_user(email=None, name="Juan Dela Cruz", is_admin=False, **fields):
        user = User(
            name=name,
            email=email or f"user{next(counter)}@campus.edu",
            password_hash=PASSWORD_HASH,
            **fields,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        if is_admin:
            session.add(AdminUser(user_id=user.id))
            session.commit()
        return user

    return make_user


@pytest.fixture(name="make_seller")
def make_seller_fixture(session, make_user):
    counter = itertools.count(1)

    def make_seller(user=None, status=VerificationStatus.VERIFIED, **fields):
        n = next(counter)
        user = user or make_user(email=f"shop{n}@campus.edu", name=f"Shop Owner{n}")
        seller = Seller(
            user_id=user.id,
            shop_name=fields.pop("shop_name", f"Shop {n}"),
            slug=fields.pop("slug", f"shop-{n}"),
            verification_status=status,
            **fields,
        )
        session.add(seller)
        session.commit()
        session.refresh(seller)
        return seller

    return make_seller


@pytest.fixture(name="make_product")
def make_product_fixture(session, make_seller):
    counter = itertools.count(1)

    def make_product(seller=None, price="100.00", stock=10, **fields):
        n = next(counter)
        seller = seller or make_seller()
        product = Product(
            seller_id=seller.id,
            name=fields.pop("name", f"Product {n}"),
            slug=fields.pop("slug", f"product-{n}"),
            price=Decimal(price),
            stock=stock,
            **fields,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return make_product


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    def auth_headers(user):
        token = create_access_token(data={"sub": user.email})
        return {"Authorization": f"Bearer {token}"}

    return auth_headers


@pytest.fixture(name="buyer")
def buyer_fixture(make_user):
    return make_user(email="buyer@campus.edu")


@pytest.fixture(name="buyer_headers")
def buyer_headers_fixture(buyer, auth_headers):
    return auth_headers(buyer)
