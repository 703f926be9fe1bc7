import os

os.environ.setdefault("SQLALCHEMY_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("BASE_URL", "https://shop.test")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from storefront import models  # noqa: E402,F401
from storefront.database import get_session  # noqa: E402
from storefront.errors import PaymentGatewayError  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models.buyer import Buyer  # noqa: E402
from storefront.models.discount import Discount  # noqa: E402
from storefront.models.pack import Pack, PackItem  # noqa: E402
from storefront.models.price_list import PriceList, PriceListItem  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.school import School  # noqa: E402
from storefront.models.user import User  # noqa: E402
from storefront.services.payment_gateway import PaymentSession, get_payment_gateway  # noqa: E402
from storefront.utils.token import create_access_token  # noqa: E402


class FakeGateway:
    """Records every session request and answers with a fixed redirect."""

    provider = "fake"

    def __init__(self):
        self.requests = []

    def create_payment_session(self, request):
        self.requests.append(request)
        return PaymentSession(
            id=f"pref-{request.order_id}",
            redirect_url=f"https://pay.test/checkout/{request.order_id}",
            sandbox_url=f"https://sandbox.pay.test/checkout/{request.order_id}",
            raw={"id": f"pref-{request.order_id}"},
        )


class FailingGateway(FakeGateway):
    def create_payment_session(self, request):
        self.requests.append(request)
        raise PaymentGatewayError("processor unavailable")


class Seeder:
    """Small factory for catalog, price and buyer rows."""

    def __init__(self, session: Session):
        self.session = session
        self._price_list = None
        self._users = 0

    def _save(self, row):
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    @property
    def price_list(self) -> PriceList:
        if self._price_list is None:
            self._price_list = self._save(PriceList(name="Default", currency="PEN", is_default=True))
        return self._price_list

    def product(self, title="Notebook", stock=10, price="10.00", visible=True, sale_code=None) -> Product:
        product = self._save(Product(title=title, stock=stock, visible=visible, sale_code=sale_code))
        if price is not None:
            self._save(PriceListItem(
                price_list_id=self.price_list.id,
                product_id=product.id,
                price=Decimal(price),
            ))
        return product

    def pack(self, title="School pack", components=(), price="50.00", visible=True) -> Pack:
        pack = self._save(Pack(title=title, visible=visible))
        for product, quantity in components:
            self._save(PackItem(pack_id=pack.id, product_id=product.id, quantity=quantity))
        if price is not None:
            self._save(PriceListItem(
                price_list_id=self.price_list.id,
                pack_id=pack.id,
                price=Decimal(price),
            ))
        return pack

    def school(self, name="San Martin", discount_prefix="SMA") -> School:
        return self._save(School(name=name, discount_prefix=discount_prefix))

    def user(self, email=None, can_login=True) -> User:
        self._users += 1
        return self._save(User(
            first_name="Ana",
            last_name="Quispe",
            email=email or f"buyer{self._users}@example.com",
            password_hash="not-a-real-hash",
            can_login=can_login,
        ))

    def buyer(self, user=None, address="Av. Arequipa 123", school=None) -> Buyer:
        user = user or self.user()
        return self._save(Buyer(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone="999888777",
            address_line1=address,
            district="Lince",
            school_id=school.id if school else None,
        ))

    def discount(self, code="SAVE10", type="PERCENT", value="10", **fields) -> Discount:
        return self._save(Discount(code=code, type=type, value=Decimal(value), **fields))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def file_engine(tmp_path):
    """A real sqlite file, so each thread gets its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'checkout.db'}", connect_args={"timeout": 30})
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def seed(session):
    return Seeder(session)


@pytest.fixture
def file_seed(file_engine):
    with Session(file_engine) as session:
        yield Seeder(session)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    return FailingGateway()


@pytest.fixture
def client(session, gateway):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict:
        token = create_access_token({"user_id": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers
