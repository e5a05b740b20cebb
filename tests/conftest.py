import pytest
from datetime import datetime, timedelta
from unittest.mock import patch

from faker import Faker
from flask_jwt_extended import create_access_token

from voucherspot import create_app
from voucherspot.extensions import cache, db
from voucherspot.models import (
    RouterConfiguration,
    SupportContact,
    Transaction,
    TransactionCharge,
    User,
    Voucher,
    VoucherPackage,
)
from voucherspot.security.permissions import ALL_PERMISSIONS

from helpers import FakeRouterApi

# Initialize Faker for generating test data
fake = Faker()


def pytest_configure(config):
    config.addinivalue_line("markers", "payment: mark test as payment-related")
    config.addinivalue_line("markers", "router: mark test as RouterOS-related")
    config.addinivalue_line("markers", "auth: mark test as authentication-related")


@pytest.fixture(scope="session")
def app():
    """Application with an in-memory database shared by the whole run"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def clean_database(app):
    """Empty every table and the cache after each test"""
    yield
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.remove()
    cache.clear()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer headers carrying the given permission claims"""
    def _headers(*permissions, identity="1"):
        token = create_access_token(
            identity=identity,
            additional_claims={"permissions": list(permissions)},
        )
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers(*ALL_PERMISSIONS)


@pytest.fixture
def admin_user():
    user = User(name=fake.name(), email="admin@voucherspot.test", permissions=list(ALL_PERMISSIONS))
    user.set_password("securepassword")
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def router():
    router = RouterConfiguration(
        name="Kampala Main",
        host=fake.ipv4_private(),
        port=8728,
        username="api",
        password="secret",
    )
    db.session.add(router)
    db.session.commit()
    return router


@pytest.fixture
def package(router):
    package = VoucherPackage(
        name="Daily",
        price=1000,
        profile_name="daily",
        session_timeout="24h",
        shared_users=1,
        router_id=router.id,
        is_active=True,
    )
    db.session.add(package)
    db.session.commit()
    return package


@pytest.fixture
def make_transaction(package):
    """Factory for transactions against the default package"""
    def _make(**overrides):
        values = {
            "phone_number": "256771234567",
            "amount": 1000,
            "currency": "UGX",
            "status": "pending",
            "payment_id": fake.unique.bothify("REF-########"),
            "gateway": "yopayments",
            "channel": "mobile_money",
            "package_id": package.id,
            "router_id": package.router_id,
        }
        values.update(overrides)
        transaction = Transaction(**values)
        db.session.add(transaction)
        db.session.commit()
        return transaction

    return _make


@pytest.fixture
def make_voucher(package):
    def _make(**overrides):
        values = {
            "code": fake.unique.bothify("????####").upper(),
            "package_id": package.id,
            "router_id": package.router_id,
            "gateway": "shop",
            "expires_at": datetime.utcnow() + timedelta(hours=24),
        }
        values.update(overrides)
        voucher = Voucher(**values)
        db.session.add(voucher)
        db.session.commit()
        return voucher

    return _make


@pytest.fixture
def mtn_charge():
    charge = TransactionCharge(network="MTN", min_amount=500, max_amount=2500, charge=100)
    db.session.add(charge)
    db.session.commit()
    return charge


@pytest.fixture
def support_contact(router):
    contact = SupportContact(type="phone", phone_number="0700111222", router_id=router.id)
    db.session.add(contact)
    db.session.commit()
    return contact


@pytest.fixture
def router_api():
    api = FakeRouterApi()
    with patch("voucherspot.services.mikrotik_service.connect", return_value=api) as connect:
        api.connect = connect
        yield api
