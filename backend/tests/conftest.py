"""
Pytest fixtures for stockdesk backend tests.

Provides an in-memory application, a clean database per test, service
objects wired to the test session, and a fake identity provider.
"""

import pytest
from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Product
from stockdesk.services.identity_provider import IdentityClaims, InvalidToken
from stockdesk.services.storage_gateway import StorageGateway
from stockdesk.services.products_service import CatalogManager
from stockdesk.services.sales_service import SaleProcessor
from stockdesk.services.reporting_service import ReportingEngine
from stockdesk.services.auth_service import AccessApprovalManager


class FakeIdentityVerifier:
    """Stands in for Google: knows a fixed set of tokens."""

    def __init__(self):
        self.tokens: dict[str, IdentityClaims] = {}

    def register(self, token: str, subject: str, email: str, name: str | None = None) -> None:
        self.tokens[token] = IdentityClaims(subject=subject, email=email, name=name, picture=None)

    def verify(self, token: str) -> IdentityClaims:
        try:
            return self.tokens[token]
        except KeyError:
            raise InvalidToken("Unknown token")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_API_KEY': None,
        'LOW_STOCK_THRESHOLD': 5,
    })

    with app.app_context():
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def identity_verifier(app):
    verifier = FakeIdentityVerifier()
    previous = app.extensions['identity_verifier']
    app.extensions['identity_verifier'] = verifier
    yield verifier
    app.extensions['identity_verifier'] = previous


@pytest.fixture(scope='function')
def gateway(db_session):
    return StorageGateway(db_session)


@pytest.fixture(scope='function')
def catalog(gateway):
    return CatalogManager(gateway)


@pytest.fixture(scope='function')
def processor(gateway):
    return SaleProcessor(gateway)


@pytest.fixture(scope='function')
def reports(gateway):
    return ReportingEngine(gateway)


@pytest.fixture(scope='function')
def approvals(gateway, identity_verifier):
    return AccessApprovalManager(gateway, identity_verifier)


@pytest.fixture(scope='function')
def make_product(catalog):
    """Factory: create a product through the catalog and return it."""
    def _make(name="Widget", stock_quantity=10, price=5.0, **extra) -> Product:
        payload = {
            "name": name,
            "stock_quantity": stock_quantity,
            "price": price,
            "is_active": True,
        }
        payload.update(extra)
        return catalog.create_product(payload)
    return _make


def sale_payload(items: list[dict], total: float | None = None, **overrides) -> dict:
    """Build a valid sale body; total defaults to the sum of quantity x unit_price."""
    if total is None:
        total = round(sum(i["quantity"] * i.get("unit_price", 0) for i in items), 2)
    payload = {
        "sale_date": "2024-05-10T14:30:00Z",
        "customer": "Walk-in",
        "items": items,
        "total": total,
        "payment_method": "cash",
        "status": "COMPLETED",
    }
    payload.update(overrides)
    return payload


def stock_of(db_session, product_id: int) -> int:
    """Read stock straight from the database, bypassing the identity map."""
    db_session.expire_all()
    return db_session.get(Product, product_id).stock_quantity
