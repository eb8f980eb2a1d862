"""
Storage gateway failure paths and concurrent sales.

Verifies:
- run_with_retry retries lock/version conflicts, then gives up with StorageError
- Storage failures reach clients of /sales as a generic 500
- Simultaneous sales against one product never oversell it
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Product
from stockdesk.services.products_service import CatalogManager
from stockdesk.services.sales_service import SaleProcessor, InsufficientStock
from stockdesk.services.storage_gateway import StorageGateway, StorageError

from tests.conftest import sale_payload


def _locked() -> OperationalError:
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


# =============================================================================
# RETRY POLICY
# =============================================================================


class TestRunWithRetry:

    def test_succeeds_after_transient_conflicts(self, gateway):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) < 3:
                raise _locked()
            return "done"

        assert gateway.run_with_retry(_op, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_stale_data_is_retried(self, gateway):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("version mismatch")
            return len(calls)

        assert gateway.run_with_retry(_op, backoff_base=0) == 2

    def test_gives_up_with_storage_error(self, gateway):
        calls = []

        def _op():
            calls.append(1)
            raise _locked()

        with pytest.raises(StorageError) as exc_info:
            gateway.run_with_retry(_op, attempts=4, backoff_base=0)

        assert len(calls) == 4
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_other_errors_are_not_retried(self, gateway):
        calls = []

        def _op():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            gateway.run_with_retry(_op, backoff_base=0)

        assert len(calls) == 1


# =============================================================================
# 500 MAPPING
# =============================================================================


class TestSalesStorageFailures:

    def test_create_storage_error(self, client, db_session, monkeypatch):
        def _fail(self, payload):
            raise StorageError("Storage is busy, try again")

        monkeypatch.setattr(SaleProcessor, "create_sale", _fail)

        resp = client.post("/sales", json=sale_payload([{"product_id": 1, "quantity": 1, "unit_price": 1.0}]))

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to create sale"}

    def test_create_unexpected_error(self, client, db_session, monkeypatch):
        def _boom(self, payload):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(SaleProcessor, "create_sale", _boom)

        resp = client.post("/sales", json=sale_payload([{"product_id": 1, "quantity": 1, "unit_price": 1.0}]))

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_delete_storage_error(self, client, db_session, monkeypatch):
        def _fail(self, sale_id):
            raise StorageError("Failed to save changes")

        monkeypatch.setattr(SaleProcessor, "delete_sale", _fail)

        resp = client.delete("/sales/1")

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to delete sale"}

    def test_busy_database_surfaces_as_500(self, client, db_session, make_product, monkeypatch):
        product = make_product(stock_quantity=10, price=1.0)

        def _always_locked(self):
            raise _locked()

        monkeypatch.setattr(StorageGateway, "_begin_immediate", _always_locked)

        resp = client.post("/sales", json=sale_payload(
            [{"product_id": product.id, "quantity": 1, "unit_price": 1.0}],
        ))

        assert resp.status_code == 500
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock_quantity == 10


# =============================================================================
# CONCURRENT SALES (file-backed SQLite, one session per thread)
# =============================================================================


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'stockdesk.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_API_KEY': None,
    })
    yield app
    with app.app_context():
        db.engine.dispose()


def _sell_concurrently(app, product_id: int, workers: int, quantity: int) -> list[str]:
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    lock = threading.Lock()

    def _sell():
        with app.app_context():
            processor = SaleProcessor(StorageGateway(db.session))
            barrier.wait()
            try:
                processor.create_sale(sale_payload(
                    [{"product_id": product_id, "quantity": quantity, "unit_price": 1.0}],
                ))
                outcome = "ok"
            except InsufficientStock:
                outcome = "insufficient"
            except StorageError:
                outcome = "busy"
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=_sell) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return sorted(outcomes)


def test_concurrent_sales_never_oversell(file_app):
    with file_app.app_context():
        product = CatalogManager(StorageGateway(db.session)).create_product({
            "name": "Limited", "stock_quantity": 10, "price": 1.0, "is_active": True,
        })
        product_id = product.id

    outcomes = _sell_concurrently(file_app, product_id, workers=4, quantity=3)

    assert outcomes == ["insufficient", "ok", "ok", "ok"]
    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 1
