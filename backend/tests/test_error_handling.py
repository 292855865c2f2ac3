"""
Database failures: lock contention is a retryable conflict, anything else
(schema defects, lost connections) is an internal error.
"""

import logging
import sqlite3
from contextlib import contextmanager

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from grocerpos.extensions import db
from grocerpos.models import ProductBatch, Sale
from grocerpos.services import inventory_service, purchase_service, sales_service
from grocerpos.services.concurrency import StockConflictError, is_conflict
from grocerpos.validation import PurchaseItemRequest, SaleItemRequest


class DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def operational(orig):
    return OperationalError("UPDATE product_batches ...", {}, orig)


@pytest.mark.parametrize("exc", [
    operational(sqlite3.OperationalError("database is locked")),
    operational(sqlite3.OperationalError("database is busy")),
    operational(DriverError("could not serialize access", sqlstate="40001")),
    operational(DriverError("deadlock detected", sqlstate="40P01")),
    StaleDataError("version mismatch"),
    StockConflictError(batch_id=1, requested=2),
])
def test_lock_and_serialization_failures_are_conflicts(exc):
    assert is_conflict(exc) is True


@pytest.mark.parametrize("exc", [
    operational(sqlite3.OperationalError("no such table: audit_logs")),
    operational(sqlite3.OperationalError("unable to open database file")),
    operational(DriverError("server closed the connection unexpectedly", sqlstate="08006")),
    RuntimeError("boom"),
])
def test_other_failures_are_not_conflicts(exc):
    assert is_conflict(exc) is False


@contextmanager
def hidden_table(name):
    db.session.execute(text(f"ALTER TABLE {name} RENAME TO {name}_hidden"))
    db.session.commit()
    try:
        yield
    finally:
        db.session.rollback()
        db.session.execute(text(f"ALTER TABLE {name}_hidden RENAME TO {name}"))
        db.session.commit()


def test_schema_defect_is_not_retried_or_reported_as_conflict(db_session, make_user, make_product, make_batch, caplog):
    cashier = make_user()
    product = make_product()
    batch = make_batch(product, 5)

    with hidden_table("audit_logs"):
        with pytest.raises(OperationalError, match="audit_logs"):
            sales_service.create_sale(
                items=[SaleItemRequest(product_id=product.id, quantity=2)],
                payment_method="CASH",
                actor_user_id=cashier.id,
            )

    assert "Concurrency conflict" not in caplog.text
    assert db_session.get(ProductBatch, batch.id).quantity == 5
    assert db_session.query(Sale).count() == 0


def test_schema_defect_during_checkout_is_logged_500(client, db_session, auth_headers, make_product, make_batch, caplog):
    headers = auth_headers("CASHIER")
    product = make_product()
    batch = make_batch(product, 5)

    with caplog.at_level(logging.ERROR):
        with hidden_table("audit_logs"):
            resp = client.post(
                "/api/sales/",
                json={"items": [{"product_id": product.id, "quantity": 1}], "payment_method": "CASH"},
                headers=headers,
            )

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}
    failures = [r for r in caplog.records if r.getMessage() == "Failed to create sale"]
    assert len(failures) == 1
    assert failures[0].exc_info is not None
    assert isinstance(failures[0].exc_info[1], OperationalError)
    assert db_session.get(ProductBatch, batch.id).quantity == 5


def test_schema_defect_in_purchase_and_adjustment_propagates(db_session, make_user, make_product, make_batch,
                                                             make_supplier):
    manager = make_user(username="manager", role="MANAGER")
    product = make_product()
    batch = make_batch(product, 5)
    supplier = make_supplier()

    with hidden_table("audit_logs"):
        with pytest.raises(OperationalError):
            purchase_service.create_purchase(
                supplier_id=supplier.id,
                items=[PurchaseItemRequest(product.id, "LOT-1", 3, 100)],
                actor_user_id=manager.id,
            )
        with pytest.raises(OperationalError):
            inventory_service.adjust_stock(
                product_id=product.id,
                batch_id=batch.id,
                movement_type="DAMAGE",
                quantity=1,
                actor_user_id=manager.id,
            )

    assert db_session.query(ProductBatch).filter_by(product_id=product.id).count() == 1
    assert db_session.get(ProductBatch, batch.id).quantity == 5
