"""Purchase receiving: batch upsert, supplier balance, movements."""

from datetime import timedelta

import pytest

from grocerpos.models import AuditLog, Product, ProductBatch, Purchase, StockMovement, Supplier
from grocerpos.services import purchase_service
from grocerpos.services.purchase_service import PurchaseError, PurchaseNotFoundError
from grocerpos.time_utils import utcnow
from grocerpos.validation import PurchaseItemRequest


@pytest.fixture
def manager(make_user):
    return make_user(username="manager", role="MANAGER")


def test_receiving_creates_batches_and_logs(db_session, make_product, make_supplier, manager):
    product = make_product()
    supplier = make_supplier()
    expiry = utcnow() + timedelta(days=14)

    purchase = purchase_service.create_purchase(
        supplier_id=supplier.id,
        items=[PurchaseItemRequest(product.id, "LOT-1", 12, 550, expiry)],
        actor_user_id=manager.id,
    )

    assert purchase.invoice_number.startswith("PO")
    assert purchase.total_cents == 12 * 550
    assert purchase.payment_status == "PENDING"

    batch = db_session.query(ProductBatch).filter_by(product_id=product.id).one()
    assert batch.batch_number == "LOT-1"
    assert batch.quantity == 12
    assert batch.purchase_price_cents == 550
    assert purchase.lines[0].batch_id == batch.id

    movement = db_session.query(StockMovement).one()
    assert (movement.type, movement.quantity, movement.reason) == ("PURCHASE", 12, "Purchase - Batch: LOT-1")

    assert db_session.get(Product, product.id).cost_price_cents == 550
    assert db_session.get(Supplier, supplier.id).balance_cents == 6600
    assert db_session.query(AuditLog).one().action == "CREATE_PURCHASE"


def test_receiving_existing_batch_number_tops_it_up(db_session, make_product, make_batch, make_supplier, manager):
    product = make_product()
    existing = make_batch(product, 5, purchase_price_cents=500, batch_number="LOT-7")
    supplier = make_supplier()

    purchase_service.create_purchase(
        supplier_id=supplier.id,
        items=[PurchaseItemRequest(product.id, "LOT-7", 3, 520)],
        actor_user_id=manager.id,
    )

    batches = db_session.query(ProductBatch).filter_by(product_id=product.id).all()
    assert [b.id for b in batches] == [existing.id]
    assert batches[0].quantity == 8
    assert batches[0].purchase_price_cents == 520
    assert batches[0].expiration_date is None


def test_paid_purchase_does_not_grow_supplier_balance(db_session, make_product, make_supplier, manager):
    product = make_product()
    supplier = make_supplier()

    purchase_service.create_purchase(
        supplier_id=supplier.id,
        items=[PurchaseItemRequest(product.id, "LOT-1", 2, 100)],
        actor_user_id=manager.id,
        payment_method="CASH",
        payment_status="COMPLETED",
    )

    assert db_session.get(Supplier, supplier.id).balance_cents == 0


def test_unknown_supplier_is_not_found(db_session, make_product, manager):
    product = make_product()
    with pytest.raises(PurchaseNotFoundError) as exc_info:
        purchase_service.create_purchase(
            supplier_id=999,
            items=[PurchaseItemRequest(product.id, "LOT-1", 2, 100)],
            actor_user_id=manager.id,
        )
    assert exc_info.value.status_code == 404


def test_unknown_product_rolls_back_earlier_items(db_session, make_product, make_supplier, manager):
    product = make_product()
    supplier = make_supplier()

    with pytest.raises(PurchaseNotFoundError):
        purchase_service.create_purchase(
            supplier_id=supplier.id,
            items=[
                PurchaseItemRequest(product.id, "LOT-1", 2, 100),
                PurchaseItemRequest(987654, "LOT-2", 1, 100),
            ],
            actor_user_id=manager.id,
        )

    assert db_session.query(ProductBatch).count() == 0
    assert db_session.query(StockMovement).count() == 0
    assert db_session.query(Purchase).count() == 0
    assert db_session.get(Supplier, supplier.id).balance_cents == 0


def test_empty_purchase_is_rejected(db_session, make_supplier, manager):
    with pytest.raises(PurchaseError):
        purchase_service.create_purchase(supplier_id=make_supplier().id, items=[], actor_user_id=manager.id)


def test_list_purchases_filters_by_supplier(db_session, make_product, make_supplier, manager):
    product = make_product()
    s1 = make_supplier("Alpha")
    s2 = make_supplier("Beta")
    for supplier, lot in ((s1, "A"), (s2, "B"), (s1, "C")):
        purchase_service.create_purchase(
            supplier_id=supplier.id,
            items=[PurchaseItemRequest(product.id, lot, 1, 100)],
            actor_user_id=manager.id,
        )

    rows, total = purchase_service.list_purchases(supplier_id=s1.id)
    assert total == 2
    assert all(p.supplier_id == s1.id for p in rows)
