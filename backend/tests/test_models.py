"""Append-only guards and serialization."""

import pytest

from grocerpos.models import AppendOnlyViolation, AuditLog, StockMovement
from grocerpos.services import movement_log
from grocerpos.services.audit_service import record_audit


def test_stock_movements_cannot_be_updated_or_deleted(db_session, make_product):
    product = make_product()
    movement = movement_log.append_movement(product_id=product.id, movement_type="ADJUSTMENT", quantity=3)
    db_session.commit()

    movement.quantity = 30
    with pytest.raises(AppendOnlyViolation):
        db_session.commit()
    db_session.rollback()

    db_session.delete(db_session.get(StockMovement, movement.id))
    with pytest.raises(AppendOnlyViolation):
        db_session.commit()
    db_session.rollback()

    assert db_session.get(StockMovement, movement.id).quantity == 3


def test_audit_log_cannot_be_updated(db_session):
    entry = record_audit(actor_user_id=None, action="TEST", entity_type="Thing", entity_id=1, details={"b": 2, "a": 1})
    db_session.commit()
    assert entry.details == '{"a": 1, "b": 2}'

    entry.action = "TAMPERED"
    with pytest.raises(AppendOnlyViolation):
        db_session.commit()
    db_session.rollback()
    assert db_session.get(AuditLog, entry.id).action == "TEST"


def test_movement_validation(db_session, make_product):
    product = make_product()
    with pytest.raises(ValueError):
        movement_log.append_movement(product_id=product.id, movement_type="THEFT", quantity=1)
    with pytest.raises(ValueError):
        movement_log.append_movement(product_id=product.id, movement_type="SALE", quantity=0)


def test_batch_to_dict_uses_utc_z(db_session, make_product, make_batch):
    batch = make_batch(make_product(), 3, expires_in_days=1)
    data = batch.to_dict()
    assert data["expiration_date"].endswith("Z")
    assert data["created_at"].endswith("Z")


def test_date_only_strings_mean_midnight_utc():
    from grocerpos.time_utils import parse_iso_datetime, to_utc_z

    assert to_utc_z(parse_iso_datetime("2031-01-31")) == "2031-01-31T00:00:00Z"
    assert to_utc_z(parse_iso_datetime("2031-01-31T10:00:00+02:00")) == "2031-01-31T08:00:00Z"
    assert parse_iso_datetime("  ") is None
    with pytest.raises(ValueError):
        parse_iso_datetime("yesterday")
