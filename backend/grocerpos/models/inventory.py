from __future__ import annotations

from ..extensions import db
from grocerpos.time_utils import to_utc_z, utcnow


MOVEMENT_TYPES = ("SALE", "PURCHASE", "ADJUSTMENT", "DAMAGE", "RETURN")


class ProductBatch(db.Model):
    """
    A quantity of one product received at one purchase price.

    INVARIANTS:
    - (product_id, batch_number) is unique.
    - quantity >= 0 (also enforced by a CHECK constraint).
    - Exhausted batches (quantity == 0) are kept for history, never deleted.

    created_at uses a Python-side default with microsecond resolution: it is
    the FIFO tie-break between batches sharing an expiration date, and the
    database CURRENT_TIMESTAMP only has second resolution on SQLite.
    """
    __tablename__ = "product_batches"
    __table_args__ = (
        db.UniqueConstraint("product_id", "batch_number", name="uq_batches_product_batch_number"),
        db.CheckConstraint("quantity >= 0", name="ck_batches_quantity_non_negative"),
        db.Index("ix_batches_product_expiration", "product_id", "expiration_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    batch_number = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)

    expiration_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_expired = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<ProductBatch id={self.id} product_id={self.product_id} "
            f"batch_number={self.batch_number!r} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "batch_number": self.batch_number,
            "quantity": self.quantity,
            "purchase_price_cents": self.purchase_price_cents,
            "expiration_date": to_utc_z(self.expiration_date) if self.expiration_date else None,
            "is_expired": self.is_expired,
            "created_at": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Append-only record of every inventory-affecting event.

    Never used to derive current stock (batches are authoritative); it is the
    audit/reconciliation view. Rows are never updated or deleted, see
    models/audit.py for the flush guard.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # SALE, PURCHASE, ADJUSTMENT, DAMAGE, RETURN
    type = db.Column(db.String(16), nullable=False, index=True)

    # Signed: negative for stock out, positive for stock in
    quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
