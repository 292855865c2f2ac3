from __future__ import annotations

from ..extensions import db
from grocerpos.time_utils import to_utc_z


class Purchase(db.Model):
    """Supplier purchase (goods received into batches)."""
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_purchases_invoice_number"),
        db.Index("ix_purchases_supplier_created", "supplier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="PENDING")

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        order_by="PurchaseLine.id",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "supplier_id": self.supplier_id,
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False)

    batch_number = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    expiration_date = db.Column(db.DateTime(timezone=True), nullable=True)
    line_total_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "batch_number": self.batch_number,
            "quantity": self.quantity,
            "purchase_price_cents": self.purchase_price_cents,
            "expiration_date": to_utc_z(self.expiration_date) if self.expiration_date else None,
            "line_total_cents": self.line_total_cents,
        }
