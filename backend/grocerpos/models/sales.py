from __future__ import annotations

from ..extensions import db
from grocerpos.time_utils import to_utc_z


PAYMENT_METHODS = ("CASH", "CARD", "UPI", "CREDIT", "MIXED")
PAYMENT_STATUSES = ("PENDING", "COMPLETED", "PARTIAL", "CANCELLED")


class Sale(db.Model):
    """
    Immutable checkout record.

    Created once, with all of its lines, inside the checkout transaction and
    never updated afterwards. All amounts are integer cents and satisfy
    total_cents == subtotal_cents + tax_cents - discount_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "INV261018K3Z9QA")
    invoice_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="COMPLETED")

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.line_number",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
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


class SaleLine(db.Model):
    """
    One (sale, batch) allocation slice.

    A requested item that spans several batches produces several lines for
    the same product, in allocation order (line_number).
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    # quantity x batch purchase price
    cost_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")
    batch = db.relationship("ProductBatch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "batch_id": self.batch_id,
            "batch_number": self.batch.batch_number if self.batch else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "cost_cents": self.cost_cents,
        }
