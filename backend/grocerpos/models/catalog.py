from __future__ import annotations

from ..extensions import db
from grocerpos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product catalog entry.

    Selling price and tax rate are read at sale time, never snapshotted onto
    batches. A product with selling_price_cents <= 0 cannot be sold.

    Stock is NOT stored here: current quantity is always the sum of the
    product's batches (see ProductBatch).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(16), nullable=False, default="pcs")  # pcs, kg, l, pack

    # Authoritative storage in cents
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)
    # Last purchase cost seen on a receive (informational; COGS uses batch cost)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Tax rate in basis points (10% == 1000)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    max_stock_level = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "unit": self.unit,
            "selling_price_cents": self.selling_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(db.Model):
    """
    Customer ledger entry.

    total_purchased_cents is an increment-only running total maintained by
    the checkout transaction.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    total_purchased_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "total_purchased_cents": self.total_purchased_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(db.Model):
    """Supplier ledger entry. balance_cents is what we owe on unpaid purchases."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
        }
