# Overview: Customer and supplier running-balance updates.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Customer, Supplier


def get_customer(customer_id: int) -> Customer | None:
    return db.session.query(Customer).filter_by(id=customer_id).first()


def get_supplier(supplier_id: int) -> Supplier | None:
    return db.session.query(Supplier).filter_by(id=supplier_id).first()


def increment_total_purchased(customer_id: int, amount_cents: int) -> None:
    """
    Add a sale total to the customer's running total.

    Done as a single UPDATE ... SET x = x + n so concurrent checkouts for the
    same customer never lose an increment.
    """
    db.session.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(total_purchased_cents=Customer.total_purchased_cents + amount_cents)
    )


def increment_supplier_balance(supplier_id: int, amount_cents: int) -> None:
    db.session.execute(
        update(Supplier)
        .where(Supplier.id == supplier_id)
        .values(balance_cents=Supplier.balance_cents + amount_cents)
    )
