from __future__ import annotations
from datetime import datetime
from grocerpos.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from .models import PAYMENT_METHODS, PAYMENT_STATUSES


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_LINE_QUANTITY = 1_000_000
MAX_NOTES_LENGTH = 2000

ADJUSTMENT_TYPES = ("ADJUSTMENT", "DAMAGE", "RETURN")


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class SaleItemRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class SaleRequest:
    items: tuple[SaleItemRequest, ...]
    payment_method: str
    customer_id: int | None = None
    discount_cents: int = 0
    notes: str | None = None


@dataclass(frozen=True)
class PurchaseItemRequest:
    product_id: int
    batch_number: str
    quantity: int
    purchase_price_cents: int
    expiration_date: datetime | None = None


@dataclass(frozen=True)
class PurchaseRequest:
    supplier_id: int
    items: tuple[PurchaseItemRequest, ...]
    payment_method: str | None = None
    payment_status: str = "PENDING"
    notes: str | None = None


@dataclass(frozen=True)
class AdjustmentRequest:
    product_id: int
    batch_id: int
    type: str
    quantity: int
    reason: str | None = None


def _coerce_int(value: Any, key: str) -> int:
    """Strict integer coercion - rejects floats, bools and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_datetime(value: Any, key: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _optional_text(payload: dict, key: str, max_length: int) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value or None


def _require_dict(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _reject_unknown(payload: dict, allowed: set[str], where: str = "") -> None:
    for k in payload.keys():
        if k not in allowed:
            raise ValidationError(f"Field not allowed: {where}{k}")


def _require_items(payload: dict) -> list:
    items = payload.get("items")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("At least one item is required")
    return items


def _positive_quantity(value: Any, key: str) -> int:
    quantity = _coerce_int(value, key)
    if quantity <= 0:
        raise ValidationError(f"{key} must be a positive integer")
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError(f"{key} cannot exceed {MAX_LINE_QUANTITY}")
    return quantity


def _money(value: Any, key: str) -> int:
    cents = _coerce_int(value, key)
    if cents < 0:
        raise ValidationError(f"{key} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")
    return cents


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Validate a checkout body into a SaleRequest.

    Shape: {customer_id?, items: [{product_id, quantity>0}] (min 1),
    payment_method: CASH|CARD|UPI|CREDIT|MIXED, discount_cents? >= 0, notes?}
    """
    payload = _require_dict(payload)
    _reject_unknown(payload, {"customer_id", "items", "payment_method", "discount_cents", "notes"})

    raw_items = _require_items(payload)
    items = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        _reject_unknown(raw, {"product_id", "quantity"}, where=f"items[{i}].")
        if "product_id" not in raw or "quantity" not in raw:
            raise ValidationError(f"items[{i}] requires product_id and quantity")
        items.append(SaleItemRequest(
            product_id=_coerce_int(raw["product_id"], f"items[{i}].product_id"),
            quantity=_positive_quantity(raw["quantity"], f"items[{i}].quantity"),
        ))

    payment_method = payload.get("payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    customer_id = payload.get("customer_id")
    if customer_id is not None:
        customer_id = _coerce_int(customer_id, "customer_id")

    discount = payload.get("discount_cents")
    discount_cents = 0 if discount is None else _money(discount, "discount_cents")

    return SaleRequest(
        items=tuple(items),
        payment_method=payment_method,
        customer_id=customer_id,
        discount_cents=discount_cents,
        notes=_optional_text(payload, "notes", MAX_NOTES_LENGTH),
    )


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"supplier_id", "items", "payment_method", "payment_status", "notes"})

    if payload.get("supplier_id") is None:
        raise ValidationError("Supplier is required")
    supplier_id = _coerce_int(payload["supplier_id"], "supplier_id")

    raw_items = _require_items(payload)
    items = []
    allowed = {"product_id", "batch_number", "quantity", "purchase_price_cents", "expiration_date"}
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        _reject_unknown(raw, allowed, where=f"items[{i}].")
        missing = [k for k in ("product_id", "batch_number", "quantity", "purchase_price_cents") if k not in raw]
        if missing:
            raise ValidationError(f"items[{i}] missing required fields: {', '.join(missing)}")
        batch_number = raw["batch_number"]
        if not isinstance(batch_number, str) or not batch_number.strip():
            raise ValidationError(f"items[{i}].batch_number cannot be blank")
        if len(batch_number.strip()) > 64:
            raise ValidationError(f"items[{i}].batch_number exceeds max length 64")
        items.append(PurchaseItemRequest(
            product_id=_coerce_int(raw["product_id"], f"items[{i}].product_id"),
            batch_number=batch_number.strip(),
            quantity=_positive_quantity(raw["quantity"], f"items[{i}].quantity"),
            purchase_price_cents=_money(raw["purchase_price_cents"], f"items[{i}].purchase_price_cents"),
            expiration_date=_coerce_datetime(raw.get("expiration_date"), f"items[{i}].expiration_date"),
        ))

    payment_method = payload.get("payment_method")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    payment_status = payload.get("payment_status") or "PENDING"
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")

    return PurchaseRequest(
        supplier_id=supplier_id,
        items=tuple(items),
        payment_method=payment_method,
        payment_status=payment_status,
        notes=_optional_text(payload, "notes", MAX_NOTES_LENGTH),
    )


def parse_adjustment_request(payload: Any) -> AdjustmentRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"product_id", "batch_id", "type", "quantity", "reason"})

    missing = [k for k in ("product_id", "batch_id", "type", "quantity") if payload.get(k) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    movement_type = payload["type"]
    if movement_type not in ADJUSTMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ADJUSTMENT_TYPES)}")

    quantity = _coerce_int(payload["quantity"], "quantity")
    if quantity == 0:
        raise ValidationError("quantity must be non-zero")

    return AdjustmentRequest(
        product_id=_coerce_int(payload["product_id"], "product_id"),
        batch_id=_coerce_int(payload["batch_id"], "batch_id"),
        type=movement_type,
        quantity=quantity,
        reason=_optional_text(payload, "reason", 255),
    )


def parse_pagination(args, *, default_limit: int = 50, max_limit: int = 200) -> tuple[int, int]:
    """page >= 1, 1 <= limit <= max_limit, from query-string args."""
    page = _coerce_int(args.get("page", 1), "page")
    limit = _coerce_int(args.get("limit", default_limit), "limit")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return page, limit


def pagination_block(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": (total + limit - 1) // limit,
    }


def parse_bool_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def parse_optional_int(args, key: str) -> int | None:
    value = args.get(key)
    if value is None or value == "":
        return None
    return _coerce_int(value, key)


def parse_optional_datetime(args, key: str) -> datetime | None:
    return _coerce_datetime(args.get(key) or None, key)
