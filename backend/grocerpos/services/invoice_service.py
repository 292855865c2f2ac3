from __future__ import annotations

import secrets
import string

from grocerpos.time_utils import utcnow

_ALPHABET = string.digits + string.ascii_uppercase


def generate_invoice_number(prefix: str) -> str:
    """
    <prefix><yy><mm><dd><random6>, e.g. INV261018K3Z9QA.

    Not checked against existing invoices; the unique constraint on the
    invoice column is the backstop for the (negligible) collision case.
    """
    now = utcnow()
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{prefix}{now:%y%m%d}{suffix}"
