# Overview: Audit-log sink shared by sales, purchases and adjustments.

from __future__ import annotations

import json

from ..extensions import db
from ..models import AuditLog


def record_audit(
    *,
    actor_user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    details: dict | None = None,
) -> AuditLog:
    """
    Append an audit entry in the caller's transaction.

    - No domain logic here.
    - No deletes/updates of existing entries.
    """
    entry = AuditLog(
        user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=json.dumps(details, sort_keys=True) if details is not None else None,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
