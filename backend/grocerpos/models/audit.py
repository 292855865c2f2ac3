from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from grocerpos.time_utils import to_utc_z, utcnow
from .inventory import StockMovement


class AuditLog(db.Model):
    """
    Append-only audit trail of user actions (CREATE_SALE, CREATE_PURCHASE,
    STOCK_ADJUSTMENT, ...). details holds a small JSON document.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    action = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    details = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }


class AppendOnlyViolation(RuntimeError):
    """Raised when a flush would update or delete an append-only row."""


def _reject_mutation(mapper, connection, target):
    raise AppendOnlyViolation(f"{mapper.class_.__name__} rows are append-only")


for _model in (StockMovement, AuditLog):
    event.listen(_model, "before_update", _reject_mutation)
    event.listen(_model, "before_delete", _reject_mutation)
