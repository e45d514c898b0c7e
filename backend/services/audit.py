from __future__ import annotations

import json

from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import AuditLog
from backend.app.db.models.core_types import AuditAction


def audit(
    db: Session,
    actor_id: int | None,
    action: AuditAction,
    entity_type: str,
    entity_id: int | str,
    before: dict | None = None,
    after: dict | None = None,
    reason: str | None = None,
) -> AuditLog:
    """Ajoute une ligne d'audit dans la transaction courante (pas de commit)."""
    meta = {}
    if before is not None:
        meta["before"] = before
    if after is not None:
        meta["after"] = after
    if reason:
        meta["reason"] = reason

    entry = AuditLog(
        actor_id=actor_id,
        action=action.value,
        entity_type=entity_type,
        entity_id=str(entity_id),
        meta=json.dumps(meta, default=str) if meta else None,
    )
    db.add(entry)
    return entry
