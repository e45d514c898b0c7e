"""
Machine à états d'approbation des pullouts + contrôle des rôles.

    create  -> pending | approved (approbateur fourni à la création)
    approve : pending -> approved          (approved -> approved : no-op)
    reject  : pending | approved -> rejected (rejected -> rejected : no-op)
    edit    : pending | approved (pas de changement d'état)
    delete  : tout état

Aucune fonction ici n'écrit en base : on décide, le ledger applique.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Pullout, Staff
from backend.app.db.models.core_types import Permission, PulloutStatus, StaffRole
from backend.app.exceptions import (
    InvalidTransitionError,
    PermissionDeniedError,
    StaffNotFoundError,
)

logger = logging.getLogger(__name__)

ROLE_PERMISSIONS: dict[StaffRole, frozenset[Permission]] = {
    StaffRole.admin: frozenset(Permission),
    StaffRole.manager: frozenset({Permission.view, Permission.create, Permission.approve}),
    StaffRole.cashier: frozenset({Permission.view, Permission.create}),
}

# action -> états de départ autorisés
TRANSITIONS: dict[str, frozenset[PulloutStatus]] = {
    "approve": frozenset({PulloutStatus.pending}),
    "reject": frozenset({PulloutStatus.pending, PulloutStatus.approved}),
    "edit": frozenset({PulloutStatus.pending, PulloutStatus.approved}),
    "delete": frozenset(PulloutStatus),
}

# action -> état d'arrivée
TARGETS: dict[str, PulloutStatus] = {
    "approve": PulloutStatus.approved,
    "reject": PulloutStatus.rejected,
}


def initial_status(approved_by: int | None) -> PulloutStatus:
    return PulloutStatus.approved if approved_by is not None else PulloutStatus.pending


def is_noop(action: str, pullout: Pullout) -> bool:
    """Rejouer l'état terminal déjà atteint (approve deux fois, etc.)."""
    return TARGETS.get(action) == pullout.status


def check_transition(action: str, pullout: Pullout) -> PulloutStatus:
    """Retourne l'état cible ; lève InvalidTransitionError si interdit."""
    allowed = TRANSITIONS[action]
    if pullout.status not in allowed:
        logger.warning(
            "invalid pullout transition",
            extra={"pullout_id": pullout.id, "action": action, "status": pullout.status.value},
        )
        raise InvalidTransitionError(
            f"Cannot {action} pullout {pullout.id}: it is already {pullout.status.value}"
        )
    return TARGETS.get(action, pullout.status)


# ---------- ROLES ----------
def get_actor(db: Session, staff_id: int | None, *, label: str = "actor") -> Staff:
    if staff_id is None:
        raise PermissionDeniedError(f"An {label} identity is required")
    staff = db.get(Staff, staff_id)
    if not staff:
        raise StaffNotFoundError(staff_id)
    if not staff.active:
        raise PermissionDeniedError(f"Staff member {staff_id} is inactive")
    return staff


def has_permission(staff: Staff, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(staff.role, frozenset())


def require_permission(staff: Staff, permission: Permission) -> None:
    if not has_permission(staff, permission):
        raise PermissionDeniedError(f"Missing permission: {permission.value}")


def require_owner_or_permission(staff: Staff, pullout: Pullout, permission: Permission) -> None:
    """Le demandeur garde la main sur SON pullout tant qu'il est pending."""
    if pullout.requested_by == staff.id and pullout.status == PulloutStatus.pending:
        return
    require_permission(staff, permission)
