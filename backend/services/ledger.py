"""
Ledger pullouts : point d'entrée unique pour toute mutation.

Chaque opération suit le même schéma, dans UNE transaction :
    1. verrou ingrédient (puis pullout) : ordre fixe ingredient -> pullout
    2. rôles + machine à états
    3. validation gate (même diff que la réconciliation)
    4. écriture du record + réconciliation stock + audit
    5. commit (ou rollback complet, voir ledger_transaction)

Les lectures (get / list) ne prennent aucun verrou.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.config import settings
from backend.app.db.models.models_v1 import Ingredient, Pullout
from backend.app.db.models.core_types import (
    AuditAction,
    Permission,
    PulloutKind,
    PulloutStatus,
)
from backend.app.exceptions import ValidationError
from backend.services import approval, pullouts, stock, validation
from backend.services.audit import audit
from backend.services.reconciliation import ledger_transaction, reconcile, signed_effect

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class LedgerResult:
    pullout: Pullout | None
    ingredient: Ingredient


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _policy(pending_holds_stock: bool | None) -> bool:
    if pending_holds_stock is None:
        return settings.PENDING_HOLDS_STOCK
    return pending_holds_stock


def _snapshot(p: Pullout) -> dict:
    return {
        "status": p.status.value,
        "kind": p.kind.value,
        "quantity": str(p.quantity),
        "applied_delta": str(p.applied_delta),
    }


def _lock(db: Session, pullout_id: int) -> tuple[Pullout, Ingredient]:
    # lecture simple pour connaître l'ingrédient, puis verrous dans l'ordre
    ingredient_id = pullouts.get_record(db, pullout_id).ingredient_id
    ingredient = stock.lock_ingredient(db, ingredient_id)
    pullout = pullouts.get_record(db, pullout_id, for_update=True)
    return pullout, ingredient


def _coerce_kind(kind: PulloutKind | str) -> PulloutKind:
    try:
        return PulloutKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown pullout kind {kind!r}") from None


# ---------- CREATE ----------
def create_pullout(
    db: Session,
    *,
    ingredient_id: int,
    quantity: Decimal,
    reason: str,
    date_of_pullout: date | None,
    requested_by: int,
    approved_by: int | None = None,
    kind: PulloutKind | str = PulloutKind.removal,
    idempotency_key: str | None = None,
    pending_holds_stock: bool | None = None,
) -> LedgerResult:
    try:
        return _create_pullout(
            db,
            ingredient_id=ingredient_id,
            quantity=quantity,
            reason=reason,
            date_of_pullout=date_of_pullout,
            requested_by=requested_by,
            approved_by=approved_by,
            kind=_coerce_kind(kind),
            idempotency_key=idempotency_key,
            holds=_policy(pending_holds_stock),
        )
    except IntegrityError:
        # deux créations concurrentes avec la même Idempotency-Key
        if not idempotency_key:
            raise
        existing = pullouts.find_by_idempotency_key(db, idempotency_key)
        if not existing:
            raise
        return LedgerResult(existing, existing.ingredient)


def _create_pullout(
    db: Session,
    *,
    ingredient_id: int,
    quantity: Decimal,
    reason: str,
    date_of_pullout: date | None,
    requested_by: int,
    approved_by: int | None,
    kind: PulloutKind,
    idempotency_key: str | None,
    holds: bool,
) -> LedgerResult:
    with ledger_transaction(db):
        if idempotency_key:
            existing = pullouts.find_by_idempotency_key(db, idempotency_key)
            if existing:
                if (existing.ingredient_id, existing.kind, existing.quantity) != (ingredient_id, kind, quantity):
                    logger.warning(
                        "idempotency key reused with a different payload, returning pullout %s",
                        existing.id,
                        extra={"idempotency_key": idempotency_key},
                    )
                logger.info("idempotent replay of pullout %s", existing.id)
                return LedgerResult(existing, existing.ingredient)

        requester = approval.get_actor(db, requested_by, label="requester")
        approval.require_permission(requester, Permission.create)
        if approved_by is not None:
            approver = approval.get_actor(db, approved_by, label="approver")
            approval.require_permission(approver, Permission.approve)

        validation.check_fields(quantity, reason, date_of_pullout)

        ingredient = stock.lock_ingredient(db, ingredient_id)
        validation.check_capacity(ingredient, kind, quantity, ZERO)
        status = approval.initial_status(approved_by)
        new_applied = signed_effect(status, kind, quantity, pending_holds_stock=holds)
        validation.check_stock(ingredient, ZERO, new_applied)

        pullout = pullouts.create_record(
            db,
            ingredient_id=ingredient.id,
            kind=kind,
            quantity=quantity,
            reason=reason.strip(),
            date_of_pullout=date_of_pullout,
            status=status,
            requested_by=requester.id,
            approved_by=approved_by,
            approved_at=_now() if status == PulloutStatus.approved else None,
            idempotency_key=idempotency_key,
        )
        reconcile(db, pullout, new_applied)
        audit(db, requester.id, AuditAction.create, "pullout", pullout.id, after=_snapshot(pullout))

    logger.info(
        "pullout created",
        extra={"pullout_id": pullout.id, "ingredient_id": ingredient.id, "status": status.value},
    )
    return LedgerResult(pullout, ingredient)


# ---------- EDIT ----------
def edit_pullout(
    db: Session,
    pullout_id: int,
    *,
    actor_id: int,
    quantity: Decimal | None = None,
    reason: str | None = None,
    date_of_pullout: date | None = None,
    ingredient_id: int | None = None,
    pending_holds_stock: bool | None = None,
) -> LedgerResult:
    holds = _policy(pending_holds_stock)
    with ledger_transaction(db):
        pullout, ingredient = _lock(db, pullout_id)
        if ingredient_id is not None and ingredient_id != pullout.ingredient_id:
            raise ValidationError("ingredient_id cannot be changed after creation")

        approval.check_transition("edit", pullout)
        actor = approval.get_actor(db, actor_id)
        approval.require_owner_or_permission(actor, pullout, Permission.edit)

        new_quantity = quantity if quantity is not None else pullout.quantity
        new_reason = reason if reason is not None else pullout.reason
        new_date = date_of_pullout if date_of_pullout is not None else pullout.date_of_pullout
        validation.check_fields(new_quantity, new_reason, new_date)
        if new_quantity > pullout.quantity:
            validation.check_capacity(ingredient, pullout.kind, new_quantity, pullout.applied_delta)

        new_applied = signed_effect(pullout.status, pullout.kind, new_quantity, pending_holds_stock=holds)
        validation.check_stock(ingredient, pullout.applied_delta, new_applied)

        before = _snapshot(pullout)
        pullouts.update_record(
            db,
            pullout,
            quantity=new_quantity,
            reason=new_reason.strip(),
            date_of_pullout=new_date,
        )
        reconcile(db, pullout, new_applied)
        audit(db, actor.id, AuditAction.edit, "pullout", pullout.id, before=before, after=_snapshot(pullout))

    logger.info("pullout edited", extra={"pullout_id": pullout_id, "quantity": str(new_quantity)})
    return LedgerResult(pullout, ingredient)


# ---------- APPROVE ----------
def approve_pullout(
    db: Session,
    pullout_id: int,
    *,
    approver_id: int,
    pending_holds_stock: bool | None = None,
) -> LedgerResult:
    holds = _policy(pending_holds_stock)
    with ledger_transaction(db):
        pullout, ingredient = _lock(db, pullout_id)
        approver = approval.get_actor(db, approver_id, label="approver")
        approval.require_permission(approver, Permission.approve)

        if approval.is_noop("approve", pullout):
            logger.info("pullout %s already approved, nothing to apply", pullout_id)
            return LedgerResult(pullout, ingredient)

        target = approval.check_transition("approve", pullout)
        new_applied = signed_effect(target, pullout.kind, pullout.quantity, pending_holds_stock=holds)
        validation.check_stock(ingredient, pullout.applied_delta, new_applied)

        before = _snapshot(pullout)
        pullouts.update_record(db, pullout, status=target, approved_by=approver.id, approved_at=_now())
        reconcile(db, pullout, new_applied)
        audit(db, approver.id, AuditAction.approve, "pullout", pullout.id, before=before, after=_snapshot(pullout))

    logger.info("pullout approved", extra={"pullout_id": pullout_id, "approver_id": approver_id})
    return LedgerResult(pullout, ingredient)


# ---------- REJECT ----------
def reject_pullout(
    db: Session,
    pullout_id: int,
    *,
    approver_id: int,
    reason: str,
    pending_holds_stock: bool | None = None,
) -> LedgerResult:
    holds = _policy(pending_holds_stock)
    with ledger_transaction(db):
        pullout, ingredient = _lock(db, pullout_id)
        approver = approval.get_actor(db, approver_id, label="approver")
        approval.require_permission(approver, Permission.approve)

        if approval.is_noop("reject", pullout):
            logger.info("pullout %s already rejected, nothing to apply", pullout_id)
            return LedgerResult(pullout, ingredient)

        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")

        target = approval.check_transition("reject", pullout)
        new_applied = signed_effect(target, pullout.kind, pullout.quantity, pending_holds_stock=holds)
        validation.check_stock(ingredient, pullout.applied_delta, new_applied)

        before = _snapshot(pullout)
        pullouts.update_record(
            db,
            pullout,
            status=target,
            rejected_by=approver.id,
            rejected_at=_now(),
            rejection_reason=reason.strip(),
        )
        reconcile(db, pullout, new_applied)
        audit(
            db,
            approver.id,
            AuditAction.reject,
            "pullout",
            pullout.id,
            before=before,
            after=_snapshot(pullout),
            reason=reason.strip(),
        )

    logger.info("pullout rejected", extra={"pullout_id": pullout_id, "approver_id": approver_id})
    return LedgerResult(pullout, ingredient)


# ---------- DELETE ----------
def delete_pullout(db: Session, pullout_id: int, *, actor_id: int) -> LedgerResult:
    with ledger_transaction(db):
        pullout, ingredient = _lock(db, pullout_id)
        actor = approval.get_actor(db, actor_id)
        approval.require_owner_or_permission(actor, pullout, Permission.delete)
        approval.check_transition("delete", pullout)

        # supprimé => effet nul, quel que soit l'état
        validation.check_stock(ingredient, pullout.applied_delta, ZERO)
        before = _snapshot(pullout)
        reconcile(db, pullout, ZERO)
        pullouts.delete_record(db, pullout)
        audit(db, actor.id, AuditAction.delete, "pullout", pullout_id, before=before)

    logger.info("pullout deleted", extra={"pullout_id": pullout_id, "ingredient_id": ingredient.id})
    return LedgerResult(None, ingredient)


# ---------- READ ----------
def get_pullout(db: Session, pullout_id: int) -> Pullout:
    return pullouts.get_record(db, pullout_id)


def list_pullouts(
    db: Session,
    *,
    ingredient_id: int | None = None,
    status: PulloutStatus | None = None,
) -> list[Pullout]:
    return pullouts.list_records(db, ingredient_id=ingredient_id, status=status)
