from __future__ import annotations

from datetime import datetime, date, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base, BigIntPK
from backend.app.db.models.core_types import StaffRole, PulloutStatus, PulloutKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


QTY = Numeric(12, 2)


# ---------- STAFF ----------
class Staff(Base):
    __tablename__ = "staff"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[StaffRole] = mapped_column(Enum(StaffRole, name="staff_role"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


# ---------- INVENTORY ----------
class Ingredient(Base):
    __tablename__ = "ingredients"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="unit", nullable=False)

    # quantity n'est JAMAIS écrasé : uniquement ajusté par delta (services.stock)
    quantity: Mapped[Decimal] = mapped_column(QTY, default=Decimal("0"), nullable=False)
    minimum_quantity: Mapped[Decimal] = mapped_column(QTY, default=Decimal("0"), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(QTY, default=Decimal("0"), nullable=False)
    last_restock_date: Mapped[date | None] = mapped_column(Date)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    pullouts: Mapped[list["Pullout"]] = relationship(back_populates="ingredient")

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_ingredient_quantity_nonneg"),
        CheckConstraint("minimum_quantity >= 0", name="ck_ingredient_minimum_nonneg"),
        CheckConstraint("unit_cost >= 0", name="ck_ingredient_unit_cost_nonneg"),
    )


class Pullout(Base):
    __tablename__ = "pullouts"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    ingredient_id: Mapped[int] = mapped_column(
        ForeignKey("ingredients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    kind: Mapped[PulloutKind] = mapped_column(
        Enum(PulloutKind, name="pullout_kind"),
        default=PulloutKind.removal,
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    date_of_pullout: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PulloutStatus] = mapped_column(
        Enum(PulloutStatus, name="pullout_status"),
        default=PulloutStatus.pending,
        nullable=False,
    )
    requested_by: Mapped[int] = mapped_column(ForeignKey("staff.id", ondelete="RESTRICT"), nullable=False)
    approved_by: Mapped[int | None] = mapped_column(ForeignKey("staff.id", ondelete="SET NULL"))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_by: Mapped[int | None] = mapped_column(ForeignKey("staff.id", ondelete="SET NULL"))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    # Ce qui a déjà été retiré du stock pour ce pullout (>0 retrait, <0 ajout)
    applied_delta: Mapped[Decimal] = mapped_column(QTY, default=Decimal("0"), nullable=False)

    idempotency_key: Mapped[str | None] = mapped_column(String(64), unique=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    ingredient: Mapped[Ingredient] = relationship(back_populates="pullouts")

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_pullout_qty_pos"),
        Index("ix_pullouts_ingredient_status", "ingredient_id", "status"),
    )


# ---------- AUDIT ----------
class AuditLog(Base):
    __tablename__ = "audit_log"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    actor_id: Mapped[int | None] = mapped_column(ForeignKey("staff.id", ondelete="SET NULL"))
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    meta: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_entity", "entity_type", "entity_id"),)
