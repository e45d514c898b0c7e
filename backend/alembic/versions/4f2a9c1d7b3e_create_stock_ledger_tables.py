"""create stock ledger tables (staff, ingredients, pullouts, audit_log)

Revision ID: 4f2a9c1d7b3e
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2a9c1d7b3e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BIGINT = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
QTY = sa.Numeric(12, 2)

STAFF_ROLE = sa.Enum("admin", "manager", "cashier", name="staff_role")
PULLOUT_KIND = sa.Enum("removal", "addition", name="pullout_kind")
PULLOUT_STATUS = sa.Enum("pending", "approved", "rejected", name="pullout_status")


def upgrade() -> None:
    op.create_table(
        "staff",
        sa.Column("id", BIGINT, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", STAFF_ROLE, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "ingredients",
        sa.Column("id", BIGINT, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("unit", sa.String(20), nullable=False, server_default="unit"),
        sa.Column("quantity", QTY, nullable=False, server_default="0"),
        sa.Column("minimum_quantity", QTY, nullable=False, server_default="0"),
        sa.Column("unit_cost", QTY, nullable=False, server_default="0"),
        sa.Column("last_restock_date", sa.Date()),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity >= 0", name="ck_ingredient_quantity_nonneg"),
        sa.CheckConstraint("minimum_quantity >= 0", name="ck_ingredient_minimum_nonneg"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_ingredient_unit_cost_nonneg"),
    )

    op.create_table(
        "pullouts",
        sa.Column("id", BIGINT, primary_key=True),
        sa.Column("ingredient_id", BIGINT, sa.ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("kind", PULLOUT_KIND, nullable=False, server_default="removal"),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("date_of_pullout", sa.Date(), nullable=False),
        sa.Column("status", PULLOUT_STATUS, nullable=False, server_default="pending"),
        sa.Column("requested_by", BIGINT, sa.ForeignKey("staff.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("approved_by", BIGINT, sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_by", BIGINT, sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("applied_delta", QTY, nullable=False, server_default="0"),
        sa.Column("idempotency_key", sa.String(64), unique=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_pullout_qty_pos"),
    )
    op.create_index("ix_pullouts_ingredient_id", "pullouts", ["ingredient_id"])
    op.create_index("ix_pullouts_ingredient_status", "pullouts", ["ingredient_id", "status"])

    op.create_table(
        "audit_log",
        sa.Column("id", BIGINT, primary_key=True),
        sa.Column("actor_id", BIGINT, sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("meta", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_pullouts_ingredient_status", table_name="pullouts")
    op.drop_index("ix_pullouts_ingredient_id", table_name="pullouts")
    op.drop_table("pullouts")
    op.drop_table("ingredients")
    op.drop_table("staff")

    bind = op.get_bind()
    for enum_type in (PULLOUT_STATUS, PULLOUT_KIND, STAFF_ROLE):
        enum_type.drop(bind, checkfirst=True)
