from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import Staff, Ingredient
from backend.app.db.models.core_types import StaffRole

STAFF = [
    ("ADMIN", StaffRole.admin),
    ("MANAGER", StaffRole.manager),
    ("CASHIER", StaffRole.cashier),
]

# name, unit, quantity, minimum, unit_cost
INGREDIENTS = [
    ("Espresso beans", "kg", Decimal("20.00"), Decimal("5.00"), Decimal("18.50")),
    ("Whole milk", "L", Decimal("40.00"), Decimal("10.00"), Decimal("1.20")),
    ("Vanilla syrup", "bottle", Decimal("6.00"), Decimal("2.00"), Decimal("7.75")),
    ("Paper cups 12oz", "pcs", Decimal("500.00"), Decimal("100.00"), Decimal("0.08")),
]


def run_seed():
    db = SessionLocal()
    try:
        # 1) Un membre du staff par rôle
        for name, role in STAFF:
            if not db.scalar(select(Staff).where(Staff.name == name)):
                db.add(Staff(name=name, role=role, active=True))

        # 2) Ingrédients de démo (stock d'ouverture, pas via pullout)
        for name, unit, qty, minimum, cost in INGREDIENTS:
            if not db.scalar(select(Ingredient).where(Ingredient.name == name)):
                db.add(
                    Ingredient(
                        name=name,
                        unit=unit,
                        quantity=qty,
                        minimum_quantity=minimum,
                        unit_cost=cost,
                    )
                )
        db.commit()

        print(f"SEED OK: staff={len(STAFF)}, ingredients={len(INGREDIENTS)}")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
