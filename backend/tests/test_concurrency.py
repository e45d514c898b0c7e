from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from backend.app.db.base import Base
from backend.app.db.models.core_types import StaffRole
from backend.app.db.models.models_v1 import Ingredient, Pullout, Staff
from backend.app.exceptions import ConcurrencyConflictError
from backend.services import ledger
from backend.services.reconciliation import ledger_transaction
from backend.services.stock import adjust_quantity


@pytest.fixture
def two_terminals(tmp_path):
    """Deux sessions sur une même base fichier (deux postes de caisse)."""
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    setup = factory()
    ing = Ingredient(name="Whole milk", unit="L", quantity=Decimal("20"))
    setup.add(ing)
    setup.commit()
    ing_id = ing.id
    setup.close()

    a, b = factory(), factory()
    try:
        yield a, b, ing_id
    finally:
        a.close()
        b.close()
        engine.dispose()


def test_stale_write_is_reported_as_conflict(two_terminals):
    """
    GIVEN le poste A a lu l'ingrédient (version 1)
    AND le poste B a ajusté le stock entre-temps (version 2)
    WHEN A écrit à partir de sa lecture périmée
    THEN ConcurrencyConflictError, et seule l'écriture de B est conservée
    """
    a, b, ing_id = two_terminals

    # ---------- ARRANGE ----------
    stale = a.get(Ingredient, ing_id)
    assert stale.quantity == Decimal("20")

    with ledger_transaction(b):
        adjust_quantity(b, ing_id, Decimal("-5"))

    # ---------- ACT ----------
    with pytest.raises(ConcurrencyConflictError):
        with ledger_transaction(a):
            stale.quantity = stale.quantity - Decimal("3")

    # ---------- ASSERT ----------
    b.expire_all()
    assert b.get(Ingredient, ing_id).quantity == Decimal("15")


def test_retry_from_fresh_state_succeeds(two_terminals):
    a, b, ing_id = two_terminals
    stale = a.get(Ingredient, ing_id)

    with ledger_transaction(b):
        adjust_quantity(b, ing_id, Decimal("-5"))

    with pytest.raises(ConcurrencyConflictError):
        with ledger_transaction(a):
            stale.quantity = stale.quantity - Decimal("3")

    # le caller relit puis rejoue l'opération complète
    with ledger_transaction(a):
        adjust_quantity(a, ing_id, Decimal("-3"))

    b.expire_all()
    assert b.get(Ingredient, ing_id).quantity == Decimal("12")


@pytest.fixture
def two_terminals_with_pullout(tmp_path, today):
    """Deux postes + un pullout approuvé de 5 sur un stock de 20 (reste 15)."""
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    setup = factory()
    admin = Staff(name="ADMIN", role=StaffRole.admin)
    ing = Ingredient(name="Whole milk", unit="L", quantity=Decimal("20"))
    setup.add_all([admin, ing])
    setup.commit()
    admin_id, ing_id = admin.id, ing.id
    pullout_id = ledger.create_pullout(
        setup,
        ingredient_id=ing_id,
        quantity=Decimal("5"),
        reason="Spoiled",
        date_of_pullout=today,
        requested_by=admin_id,
        approved_by=admin_id,
        pending_holds_stock=False,
    ).pullout.id
    setup.close()

    a, b = factory(), factory()
    try:
        yield a, b, ing_id, pullout_id, admin_id
    finally:
        a.close()
        b.close()
        engine.dispose()


def test_stale_ledger_edit_keeps_stock_consistent(two_terminals_with_pullout):
    """
    GIVEN le poste A a lu le pullout (applied_delta 5)
    AND le poste B l'a édité à 2 via le ledger (stock 18)
    WHEN A l'édite à 4 via le ledger
    THEN A repart de l'état à jour (ou conflit puis retry)
    AND stock == 20 - somme(applied_delta)
    """
    a, b, ing_id, pullout_id, admin_id = two_terminals_with_pullout

    # ---------- ARRANGE ----------
    stale = a.get(Pullout, pullout_id)
    assert stale.applied_delta == Decimal("5")

    ledger.edit_pullout(b, pullout_id, actor_id=admin_id, quantity=Decimal("2"), pending_holds_stock=False)

    # ---------- ACT ----------
    try:
        ledger.edit_pullout(a, pullout_id, actor_id=admin_id, quantity=Decimal("4"), pending_holds_stock=False)
    except ConcurrencyConflictError:
        ledger.edit_pullout(a, pullout_id, actor_id=admin_id, quantity=Decimal("4"), pending_holds_stock=False)

    # ---------- ASSERT ----------
    b.expire_all()
    applied = b.scalar(select(func.sum(Pullout.applied_delta)))
    on_hand = b.get(Ingredient, ing_id).quantity
    assert Decimal(str(applied)) == Decimal("4")
    assert on_hand == Decimal("16")
    assert on_hand == Decimal("20") - Decimal(str(applied))
