import inspect
from datetime import date
from decimal import Decimal

import pytest

from backend.app import config
from backend.app.db.models.models_v1 import Pullout
from backend.app.db.models.core_types import PulloutKind, PulloutStatus
from backend.app.exceptions import InsufficientStockError
from backend.services.reconciliation import (
    ledger_transaction,
    reconcile,
    signed_effect,
)

Q = Decimal("7.25")


@pytest.mark.parametrize(
    "status, kind, holds, expected",
    [
        (PulloutStatus.pending, PulloutKind.removal, False, Decimal("0")),
        (PulloutStatus.pending, PulloutKind.removal, True, Q),
        (PulloutStatus.approved, PulloutKind.removal, False, Q),
        (PulloutStatus.approved, PulloutKind.addition, False, -Q),
        (PulloutStatus.pending, PulloutKind.addition, True, -Q),
        (PulloutStatus.rejected, PulloutKind.removal, True, Decimal("0")),
        (None, PulloutKind.removal, True, Decimal("0")),
    ],
)
def test_signed_effect(status, kind, holds, expected):
    assert signed_effect(status, kind, Q, pending_holds_stock=holds) == expected


def _pullout(db_session, ingredient_id, requested_by, quantity="10"):
    p = Pullout(
        ingredient_id=ingredient_id,
        kind=PulloutKind.removal,
        quantity=Decimal(quantity),
        reason="Spoiled",
        date_of_pullout=date(2026, 10, 17),
        status=PulloutStatus.approved,
        requested_by=requested_by,
        applied_delta=Decimal("0"),
    )
    db_session.add(p)
    db_session.flush()
    return p


def test_reconcile_only_applies_the_difference(db_session, make_ingredient, staff, stock_of):
    ing_id = make_ingredient(quantity="20")

    with ledger_transaction(db_session):
        p = _pullout(db_session, ing_id, staff["admin"])
        assert reconcile(db_session, p, Decimal("10")) == Decimal("10")
    assert stock_of(ing_id) == Decimal("10")

    # même état rejoué : rien à appliquer
    with ledger_transaction(db_session):
        assert reconcile(db_session, p, Decimal("10")) == Decimal("0")
    assert stock_of(ing_id) == Decimal("10")

    with ledger_transaction(db_session):
        assert reconcile(db_session, p, Decimal("6")) == Decimal("-4")
    assert stock_of(ing_id) == Decimal("14")
    assert p.applied_delta == Decimal("6")


def test_ledger_transaction_rolls_back_everything(db_session, make_ingredient, staff, stock_of):
    """
    GIVEN un stock de 5
    WHEN un pullout est inséré puis la réconciliation échoue
    THEN ni le pullout ni le stock ne sont persistés
    """
    ing_id = make_ingredient(quantity="5")

    with pytest.raises(InsufficientStockError):
        with ledger_transaction(db_session):
            p = _pullout(db_session, ing_id, staff["admin"], quantity="8")
            reconcile(db_session, p, Decimal("8"))

    assert stock_of(ing_id) == Decimal("5")
    assert db_session.query(Pullout).count() == 0


def test_default_pending_policy_comes_from_config():
    assert config.PENDING_HOLDS_STOCK_DEFAULT is False
    default = inspect.signature(signed_effect).parameters["pending_holds_stock"].default
    assert default is config.PENDING_HOLDS_STOCK_DEFAULT
    assert signed_effect(PulloutStatus.pending, PulloutKind.removal, Q) == Decimal("0")
