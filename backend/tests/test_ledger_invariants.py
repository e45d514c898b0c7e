import random
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from backend.app.db.models.models_v1 import Pullout
from backend.app.db.models.core_types import PulloutKind
from backend.app.exceptions import LedgerError
from backend.services import ledger

OPENING = Decimal("25")


@pytest.mark.parametrize("seed", [1, 7, 42])
@pytest.mark.parametrize("holds", [False, True])
def test_random_sequences_keep_the_ledger_consistent(db_session, staff, make_ingredient, stock_of, today, seed, holds):
    """
    Séquence aléatoire create / edit / approve / reject / delete.

    Après chaque opération (réussie ou refusée) :
        - quantity >= 0
        - quantity == stock d'ouverture - somme des applied_delta
    """
    rng = random.Random(seed)
    ing_id = make_ingredient(quantity=str(OPENING))
    actors = [staff["admin"], staff["manager"], staff["cashier"]]
    live: list[int] = []

    def qty():
        return Decimal(rng.randint(1, 1500)) / Decimal(100)

    for _ in range(60):
        op = rng.choice(["create", "create", "edit", "approve", "reject", "delete"])
        try:
            if op == "create" or not live:
                result = ledger.create_pullout(
                    db_session,
                    ingredient_id=ing_id,
                    quantity=qty(),
                    reason="random",
                    date_of_pullout=today,
                    requested_by=rng.choice(actors),
                    approved_by=staff["manager"] if rng.random() < 0.3 else None,
                    kind=PulloutKind.addition if rng.random() < 0.2 else PulloutKind.removal,
                    pending_holds_stock=holds,
                )
                live.append(result.pullout.id)
            elif op == "edit":
                ledger.edit_pullout(
                    db_session, rng.choice(live), actor_id=staff["admin"], quantity=qty(), pending_holds_stock=holds
                )
            elif op == "approve":
                ledger.approve_pullout(
                    db_session, rng.choice(live), approver_id=staff["manager"], pending_holds_stock=holds
                )
            elif op == "reject":
                ledger.reject_pullout(
                    db_session, rng.choice(live), approver_id=staff["admin"], reason="random", pending_holds_stock=holds
                )
            else:
                target = rng.choice(live)
                ledger.delete_pullout(db_session, target, actor_id=staff["admin"])
                live.remove(target)
        except LedgerError:
            pass

        on_hand = stock_of(ing_id)
        applied = db_session.scalar(select(func.coalesce(func.sum(Pullout.applied_delta), 0)))
        assert on_hand >= 0
        assert on_hand == OPENING - Decimal(str(applied))
