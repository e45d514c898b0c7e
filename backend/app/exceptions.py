"""
Erreurs typées du ledger de stock.

Chaque erreur porte :
    - un ``code`` stable (lisible par le front / les scripts)
    - un ``status_code`` HTTP, utilisé par le handler FastAPI

Toutes sont locales à une opération : aucune n'est fatale au process,
et aucune n'est retentée automatiquement par le core.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    code = "VALIDATION_ERROR"
    status_code = 422


class InsufficientStockError(LedgerError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, ingredient_id: int, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient stock for ingredient {ingredient_id} "
            f"(available={available}, requested={requested})"
        )
        self.ingredient_id = ingredient_id
        self.available = available
        self.requested = requested


class InvalidTransitionError(LedgerError):
    code = "INVALID_TRANSITION"
    status_code = 409


class UnreconciledPulloutError(InvalidTransitionError):
    code = "UNRECONCILED_PULLOUT"


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class IngredientNotFoundError(NotFoundError):
    code = "INGREDIENT_NOT_FOUND"

    def __init__(self, ingredient_id: int):
        super().__init__(f"Ingredient {ingredient_id} not found")
        self.ingredient_id = ingredient_id


class RecordNotFoundError(NotFoundError):
    code = "PULLOUT_NOT_FOUND"

    def __init__(self, pullout_id: int):
        super().__init__(f"Pullout {pullout_id} not found")
        self.pullout_id = pullout_id


class StaffNotFoundError(NotFoundError):
    code = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: int):
        super().__init__(f"Staff member {staff_id} not found")
        self.staff_id = staff_id


class PermissionDeniedError(LedgerError):
    code = "PERMISSION_DENIED"
    status_code = 403


class ConcurrencyConflictError(LedgerError):
    """Lost update détecté (row version) : le caller doit relire et rejouer."""

    code = "CONCURRENCY_CONFLICT"
    status_code = 409
