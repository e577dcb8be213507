from __future__ import annotations


class EmptyInputError(ValueError):
    """Precondition failure: the estimator was called without anything to estimate."""


class EmptyLineItemListError(EmptyInputError):
    def __init__(self, message: str = "La lista de ítems está vacía") -> None:
        super().__init__(message)


class NoStagesOnCriticalItemError(EmptyInputError):
    """The selected critical item has no production plan defined.

    Distinct from a plan whose stages all have zero duration, which is valid.
    """

    def __init__(self, product_id: str | None = None) -> None:
        self.product_id = product_id
        label = product_id or "?"
        super().__init__(f"El producto {label} no tiene etapas de fabricación definidas")
