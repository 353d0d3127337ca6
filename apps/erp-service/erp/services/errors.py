"""Exceptions raised by the service layer and translated by the routers."""


class ConflictError(ValueError):
    """The operation clashes with existing state (HTTP 409)."""


class InsufficientStockError(ConflictError):
    """A consumption would take a material's stock below zero."""

    def __init__(self, material_name: str, required: float, available: float):
        self.material_name = material_name
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for {material_name}: required {required:g}, available {available:g}"
        )


class InvalidTransitionError(ValueError):
    """A status change not permitted by the lifecycle (HTTP 400)."""
