"""Domain exceptions."""


class StoreError(RuntimeError):
    """Raised when the remote store rejects or fails a request."""


class DataIntegrityError(ValueError):
    """Raised when stored rows violate the expected schema."""


class UnknownMealCategoryError(ValueError):
    """Raised when a meal category label matches no known meal."""

    def __init__(self, label: object) -> None:
        super().__init__(f"Unknown meal category: {label!r}")
        self.label = label


class FoodNotFoundError(LookupError):
    """Raised when a referenced food bank row does not exist."""
