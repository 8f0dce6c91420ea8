"""Domain errors for inventory, dish, and assistant operations."""


class KitchenError(Exception):
    """Base error for kitchen inventory operations."""


class InvalidInputError(KitchenError):
    """Raised when user input is empty or malformed."""


class NotFoundError(KitchenError):
    """Raised when a referenced record does not exist."""


class DishNotFoundError(NotFoundError):
    """Raised when a dish name or id does not resolve to a dish."""


class IngredientNotFoundError(NotFoundError):
    """Raised when an ingredient id does not resolve to a stock record."""


class DuplicateDishError(KitchenError):
    """Raised when a custom dish name collides with an existing dish."""


class TransactionAbortedError(KitchenError):
    """Raised when the user declines a destructive confirmation."""


class InsufficientIngredientsError(KitchenError):
    """Raised when current stock cannot cover a dish's requirements."""

    def __init__(self, dish_name: str, missing: list) -> None:
        self.dish_name = dish_name
        self.missing = missing
        details = "、".join(f"{item.name} {item.needed:g}{item.unit}" for item in missing)
        super().__init__(f"Not enough ingredients for {dish_name}: {details}")


class AssistantError(KitchenError):
    """Raised when the AI assistant request fails or returns garbage."""
