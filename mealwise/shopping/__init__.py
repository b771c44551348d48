"""Shopping list generation from meal plans."""

from .grocery import GroceryListBuilder, DEFAULT_DEPARTMENTS, DEPARTMENT_ORDER

__all__ = ["GroceryListBuilder", "DEFAULT_DEPARTMENTS", "DEPARTMENT_ORDER"]
