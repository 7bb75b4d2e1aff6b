"""
Recipe catalog package.
"""

from .models import Bundle, CatalogSnapshot, DecoRule, IngredientRequirement, PlateType, Recipe, Step
from .manager import RecipeCatalog

__all__ = [
    "RecipeCatalog",
    "CatalogSnapshot",
    "Recipe",
    "Bundle",
    "Step",
    "IngredientRequirement",
    "DecoRule",
    "PlateType"
]
