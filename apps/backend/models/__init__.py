"""
Model exports.

Tables live in domain modules:
- catalog.py: Category, Subcategory and Product
"""

from models.catalog import (
    Category,
    Subcategory,
    Product,
)

__all__ = [
    "Category",
    "Subcategory",
    "Product",
]
