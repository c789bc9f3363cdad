from .intake_view import IntakeView
from .products_view import ProductsView

__all__ = ["IntakeView", "ProductsView"]
