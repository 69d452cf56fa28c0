# backend/services/cart.py
"""In-memory POS cart.

The cart pairs a product snapshot, taken when the product is first added,
with a requested quantity. Mutations that would push a line above the
snapshot's stock are rejected and leave the cart exactly as it was.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: float
    stock: int
    barcode: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_model(cls, product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            price=float(product.price),
            stock=int(product.stock or 0),
            barcode=product.barcode,
            image_url=product.image_url,
        )


@dataclass
class CartLine:
    product: ProductSnapshot
    quantity: int

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity


class CartError(Exception):
    code = "cart_error"


class OutOfStock(CartError):
    code = "out_of_stock"


class InsufficientStock(CartError):
    code = "insufficient_stock"


class ExceedsStock(CartError):
    code = "exceeds_stock"


class ProductNotFound(CartError):
    code = "not_found"


class Cart:
    def __init__(self):
        self._lines: Dict[int, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(list(self._lines.values()))

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id: int) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def add(self, product: ProductSnapshot) -> CartLine:
        line = self._lines.get(product.id)
        if line is not None:
            if line.quantity + 1 > product.stock:
                raise InsufficientStock(f"Insufficient stock for '{product.name}'")
            line.quantity += 1
            return line

        if product.stock <= 0:
            raise OutOfStock(f"'{product.name}' is out of stock")
        line = CartLine(product=product, quantity=1)
        self._lines[product.id] = line
        return line

    def set_quantity(self, product_id: int, new_quantity: int) -> Optional[CartLine]:
        """Replace a line's quantity; zero or less removes the line.

        Returns the updated line, or None when the line is gone (or was never
        in the cart).
        """
        line = self._lines.get(product_id)
        if line is None:
            return None
        if new_quantity <= 0:
            del self._lines[product_id]
            return None
        if new_quantity > line.product.stock:
            raise ExceedsStock(
                f"Quantity of '{line.product.name}' cannot exceed stock ({line.product.stock})"
            )
        line.quantity = new_quantity
        return line

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> float:
        return sum(line.line_total for line in self._lines.values())

    def add_by_barcode(self, code: str, catalog: Iterable[ProductSnapshot]) -> CartLine:
        scanned = (code or "").strip()
        if not scanned:
            raise ValueError("Barcode is empty")
        for product in catalog:
            if product.barcode == scanned:
                return self.add(product)
        raise ProductNotFound(f"Product with barcode '{scanned}' not found")
