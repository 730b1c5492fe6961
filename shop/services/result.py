"""Tagged results for cart operations.

Expected business outcomes (unknown product, missing line, bad quantity) are
returned as ``Err`` values instead of raised, so every caller has to look at
them. Infrastructure failures are still exceptions and propagate.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")

@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

Result = Union[Ok[T], Err[E]]

@dataclass(frozen=True)
class ProductNotFound:
    product_id: str

    @property
    def message(self) -> str:
        return f"Product {self.product_id} not found or not available"

@dataclass(frozen=True)
class ItemNotInCart:
    product_id: str

    @property
    def message(self) -> str:
        return f"Product {self.product_id} is not in the cart"

@dataclass(frozen=True)
class InvalidQuantity:
    quantity: int
    reason: str

    @property
    def message(self) -> str:
        return f"Invalid quantity {self.quantity}: {self.reason}"

CartError = Union[ProductNotFound, ItemNotInCart, InvalidQuantity]
