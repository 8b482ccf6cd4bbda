"""
Pure cart transitions. Every function takes the current lines and returns new
ones, the input is never mutated.

Lines are identified by product id plus the canonical variant selection , so
{"shade": "red", "size": "M"} and {"size": "M", "shade": "red"} land on the
same line. Quantities never drop below 1 , removing a line is explicit.
"""
from typing import Mapping, Optional, Tuple
from storefront.cart.models import CartLine, LineKey, ProductRef, line_key
from storefront.common.utils import from_minor_units

Lines = Tuple[CartLine, ...]


def add(lines: Lines, product: ProductRef, variants: Optional[Mapping[str, str]] = None) -> Lines:
    key = line_key(product.id, variants)
    for i, line in enumerate(lines):
        if line.key == key:
            bumped = line.model_copy(update={"quantity": line.quantity + 1})
            return lines[:i] + (bumped,) + lines[i + 1:]

    new_line = CartLine(
        product_id=product.id,
        name=product.name,
        unit_price=product.price,
        quantity=1,
        selected_variants=dict(variants or {}),
    )
    return lines + (new_line,)


def remove(lines: Lines, key: LineKey) -> Lines:
    return tuple(line for line in lines if line.key != key)


def set_quantity(lines: Lines, key: LineKey, delta: int) -> Lines:
    return tuple(
        line.model_copy(update={"quantity": max(1, line.quantity + delta)}) if line.key == key else line
        for line in lines
    )


def clear(lines: Lines = ()) -> Lines:
    return ()


def total(lines: Lines) -> float:
    return from_minor_units(sum(line.subtotal_minor for line in lines))


def item_count(lines: Lines) -> int:
    return sum(line.quantity for line in lines)
