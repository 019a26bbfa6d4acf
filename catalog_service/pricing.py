"""
Price arithmetic for cart lines.

All amounts are integer minor units. Tax is computed upstream at checkout
and is not modelled here.
"""

from typing import Iterable, List, Mapping, Optional

from catalog_service.domain.entities import (
    CartItem,
    OrderLine,
    Product,
    ProductVariantOption,
)


def selected_options(product: Product, selections: Mapping[str, object]) -> List[ProductVariantOption]:
    """
    Resolve selected option names to the product's option objects.

    Unknown variant ids and unknown option names are ignored.
    """
    variants = {variant.id: variant for variant in product.variants}
    resolved: List[ProductVariantOption] = []

    for variant_id, selected in selections.items():
        variant = variants.get(variant_id)
        if variant is None:
            continue

        names = [selected] if isinstance(selected, str) else list(selected or ())
        for name in names:
            option = next((opt for opt in variant.options if opt.name == name), None)
            if option is not None:
                resolved.append(option)

    return resolved


def calculate_item_price(product: Product, selections: Optional[Mapping[str, object]] = None) -> int:
    """
    Unit price of a product with the given option selections.

    Args:
        product: Normalised product
        selections: variant id -> option name, or list of names for multi-select

    Returns:
        Base price plus the price delta of every priced selected option
    """
    price = product.price
    for option in selected_options(product, selections or {}):
        if option.price_delta is not None:
            price += option.price_delta
    return price


def calculate_line_total(line: OrderLine) -> int:
    return calculate_item_price(line.product, line.selections) * line.quantity


def calculate_cart_subtotal(lines: Iterable[OrderLine]) -> int:
    """Sum of all line totals."""
    return sum(calculate_line_total(line) for line in lines)


def to_cart_items(lines: Iterable[OrderLine]) -> List[CartItem]:
    """Project order lines onto the fields the discount rules inspect."""
    return [
        CartItem(
            product_id=line.product.id,
            quantity=line.quantity,
            category_ids=line.product.category_ids,
            unit_price=calculate_item_price(line.product, line.selections),
        )
        for line in lines
    ]


def format_price(amount: int, currency_symbol: str = "$") -> str:
    """
    Format minor units for display.

    Examples:
        >>> format_price(123456)
        '$1,234.56'
        >>> format_price(-500)
        '-$5.00'
    """
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), 100)
    return f"{sign}{currency_symbol}{major:,}.{minor:02d}"
