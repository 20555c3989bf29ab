from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from chainkit import Action, Continue, Stop

from cart_chain.framework.cart import Cart, LineItem
from cart_chain.framework.config import GiftConfig

GIFT_PROPERTY = "_is_gift"


def build_gift_line_item(gift: GiftConfig) -> LineItem:
    return LineItem(
        id=gift.variant_id,
        key=f"gift_{gift.variant_id}",
        product_id=gift.product_id,
        variant_id=gift.variant_id,
        sku="GIFT",
        title=gift.title,
        price="0.00",
        line_price="0.00",
        original_line_price="0.00",
        original_price="0.00",
        final_price="0.00",
        final_line_price="0.00",
        quantity=1,
        properties=({"name": GIFT_PROPERTY, "value": "true"},),
    )


def make_add_gift_step(gift: GiftConfig) -> Action:
    async def add_gift(cart: Cart) -> Continue[Cart]:
        """Add a free gift line item when the cart total exceeds the threshold."""

        if cart.total_price > gift.minimum_total and cart.find_item(gift.variant_id) is None:
            return Continue(cart.with_item(build_gift_line_item(gift)))
        return Continue(cart)

    return add_gift


def make_update_attributes_step(gift: GiftConfig) -> Action:
    async def update_attributes(cart: Cart) -> Continue[Cart]:
        """Record the gift variant id as a cart attribute when the gift is present."""

        item = cart.find_item(gift.variant_id)
        if item is None:
            return Continue(cart)
        return Continue(cart.with_attribute(gift.attribute_key, str(item.variant_id)))

    return update_attributes


def make_require_items_step(_gift: GiftConfig) -> Action:
    def require_items(cart: Cart) -> Continue[Cart] | Stop:
        """Stop the chain for carts without line items."""

        if not cart.items:
            return Stop("cart is empty")
        return Continue(cart)

    return require_items


@dataclass(frozen=True)
class StepSpec:
    name: str
    builder: Callable[[GiftConfig], Action]
    doc: str


STEP_CATALOG: Mapping[str, StepSpec] = {
    spec.name: spec
    for spec in (
        StepSpec(
            "require_items",
            make_require_items_step,
            "Stop the chain for carts without line items.",
        ),
        StepSpec(
            "add_gift",
            make_add_gift_step,
            "Add a free gift line item when the cart total exceeds the threshold.",
        ),
        StepSpec(
            "update_attributes",
            make_update_attributes_step,
            "Record the gift variant id as a cart attribute when the gift is present.",
        ),
    )
}


def list_steps() -> list[str]:
    return [f"{spec.name}: {spec.doc}" for spec in STEP_CATALOG.values()]
