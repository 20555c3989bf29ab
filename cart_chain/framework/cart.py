"""Commerce cart document passed through the chain.

Carts are immutable: helpers return derived copies so each step sees exactly what the
previous step returned. Keys this model does not know about are carried in `extra`
and written back unchanged.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

_LINE_ITEM_REQUIRED = ("id", "variant_id")
_CART_REQUIRED = ("token", "total_price", "item_count", "items")


def _require(payload: Mapping[str, Any], keys: tuple[str, ...], *, label: str) -> None:
    missing = [key for key in keys if key not in payload]
    if missing:
        raise ValueError(f"{label} missing required key(s): {', '.join(missing)}")


def _split_extra(cls: type, payload: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    known = {f.name for f in fields(cls)} - {"extra"}
    values = {k: v for k, v in payload.items() if k in known}
    extra = {k: v for k, v in payload.items() if k not in known}
    return values, extra


@dataclass(frozen=True)
class LineItem:
    id: int
    variant_id: int
    key: str = ""
    product_id: int | None = None
    sku: str = ""
    vendor: str = ""
    title: str = ""
    price: str = "0.00"
    line_price: str = "0.00"
    original_line_price: str = "0.00"
    original_price: str = "0.00"
    final_price: str = "0.00"
    final_line_price: str = "0.00"
    quantity: int = 1
    gift_card: bool = False
    requires_shipping: bool = True
    properties: tuple[dict[str, str], ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LineItem":
        if not isinstance(payload, Mapping):
            raise ValueError(f"Line item must be a mapping (type={type(payload).__name__})")
        _require(payload, _LINE_ITEM_REQUIRED, label="Line item")
        values, extra = _split_extra(cls, payload)
        values["properties"] = tuple(dict(p) for p in values.get("properties") or ())
        return cls(**values, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        payload = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        payload["properties"] = [dict(p) for p in self.properties]
        payload.update(self.extra)
        return payload

    def property_value(self, name: str) -> str | None:
        for prop in self.properties:
            if prop.get("name") == name:
                return prop.get("value")
        return None


@dataclass(frozen=True)
class Cart:
    token: str
    total_price: int
    item_count: int
    items: tuple[LineItem, ...]
    note: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    original_total_price: int = 0
    total_discount: int = 0
    total_weight: int = 0
    requires_shipping: bool = True
    currency: str = "USD"
    items_subtotal_price: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Cart":
        if not isinstance(payload, Mapping):
            raise ValueError(f"Cart must be a mapping (type={type(payload).__name__})")
        _require(payload, _CART_REQUIRED, label="Cart")
        values, extra = _split_extra(cls, payload)
        if not isinstance(values["items"], list):
            raise ValueError("Cart items must be a list")
        values["items"] = tuple(LineItem.from_dict(item) for item in values["items"])
        values["attributes"] = dict(values.get("attributes") or {})
        return cls(**values, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        payload = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        payload["items"] = [item.to_dict() for item in self.items]
        payload["attributes"] = dict(self.attributes)
        payload.update(self.extra)
        return payload

    def find_item(self, variant_id: int) -> LineItem | None:
        for item in self.items:
            if item.variant_id == variant_id:
                return item
        return None

    def with_item(self, item: LineItem) -> "Cart":
        return replace(self, items=(*self.items, item), item_count=self.item_count + 1)

    def with_attribute(self, key: str, value: str) -> "Cart":
        return replace(self, attributes={**self.attributes, key: value})


def load_cart(path: str) -> Cart:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    return Cart.from_dict(payload)


def dump_cart(cart: Cart, path: str | None = None) -> str:
    text = json.dumps(cart.to_dict(), indent=2, ensure_ascii=False)
    if path is not None:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(text + "\n")
    return text
