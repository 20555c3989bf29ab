import asyncio

import pytest

from cart_chain.app.process import build_executor
from cart_chain.framework.cart import Cart, LineItem
from cart_chain.framework.config import AppConfig, GiftConfig
from cart_chain.impl.gift_steps import (
    STEP_CATALOG,
    build_gift_line_item,
    list_steps,
    make_add_gift_step,
    make_update_attributes_step,
)
from chainkit import ChainExecutor, Continue, NullStepRecorder, Stop, UnknownStepError

GIFT = GiftConfig()


def _line_item(**overrides) -> LineItem:
    values = {
        "id": 1,
        "key": "key_1",
        "product_id": 100,
        "variant_id": 1000,
        "sku": "SKU-001",
        "vendor": "Test Vendor",
        "title": "Test Product",
        "price": "50.00",
        "line_price": "50.00",
    }
    values.update(overrides)
    return LineItem(**values)


def _cart(**overrides) -> Cart:
    values = {
        "token": "test-token",
        "total_price": 5000,
        "original_total_price": 5000,
        "items_subtotal_price": 5000,
        "total_weight": 100,
        "item_count": 1,
        "items": (_line_item(),),
    }
    values.update(overrides)
    return Cart(**values)


def _gift_executor() -> ChainExecutor:
    executor = ChainExecutor(recorder=NullStepRecorder())
    executor.register("addGift", make_add_gift_step(GIFT))
    executor.register("updateAttributes", make_update_attributes_step(GIFT))
    return executor


@pytest.mark.asyncio
async def test_gift_added_and_attribute_set_above_threshold():
    cart = _cart(total_price=15000, items=(_line_item(price="150.00", line_price="150.00"),))
    executor = _gift_executor()

    result = await executor.run(cart)

    assert result is not None
    assert len(result.items) == 2
    assert result.item_count == 2
    gift = result.find_item(9999)
    assert gift is not None
    assert gift.price == "0.00"
    assert gift.title == "Free Gift"
    assert gift.property_value("_is_gift") == "true"
    assert result.attributes["gift_variant_id"] == "9999"
    assert executor.get_last_result() == result
    assert cart.item_count == 1 and len(cart.items) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("total_price", [5000, 10000])
async def test_no_gift_at_or_below_threshold(total_price):
    cart = _cart(total_price=total_price)

    result = await _gift_executor().run(cart)

    assert result is not None
    assert len(result.items) == 1
    assert result.item_count == 1
    assert "gift_variant_id" not in result.attributes


@pytest.mark.asyncio
async def test_existing_gift_is_not_duplicated():
    cart = _cart(total_price=15000, items=(_line_item(), build_gift_line_item(GIFT)), item_count=2)

    result = await _gift_executor().run(cart)

    assert len(result.items) == 2
    assert result.item_count == 2
    assert result.attributes["gift_variant_id"] == "9999"


@pytest.mark.asyncio
async def test_second_step_receives_cart_from_first():
    seen: list[Cart] = []
    add_gift = make_add_gift_step(GIFT)

    async def capture(cart: Cart):
        await asyncio.sleep(0)
        seen.append(cart)
        return cart

    executor = ChainExecutor(recorder=NullStepRecorder())
    executor.register("addGift", add_gift)
    executor.register("capture", capture)

    await executor.run(_cart(total_price=15000))

    assert len(seen[0].items) == 2
    assert seen[0].item_count == 2


@pytest.mark.asyncio
async def test_run_one_applies_single_gift_step():
    executor = _gift_executor()

    outcome = await executor.run_one(make_add_gift_step(GIFT), _cart(total_price=20000))

    assert isinstance(outcome, Continue)
    assert outcome.document.item_count == 2
    assert executor.get_last_result() is None


@pytest.mark.asyncio
async def test_configured_chain_vetoes_empty_cart():
    cfg, _warnings = AppConfig.from_dict(
        {"chain": {"steps": ["require_items", "add_gift", "update_attributes"]}}, environ={}
    )
    executor = build_executor(cfg)

    outcome = await executor.run_outcome(_cart(items=(), item_count=0, total_price=50000))

    assert outcome == Stop("cart is empty")
    assert executor.get_last_result() is None


@pytest.mark.asyncio
async def test_custom_threshold_from_config():
    cfg, _warnings = AppConfig.from_dict(
        {"gift": {"minimum_total": 2000, "variant_id": 42, "attribute_key": "promo"}}, environ={}
    )
    executor = build_executor(cfg)

    result = await executor.run(_cart(total_price=2001))

    assert result.find_item(42) is not None
    assert result.attributes == {"promo": "42"}


def test_build_executor_registers_configured_steps_in_order():
    executor = build_executor(AppConfig.default())
    assert executor.name == "cart"
    assert executor.registry.names() == ("add_gift", "update_attributes")
    assert executor.registry.get("add_gift").doc == STEP_CATALOG["add_gift"].doc


def test_build_executor_rejects_unknown_step():
    cfg, _warnings = AppConfig.from_dict({"chain": {"steps": ["add_gift", "nope"]}}, environ={})
    with pytest.raises(UnknownStepError, match="Unknown step: nope"):
        build_executor(cfg)


def test_list_steps_mentions_every_catalog_entry():
    lines = list_steps()
    assert [line.split(":", 1)[0] for line in lines] == list(STEP_CATALOG.keys())
