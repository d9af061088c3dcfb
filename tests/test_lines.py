import json
from decimal import Decimal

import pytest

from printer_worker.errors import RenderError
from printer_worker.receipts.lines import (
    LineItem,
    decode_items,
    format_money,
    format_quantity,
    normalize_item,
    short_id,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (12.5, "12,50"),
        (0, "0,00"),
        (7, "7,00"),
        (Decimal("1234.5"), "1234,50"),
        ("3.333", "3,33"),
        (0.125, "0,13"),
        (None, "0,00"),
    ],
)
def test_format_money_uses_two_decimals_and_comma(value, expected):
    assert format_money(value) == expected


def test_alias_fields_render_like_primary_fields():
    primary = normalize_item({"name": "Coke", "quantity": 3, "unit_price": 7.5})
    alias = normalize_item({"name": "Coke", "qty": 3, "price": 7.5})
    assert primary == alias
    assert alias.line_total == Decimal("22.5")


def test_missing_quantity_and_price_defaults():
    item = normalize_item({"name": "Água"})
    assert item.quantity == Decimal(1)
    assert item.unit_price == Decimal(0)
    assert item.line_total == 0


def test_null_primary_field_falls_back_to_alias():
    item = normalize_item({"name": "Suco", "quantity": None, "qty": 2, "unit_price": None, "price": "4.5"})
    assert item.quantity == 2
    assert item.unit_price == Decimal("4.5")


def test_name_and_observation_fallbacks():
    item = normalize_item({"products": {"name": "Pastel"}, "observation": "sem cebola"})
    assert item.name == "Pastel"
    assert item.observation == "sem cebola"
    assert normalize_item({}).name == "Item"


def test_json_string_items_decode_like_list():
    items = [{"name": "X-Burger", "quantity": 2, "unit_price": 15.0}, {"name": "Coke", "qty": 1, "price": 7.5}]
    assert decode_items(json.dumps(items)) == decode_items(items)


def test_none_items_is_empty():
    assert decode_items(None) == []
    assert decode_items("null") == []


@pytest.mark.parametrize("raw", ["[{not json", '{"name": "x"}', 42, ["just a string"]])
def test_malformed_items_raise_render_error(raw):
    with pytest.raises(RenderError):
        decode_items(raw)


@pytest.mark.parametrize("item", [{"quantity": "dois"}, {"price": "abc"}, {"qty": True}, {"unit_price": "NaN"}])
def test_non_numeric_fields_raise_render_error(item):
    with pytest.raises(RenderError):
        normalize_item(item)


def test_quantity_formatting():
    assert format_quantity(Decimal(2)) == "2"
    assert format_quantity(Decimal("2.0")) == "2"
    assert format_quantity(Decimal("0.5")) == "0,5"


def test_short_id_is_first_eight_uppercased():
    assert short_id("abcd1234-ffff") == "ABCD1234"


def test_line_item_is_immutable():
    item = LineItem("x", Decimal(1), Decimal(2))
    with pytest.raises(Exception):
        item.name = "y"
