from decimal import Decimal

import pytest

from errors import InvalidInputError
from models.feed_consumption import FeedType, FeedUnit
from utils.feed_units import from_kilograms, parse_feed_type, parse_unit, to_kilograms


@pytest.mark.parametrize("quantity", [0, 1, 2, Decimal("0.5"), Decimal("3.75"), 40])
def test_to_kilograms_is_exact_for_each_unit(quantity):
    q = Decimal(str(quantity))
    assert to_kilograms(quantity, "kg") == q
    assert to_kilograms(quantity, "bucket") == q * Decimal("12.5")
    assert to_kilograms(quantity, "sack") == q * 50
    assert to_kilograms(quantity, "bucket") == Decimal("12.5") * to_kilograms(quantity, "kg")


def test_to_kilograms_accepts_enum_members():
    assert to_kilograms(2, FeedUnit.BUCKET) == Decimal("25")
    assert to_kilograms(2, FeedUnit.SACK) == Decimal("100")


def test_negative_quantities_are_converted_not_rejected():
    assert to_kilograms(-2, "bucket") == Decimal("-25")


def test_float_input_converts_without_binary_noise():
    assert to_kilograms(0.1, "sack") == Decimal("5.0")


@pytest.mark.parametrize("label, expected", [
    ("kg", FeedUnit.KG),
    ("KG", FeedUnit.KG),
    (" kgs ", FeedUnit.KG),
    ("Buckets", FeedUnit.BUCKET),
    ("बाल्टिन", FeedUnit.BUCKET),
    ("sack", FeedUnit.SACK),
    ("बोरा", FeedUnit.SACK),
])
def test_parse_unit_aliases(label, expected):
    assert parse_unit(label) is expected


@pytest.mark.parametrize("label", ["ton", "gram", "", None, "liters"])
def test_unknown_unit_is_rejected(label):
    with pytest.raises(InvalidInputError):
        parse_unit(label)
    with pytest.raises(InvalidInputError):
        to_kilograms(1, label)


def test_parse_feed_type():
    assert parse_feed_type("b1") is FeedType.B1
    assert parse_feed_type(FeedType.B2) is FeedType.B2
    with pytest.raises(InvalidInputError):
        parse_feed_type("B3")


def test_from_kilograms():
    assert from_kilograms(500, "bucket") == Decimal("40")
    assert from_kilograms(500, "sack") == Decimal("10")
    assert from_kilograms(475, "kg") == Decimal("475")
