"""
Unit conversion for feed quantities.

Feed is weighed in kilograms, scooped in buckets or delivered in sacks. Every
balance in the ledger is kept in kilograms; these helpers convert to and from
that base using fixed ratios:

- 1 bucket = 12.5 kg
- 1 sack   = 50 kg
"""
from decimal import Decimal
from typing import Union

from errors import InvalidInputError
from models.feed_consumption import FeedType, FeedUnit

KG_PER_UNIT = {
    FeedUnit.KG: Decimal("1"),
    FeedUnit.BUCKET: Decimal("12.5"),
    FeedUnit.SACK: Decimal("50"),
}

# Spellings accepted at the boundary, including the labels the old farm UI stored.
_UNIT_ALIASES = {
    "kg": FeedUnit.KG,
    "kgs": FeedUnit.KG,
    "kilogram": FeedUnit.KG,
    "kilograms": FeedUnit.KG,
    "bucket": FeedUnit.BUCKET,
    "buckets": FeedUnit.BUCKET,
    "बाल्टिन": FeedUnit.BUCKET,
    "sack": FeedUnit.SACK,
    "sacks": FeedUnit.SACK,
    "बोरा": FeedUnit.SACK,
}


def parse_unit(unit: Union[str, FeedUnit]) -> FeedUnit:
    """Resolve a unit label to FeedUnit; unknown labels raise InvalidInputError."""
    if isinstance(unit, FeedUnit):
        return unit
    resolved = _UNIT_ALIASES.get(str(unit).strip().lower()) if unit is not None else None
    if resolved is None:
        raise InvalidInputError(f"Unsupported unit '{unit}'. Expected one of: kg, bucket, sack.")
    return resolved


def parse_feed_type(feed_type: Union[str, FeedType]) -> FeedType:
    if isinstance(feed_type, FeedType):
        return feed_type
    try:
        return FeedType(str(feed_type).strip().upper())
    except ValueError:
        raise InvalidInputError(
            f"Unsupported feed type '{feed_type}'. Expected one of: {', '.join(t.value for t in FeedType)}."
        )


def to_kilograms(quantity, unit: Union[str, FeedUnit]) -> Decimal:
    """Convert a quantity in `unit` to kilograms. Zero and negative quantities are converted as-is."""
    return Decimal(str(quantity)) * KG_PER_UNIT[parse_unit(unit)]


def from_kilograms(quantity_kg, unit: Union[str, FeedUnit]) -> Decimal:
    return Decimal(str(quantity_kg)) / KG_PER_UNIT[parse_unit(unit)]
