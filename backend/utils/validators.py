"""
Input helpers shared by the payment flows.

Amounts are stored in major units (pounds) as floats; providers want integer
minor units (pence / kobo). Conversion goes through Decimal so 19.99 becomes
1999, never 1998.
"""
import json
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

logger = logging.getLogger(__name__)

# Paystack references: letters, digits and - . = _ (max 100 chars)
_REFERENCE_RE = re.compile(r"^[A-Za-z0-9\-._=]{1,100}$")


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (e.g. 12.5 GBP) to minor units (1250)."""
    value = Decimal(str(amount)) * Decimal("100")
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_valid_reference(reference: str | None) -> bool:
    """True if `reference` is safe to embed in a provider URL path."""
    return bool(reference) and bool(_REFERENCE_RE.match(reference))


def normalize_metadata(metadata: Any) -> dict:
    """
    Provider metadata as a dict.

    Paystack echoes metadata back either as an object or as the JSON string
    it was sent as; anything else is treated as empty.
    """
    if isinstance(metadata, dict):
        return metadata
    if isinstance(metadata, str) and metadata:
        try:
            parsed = json.loads(metadata)
        except ValueError:
            logger.warning("Unparseable payment metadata string ignored")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def as_dict(value: Any) -> dict:
    """`value` if it is a JSON object, else {}."""
    return value if isinstance(value, dict) else {}
