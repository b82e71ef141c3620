"""
Utility functions for the application.
"""

import base64
import re
from typing import Any, Dict, Optional

import aiohttp

from shared.utils.configs import base_configs
from shared.utils.types import ResponseBody, ResponseType

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def generate_response(status_code: int, body: ResponseBody) -> ResponseType:
    """
    Generate a standardized API response.

    Args:
        status_code: HTTP status code for the response
        body: Response body content

    Returns:
        Formatted response object
    """
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
        },
        "body": body,
    }


def basic_auth_header(username: str, password: str = "") -> Dict[str, str]:
    """Authorization header for HTTP basic auth, e.g. a write key with no password."""
    credentials = base64.b64encode(f"{username}:{password}".encode("utf-8"))
    return {"Authorization": f"Basic {credentials.decode('ascii')}"}


def request_timeout(seconds: Optional[int] = None) -> aiohttp.ClientTimeout:
    """Build the per-call timeout used for every outbound request."""
    return aiohttp.ClientTimeout(total=seconds or base_configs["request_timeout"])


def is_number(value: Any) -> bool:
    """True for ints and finite floats, False for bools, NaN and everything else."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value == value and value not in (float("inf"), float("-inf"))


def parse_int(value: Any) -> Optional[int]:
    """
    Parse the leading base-10 integer of a value's string form.

    Firestore sends integers as strings ("20") and doubles as numbers (20.5);
    both resolve to the integer part. Returns None when no integer prefix
    exists.

    Examples:
        parse_int("20")    -> 20
        parse_int(20.9)    -> 20
        parse_int("12abc") -> 12
        parse_int("abc")   -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and is_number(value):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def convert_amount(value: Any, multiplier: float) -> Any:
    """
    Multiply a monetary value and truncate the result toward zero.

    Non-numeric values are returned untouched.
    """
    if not is_number(value):
        return value
    return int(value * multiplier)


def compute_margin(item: Dict[str, Any]) -> Optional[float]:
    """
    Compute the margin of a line item or flat product event.

    Uses revenue when present, otherwise price, minus cost, scaled by
    quantity when the item carries one, rounded to two decimals.

    Args:
        item: Line item or properties mapping

    Returns:
        The margin, or None when it cannot be computed
    """
    if "revenue" in item:
        monetary_value = item["revenue"]
    elif "price" in item:
        monetary_value = item["price"]
    else:
        return None

    cost = item.get("cost")
    if not is_number(monetary_value) or not is_number(cost):
        return None

    margin = monetary_value - cost
    if "quantity" in item:
        quantity = item["quantity"]
        if not is_number(quantity):
            return None
        margin = margin * quantity

    return round(margin, 2)
