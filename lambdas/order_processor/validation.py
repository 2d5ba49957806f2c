"""
Business-rule validation for submitted orders.

Runs before the AI call so malformed orders never cost Bedrock tokens.
Every rule is checked; nothing short-circuits, so callers get the whole
list of problems in one response.
"""

import logging
import re
from typing import List

from lambdas.order_processor.models import CUSTOMER_TYPES, Order

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@(.+)$")


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def is_valid_email(email) -> bool:
    return email is not None and EMAIL_PATTERN.match(email) is not None


def validate_order(order: Order) -> List[str]:
    """Return one message per violated rule; an empty list means valid."""
    errors = []

    if _blank(order.order_id):
        errors.append("Order ID is required")

    if _blank(order.customer_id):
        errors.append("Customer ID is required")

    if not is_valid_email(order.customer_email):
        errors.append("Valid email is required")

    if order.customer_type not in CUSTOMER_TYPES:
        errors.append(f"Customer type must be one of: {', '.join(CUSTOMER_TYPES)}")

    if not order.items:
        errors.append("Order must have at least one item")
    for position, item in enumerate(order.items, start=1):
        if item.quantity is None or not item.quantity >= 1:
            errors.append(f"Item {position} quantity must be at least 1")
        if item.price is None or not item.price >= 0:
            errors.append(f"Item {position} price must be zero or greater")

    if order.total_amount is None or not order.total_amount > 0:
        errors.append("Total amount must be greater than zero")

    address = order.shipping_address
    if address is None:
        errors.append("Shipping address is required")
    else:
        if _blank(address.street):
            errors.append("Shipping street is required")
        if _blank(address.city):
            errors.append("Shipping city is required")
        if _blank(address.country):
            errors.append("Shipping country is required")

    if _blank(order.payment_method):
        errors.append("Payment method is required")

    if errors:
        logger.warning("Order validation failed for orderId=%s with %d error(s)", order.order_id, len(errors))
    else:
        logger.info("Order validation passed for orderId=%s", order.order_id)

    return errors
