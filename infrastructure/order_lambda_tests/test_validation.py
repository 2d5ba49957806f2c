import pytest

from lambdas.order_processor.models import Order
from lambdas.order_processor.validation import is_valid_email, validate_order


def test_valid_order_has_no_violations(good_order):
    assert validate_order(Order.from_dict(good_order)) == []


def test_all_violations_reported_at_once(bad_order):
    errors = validate_order(Order.from_dict(bad_order))

    assert "Valid email is required" in errors
    assert "Order must have at least one item" in errors
    assert "Total amount must be greater than zero" in errors
    assert "Shipping street is required" in errors
    assert "Shipping country is required" in errors
    assert "Payment method is required" in errors
    assert "Shipping city is required" not in errors


def test_empty_payload_flags_every_required_field():
    errors = validate_order(Order.from_dict({}))
    assert errors == [
        "Order ID is required",
        "Customer ID is required",
        "Valid email is required",
        "Order must have at least one item",
        "Total amount must be greater than zero",
        "Shipping address is required",
        "Payment method is required",
    ]


def test_messages_are_stable_for_same_input(bad_order):
    assert validate_order(Order.from_dict(bad_order)) == validate_order(Order.from_dict(bad_order))


@pytest.mark.parametrize("amount", [0, -10, None, "abc"])
def test_non_positive_or_missing_total_rejected(good_order, amount):
    good_order["totalAmount"] = amount
    errors = validate_order(Order.from_dict(good_order))
    assert any("Total amount" in e for e in errors)


def test_blank_address_fields_rejected(good_order):
    good_order["shippingAddress"] = {"street": "  ", "city": "", "country": None}
    errors = validate_order(Order.from_dict(good_order))
    assert "Shipping street is required" in errors
    assert "Shipping city is required" in errors
    assert "Shipping country is required" in errors


@pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity", float("nan"), float("inf")])
def test_non_finite_total_rejected(good_order, amount):
    good_order["totalAmount"] = amount
    order = Order.from_dict(good_order)
    assert order.total_amount is None
    assert "Total amount must be greater than zero" in validate_order(order)


@pytest.mark.parametrize("price", ["NaN", "Infinity", float("nan"), float("-inf")])
def test_non_finite_item_price_rejected(good_order, price):
    good_order["items"][0]["price"] = price
    assert "Item 1 price must be zero or greater" in validate_order(Order.from_dict(good_order))


def test_non_finite_numbers_on_a_built_order_fail_closed(good_order):
    order = Order.from_dict(good_order)
    order.total_amount = float("nan")
    order.items[0].price = float("nan")
    order.items[0].quantity = float("nan")
    errors = validate_order(order)
    assert "Total amount must be greater than zero" in errors
    assert "Item 1 price must be zero or greater" in errors
    assert "Item 1 quantity must be at least 1" in errors


@pytest.mark.parametrize("quantity", [1e999, "inf", "NaN"])
def test_non_finite_quantity_parses_as_missing(good_order, quantity):
    good_order["items"][0]["quantity"] = quantity
    good_order["orderHistory"] = "inf"
    order = Order.from_dict(good_order)
    assert order.items[0].quantity is None
    assert order.order_history == 0
    assert validate_order(order) == ["Item 1 quantity must be at least 1"]


def test_item_quantity_and_price_checked(good_order):
    good_order["items"] = [
        {"productId": "P1", "name": "Widget", "quantity": 0, "price": 10.0},
        {"productId": "P2", "name": "Gadget", "quantity": 1, "price": -1},
    ]
    errors = validate_order(Order.from_dict(good_order))
    assert "Item 1 quantity must be at least 1" in errors
    assert "Item 2 price must be zero or greater" in errors


def test_unknown_customer_type_rejected(good_order):
    good_order["customerType"] = "PLATINUM"
    errors = validate_order(Order.from_dict(good_order))
    assert any("Customer type" in e for e in errors)


def test_customer_type_defaults_to_regular(good_order):
    del good_order["customerType"]
    order = Order.from_dict(good_order)
    assert order.customer_type == "REGULAR"
    assert validate_order(order) == []


@pytest.mark.parametrize("email,ok", [
    ("user@example.com", True),
    ("first.last+tag@sub.example.co.uk", True),
    ("no-at-sign.example.com", False),
    ("@example.com", False),
    ("has space@example.com", False),
    ("user@", False),
    (None, False),
])
def test_email_format(email, ok):
    assert is_valid_email(email) is ok
