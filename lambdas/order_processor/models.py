"""
Order domain objects and their camelCase wire format.

Inbound payloads are parsed leniently: unknown fields are dropped, values
that cannot be coerced become None, and it is the validator's job to
report what is missing. Outbound snapshots use the same field names the
request used so stored orders can be replayed.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class OrderStatus(str, Enum):
    """Terminal outcome recorded on an order.

    APPROVED: AI score 7-10
    PENDING_REVIEW: AI score 4-6, or an unrecognised AI decision
    REJECTED: AI score 0-3
    VALIDATION_ERROR: failed input validation, no AI analysis
    """
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PENDING_REVIEW = "PENDING_REVIEW"
    VALIDATION_ERROR = "VALIDATION_ERROR"


CUSTOMER_TYPES = ("REGULAR", "BUSINESS", "VIP")
DEFAULT_CUSTOMER_TYPE = "REGULAR"


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and infinities are treated as missing
    return number if math.isfinite(number) else None


def _to_int(value) -> Optional[int]:
    number = _to_float(value)
    if number is None or number != int(number):
        return None
    return int(number)


def _to_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class OrderItem:
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[float] = None

    @classmethod
    def from_dict(cls, data) -> "OrderItem":
        if not isinstance(data, dict):
            return cls()
        return cls(
            product_id=_to_str(data.get("productId")),
            name=_to_str(data.get("name")),
            quantity=_to_int(data.get("quantity")),
            price=_to_float(data.get("price")),
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
        }


@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_dict(cls, data) -> Optional["Address"]:
        if not isinstance(data, dict):
            return None
        return cls(
            street=_to_str(data.get("street")),
            city=_to_str(data.get("city")),
            state=_to_str(data.get("state")),
            zip_code=_to_str(data.get("zipCode")),
            country=_to_str(data.get("country")),
        )

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }


@dataclass(frozen=True)
class CostBreakdown:
    """Per-order cost accounting. Usage counters sit next to the cost they produced."""
    bedrock_tokens_used: int
    bedrock_cost: float
    lambda_duration_ms: int
    lambda_cost: float
    dynamodb_write_units: int
    dynamodb_cost: float
    s3_put_requests: int
    s3_cost: float
    sns_notifications: int
    sns_cost: float
    api_gateway_calls: int
    api_gateway_cost: float
    total_processing_cost: float

    def components(self) -> tuple:
        return (
            self.bedrock_cost,
            self.lambda_cost,
            self.dynamodb_cost,
            self.s3_cost,
            self.sns_cost,
            self.api_gateway_cost,
        )

    def to_dict(self) -> dict:
        return {
            "bedrockTokensUsed": self.bedrock_tokens_used,
            "bedrockCost": self.bedrock_cost,
            "lambdaDurationMs": self.lambda_duration_ms,
            "lambdaCost": self.lambda_cost,
            "dynamodbWriteUnits": self.dynamodb_write_units,
            "dynamodbCost": self.dynamodb_cost,
            "s3PutRequests": self.s3_put_requests,
            "s3Cost": self.s3_cost,
            "snsNotifications": self.sns_notifications,
            "snsCost": self.sns_cost,
            "apiGatewayCalls": self.api_gateway_calls,
            "apiGatewayCost": self.api_gateway_cost,
            "totalProcessingCost": self.total_processing_cost,
        }


@dataclass(frozen=True)
class FraudAnalysis:
    score: float
    risk_level: str
    decision: str
    confidence: int
    fraud_indicators: List[str]
    reasoning: str
    recommendations: List[str]
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class Order:
    order_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_type: str = DEFAULT_CUSTOMER_TYPE
    order_history: int = 0
    items: List[OrderItem] = field(default_factory=list)
    total_amount: Optional[float] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    payment_method: Optional[str] = None
    card_last4: Optional[str] = None
    po_number: Optional[str] = None
    timestamp: Optional[str] = None

    # Filled in by the pipeline
    status: Optional[OrderStatus] = None
    ai_score: Optional[float] = None
    rejection_reasons: List[str] = field(default_factory=list)
    cost_metrics: Optional[CostBreakdown] = None
    processed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        raw_items = data.get("items")
        items = [OrderItem.from_dict(i) for i in raw_items] if isinstance(raw_items, list) else []
        history = _to_int(data.get("orderHistory"))
        return cls(
            order_id=_to_str(data.get("orderId")),
            customer_id=_to_str(data.get("customerId")),
            customer_email=_to_str(data.get("customerEmail")),
            customer_type=_to_str(data.get("customerType")) or DEFAULT_CUSTOMER_TYPE,
            order_history=history if history is not None else 0,
            items=items,
            total_amount=_to_float(data.get("totalAmount")),
            shipping_address=Address.from_dict(data.get("shippingAddress")),
            billing_address=Address.from_dict(data.get("billingAddress")),
            payment_method=_to_str(data.get("paymentMethod")),
            card_last4=_to_str(data.get("cardLast4")),
            po_number=_to_str(data.get("poNumber")),
            timestamp=_to_str(data.get("timestamp")) or iso_now(),
        )

    def to_dict(self) -> dict:
        """Full snapshot of the order, used for the store and the archive."""
        return {
            "orderId": self.order_id,
            "customerId": self.customer_id,
            "customerEmail": self.customer_email,
            "customerType": self.customer_type,
            "orderHistory": self.order_history,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": self.total_amount,
            "shippingAddress": self.shipping_address.to_dict() if self.shipping_address else None,
            "billingAddress": self.billing_address.to_dict() if self.billing_address else None,
            "paymentMethod": self.payment_method,
            "cardLast4": self.card_last4,
            "poNumber": self.po_number,
            "timestamp": self.timestamp,
            "status": self.status.value if self.status else None,
            "aiScore": self.ai_score,
            "rejectionReasons": list(self.rejection_reasons),
            "costMetrics": self.cost_metrics.to_dict() if self.cost_metrics else None,
            "processedAt": self.processed_at,
        }
