"""
AI fraud analysis of an order.

The analyzer builds a prompt holding every order attribute plus a fixed
scoring rubric, sends it to whatever text-completion backend it was given,
and turns the reply into a FraudAnalysis. The model alone decides the
score and the decision; the rubric only guides it.

Replies are accepted as bare JSON, JSON inside a ```json fence, JSON inside
a plain ``` fence, or JSON embedded in prose. Anything that does not yield
a JSON object with a numeric score in [0, 10] and a decision is an
AnalysisFailure, never a silent default.
"""

import json
import logging
import math
import re

from lambdas.order_processor.errors import AnalysisFailure
from lambdas.order_processor.models import FraudAnalysis, Order

logger = logging.getLogger(__name__)

DECISIONS = ("APPROVED", "PENDING_REVIEW", "REJECTED")
REQUIRED_KEYS = ("score", "decision")

_FENCE = re.compile(r"```[A-Za-z]*[ \t]*\n?(.*?)```", re.DOTALL)

SCORING_RUBRIC = """SCORING RULES:
- Score 0-3: HIGH RISK (Reject order)
- Score 4-6: MEDIUM RISK (Manual review required)
- Score 7-10: LOW RISK (Approve order)

FRAUD INDICATORS TO CHECK:

1. EMAIL ANALYSIS (Weight: 20%)
   - Disposable email domains (tempmail, guerrillamail, 10minutemail): -3 points
   - Free email with suspicious patterns: -1 point
   - Corporate/business email: +1 point

2. ORDER VALUE ANALYSIS (Weight: 20%)
   - Order < $50: Low risk (+1 point)
   - Order > $2000 from new customer: High risk (-2 points)
   - Order > $5000: Very high risk (-3 points)

3. QUANTITY ANALYSIS (Weight: 15%)
   - > 10 items from new customer: High risk (-2 points)
   - > 20 items: Very high risk (-3 points)

4. SHIPPING ADDRESS ANALYSIS (Weight: 20%)
   - Complete, valid address: +1 point
   - Incomplete address: -2 points
   - Invalid zip code: -1 point

5. PRODUCT TYPE ANALYSIS (Weight: 10%)
   - High-risk products (gift cards, electronics in bulk): -2 points

6. CUSTOMER HISTORY (Weight: 10%)
   - New customer: -1 point
   - VIP customer (> 20 orders): +2 points

7. TIMING ANALYSIS (Weight: 5%)
   - Order placed late night (12 AM - 6 AM): -1 point"""

RESPONSE_FORMAT = """RESPONSE FORMAT (JSON):
{
  "score": <number 0-10>,
  "risk_level": "<LOW|MEDIUM|HIGH>",
  "decision": "<APPROVED|PENDING_REVIEW|REJECTED>",
  "confidence": <number 0-100>,
  "fraud_indicators": ["List of specific fraud indicators found"],
  "reasoning": "Brief explanation of the decision",
  "recommendations": ["Any recommendations"]
}"""


def _format_address(address) -> str:
    if address is None:
        return "  (not provided)"
    return (
        f"  {address.street or ''}\n"
        f"  {address.city or ''}, {address.state or ''} {address.zip_code or ''}\n"
        f"  {address.country or ''}"
    )


def build_prompt(order: Order) -> str:
    """Deterministic fraud-detection prompt for one order."""
    items = "\n".join(
        f"  - {item.name} [{item.product_id}] (Qty: {item.quantity}, Price: ${item.price or 0:.2f})"
        for item in order.items
    )
    payment = order.payment_method or ""
    if order.card_last4:
        payment += f" (card ending {order.card_last4})"
    if order.po_number:
        payment += f" (PO {order.po_number})"

    return f"""You are an expert fraud detection system for an e-commerce platform.
Your task is to analyze the following order and assign a fraud risk score from 0 to 10.

{SCORING_RUBRIC}

ORDER DETAILS:

Order ID: {order.order_id}
Customer ID: {order.customer_id}
Customer Email: {order.customer_email}
Customer Type: {order.customer_type}
Order History: {order.order_history} previous orders
Order Placed At: {order.timestamp}

Items:
{items}

Total Amount: ${order.total_amount or 0:.2f}

Shipping Address:
{_format_address(order.shipping_address)}

Billing Address:
{_format_address(order.billing_address)}

Payment Method: {payment}

{RESPONSE_FORMAT}

Analyze the order and provide your assessment in JSON format only."""


def _first_object_span(text: str):
    """Return the first balanced top-level {...} substring, or None."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            ch = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unbalanced from here; try the next opening brace
        start = text.find("{", start + 1)
    return None


def extract_json(text: str) -> dict:
    """Pull the JSON object out of a model reply."""
    if not text or not text.strip():
        raise AnalysisFailure("Empty response from AI backend")

    candidate = text
    fenced = _FENCE.search(text)
    if fenced:
        candidate = fenced.group(1)

    span = _first_object_span(candidate)
    if span is None and candidate is not text:
        span = _first_object_span(text)
    if span is None:
        raise AnalysisFailure("No JSON object found in AI response")

    try:
        payload = json.loads(span)
    except json.JSONDecodeError as e:
        raise AnalysisFailure(f"Malformed JSON in AI response: {e}") from e
    if not isinstance(payload, dict):
        raise AnalysisFailure("AI response JSON is not an object")
    return payload


def _as_number(value, key):
    if isinstance(value, bool):
        raise AnalysisFailure(f"'{key}' must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise AnalysisFailure(f"'{key}' must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise AnalysisFailure(f"'{key}' must be finite, got {value!r}")
    return number


def _as_str_list(value):
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def parse_analysis(text: str, input_tokens: int = 0, output_tokens: int = 0) -> FraudAnalysis:
    """Turn a model reply into a FraudAnalysis.

    Raises:
        AnalysisFailure: If no JSON object is found, required keys are
            missing, or the score is outside [0, 10]
    """
    payload = extract_json(text)

    missing = [k for k in REQUIRED_KEYS if payload.get(k) is None]
    if missing:
        raise AnalysisFailure(f"AI response missing required keys: {missing}")

    score = _as_number(payload["score"], "score")
    if not 0 <= score <= 10:
        raise AnalysisFailure(f"AI score {score} outside 0-10")

    confidence = payload.get("confidence")
    confidence = 0 if confidence is None else int(round(_as_number(confidence, "confidence")))

    return FraudAnalysis(
        score=score,
        risk_level=str(payload.get("risk_level") or "").strip().upper(),
        decision=str(payload["decision"]).strip().upper(),
        confidence=min(max(confidence, 0), 100),
        fraud_indicators=_as_str_list(payload.get("fraud_indicators")),
        reasoning=str(payload.get("reasoning") or ""),
        recommendations=_as_str_list(payload.get("recommendations")),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


class FraudAnalyzer:
    """Fraud analysis over any text-completion backend.

    The backend needs a single method, ``invoke(prompt)``, returning an
    object with ``text``, ``input_tokens`` and ``output_tokens``.
    """

    def __init__(self, backend):
        self.backend = backend

    def analyze(self, order: Order) -> FraudAnalysis:
        prompt = build_prompt(order)
        logger.debug("Fraud prompt for order %s:\n%s", order.order_id, prompt)

        try:
            completion = self.backend.invoke(prompt)
        except AnalysisFailure:
            raise
        except Exception as e:
            logger.exception("AI backend call failed for order %s", order.order_id)
            raise AnalysisFailure(f"AI backend call failed: {e}") from e

        logger.debug("AI response for order %s: %s", order.order_id, completion.text)
        result = parse_analysis(completion.text, completion.input_tokens, completion.output_tokens)

        logger.info("Fraud analysis complete - order=%s score=%s decision=%s tokens=%d (in: %d, out: %d)",
                    order.order_id, result.score, result.decision, result.tokens_used,
                    result.input_tokens, result.output_tokens)
        return result
