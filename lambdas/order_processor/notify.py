"""
Order outcome notifications.

Two channels share the ``publish(subject, body)`` shape: an SNS topic
(email subscribers) and Twilio SMS to an operations phone. Neither is
allowed to fail an order; the pipeline treats them as best-effort.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from twilio.base.exceptions import TwilioException

from lambdas.order_processor.errors import NotifyFailure
from lambdas.order_processor.models import Order

logger = logging.getLogger(__name__)

SMS_MAX_CHARS = 160
SNS_SUBJECT_MAX_CHARS = 100


def build_subject(order: Order) -> str:
    return f"Order {order.order_id} - {order.status.value}"


def build_message(order: Order) -> str:
    lines = [
        f"Order ID: {order.order_id}",
        f"Customer: {order.customer_email}",
        f"Status: {order.status.value}",
        f"Amount: ${order.total_amount or 0:.2f}",
    ]
    if order.ai_score is not None:
        lines.append(f"AI Score: {order.ai_score:.1f}/10")
    if order.rejection_reasons:
        lines.append("")
        lines.append("Rejection Reasons:")
        lines.extend(f"- {reason}" for reason in order.rejection_reasons)
    if order.cost_metrics is not None:
        lines.append("")
        lines.append(f"Processing Cost: ${order.cost_metrics.total_processing_cost:.5f}")
    return "\n".join(lines)


class SnsNotifier:
    def __init__(self, client, topic_arn: str):
        self.client = client
        self.topic_arn = topic_arn

    def publish(self, subject: str, body: str) -> str:
        if not self.topic_arn:
            raise NotifyFailure("SNS_TOPIC_ARN is not configured")
        try:
            resp = self.client.publish(
                TopicArn=self.topic_arn,
                Subject=subject[:SNS_SUBJECT_MAX_CHARS],
                Message=body,
            )
        except (ClientError, BotoCoreError) as e:
            raise NotifyFailure(f"SNS publish failed: {e}") from e
        return resp["MessageId"]


def format_sms(subject: str, body: str) -> str:
    """Fit subject and as many body lines as possible into one SMS segment."""
    text = f"{subject}\n{body}"
    if len(text) <= SMS_MAX_CHARS:
        return text

    # Shorter version: subject plus whole lines while they fit
    text = subject
    for line in body.splitlines():
        if not line.strip():
            continue
        if len(text) + 1 + len(line) > SMS_MAX_CHARS:
            break
        text = f"{text}\n{line}"

    # Final safety check
    return text[:SMS_MAX_CHARS]


class TwilioSmsNotifier:
    """SMS through Twilio. With no client configured it runs in mock mode."""

    def __init__(self, twilio_client, from_number: str, to_number: str):
        self.twilio_client = twilio_client
        self.from_number = from_number
        self.to_number = to_number

    def publish(self, subject: str, body: str) -> str:
        if not self.to_number:
            raise NotifyFailure("NOTIFY_PHONE_NUMBER is not configured")
        sms = format_sms(subject, body)

        if self.twilio_client is None:
            logger.info("📱 MOCK MODE: Would send SMS to %s", self.to_number)
            logger.info("   Message: %s", sms[:100])
            return "MOCK-" + subject

        try:
            msg = self.twilio_client.messages.create(to=self.to_number, from_=self.from_number, body=sms)
        except TwilioException as e:
            raise NotifyFailure(f"Twilio SMS failed: {e}") from e
        return msg.sid
