"""
Order Processor Lambda - AI fraud screening with per-order FinOps tracking.

Triggered by API Gateway (POST /orders) or invoked directly with the order
as the event. Handler: lambdas.order_processor.order_processor.lambda_handler
"""

import base64
import binascii
import json
import logging
import time

import boto3
from twilio.rest import Client

from lambdas.common.serialization import json_response
from lambdas.order_processor import config
from lambdas.order_processor.bedrock import BedrockConverseBackend
from lambdas.order_processor.cost import CostRates
from lambdas.order_processor.errors import AnalysisFailure, StoreFailure, ValidationError
from lambdas.order_processor.fraud import FraudAnalyzer
from lambdas.order_processor.metrics import CloudWatchMetricsSink
from lambdas.order_processor.models import Order
from lambdas.order_processor.notify import SnsNotifier, TwilioSmsNotifier
from lambdas.order_processor.pipeline import OrderPipeline
from lambdas.order_processor.stores import DynamoOrderStore, S3OrderArchive

# ----------------- Logging -----------------
log = logging.getLogger()
log.setLevel(logging.INFO)
# Ensure logs show locally (Lambda uses CloudWatch automatically)
if not log.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

# ----------------- Pipeline cache (one per container) -----------------
_PIPELINE = None


def build_notifier():
    if config.NOTIFY_CHANNEL == "sms":
        twilio_configured = all([config.TWILIO_SID, config.TWILIO_TOKEN, config.TWILIO_FROM])
        if not twilio_configured:
            log.warning("Twilio not configured. Running in mock mode.")
        twilio_client = Client(config.TWILIO_SID, config.TWILIO_TOKEN) if twilio_configured else None
        return TwilioSmsNotifier(twilio_client, config.TWILIO_FROM, config.NOTIFY_PHONE_NUMBER)
    return SnsNotifier(boto3.client("sns", region_name=config.REGION), config.SNS_TOPIC_ARN)


def build_pipeline() -> OrderPipeline:
    """Wire the pipeline to real AWS services from environment configuration."""
    dynamodb = boto3.resource("dynamodb", region_name=config.REGION)
    backend = BedrockConverseBackend(
        boto3.client("bedrock-runtime", region_name=config.REGION),
        config.BEDROCK_MODEL_ID,
        max_tokens=config.BEDROCK_MAX_TOKENS,
        temperature=config.BEDROCK_TEMPERATURE,
    )
    return OrderPipeline(
        analyzer=FraudAnalyzer(backend),
        store=DynamoOrderStore(dynamodb.Table(config.ORDERS_TABLE), config.STATUS_INDEX_NAME),
        archive=S3OrderArchive(boto3.client("s3", region_name=config.REGION), config.ARCHIVE_BUCKET),
        notifier=build_notifier(),
        metrics=CloudWatchMetricsSink(boto3.client("cloudwatch", region_name=config.REGION)),
        metrics_namespace=config.METRICS_NAMESPACE,
        memory_mb=config.LAMBDA_MEMORY_MB,
        rates=CostRates.from_config(),
    )


def get_pipeline() -> OrderPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = build_pipeline()
        log.info("Pipeline initialized. Region=%s Table=%s Model=%s Notify=%s",
                 config.REGION, config.ORDERS_TABLE, config.BEDROCK_MODEL_ID, config.NOTIFY_CHANNEL)
    return _PIPELINE


def parse_order_event(event) -> Order:
    """Extract the order from an API Gateway event or a direct invocation."""
    if not isinstance(event, dict):
        raise ValidationError("Event must be a JSON object")

    if "body" in event:
        body = event.get("body")
        if not body:
            raise ValidationError("Missing body")
        if isinstance(body, str):
            if event.get("isBase64Encoded"):
                try:
                    body = base64.b64decode(body, validate=True).decode("utf-8")
                except (binascii.Error, UnicodeDecodeError) as e:
                    raise ValidationError("Malformed base64 body") from e
            try:
                body = json.loads(body)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Malformed JSON body: {e.msg}") from e
    else:
        body = event

    if not isinstance(body, dict):
        raise ValidationError("Order must be a JSON object")
    return Order.from_dict(body)


def lambda_handler(event, context):
    started_at = time.monotonic()
    try:
        order = parse_order_event(event)
        status_code, body = get_pipeline().process(order, started_at=started_at)
        return json_response(status_code, body)

    except ValidationError as e:
        log.warning("Rejected request: %s", e)
        return json_response(400, {"error": str(e), "violations": e.violations})

    except AnalysisFailure:
        log.exception("❌ Fraud analysis failed; order not persisted")
        return json_response(500, {"error": "Internal server error"})

    except StoreFailure:
        log.exception("❌ Order outcome could not be stored")
        return json_response(500, {"error": "Internal server error"})

    except Exception:
        log.exception("❌ Unexpected error processing order")
        return json_response(500, {"error": "Internal server error"})
