"""
FinOps analytics Lambdas (API Gateway, all GET):
  /finops/metrics   order statistics for a date range
  /finops/costs     actual AWS costs by service
  /finops/forecast  30-day cost forecast
  /finops/report    complete FinOps report
Dates come from the query string as startDate / endDate (YYYY-MM-DD).
"""

import logging
import os
from datetime import date, datetime, timedelta, timezone

import boto3

from lambdas.analytics.finops import BillingAnalytics, MetricsAnalytics, OrderAnalytics, ReportBuilder
from lambdas.common.serialization import json_response
from lambdas.order_processor.stores import DynamoOrderStore

log = logging.getLogger()
log.setLevel(logging.INFO)
if not log.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

REGION = os.environ.get("AWS_REGION", "us-east-1")
ORDERS_TABLE = os.environ.get("ORDERS_TABLE", "OrderProcessing-Orders")
STATUS_INDEX_NAME = os.environ.get("STATUS_INDEX_NAME", "StatusDateIndex")
METRICS_NAMESPACE = os.environ.get("METRICS_NAMESPACE", "OrderProcessing/FinOps")

_SERVICES = None


def build_services() -> dict:
    dynamodb = boto3.resource("dynamodb", region_name=REGION)
    orders = OrderAnalytics(DynamoOrderStore(dynamodb.Table(ORDERS_TABLE), STATUS_INDEX_NAME))
    metrics = MetricsAnalytics(boto3.client("cloudwatch", region_name=REGION), METRICS_NAMESPACE)
    # Cost Explorer is a global service served from us-east-1
    billing = BillingAnalytics(boto3.client("ce", region_name="us-east-1"))
    return {
        "orders": orders,
        "metrics": metrics,
        "billing": billing,
        "reports": ReportBuilder(orders, metrics, billing),
    }


def get_services() -> dict:
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_services()
    return _SERVICES


def _today() -> date:
    return datetime.now(timezone.utc).date()


def parse_date_range(event, default_days_back: int, default_end_offset: int = 0):
    """Read startDate/endDate from the query string.

    Raises:
        ValueError: If a date is malformed or the range is reversed
    """
    params = (event or {}).get("queryStringParameters") or {}
    today = _today()
    end = date.fromisoformat(params["endDate"]) if params.get("endDate") else today - timedelta(days=default_end_offset)
    start = date.fromisoformat(params["startDate"]) if params.get("startDate") else today - timedelta(days=default_days_back)
    if start > end:
        raise ValueError(f"startDate {start} is after endDate {end}")
    return start, end


def _handle(event, default_days_back, default_end_offset, action):
    try:
        start, end = parse_date_range(event, default_days_back, default_end_offset)
    except ValueError as e:
        return json_response(400, {"error": f"Invalid date range: {e}"})
    try:
        return json_response(200, action(get_services(), start, end))
    except Exception:
        log.exception("❌ FinOps request failed")
        return json_response(500, {"error": "Internal server error"})


def metrics_handler(event, context):
    return _handle(event, 7, 0, lambda s, start, end: s["orders"].order_statistics(start, end))


def costs_handler(event, context):
    return _handle(event, 7, 0, lambda s, start, end: s["billing"].actual_costs(start, end))


def forecast_handler(event, context):
    try:
        return json_response(200, {"forecastedMonthlyCost": get_services()["billing"].forecast()})
    except Exception:
        log.exception("❌ Forecast request failed")
        return json_response(500, {"error": "Internal server error"})


def report_handler(event, context):
    # Defaults to yesterday
    return _handle(event, 1, 1, lambda s, start, end: s["reports"].build(start, end).to_dict())
