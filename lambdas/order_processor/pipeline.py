"""
Order pipeline: validate -> analyze -> decide -> cost -> persist -> archive -> notify -> meter.

One run handles one order, strictly in sequence. Failure policy per step:

  validation      violations are data; the order ends as VALIDATION_ERROR
                  and still goes through cost + persistence
  analysis        AnalysisFailure aborts the run, nothing is persisted
  store write     StoreFailure aborts the run; the store is the record of truth
  archive/notify/ swallowed by best_effort(): logged once, never retried,
  metrics         never visible to the caller

There is no retry anywhere and no timeout beyond the caller's own.
"""

import logging
import time

from lambdas.order_processor.cost import calculate_costs
from lambdas.order_processor.models import OrderStatus, iso_now
from lambdas.order_processor.notify import build_message, build_subject
from lambdas.order_processor.validation import validate_order

logger = logging.getLogger(__name__)

DECISION_TO_STATUS = {
    "APPROVED": OrderStatus.APPROVED,
    "REJECTED": OrderStatus.REJECTED,
    "PENDING_REVIEW": OrderStatus.PENDING_REVIEW,
}

STATUS_MESSAGES = {
    OrderStatus.APPROVED: "Order processed successfully",
    OrderStatus.REJECTED: "Order rejected due to fraud indicators",
    OrderStatus.PENDING_REVIEW: "Order requires manual review",
    OrderStatus.VALIDATION_ERROR: "Validation failed",
}


def best_effort(step: str, order_id, fn, *args, **kwargs) -> bool:
    """Run a side effect whose failure must not change the order outcome."""
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.exception("⚠️ %s failed for order %s; continuing", step, order_id)
        return False
    return True


def decide(order, analysis):
    """Fold an analysis into the order: score, status and reasons."""
    order.ai_score = analysis.score
    status = DECISION_TO_STATUS.get(analysis.decision)
    if status is None:
        # Unknown decisions go to a human rather than being approved or rejected
        logger.warning("Unrecognised AI decision %r for order %s; routing to manual review",
                       analysis.decision, order.order_id)
        order.status = OrderStatus.PENDING_REVIEW
        order.rejection_reasons = [f"Unrecognised AI decision: {analysis.decision}"] + list(analysis.fraud_indicators)
        return order.status

    order.status = status
    if status is not OrderStatus.APPROVED:
        order.rejection_reasons = list(analysis.fraud_indicators)
    return status


def build_response(order) -> dict:
    body = {
        "orderId": order.order_id,
        "status": order.status.value,
        "message": STATUS_MESSAGES[order.status],
    }
    if order.status is not OrderStatus.VALIDATION_ERROR:
        body["aiScore"] = order.ai_score
    if order.status is not OrderStatus.APPROVED:
        body["rejectionReasons"] = list(order.rejection_reasons)
    body["costMetrics"] = order.cost_metrics.to_dict()
    body["timestamp"] = order.processed_at
    return body


class OrderPipeline:
    """Sequences one order through every step. Collaborators are injected.

    Args:
        analyzer: object with ``analyze(order) -> FraudAnalysis``
        store: object with ``put(order)``, raising StoreFailure
        archive: object with ``put(order)``
        notifier: object with ``publish(subject, body)``
        metrics: object with ``record(namespace, metric_name, value, dimensions, unit)``
        metrics_namespace: CloudWatch namespace for the FinOps metrics
        memory_mb: memory fed to the cost model
        rates: CostRates, defaults to configuration
        clock: monotonic seconds, replaceable in tests
        now: ISO-8601 processing timestamp source
    """

    def __init__(self, analyzer, store, archive, notifier, metrics,
                 metrics_namespace="OrderProcessing/FinOps", memory_mb=512, rates=None,
                 validator=validate_order, cost_model=calculate_costs, clock=time.monotonic,
                 now=iso_now):
        self.analyzer = analyzer
        self.store = store
        self.archive = archive
        self.notifier = notifier
        self.metrics = metrics
        self.metrics_namespace = metrics_namespace
        self.memory_mb = memory_mb
        self.rates = rates
        self.validator = validator
        self.cost_model = cost_model
        self.clock = clock
        self.now = now

    def process(self, order, started_at=None):
        """Run the pipeline and return ``(status_code, response_body)``.

        Raises:
            AnalysisFailure: AI call or response parsing failed
            StoreFailure: the outcome could not be written to the store
        """
        started_at = self.clock() if started_at is None else started_at
        logger.info("Processing order %s", order.order_id)

        violations = self.validator(order)
        if violations:
            order.status = OrderStatus.VALIDATION_ERROR
            order.rejection_reasons = list(violations)
            tokens = 0
        else:
            analysis = self.analyzer.analyze(order)
            decide(order, analysis)
            tokens = analysis.tokens_used
        order.processed_at = self.now()
        logger.info("Order %s decided: %s", order.order_id, order.status.value)

        duration_ms = int((self.clock() - started_at) * 1000)
        order.cost_metrics = self.cost_model(duration_ms, self.memory_mb, tokens, self.rates)

        self.store.put(order)
        best_effort("Archive", order.order_id, self.archive.put, order)
        best_effort("Notification", order.order_id, self.notifier.publish, build_subject(order), build_message(order))
        best_effort("Metrics", order.order_id, self.emit_metrics, order)

        status_code = 400 if order.status is OrderStatus.VALIDATION_ERROR else 200
        logger.info("✅ Order %s complete - status=%s cost=$%.8f", order.order_id, order.status.value,
                    order.cost_metrics.total_processing_cost)
        return status_code, build_response(order)

    def emit_metrics(self, order):
        costs = order.cost_metrics
        dimensions = {"OrderStatus": order.status.value}
        for name, value, unit in (
            ("OrderProcessingCost", costs.total_processing_cost, "None"),
            ("BedrockTokens", costs.bedrock_tokens_used, "Count"),
            ("LambdaDuration", costs.lambda_duration_ms, "Milliseconds"),
            ("BedrockCost", costs.bedrock_cost, "None"),
        ):
            self.metrics.record(self.metrics_namespace, name, value, dimensions, unit)
