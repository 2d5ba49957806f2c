import logging
from datetime import datetime, timezone

from botocore.exceptions import BotoCoreError, ClientError

from lambdas.order_processor.errors import MetricsFailure

logger = logging.getLogger(__name__)


class CloudWatchMetricsSink:
    """Custom FinOps metrics in CloudWatch, one datum per call."""

    def __init__(self, client):
        self.client = client

    def record(self, namespace: str, metric_name: str, value: float, dimensions: dict = None, unit: str = "None"):
        datum = {
            "MetricName": metric_name,
            "Value": float(value),
            "Unit": unit,
            "Timestamp": datetime.now(timezone.utc),
            "Dimensions": [{"Name": k, "Value": str(v)} for k, v in (dimensions or {}).items()],
        }
        try:
            self.client.put_metric_data(Namespace=namespace, MetricData=[datum])
        except (ClientError, BotoCoreError) as e:
            raise MetricsFailure(f"put_metric_data failed for {metric_name}: {e}") from e
