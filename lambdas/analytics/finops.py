"""
FinOps analytics over processed orders.

Sources:
  - DynamoDB (StatusDateIndex): order counts and the cost estimated per order
  - CloudWatch (OrderProcessing/FinOps): per-order metric averages
  - Cost Explorer: the actual AWS bill and a 30-day forecast

Reports are generated on request; nothing here is scheduled.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List

import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DECIDED_STATUSES = ("APPROVED", "REJECTED", "PENDING_REVIEW")
ALL_STATUSES = DECIDED_STATUSES + ("VALIDATION_ERROR",)

# costMetrics field -> report field
COST_COLUMNS = {
    "totalProcessingCost": "totalProcessingCost",
    "bedrockCost": "bedrockCost",
    "lambdaCost": "lambdaCost",
    "dynamodbCost": "dynamoDbCost",
    "s3Cost": "s3Cost",
    "snsCost": "snsCost",
    "apiGatewayCost": "apiGatewayCost",
}

# Cost Explorer SERVICE dimension substring -> report key
SERVICE_BUCKETS = (
    ("Lambda", "actualLambdaCost"),
    ("DynamoDB", "actualDynamoDbCost"),
    ("S3", "actualS3Cost"),
    ("Simple Storage Service", "actualS3Cost"),
    ("Bedrock", "actualBedrockCost"),
    ("SNS", "actualSnsCost"),
    ("Simple Notification", "actualSnsCost"),
    ("API Gateway", "actualApiGatewayCost"),
)
ACTUAL_COST_KEYS = (
    "actualLambdaCost",
    "actualDynamoDbCost",
    "actualS3Cost",
    "actualBedrockCost",
    "actualSnsCost",
    "actualApiGatewayCost",
)

HIGH_COST_PER_ORDER = 0.005
BEDROCK_OVERRUN_RATIO = 1.2
HIGH_REJECTION_RATE = 0.30
HIGH_VALIDATION_ERROR_RATE = 0.10


def _pct_change(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (current - previous) / previous * 100.0


class OrderAnalytics:
    """Order statistics from the structured store."""

    def __init__(self, store):
        self.store = store

    def load_orders(self, start: date, end: date) -> pd.DataFrame:
        """One row per order processed between start and end (inclusive days)."""
        lower = start.isoformat()
        upper = (end + timedelta(days=1)).isoformat()

        rows = []
        for status in ALL_STATUSES:
            for snapshot in self.store.query_by_status(status, lower, upper):
                costs = snapshot.get("costMetrics") or {}
                row = {
                    "orderId": snapshot.get("orderId"),
                    "status": snapshot.get("status") or status,
                    "day": (snapshot.get("processedAt") or "")[:10],
                    "totalAmount": snapshot.get("totalAmount") or 0.0,
                    "bedrockTokensUsed": costs.get("bedrockTokensUsed") or 0,
                }
                for src in COST_COLUMNS:
                    row[src] = costs.get(src) or 0.0
                rows.append(row)

        columns = ["orderId", "status", "day", "totalAmount", "bedrockTokensUsed"] + list(COST_COLUMNS)
        return pd.DataFrame(rows, columns=columns)

    def order_statistics(self, start: date, end: date) -> Dict:
        df = self.load_orders(start, end)
        counts = df["status"].value_counts()

        approved = int(counts.get("APPROVED", 0))
        rejected = int(counts.get("REJECTED", 0))
        pending = int(counts.get("PENDING_REVIEW", 0))
        stats = {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "totalOrders": approved + rejected + pending,
            "approvedOrders": approved,
            "rejectedOrders": rejected,
            "pendingReviewOrders": pending,
            "validationErrorOrders": int(counts.get("VALIDATION_ERROR", 0)),
            "totalBedrockTokens": int(df["bedrockTokensUsed"].sum()),
            "totalOrderValue": float(df["totalAmount"].sum()),
        }
        for src, dest in COST_COLUMNS.items():
            stats[dest] = float(df[src].sum())

        stats["daily"] = []
        if not df.empty:
            daily = (
                df.groupby("day")
                  .agg(orders=("orderId", "count"), totalProcessingCost=("totalProcessingCost", "sum"))
                  .reset_index()
                  .sort_values("day")
            )
            stats["daily"] = [
                {"date": r.day, "orders": int(r.orders), "totalProcessingCost": float(r.totalProcessingCost)}
                for r in daily.itertuples(index=False)
            ]

        logger.info("Retrieved statistics for %s to %s: %d decided orders (%d rows)",
                    start, end, stats["totalOrders"], len(df))
        return stats


class MetricsAnalytics:
    """Averages of the custom FinOps metrics in CloudWatch."""

    METRICS = (
        ("OrderProcessingCost", "avgOrderCost"),
        ("BedrockTokens", "avgBedrockTokens"),
        ("LambdaDuration", "avgLambdaDuration"),
    )

    def __init__(self, client, namespace: str = "OrderProcessing/FinOps"):
        self.client = client
        self.namespace = namespace

    def metric_average(self, metric_name: str, start_time: datetime, end_time: datetime) -> float:
        """Average over every status dimension; 0.0 when there is no data or the query fails."""
        total = 0.0
        samples = 0.0
        for status in ALL_STATUSES:
            try:
                resp = self.client.get_metric_statistics(
                    Namespace=self.namespace,
                    MetricName=metric_name,
                    Dimensions=[{"Name": "OrderStatus", "Value": status}],
                    StartTime=start_time,
                    EndTime=end_time,
                    Period=86400,
                    Statistics=["Sum", "SampleCount"],
                )
            except (ClientError, BotoCoreError):
                logger.exception("Error getting metric %s for status %s", metric_name, status)
                continue
            for point in resp.get("Datapoints", []):
                total += point.get("Sum", 0.0)
                samples += point.get("SampleCount", 0.0)
        return total / samples if samples else 0.0

    def metric_averages(self, start: date, end: date) -> Dict[str, float]:
        start_time = datetime.combine(start, time.min, tzinfo=timezone.utc)
        end_time = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        averages = {key: self.metric_average(name, start_time, end_time) for name, key in self.METRICS}
        logger.info("Retrieved CloudWatch metrics: %s", averages)
        return averages


class BillingAnalytics:
    """Actual costs and forecasts from Cost Explorer."""

    def __init__(self, client):
        self.client = client

    def actual_costs(self, start: date, end: date) -> Dict[str, float]:
        """Unblended cost per service bucket, rounded to 5 decimals. Zeros when the query fails."""
        costs = {key: 0.0 for key in ACTUAL_COST_KEYS}
        # Cost Explorer's end date is exclusive and must be after the start
        request = {
            "TimePeriod": {"Start": start.isoformat(), "End": (end + timedelta(days=1)).isoformat()},
            "Granularity": "DAILY",
            "Metrics": ["UnblendedCost"],
            "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
        }
        try:
            while True:
                resp = self.client.get_cost_and_usage(**request)
                for result in resp.get("ResultsByTime", []):
                    for group in result.get("Groups", []):
                        service = group["Keys"][0]
                        amount = float(group["Metrics"]["UnblendedCost"]["Amount"])
                        for needle, key in SERVICE_BUCKETS:
                            if needle in service:
                                costs[key] += amount
                                break
                token = resp.get("NextPageToken")
                if not token:
                    break
                request["NextPageToken"] = token
        except (ClientError, BotoCoreError):
            logger.exception("Error querying Cost Explorer")
            return {key: 0.0 for key in ACTUAL_COST_KEYS}

        costs = {k: round(v, 5) for k, v in costs.items()}
        logger.info("Retrieved actual costs from Cost Explorer: %s", costs)
        return costs

    def forecast(self, days: int = 30, today: date = None) -> float:
        today = today or datetime.now(timezone.utc).date()
        try:
            resp = self.client.get_cost_forecast(
                TimePeriod={"Start": today.isoformat(), "End": (today + timedelta(days=days)).isoformat()},
                Metric="UNBLENDED_COST",
                Granularity="MONTHLY",
            )
            return float(resp["Total"]["Amount"])
        except (ClientError, BotoCoreError):
            logger.exception("Error getting cost forecast")
            return 0.0


@dataclass
class FinOpsReport:
    reportDate: str
    period: str
    startDate: str
    endDate: str

    totalOrders: int = 0
    approvedOrders: int = 0
    rejectedOrders: int = 0
    pendingReviewOrders: int = 0
    validationErrorOrders: int = 0

    # Estimated (computed per order by the pipeline)
    totalProcessingCost: float = 0.0
    bedrockCost: float = 0.0
    lambdaCost: float = 0.0
    dynamoDbCost: float = 0.0
    s3Cost: float = 0.0
    snsCost: float = 0.0
    apiGatewayCost: float = 0.0
    avgOrderCost: float = 0.0

    # Actual (Cost Explorer)
    actualLambdaCost: float = 0.0
    actualDynamoDbCost: float = 0.0
    actualS3Cost: float = 0.0
    actualBedrockCost: float = 0.0
    actualSnsCost: float = 0.0
    actualApiGatewayCost: float = 0.0

    estimatedVsActualVariance: float = 0.0   # %
    costTrend: float = 0.0                   # % vs previous period
    orderTrend: float = 0.0                  # % vs previous period
    forecastedMonthlyCost: float = 0.0
    optimizationRecommendations: List[str] = field(default_factory=list)

    def estimated_total(self) -> float:
        return (self.bedrockCost + self.lambdaCost + self.dynamoDbCost
                + self.s3Cost + self.snsCost + self.apiGatewayCost)

    def actual_total(self) -> float:
        return (self.actualBedrockCost + self.actualLambdaCost + self.actualDynamoDbCost
                + self.actualS3Cost + self.actualSnsCost + self.actualApiGatewayCost)

    def to_dict(self) -> dict:
        return asdict(self)


def generate_recommendations(report: FinOpsReport) -> List[str]:
    recommendations = []

    if report.totalOrders > 0:
        cost_per_order = report.totalProcessingCost / report.totalOrders
        if cost_per_order > HIGH_COST_PER_ORDER:
            recommendations.append("High cost per order detected. Review Bedrock token usage.")
        if report.rejectedOrders / report.totalOrders > HIGH_REJECTION_RATE:
            recommendations.append("Rejection rate above 30%. Review upstream traffic quality.")

    if report.actualBedrockCost > report.bedrockCost * BEDROCK_OVERRUN_RATIO:
        recommendations.append("Bedrock costs 20% higher than estimated. Update cost calculator.")

    submitted = report.totalOrders + report.validationErrorOrders
    if submitted and report.validationErrorOrders / submitted > HIGH_VALIDATION_ERROR_RATE:
        recommendations.append("Many orders fail validation. Validate on the client before submitting.")

    return recommendations


class ReportBuilder:
    def __init__(self, orders: OrderAnalytics, metrics: MetricsAnalytics, billing: BillingAnalytics):
        self.orders = orders
        self.metrics = metrics
        self.billing = billing

    def build(self, start: date, end: date) -> FinOpsReport:
        logger.info("Generating FinOps report for %s to %s", start, end)

        report = FinOpsReport(
            reportDate=end.isoformat(),
            period="Daily" if start == end else "Custom",
            startDate=start.isoformat(),
            endDate=end.isoformat(),
        )

        stats = self.orders.order_statistics(start, end)
        for name in ("totalOrders", "approvedOrders", "rejectedOrders", "pendingReviewOrders",
                     "validationErrorOrders"):
            setattr(report, name, stats[name])
        for name in COST_COLUMNS.values():
            setattr(report, name, stats[name])

        report.avgOrderCost = self.metrics.metric_averages(start, end).get("avgOrderCost", 0.0)

        for key, value in self.billing.actual_costs(start, end).items():
            setattr(report, key, value)

        estimated = report.estimated_total()
        report.estimatedVsActualVariance = _pct_change(report.actual_total(), estimated)

        # Previous period of the same length, for trends
        length = (end - start).days + 1
        prev_end = start - timedelta(days=1)
        prev_start = prev_end - timedelta(days=length - 1)
        previous = self.orders.order_statistics(prev_start, prev_end)
        report.costTrend = _pct_change(report.totalProcessingCost, previous["totalProcessingCost"])
        report.orderTrend = _pct_change(report.totalOrders, previous["totalOrders"])

        report.forecastedMonthlyCost = self.billing.forecast()
        report.optimizationRecommendations = generate_recommendations(report)

        logger.info("Report generated: %d orders, $%.5f estimated cost", report.totalOrders, report.totalProcessingCost)
        return report
