"""
Per-order cost accounting.

Turns the resources one order consumed (Lambda time and memory, Bedrock
tokens, one write to each downstream service) into a cost breakdown.
Pure: the same inputs always give the same breakdown. Rounding is left to
whoever displays the numbers.
"""

import logging
from dataclasses import dataclass

from lambdas.order_processor import config
from lambdas.order_processor.models import CostBreakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostRates:
    """Unit prices, in USD, for every service an order touches."""
    bedrock_per_1k_tokens: float
    lambda_per_gb_second: float
    dynamodb_write_per_million: float
    s3_put_per_1k: float
    sns_per_million: float
    api_gateway_per_million: float

    @classmethod
    def from_config(cls) -> "CostRates":
        return cls(
            bedrock_per_1k_tokens=config.BEDROCK_COST_PER_1K_TOKENS,
            lambda_per_gb_second=config.LAMBDA_COST_PER_GB_SECOND,
            dynamodb_write_per_million=config.DYNAMODB_WRITE_COST_PER_MILLION,
            s3_put_per_1k=config.S3_PUT_COST_PER_1K,
            sns_per_million=config.SNS_COST_PER_MILLION,
            api_gateway_per_million=config.API_GATEWAY_COST_PER_MILLION,
        )


def bedrock_cost(tokens: int, rates: CostRates) -> float:
    return (tokens / 1000.0) * rates.bedrock_per_1k_tokens


def lambda_cost(duration_ms: int, memory_mb: int, rates: CostRates) -> float:
    # (memory in GB) x (duration in seconds) x price per GB-second
    gb_seconds = (memory_mb / 1024.0) * (duration_ms / 1000.0)
    return gb_seconds * rates.lambda_per_gb_second


def calculate_costs(duration_ms: int, memory_mb: int, bedrock_tokens: int, rates: CostRates = None) -> CostBreakdown:
    """Cost of processing one order.

    Args:
        duration_ms: Wall time spent on the order
        memory_mb: Memory allocated to the function
        bedrock_tokens: Input plus output tokens; 0 when the AI was never called
        rates: Unit prices, defaults to the configured rates

    Raises:
        ValueError: If any usage figure is negative
    """
    if duration_ms < 0 or memory_mb < 0 or bedrock_tokens < 0:
        raise ValueError(
            f"Usage must be non-negative: duration_ms={duration_ms} memory_mb={memory_mb} tokens={bedrock_tokens}"
        )
    rates = rates or CostRates.from_config()

    ai = bedrock_cost(bedrock_tokens, rates)
    compute = lambda_cost(duration_ms, memory_mb, rates)
    store = rates.dynamodb_write_per_million / 1_000_000   # 1 write
    archive = rates.s3_put_per_1k / 1_000                   # 1 PUT
    notify = rates.sns_per_million / 1_000_000              # 1 message
    gateway = rates.api_gateway_per_million / 1_000_000     # 1 request

    breakdown = CostBreakdown(
        bedrock_tokens_used=bedrock_tokens,
        bedrock_cost=ai,
        lambda_duration_ms=duration_ms,
        lambda_cost=compute,
        dynamodb_write_units=1,
        dynamodb_cost=store,
        s3_put_requests=1,
        s3_cost=archive,
        sns_notifications=1,
        sns_cost=notify,
        api_gateway_calls=1,
        api_gateway_cost=gateway,
        total_processing_cost=ai + compute + store + archive + notify + gateway,
    )

    logger.info("Calculated costs - total=$%.8f bedrock=$%.8f lambda=$%.8f",
                breakdown.total_processing_cost, breakdown.bedrock_cost, breakdown.lambda_cost)
    return breakdown
