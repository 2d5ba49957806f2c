# Run from the repo root: python -m infrastructure.seed_db [table_name]
import json
import sys

import boto3

from infrastructure.sample_data import SAMPLE_AI_RESPONSES, SAMPLE_ORDERS
from lambdas.order_processor.bedrock import Completion
from lambdas.order_processor.fraud import FraudAnalyzer
from lambdas.order_processor.models import Order
from lambdas.order_processor.pipeline import OrderPipeline
from lambdas.order_processor.stores import DynamoOrderStore

# Every seeded run is billed as 875 ms of compute
SEED_CLOCK_READINGS = (0.0, 0.875)


class CannedBackend:
    """Answers every prompt with the stored AI reply for one sample order."""
    def __init__(self, text, input_tokens=900, output_tokens=150):
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens

    def invoke(self, prompt):
        return Completion(self.text, self.input_tokens, self.output_tokens)


class Discard:
    """Store, archive, notifier and metrics sink that keeps nothing."""
    def put(self, order):
        return None

    def publish(self, subject, body):
        return None

    def record(self, *args, **kwargs):
        return None


def seed_orders(store):
    """Run every sample order through the pipeline, writing outcomes to store.

    Orders keep their sample timestamp as the processing time so the
    seeded data lands on a known day.
    """
    orders = []
    discard = Discard()
    for payload in SAMPLE_ORDERS:
        order = Order.from_dict(payload)
        reply = SAMPLE_AI_RESPONSES.get(order.order_id)
        pipeline = OrderPipeline(
            analyzer=FraudAnalyzer(CannedBackend(json.dumps(reply) if reply else None)),
            store=store,
            archive=discard,
            notifier=discard,
            metrics=discard,
            clock=iter(SEED_CLOCK_READINGS).__next__,
            now=lambda ts=order.timestamp: ts,
        )
        pipeline.process(order)
        orders.append(order)
    return orders


def build_seed_orders():
    """Decide every sample order offline without touching AWS."""
    return seed_orders(Discard())


def seed_orders_table(table_name="OrderProcessing-Orders", dynamodb=None):
    dynamodb = dynamodb or boto3.resource('dynamodb')

    print(f"Seeding {table_name}...")
    orders = seed_orders(DynamoOrderStore(dynamodb.Table(table_name)))

    print(f"Orders table seeded with {len(orders)} orders!")
    return orders


if __name__ == '__main__':
    seed_orders_table(sys.argv[1] if len(sys.argv) > 1 else "OrderProcessing-Orders")
