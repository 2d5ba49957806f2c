"""
Order persistence: DynamoDB (authoritative, queryable) and S3 (archive).

Table design:
  PK      ORDER#<orderId>
  SK      METADATA
  GSI1PK  STATUS#<status>      } StatusDateIndex, for status + time range queries
  GSI1SK  <processedAt ISO>    }

S3 layout: <status>/<YYYY-MM-DD>/<orderId>.json
"""

import json
import logging

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from lambdas.common.serialization import decimal_to_native, to_dynamodb_compatible
from lambdas.order_processor.errors import ArchiveFailure, StoreFailure
from lambdas.order_processor.models import Order

logger = logging.getLogger(__name__)


def build_item(order: Order) -> dict:
    snapshot = order.to_dict()
    status = order.status.value
    item = {
        "PK": f"ORDER#{order.order_id}",
        "SK": "METADATA",
        "orderId": order.order_id,
        "customerId": order.customer_id,
        "customerEmail": order.customer_email,
        "status": status,
        "totalAmount": order.total_amount,
        "timestamp": order.timestamp,
        "processedAt": order.processed_at,
        "aiScore": order.ai_score,
        "orderData": json.dumps(snapshot, default=str),
        "GSI1PK": f"STATUS#{status}",
        "GSI1SK": order.processed_at,
    }
    return to_dynamodb_compatible(item)


class DynamoOrderStore:
    def __init__(self, table, index_name: str = "StatusDateIndex"):
        self.table = table
        self.index_name = index_name

    def put(self, order: Order):
        """Upsert the order; a second put for the same id overwrites the first."""
        try:
            self.table.put_item(Item=build_item(order))
        except (ClientError, BotoCoreError) as e:
            raise StoreFailure(f"Failed to save order {order.order_id}: {e}") from e
        logger.info("Order saved to DynamoDB: %s", order.order_id)

    def get(self, order_id: str):
        response = self.table.get_item(Key={"PK": f"ORDER#{order_id}", "SK": "METADATA"})
        if "Item" not in response:
            return None
        return decimal_to_native(response["Item"])

    def query_by_status(self, status: str, start: str, end: str) -> list:
        """Order snapshots with the given status processed between start and end (ISO strings, inclusive)."""
        condition = Key("GSI1PK").eq(f"STATUS#{status}") & Key("GSI1SK").between(start, end)
        query_kwargs = {"IndexName": self.index_name, "KeyConditionExpression": condition}

        snapshots = []
        while True:
            resp = self.table.query(**query_kwargs)
            for item in resp.get("Items", []):
                snapshots.append(json.loads(item["orderData"]))
            last_evaluated_key = resp.get("LastEvaluatedKey")
            if not last_evaluated_key:
                break
            query_kwargs["ExclusiveStartKey"] = last_evaluated_key
        return snapshots


def archive_key(order: Order) -> str:
    date = (order.processed_at or order.timestamp or "")[:10]
    return f"{order.status.value.lower()}/{date}/{order.order_id}.json"


class S3OrderArchive:
    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def put(self, order: Order) -> str:
        key = archive_key(order)
        body = json.dumps(order.to_dict(), indent=2, default=str)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise ArchiveFailure(f"Failed to archive order {order.order_id}: {e}") from e
        logger.info("Order archived to s3://%s/%s", self.bucket, key)
        return key
