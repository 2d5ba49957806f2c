import sys
from pathlib import Path

# ---- Make repo root importable (tests live two dirs below repo root) ----
repo_root = Path(__file__).resolve().parents[2]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

import copy
import json
import os
import pytest
from moto import mock_aws
import boto3

from infrastructure.sample_data import SAMPLE_AI_RESPONSES, SAMPLE_ORDERS
from lambdas.order_processor.bedrock import Completion

AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
ORDERS_TABLE = "OrderProcessing-Orders"
ARCHIVE_BUCKET = "order-archive-test"


@pytest.fixture(scope="function")
def aws_env(monkeypatch):
    monkeypatch.setenv("AWS_DEFAULT_REGION", AWS_REGION)
    monkeypatch.setenv("AWS_REGION", AWS_REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    yield


@pytest.fixture(scope="function")
def moto_aws(aws_env):
    with mock_aws():
        yield


def create_orders_table(dynamodb_client, name=ORDERS_TABLE, index_name="StatusDateIndex"):
    return dynamodb_client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
            {"AttributeName": "GSI1PK", "AttributeType": "S"},
            {"AttributeName": "GSI1SK", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[{
            "IndexName": index_name,
            "KeySchema": [
                {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
            ],
            "Projection": {"ProjectionType": "ALL"},
        }],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture()
def ddb_resource(moto_aws):
    return boto3.resource("dynamodb", region_name=AWS_REGION)


@pytest.fixture()
def orders_table(ddb_resource):
    create_orders_table(ddb_resource.meta.client)
    return ddb_resource.Table(ORDERS_TABLE)


@pytest.fixture()
def s3_client(moto_aws):
    client = boto3.client("s3", region_name=AWS_REGION)
    client.create_bucket(Bucket=ARCHIVE_BUCKET)
    return client


@pytest.fixture()
def sns_client(moto_aws):
    return boto3.client("sns", region_name=AWS_REGION)


@pytest.fixture()
def cloudwatch_client(moto_aws):
    return boto3.client("cloudwatch", region_name=AWS_REGION)


@pytest.fixture()
def good_order():
    return copy.deepcopy(SAMPLE_ORDERS[0])


@pytest.fixture()
def risky_order():
    return copy.deepcopy(SAMPLE_ORDERS[1])


@pytest.fixture()
def bad_order():
    return copy.deepcopy(SAMPLE_ORDERS[2])


def ai_reply(order_id, wrap=None):
    """Canned model reply for a sample order, optionally fenced or wrapped in prose."""
    payload = json.dumps(SAMPLE_AI_RESPONSES[order_id], indent=2)
    if wrap == "json-fence":
        return f"```json\n{payload}\n```"
    if wrap == "fence":
        return f"```\n{payload}\n```"
    if wrap == "prose":
        return f"Here is my assessment of the order.\n{payload}\nLet me know if you need more detail."
    return payload


class FakeBackend:
    """Text-completion backend that answers from a script and counts calls."""
    def __init__(self, text=None, input_tokens=900, output_tokens=150, error=None):
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.error = error
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return Completion(self.text, self.input_tokens, self.output_tokens)


class Spy:
    def __init__(self, error=None):
        self.calls = []
        self.error = error
    def __call__(self, *a, **kw):
        self.calls.append({"args": a, "kwargs": kw})
        if self.error is not None:
            raise self.error
        return "ok"


class FakeStore:
    def __init__(self, error=None):
        self.put = Spy(error)


class FakeArchive:
    def __init__(self, error=None):
        self.put = Spy(error)


class FakeNotifier:
    def __init__(self, error=None):
        self.publish = Spy(error)


class FakeMetrics:
    def __init__(self, error=None):
        self.record = Spy(error)


@pytest.fixture()
def spy():
    return Spy()
