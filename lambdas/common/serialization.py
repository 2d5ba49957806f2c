import json
from decimal import Decimal


def to_dynamodb_compatible(obj):
    """Recursively convert floats to Decimal for DynamoDB serialization."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamodb_compatible(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [to_dynamodb_compatible(v) for v in obj]
    return obj


def decimal_to_native(x):
    if isinstance(x, Decimal):
        if x % 1 == 0:
            return int(x)
        return float(x)
    if isinstance(x, dict):
        return {k: decimal_to_native(v) for k, v in x.items()}
    if isinstance(x, list):
        return [decimal_to_native(i) for i in x]
    return x


def json_response(status_code: int, body) -> dict:
    """API Gateway proxy response with JSON body and CORS header."""
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
        },
        "body": json.dumps(decimal_to_native(body), default=str),
    }
