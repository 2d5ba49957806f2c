import os

# ----------------- AWS -----------------
REGION = os.environ.get("AWS_REGION", "us-east-1")
ORDERS_TABLE = os.environ.get("ORDERS_TABLE", "OrderProcessing-Orders")
STATUS_INDEX_NAME = os.environ.get("STATUS_INDEX_NAME", "StatusDateIndex")
ARCHIVE_BUCKET = os.environ.get("ARCHIVE_BUCKET", "order-processing-archive")
SNS_TOPIC_ARN = os.environ.get("SNS_TOPIC_ARN")
METRICS_NAMESPACE = os.environ.get("METRICS_NAMESPACE", "OrderProcessing/FinOps")

# ----------------- Notifications -----------------
NOTIFY_CHANNEL = os.environ.get("NOTIFY_CHANNEL", "sns").lower()  # "sns" or "sms"
NOTIFY_PHONE_NUMBER = os.environ.get("NOTIFY_PHONE_NUMBER")
TWILIO_SID = os.environ.get("TWILIO_ACCOUNT_SID")
TWILIO_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
TWILIO_FROM = os.environ.get("TWILIO_FROM_NUMBER")

# ----------------- AI backend -----------------
# Swap models without a code change, e.g. amazon.nova-pro-v1:0 or meta.llama3-3-70b-instruct-v1:0
BEDROCK_MODEL_ID = os.environ.get("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")
BEDROCK_MAX_TOKENS = int(os.environ.get("BEDROCK_MAX_TOKENS", "1000"))
BEDROCK_TEMPERATURE = float(os.environ.get("BEDROCK_TEMPERATURE", "0.1"))

# ----------------- Compute -----------------
LAMBDA_MEMORY_MB = int(os.environ.get("AWS_LAMBDA_FUNCTION_MEMORY_SIZE", "512"))

# ----------------- Cost rates (us-east-1 list prices) -----------------
BEDROCK_COST_PER_1K_TOKENS = float(os.environ.get("COST_RATE_BEDROCK_PER_1K_TOKENS", "0.003"))
LAMBDA_COST_PER_GB_SECOND = float(os.environ.get("COST_RATE_LAMBDA_PER_GB_SECOND", "0.0000166667"))
DYNAMODB_WRITE_COST_PER_MILLION = float(os.environ.get("COST_RATE_DYNAMODB_WRITE_PER_MILLION", "1.25"))
S3_PUT_COST_PER_1K = float(os.environ.get("COST_RATE_S3_PUT_PER_1K", "0.005"))
SNS_COST_PER_MILLION = float(os.environ.get("COST_RATE_SNS_PER_MILLION", "0.50"))
API_GATEWAY_COST_PER_MILLION = float(os.environ.get("COST_RATE_API_GATEWAY_PER_MILLION", "3.50"))
