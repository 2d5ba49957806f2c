import logging
from collections import namedtuple

from botocore.exceptions import BotoCoreError, ClientError

from lambdas.order_processor.errors import AnalysisFailure

logger = logging.getLogger(__name__)

Completion = namedtuple("Completion", ["text", "input_tokens", "output_tokens"])


class BedrockConverseBackend:
    """Text completion through the Bedrock Converse API.

    Converse has one request shape for Claude, Llama, Titan and Nova, so the
    model is just configuration.
    """

    def __init__(self, client, model_id: str, max_tokens: int = 1000, temperature: float = 0.1):
        if not model_id:
            raise ValueError("model_id is required")
        self.client = client
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info("Bedrock backend initialized with model: %s", model_id)

    def invoke(self, prompt: str) -> Completion:
        try:
            response = self.client.converse(
                modelId=self.model_id,
                messages=[{"role": "user", "content": [{"text": prompt}]}],
                inferenceConfig={"maxTokens": self.max_tokens, "temperature": self.temperature},
            )
        except (ClientError, BotoCoreError) as e:
            raise AnalysisFailure(f"Bedrock converse failed: {e}") from e

        try:
            blocks = response["output"]["message"]["content"]
            text = "".join(block.get("text", "") for block in blocks)
            usage = response["usage"]
            return Completion(text, int(usage["inputTokens"]), int(usage["outputTokens"]))
        except (KeyError, TypeError, ValueError) as e:
            raise AnalysisFailure(f"Unexpected Bedrock response shape: {e}") from e
