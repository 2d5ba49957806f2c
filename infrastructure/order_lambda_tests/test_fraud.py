import json

import pytest
from botocore.exceptions import ClientError

from conftest import FakeBackend, ai_reply
from lambdas.order_processor.bedrock import BedrockConverseBackend
from lambdas.order_processor.errors import AnalysisFailure
from lambdas.order_processor.fraud import FraudAnalyzer, build_prompt, extract_json, parse_analysis
from lambdas.order_processor.models import Order


@pytest.mark.parametrize("wrap", [None, "json-fence", "fence", "prose"])
def test_reply_shapes_parse_to_same_analysis(wrap):
    expected = parse_analysis(ai_reply("ORD-2024-002"), 10, 5)
    assert parse_analysis(ai_reply("ORD-2024-002", wrap), 10, 5) == expected
    assert expected.score == 1
    assert expected.decision == "REJECTED"
    assert expected.tokens_used == 15


def test_braces_inside_strings_do_not_confuse_extraction():
    text = 'Sure: {"score": 5, "decision": "PENDING_REVIEW", "reasoning": "odd {braces} here"} trailing }'
    assert extract_json(text)["reasoning"] == "odd {braces} here"


@pytest.mark.parametrize("text", [
    "",
    "no json at all",
    '{"score": 5, "decision": ',
    "```json\n[1, 2, 3]\n```",
])
def test_unparseable_reply_is_hard_failure(text):
    with pytest.raises(AnalysisFailure):
        parse_analysis(text)


@pytest.mark.parametrize("payload", [
    {"decision": "APPROVED"},
    {"score": 8},
    {"score": "high", "decision": "APPROVED"},
    {"score": 11, "decision": "APPROVED"},
    {"score": -1, "decision": "REJECTED"},
])
def test_missing_or_out_of_range_fields_fail(payload):
    with pytest.raises(AnalysisFailure):
        parse_analysis(json.dumps(payload))


@pytest.mark.parametrize("confidence", ["NaN", "Infinity", float("nan"), float("inf")])
def test_non_finite_confidence_is_analysis_failure(confidence):
    payload = {"score": 8, "decision": "APPROVED", "confidence": confidence}
    with pytest.raises(AnalysisFailure):
        parse_analysis(json.dumps(payload))


def test_non_finite_score_is_analysis_failure():
    with pytest.raises(AnalysisFailure):
        parse_analysis('{"score": NaN, "decision": "APPROVED"}')


def test_optional_fields_default_and_confidence_is_clamped():
    result = parse_analysis('{"score": 7.5, "decision": " approved ", "confidence": 140}')
    assert result.decision == "APPROVED"
    assert result.confidence == 100
    assert result.fraud_indicators == []
    assert result.recommendations == []
    assert result.reasoning == ""


def test_prompt_embeds_order_and_rubric(risky_order):
    prompt = build_prompt(Order.from_dict(risky_order))
    for fragment in (
        "ORD-2024-002", "CUST-99999", "deals4u@tempmail.com", "Customer Type: REGULAR",
        "Order History: 0 previous orders", "Gift Card $100", "Qty: 50", "Total Amount: $5000.00",
        "Springfield", "CREDIT_CARD (card ending 4242)", "2024-10-14T03:12:00+00:00",
        "EMAIL ANALYSIS (Weight: 20%)", "ORDER VALUE ANALYSIS (Weight: 20%)",
        "QUANTITY ANALYSIS (Weight: 15%)", "SHIPPING ADDRESS ANALYSIS (Weight: 20%)",
        "PRODUCT TYPE ANALYSIS (Weight: 10%)", "CUSTOMER HISTORY (Weight: 10%)",
        "TIMING ANALYSIS (Weight: 5%)", "Score 0-3: HIGH RISK", '"fraud_indicators"',
    ):
        assert fragment in prompt


def test_prompt_is_deterministic(risky_order):
    assert build_prompt(Order.from_dict(risky_order)) == build_prompt(Order.from_dict(risky_order))


def test_analyzer_uses_backend_token_accounting(risky_order):
    backend = FakeBackend(ai_reply("ORD-2024-002", "json-fence"), input_tokens=1200, output_tokens=210)
    result = FraudAnalyzer(backend).analyze(Order.from_dict(risky_order))

    assert len(backend.prompts) == 1
    assert result.tokens_used == 1410
    assert 0 <= result.score <= 3
    assert any("high risk" in i.lower() for i in result.fraud_indicators)


def test_backend_error_becomes_analysis_failure(good_order):
    backend = FakeBackend(error=RuntimeError("throttled"))
    with pytest.raises(AnalysisFailure):
        FraudAnalyzer(backend).analyze(Order.from_dict(good_order))


class FakeBedrockClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def converse(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def test_converse_backend_request_and_usage():
    client = FakeBedrockClient({
        "output": {"message": {"role": "assistant", "content": [{"text": '{"score": 9, '}, {"text": '"decision": "APPROVED"}'}]}},
        "usage": {"inputTokens": 812, "outputTokens": 96, "totalTokens": 908},
    })
    backend = BedrockConverseBackend(client, "amazon.nova-pro-v1:0", max_tokens=500, temperature=0.0)

    completion = backend.invoke("prompt text")

    assert completion.text == '{"score": 9, "decision": "APPROVED"}'
    assert (completion.input_tokens, completion.output_tokens) == (812, 96)
    request = client.requests[0]
    assert request["modelId"] == "amazon.nova-pro-v1:0"
    assert request["messages"] == [{"role": "user", "content": [{"text": "prompt text"}]}]
    assert request["inferenceConfig"] == {"maxTokens": 500, "temperature": 0.0}


def test_converse_backend_client_error():
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "Too many requests"}}, "Converse")
    backend = BedrockConverseBackend(FakeBedrockClient(error=error), "anthropic.claude-3-haiku-20240307-v1:0")
    with pytest.raises(AnalysisFailure):
        backend.invoke("prompt")


def test_converse_backend_bad_shape():
    backend = BedrockConverseBackend(FakeBedrockClient({"output": {}}), "anthropic.claude-3-haiku-20240307-v1:0")
    with pytest.raises(AnalysisFailure):
        backend.invoke("prompt")
