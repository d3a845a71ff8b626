#!/usr/bin/env python3
"""
Tests for Bedrock request building, response parsing and the model fallback chain
"""

import pytest

from bedrock_client import (
    AIGenerationError,
    BedrockService,
    build_request_body,
    extract_json,
    extract_response_text,
)
from conftest import FakeBedrockRuntime, anthropic_body, client_error, nova_body
from summary_generator import SummaryGenerator

NOVA = "amazon.nova-pro-v1:0"
CLAUDE = "anthropic.claude-3-haiku-20240307-v1:0"


def test_nova_request_body():
    body = build_request_body(NOVA, "hello", max_tokens=100, temperature=0.5, top_p=0.9)
    assert body == {
        "messages": [{"role": "user", "content": [{"text": "hello"}]}],
        "inferenceConfig": {"maxTokens": 100, "temperature": 0.5, "topP": 0.9},
    }


def test_anthropic_request_body():
    body = build_request_body(CLAUDE, "hello", max_tokens=100)
    assert body["messages"] == [{"role": "user", "content": "hello"}]
    assert body["max_tokens"] == 100
    assert "anthropic_version" in body
    assert "top_p" not in body


def test_extract_response_text_shapes():
    assert extract_response_text(nova_body("nova")) == "nova"
    assert extract_response_text(anthropic_body("claude")) == "claude"
    assert extract_response_text({"output": {"text": "plain"}}) == "plain"
    with pytest.raises(AIGenerationError):
        extract_response_text({"unexpected": True})


def test_extract_json_from_prose():
    assert extract_json('Here you go:\n```json\n[{"a": 1}]\n```', "array") == [{"a": 1}]
    assert extract_json('Sure! {"summary": "x"} Hope it helps', "object") == {"summary": "x"}
    with pytest.raises(AIGenerationError):
        extract_json("no json at all", "object")
    with pytest.raises(AIGenerationError):
        extract_json("{not: valid}", "object")


def test_invoke_with_fallback_moves_to_next_model():
    runtime = FakeBedrockRuntime({
        NOVA: client_error("AccessDeniedException", "You don't have access to the model"),
        CLAUDE: anthropic_body("second model answer"),
    })
    service = BedrockService(client=runtime, models=[NOVA, CLAUDE])

    assert service.invoke_with_fallback("prompt") == "second model answer"
    assert [model for model, _ in runtime.calls] == [NOVA, CLAUDE]


def test_invoke_with_fallback_parse_failure_tries_next_model():
    runtime = FakeBedrockRuntime({
        NOVA: nova_body("not json"),
        CLAUDE: anthropic_body('[{"front": "x"}]'),
    })
    service = BedrockService(client=runtime, models=[NOVA, CLAUDE])

    result = service.invoke_with_fallback("prompt", parse=lambda raw: extract_json(raw, "array"))
    assert result == [{"front": "x"}]


def test_invoke_with_fallback_all_models_fail():
    service = BedrockService(client=FakeBedrockRuntime(), models=[NOVA, CLAUDE])
    with pytest.raises(AIGenerationError, match="All AI models failed"):
        service.invoke_with_fallback("prompt")


def test_injected_client_counts_as_available():
    assert BedrockService(client=FakeBedrockRuntime(), models=[NOVA]).is_available()


def test_summary_generator_uses_model_answer(study_text):
    runtime = FakeBedrockRuntime({NOVA: nova_body('{"summary": "Plants make food.", "keyPoints": ["light"]}')})
    generator = SummaryGenerator(bedrock=BedrockService(client=runtime, models=[NOVA]))

    summary = generator.generate_summary(study_text)

    assert summary["summary"] == "Plants make food."
    assert summary["keyPoints"] == ["light"]
    assert summary["wordCount"] == 3
    assert summary["originalWordCount"] == len(study_text.split())
    assert runtime.calls[0][1]["inferenceConfig"]["maxTokens"] == 1500
