#!/usr/bin/env python3
"""
Tests for the chat assistant, format recommendations and user-facing error messages
"""

from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError
from openai import OpenAIError

from bedrock_client import AIGenerationError, BedrockService
from chat_service import DEFAULT_REPLY, SYSTEM_PROMPT, ChatService, build_messages, get_fallback_response
from conftest import FakeBedrockRuntime, client_error, nova_body
from recommend_service import RecommendService, parse_recommendation
from user_friendly_errors import (
    aws_error_code,
    describe_video_error,
    friendly_error,
    get_context_specific_error,
    get_user_friendly_error,
)

MODEL = "amazon.nova-pro-v1:0"


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def make_chat(content=None, error=None):
    completions = FakeCompletions(content, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return ChatService(client=client, model="gpt-test"), completions


# Chat

def test_fallback_replies_match_keywords():
    assert get_fallback_response("Can you explain calculus?").startswith("I can help with math problems")
    assert get_fallback_response("I have a BIOLOGY test").startswith("Science is fascinating")
    assert get_fallback_response("ok") == DEFAULT_REPLY


def test_build_messages_keeps_valid_turns():
    messages = build_messages("next question", [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "answer"},
        {"role": "system", "content": "ignored"},
        {"role": "user", "content": None},
    ])
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1:] == [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "answer"},
        {"role": "user", "content": "next question"},
    ]


def test_reply_uses_openai():
    chat, completions = make_chat(content="  Mitochondria make ATP.  ")

    reply = chat.reply("What do mitochondria do?", [{"role": "user", "content": "hi"}])

    assert reply["response"] == "Mitochondria make ATP."
    assert reply["model"] == "gpt-test"
    assert "timestamp" in reply
    assert completions.kwargs["max_tokens"] == 300
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["messages"][-1] == {"role": "user", "content": "What do mitochondria do?"}


def test_reply_falls_back_on_openai_error():
    chat, _ = make_chat(error=OpenAIError("rate limited"))
    reply = chat.reply("Give me a quiz")
    assert reply["response"].startswith("Practice makes perfect")


def test_reply_with_empty_completion():
    chat, _ = make_chat(content="")
    assert chat.reply("anything")["response"].startswith("I apologize")


# Recommendations

@pytest.mark.parametrize("text,expected", [
    ("quiz", "quiz"),
    ("  Flashcards.\n", "flashcards"),
    ("I would recommend a mindmap", "mindmap"),
    ("podcast", "summary"),
    ("", "summary"),
    (None, "summary"),
])
def test_parse_recommendation(text, expected):
    assert parse_recommendation(text) == expected


def test_recommend_asks_nova():
    runtime = FakeBedrockRuntime({MODEL: nova_body("video")})
    service = RecommendService(bedrock=BedrockService(client=runtime, models=[MODEL]), model_id=MODEL)

    assert service.recommend("how volcanoes erupt") == "video"
    body = runtime.calls[0][1]
    assert "how volcanoes erupt" in body["messages"][0]["content"][0]["text"]
    assert body["inferenceConfig"]["maxTokens"] == 300


def test_recommend_wraps_bedrock_errors():
    runtime = FakeBedrockRuntime({MODEL: client_error("ThrottlingException", "slow down")})
    service = RecommendService(bedrock=BedrockService(client=runtime, models=[MODEL]), model_id=MODEL)
    with pytest.raises(AIGenerationError):
        service.recommend("anything")


# Error messages

def test_friendly_error_lookup():
    assert get_user_friendly_error("ThrottlingException").startswith("The AI service is busy")
    assert get_user_friendly_error("NotARealError") == "Something went wrong. Please try again in a moment."
    assert get_context_specific_error("INVALID_FILE_TYPE", "upload") == "Please upload a PDF file."
    assert get_context_specific_error("EMPTY_FILE", "upload") == get_user_friendly_error("EMPTY_FILE")


def test_aws_error_code():
    assert aws_error_code(client_error("AccessDeniedException", "no")) == "AccessDeniedException"
    assert aws_error_code(ValueError("x")) == "ValueError"


def test_aws_error_code_follows_wrapped_errors():
    try:
        try:
            raise client_error("ThrottlingException", "Rate exceeded")
        except ClientError as e:
            raise AIGenerationError("All AI models failed") from e
    except AIGenerationError as wrapped:
        assert aws_error_code(wrapped) == "ThrottlingException"
        assert friendly_error(wrapped, "video").startswith("Too many videos")

    assert aws_error_code(AIGenerationError("No valid JSON")) == "AIGenerationError"


def test_friendly_error_by_context():
    assert friendly_error(AIGenerationError("x"), "exam").startswith("We couldn't generate the exam paper")
    assert friendly_error(client_error("ValidationException", "blocked"), "picture").startswith("This picture request")
    assert friendly_error(OpenAIError("boom")).startswith("Something went wrong")


def test_describe_video_error_bucket_missing():
    error = client_error("ValidationException", "Invalid Output Config/Credentials", "StartAsyncInvoke")
    status, body = describe_video_error(error, bucket="my-videos", region="us-east-1")
    assert status == 400
    assert body["bucketName"] == "my-videos"
    assert body["region"] == "us-east-1"
    assert any("my-videos" in step for step in body["instructions"])


def test_describe_video_error_other_cases():
    status, body = describe_video_error(client_error("AccessDeniedException", "denied"), bucket="b", region="r")
    assert status == 403
    assert body["message"] == "Access denied"

    status, body = describe_video_error(
        client_error("ValidationException", "The provided model identifier is invalid"), bucket="b", region="r")
    assert status == 400
    assert body["message"] == "Nova Reel model not available"

    status, body = describe_video_error(client_error("InternalServerException", "oops"), bucket="b", region="r")
    assert status == 500
    assert body["message"] == "Internal Server Error"
    assert body["name"] == "InternalServerException"
