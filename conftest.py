"""
Shared pytest fixtures: a sample study text and an in-memory stand-in for
the bedrock-runtime client.
"""

import io
import json

import pytest
from botocore.exceptions import ClientError


STUDY_TEXT = (
    "Photosynthesis is the process plants use to convert sunlight into chemical energy. "
    "Chlorophyll inside the chloroplasts absorbs light and drives the reaction. "
    "The important products of photosynthesis are glucose and oxygen. "
    "Cellular respiration later releases the stored energy for growth. "
    "Farmers depend on photosynthesis because crop yields follow light availability. "
    "Scientists measure photosynthesis rates with carbon dioxide sensors."
)


class FakeBedrockRuntime:
    """Answers invoke_model calls from a per-model table of bodies or exceptions."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []
        self.async_calls = []
        self.async_results = {}

    def invoke_model(self, modelId, contentType, accept, body):
        self.calls.append((modelId, json.loads(body)))
        outcome = self.responses.get(modelId)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise client_error("ValidationException", f"The provided model identifier {modelId} is invalid")
        return {"body": io.BytesIO(json.dumps(outcome).encode("utf-8"))}

    def start_async_invoke(self, modelId, modelInput, outputDataConfig):
        self.async_calls.append((modelId, modelInput, outputDataConfig))
        outcome = self.responses.get("start_async_invoke")
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return {"invocationArn": outcome or f"arn:aws:bedrock:us-east-1:123:async-invoke/job{len(self.async_calls)}"}

    def get_async_invoke(self, invocationArn):
        outcome = self.async_results[invocationArn]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def client_error(code, message, operation="InvokeModel"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def nova_body(text):
    return {"output": {"message": {"content": [{"text": text}]}}}


def anthropic_body(text):
    return {"content": [{"text": text}]}


@pytest.fixture
def study_text():
    return STUDY_TEXT


@pytest.fixture
def fake_runtime():
    return FakeBedrockRuntime()
