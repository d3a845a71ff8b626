"""
AWS Bedrock Client

Thin layer over the boto3 ``bedrock-runtime`` client used by every
generator. Handles the two request/response schemas we talk to (Amazon Nova
messages-v1 and Anthropic messages), walks a chain of fallback models, and
pulls JSON payloads out of free-form model output.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import config

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class AIGenerationError(Exception):
    """Raised when no hosted model produced a usable answer."""


def create_bedrock_client(region: Optional[str] = None):
    """
    Build a ``bedrock-runtime`` client.

    Inside ECS the task role is picked up by the default credential chain;
    everywhere else the explicit credentials from the environment are used.
    """
    region = region or config.BEDROCK_REGION
    if config.is_running_in_ecs():
        logger.info(f"Creating Bedrock client for {region} using the ECS task role")
        return boto3.client("bedrock-runtime", region_name=region)

    logger.info(f"Creating Bedrock client for {region} using environment credentials")
    return boto3.client(
        "bedrock-runtime",
        region_name=region,
        aws_access_key_id=config.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY or None,
        aws_session_token=config.AWS_SESSION_TOKEN or None,
    )


def is_nova_model(model_id: str) -> bool:
    return model_id.startswith("amazon.nova")


def build_request_body(model_id: str, prompt: str, max_tokens: int = 2000,
                       temperature: float = 0.3, top_p: Optional[float] = None) -> Dict[str, Any]:
    """Request body in the schema the given model family expects."""
    if is_nova_model(model_id):
        inference_config: Dict[str, Any] = {"maxTokens": max_tokens, "temperature": temperature}
        if top_p is not None:
            inference_config["topP"] = top_p
        return {
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": inference_config,
        }

    body: Dict[str, Any] = {
        "anthropic_version": ANTHROPIC_VERSION,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }
    if top_p is not None:
        body["top_p"] = top_p
    return body


def extract_response_text(response_body: Dict[str, Any]) -> str:
    """Pull the generated text out of a Nova or Anthropic response body."""
    output = response_body.get("output")
    if isinstance(output, dict):
        message = output.get("message") or {}
        content = message.get("content") or []
        if content and content[0].get("text") is not None:
            return content[0]["text"]
        if output.get("text"):
            return output["text"]

    content = response_body.get("content")
    if isinstance(content, list) and content and content[0].get("text") is not None:
        return content[0]["text"]

    if response_body.get("text"):
        return response_body["text"]

    raise AIGenerationError(f"Unexpected response format, keys: {sorted(response_body.keys())}")


def extract_json(text: str, expect: str = "object") -> Any:
    """
    Parse the outermost JSON array or object embedded in model output.

    Args:
        text: Raw model output, possibly wrapped in prose or code fences
        expect: "array" or "object"
    """
    pattern = r"\[[\s\S]*\]" if expect == "array" else r"\{[\s\S]*\}"
    match = re.search(pattern, text or "")
    if not match:
        raise AIGenerationError("No valid JSON found in AI response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AIGenerationError(f"Failed to parse AI response: {e}")


def _log_model_hint(model_id: str, error: Exception) -> None:
    message = str(error)
    code = ""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")

    if code == "AccessDeniedException" or "don't have access" in message:
        family = "Amazon Nova" if "nova" in model_id else "Claude"
        logger.info(f"💡 No access to {model_id}. Request access to {family} models in the Bedrock console "
                    f"and check the IAM permissions of the current credentials")
    elif "invalid" in message.lower() or "model identifier" in message:
        logger.info(f"💡 Model identifier {model_id} was rejected; it may not exist in {config.BEDROCK_REGION}")


class BedrockService:
    """Service wrapping Bedrock text and async invocations"""

    def __init__(self, client=None, models: Optional[List[str]] = None):
        self._client = client
        self.models = list(models or config.BEDROCK_TEXT_MODELS)

    @property
    def client(self):
        if self._client is None:
            self._client = create_bedrock_client()
        return self._client

    def is_available(self) -> bool:
        """Check if Bedrock can be called at all"""
        return self._client is not None or config.has_aws_credentials()

    def invoke_model_json(self, model_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a model with a prepared JSON body and decode the JSON response."""
        response = self.client.invoke_model(
            modelId=model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )
        return json.loads(response["body"].read())

    def invoke(self, model_id: str, prompt: str, max_tokens: int = 2000,
               temperature: float = 0.3, top_p: Optional[float] = None) -> str:
        """Invoke one text model and return its generated text."""
        body = build_request_body(model_id, prompt, max_tokens, temperature, top_p)
        response_body = self.invoke_model_json(model_id, body)
        return extract_response_text(response_body)

    def invoke_with_fallback(self, prompt: str, max_tokens: int = 2000, temperature: float = 0.3,
                             top_p: Optional[float] = None,
                             parse: Optional[Callable[[str], Any]] = None,
                             models: Optional[List[str]] = None) -> Any:
        """
        Try each model in order until one returns a usable answer.

        Args:
            prompt: User prompt
            max_tokens: Generation limit
            temperature: Sampling temperature
            top_p: Optional nucleus sampling value
            parse: Optional callable applied to the text; a parse failure moves on to the next model
            models: Override of the configured model chain

        Returns:
            The parsed value, or the raw text when no parser is given

        Raises:
            AIGenerationError: every model failed
        """
        chain = models or self.models
        last_error: Optional[Exception] = None

        for model_id in chain:
            try:
                logger.info(f"🔄 Trying model: {model_id}")
                text = self.invoke(model_id, prompt, max_tokens, temperature, top_p)
                result = parse(text) if parse else text
                logger.info(f"✅ Bedrock response received from {model_id}")
                return result
            except (ClientError, BotoCoreError, AIGenerationError, ValueError, KeyError, TypeError) as e:
                last_error = e
                logger.warning(f"❌ Model {model_id} failed: {e}")
                _log_model_hint(model_id, e)

        raise AIGenerationError(
            f"All AI models failed. Last error: {last_error}. Please check your AWS Bedrock access and permissions."
        ) from last_error

    def start_async_invoke(self, model_id: str, model_input: Dict[str, Any], s3_uri: str) -> str:
        """Start an asynchronous invocation and return its ARN."""
        response = self.client.start_async_invoke(
            modelId=model_id,
            modelInput=model_input,
            outputDataConfig={"s3OutputDataConfig": {"s3Uri": s3_uri}},
        )
        return response["invocationArn"]

    def get_async_invoke(self, invocation_arn: str) -> Dict[str, Any]:
        return self.client.get_async_invoke(invocationArn=invocation_arn)


# Global instance
bedrock_service = BedrockService()
