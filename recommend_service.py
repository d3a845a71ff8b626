"""
Recommend Service
Asks Nova Pro which study format suits what the user wants to learn
"""

import logging
import re
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from bedrock_client import AIGenerationError, BedrockService, bedrock_service
from config import BEDROCK_PRIMARY_MODEL

logger = logging.getLogger(__name__)

FORMATS = ("video", "flashcards", "mindmap", "quiz", "summary")
DEFAULT_FORMAT = "summary"

RECOMMEND_PROMPT = (
    'You are an educational assistant. The user wants to learn about: "{user_input}". '
    "Recommend the most effective format: one of [video, flashcards, mindmap, quiz, summary]. "
    "Reply ONLY with the format id (exactly one word)."
)


def parse_recommendation(text: Optional[str]) -> str:
    """First allowed format id found in the reply, else summary"""
    words = re.findall(r"[a-z]+", (text or "").lower())
    for word in words:
        if word in FORMATS:
            return word
    return DEFAULT_FORMAT


class RecommendService:
    def __init__(self, bedrock: Optional[BedrockService] = None, model_id: str = BEDROCK_PRIMARY_MODEL):
        self.bedrock = bedrock or bedrock_service
        self.model_id = model_id

    def recommend(self, user_input: str) -> str:
        """
        Raises:
            AIGenerationError: the model could not be reached
        """
        prompt = RECOMMEND_PROMPT.format(user_input=user_input)
        try:
            reply = self.bedrock.invoke(self.model_id, prompt, max_tokens=300, temperature=0.7, top_p=0.9)
        except (ClientError, BotoCoreError) as e:
            raise AIGenerationError(f"Recommendation failed: {e}")
        recommendation = parse_recommendation(reply)
        logger.info(f"💡 Recommended format: {recommendation}")
        return recommendation


recommend_service = RecommendService()
