"""
Image Service
Text-to-picture generation with the Bedrock image model (Nova Canvas / Titan schema)
"""

import logging
import random
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from bedrock_client import AIGenerationError, BedrockService, bedrock_service
from config import BEDROCK_IMAGE_MODEL

logger = logging.getLogger(__name__)

IMAGE_PROMPT_LIMIT = 1024

STYLE_HINTS = {
    "educational": "clear educational illustration, labelled, clean background",
    "diagram": "simple diagram, flat colors, white background",
    "realistic": "photorealistic, natural lighting",
    "cartoon": "friendly cartoon style, bold outlines",
}


def build_image_prompt(text: str, style: Optional[str] = None) -> str:
    prompt = text.strip()
    hint = STYLE_HINTS.get((style or "").lower(), style)
    if hint:
        prompt = f"{prompt}. Style: {hint}"
    return prompt[:IMAGE_PROMPT_LIMIT]


class ImageService:
    """Service for generating study illustrations from text"""

    def __init__(self, bedrock: Optional[BedrockService] = None, model_id: str = BEDROCK_IMAGE_MODEL):
        self.bedrock = bedrock or bedrock_service
        self.model_id = model_id

    def build_request(self, prompt: str) -> Dict:
        return {
            "taskType": "TEXT_IMAGE",
            "textToImageParams": {"text": prompt},
            "imageGenerationConfig": {
                "numberOfImages": 1,
                "width": 1024,
                "height": 1024,
                "cfgScale": 8.0,
                "seed": random.randint(0, 858993459),
            },
        }

    def generate_image(self, text: str, style: Optional[str] = None) -> Dict:
        """
        Generate one image for the given text

        Returns:
            {imageUrl, prompt, style} where imageUrl is a base64 PNG data URL

        Raises:
            AIGenerationError: the model call failed or returned no image
        """
        prompt = build_image_prompt(text, style)
        logger.info(f"🎨 Generating image with {self.model_id}")
        try:
            response = self.bedrock.invoke_model_json(self.model_id, self.build_request(prompt))
        except (ClientError, BotoCoreError) as e:
            raise AIGenerationError(f"Image generation failed: {e}") from e

        if response.get("error"):
            raise AIGenerationError(f"Image generation failed: {response['error']}")

        images = response.get("images") or []
        if not images:
            raise AIGenerationError("Image model returned no images")

        return {
            "imageUrl": f"data:image/png;base64,{images[0]}",
            "prompt": prompt,
            "style": style,
        }


# Global instance
image_service = ImageService()
