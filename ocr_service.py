"""
OCR Service using AWS Rekognition

Extracts printed text from uploaded images with Rekognition DetectText.
Images Rekognition cannot take directly (formats other than JPEG/PNG, or
more than 5MB) are converted and downscaled with Pillow first.
"""

import io
import logging
from typing import Dict, List, Optional

import boto3
from PIL import Image, UnidentifiedImageError

from config import config

logger = logging.getLogger(__name__)

REKOGNITION_MAX_BYTES = 5 * 1024 * 1024
REKOGNITION_FORMATS = {"JPEG", "PNG"}


class InvalidImageError(ValueError):
    """Uploaded bytes are not a readable image."""


def create_rekognition_client():
    if config.is_running_in_ecs():
        return boto3.client("rekognition", region_name=config.AWS_REGION)
    return boto3.client(
        "rekognition",
        region_name=config.AWS_REGION,
        aws_access_key_id=config.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY or None,
        aws_session_token=config.AWS_SESSION_TOKEN or None,
    )


class OCRService:
    """Service for handling OCR operations using Rekognition"""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = create_rekognition_client()
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or config.has_aws_credentials()

    def prepare_image(self, image_bytes: bytes) -> bytes:
        """
        Return bytes Rekognition accepts.

        Args:
            image_bytes: Raw uploaded file content

        Returns:
            JPEG/PNG bytes no larger than 5MB
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image_format = image.format
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError(f"Unreadable image: {e}")

        if image_format in REKOGNITION_FORMATS and len(image_bytes) <= REKOGNITION_MAX_BYTES:
            return image_bytes

        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        data = self._encode_png(image)
        while len(data) > REKOGNITION_MAX_BYTES and min(image.size) > 64:
            image = image.resize((image.width // 2, image.height // 2))
            data = self._encode_png(image)

        logger.info(f"Converted {image_format} image ({len(image_bytes)} bytes) to PNG ({len(data)} bytes)")
        return data

    def _encode_png(self, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG", optimize=True)
        return buffer.getvalue()

    def detect_lines(self, image_bytes: bytes) -> List[Dict]:
        response = self.client.detect_text(Image={"Bytes": self.prepare_image(image_bytes)})
        return [d for d in response.get("TextDetections", []) if d.get("Type") == "LINE"]

    def extract_text(self, image_bytes: bytes) -> Dict:
        """
        Extract the text of every detected LINE, one per line

        Returns:
            {extractedText, lineCount, confidence}
        """
        lines = self.detect_lines(image_bytes)
        logger.info(f"✅ Rekognition detected {len(lines)} text lines")
        return {
            "extractedText": "\n".join(line.get("DetectedText", "") for line in lines),
            "lineCount": len(lines),
            "confidence": self._average_confidence(lines),
        }

    def _average_confidence(self, lines: List[Dict]) -> Optional[float]:
        scores = [line["Confidence"] for line in lines if "Confidence" in line]
        return round(sum(scores) / len(scores), 2) if scores else None


# Global instance
ocr_service = OCRService()
