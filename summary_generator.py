"""
Summary Generator

Summarizes study text with Bedrock, falling back to an extractive
first/important/last sentence summary.
"""

import logging
from typing import Dict, Optional

from bedrock_client import AIGenerationError, BedrockService, bedrock_service, extract_json
from text_heuristics import split_sentences, word_count

logger = logging.getLogger(__name__)

IMPORTANT_MARKERS = ("important", "key", "main", "primary")

SUMMARY_PROMPT = """Please provide a comprehensive summary of the following text.

Requirements:
- Create a clear, concise summary that captures the main ideas
- Extract 3-5 key points as bullet points
- Maintain the original meaning and context
- Use clear, readable language
- Keep the summary significantly shorter than the original

Return as JSON:
{{
  "summary": "Your comprehensive summary here",
  "keyPoints": ["Key point 1", "Key point 2", "Key point 3"]
}}

Text to summarize:
{text}"""


def generate_fallback_summary(text: str) -> Dict:
    """
    Extractive summary without a model.

    Picks the first sentence, the first "important" middle sentence and the
    last sentence, and keeps the result under 80% of the original length.
    """
    sentences = split_sentences(text, 15)
    original_word_count = word_count(text)

    if len(sentences) <= 2:
        first = sentences[0] if sentences else text.strip()
        summary = first
        key_points = [first] if first else []
    elif len(sentences) <= 4:
        summary = sentences[0] + ". " + sentences[-1]
        key_points = [sentences[0], sentences[-1]]
    else:
        middle = sentences[1:-1]
        important = next(
            (s for s in middle if any(m in s.lower() for m in IMPORTANT_MARKERS) or len(s) > 50),
            middle[len(middle) // 2],
        )
        key_points = [s.strip() for s in (sentences[0], important, sentences[-1]) if s and s.strip()]
        summary = '. '.join(key_points)

    if original_word_count and word_count(summary) >= original_word_count * 0.8:
        summary = ' '.join(summary.split()[:int(original_word_count * 0.5)]) + "..."

    return {
        "summary": summary or "Unable to generate summary from the provided text.",
        "keyPoints": key_points or ["No key points could be extracted from the text."],
        "wordCount": word_count(summary),
        "originalWordCount": original_word_count,
    }


def normalize_ai_summary(data: Dict, text: str) -> Dict:
    if not isinstance(data, dict) or not data.get("summary"):
        raise AIGenerationError("AI response did not contain a summary")
    key_points = data.get("keyPoints")
    if not isinstance(key_points, list) or not key_points:
        key_points = ["No key points available."]
    return {
        "summary": data["summary"],
        "keyPoints": key_points,
        "wordCount": word_count(data["summary"]),
        "originalWordCount": word_count(text),
    }


class SummaryGenerator:
    """Summarize text with Bedrock and an extractive fallback"""

    def __init__(self, bedrock: Optional[BedrockService] = None):
        self.bedrock = bedrock or bedrock_service

    def generate_summary(self, text: str) -> Dict:
        try:
            summary = self.bedrock.invoke_with_fallback(
                SUMMARY_PROMPT.format(text=text),
                max_tokens=1500,
                temperature=0.3,
                parse=lambda raw: normalize_ai_summary(extract_json(raw, "object"), text),
            )
            logger.info("✅ AI summarization successful")
            return summary
        except AIGenerationError as e:
            logger.warning(f"⚠️ AI summarization failed, using fallback: {e}")
            return generate_fallback_summary(text)


# Global instance
summary_generator = SummaryGenerator()
