"""
Flashcard Generator

Generates study flashcards from free text. Bedrock models are tried first;
when they are unavailable or fail, a rule-based extractor builds cards from
technical terms, frequent phrases and key nouns found in the text.
"""

import logging
import re
from collections import Counter
from typing import Dict, List, Optional

from bedrock_client import AIGenerationError, BedrockService, bedrock_service, extract_json
from text_heuristics import (
    COMMON_WORDS,
    STOP_WORDS,
    UNIMPORTANT_WORDS,
    normalize_words,
    split_sentences,
)

logger = logging.getLogger(__name__)

TECHNICAL_PATTERNS = [
    re.compile(r'\b[A-Z][a-z]+(?:[A-Z][a-z]+)+\b'),  # CamelCase
    re.compile(r'\b\w+-\w+(?:-\w+)*\b'),  # hyphenated
    re.compile(r'\b\w+(?:ing|tion|sion|ment|ness|ity|ism|ist|ive|al|ic|ous|ful|less)\b'),
]

COMMON_PHRASES = {
    'such as', 'for example', 'in addition', 'in fact',
    'is an', 'is a', 'are the', 'is the', 'was the', 'were the',
    'can be', 'will be', 'should be', 'could be', 'would be',
    'has been', 'have been', 'had been', 'will have', 'would have',
    'it is', 'it was', 'it will', 'it can', 'it should', 'it would',
    'there is', 'there are', 'there was', 'there were', 'there will',
    'this is', 'this was', 'this will', 'this can', 'this should',
    'that is', 'that was', 'that will', 'that can', 'that should',
    'and the', 'or the', 'but the', 'for the', 'with the', 'from the',
    'to the', 'of the', 'in the', 'on the', 'at the', 'by the',
    'as the', 'if the', 'when the', 'where the', 'why the', 'how the',
    'what the', 'which the', 'who the', 'whose the', 'whom the',
    'area of', 'field of', 'study of', 'branch of', 'aspect of',
    'form of', 'type of', 'kind of', 'sort of', 'way of', 'method of',
    'process of', 'result of', 'effect of', 'cause of', 'source of',
    'part of', 'piece of', 'bit of', 'lot of', 'number of', 'amount of',
    'group of', 'set of', 'series of', 'range of', 'variety of',
    'level of', 'degree of', 'extent of', 'scope of', 'scale of',
    'computing is', 'learning is', 'analysis is', 'technology is',
    'of computing', 'of learning', 'of analysis', 'of technology',
    'science is', 'research is', 'study is', 'work is',
    'of science', 'of research', 'of study', 'of work',
}

GRAMMATICAL_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r'^(is|are|was|were|be|been|being)\s+(a|an|the)$',
        r'^(has|have|had|having)\s+(a|an|the)$',
        r'^(will|would|can|could|should|may|might)\s+(be|have|do)$',
        r"^(do|does|did|done|doing)\s+(not|n't)$",
        r'^(there|here|where|when|why|how|what|which|who|whom|whose)\s+(is|are|was|were)$',
        r'^(this|that|these|those)\s+(is|are|was|were)$',
        r'^(it|they|we|you|he|she|i)\s+(is|are|was|were)$',
        r'^(and|or|but|so|yet|for|nor)\s+(the|a|an)$',
        r'^(in|on|at|to|for|of|with|by|from|up|about|into|through|during|before|after|above|below'
        r'|between|among|under|over|around|near|far)\s+(the|a|an)$',
        r'^\w+\s+(is|are|was|were)$',
        r'^of\s+\w+$',
    )
]

ARTICLES_AND_PREPOSITIONS = {'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by'}

CATEGORY_KEYWORDS = [
    ("Definition", ("definition", "means", "refers to")),
    ("Process", ("process", "method", "how")),
    ("Example", ("example", "such as", "including")),
    ("Key Concept", ("important", "key", "main")),
    ("Technology", ("technology", "system", "device")),
]

FLASHCARD_PROMPT = """Please analyze the following text and create 8-10 flashcards for effective learning.

Focus on IMPORTANT CONCEPTS with MAXIMUM 2 WORDS on the front. Include:
- Key terms and concepts (1-2 words maximum)
- Important phrases and expressions (2 words max)
- Technical terminology (1-2 words)
- Central ideas and themes (1-2 words)
- Processes and methods described (1-2 words)

Avoid grammatical or incomplete phrases such as "is an", "can be", "type of", "part of", "learning is"
or "of technology". Focus on meaningful noun phrases and technical terms.

For each flashcard:
- Front: the key concept, term, or phrase (MAXIMUM 2 WORDS)
- Back: a clear explanation that uses specific information from the text and explains what the concept means in this context
- Category: one of Definition, Process, Example, Key Concept, Technology, General

Return ONLY a JSON array:
[
  {{"front": "machine learning", "back": "Explanation from the text", "category": "Key Concept"}}
]

Text to analyze:
{text}"""


def _is_plain_word(word: str) -> bool:
    lowered = word.lower()
    return lowered not in COMMON_WORDS and lowered not in STOP_WORDS


def limit_front(front: str, max_words: int = 2) -> str:
    words = front.split(' ')
    return ' '.join(words[:max_words]) if len(words) > max_words else front


def extract_technical_terms(text: str) -> List[str]:
    terms = []
    for pattern in TECHNICAL_PATTERNS:
        terms.extend(t for t in pattern.findall(text) if len(t) > 4 and _is_plain_word(t))
    return terms


def _has_meaningful_words(phrase: str) -> bool:
    return any(
        len(w) > 2 and _is_plain_word(w) and w.lower() not in ARTICLES_AND_PREPOSITIONS
        for w in phrase.split(' ')
    )


def _is_grammatical_phrase(phrase: str) -> bool:
    return any(p.match(phrase) for p in GRAMMATICAL_PATTERNS)


def extract_important_phrases(text: str, limit: int = 5) -> List[str]:
    """Most frequent meaningful two-word phrases."""
    phrases = []
    for sentence in split_sentences(text, 20):
        words = sentence.split()
        for i in range(len(words) - 1):
            phrase = f"{words[i]} {words[i + 1]}"
            lowered = phrase.lower()
            if (6 < len(phrase) < 30
                    and not re.fullmatch(r'[0-9\s]+', phrase)
                    and lowered not in COMMON_PHRASES
                    and not _is_grammatical_phrase(lowered)
                    and _has_meaningful_words(phrase)):
                phrases.append(phrase)

    return [phrase for phrase, _ in Counter(phrases).most_common(limit)]


def extract_key_nouns(text: str, limit: int = 5) -> List[str]:
    words = [
        w for w in normalize_words(text)
        if 4 < len(w) < 20
        and not w.isdigit()
        and w not in STOP_WORDS
        and w not in COMMON_WORDS
        and w not in UNIMPORTANT_WORDS
    ]
    return [word for word, _ in Counter(words).most_common(limit)]


def find_context(term: str, text: str) -> str:
    """Longest sentence mentioning the term."""
    lowered = term.lower()
    best = ""
    for sentence in split_sentences(text, 15):
        if lowered in sentence.lower() and len(sentence) > len(best):
            best = sentence
    return best


def categorize(context: str) -> str:
    lowered = context.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return "General"


def explain(term: str, context: str, text: str) -> str:
    if context:
        words = context.split(' ')
        lowered = term.lower()
        for index, word in enumerate(words):
            if lowered in word.lower():
                window = ' '.join(words[max(0, index - 2):min(len(words), index + 3)])
                return f'In this context: "{window.strip()}"'
        return f'As described: "{context.strip()}"'

    mentions = text.lower().count(term.lower())
    if mentions > 1:
        return f'"{term}" is a key concept mentioned {mentions} times in the text, indicating its importance to the topic.'
    return f'"{term}" is an important term that appears in this content.'


def generate_fallback_flashcards(text: str, limit: int = 10) -> List[Dict]:
    """
    Build flashcards without a model.

    Candidate terms come from technical terms, frequent two-word phrases and
    key nouns. Only terms with a meaningful context sentence are kept, the
    longest contexts first.
    """
    candidates = extract_technical_terms(text) + extract_important_phrases(text) + extract_key_nouns(text)

    concepts = []
    for term in dict.fromkeys(candidates):
        context = find_context(term, text)
        if context and len(context) > 20:
            concepts.append({"term": term, "context": context, "category": categorize(context)})

    concepts.sort(key=lambda c: len(c["context"]), reverse=True)

    return [
        {
            "id": index + 1,
            "front": limit_front(concept["term"]),
            "back": explain(concept["term"], concept["context"], text),
            "category": concept["category"],
        }
        for index, concept in enumerate(concepts[:limit])
    ]


def normalize_ai_flashcards(cards: List[Dict]) -> List[Dict]:
    if not isinstance(cards, list) or not cards:
        raise AIGenerationError("AI response did not contain any flashcards")

    normalized = []
    for index, card in enumerate(cards):
        card = card if isinstance(card, dict) else {}
        front = str(card.get("front") or f"Question {index + 1}")
        normalized.append({
            "id": index + 1,
            "front": limit_front(front),
            "back": card.get("back") or "Answer not available",
            "category": card.get("category") or "General",
        })
    return normalized


class FlashcardGenerator:
    """Generate flashcards with Bedrock and a heuristic fallback"""

    def __init__(self, bedrock: Optional[BedrockService] = None):
        self.bedrock = bedrock or bedrock_service

    def generate_ai(self, text: str) -> List[Dict]:
        cards = self.bedrock.invoke_with_fallback(
            FLASHCARD_PROMPT.format(text=text),
            max_tokens=2000,
            temperature=0.3,
            parse=lambda raw: normalize_ai_flashcards(extract_json(raw, "array")),
        )
        logger.info(f"✅ AI generation successful, generated {len(cards)} flashcards")
        return cards

    def generate(self, text: str) -> List[Dict]:
        """
        Generate flashcards for the given text

        Args:
            text: Source text

        Returns:
            List of {id, front, back, category}
        """
        if not self.bedrock.is_available():
            logger.info("⚠️ AWS credentials not found, using algorithm-based flashcard generation")
            return generate_fallback_flashcards(text)

        try:
            return self.generate_ai(text)
        except AIGenerationError as e:
            logger.warning(f"⚠️ AI flashcard generation failed, using fallback: {e}")
            cards = generate_fallback_flashcards(text)
            logger.info(f"✅ Fallback generation complete, generated {len(cards)} flashcards")
            return cards


# Global instance
flashcard_generator = FlashcardGenerator()
