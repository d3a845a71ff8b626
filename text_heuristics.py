"""
Text Heuristics

Word lists and small text helpers shared by the rule-based generators
(flashcards, quiz, summary, mind map, video storyboard).
"""

import re
from collections import Counter
from typing import List, Optional

COMMON_WORDS = {
    'the', 'this', 'that', 'these', 'those', 'there', 'then', 'when', 'where',
    'what', 'why', 'how', 'who', 'which', 'and', 'or', 'but', 'for', 'nor',
    'yet', 'so', 'in', 'on', 'at', 'to', 'of', 'with', 'by', 'from',
    'up', 'about', 'into', 'through', 'during', 'before', 'after', 'above',
    'below', 'between', 'among', 'under', 'over', 'around', 'near', 'far',
}

STOP_WORDS = {
    'this', 'that', 'with', 'from', 'they', 'have', 'been', 'were', 'said', 'each',
    'which', 'their', 'time', 'will', 'about', 'there', 'could', 'other', 'after',
    'first', 'well', 'also', 'where', 'much', 'some', 'these', 'would', 'every',
    'through', 'during', 'before', 'between', 'without', 'within', 'around', 'among',
}

# Plain adjectives that make poor concepts
UNIMPORTANT_WORDS = {
    'small', 'big', 'large', 'good', 'bad', 'new', 'old', 'long', 'short',
    'high', 'low', 'fast', 'slow', 'hot', 'cold', 'warm', 'cool', 'easy',
    'hard', 'soft', 'light', 'dark', 'bright', 'clean', 'dirty',
    'fresh', 'dry', 'wet', 'thick', 'thin', 'wide', 'narrow', 'deep', 'shallow',
    'strong', 'weak', 'heavy', 'full', 'empty', 'open', 'closed',
    'right', 'wrong', 'true', 'false', 'real', 'fake', 'same', 'different',
    'first', 'last', 'next', 'previous', 'early', 'late', 'quick',
    'simple', 'complex', 'basic', 'advanced', 'normal', 'special', 'usual',
    'common', 'rare', 'popular', 'famous', 'important', 'useful', 'helpful',
}

# Function words skipped when picking a quiz keyword
QUIZ_SKIP_WORDS = {
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'this', 'that', 'these', 'those', 'a', 'an', 'is', 'are', 'was', 'were',
    'be', 'been', 'being', 'have', 'has', 'had', 'do', 'does', 'did', 'will',
    'would', 'could', 'should', 'may', 'might', 'can', 'must', 'shall',
    'from', 'into', 'through', 'during', 'before', 'after', 'above', 'below',
    'up', 'down', 'out', 'off', 'over', 'under', 'again', 'further', 'then',
    'once', 'here', 'there', 'when', 'where', 'why', 'how', 'all', 'any',
    'both', 'each', 'few', 'more', 'most', 'other', 'some', 'such', 'no',
    'nor', 'not', 'only', 'own', 'same', 'so', 'than', 'too', 'very', 'just',
    'now', 'helpful',
}

SENTENCE_SPLIT = re.compile(r'[.!?]+')


def split_sentences(text: str, min_length: int = 0) -> List[str]:
    """Split on runs of sentence punctuation and keep trimmed pieces longer than min_length."""
    return [s.strip() for s in SENTENCE_SPLIT.split(text or "") if len(s.strip()) > min_length]


def word_count(text: str) -> int:
    return len((text or "").split())


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + '...'


def is_concept_word(word: str) -> bool:
    lowered = word.lower()
    return lowered not in COMMON_WORDS and lowered not in STOP_WORDS


def normalize_words(sentence: str) -> List[str]:
    """Lowercase, turn punctuation into spaces and split."""
    return re.sub(r'[^\w\s]', ' ', sentence.lower()).split()


def extract_main_topic(text: str, max_words: int = 3, max_chars: int = 30,
                       default: str = "Main Topic") -> str:
    """
    Derive a short topic label from the first sentence.

    Uses the first max_words long, non-common words of the first sentence;
    when there are none, the sentence itself cut to max_chars.
    """
    sentences = split_sentences(text, 10)
    if not sentences:
        return default

    first_sentence = sentences[0]
    words = [w for w in first_sentence.split(' ') if len(w) > 4 and is_concept_word(w)]
    if words:
        return ' '.join(words[:max_words])

    if len(first_sentence) > max_chars:
        return first_sentence[:max_chars] + '...'
    return first_sentence


def most_frequent_word(text: str, min_length: int = 4, exclude: Optional[set] = None) -> Optional[str]:
    """Most frequent word at least min_length long; ties go to the earliest word."""
    exclude = exclude if exclude is not None else COMMON_WORDS | STOP_WORDS
    words = [w for w in normalize_words(text) if len(w) >= min_length and w not in exclude]
    if not words:
        return None
    counts = Counter(words)
    # Counter preserves insertion order, so max() keeps the first word on ties
    return max(counts, key=lambda w: counts[w])
