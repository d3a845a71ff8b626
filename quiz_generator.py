"""
Quiz Generator
Generates multiple-choice quizzes from free text and scores submitted answers
"""

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional

from bedrock_client import AIGenerationError, BedrockService, bedrock_service, extract_json
from text_heuristics import QUIZ_SKIP_WORDS, split_sentences

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
OPTION_LETTERS = "ABCD"

QUIZ_PROMPT = """Please analyze the following text and create {count} quiz questions for testing understanding.
Difficulty: {difficulty}

Focus on creating questions that test:
- Key concepts and main ideas
- Important details and facts
- Understanding of relationships between concepts
- Application of knowledge

For each question:
- Create a clear, well-formatted question
- Provide 4 multiple choice options (A, B, C, D)
- Mark the correct answer (0-3 index)
- Provide a detailed explanation of why the answer is correct
- Assign an appropriate category (e.g., "General", "Technical", "Conceptual")

Return as JSON array:
[
  {{
    "id": 1,
    "question": "Clear, well-formatted question here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 0,
    "explanation": "Why this answer is correct and what the other options represent.",
    "category": "General"
  }}
]

Text to analyze:
{text}"""


def _keywords(sentence: str) -> List[str]:
    words = re.sub(r'[^\w\s]', '', sentence.lower()).split()
    return [w for w in words if len(w) > 3 and w not in QUIZ_SKIP_WORDS]


def generate_fallback_quiz(text: str) -> List[Dict]:
    """
    Build a template quiz without a model.

    Between five and eight sentences are sampled evenly across the text, so a
    short text samples some sentences more than once. Each question asks about
    the sentence keyword that occurs most often in the whole text and has not
    been asked about yet; the first option is always the correct one.
    """
    sentences = split_sentences(text, 20)
    if not sentences:
        return []

    frequencies = Counter(_keywords(text))
    num_questions = min(8, max(5, len(sentences) // 2))

    questions = []
    used_keywords = set()
    for i in range(num_questions):
        sentence = sentences[int(i / num_questions * len(sentences))]

        # sorted() is stable: ties keep their order in the sentence
        candidates = sorted(dict.fromkeys(_keywords(sentence)), key=lambda w: -frequencies[w])
        keyword = next((w for w in candidates if w not in used_keywords), None)
        if keyword is None:
            continue
        used_keywords.add(keyword)

        questions.append({
            "id": len(questions) + 1,
            "question": f'What is the main concept related to "{keyword}" in the text?',
            "options": [
                f"The concept involves {keyword} and its applications",
                f"It's a technical term related to {keyword}",
                f"The text discusses {keyword} in detail",
                f"It refers to the importance of {keyword}",
            ],
            "correctAnswer": 0,
            "explanation": f"The text discusses {keyword} and its relevance to the main topic.",
            "category": "General",
        })

    return questions


def _normalize_correct_answer(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int) and 0 <= value <= 3:
        return value
    if isinstance(value, str):
        value = value.strip().upper()
        if value.isdigit() and 0 <= int(value) <= 3:
            return int(value)
        if len(value) == 1 and value in OPTION_LETTERS:
            return OPTION_LETTERS.index(value)
    return 0


def normalize_ai_questions(questions: List[Dict]) -> List[Dict]:
    if not isinstance(questions, list) or not questions:
        raise AIGenerationError("AI response did not contain any questions")

    normalized = []
    for index, question in enumerate(questions):
        question = question if isinstance(question, dict) else {}
        options = question.get("options")
        if not isinstance(options, list) or len(options) < 2:
            options = list(DEFAULT_OPTIONS)
        normalized.append({
            "id": index + 1,
            "question": question.get("question") or f"Question {index + 1}",
            "options": options,
            "correctAnswer": _normalize_correct_answer(question.get("correctAnswer")),
            "explanation": question.get("explanation") or "No explanation available",
            "category": question.get("category") or "General",
        })
    return normalized


class QuizGenerator:
    """Generate interactive quizzes from study text"""

    def __init__(self, bedrock: Optional[BedrockService] = None):
        self.bedrock = bedrock or bedrock_service

    def generate_ai(self, text: str, question_count: Optional[int] = None,
                    difficulty: str = "medium") -> List[Dict]:
        count = str(question_count) if question_count else "6-8"
        questions = self.bedrock.invoke_with_fallback(
            QUIZ_PROMPT.format(count=count, difficulty=difficulty, text=text),
            max_tokens=3000,
            temperature=0.3,
            parse=lambda raw: normalize_ai_questions(extract_json(raw, "array")),
        )
        if question_count:
            questions = questions[:question_count]
        logger.info(f"✅ AI generation successful, generated {len(questions)} quiz questions")
        return questions

    def generate_quiz(self, text: str, question_count: Optional[int] = None,
                      difficulty: str = "medium") -> List[Dict]:
        """
        Generate a multiple-choice quiz

        Args:
            text: Source text
            question_count: Requested number of questions (AI path only)
            difficulty: easy, medium or hard

        Returns:
            List of {id, question, options, correctAnswer, explanation, category}
        """
        try:
            return self.generate_ai(text, question_count, difficulty)
        except AIGenerationError as e:
            logger.warning(f"⚠️ AI quiz generation failed, using fallback: {e}")
            questions = generate_fallback_quiz(text)
            logger.info(f"✅ Fallback generation complete, generated {len(questions)} quiz questions")
            return questions

    def evaluate_quiz(self, questions: List[Dict], user_answers: Dict[str, Any]) -> Dict:
        """
        Evaluate user answers and calculate score

        Args:
            questions: The quiz questions as returned by generate_quiz
            user_answers: Mapping of question id -> chosen option (index or letter)

        Returns:
            Dictionary with score, percentage, grade and per-question results
        """
        if not questions:
            return {"score": 0, "total": 0, "percentage": 0, "grade": "F", "results": []}

        results = []
        score = 0
        for question in questions:
            question_id = str(question.get("id"))
            correct = _normalize_correct_answer(question.get("correctAnswer"))
            raw_answer = user_answers.get(question_id)
            user_answer = None if raw_answer is None else self._answer_index(raw_answer)
            is_correct = user_answer == correct
            if is_correct:
                score += 1

            results.append({
                "questionId": question.get("id"),
                "question": question.get("question", ""),
                "userAnswer": user_answer,
                "correctAnswer": correct,
                "isCorrect": is_correct,
                "explanation": question.get("explanation", ""),
            })

        percentage = score / len(questions) * 100
        return {
            "score": score,
            "total": len(questions),
            "percentage": round(percentage, 1),
            "grade": self._get_grade(percentage),
            "results": results,
        }

    def _answer_index(self, answer: Any) -> Optional[int]:
        if isinstance(answer, int) and not isinstance(answer, bool):
            return answer
        value = str(answer).strip().upper()
        if value.isdigit():
            return int(value)
        if len(value) == 1 and value in OPTION_LETTERS:
            return OPTION_LETTERS.index(value)
        return None

    def _get_grade(self, percentage: float) -> str:
        """Convert percentage to letter grade"""
        if percentage >= 90:
            return "A"
        elif percentage >= 80:
            return "B"
        elif percentage >= 70:
            return "C"
        elif percentage >= 60:
            return "D"
        else:
            return "F"


# Global instance
quiz_generator = QuizGenerator()
