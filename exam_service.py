"""
Exam Service

Creates exam papers with Nova Pro from two sources: a past exam that shows
the expected format, and learning materials that supply the content. Also
refines an existing paper from free-form instructions.
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from bedrock_client import AIGenerationError, BedrockService, bedrock_service
from config import BEDROCK_PRIMARY_MODEL

logger = logging.getLogger(__name__)

EXAM_START = "---EXAM_START---"
EXAM_END = "---EXAM_END---"

EXAM_MAX_TOKENS = 4000

COMBINED_TEMPLATE = """
=== EXAM PAPER FORMAT (Use this as format reference) ===
{exam_text}

=== LEARNING MATERIALS (Generate questions from this content) ===
{materials_text}
"""

EXAM_INTRO = """You are an expert exam paper creator. You have been given two documents:
1. An EXAM PAPER FORMAT - which shows the structure and style of exam questions
2. LEARNING MATERIALS - the content to create new exam questions from
"""

GENERATE_PROMPT = EXAM_INTRO + """
Your task:
- Identify which section is the exam format and which is the learning materials
- Analyze the exam format: question types, numbering style, section headers, point allocations, instructions
- Extract key concepts and topics from the learning materials
- Create a NEW exam paper that follows the exact format of the exam paper, asks about the learning
  materials, matches the {difficulty} difficulty level, has appropriate point allocations and clear instructions

Return the exam paper in a structured format that can be converted to PDF, EXACTLY like this:
""" + EXAM_START + """
[EXAM TITLE]
[Course/Subject information]
[Time allowed, instructions, etc.]

Section A: [Section Name]
Instructions: [Any specific instructions]

1. [Question text]
   a) [Sub-question if applicable]
   b) [Sub-question if applicable]
   [X marks]

2. [Question text]
   [X marks]

[Continue with all sections...]
""" + EXAM_END + """

Input:
{combined_text}

Generate the complete exam paper now:"""

CONTENT_PROMPT = EXAM_INTRO + """
Your task:
- Analyze the EXAM PAPER FORMAT: question types, numbering style (1., 1), Q1), section headers
  (SECTION A, Part 1), point allocations ([X marks], (X points)) and instructions format
- Extract key concepts and topics from the LEARNING MATERIALS
- Create a NEW exam paper that replicates that structure exactly, asks about the learning materials,
  matches the {difficulty} difficulty level and keeps point allocations consistent with the format

FORMATTING RULES:
1. DO NOT use markdown symbols like **, __, or ##
2. Use plain text only
3. Follow the exam paper format for section headers, question numbering, marks and instructions
4. For multiple choice questions, place marks right after the question text and list options
   (A), B), C), D)) on separate lines

Input:
{combined_text}

Generate the complete exam paper now (plain text only):"""

REFINE_PROMPT = """You are an expert exam paper editor. You need to refine an existing exam paper based on specific instructions.

CURRENT EXAM PAPER:
{current_exam}

REFINEMENT INSTRUCTIONS:
{instructions}

DIFFICULTY LEVEL: {difficulty}

Your task:
- Read the refinement instructions carefully
- Modify the exam paper according to the instructions
- Maintain the original format and structure
- Keep questions relevant and well-formed at the {difficulty} level

Format your response EXACTLY like this:
""" + EXAM_START + """
[Modified exam content here following the same structure]
""" + EXAM_END + """

Generate the refined exam paper now:"""


def extract_between_markers(response: str) -> str:
    """Text between the exam markers, or the whole response when they are missing."""
    start = response.find(EXAM_START)
    end = response.find(EXAM_END)
    if start != -1 and end != -1 and end > start:
        return response[start + len(EXAM_START):end].strip()
    return response


def combine_sources(exam_text: str, materials_text: str) -> str:
    return COMBINED_TEMPLATE.format(exam_text=exam_text, materials_text=materials_text)


class ExamService:
    """Service for generating and refining exam papers"""

    def __init__(self, bedrock: Optional[BedrockService] = None, model_id: str = BEDROCK_PRIMARY_MODEL):
        self.bedrock = bedrock or bedrock_service
        self.model_id = model_id

    def _ask(self, prompt: str) -> str:
        try:
            response = self.bedrock.invoke(
                self.model_id, prompt, max_tokens=EXAM_MAX_TOKENS, temperature=0.7, top_p=0.9
            )
        except (ClientError, BotoCoreError) as e:
            raise AIGenerationError(f"Exam generation failed: {e}") from e
        if not response or not response.strip():
            raise AIGenerationError("No valid content in AI response")
        return response

    def generate_exam(self, exam_text: str, materials_text: str, difficulty: str = "medium") -> str:
        logger.info(f"🤖 Generating {difficulty} exam paper")
        prompt = GENERATE_PROMPT.format(
            difficulty=difficulty, combined_text=combine_sources(exam_text, materials_text)
        )
        return extract_between_markers(self._ask(prompt))

    def generate_exam_content(self, exam_text: str, materials_text: str, difficulty: str = "medium") -> str:
        """Plain-text variant without markers, ready for PDF rendering"""
        prompt = CONTENT_PROMPT.format(
            difficulty=difficulty, combined_text=combine_sources(exam_text, materials_text)
        )
        return self._ask(prompt).strip()

    def refine_exam(self, current_exam: str, instructions: str, difficulty: str = "medium") -> str:
        logger.info("✏️ Refining exam paper")
        prompt = REFINE_PROMPT.format(current_exam=current_exam, instructions=instructions, difficulty=difficulty)
        return extract_between_markers(self._ask(prompt))


# Global instance
exam_service = ExamService()
