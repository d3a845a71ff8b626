"""
Chat Service

Study-assistant chat backed by OpenAI chat completions. When the API key is
missing or the call fails, a keyword-matched canned reply is returned so the
chat box always answers.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from config import OPENAI_API_KEY, OPENAI_CHAT_MODEL

logger = logging.getLogger(__name__)

EMPTY_REPLY = "I apologize, but I had trouble generating a response. Please try again."

SYSTEM_PROMPT = """You are an AI study assistant for EduAI, an educational platform that helps students with learning and content creation. You are knowledgeable about a wide range of academic subjects and study techniques.

Your primary roles are:
1. Answer study-related questions across all subjects (math, science, history, literature, etc.)
2. Provide study tips, learning strategies, and exam preparation advice
3. Help with homework, assignments, and academic concepts
4. Explain complex topics in simple, understandable ways
5. Suggest effective study methods and techniques
6. Help users understand how to use EduAI's features for better learning

EduAI Features you can recommend:
- Text to Video: Convert study materials into engaging videos
- Flashcards: Create interactive study cards for memorization
- Mind Maps: Visualize concepts and their relationships
- Quiz Generation: Practice questions for self-testing
- Summary Creation: Extract key points from long texts

Always be encouraging, patient, and thorough in your explanations. If you don't know something specific, admit it and suggest resources or alternative approaches.

Keep responses helpful and detailed but not overwhelming (typically 2-4 sentences)."""

# Checked in order; the first entry with a matching keyword wins
FALLBACK_REPLIES = [
    (("math", "algebra", "calculus", "geometry"),
     "I can help with math problems and concepts! Whether it's algebra, calculus, geometry, or statistics, "
     "I can explain concepts step-by-step and suggest study strategies. What specific math topic are you working on?"),
    (("science", "biology", "chemistry", "physics"),
     "Science is fascinating! I can help explain scientific concepts, processes, and theories. Whether it's "
     "biology, chemistry, physics, or earth science, I'm here to make complex topics clearer. "
     "What science topic would you like help with?"),
    (("history", "social studies", "geography"),
     "History and social studies help us understand the world! I can help explain historical events, analyze "
     "causes and effects, and suggest study techniques for memorizing dates and facts. "
     "What historical period or topic interests you?"),
    (("english", "literature", "writing", "grammar"),
     "Language and literature are essential skills! I can help with grammar, essay writing, literary analysis, "
     "vocabulary building, and reading comprehension. What aspect of English or literature would you like assistance with?"),
    (("study", "exam", "test", "homework"),
     "Effective studying is key to academic success! I can suggest study techniques, time management strategies, "
     "note-taking methods, and exam preparation tips. I can also help you create flashcards, summaries, or "
     "practice quizzes using EduAI's features."),
    (("programming", "coding", "computer science"),
     "Programming is a valuable skill! I can help explain coding concepts, debug issues, suggest best practices, "
     "and recommend learning resources. Whether you're learning Python, JavaScript, or any other language, I'm here to help."),
    (("video", "generate video"),
     "Create engaging educational videos from your study materials! Use our 'Video' feature to transform text into "
     "visual content with AI-generated narration and graphics. Perfect for reviewing complex topics."),
    (("flashcard", "study card"),
     "Flashcards are excellent for memorization! Use our 'Flashcards' feature to convert your study material into "
     "interactive cards. Great for vocabulary, formulas, definitions, and key concepts."),
    (("mind map", "brainstorm"),
     "Mind maps help visualize connections between ideas! Try our 'Mind Map' feature to create visual "
     "representations of your content. Perfect for understanding relationships and organizing information."),
    (("quiz", "practice"),
     "Practice makes perfect! Use our 'Quiz' generator to create practice questions from your study material. "
     "Choose your difficulty level and get instant questions to test your knowledge."),
    (("summary", "summarize"),
     "Get the key points quickly! Our 'Summary' feature extracts the most important information from long texts. "
     "Perfect for reviewing and understanding main concepts before exams."),
    (("hello", "hi", "hey"),
     "Hello! I'm your AI study assistant. I can help with homework, explain concepts, suggest study strategies, "
     "and show you how to use EduAI's learning tools. What would you like help with today?"),
    (("help", "how to"),
     "I'm here to help with all your academic needs! I can answer study questions, explain concepts, suggest "
     "learning strategies, and show you how to use EduAI's features like videos, flashcards, mind maps, "
     "quizzes, and summaries."),
]

DEFAULT_REPLY = (
    "I'm your AI study assistant! I can help with homework questions, explain academic concepts, suggest study "
    "techniques, and show you how to use EduAI's learning tools. What would you like help with?"
)


def get_fallback_response(message: str) -> str:
    lower_message = message.lower()
    for keywords, reply in FALLBACK_REPLIES:
        if any(keyword in lower_message for keyword in keywords):
            return reply
    return DEFAULT_REPLY


def build_messages(message: str, history: Optional[List[Dict]] = None) -> List[Dict]:
    """System prompt, then prior turns, then the new user message"""
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for turn in history or []:
        role = turn.get("role")
        content = turn.get("content")
        if role in ("user", "assistant") and isinstance(content, str):
            messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": message})
    return messages


class ChatService:
    """Service for the study assistant chat box"""

    def __init__(self, client=None, model: str = OPENAI_CHAT_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self):
        if self._client is None and OPENAI_API_KEY:
            self._client = OpenAI(api_key=OPENAI_API_KEY)
        return self._client

    def is_available(self) -> bool:
        return self.client is not None

    def reply(self, message: str, history: Optional[List[Dict]] = None) -> Dict:
        """
        Answer one chat message

        Args:
            message: The user's new message
            history: Earlier turns as [{role, content}]

        Returns:
            {response, model, timestamp}
        """
        if self.is_available():
            try:
                logger.info("🤖 Calling OpenAI API for chatbox")
                completion = self.client.chat.completions.create(
                    model=self.model,
                    messages=build_messages(message, history),
                    max_tokens=300,
                    temperature=0.7,
                    top_p=0.9,
                )
                response = completion.choices[0].message.content if completion.choices else None
                response = response or EMPTY_REPLY
                logger.info("✅ OpenAI response generated successfully")
            except OpenAIError as e:
                logger.error(f"❌ OpenAI API failed: {e}")
                response = get_fallback_response(message)
        else:
            logger.warning("OpenAI API key not configured, using fallback chat reply")
            response = get_fallback_response(message)

        return {
            "response": response.strip(),
            "model": self.model,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Global instance
chat_service = ChatService()
