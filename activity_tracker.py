"""
Activity Tracker

Records user activities for the history page. Recording failures are logged
and swallowed so a generation request never fails because history could not
be written.
"""

import logging
import time
from typing import Any, Dict, Optional

import psycopg2
from fastapi import Request

from db import DatabaseNotConfiguredError
from history_service import HistoryService, InvalidActivityError, history_service
from text_heuristics import most_frequent_word, truncate_text

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50

TOPIC_SKIP_WORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'is', 'are', 'was', 'were', 'be', 'been', 'being', 'have', 'has', 'had', 'do', 'does',
    'did', 'will', 'would', 'could', 'should', 'may', 'might', 'must', 'can', 'this', 'that',
    'these', 'those', 'i', 'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him', 'her', 'us', 'them',
}


def generate_title(activity_type: str, input_text: Optional[str] = None, topic: Optional[str] = None) -> str:
    """Descriptive history title for an activity"""
    if activity_type == "summary":
        return truncate_text(input_text or "Text Summary", TITLE_MAX_LENGTH)
    if activity_type == "quiz":
        return f"{topic} Quiz" if topic else "Generated Quiz"
    if activity_type == "flashcard":
        return f"{topic} Study Cards" if topic else "Flashcards"
    if activity_type == "mindmap":
        return f"{topic} Mind Map" if topic else "Mind Map"
    if activity_type == "video":
        return truncate_text(input_text or "Video Generation", TITLE_MAX_LENGTH)
    if activity_type == "picture":
        return truncate_text(input_text or "Image Generation", TITLE_MAX_LENGTH)
    if activity_type == "exam":
        return f"{topic} Exam Paper" if topic else "Exam Paper"
    if activity_type == "chat":
        return "Chat Session"
    return "Activity"


def calculate_duration(start_time: float) -> int:
    """Whole seconds since start_time (a time.time() value)"""
    return round(time.time() - start_time)


def get_word_count(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def extract_topic(text: Optional[str]) -> Optional[str]:
    """Most common meaningful word, used as a topic label"""
    if not text:
        return None
    return most_frequent_word(text, min_length=4, exclude=TOPIC_SKIP_WORDS)


def get_user_email_from_request(request: Request) -> Optional[str]:
    return request.headers.get("x-user-email") or None


class ActivityTracker:
    """Records completed, failed and in-progress activities"""

    def __init__(self, history: Optional[HistoryService] = None):
        self.history = history or history_service

    def _record(self, user_email: Optional[str], activity_type: str, title: str,
                status: str, input_text: str = "", result: Any = None,
                duration: int = 0, metadata: Optional[Dict] = None) -> Optional[int]:
        if not user_email:
            return None
        if not self.history.is_available():
            logger.debug("Activity history disabled, skipping record")
            return None
        try:
            return self.history.create_activity(
                user_email=user_email,
                activity_type=activity_type,
                title=title,
                input_text=input_text,
                result=result,
                status=status,
                duration=duration,
                metadata=metadata,
            )
        except (psycopg2.Error, DatabaseNotConfiguredError, InvalidActivityError) as e:
            logger.warning(f"⚠️ Failed to record activity: {e}")
            return None

    def record_completed(self, user_email: Optional[str], activity_type: str, input_text: str = "",
                         result: Any = None, duration: int = 0, metadata: Optional[Dict] = None,
                         title: Optional[str] = None) -> Optional[int]:
        metadata = dict(metadata or {})
        metadata.setdefault("wordCount", get_word_count(input_text))
        topic = metadata.get("topic") or extract_topic(input_text)
        if topic:
            metadata["topic"] = topic
        return self._record(
            user_email, activity_type, title or generate_title(activity_type, input_text, topic),
            "completed", input_text, result, duration, metadata,
        )

    def record_failed(self, user_email: Optional[str], activity_type: str, input_text: str = "",
                      error: Optional[str] = None, metadata: Optional[Dict] = None,
                      title: Optional[str] = None) -> Optional[int]:
        metadata = {**(metadata or {}), "error": error}
        return self._record(
            user_email, activity_type, title or generate_title(activity_type, input_text),
            "failed", input_text, None, 0, metadata,
        )

    def record_processing(self, user_email: Optional[str], activity_type: str, input_text: str = "",
                          metadata: Optional[Dict] = None, title: Optional[str] = None) -> Optional[int]:
        return self._record(
            user_email, activity_type, title or generate_title(activity_type, input_text),
            "processing", input_text, None, 0, metadata,
        )


# Global instance
activity_tracker = ActivityTracker()
